"""
Rue Tracker command line.

Usage:
    # Quick log (now, or at a given local time)
    rue log water
    rue log pee --at "2026-10-19 08:15"

    # Today's schedule, suggestion and export
    rue schedule
    rue export --date 2026-10-19

    # Acknowledge or drop a pee attempt
    rue done out-ev-...
    rue drop out-ev-...

    # Training
    rue commands add "Leave it"
    rue train Sit

    # Settings and cloud sync
    rue settings --method mean --meals "07:00, 12:00, 18:00"
    rue cloud --enable --url mongodb+srv://... --family libby-family --test
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from loguru import logger

from app.controller import TrackerController
from app.session_timer import SessionTicker
from tracker import config
from tracker.constants import TYPE_ICON, TYPE_LABEL, EventType
from tracker.schemas import TrainingCommand
from tracker.storage import SqlDocumentStore
from tracker.sync import MongoSyncBackend
from tracker.time_utils import (
    fmt_datetime,
    fmt_duration,
    fmt_time,
    hhmm_to_12h_label,
    parse_local_input,
)
from tracker.training import SessionState, TrainingError


def configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=config.get_log_level())


def build_controller() -> TrackerController:
    controller = TrackerController(SqlDocumentStore())
    controller.refresh_from_remote()
    return controller


def _resolve_command(controller: TrackerController, ref: str) -> Optional[TrainingCommand]:
    """Find a command by id or (case-insensitive) name."""
    for command in controller.document.training_commands:
        if command.id == ref or command.name.lower() == ref.strip().lower():
            return command
    return None


# ---- Logs ----

def cmd_log(controller: TrackerController, args: argparse.Namespace) -> int:
    now = controller.clock.now()
    at = parse_local_input(args.at, now) if args.at else None
    event = controller.log_event(args.type, at=at, note=args.note)
    print(f"✓ Logged {TYPE_ICON[event.type]} {TYPE_LABEL[event.type]} at {fmt_datetime(event.at)}")
    if event.type == EventType.WATER:
        print("Scheduled a Pee attempt in 1h 20m (unless one is already pending).")
    return 0


def cmd_list(controller: TrackerController, args: argparse.Namespace) -> int:
    events = controller.events_ascending()
    if not events:
        print("No logs yet.")
        return 0
    print("Recent (oldest → newest)")
    for event in events:
        print(f"  {fmt_datetime(event.at)} — {TYPE_ICON[event.type]} {TYPE_LABEL[event.type]}  [{event.id}]")
    return 0


def cmd_delete(controller: TrackerController, args: argparse.Namespace) -> int:
    removed = controller.delete_event(args.event_id)
    if removed is None:
        print(f"No event with id {args.event_id}")
        return 1
    print(f"✓ Deleted {TYPE_LABEL[removed.type]} from {fmt_datetime(removed.at)}")
    return 0


def cmd_edit(controller: TrackerController, args: argparse.Namespace) -> int:
    now = controller.clock.now()
    updated = controller.edit_event_time(args.event_id, parse_local_input(args.at, now))
    if updated is None:
        print(f"No event with id {args.event_id}")
        return 1
    print(f"✓ {TYPE_LABEL[updated.type]} moved to {fmt_datetime(updated.at)}")
    return 0


def cmd_export(controller: TrackerController, args: argparse.Namespace) -> int:
    now = controller.clock.now()
    target = parse_local_input(args.date, now) if args.date else now
    print(controller.export_text(target))
    return 0


# ---- Schedule ----

def cmd_schedule(controller: TrackerController, args: argparse.Namespace) -> int:
    print("Today's Schedule")
    suggested = controller.suggested_next_pee()
    if suggested is not None:
        print(f"💡 Suggested next pee window around {fmt_time(suggested)} (based on yesterday).")

    schedule = controller.today_schedule()
    if not schedule:
        print("Nothing scheduled yet.")
        return 0
    for item in schedule:
        if item.kind == "meal":
            print(f"  {fmt_time(item.at)} • 🍽️ Meal")
        else:
            print(f"  {fmt_time(item.at)} • 🚽 Pee attempt  [{item.id}]")
    return 0


def cmd_done(controller: TrackerController, args: argparse.Namespace) -> int:
    event = controller.mark_attempt_done(args.attempt_id)
    if event is not None:
        print(f"✓ Logged {TYPE_ICON[event.type]} {TYPE_LABEL[event.type]}")
    else:
        print("Nothing to acknowledge.")
    return 0


def cmd_drop(controller: TrackerController, args: argparse.Namespace) -> int:
    removed = controller.delete_attempt(args.attempt_id)
    print("✓ Removed" if removed is not None else f"No attempt with id {args.attempt_id}")
    return 0 if removed is not None else 1


def cmd_meal(controller: TrackerController, args: argparse.Namespace) -> int:
    event = controller.log_meal_now()
    print(f"✓ Logged 🍽️ Meal at {fmt_time(event.at)}")
    return 0


# ---- Training ----

def cmd_commands(controller: TrackerController, args: argparse.Namespace) -> int:
    if args.action == "add":
        command = controller.add_command(args.name or "")
        if command is None:
            print("Command name cannot be empty.")
            return 1
        print(f"✓ Added {command.name}")
        return 0

    if args.action in ("up", "down"):
        command = _resolve_command(controller, args.name or "")
        if command is None:
            print(f"No command named {args.name}")
            return 1
        if args.action == "up":
            controller.move_command_up(command.id)
        else:
            controller.move_command_down(command.id)

    summaries = controller.command_summaries()
    if not summaries:
        print("No commands yet.")
    for summary in summaries:
        line = f"  {summary.name}{' 🎉' if summary.learned else ''} — Practice: {summary.practice_minutes} min"
        if summary.last_minutes is not None:
            line += f" • Last: {summary.last_minutes} min • {summary.last_percent}%"
        print(line)
    return 0


def _ask_int(prompt: str) -> int:
    raw = input(prompt).strip()
    try:
        return int(raw or "0")
    except ValueError:
        return 0


def cmd_train(controller: TrackerController, args: argparse.Namespace) -> int:
    command = _resolve_command(controller, args.command)
    if command is None:
        print(f"No command named {args.command}")
        return 1

    active = controller.document.active_session
    if controller.training.state == SessionState.PAUSED and active and active.command_id == command.id:
        print(f"Resuming the session for {command.name} started at {fmt_time(active.started_at)}")
        controller.resume_session()
    else:
        try:
            controller.start_session(command.id)
        except TrainingError as exc:
            print(f"✗ {exc}")
            return 1

    ticker = SessionTicker(
        lambda: print(f"\r⏱ {fmt_duration(controller.training.elapsed_seconds)} ", end="", flush=True)
    )
    ticker.start()
    try:
        while True:
            choice = input("\n[p]ause / [r]esume / [z]ero timer / [e]nd: ").strip().lower()
            if choice.startswith("p") and controller.training.is_running:
                controller.pause_session()
                ticker.stop()
            elif choice.startswith("r"):
                controller.resume_session()
                ticker.start()
            elif choice.startswith("z"):
                controller.training.reset_timer()
            elif choice.startswith("e"):
                break
    finally:
        ticker.stop()

    pending = controller.end_session()
    print(f"\nTraining summary — {command.name}, {fmt_duration(pending.seconds)}")
    attempts = _ask_int("Attempts (total tries): ")
    successes = _ask_int("Successes (must be ≤ attempts): ")

    if input("Save session? [Y/n]: ").strip().lower().startswith("n"):
        controller.cancel_results()
        print("Session discarded.")
        return 0

    session = controller.confirm_results(attempts, successes)
    if session is None:
        print("Command no longer exists; session not saved.")
        return 1
    print(f"✓ Saved: {session.successes}/{session.attempts} ({round(session.success_rate * 100)}%)")
    updated = _resolve_command(controller, command.id)
    if updated is not None and updated.learned:
        print(f"🎉 {updated.name} is learned!")
    return 0


# ---- Settings ----

def cmd_settings(controller: TrackerController, args: argparse.Namespace) -> int:
    values = {
        "water_to_out_minutes": args.water_minutes,
        "pee_suggestion_method": args.method,
        "learned_threshold": args.threshold,
        "learned_window": args.window,
        "meal_times": args.meals,
    }
    changed = {k: v for k, v in values.items() if v is not None}
    if changed:
        controller.save_settings(**changed)
        print("✓ Settings saved")

    settings = controller.document.settings
    meals = ", ".join(hhmm_to_12h_label(t) or t for t in settings.meal_schedule.times)
    print(f"Pee suggestion method: {settings.pee_suggestion_method.value}")
    print(f"Learned rule: average ≥ {settings.learned_threshold:.2f} over last {settings.learned_window} session(s)")
    print(f"Meals: {meals or '(none)'}")
    print(f"(Legacy) Water ➜ out attempt after minutes: {settings.water_to_out_minutes}")
    return 0


def cmd_cloud(controller: TrackerController, args: argparse.Namespace) -> int:
    cloud = controller.document.settings.cloud
    enabled = cloud.enabled if args.enable is None else args.enable
    url = args.url if args.url is not None else cloud.url
    family = args.family if args.family is not None else cloud.family_id

    if args.enable is not None or args.url is not None or args.family is not None:
        controller.save_cloud_settings(enabled, url, family)
        print("✓ Cloud settings saved" + (" — syncing on." if enabled else " (disabled)"))

    if args.test or args.setup_indexes:
        backend = MongoSyncBackend(url, family)
        try:
            if args.test:
                print("Connected ✓" if backend.ping() else "Failed: could not reach the replica")
            if args.setup_indexes:
                backend.ensure_indexes()
                print("✓ Indexes ready")
        finally:
            backend.close()
    return 0


def cmd_reset(controller: TrackerController, args: argparse.Namespace) -> int:
    print("=" * 60)
    print("WARNING: Reset All Data")
    print("=" * 60)
    response = input("This will clear all data and reset defaults. Type 'yes' to confirm: ")
    if response.lower() != "yes":
        print("\nCancelled. No changes made.")
        return 0
    controller.reset_all()
    print("✓ Reset complete")
    return 0


# ---- Entry point ----

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rue", description="Rue Tracker")
    sub = parser.add_subparsers(dest="command_name", required=True)

    p = sub.add_parser("log", help="Log an event")
    p.add_argument("type", choices=[t.value for t in EventType])
    p.add_argument("--at", help='Local time, "YYYY-MM-DD HH:MM" (default: now)')
    p.add_argument("--note")
    p.set_defaults(handler=cmd_log)

    p = sub.add_parser("list", help="List all events, oldest first")
    p.set_defaults(handler=cmd_list)

    p = sub.add_parser("delete", help="Delete an event")
    p.add_argument("event_id")
    p.set_defaults(handler=cmd_delete)

    p = sub.add_parser("edit", help="Correct an event's time")
    p.add_argument("event_id")
    p.add_argument("at", help='Local time, "YYYY-MM-DD HH:MM"')
    p.set_defaults(handler=cmd_edit)

    p = sub.add_parser("export", help="Print a day's log export")
    p.add_argument("--date", help="YYYY-MM-DD (default: today)")
    p.set_defaults(handler=cmd_export)

    p = sub.add_parser("schedule", help="Today's meals and pee attempts")
    p.set_defaults(handler=cmd_schedule)

    p = sub.add_parser("done", help="Mark an out attempt done")
    p.add_argument("attempt_id")
    p.set_defaults(handler=cmd_done)

    p = sub.add_parser("drop", help="Delete an out attempt")
    p.add_argument("attempt_id")
    p.set_defaults(handler=cmd_drop)

    p = sub.add_parser("meal", help="Log a meal now")
    p.set_defaults(handler=cmd_meal)

    p = sub.add_parser("commands", help="List, add or reorder training commands")
    p.add_argument("action", nargs="?", choices=["list", "add", "up", "down"], default="list")
    p.add_argument("name", nargs="?")
    p.set_defaults(handler=cmd_commands)

    p = sub.add_parser("train", help="Run a training session")
    p.add_argument("command", help="Command name or id")
    p.set_defaults(handler=cmd_train)

    p = sub.add_parser("settings", help="Show or change settings")
    p.add_argument("--method", choices=["median", "mean"])
    p.add_argument("--threshold")
    p.add_argument("--window")
    p.add_argument("--meals", help="Comma or newline separated HH:MM times")
    p.add_argument("--water-minutes")
    p.set_defaults(handler=cmd_settings)

    p = sub.add_parser("cloud", help="Configure cloud sync")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--enable", dest="enable", action="store_true", default=None)
    group.add_argument("--disable", dest="enable", action="store_false")
    p.add_argument("--url", help="MongoDB connection URI")
    p.add_argument("--family", help="Family ID shared by all phones")
    p.add_argument("--test", action="store_true", help="Test the connection")
    p.add_argument("--setup-indexes", action="store_true", help="Create replica indexes")
    p.set_defaults(handler=cmd_cloud, enable=None)

    p = sub.add_parser("reset", help="Clear all data")
    p.set_defaults(handler=cmd_reset)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    with build_controller() as controller:
        return args.handler(controller, args)


if __name__ == "__main__":
    sys.exit(main())

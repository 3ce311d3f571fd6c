"""
MongoDB remote replica.

Each entity is one MongoDB document in a collection per table, scoped by
family_id so several phones of one family share the same data:

    events             {_id, family_id, type, at, note}
    out_attempts       {_id, family_id, at, reason, source_event_id, done}
    training_commands  {_id, family_id, name, total_seconds, learned, position}
    training_sessions  {_id, family_id, command_id, started_at, ended_at,
                        seconds, attempts, successes, success_rate}

Push notifications use change streams, which need a replica set
(MongoDB Atlas clusters qualify).
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from loguru import logger
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from tracker import config
from tracker.sync.base import ChangeCallback, SyncBackend, Unsubscribe
from tracker.sync.changes import (
    EVENTS,
    OUT_ATTEMPTS,
    TABLES,
    TRAINING_COMMANDS,
    TRAINING_SESSIONS,
    RemoteSnapshot,
    snapshot_from_rows,
)


# Sort key per collection when fetching
SORT_FIELDS = {
    EVENTS: "at",
    OUT_ATTEMPTS: "at",
    TRAINING_COMMANDS: "position",
    TRAINING_SESSIONS: "started_at",
}

WATCH_POLL_SECONDS = 1.0


def _from_mongo(doc: dict) -> dict:
    row = {k: v for k, v in doc.items() if k not in ("_id", "family_id")}
    row["id"] = doc["_id"]
    return row


class MongoSyncBackend(SyncBackend):
    """Replica on a MongoDB database shared by one family."""

    def __init__(
        self,
        mongo_uri: str,
        family_id: str,
        db_name: Optional[str] = None,
        client: Optional[MongoClient] = None
    ):
        self.mongo_uri = mongo_uri
        self.family_id = family_id
        self.db_name = db_name or config.get_mongo_db_name()
        self._client = client

    # ---- Connection Management ----

    def _db(self) -> Database:
        """
        Get the replica database, connecting on first use.

        The client keeps a small pool alive between calls to avoid a cold
        start on every write.
        """
        if self._client is None:
            self._client = MongoClient(
                self.mongo_uri,
                maxPoolSize=10,
                minPoolSize=1,
                maxIdleTimeMS=60000,
                serverSelectionTimeoutMS=5000,
            )
        return self._client[self.db_name]

    def _collection(self, table: str) -> Collection:
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        return self._db()[table]

    def ping(self) -> bool:
        """Test the connection and credentials."""
        try:
            self._db().client.admin.command("ping")
            return True
        except PyMongoError as exc:
            logger.warning("Replica ping failed: {}", exc)
            return False

    def ensure_indexes(self) -> None:
        """Create the family-scoped indexes used by fetch_all (idempotent)."""
        for table, sort_field in SORT_FIELDS.items():
            self._collection(table).create_index(
                [("family_id", ASCENDING), (sort_field, ASCENDING)]
            )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ---- Reads ----

    def _fetch_rows(self, table: str) -> list[dict]:
        cursor = self._collection(table).find({"family_id": self.family_id}).sort(
            SORT_FIELDS[table], ASCENDING
        )
        return [_from_mongo(doc) for doc in cursor]

    def fetch_all(self) -> Optional[RemoteSnapshot]:
        try:
            return snapshot_from_rows(
                events=self._fetch_rows(EVENTS),
                attempts=self._fetch_rows(OUT_ATTEMPTS),
                commands=self._fetch_rows(TRAINING_COMMANDS),
                sessions=self._fetch_rows(TRAINING_SESSIONS),
            )
        except PyMongoError as exc:
            logger.warning("Replica fetch failed: {}", exc)
            return None

    # ---- Writes ----

    def _scoped(self, entity_id: str) -> dict:
        return {"_id": entity_id, "family_id": self.family_id}

    def insert(self, table: str, record: dict) -> None:
        fields = {k: v for k, v in record.items() if k != "id"}
        self._collection(table).insert_one({**self._scoped(record["id"]), **fields})

    def update(self, table: str, record: dict) -> None:
        fields = {k: v for k, v in record.items() if k != "id"}
        self._collection(table).update_one(self._scoped(record["id"]), {"$set": fields})

    def delete(self, table: str, entity_id: str) -> None:
        self._collection(table).delete_one(self._scoped(entity_id))

    # ---- Push notifications ----

    def _watch_pipeline(self) -> list[dict]:
        # Deletes carry only the _id, so they cannot be scoped to a family
        return [{
            "$match": {
                "ns.coll": {"$in": TABLES},
                "$or": [
                    {"fullDocument.family_id": self.family_id},
                    {"operationType": "delete"},
                ],
            }
        }]

    def subscribe(self, on_change: ChangeCallback) -> Unsubscribe:
        """
        Watch this family's rows in the replicated collections in a
        background thread. Updates are looked up in full so they can be
        matched on family_id.

        Returns:
            Function that stops the watcher and waits for it to exit
        """
        stop = threading.Event()
        pipeline = self._watch_pipeline()

        def _watch() -> None:
            try:
                with self._db().watch(pipeline, full_document="updateLookup") as stream:
                    while not stop.is_set() and stream.alive:
                        change = stream.try_next()
                        if change is None:
                            stop.wait(WATCH_POLL_SECONDS)
                            continue
                        _notify(change)
            except PyMongoError as exc:
                logger.warning("Replica watch stopped: {}", exc)

        def _notify(change: Any) -> None:
            try:
                on_change(change)
            except Exception as exc:
                logger.warning("Replica change handler failed: {}", exc)

        thread = threading.Thread(target=_watch, name="replica-watch", daemon=True)
        thread.start()

        def unsubscribe() -> None:
            stop.set()
            thread.join(timeout=WATCH_POLL_SECONDS * 2)

        return unsubscribe

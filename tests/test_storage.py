"""
Tests for the document stores.

The SQL store runs against a throwaway SQLite file.
"""

import pytest
from sqlalchemy.exc import OperationalError

from tracker.constants import EventType
from tracker.schemas import Event
from tracker.storage import MemoryDocumentStore, SqlDocumentStore
from tracker.storage import database as database_module


@pytest.fixture
def sql_store(tmp_path):
    return SqlDocumentStore(f"sqlite:///{tmp_path / 'test_rue_tracker.db'}", key="family-a")


class TestMemoryStore:

    def test_first_load_seeds_defaults(self):
        store = MemoryDocumentStore()

        document = store.load()

        assert [c.name for c in document.training_commands] == ["Sit", "Down"]
        assert store.raw is not None

    def test_loads_are_independent_copies(self, ts):
        store = MemoryDocumentStore()
        document = store.load()
        document.events.append(Event(id="e1", type=EventType.PEE, at=ts("08:00")))

        assert store.load().events == []
        assert store.save(document) is True
        assert [e.id for e in store.load().events] == ["e1"]

    def test_corrupt_payload_resets(self):
        assert MemoryDocumentStore("{{{").load().events == []


@pytest.mark.integration
class TestSqlStore:

    def test_round_trip(self, sql_store, ts):
        document = sql_store.load()
        document.events.append(Event(id="e1", type=EventType.WATER, at=ts("08:00")))
        document.settings.learned_window = 5

        assert sql_store.save(document) is True

        reloaded = sql_store.load()
        assert [e.id for e in reloaded.events] == ["e1"]
        assert reloaded.events[0].at == ts("08:00")
        assert reloaded.settings.learned_window == 5

    def test_keys_are_separate(self, sql_store, tmp_path, ts):
        document = sql_store.load()
        document.events.append(Event(id="e1", type=EventType.PEE, at=ts("08:00")))
        sql_store.save(document)

        other = SqlDocumentStore(sql_store.db_url, key="family-b")

        assert other.load().events == []

    def test_reset(self, sql_store, ts):
        document = sql_store.load()
        document.events.append(Event(id="e1", type=EventType.PEE, at=ts("08:00")))
        sql_store.save(document)

        sql_store.reset()

        assert sql_store.load().events == []

    def test_save_failure_returns_false(self, sql_store, document, monkeypatch):
        sql_store.load()

        def _fail(*args, **kwargs):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(database_module.Session, "commit", _fail)

        assert sql_store.save(document) is False

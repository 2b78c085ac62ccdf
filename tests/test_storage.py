"""Tests for storage backends and the state repository."""

from datetime import datetime, timezone
import tempfile

import pytest

from screenbudget.models import GrantCode
from screenbudget.repository import StateRepository
from screenbudget.storage import InMemoryStorage, SQLiteStorage, StorageWriteError


class FlakyStorage(InMemoryStorage):
    """Fails the first ``failures`` writes."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.durable_flags = []

    def put(self, key, value, durable=False):
        self.durable_flags.append(durable)
        if self.failures > 0:
            self.failures -= 1
            raise StorageWriteError("disk full")
        super().put(key, value, durable)


def test_sqlite_storage_persists_values():
    """SQLite storage should persist values across instances."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = f"{tmpdir}/screenbudget.db"

        storage = SQLiteStorage(db_path=db_path)
        repository = StateRepository(storage)
        repository.set_daily_limit_minutes(90)
        repository.set_added_minutes(25)
        storage.close()

        storage2 = SQLiteStorage(db_path=db_path)
        repository2 = StateRepository(storage2)
        assert repository2.get_daily_limit_minutes() == 90
        assert repository2.get_added_minutes() == 25
        assert storage2.keys() == ["added_time_minutes", "daily_limit_minutes"]
        storage2.close()


def test_sqlite_storage_codes_roundtrip():
    """SQLite storage should store and load grant codes."""
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = SQLiteStorage(db_path=f"{tmpdir}/screenbudget.db")
        repository = StateRepository(storage)
        used_at = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)

        repository.save_codes([
            GrantCode("AAAAAA", 30),
            GrantCode("BBBBBB", 15).mark_used(used_at),
        ])

        codes = repository.get_codes()
        assert [c.value for c in codes] == ["AAAAAA", "BBBBBB"]
        assert codes[0].used is False
        assert codes[1].used_at == used_at
        storage.close()


def test_sqlite_durable_write():
    """A durable write lands like a normal one."""
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = SQLiteStorage(db_path=f"{tmpdir}/screenbudget.db")
        storage.put("pin", "123456", durable=True)
        storage.put("pin", "654321")

        assert storage.get("pin") == "654321"
        assert storage.delete("pin") is True
        assert storage.delete("pin") is False
        storage.close()


def test_write_retried_durably():
    """A failed write is retried once in durable mode."""
    storage = FlakyStorage(failures=1)
    repository = StateRepository(storage)

    repository.set_daily_limit_minutes(45)

    assert storage.durable_flags == [False, True]
    assert repository.get_daily_limit_minutes() == 45


def test_second_failure_is_best_effort():
    """Two failures are logged and the previous value stays."""
    storage = FlakyStorage(failures=2)
    repository = StateRepository(storage)

    repository.set_daily_limit_minutes(45)

    assert storage.durable_flags == [False, True]
    assert repository.get_daily_limit_minutes() == 60


def test_defaults_without_state():
    """An empty store reports the configured defaults."""
    repository = StateRepository()

    assert repository.get_pin() == "000000"
    assert repository.get_daily_limit_minutes() == 60
    assert repository.get_added_minutes() == 0
    assert repository.get_codes() == []
    assert repository.is_autostart_enabled() is False


def test_initialize_if_needed():
    """First launch stores a boundary and the default PIN, once."""
    repository = StateRepository()
    today = datetime(2024, 3, 15, tzinfo=timezone.utc)

    repository.initialize_if_needed(today)
    repository.set_pin("111111")
    repository.initialize_if_needed(datetime(2024, 3, 16, tzinfo=timezone.utc))

    assert repository.get_last_reset_boundary() == today
    assert repository.get_pin() == "111111"


def test_failed_durable_write_restores_normal_sync():
    """A failed durable write leaves the connection in NORMAL sync mode."""
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = SQLiteStorage(db_path=f"{tmpdir}/screenbudget.db")

        with pytest.raises(StorageWriteError):
            storage.put("pin", None, durable=True)

        # 1 is NORMAL, 2 is FULL
        assert storage._conn.execute("PRAGMA synchronous").fetchone()[0] == 1
        storage.put("pin", "123456")
        assert storage.get("pin") == "123456"
        storage.close()

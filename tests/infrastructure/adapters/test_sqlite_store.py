import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from repetita.application.scheduler import record_review
from repetita.domain.exceptions import PersistenceFailure
from repetita.infrastructure.adapters.sqlite_store import SqliteFlashcardStore

NOW = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_state_survives_reopen(tmp_path):
    path = tmp_path / "cards.db"
    store = SqliteFlashcardStore(path)
    await store.add_cards(1, [10])
    state = record_review(None, 5, NOW)
    await store.save_state("alice", 10, state)
    store.close()

    reopened = SqliteFlashcardStore(path)
    assert await reopened.load_state("alice", 10) == state
    assert await reopened.load_candidate_card_ids("alice", 1) == {10}
    reopened.close()


@pytest.mark.asyncio
async def test_creates_parent_directory(tmp_path):
    store = SqliteFlashcardStore(tmp_path / "nested" / "dir" / "cards.db")
    await store.add_cards(1, [1])
    assert (tmp_path / "nested" / "dir" / "cards.db").exists()
    store.close()


@pytest.mark.asyncio
async def test_unopenable_database_is_persistence_failure(tmp_path):
    # A directory cannot be opened as a database file
    (tmp_path / "cards.db").mkdir()
    store = SqliteFlashcardStore(tmp_path / "cards.db")

    with pytest.raises(PersistenceFailure):
        await store.load_state("alice", 10)


@pytest.mark.asyncio
async def test_driver_error_on_save_is_wrapped_and_rolled_back(tmp_path):
    store = SqliteFlashcardStore(tmp_path / "cards.db")
    await store.add_cards(1, [10])
    state = record_review(None, 5, NOW)

    real_conn = store._connection()
    failing = MagicMock(wraps=real_conn)

    def execute(sql, *args):
        if sql.startswith("INSERT OR REPLACE"):
            raise sqlite3.OperationalError("disk I/O error")
        return real_conn.execute(sql, *args)

    failing.execute.side_effect = execute
    store._conn = failing

    with pytest.raises(PersistenceFailure) as exc:
        await store.save_state("alice", 10, state)
    assert isinstance(exc.value.__cause__, sqlite3.OperationalError)

    store._conn = real_conn
    assert await store.load_state("alice", 10) is None
    assert not real_conn.in_transaction
    store.close()


@pytest.mark.asyncio
async def test_in_memory_database():
    store = SqliteFlashcardStore(":memory:")
    await store.add_cards(1, [10])
    await store.save_state("alice", 10, record_review(None, 4, NOW))
    assert (await store.load_state("alice", 10)).repetition_count == 1
    store.close()

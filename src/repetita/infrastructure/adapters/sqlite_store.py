"""
SQLite Flashcard Store — Infrastructure adapter for a local SQLite database.

Implements FlashcardStore with one table for the card catalogue and one for
per-learner review state. Timestamps are stored as ISO-8601 strings.
"""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from repetita.domain.constants import CHUNK_SIZE
from repetita.domain.exceptions import ConcurrentUpdate, PersistenceFailure
from repetita.domain.models import CardId, CardReviewState
from repetita.domain.ports import FlashcardStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS flashcards (
    card_id INTEGER PRIMARY KEY,
    set_id INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_flashcards_set ON flashcards(set_id);

CREATE TABLE IF NOT EXISTS card_review_states (
    learner_id TEXT NOT NULL,
    card_id INTEGER NOT NULL REFERENCES flashcards(card_id) ON DELETE CASCADE,
    easiness_factor REAL NOT NULL,
    repetition_count INTEGER NOT NULL,
    interval_days INTEGER NOT NULL,
    due_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    total_reviews INTEGER NOT NULL DEFAULT 0,
    correct_reviews INTEGER NOT NULL DEFAULT 0,
    first_reviewed_at TEXT,
    PRIMARY KEY (learner_id, card_id)
);
CREATE INDEX IF NOT EXISTS idx_states_due ON card_review_states(learner_id, due_at);
"""

STATE_COLUMNS = (
    "card_id, easiness_factor, repetition_count, interval_days, due_at, "
    "last_reviewed_at, total_reviews, correct_reviews, first_reviewed_at"
)


def _dump_ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _load_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _row_to_state(row: sqlite3.Row) -> CardReviewState:
    return CardReviewState(
        easiness_factor=row["easiness_factor"],
        repetition_count=row["repetition_count"],
        interval_days=row["interval_days"],
        due_at=_load_ts(row["due_at"]),
        last_reviewed_at=_load_ts(row["last_reviewed_at"]),
        total_reviews=row["total_reviews"],
        correct_reviews=row["correct_reviews"],
        first_reviewed_at=_load_ts(row["first_reviewed_at"]),
    )


class SqliteFlashcardStore(FlashcardStore):
    """
    Stores the catalogue and review states in a SQLite file.

    save_state runs its read-compare-write inside a BEGIN IMMEDIATE
    transaction, which takes the database write lock up front.
    """

    def __init__(self, database_path: Path | str):
        self.database_path = database_path
        self._conn: sqlite3.Connection | None = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            path = self.database_path
            if isinstance(path, Path):
                path.parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(
                    str(path), isolation_level=None, check_same_thread=False, timeout=5.0
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                conn.executescript(SCHEMA)
            except sqlite3.Error as e:
                raise PersistenceFailure(f"Could not open database {path}: {e}") from e
            logger.debug(f"Opened flashcard store at {path}")
            self._conn = conn
        return self._conn

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        conn = self._connection()
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Database error: {e}") from e

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._connection().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Database error: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def load_state(self, learner_id: str, card_id: CardId) -> CardReviewState | None:
        rows = self._query(
            f"SELECT {STATE_COLUMNS} FROM card_review_states "
            "WHERE learner_id = ? AND card_id = ?",
            (learner_id, card_id),
        )
        return _row_to_state(rows[0]) if rows else None

    async def load_states(
        self, learner_id: str, card_ids: Iterable[CardId]
    ) -> dict[CardId, CardReviewState]:
        ids = list(card_ids)
        found: dict[CardId, CardReviewState] = {}

        for start in range(0, len(ids), CHUNK_SIZE):
            chunk = ids[start : start + CHUNK_SIZE]
            placeholders = ",".join("?" * len(chunk))
            rows = self._query(
                f"SELECT {STATE_COLUMNS} FROM card_review_states "
                f"WHERE learner_id = ? AND card_id IN ({placeholders})",
                (learner_id, *chunk),
            )
            for row in rows:
                found[row["card_id"]] = _row_to_state(row)

        return found

    async def save_state(
        self,
        learner_id: str,
        card_id: CardId,
        state: CardReviewState,
        expected: CardReviewState | None = None,
    ) -> None:
        with self._transaction(immediate=True) as conn:
            row = conn.execute(
                f"SELECT {STATE_COLUMNS} FROM card_review_states "
                "WHERE learner_id = ? AND card_id = ?",
                (learner_id, card_id),
            ).fetchone()
            current = _row_to_state(row) if row else None
            if current != expected:
                raise ConcurrentUpdate(learner_id, card_id)

            conn.execute(
                "INSERT OR REPLACE INTO card_review_states ("
                "learner_id, card_id, easiness_factor, repetition_count, interval_days, "
                "due_at, last_reviewed_at, total_reviews, correct_reviews, first_reviewed_at"
                ") VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    learner_id,
                    card_id,
                    state.easiness_factor,
                    state.repetition_count,
                    state.interval_days,
                    _dump_ts(state.due_at),
                    _dump_ts(state.last_reviewed_at),
                    state.total_reviews,
                    state.correct_reviews,
                    _dump_ts(state.first_reviewed_at),
                ),
            )

    async def load_candidate_card_ids(self, learner_id: str, set_id: int) -> set[CardId]:
        rows = self._query("SELECT card_id FROM flashcards WHERE set_id = ?", (set_id,))
        return {row["card_id"] for row in rows}

    async def add_cards(self, set_id: int, card_ids: Iterable[CardId]) -> int:
        added = 0
        with self._transaction() as conn:
            for card_id in card_ids:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO flashcards (card_id, set_id) VALUES (?, ?)",
                    (card_id, set_id),
                )
                added += cursor.rowcount
        logger.debug(f"Added {added} cards to set {set_id}")
        return added

    async def card_exists(self, card_id: CardId) -> bool:
        rows = self._query("SELECT 1 FROM flashcards WHERE card_id = ?", (card_id,))
        return bool(rows)

    async def remove_card(self, card_id: CardId) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM flashcards WHERE card_id = ?", (card_id,))
        return cursor.rowcount > 0

    async def remove_learner(self, learner_id: str) -> int:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM card_review_states WHERE learner_id = ?", (learner_id,)
            )
        return cursor.rowcount

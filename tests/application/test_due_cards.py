from datetime import datetime, timedelta, timezone
from itertools import islice

from repetita.application.scheduler import DueCards, due_cards
from repetita.domain.models import CardReviewState

T = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def state_due_at(due_at: datetime, interval: int = 3) -> CardReviewState:
    return CardReviewState(
        easiness_factor=2.5,
        repetition_count=1,
        interval_days=interval,
        due_at=due_at,
        last_reviewed_at=due_at - timedelta(days=interval),
        total_reviews=1,
        correct_reviews=1,
    )


def test_due_overdue_and_new_excludes_future():
    states = {
        1: state_due_at(T - timedelta(days=1)),
        2: state_due_at(T + timedelta(days=1)),
    }
    due = due_cards("alice", [1, 2, 3], T, states)

    assert list(due) == [1, 3]
    assert len(due) == 2


def test_due_exactly_now_is_included():
    due = due_cards("alice", [5], T, {5: state_due_at(T)})
    assert list(due) == [5]


def test_orders_oldest_due_first_then_by_card_id():
    states = {
        10: state_due_at(T - timedelta(hours=1)),
        11: state_due_at(T - timedelta(days=3)),
        12: state_due_at(T - timedelta(days=3)),
        13: state_due_at(T - timedelta(days=2)),
    }
    due = due_cards("alice", [13, 12, 11, 10, 14], T, states)

    # never-reviewed card 14 sorts as if due at T
    assert list(due) == [11, 12, 13, 10, 14]


def test_new_cards_tie_break_by_id():
    due = due_cards("bob", [9, 3, 7], T, {})
    assert list(due) == [3, 7, 9]


def test_restartable_and_prefix():
    states = {i: state_due_at(T - timedelta(days=i)) for i in range(1, 30)}
    due = due_cards("alice", list(states), T, states)

    first = list(due)
    second = list(due)
    assert first == second
    assert first[0] == 29

    assert due.take(5) == first[:5]
    assert list(islice(due, 3)) == first[:3]
    assert due.take(None) == first
    assert due.take(0) == first


def test_candidates_are_deduplicated():
    due = due_cards("alice", [4, 4, 4], T, {})
    assert list(due) == [4]


def test_empty_candidates():
    due = due_cards("alice", [], T, {})
    assert isinstance(due, DueCards)
    assert not due
    assert list(due) == []
    assert due.take(10) == []


def test_due_set_matches_definition():
    states = {}
    for card_id in range(100):
        if card_id % 3 == 0:
            continue  # never reviewed
        offset = timedelta(hours=(card_id * 37) % 97 - 48)
        states[card_id] = state_due_at(T + offset)

    due = set(due_cards("carol", range(100), T, states))

    expected = {c for c in range(100) if c not in states or states[c].due_at <= T}
    assert due == expected


def test_states_of_other_cards_are_ignored():
    states = {99: state_due_at(T - timedelta(days=5))}
    assert list(due_cards("alice", [1], T, states)) == [1]

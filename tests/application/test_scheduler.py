import random
from datetime import datetime, timedelta, timezone

import pytest

from repetita.application.scheduler import next_easiness, record_review, validate_quality
from repetita.domain.exceptions import InvalidQuality
from repetita.domain.models import CardReviewState, Sm2Parameters

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_state(ef=2.5, reps=0, interval=0, last=None):
    last = last or NOW - timedelta(days=interval)
    return CardReviewState(
        easiness_factor=ef,
        repetition_count=reps,
        interval_days=interval,
        due_at=last + timedelta(days=interval),
        last_reviewed_at=last,
        total_reviews=reps,
        correct_reviews=reps,
        first_reviewed_at=last,
    )


# --- Scenarios ---


def test_first_review_perfect_recall():
    state = record_review(None, 5, NOW)

    assert state.repetition_count == 1
    assert state.interval_days == 1
    assert state.easiness_factor == pytest.approx(2.6)
    assert state.due_at == NOW + timedelta(days=1)
    assert state.last_reviewed_at == NOW
    assert state.first_reviewed_at == NOW
    assert state.total_reviews == 1
    assert state.correct_reviews == 1


def test_second_success_jumps_to_six_days():
    state = record_review(make_state(ef=2.6, reps=1, interval=1), 4, NOW)

    assert state.repetition_count == 2
    assert state.interval_days == 6
    assert state.easiness_factor == pytest.approx(2.6)


def test_third_success_multiplies_by_new_easiness():
    state = record_review(make_state(ef=2.5, reps=2, interval=6), 5, NOW)

    assert state.repetition_count == 3
    assert state.easiness_factor == pytest.approx(2.6)
    assert state.interval_days == 16  # round(6 * 2.6)
    assert state.due_at == NOW + timedelta(days=16)


def test_lapse_resets_progress():
    state = record_review(make_state(ef=2.5, reps=3, interval=15), 1, NOW)

    assert state.repetition_count == 0
    assert state.interval_days == 1
    assert state.easiness_factor == pytest.approx(2.5 - 0.54)
    assert state.due_at == NOW + timedelta(days=1)
    assert state.correct_reviews == 3
    assert state.total_reviews == 4


@pytest.mark.parametrize("quality", [-1, 6, 7, 2.5, "3", None, True])
def test_invalid_quality_rejected(quality):
    state = make_state(ef=2.5, reps=2, interval=6)
    before = make_state(ef=2.5, reps=2, interval=6)

    with pytest.raises(InvalidQuality) as exc:
        record_review(state, quality, NOW)

    assert exc.value.quality == quality
    assert state == before


# --- Edge cases ---


def test_quality_three_counts_as_success():
    state = record_review(make_state(ef=2.5, reps=1, interval=1), 3, NOW)

    assert state.repetition_count == 2
    assert state.interval_days == 6
    assert state.easiness_factor == pytest.approx(2.36)


def test_repeated_lapses_stay_daily():
    state = None
    for _ in range(5):
        state = record_review(state, 0, NOW)
        assert state.repetition_count == 0
        assert state.interval_days == 1


def test_easiness_floor_under_repeated_blackouts():
    state = None
    for _ in range(20):
        state = record_review(state, 0, NOW)
        assert state.easiness_factor >= 1.3
    assert state.easiness_factor == 1.3


def test_easiness_has_no_upper_bound():
    state = None
    for _ in range(30):
        state = record_review(state, 5, NOW)
    assert state.easiness_factor == pytest.approx(2.5 + 30 * 0.1)


def test_interval_rounds_half_up():
    # ef stays 2.5 with quality 4: 5 * 2.5 = 12.5
    state = record_review(make_state(ef=2.5, reps=3, interval=5), 4, NOW)
    assert state.interval_days == 13


def test_input_state_is_not_mutated():
    state = make_state(ef=2.5, reps=2, interval=6)
    record_review(state, 5, NOW)
    assert state.repetition_count == 2
    assert state.interval_days == 6


def test_first_reviewed_at_is_kept():
    first = record_review(None, 4, NOW)
    later = record_review(first, 4, NOW + timedelta(days=1))
    assert later.first_reviewed_at == NOW
    assert later.last_reviewed_at == NOW + timedelta(days=1)


# --- Properties ---


def test_lapse_after_any_progress_resets():
    rng = random.Random(7)
    for _ in range(200):
        state = make_state(
            ef=rng.uniform(1.3, 3.5), reps=rng.randint(1, 12), interval=rng.randint(1, 400)
        )
        quality = rng.randint(0, 2)
        new = record_review(state, quality, NOW)
        assert new.repetition_count == 0
        assert new.interval_days == 1


@pytest.mark.parametrize("quality", [3, 4, 5])
def test_success_intervals_non_decreasing(quality):
    state = None
    intervals = []
    for day in range(12):
        state = record_review(state, quality, NOW + timedelta(days=day))
        intervals.append(state.interval_days)

    assert intervals[:2] == [1, 6]
    assert intervals == sorted(intervals)


def test_random_histories_respect_floor_and_due_invariant():
    rng = random.Random(42)
    for _ in range(50):
        state = None
        now = NOW
        for _ in range(40):
            state = record_review(state, rng.randint(0, 5), now)
            assert state.easiness_factor >= 1.3
            assert state.due_at == state.last_reviewed_at + timedelta(days=state.interval_days)
            assert state.correct_reviews <= state.total_reviews
            now = state.due_at


def test_deterministic():
    state = make_state(ef=2.2, reps=4, interval=20)
    assert record_review(state, 4, NOW) == record_review(state, 4, NOW)


# --- Helpers ---


def test_next_easiness_deltas():
    assert next_easiness(2.5, 5) == pytest.approx(2.6)
    assert next_easiness(2.5, 4) == pytest.approx(2.5)
    assert next_easiness(2.5, 3) == pytest.approx(2.36)
    assert next_easiness(2.5, 2) == pytest.approx(2.18)
    assert next_easiness(2.5, 1) == pytest.approx(1.96)
    assert next_easiness(2.5, 0) == pytest.approx(1.7)


def test_custom_parameters():
    params = Sm2Parameters(initial_easiness=2.0, first_interval_days=2, second_interval_days=5)
    state = record_review(None, 5, NOW, params)
    assert state.interval_days == 2
    assert state.easiness_factor == pytest.approx(2.1)
    state = record_review(state, 5, NOW, params)
    assert state.interval_days == 5


def test_validate_quality_returns_value():
    for q in range(6):
        assert validate_quality(q) == q


def test_new_state_is_due_immediately():
    state = CardReviewState.new(NOW)
    assert state.is_new
    assert state.is_due(NOW)
    assert state.easiness_factor == 2.5
    assert state.repetition_count == 0
    assert state.interval_days == 0

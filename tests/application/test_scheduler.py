from datetime import datetime, timedelta

import pytest

from fidel.application.numeric import round_half_up
from fidel.application.scheduler import ReviewScheduler, SchedulerPolicy, is_due
from fidel.domain.constants import MAX_INTERVAL_DAYS
from fidel.domain.models import ReviewState

NOW = datetime(2024, 1, 1, 12, 0)


@pytest.fixture
def scheduler():
    return ReviewScheduler()


@pytest.fixture
def fresh(scheduler):
    return scheduler.new_state("c1", NOW)


def test_first_exposure_defaults(fresh):
    assert fresh.interval == 1
    assert fresh.ease_factor == 2.5
    assert fresh.correct_count == 0
    assert fresh.incorrect_count == 0
    assert fresh.next_review == fresh.last_reviewed == NOW


def test_first_correct_sets_interval_to_one(scheduler, fresh):
    state = scheduler.grade(fresh, True, NOW)

    assert state.correct_count == 1
    assert state.interval == 1
    assert state.ease_factor == 2.6
    assert state.next_review == NOW + timedelta(days=1)


def test_second_consecutive_correct_sets_interval_to_six(scheduler, fresh):
    state = scheduler.grade(scheduler.grade(fresh, True, NOW), True, NOW)

    assert state.interval == 6
    assert state.ease_factor == 2.7


def test_third_correct_multiplies_by_ease_before_bonus(scheduler, fresh):
    state = fresh
    for _ in range(2):
        state = scheduler.grade(state, True, NOW)
    ease_before = state.ease_factor

    third = scheduler.grade(state, True, NOW)

    assert third.interval == round_half_up(6 * ease_before)  # 6 * 2.7 = 16.2
    assert third.interval == 16
    assert third.ease_factor == 2.8


def test_incorrect_resets_interval_and_penalises_ease(scheduler, fresh):
    state = scheduler.grade(fresh, False, NOW)

    assert state.interval == 1
    assert state.ease_factor == 2.3
    assert state.incorrect_count == 1
    assert state.correct_count == 0
    assert state.repetitions == 0


def test_scenario_correct_correct_incorrect(scheduler, fresh):
    intervals, eases = [], []
    state = fresh
    for correct in (True, True, False):
        state = scheduler.grade(state, correct, NOW)
        intervals.append(state.interval)
        eases.append(state.ease_factor)

    assert intervals == [1, 6, 1]
    assert eases == [2.6, 2.7, 2.5]


def test_correct_after_miss_restarts_consecutive_run(scheduler, fresh):
    state = fresh
    for correct in (True, True, False, True):
        state = scheduler.grade(state, correct, NOW)

    assert state.correct_count == 3
    assert state.repetitions == 1
    assert state.interval == 1


def test_ease_never_drops_below_floor(scheduler, fresh):
    state = fresh
    for _ in range(20):
        state = scheduler.grade(state, False, NOW)
        assert state.ease_factor >= 1.3

    assert state.ease_factor == 1.3


def test_correct_never_lowers_ease(fresh):
    scheduler = ReviewScheduler(SchedulerPolicy(ease_bonus=0.0))
    state = scheduler.grade(fresh, True, NOW)
    assert state.ease_factor == fresh.ease_factor


def test_next_review_is_last_reviewed_plus_interval(scheduler, fresh):
    state = fresh
    later = NOW
    for correct in (True, True, True, False, True):
        later += timedelta(days=3)
        state = scheduler.grade(state, correct, later)
        assert state.last_reviewed == later
        assert state.next_review == later + timedelta(days=state.interval)
        assert state.interval >= 1


def test_grade_does_not_mutate_input(scheduler, fresh):
    scheduler.grade(fresh, True, NOW)
    assert fresh.correct_count == 0


def test_long_correct_run_caps_interval(scheduler, fresh):
    state = fresh
    for _ in range(50):
        state = scheduler.grade(state, True, NOW)

    assert state.correct_count == 50
    assert state.interval == MAX_INTERVAL_DAYS
    assert state.next_review == state.last_reviewed + timedelta(days=MAX_INTERVAL_DAYS)


def test_next_review_saturates_at_calendar_end(scheduler):
    late = datetime.max - timedelta(days=10)
    state = ReviewState("c1", late, late, repetitions=5, interval=400)

    graded = scheduler.grade(state, True, late)

    assert graded.last_reviewed == late
    assert graded.next_review == datetime.max


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(15.0) == 15
    assert round_half_up(16.2) == 16


def test_policy_rejects_negative_bonus():
    with pytest.raises(ValueError):
        SchedulerPolicy(ease_bonus=-0.1)


def test_policy_rejects_floor_below_minimum_ease():
    with pytest.raises(ValueError, match="min_ease"):
        SchedulerPolicy(min_ease=1.0, initial_ease=1.2)


def test_raised_floor_is_respected(fresh):
    scheduler = ReviewScheduler(SchedulerPolicy(min_ease=2.0))
    state = fresh
    for _ in range(10):
        state = scheduler.grade(state, False, NOW)
    assert state.ease_factor == 2.0


class TestIsDue:
    def test_due_when_next_review_passed(self):
        state = ReviewState("c1", last_reviewed=NOW, next_review=NOW + timedelta(days=1))
        assert is_due(state, NOW + timedelta(days=1))
        assert not is_due(state, NOW + timedelta(hours=23))

    def test_clock_skew_is_not_due(self):
        state = ReviewState("c1", last_reviewed=NOW, next_review=NOW)
        assert not is_due(state, NOW - timedelta(minutes=1))

    def test_fresh_card_is_due(self):
        assert is_due(ReviewState.first_exposure("c1", NOW), NOW)

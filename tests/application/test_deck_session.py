import random
from datetime import timedelta

import pytest

from fidel.application.deck_session import DeckSession
from fidel.domain.errors import CardNotFoundError, EmptyDeckError, InvalidTransitionError
from fidel.domain.models import ReviewState


def _answer(session, correct=True):
    session.reveal()
    state = session.grade(correct)
    session.advance()
    return state


class TestTransitions:
    def test_starts_presenting_first_card(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        assert session.phase == "presenting"
        assert session.current_card == deck[0]
        assert not session.is_revealed

    def test_reveal_then_grade(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        assert session.reveal() == deck[0]
        assert session.phase == "revealed"

        state = session.grade(True)

        assert session.phase == "graded"
        assert state.card_id == "c1"
        assert session.total_answers == 1
        assert session.correct_answers == 1

    def test_grade_before_reveal_is_rejected(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        with pytest.raises(InvalidTransitionError):
            session.grade(True)
        assert session.total_answers == 0
        assert session.state_for("c1").correct_count == 0

    def test_grade_twice_is_rejected(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        session.reveal()
        session.grade(False)
        with pytest.raises(InvalidTransitionError):
            session.grade(True)
        assert session.total_answers == 1

    def test_empty_deck(self, clock):
        with pytest.raises(EmptyDeckError):
            DeckSession([], clock=clock)

    def test_state_for_unknown_card(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        with pytest.raises(CardNotFoundError):
            session.state_for("missing")


class TestSequential:
    def test_walks_deck_then_completes(self, deck, clock):
        emitted = []
        session = DeckSession(deck, clock=clock, on_complete=emitted.append)

        seen = []
        while not session.is_finished:
            seen.append(session.current_card.id)
            _answer(session, correct=True)

        assert seen == ["c1", "c2", "c3"]
        assert session.phase == "complete"
        assert session.current_card is None
        assert len(emitted) == 1
        assert emitted[0] is session.session

    def test_actions_after_completion_are_rejected(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        session.complete()
        for action in (session.reveal, session.advance, session.previous, session.complete):
            with pytest.raises(InvalidTransitionError):
                action()

    def test_scenario_grading_card_one(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        intervals, eases = [], []
        for correct in (True, True, False):
            session.reveal()
            state = session.grade(correct)
            intervals.append(state.interval)
            eases.append(state.ease_factor)
            session.previous()  # stay on card 1

        assert intervals == [1, 6, 1]
        assert eases == [2.6, 2.7, 2.5]
        assert session.total_answers == 3
        assert session.correct_answers == 2


class TestNavigation:
    def test_previous_keeps_grading_state(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        _answer(session, correct=True)
        graded = session.state_for("c1")

        session.reveal()
        card = session.previous()

        assert card == deck[0]
        assert session.phase == "presenting"
        assert session.state_for("c1") == graded
        assert session.total_answers == 1

    def test_previous_at_start_stays_on_first_card(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        assert session.previous() == deck[0]

    def test_shuffle_switches_to_random(self, deck, clock):
        session = DeckSession(deck, clock=clock, rng=random.Random(3))
        card = session.shuffle()
        assert session.study_mode == "random"
        assert card in deck
        assert session.phase == "presenting"


class TestRandom:
    def test_draws_from_whole_deck_with_repeats(self, deck, clock):
        session = DeckSession(deck, study_mode="random", clock=clock, rng=random.Random(7))
        drawn = [session.current_card.id]
        for _ in range(30):
            _answer(session)
            drawn.append(session.current_card.id)

        assert set(drawn) <= {"c1", "c2", "c3"}
        assert len(drawn) > len(set(drawn))
        assert not session.is_finished


class TestSpaced:
    def test_presents_due_card_over_non_due(self, deck, clock):
        now = clock()
        states = {
            "c1": ReviewState("c1", last_reviewed=now, next_review=now + timedelta(days=3)),
            "c2": ReviewState("c2", last_reviewed=now - timedelta(days=2), next_review=now - timedelta(hours=1)),
            "c3": ReviewState("c3", last_reviewed=now, next_review=now + timedelta(days=5)),
        }
        session = DeckSession(deck, states, "spaced", clock=clock)

        assert session.current_card.id == "c2"

    def test_due_card_chosen_next_after_grading(self, deck, clock):
        now = clock()
        states = {
            "c1": ReviewState("c1", last_reviewed=now, next_review=now),
            "c2": ReviewState("c2", last_reviewed=now, next_review=now + timedelta(days=4)),
            "c3": ReviewState("c3", last_reviewed=now - timedelta(days=9), next_review=now - timedelta(days=1)),
        }
        session = DeckSession(deck, states, "spaced", clock=clock)

        # c3 is the most overdue
        assert session.current_card.id == "c3"
        _answer(session)
        assert session.current_card.id == "c1"

    def test_falls_back_to_sequential_when_nothing_due(self, deck, clock):
        now = clock()
        states = {
            c.id: ReviewState(c.id, last_reviewed=now, next_review=now + timedelta(days=2))
            for c in deck
        }
        session = DeckSession(deck, states, "spaced", clock=clock)

        assert session.current_card.id == "c1"
        _answer(session)
        assert session.current_card.id == "c2"
        _answer(session)
        assert session.current_card.id == "c3"
        _answer(session)
        assert session.phase == "complete"

    def test_clock_skewed_card_is_not_due(self, deck, clock):
        now = clock()
        states = {
            "c1": ReviewState("c1", last_reviewed=now + timedelta(hours=2), next_review=now - timedelta(days=1)),
            "c2": ReviewState("c2", last_reviewed=now - timedelta(days=1), next_review=now),
        }
        session = DeckSession(deck[:2], states, "spaced", clock=clock)
        assert session.current_card.id == "c2"


class TestCompletion:
    def test_session_record(self, deck, clock):
        session = DeckSession(deck, clock=clock, learner_id="amara")
        _answer(session, correct=True)
        clock.advance(minutes=4)
        _answer(session, correct=False)
        clock.advance(minutes=1)

        record = session.complete()

        assert record.learner_id == "amara"
        assert record.date == clock() - timedelta(minutes=5)
        assert record.ended_at == clock()
        assert record.study_mode == "sequential"
        assert record.correct_answers == 1
        assert record.total_answers == 2
        assert record.incorrect_answers == 1
        assert record.phrases_studied == 2
        assert record.time_spent_minutes == 5
        assert record.categories == frozenset({"greetings", "shopping"})
        assert session.accuracy_percentage == 50

    def test_repeated_card_counts_once_in_phrases_studied(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        for _ in range(3):
            session.reveal()
            session.grade(True)
            session.previous()

        record = session.complete()
        assert record.phrases_studied == 1
        assert record.total_answers == 3

    def test_abandon_emits_nothing(self, deck, clock):
        emitted = []
        session = DeckSession(deck, clock=clock, on_complete=emitted.append)
        _answer(session)

        session.abandon()

        assert session.phase == "abandoned"
        assert session.session is None
        assert emitted == []
        with pytest.raises(InvalidTransitionError):
            session.complete()

    def test_unanswered_session_has_no_accuracy(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        record = session.complete()
        assert record.total_answers == 0
        assert record.accuracy is None
        assert session.accuracy_percentage == 0

    def test_graded_states_cover_only_graded_cards(self, deck, clock):
        session = DeckSession(deck, clock=clock)
        _answer(session, correct=True)
        _answer(session, correct=False)

        assert [s.card_id for s in session.graded_states] == ["c1", "c2"]
        assert session.graded_states[0].correct_count == 1
        assert session.graded_states[1].incorrect_count == 1

    def test_failed_completion_handler_leaves_run_open(self, deck, clock):
        calls = []

        def on_complete(record):
            calls.append(record)
            if len(calls) == 1:
                raise OSError("disk full")

        session = DeckSession(deck, clock=clock, on_complete=on_complete)
        session.reveal()
        session.grade(True)

        with pytest.raises(OSError):
            session.complete()
        assert session.phase == "graded"
        assert session.session is None

        record = session.complete()
        assert session.phase == "complete"
        assert session.session == record
        assert record.total_answers == 1

"""
Unit tests for the QuizEngine transition rules.
"""
import unittest
from dataclasses import replace

from flashquiz.content import FEEDBACK_PHRASES
from flashquiz.models import QuizPhase, SessionState
from flashquiz.quiz_engine import (
    QuizEngine, TIMEOUT_ANSWER, DuplicateAnswerError, EmptyCategoryError,
    InvalidTransitionError, UnknownCategoryError
)
from tests.test_fixtures import TestFixtures


class TestStartCategory(unittest.TestCase):
    """Test cases for starting and switching categories."""

    def setUp(self):
        self.engine = TestFixtures.create_engine()
        self.initial = self.engine.initial_state()

    def test_initial_state_shows_picker(self):
        self.assertEqual(self.initial.phase, QuizPhase.SELECTING_CATEGORY)
        self.assertIsNone(self.initial.active_category)
        self.assertEqual(self.initial.remaining_seconds, 15)

    def test_start_every_known_category(self):
        for category_id in self.engine.categories:
            state = self.engine.start_category(self.initial, category_id)
            self.assertEqual(state.active_category, category_id)
            self.assertEqual(state.question_index, 0)
            self.assertEqual(state.remaining_seconds, 15)
            self.assertIsNone(state.selected_option)
            self.assertIsNone(state.is_answer_correct)
            self.assertEqual(state.streak, 0)
            self.assertEqual(state.phase, QuizPhase.AWAITING_ANSWER)

    def test_start_unknown_category_raises(self):
        with self.assertRaises(UnknownCategoryError):
            self.engine.start_category(self.initial, "history")

    def test_start_resets_streak_and_progress(self):
        state = SessionState(active_category="verbal", question_index=2, selected_option="Short",
                             is_answer_correct=True, streak=7, remaining_seconds=3,
                             feedback_phrase="nice")
        restarted = self.engine.start_category(state, "analytical")
        self.assertEqual(restarted, SessionState(active_category="analytical", remaining_seconds=15))

    def test_return_to_categories(self):
        state = self.engine.start_category(self.initial, "verbal")
        self.assertEqual(self.engine.return_to_categories(state), self.initial)

    def test_return_to_categories_from_picker_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            self.engine.return_to_categories(self.initial)


class TestSubmitAnswer(unittest.TestCase):
    """Test cases for answering a card."""

    def setUp(self):
        self.engine = TestFixtures.create_engine()
        self.state = self.engine.start_category(self.engine.initial_state(), "quantitative")

    def test_correct_answer(self):
        state = self.engine.submit_answer(self.state, "4")
        self.assertEqual(state.selected_option, "4")
        self.assertTrue(state.is_answer_correct)
        self.assertEqual(state.streak, 1)
        self.assertEqual(state.phase, QuizPhase.SHOWING_FEEDBACK)

    def test_wrong_answer_resets_streak(self):
        state = self.engine.submit_answer(replace(self.state, streak=4), "6")
        self.assertFalse(state.is_answer_correct)
        self.assertEqual(state.streak, 0)

    def test_answer_does_not_touch_countdown(self):
        state = self.engine.submit_answer(replace(self.state, remaining_seconds=9), "4")
        self.assertEqual(state.remaining_seconds, 9)

    def test_second_answer_raises(self):
        answered = self.engine.submit_answer(self.state, "4")
        with self.assertRaises(DuplicateAnswerError):
            self.engine.submit_answer(answered, "6")

    def test_answer_before_category_raises(self):
        with self.assertRaises(InvalidTransitionError):
            self.engine.submit_answer(self.engine.initial_state(), "4")

    def test_empty_answer_is_always_wrong(self):
        state = self.engine.submit_answer(self.state, TIMEOUT_ANSWER)
        self.assertEqual(state.selected_option, "")
        self.assertFalse(state.is_answer_correct)
        self.assertEqual(state.phase, QuizPhase.SHOWING_FEEDBACK)

    def test_feedback_phrase_matches_outcome(self):
        correct = self.engine.submit_answer(self.state, "4")
        wrong = self.engine.submit_answer(self.state, "3")
        self.assertIn(correct.feedback_phrase, FEEDBACK_PHRASES["correct"])
        self.assertIn(wrong.feedback_phrase, FEEDBACK_PHRASES["wrong"])

    def test_feedback_phrase_uses_injected_rng(self):
        class LastChoice:
            def choice(self, seq):
                return seq[-1]

        engine = QuizEngine(TestFixtures.create_sample_categories(), rng=LastChoice())
        state = engine.submit_answer(engine.start_category(engine.initial_state(), "quantitative"), "4")
        self.assertEqual(state.feedback_phrase, FEEDBACK_PHRASES["correct"][-1])

    def test_input_state_is_not_modified(self):
        before = self.state
        self.engine.submit_answer(self.state, "4")
        self.assertIs(self.state, before)
        self.assertIsNone(self.state.selected_option)


class TestTick(unittest.TestCase):
    """Test cases for the countdown tick and timeout."""

    def setUp(self):
        self.engine = TestFixtures.create_engine()
        self.state = self.engine.start_category(self.engine.initial_state(), "verbal")

    def test_tick_decrements(self):
        self.assertEqual(self.engine.tick(self.state).remaining_seconds, 14)

    def test_fifteen_ticks_time_out(self):
        state = self.state
        for _ in range(14):
            state = self.engine.tick(state)
        self.assertEqual(state.phase, QuizPhase.AWAITING_ANSWER)
        self.assertEqual(state.remaining_seconds, 1)

        state = self.engine.tick(state)
        self.assertEqual(state.remaining_seconds, 0)
        self.assertEqual(state.phase, QuizPhase.SHOWING_FEEDBACK)
        self.assertEqual(state.selected_option, TIMEOUT_ANSWER)
        self.assertFalse(state.is_answer_correct)

    def test_timeout_equivalent_to_empty_answer(self):
        streaky = replace(self.state, streak=3, remaining_seconds=1)
        timed_out = self.engine.tick(streaky)
        submitted = self.engine.submit_answer(replace(streaky, remaining_seconds=0), "")
        self.assertEqual(timed_out, submitted)
        self.assertEqual(timed_out.streak, 0)

    def test_tick_after_answer_raises(self):
        answered = self.engine.submit_answer(self.state, "Plentiful")
        with self.assertRaises(InvalidTransitionError):
            self.engine.tick(answered)

    def test_tick_on_picker_raises(self):
        with self.assertRaises(InvalidTransitionError):
            self.engine.tick(self.engine.initial_state())


class TestAdvanceCard(unittest.TestCase):
    """Test cases for moving between cards."""

    def setUp(self):
        self.engine = TestFixtures.create_engine()

    def answered(self, category_id: str, index: int) -> SessionState:
        state = replace(self.engine.start_category(self.engine.initial_state(), category_id),
                        question_index=index)
        return self.engine.submit_answer(state, "whatever")

    def test_advance_increments(self):
        state = self.engine.advance_card(self.answered("verbal", 0))
        self.assertEqual(state.question_index, 1)
        self.assertEqual(state.remaining_seconds, 15)
        self.assertIsNone(state.selected_option)
        self.assertIsNone(state.is_answer_correct)
        self.assertIsNone(state.feedback_phrase)
        self.assertEqual(state.phase, QuizPhase.AWAITING_ANSWER)

    def test_advance_wraps_after_last(self):
        self.assertEqual(self.engine.advance_card(self.answered("verbal", 2)).question_index, 0)

    def test_single_card_category_revisits_same_card(self):
        self.assertEqual(self.engine.advance_card(self.answered("quantitative", 0)).question_index, 0)

    def test_advance_keeps_streak(self):
        state = self.engine.start_category(self.engine.initial_state(), "analytical")
        state = self.engine.submit_answer(state, "Not enough info")
        self.assertEqual(self.engine.advance_card(state).streak, 1)

    def test_advance_while_unanswered_raises(self):
        state = self.engine.start_category(self.engine.initial_state(), "verbal")
        with self.assertRaises(InvalidTransitionError):
            self.engine.advance_card(state)


class TestEmptyCategory(unittest.TestCase):
    """A category without cards can be entered but nothing question-dependent runs."""

    def setUp(self):
        categories = TestFixtures.create_sample_categories()
        categories["empty"] = TestFixtures.create_empty_category()
        self.engine = TestFixtures.create_engine(categories)
        self.state = self.engine.start_category(self.engine.initial_state(), "empty")

    def test_start_keeps_index_zero(self):
        self.assertEqual(self.state.question_index, 0)
        self.assertIsNone(self.engine.current_question(self.state))

    def test_submit_raises(self):
        with self.assertRaises(EmptyCategoryError):
            self.engine.submit_answer(self.state, "4")

    def test_tick_raises(self):
        with self.assertRaises(EmptyCategoryError):
            self.engine.tick(self.state)


if __name__ == '__main__':
    unittest.main()

"""
Integration tests for the flashcard bot.
Tests complete flows from category files on disk through sessions.
"""
import logging
import shutil
import tempfile
import unittest

from flashquiz.config_manager import ConfigManager
from flashquiz.content import FEEDBACK_PHRASES
from flashquiz.data_manager import DataManager
from flashquiz.models import QuizPhase
from flashquiz.quiz_controller import QuizController
from tests.test_fixtures import FakeTimerFactory, FirstChoiceRng, RecordingEffects, TestFixtures


class TestCompleteFlashcardFlow(unittest.TestCase):
    """Test complete flashcard flows from loading to feedback."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        TestFixtures.write_json(self.temp_dir, "capitals.json", TestFixtures.create_valid_category_json())
        TestFixtures.write_json(self.temp_dir, "broken.json", {"quiz": []})

        self.config_manager = ConfigManager()
        self.data_manager = DataManager(self.temp_dir)
        self.data_manager.load_quiz_files()
        self.timers = FakeTimerFactory()
        self.quiz_controller = QuizController(
            self.data_manager,
            self.config_manager,
            rng=FirstChoiceRng(),
            timer_factory=self.timers
        )

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def test_loaded_files_drive_a_session(self):
        self.assertEqual(self.quiz_controller.get_available_categories(), ["capitals"])
        self.assertEqual(len(self.data_manager.get_load_errors()), 1)

        effects = RecordingEffects()
        session = self.quiz_controller.open_session(1, effects=effects)
        session.start_category("capitals")
        self.assertEqual(session.current_category.title, "Capital Cities")

        session.submit_answer("Tokyo")
        self.assertEqual(session.state.streak, 1)
        self.assertEqual(session.state.feedback_phrase, FEEDBACK_PHRASES["correct"][0])
        self.assertEqual(effects.calls, [("sound", True), ("celebrate",)])

        session.advance_card()
        self.assertEqual(session.state.question_index, 1)
        session.submit_answer("Gondar")
        self.assertEqual(session.state.streak, 0)
        self.assertEqual(session.state.feedback_phrase, FEEDBACK_PHRASES["wrong"][0])

        session.advance_card()
        self.assertEqual(session.state.question_index, 0)

    def test_timeout_across_the_whole_countdown(self):
        updates = []
        session = self.quiz_controller.open_session(1, on_timer_update=updates.append)
        session.start_category("capitals")

        self.timers.latest.fire(self.config_manager.get_timer_duration())

        self.assertEqual(session.phase, QuizPhase.SHOWING_FEEDBACK)
        self.assertEqual(session.state.selected_option, "")
        self.assertFalse(session.state.is_answer_correct)
        self.assertEqual(session.state.remaining_seconds, 0)
        self.assertEqual(len(updates), self.config_manager.get_timer_duration())
        self.assertEqual(self.timers.active, [])

    def test_configured_timer_duration_applies_to_new_sessions(self):
        self.config_manager.set_timer_duration(30)
        session = self.quiz_controller.open_session(1)
        session.start_category("capitals")
        self.assertEqual(session.state.remaining_seconds, 30)

    def test_channels_are_independent(self):
        first = self.quiz_controller.open_session(1)
        second = self.quiz_controller.open_session(2)
        first.start_category("capitals")
        second.start_category("capitals")

        first.submit_answer("Tokyo")
        self.assertEqual(first.state.streak, 1)
        self.assertEqual(second.phase, QuizPhase.AWAITING_ANSWER)
        self.assertEqual(second.state.streak, 0)
        self.assertTrue(second.has_active_timer)

    def test_replacing_a_session_silences_its_timer(self):
        old = self.quiz_controller.open_session(1)
        old.start_category("capitals")
        old_timer = self.timers.latest

        self.quiz_controller.open_session(1)
        old_timer.fire(3)

        self.assertTrue(old_timer.cancelled)
        self.assertEqual(old.state.remaining_seconds, 15)

    def test_missing_directory_uses_builtin_categories(self):
        data_manager = DataManager(f"{self.temp_dir}/nowhere")
        data_manager.load_quiz_files()
        controller = QuizController(data_manager, self.config_manager, timer_factory=FakeTimerFactory())

        session = controller.open_session(5)
        session.start_category("quantitative")
        session.submit_answer("4")
        self.assertTrue(session.state.is_answer_correct)


if __name__ == '__main__':
    unittest.main()

"""
Quiz engine core logic for the flashcard quiz widget.
Handles the state transition rules and the per-question countdown timer.
"""
import asyncio
import logging
import random
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from .content import FEEDBACK_PHRASES
from .models import Category, Question, QuizPhase, QuizSettings, SessionState

# Set up logger for engine and timer operations
logger = logging.getLogger(__name__)

# Answer recorded when the countdown runs out. No option is ever empty,
# so a timeout is always scored as incorrect.
TIMEOUT_ANSWER = ""


class QuizEngineError(Exception):
    """Base exception for rejected quiz transitions."""
    pass


class UnknownCategoryError(QuizEngineError):
    """Raised when starting or switching to a category that does not exist."""
    pass


class DuplicateAnswerError(QuizEngineError):
    """Raised when an answer is submitted for an already answered question."""
    pass


class EmptyCategoryError(QuizEngineError):
    """Raised when a question-dependent operation runs on a category with no questions."""
    pass


class InvalidTransitionError(QuizEngineError):
    """Raised when an operation is not allowed in the current phase."""
    pass


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_armed(session_id: str, generation: int, interval: float) -> None:
        """Log a timer being armed for a question."""
        logger.info(
            f"Timer lifecycle: ARMED - Session {session_id}, Generation {generation}, Interval {interval}s",
            extra={
                'event_type': 'timer_armed',
                'session_id': session_id,
                'generation': generation,
                'interval': interval,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_update(session_id: str, remaining_time: int, total_duration: int) -> None:
        """Log timer update events (throttled to avoid spam)."""
        if remaining_time % 10 == 0 or remaining_time <= 5:
            progress_percent = ((total_duration - remaining_time) / total_duration) * 100 if total_duration else 100.0
            logger.debug(
                f"Timer lifecycle: UPDATE - Session {session_id}, Remaining {remaining_time}s ({progress_percent:.1f}% complete)",
                extra={
                    'event_type': 'timer_update',
                    'session_id': session_id,
                    'remaining_time': remaining_time,
                    'total_duration': total_duration,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_completion(session_id: str, completion_type: str, ticks: int) -> None:
        """Log timer completion (cancellation or task teardown)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Session {session_id}, Type {completion_type}, Ticks {ticks}",
            extra={
                'event_type': 'timer_completed',
                'session_id': session_id,
                'completion_type': completion_type,
                'ticks': ticks,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(session_id: str, from_state: str, to_state: str, reason: str = None) -> None:
        """Log timer state transitions."""
        logger.info(
            f"Timer lifecycle: STATE_TRANSITION - Session {session_id}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'session_id': session_id,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(session_id: str, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Session {session_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'session_id': session_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_race_condition_detected(session_id: str, details: str) -> None:
        """Log race condition detection."""
        logger.warning(
            f"Timer lifecycle: RACE_CONDITION - Session {session_id}: {details}",
            extra={
                'event_type': 'timer_race_condition',
                'session_id': session_id,
                'details': details,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """Cancellable one-second ticker for a single question."""

    def __init__(self, session_id: str = None, interval: float = 1.0):
        """Initialize the timer."""
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False
        self._session_id = session_id
        self._interval = interval
        self._ticks = 0

        logger.debug(
            f"QuizTimer instance created for session {session_id}",
            extra={
                'event_type': 'timer_instance_created',
                'session_id': session_id,
                'timestamp': time.time()
            }
        )

    def start(self, on_tick: Callable[[], Any]) -> bool:
        """
        Schedule the ticker on the running event loop.

        Args:
            on_tick: Called once per interval until the timer is cancelled

        Returns:
            True if the ticker task was scheduled, False otherwise
        """
        if self._task is not None and not self._task.done():
            TimerLifecycleLogger.log_race_condition_detected(
                self._session_id,
                "start requested while ticker task is still running"
            )
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            TimerLifecycleLogger.log_timer_error(
                self._session_id,
                "no_running_loop",
                str(e),
                "start"
            )
            return False

        self._is_cancelled = False
        self._task = loop.create_task(self.run(on_tick))
        return True

    async def run(self, on_tick: Callable[[], Any]) -> None:
        """
        Tick every interval until cancelled.

        Args:
            on_tick: Called once per interval
        """
        TimerLifecycleLogger.log_timer_state_transition(
            self._session_id, "armed", "running", "ticker started"
        )
        try:
            while not self._is_cancelled:
                await asyncio.sleep(self._interval)
                if self._is_cancelled:
                    break
                self._ticks += 1
                on_tick()

            TimerLifecycleLogger.log_timer_completion(self._session_id, "cancelled", self._ticks)

        except asyncio.CancelledError:
            self._is_cancelled = True
            TimerLifecycleLogger.log_timer_completion(self._session_id, "asyncio_cancelled", self._ticks)
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self._session_id,
                "tick_execution_error",
                str(e),
                "run"
            )
            raise

    def cancel(self) -> None:
        """Cancel the ticker. Safe to call from inside the tick callback."""
        TimerLifecycleLogger.log_timer_state_transition(
            self._session_id,
            "running",
            "cancelled",
            "cancel requested"
        )
        self._is_cancelled = True

        if self._task is None or self._task.done():
            logger.debug(f"No active task to cancel or task already done for session {self._session_id}")
            return

        # Inside the tick callback the flag alone ends the loop.
        if self._task is asyncio.current_task():
            return

        logger.debug(f"Cancelling timer task for session {self._session_id}")
        self._task.cancel()

    @property
    def is_cancelled(self) -> bool:
        """Check if timer is cancelled."""
        return self._is_cancelled

    @property
    def is_running(self) -> bool:
        """Check if the ticker task is still alive."""
        return self._task is not None and not self._task.done() and not self._is_cancelled

    @property
    def ticks(self) -> int:
        """Number of ticks delivered so far."""
        return self._ticks


class QuizEngine:
    """
    Transition rules for a quiz run.

    Every method takes the current SessionState and returns the next one.
    Rejected transitions raise a QuizEngineError subclass and leave the
    given state untouched.
    """

    def __init__(
        self,
        categories: Dict[str, Category],
        settings: Optional[QuizSettings] = None,
        rng: Optional[Any] = None,
        feedback_phrases: Optional[Dict[str, List[str]]] = None
    ):
        """
        Initialize the quiz engine.

        Args:
            categories: Category id -> Category mapping, read-only
            settings: Quiz settings, defaults to a 15 second countdown
            rng: Random source with a choice(seq) method
            feedback_phrases: Phrase pools keyed by "correct" and "wrong"
        """
        self._categories = dict(categories)
        self.settings = settings or QuizSettings()
        self._rng = rng or random.Random()
        self._feedback_phrases = feedback_phrases or FEEDBACK_PHRASES

        for category_id, category in self._categories.items():
            if not category.questions:
                logger.warning(f"Category '{category_id}' has no questions")

    @property
    def categories(self) -> Dict[str, Category]:
        return dict(self._categories)

    @property
    def timer_duration(self) -> int:
        return self.settings.timer_duration

    def initial_state(self) -> SessionState:
        """Fresh state showing the category picker."""
        return SessionState(remaining_seconds=self.timer_duration)

    def get_category(self, category_id: Optional[str]) -> Optional[Category]:
        if category_id is None:
            return None
        return self._categories.get(category_id)

    def current_question(self, state: SessionState) -> Optional[Question]:
        """Return the question on screen, or None on the picker or an empty category."""
        category = self.get_category(state.active_category)
        if category is None or not category.questions:
            return None
        return category.questions[state.question_index]

    def start_category(self, state: SessionState, category_id: str) -> SessionState:
        """
        Begin (or switch to) a category from its first question.

        Raises:
            UnknownCategoryError: If category_id is not loaded
        """
        if category_id not in self._categories:
            raise UnknownCategoryError(f"Unknown category: {category_id!r}")

        return SessionState(
            active_category=category_id,
            question_index=0,
            selected_option=None,
            is_answer_correct=None,
            streak=0,
            remaining_seconds=self.timer_duration,
            feedback_phrase=None
        )

    def return_to_categories(self, state: SessionState) -> SessionState:
        """Leave the current category and show the picker again."""
        if state.phase is QuizPhase.SELECTING_CATEGORY:
            raise InvalidTransitionError("Already selecting a category")
        return self.initial_state()

    def submit_answer(self, state: SessionState, option: str) -> SessionState:
        """
        Lock in an answer for the current question.

        Raises:
            InvalidTransitionError: If no category is active
            DuplicateAnswerError: If the question was already answered
            EmptyCategoryError: If the active category has no questions
        """
        if state.phase is QuizPhase.SELECTING_CATEGORY:
            raise InvalidTransitionError("Cannot answer before choosing a category")
        if state.is_answered:
            raise DuplicateAnswerError(
                f"Question {state.question_index} already answered with {state.selected_option!r}"
            )

        question = self.current_question(state)
        if question is None:
            raise EmptyCategoryError(f"Category {state.active_category!r} has no questions")

        correct = option == question.correct_option
        return replace(
            state,
            selected_option=option,
            is_answer_correct=correct,
            streak=state.streak + 1 if correct else 0,
            feedback_phrase=self.choose_phrase(correct)
        )

    def expire(self, state: SessionState) -> SessionState:
        """Score the current question as timed out."""
        return self.submit_answer(state, TIMEOUT_ANSWER)

    def tick(self, state: SessionState) -> SessionState:
        """
        Apply one countdown tick, firing the timeout when it reaches zero.

        Raises:
            InvalidTransitionError: If the current question is not awaiting an answer
            EmptyCategoryError: If the active category has no questions
        """
        if state.phase is not QuizPhase.AWAITING_ANSWER:
            raise InvalidTransitionError(f"Countdown is not running in phase {state.phase.value}")
        if self.current_question(state) is None:
            raise EmptyCategoryError(f"Category {state.active_category!r} has no questions")

        remaining = max(state.remaining_seconds - 1, 0)
        ticked = replace(state, remaining_seconds=remaining)
        if remaining == 0:
            return self.expire(ticked)
        return ticked

    def advance_card(self, state: SessionState) -> SessionState:
        """
        Move to the next question, wrapping after the last one.

        Raises:
            InvalidTransitionError: If the current question has not been answered
            EmptyCategoryError: If the active category has no questions
        """
        if state.phase is not QuizPhase.SHOWING_FEEDBACK:
            raise InvalidTransitionError(f"Cannot advance in phase {state.phase.value}")

        category = self.get_category(state.active_category)
        if category is None or not category.questions:
            raise EmptyCategoryError(f"Category {state.active_category!r} has no questions")

        return replace(
            state,
            question_index=(state.question_index + 1) % len(category.questions),
            selected_option=None,
            is_answer_correct=None,
            remaining_seconds=self.timer_duration,
            feedback_phrase=None
        )

    def choose_phrase(self, correct: bool) -> str:
        """Pick a feedback phrase uniformly from the pool matching the outcome."""
        pool = self._feedback_phrases["correct" if correct else "wrong"]
        return self._rng.choice(pool)

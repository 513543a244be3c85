"""
Quiz session driver for the flashcard quiz widget.
Owns one SessionState, its countdown timer and the feedback side effects.
"""
import logging
import time
from typing import Any, Callable, Optional

from .models import QuizPhase, SessionState
from .quiz_engine import QuizEngine, QuizEngineError, QuizTimer, TimerLifecycleLogger

logger = logging.getLogger(__name__)


class QuizEffects:
    """
    Feedback side effects triggered by the session.

    Subclasses override play_feedback_sound() and celebrate(), or the
    on_correct()/on_incorrect() hooks directly. Calls are fire-and-forget:
    a failing effect is logged and never blocks the others.
    """

    def on_correct(self) -> None:
        self._run_effect("feedback sound", self.play_feedback_sound, True)
        self._run_effect("celebration", self.celebrate)

    def on_incorrect(self) -> None:
        self._run_effect("feedback sound", self.play_feedback_sound, False)

    def play_feedback_sound(self, correct: bool) -> None:
        pass

    def celebrate(self) -> None:
        pass

    def _run_effect(self, name: str, effect: Callable[..., Any], *args) -> None:
        try:
            effect(*args)
        except Exception as e:
            logger.error(
                f"{name.capitalize()} effect failed: {e}",
                extra={
                    'event_type': 'effect_failed',
                    'effect': name,
                    'timestamp': time.time()
                }
            )


TimerFactory = Callable[[str], Any]


class QuizSession:
    """
    Orchestrates a single quiz run.

    Public operations never raise: rejected transitions are logged and the
    unchanged state is returned. The countdown timer is armed on every entry
    into the awaiting-answer phase and disarmed the moment the phase is left.
    """

    def __init__(
        self,
        engine: QuizEngine,
        effects: Optional[QuizEffects] = None,
        timer_factory: Optional[TimerFactory] = None,
        session_id: str = "default",
        on_timer_update: Optional[Callable[[SessionState], Any]] = None,
        on_close: Optional[Callable[[], Any]] = None
    ):
        """
        Initialize the quiz session.

        Args:
            engine: Transition rules and content
            effects: Feedback side effects, no-op if None
            timer_factory: Builds a timer handle for a session id
            session_id: Identifier used in log records
            on_timer_update: Called with the new state after timer-driven changes
            on_close: Called once when the session is closed
        """
        self.logger = logging.getLogger(__name__)
        self.engine = engine
        self.effects = effects or QuizEffects()
        self.session_id = session_id
        self.on_timer_update = on_timer_update
        self.on_close = on_close

        if timer_factory is None:
            interval = engine.settings.tick_interval
            timer_factory = lambda sid: QuizTimer(sid, interval=interval)
        self._timer_factory = timer_factory

        self._state = engine.initial_state()
        self._timer = None
        self._timer_generation = 0
        self._closed = False

    @property
    def state(self) -> SessionState:
        """Read-only snapshot of the current state."""
        return self._state

    @property
    def phase(self) -> QuizPhase:
        return self._state.phase

    @property
    def current_question(self):
        return self.engine.current_question(self._state)

    @property
    def current_category(self):
        return self.engine.get_category(self._state.active_category)

    @property
    def has_active_timer(self) -> bool:
        return self._timer is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start_category(self, category_id: str) -> SessionState:
        """Start a category from its first question with a fresh streak."""
        return self._apply("start_category", self.engine.start_category, category_id)

    def choose_new_category(self, category_id: str) -> SessionState:
        """Switch to another category from any in-session screen."""
        return self._apply("choose_new_category", self.engine.start_category, category_id)

    def return_to_categories(self) -> SessionState:
        """Go back to the category picker."""
        return self._apply("return_to_categories", self.engine.return_to_categories)

    def submit_answer(self, option: str) -> SessionState:
        """Lock in an answer; the first answer for a question wins."""
        return self._apply("submit_answer", self.engine.submit_answer, option)

    def advance_card(self) -> SessionState:
        """Move on to the next flashcard."""
        return self._apply("advance_card", self.engine.advance_card)

    def tick(self) -> SessionState:
        """Apply one countdown tick to the current question."""
        new_state = self._apply("tick", self.engine.tick)
        TimerLifecycleLogger.log_timer_update(
            self.session_id, new_state.remaining_seconds, self.engine.timer_duration
        )
        return new_state

    def close(self) -> None:
        """Release the timer; every later operation is rejected."""
        if self._closed:
            return
        self._disarm_timer("session closed")
        self._closed = True
        self.logger.info(
            f"Session {self.session_id} closed",
            extra={
                'event_type': 'session_closed',
                'session_id': self.session_id,
                'timestamp': time.time()
            }
        )

        if self.on_close is not None:
            try:
                self.on_close()
            except Exception as e:
                self.logger.error(f"Close listener failed for session {self.session_id}: {e}", exc_info=True)

    def _apply(self, operation: str, transition: Callable[..., SessionState], *args) -> SessionState:
        previous = self._state

        if self._closed:
            self._log_rejection(operation, "SessionClosed", "session is closed")
            return previous

        try:
            new_state = transition(previous, *args)
        except QuizEngineError as e:
            self._log_rejection(operation, type(e).__name__, str(e))
            return previous

        # A tick that leaves the question unanswered is the only transition
        # that keeps the running countdown.
        keeps_timer = operation == "tick" and new_state.phase is QuizPhase.AWAITING_ANSWER
        if not keeps_timer:
            self._disarm_timer(operation)

        self._state = new_state

        if previous.phase is not QuizPhase.SHOWING_FEEDBACK and new_state.phase is QuizPhase.SHOWING_FEEDBACK:
            self._log_answer(new_state, operation)
            self._fire_effects(bool(new_state.is_answer_correct))

        if (not keeps_timer and new_state.phase is QuizPhase.AWAITING_ANSWER
                and self.current_question is not None):
            self._arm_timer()

        if operation != "tick":
            self.logger.debug(
                f"Session {self.session_id}: {previous.phase.value} --[{operation}]--> {new_state.phase.value}"
            )
        return new_state

    def _arm_timer(self) -> None:
        self._timer_generation += 1
        generation = self._timer_generation
        timer = self._timer_factory(self.session_id)
        self._timer = timer

        TimerLifecycleLogger.log_timer_armed(
            self.session_id, generation, self.engine.settings.tick_interval
        )
        if not timer.start(lambda: self._on_timer_tick(generation)):
            self.logger.warning(
                f"Countdown for session {self.session_id} is not running; ticks must be delivered manually"
            )

    def _disarm_timer(self, reason: str) -> None:
        timer = self._timer
        if timer is None:
            return
        self._timer = None
        try:
            timer.cancel()
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(self.session_id, type(e).__name__, str(e), "disarm")
        TimerLifecycleLogger.log_timer_state_transition(self.session_id, "armed", "disarmed", reason)

    def _on_timer_tick(self, generation: int) -> None:
        if self._closed or generation != self._timer_generation or self._timer is None:
            TimerLifecycleLogger.log_race_condition_detected(
                self.session_id,
                f"Stale tick from timer generation {generation} (current {self._timer_generation})"
            )
            return

        before = self._state
        after = self.tick()
        if after is before:
            return

        if self.on_timer_update is not None:
            try:
                self.on_timer_update(after)
            except Exception as e:
                self.logger.error(
                    f"Timer update listener failed for session {self.session_id}: {e}",
                    exc_info=True
                )

    def _log_rejection(self, operation: str, reason: str, detail: str) -> None:
        self.logger.warning(
            f"Ignored {operation} for session {self.session_id}: {detail}",
            extra={
                'event_type': 'transition_rejected',
                'session_id': self.session_id,
                'operation': operation,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    def _fire_effects(self, correct: bool) -> None:
        # Overridden hooks may raise; the default hooks guard each effect
        try:
            if correct:
                self.effects.on_correct()
            else:
                self.effects.on_incorrect()
        except Exception as e:
            self.logger.error(
                f"Feedback effect failed for session {self.session_id}: {e}",
                extra={
                    'event_type': 'effect_failed',
                    'session_id': self.session_id,
                    'correct': correct,
                    'timestamp': time.time()
                }
            )

    def _log_answer(self, state: SessionState, operation: str) -> None:
        outcome = "correct" if state.is_answer_correct else "incorrect"
        if operation == "tick":
            outcome = "timeout"
        self.logger.info(
            f"Session {self.session_id} answered question {state.question_index} "
            f"in '{state.active_category}': {outcome}, streak {state.streak}",
            extra={
                'event_type': 'answer_recorded',
                'session_id': self.session_id,
                'category': state.active_category,
                'question_index': state.question_index,
                'outcome': outcome,
                'streak': state.streak,
                'timestamp': time.time()
            }
        )

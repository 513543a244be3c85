"""
Core data models for the flashcard quiz widget.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


DEFAULT_TIMER_DURATION = 15


class QuizPhase(Enum):
    """Enumeration of the widget's screens."""
    SELECTING_CATEGORY = "selecting_category"
    AWAITING_ANSWER = "awaiting_answer"
    SHOWING_FEEDBACK = "showing_feedback"


@dataclass(frozen=True)
class Question:
    """A single multiple-choice flashcard."""
    prompt: str
    options: Tuple[str, ...]
    correct_option: str
    explanation: str = ""


@dataclass(frozen=True)
class Category:
    """A themed, ordered group of questions."""
    id: str
    title: str
    questions: Tuple[Question, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.questions)


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    timer_duration: int = DEFAULT_TIMER_DURATION
    tick_interval: float = 1.0


@dataclass(frozen=True)
class SessionState:
    """Snapshot of one quiz run. Every transition produces a new value."""
    active_category: Optional[str] = None
    question_index: int = 0
    selected_option: Optional[str] = None
    is_answer_correct: Optional[bool] = None
    streak: int = 0
    remaining_seconds: int = DEFAULT_TIMER_DURATION
    feedback_phrase: Optional[str] = None

    @property
    def phase(self) -> QuizPhase:
        if self.active_category is None:
            return QuizPhase.SELECTING_CATEGORY
        if self.selected_option is None:
            return QuizPhase.AWAITING_ANSWER
        return QuizPhase.SHOWING_FEEDBACK

    @property
    def is_answered(self) -> bool:
        return self.selected_option is not None

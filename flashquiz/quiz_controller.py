"""
Quiz session controller for the flashcard bot.
Keeps one independent QuizSession per hosting Discord channel.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import SessionState
from .quiz_engine import QuizEngine
from .quiz_session import QuizEffects, QuizSession, TimerFactory


class QuizController:
    """
    Creates, looks up and tears down quiz sessions.

    Each channel hosts at most one flashcard widget. Opening a new widget in
    a channel closes the previous one so its timer can never fire again.
    """

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        rng: Optional[Any] = None,
        timer_factory: Optional[TimerFactory] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            data_manager: Instance holding loaded categories
            config_manager: Instance for managing configuration
            rng: Random source shared by new sessions' feedback phrases
            timer_factory: Timer builder passed on to new sessions
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self._rng = rng
        self._timer_factory = timer_factory

        # Active sessions mapped by channel ID
        self._active_sessions: Dict[int, QuizSession] = {}

        self.logger.info("QuizController initialized")

    def build_engine(self) -> QuizEngine:
        """Create an engine over the currently loaded categories and settings."""
        return QuizEngine(
            self.data_manager.loaded_categories,
            settings=self.config_manager.get_quiz_settings(),
            rng=self._rng
        )

    def open_session(
        self,
        channel_id: int,
        effects: Optional[QuizEffects] = None,
        on_timer_update: Optional[Callable[[SessionState], Any]] = None,
        on_close: Optional[Callable[[], Any]] = None
    ) -> QuizSession:
        """
        Open a fresh widget in a channel, replacing any existing one.

        Args:
            channel_id: Discord channel identifier
            effects: Feedback side effects for the new session
            on_timer_update: Listener for timer-driven state changes
            on_close: Listener called when the session is closed or replaced

        Returns:
            The new session, showing the category picker
        """
        if channel_id in self._active_sessions:
            self.logger.info(f"Replacing existing session for channel {channel_id}")
            self.close_session(channel_id)

        session = QuizSession(
            self.build_engine(),
            effects=effects,
            timer_factory=self._timer_factory,
            session_id=str(channel_id),
            on_timer_update=on_timer_update,
            on_close=on_close
        )
        self._active_sessions[channel_id] = session

        self.logger.info(
            f"Opened quiz session for channel {channel_id}",
            extra={
                'event_type': 'session_opened',
                'channel_id': channel_id,
                'categories': len(self.data_manager.loaded_categories),
                'timestamp': time.time()
            }
        )
        return session

    def get_session(self, channel_id: int) -> Optional[QuizSession]:
        """
        Get the session for a channel.

        Args:
            channel_id: Discord channel identifier

        Returns:
            QuizSession if one is open, None otherwise
        """
        return self._active_sessions.get(channel_id)

    def has_active_session(self, channel_id: int) -> bool:
        return channel_id in self._active_sessions

    def close_session(self, channel_id: int) -> bool:
        """
        Close a channel's session and release its timer.

        Args:
            channel_id: Discord channel identifier

        Returns:
            True if a session was closed, False if none was open
        """
        session = self._active_sessions.pop(channel_id, None)
        if session is None:
            self.logger.debug(f"No session to close for channel {channel_id}")
            return False

        session.close()
        return True

    def close_all(self) -> int:
        """Close every open session, returning how many were closed."""
        channel_ids = list(self._active_sessions)
        for channel_id in channel_ids:
            self.close_session(channel_id)
        return len(channel_ids)

    def get_available_categories(self) -> List[str]:
        return self.data_manager.get_available_categories()

    def get_session_status_summary(self, channel_id: int) -> str:
        """
        Describe a channel's session for the status command.

        Args:
            channel_id: Discord channel identifier

        Returns:
            Human-readable status text
        """
        session = self.get_session(channel_id)
        if session is None:
            return "No flashcards open in this channel. Use /flashcards to start."

        state = session.state
        category = session.current_category
        if category is None:
            return "Choosing a category."

        position = f"card {state.question_index + 1}/{len(category)}" if len(category) else "no cards"
        return (
            f"Category: {category.title}\n"
            f"Progress: {position}\n"
            f"Streak: {state.streak}\n"
            f"Phase: {state.phase.value.replace('_', ' ')}"
        )

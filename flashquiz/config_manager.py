"""
Configuration manager for flashcard quiz settings and parameters.
"""
import logging
from typing import Any, Dict, List
from pathlib import Path

from .models import QuizSettings, DEFAULT_TIMER_DURATION


class ConfigManager:
    """Manages bot configuration settings and quiz parameters."""

    # Default configuration values
    DEFAULT_TIMER_DURATION = DEFAULT_TIMER_DURATION
    DEFAULT_QUIZ_DIRECTORY = "./quizzes/"

    # Validation limits
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300  # 5 minutes

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._global_settings = QuizSettings(timer_duration=self.DEFAULT_TIMER_DURATION)
        self._quiz_directory = self.DEFAULT_QUIZ_DIRECTORY

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            QuizSettings object with current configuration
        """
        return QuizSettings(
            timer_duration=self._global_settings.timer_duration,
            tick_interval=self._global_settings.tick_interval
        )

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown length for each question with error handling.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        # bool is an int subclass but never a valid duration
        if not isinstance(duration, int) or isinstance(duration, bool):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(duration).__name__}"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too short: Minimum is {self.MIN_TIMER_DURATION} seconds"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too long: Maximum is {self.MAX_TIMER_DURATION} seconds ({self.MAX_TIMER_DURATION // 60} minutes)"
            }

        self._global_settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        """
        Get current timer duration setting.

        Returns:
            Timer duration in seconds
        """
        return self._global_settings.timer_duration

    def set_quiz_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory holding category files, with validation.

        Args:
            directory: Path to category files directory

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str):
            error_msg = f"Quiz directory must be a string, got {type(directory).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path string, got {type(directory).__name__}"
            }

        if not directory.strip():
            error_msg = "Quiz directory cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        # Refuse system directories
        system_dirs = ['/bin', '/usr', '/etc', '/sys', '/proc', 'C:\\Windows', 'C:\\Program Files']
        if any(normalized_path.startswith(sys_dir) for sys_dir in system_dirs):
            error_msg = f"Cannot use system directory: {normalized_path}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Cannot use system directory: {directory}"
            }

        self._quiz_directory = normalized_path
        self.logger.info(f"Quiz directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Quiz directory set to {normalized_path}",
            'user_message': f"✅ Quiz directory set to {normalized_path}"
        }

    def get_quiz_directory(self) -> str:
        """
        Get current quiz directory setting.

        Returns:
            Path to category files directory
        """
        return self._quiz_directory

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'quiz' section of a loaded config.json.

        Invalid values are logged and skipped so the defaults stay in effect.

        Args:
            config: Parsed configuration dictionary

        Returns:
            List of error messages for rejected values
        """
        errors = []
        quiz_config = config.get('quiz', {}) if isinstance(config, dict) else {}

        if 'quiz_directory' in quiz_config:
            result = self.set_quiz_directory(quiz_config['quiz_directory'])
            if not result['success']:
                errors.append(result['error'])

        if 'timer_duration' in quiz_config:
            result = self.set_timer_duration(quiz_config['timer_duration'])
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected value(s)")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        duration = self._global_settings.timer_duration
        if (not isinstance(duration, int) or
                duration < self.MIN_TIMER_DURATION or
                duration > self.MAX_TIMER_DURATION):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid timer duration: {duration}")

        if not isinstance(self._quiz_directory, str) or not self._quiz_directory.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid quiz directory: {self._quiz_directory}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Timer: {self._global_settings.timer_duration} seconds per card\n"
            f"• Quiz Directory: {self._quiz_directory}"
        )

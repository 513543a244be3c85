"""
Data manager for category JSON files and flashcard validation.
"""
import json
import logging
from typing import Any, Dict, List, Optional
from pathlib import Path

from .content import DEFAULT_CATEGORIES
from .models import Category, Question

OPTIONS_PER_QUESTION = 4


class DataManager:
    """Manages loading and validation of JSON category files."""

    def __init__(self, quiz_directory: str = "./quizzes/"):
        """
        Initialize DataManager with quiz directory path.

        Args:
            quiz_directory: Path to directory containing JSON category files
        """
        self.quiz_directory = Path(quiz_directory)
        self.loaded_categories: Dict[str, Category] = {}
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []  # Track loading errors for user feedback
        self.fallback_active = False

    def load_quiz_files(self) -> Dict[str, Category]:
        """
        Load every JSON file in the quiz directory as a category.

        Falls back to the built-in categories when the directory is missing
        or no file loads successfully.

        Returns:
            Dictionary mapping category ids to Category objects
        """
        self.loaded_categories = {}
        self.load_errors.clear()
        self.fallback_active = False

        if not self.quiz_directory.is_dir():
            self.logger.warning(f"Quiz directory {self.quiz_directory} not found, using built-in categories")
            self.load_errors.append(f"Quiz directory not found: {self.quiz_directory}")
            return self._use_builtin_categories()

        try:
            json_files = sorted(self.quiz_directory.glob("*.json"))
        except OSError as e:
            self.logger.error(f"Failed to scan {self.quiz_directory}: {e}")
            self.load_errors.append(f"Failed to scan {self.quiz_directory}: {e}")
            return self._use_builtin_categories()

        if not json_files:
            self.logger.warning(f"No JSON files found in {self.quiz_directory}")
            self.load_errors.append(f"No category files found in {self.quiz_directory}")
            return self._use_builtin_categories()

        for json_file in json_files:
            category = self._load_single_file(json_file)
            if category is not None:
                self.loaded_categories[category.id] = category

        if not self.loaded_categories:
            self.logger.error("No category files could be loaded successfully")
            self.load_errors.append("All category files failed to load")
            return self._use_builtin_categories()

        self.logger.info(f"Successfully loaded {len(self.loaded_categories)} category files")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")

        return dict(self.loaded_categories)

    def _load_single_file(self, file_path: Path) -> Optional[Category]:
        """
        Load, validate and parse a single category file.

        Args:
            file_path: Path to the JSON file

        Returns:
            Parsed Category or None if loading failed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            self.load_errors.append(f"{file_path.name}: invalid JSON ({e.msg} at line {e.lineno})")
            return None
        except OSError as e:
            self.logger.error(f"Failed to read category file {file_path}: {e}")
            self.load_errors.append(f"{file_path.name}: {e}")
            return None

        issue = self.find_structure_issue(data)
        if issue is not None:
            self.logger.error(f"Invalid category structure in {file_path}: {issue}")
            self.load_errors.append(f"{file_path.name}: {issue}")
            return None

        return self._parse_category(file_path.stem, data)

    def find_structure_issue(self, data: Any) -> Optional[str]:
        """
        Describe the first structural problem in category data.

        Expected structure:
        {
            "title": str,  # Optional
            "quiz": [
                {
                    "question": str,
                    "options": [str, str, str, str],
                    "answer": str,  # One of the options
                    "explanation": str  # Optional
                }
            ]
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            Problem description, or None if the structure is valid
        """
        if not isinstance(data, dict):
            return "Category data must be a JSON object"

        if "title" in data and not isinstance(data["title"], str):
            return "'title' field must be a string"

        if "quiz" not in data:
            return "Category data must contain a 'quiz' key"

        quiz_array = data["quiz"]
        if not isinstance(quiz_array, list):
            return "'quiz' value must be an array"

        if not quiz_array:
            return "Quiz array cannot be empty"

        for i, question_data in enumerate(quiz_array):
            if not isinstance(question_data, dict):
                return f"Question {i} must be an object"

            for key in ("question", "options", "answer"):
                if key not in question_data:
                    return f"Question {i} missing '{key}' field"

            if not isinstance(question_data["question"], str):
                return f"Question {i} 'question' field must be a string"

            options = question_data["options"]
            if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
                return f"Question {i} 'options' field must be an array of strings"

            if len(options) != OPTIONS_PER_QUESTION:
                return f"Question {i} must have exactly {OPTIONS_PER_QUESTION} options"

            if len(set(options)) != len(options):
                return f"Question {i} options must be distinct"

            # An empty option would collide with the timeout answer
            if any(not o for o in options):
                return f"Question {i} options cannot be empty"

            if not isinstance(question_data["answer"], str):
                return f"Question {i} 'answer' field must be a string"

            if question_data["answer"] not in options:
                return f"Question {i} answer must be one of its options"

            if "explanation" in question_data and not isinstance(question_data["explanation"], str):
                return f"Question {i} 'explanation' field must be a string"

        return None

    def _parse_category(self, category_id: str, data: dict) -> Category:
        """
        Parse validated category data into a Category.

        Args:
            category_id: Identifier taken from the file name
            data: Validated category data dictionary

        Returns:
            Category object
        """
        questions = tuple(
            Question(
                prompt=question_data["question"],
                options=tuple(question_data["options"]),
                correct_option=question_data["answer"],
                explanation=question_data.get("explanation", "")
            )
            for question_data in data["quiz"]
        )
        title = data.get("title") or category_id.replace("_", " ").title()
        return Category(id=category_id, title=title, questions=questions)

    def _use_builtin_categories(self) -> Dict[str, Category]:
        self.loaded_categories = dict(DEFAULT_CATEGORIES)
        self.fallback_active = True
        self.logger.info(f"Using {len(self.loaded_categories)} built-in categories")
        return dict(self.loaded_categories)

    def get_available_categories(self) -> List[str]:
        """
        Get list of available category ids.

        Returns:
            Category ids in load order
        """
        return list(self.loaded_categories.keys())

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Summarize the last load for status output.

        Returns:
            Dictionary with counts, errors and fallback status
        """
        return {
            'categories_loaded': len(self.loaded_categories),
            'total_questions': sum(len(c) for c in self.loaded_categories.values()),
            'fallback_active': self.fallback_active,
            'errors': self.get_load_errors(),
            'quiz_directory': str(self.quiz_directory)
        }

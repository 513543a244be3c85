"""
Built-in flashcard content and feedback phrase pools.

Used when no category files are found in the quiz directory.
"""
from typing import Dict, List

from .models import Category, Question


DEFAULT_CATEGORIES: Dict[str, Category] = {
    "verbal": Category(
        id="verbal",
        title="Verbal Reasoning",
        questions=(
            Question(
                prompt='Which word is closest in meaning to "abundant"?',
                options=("Rare", "Scattered", "Plentiful", "Little"),
                correct_option="Plentiful",
                explanation='"Abundant" means "a lot" or "plentiful".',
            ),
        ),
    ),
    "quantitative": Category(
        id="quantitative",
        title="Quantitative Reasoning",
        questions=(
            Question(
                prompt="If 3x = 12, what is x?",
                options=("4", "3", "6", "12"),
                correct_option="4",
                explanation="Divide both sides by 3: x = 12 / 3 = 4.",
            ),
        ),
    ),
    "analytical": Category(
        id="analytical",
        title="Analytical Reasoning",
        questions=(
            Question(
                prompt=(
                    "If all roses are flowers, and some flowers fade quickly, "
                    "can we say some roses fade quickly?"
                ),
                options=("Yes", "No", "Maybe", "Not enough info"),
                correct_option="Not enough info",
                explanation="We can't be sure if those flowers include roses.",
            ),
        ),
    ),
}

FEEDBACK_PHRASES: Dict[str, List[str]] = {
    "correct": [
        "🔥 Brilliant! You're Addis Ababa University material!",
        "🌟 Perfect! The UAT exam has nothing on you!",
        "💡 Genius move! You're streaking to success!",
    ],
    "wrong": [
        "😅 Oops! Don't let the UAT win this round.",
        "💥 Missed it! But Addis doesn't give up.",
        "🌀 Not quite. Let's crush the next one.",
    ],
}

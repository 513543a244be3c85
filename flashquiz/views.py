"""
Discord rendering for the flashcard widget: embeds, button views and
the Discord-backed feedback effects.
"""
import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Tuple

import discord

from .models import Category, QuizPhase, SessionState
from .quiz_session import QuizEffects, QuizSession

logger = logging.getLogger(__name__)

BUTTON_LABEL_LIMIT = 80
PROGRESS_BAR_WIDTH = 10

PICKER_COLOR = 0x6b21a8  # Purple
CORRECT_COLOR = 0x16a34a
WRONG_COLOR = 0xdc2626

PICKER_BUTTON_STYLES = (
    discord.ButtonStyle.danger,
    discord.ButtonStyle.primary,
    discord.ButtonStyle.success,
)


def schedule(coro: Coroutine, description: str) -> Optional[asyncio.Task]:
    """Run a coroutine in the background, logging instead of raising on failure."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        logger.debug(f"No running loop, skipped {description}")
        return None

    task = loop.create_task(coro)
    task.add_done_callback(lambda t: _log_task_failure(t, description))
    return task


def _log_task_failure(task: asyncio.Task, description: str) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Background task failed ({description}): {error}")


def progress_bar(index: int, total: int, width: int = PROGRESS_BAR_WIDTH) -> str:
    """Text progress bar for card index+1 of total."""
    if total <= 0:
        return "▱" * width
    filled = round(((index + 1) / total) * width)
    return "▰" * filled + "▱" * (width - filled)


def timer_style(remaining: int) -> Tuple[int, str]:
    """Embed color and emoji for the remaining seconds."""
    if remaining > 5:
        return 0x00ff00, "⏱️"  # Green
    if remaining > 2:
        return 0xff6600, "⚠️"  # Orange
    return 0xff0000, "🚨"  # Red


def build_picker_embed(categories: Dict[str, Category]) -> discord.Embed:
    """Embed for the category selection screen."""
    embed = discord.Embed(
        title="Choose a UAT Section",
        description="Pick a category to start answering flashcards.",
        color=PICKER_COLOR
    )
    for category in categories.values():
        embed.add_field(
            name=category.title,
            value=f"{len(category)} card{'s' if len(category) != 1 else ''}",
            inline=True
        )
    return embed


def build_question_embed(session: QuizSession) -> discord.Embed:
    """Embed for the current card, including feedback once answered."""
    state = session.state
    category = session.current_category
    question = session.current_question
    title = category.title if category else "Flashcards"

    if question is None:
        return discord.Embed(
            title=title,
            description="This category has no cards yet. Choose another one.",
            color=WRONG_COLOR
        )

    if state.phase is QuizPhase.AWAITING_ANSWER:
        color, timer_emoji = timer_style(state.remaining_seconds)
    else:
        color = CORRECT_COLOR if state.is_answer_correct else WRONG_COLOR
        timer_emoji = "⏱️"

    embed = discord.Embed(title=title, description=f"**{question.prompt}**", color=color)
    embed.add_field(name="🔥 Streak", value=str(state.streak), inline=True)
    embed.add_field(
        name=f"{timer_emoji} Time",
        value=f"{state.remaining_seconds}s",
        inline=True
    )
    embed.add_field(
        name="Progress",
        value=f"{progress_bar(state.question_index, len(category))} {state.question_index + 1}/{len(category)}",
        inline=False
    )

    if state.phase is QuizPhase.SHOWING_FEEDBACK:
        embed.add_field(name=_outcome_heading(state), value=_feedback_text(state, question), inline=False)
        embed.set_footer(text="Press Next Card to continue")
    else:
        embed.set_footer(text="Pick an answer before the timer runs out")

    return embed


def _outcome_heading(state: SessionState) -> str:
    if state.is_answer_correct:
        return "✅ Correct!"
    if not state.selected_option:
        return "⏰ Time's up!"
    return "❌ Wrong"


def _feedback_text(state: SessionState, question) -> str:
    lines = []
    if state.feedback_phrase:
        lines.append(state.feedback_phrase)
    if not state.is_answer_correct:
        lines.append(f"Answer: **{question.correct_option}**")
    if question.explanation:
        lines.append(question.explanation)
    return "\n".join(lines)


class CategoryButton(discord.ui.Button):
    """Starts a category."""

    def __init__(self, presenter: "QuizPresenter", category: Category, style: discord.ButtonStyle):
        super().__init__(label=category.title[:BUTTON_LABEL_LIMIT], style=style)
        self.presenter = presenter
        self.category_id = category.id

    async def callback(self, interaction: discord.Interaction):
        await self.presenter.handle_category(interaction, self.category_id)


class OptionButton(discord.ui.Button):
    """One answer option on a card."""

    def __init__(self, presenter: "QuizPresenter", option: str, **kwargs):
        super().__init__(label=option[:BUTTON_LABEL_LIMIT], row=0, **kwargs)
        self.presenter = presenter
        self.option = option

    async def callback(self, interaction: discord.Interaction):
        await self.presenter.handle_answer(interaction, self.option)


class NextCardButton(discord.ui.Button):

    def __init__(self, presenter: "QuizPresenter"):
        super().__init__(label="Next Card", emoji="🔄", style=discord.ButtonStyle.primary, row=1)
        self.presenter = presenter

    async def callback(self, interaction: discord.Interaction):
        await self.presenter.handle_next(interaction)


class ChangeCategoryButton(discord.ui.Button):

    def __init__(self, presenter: "QuizPresenter"):
        super().__init__(label="Change Category", style=discord.ButtonStyle.secondary, row=1)
        self.presenter = presenter

    async def callback(self, interaction: discord.Interaction):
        await self.presenter.handle_change_category(interaction)


class CategoryPickerView(discord.ui.View):
    """Buttons for the category selection screen."""

    def __init__(self, presenter: "QuizPresenter", categories: Dict[str, Category]):
        super().__init__(timeout=None)
        for i, category in enumerate(categories.values()):
            self.add_item(CategoryButton(presenter, category, PICKER_BUTTON_STYLES[i % len(PICKER_BUTTON_STYLES)]))


class QuestionView(discord.ui.View):
    """Answer buttons for a card, plus navigation once it is answered."""

    def __init__(self, presenter: "QuizPresenter", session: QuizSession):
        super().__init__(timeout=None)
        state = session.state
        question = session.current_question

        if question is not None:
            for option in question.options:
                self.add_item(OptionButton(
                    presenter,
                    option,
                    style=self.option_style(state, option, question.correct_option),
                    disabled=state.is_answered
                ))

        if state.phase is QuizPhase.SHOWING_FEEDBACK:
            self.add_item(NextCardButton(presenter))
        self.add_item(ChangeCategoryButton(presenter))

    @staticmethod
    def option_style(state: SessionState, option: str, correct_option: str) -> discord.ButtonStyle:
        """Highlight the right answer and a wrong pick once answered."""
        if not state.is_answered:
            return discord.ButtonStyle.secondary
        if option == correct_option:
            return discord.ButtonStyle.success
        if option == state.selected_option:
            return discord.ButtonStyle.danger
        return discord.ButtonStyle.secondary


class QuizPresenter:
    """
    Binds one QuizSession to one Discord message.

    Interaction handlers call the session operation and re-render in the
    interaction response; timer-driven changes re-render by editing the
    message directly.
    """

    def __init__(self, channel: Any = None):
        self.channel = channel
        self.session: Optional[QuizSession] = None
        self.message: Optional[discord.Message] = None
        self._view: Optional[discord.ui.View] = None
        self._cue: Optional[str] = None
        self._cue_lock: Optional[asyncio.Lock] = None

    def attach(self, session: QuizSession) -> None:
        self.session = session

    def close(self) -> None:
        """Session listener: retire the widget so its buttons stop working."""
        if self._view is not None:
            self._view.stop()
            self._view = None
        if self.message is not None:
            schedule(self._retire_message(self.message), "retire flashcard message")

    async def _retire_message(self, message: discord.Message) -> None:
        try:
            await message.edit(view=None)
        except discord.HTTPException as e:
            logger.warning(f"Failed to remove buttons from closed flashcard message: {e}")

    def render(self) -> Tuple[discord.Embed, discord.ui.View]:
        """Build the embed and view for the session's current screen."""
        if self._view is not None:
            self._view.stop()

        if self.session.phase is QuizPhase.SELECTING_CATEGORY:
            categories = self.session.engine.categories
            embed = build_picker_embed(categories)
            view = CategoryPickerView(self, categories)
        else:
            embed = build_question_embed(self.session)
            view = QuestionView(self, self.session)

        self._view = view
        return embed, view

    async def handle_category(self, interaction: discord.Interaction, category_id: str):
        self.session.choose_new_category(category_id)
        self.clear_cue()
        await self._respond(interaction)

    async def handle_answer(self, interaction: discord.Interaction, option: str):
        self.session.submit_answer(option)
        await self._respond(interaction)

    async def handle_next(self, interaction: discord.Interaction):
        self.session.advance_card()
        self.clear_cue()
        await self._respond(interaction)

    async def handle_change_category(self, interaction: discord.Interaction):
        self.session.return_to_categories()
        self.clear_cue()
        await self._respond(interaction)

    async def _respond(self, interaction: discord.Interaction):
        if self.session.is_closed:
            # Stale widget from a stopped or replaced session
            try:
                await interaction.response.edit_message(view=None)
            except discord.HTTPException as e:
                logger.error(f"Failed to retire flashcard message: {e}")
            return

        embed, view = self.render()
        try:
            await interaction.response.edit_message(embed=embed, view=view)
            if interaction.message is not None:
                self.message = interaction.message
        except discord.HTTPException as e:
            logger.error(f"Failed to update flashcard message: {e}")

    def show_cue(self, reaction: str) -> None:
        """Replace the answer reaction on the widget message."""
        if self.message is None:
            return
        previous, self._cue = self._cue, reaction
        schedule(self._swap_cue(self.message, previous, reaction), "feedback reaction")

    def clear_cue(self) -> None:
        """Remove the answer reaction so the next answer shows a fresh one."""
        cue, self._cue = self._cue, None
        if cue is None or self.message is None:
            return
        schedule(self._swap_cue(self.message, cue, None), "clear feedback reaction")

    async def _swap_cue(self, message: discord.Message, previous: Optional[str], reaction: Optional[str]) -> None:
        # Reaction calls must reach Discord in the order they were scheduled
        if self._cue_lock is None:
            self._cue_lock = asyncio.Lock()
        async with self._cue_lock:
            if previous is not None and message.guild is not None:
                try:
                    await message.remove_reaction(previous, message.guild.me)
                except discord.HTTPException as e:
                    logger.warning(f"Failed to remove feedback reaction: {e}")
            if reaction is not None:
                await message.add_reaction(reaction)

    def on_timer_update(self, state: SessionState) -> None:
        """Session listener: redraw the message after a tick or timeout."""
        schedule(self.refresh(), "flashcard timer refresh")

    async def refresh(self) -> None:
        if self.message is None or self.session is None or self.session.is_closed:
            return
        embed, view = self.render()
        try:
            await self.message.edit(embed=embed, view=view)
        except discord.HTTPException as e:
            # Log error but don't raise to avoid breaking the countdown
            logger.warning(f"Failed to refresh flashcard timer: {e}")


class DiscordEffects(QuizEffects):
    """
    Feedback effects delivered through Discord.

    Bots cannot play audio in a text channel, so the sound cue is a
    reaction on the widget message, cleared again when the card changes,
    and the celebration is a confetti line.
    """

    CORRECT_REACTION = "✅"
    WRONG_REACTION = "❌"
    CONFETTI = "🎉🎊🎉 Confetti! 🎉🎊🎉"

    def __init__(self, presenter: QuizPresenter):
        self.presenter = presenter

    def play_feedback_sound(self, correct: bool) -> None:
        self.presenter.show_cue(self.CORRECT_REACTION if correct else self.WRONG_REACTION)

    def celebrate(self) -> None:
        channel = self.presenter.channel
        if channel is None:
            return
        schedule(channel.send(self.CONFETTI, delete_after=5), "celebration message")

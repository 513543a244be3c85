import discord
from discord.ext import commands
import logging
import os
from pathlib import Path
from typing import Optional

from .data_manager import DataManager
from .config_manager import ConfigManager
from .quiz_controller import QuizController
from .views import DiscordEffects, QuizPresenter

logger = logging.getLogger(__name__)


class FlashcardBot(commands.Bot):
    """Discord bot hosting flashcard quiz widgets"""

    def __init__(self, config=None):
        # Minimal intents for slash commands
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.data_manager: Optional[DataManager] = None
        self.config_manager: Optional[ConfigManager] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                self.config_manager.apply_config(self.app_config)

            validation = self.config_manager.validate_settings()
            for issue in validation['issues']:
                logger.warning(f"Configuration issue: {issue}")

            self.data_manager = DataManager(self.config_manager.get_quiz_directory())
            self.load_quiz_data()

            self.quiz_controller = QuizController(self.data_manager, self.config_manager)

            self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def load_quiz_data(self):
        """Load category files from the quiz directory"""
        self.data_manager.quiz_directory = Path(self.config_manager.get_quiz_directory())
        categories = self.data_manager.load_quiz_files()
        logger.info(f"Loaded {len(categories)} categories from {self.data_manager.quiz_directory}")
        if self.data_manager.has_load_errors():
            for error in self.data_manager.get_load_errors():
                logger.warning(f"Category load issue: {error}")

    def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="flashcards", description="Open the flashcard quiz in this channel")
        async def flashcards_command(interaction: discord.Interaction):
            await self.handle_flashcards(interaction)

        @self.tree.command(name="stop", description="Close the flashcard quiz in this channel")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show the flashcard quiz status for this channel")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        if self.quiz_controller is not None:
            closed = self.quiz_controller.close_all()
            logger.info(f"Closed {closed} flashcard sessions on shutdown")
        await super().close()

    async def handle_flashcards(self, interaction: discord.Interaction):
        """Open a new flashcard widget, replacing any previous one in the channel."""
        channel_id = interaction.channel_id
        presenter = QuizPresenter(interaction.channel)
        session = self.quiz_controller.open_session(
            channel_id,
            effects=DiscordEffects(presenter),
            on_timer_update=presenter.on_timer_update,
            on_close=presenter.close
        )
        presenter.attach(session)

        embed, view = presenter.render()
        try:
            await interaction.response.send_message(embed=embed, view=view)
            presenter.message = await interaction.original_response()
        except discord.HTTPException as e:
            logger.error(f"Failed to open flashcards in channel {channel_id}: {e}")
            self.quiz_controller.close_session(channel_id)

    async def handle_stop(self, interaction: discord.Interaction):
        if self.quiz_controller.close_session(interaction.channel_id):
            await self.send_info_response(interaction, "Flashcards closed. Use /flashcards to start again.", "👋 Stopped")
        else:
            await self.send_warning_response(interaction, "No flashcards are open in this channel.")

    async def handle_status(self, interaction: discord.Interaction):
        summary = self.quiz_controller.get_session_status_summary(interaction.channel_id)
        loading = self.data_manager.get_loading_summary()
        if loading['fallback_active']:
            summary += "\n\nUsing built-in categories."
        summary += f"\n\n{self.config_manager.get_settings_summary()}"
        await self.send_info_response(interaction, summary, "📊 Flashcard Status")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send an ephemeral informational embed."""
        embed = discord.Embed(title=title, description=message, color=0x0099ff)
        await self._send_ephemeral(interaction, embed)

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "⚠️ Warning"):
        """Send an ephemeral warning embed."""
        embed = discord.Embed(title=title, description=message, color=0xffaa00)
        await self._send_ephemeral(interaction, embed)

    async def _send_ephemeral(self, interaction: discord.Interaction, embed: discord.Embed):
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = FlashcardBot(config)

    try:
        logger.info("Starting flashcard bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()

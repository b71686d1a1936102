"""
Telegram adapter — agent lifecycle controls via python-telegram-bot.
Renders the active project's control view as a message with inline keyboard
buttons and routes button presses to the coordinator.
"""

import asyncio
import logging
from typing import Optional

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import BadRequest
from telegram.ext import (
    ApplicationBuilder,
    CommandHandler,
    CallbackQueryHandler,
    ContextTypes,
)

from agentdeck.client.agent_api import AgentApiClient, AgentCommandError
from agentdeck.config.settings import Settings
from agentdeck.control.coordinator import AgentControl, ControlView
from agentdeck.control.operations import CommandKind
from agentdeck.control.reset_workflow import ResetState
from agentdeck.control.status import TERMINAL_STATUSES, AgentStatus

logger = logging.getLogger(__name__)

CALLBACK_PREFIX = "ctl:"

RESET_WARNING = (
    "🔄 Reset Project?\n"
    "This will delete all features and re-run the initializer agent on the next start.\n"
    "Your app spec and project files will be preserved."
)

# Indicator colour classes rendered as emoji
COLOR_EMOJI = {
    "neo-text-secondary": "⚪",
    "neo-done": "🟢",
    "neo-pending": "🟡",
    "neo-danger": "🔴",
}

HELP_TEXT = (
    "agentdeck — agent lifecycle controls\n\n"
    "Commands:\n"
    "/project <name> — Control a project's agent\n"
    "/panel — Refresh and show the control panel\n"
    "/help — Show this message"
)


def _button(text: str, action: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text, callback_data=f"{CALLBACK_PREFIX}{action}")


def render_text(view: ControlView, notice: Optional[str] = None) -> str:
    """Build the panel message for a control view."""
    indicator = view.indicator
    lines = [
        f"📁 {view.project_name}",
        f"{COLOR_EMOJI.get(indicator.color_class, '⚪')} {indicator.label.upper()}"
        f"{' …' if indicator.pulse else ''}"
        f"{'  ⚡ YOLO' if view.show_yolo_badge else ''}",
    ]
    if view.yolo_toggle_visible:
        lines.append(f"YOLO for next start: {'on' if view.yolo_enabled else 'off'}")
    if view.busy:
        pending = ", ".join(sorted(k.value for k in view.in_flight))
        lines.append(f"⏳ Working: {pending}")
    if view.last_error:
        lines.append(f"⚠️ Last command failed: {view.last_error}")
    if notice:
        lines.append(notice)

    if view.reset_dialog_open:
        lines.append("")
        lines.append(RESET_WARNING)
        if view.reset_error:
            lines.append(f"❌ {view.reset_error}")
        if view.reset_state == ResetState.EXECUTING:
            lines.append("Resetting...")

    return "\n".join(lines)


def render_keyboard(view: ControlView) -> InlineKeyboardMarkup:
    """Buttons for the commands the view currently allows."""
    rows: list[list[InlineKeyboardButton]] = []

    if view.reset_dialog_open:
        dialog_row = []
        if view.reset_cancel_enabled:
            dialog_row.append(_button("Cancel", "reset_cancel"))
        if view.reset_confirm_enabled:
            dialog_row.append(_button("Reset Project", "reset_confirm"))
        if dialog_row:
            rows.append(dialog_row)
        return InlineKeyboardMarkup(rows)

    row = []
    if view.status in TERMINAL_STATUSES:
        if view.enabled[CommandKind.RESET]:
            row.append(_button("🔄 Reset", "reset_open"))
        row.append(_button(f"⚡ YOLO {'on' if view.yolo_enabled else 'off'}", "yolo"))
        if view.enabled[CommandKind.START]:
            row.append(_button(
                "▶️ Start (YOLO)" if view.yolo_enabled else "▶️ Start", "start"
            ))
    elif view.status == AgentStatus.RUNNING:
        if view.enabled[CommandKind.PAUSE]:
            row.append(_button("⏸ Pause", "pause"))
        if view.enabled[CommandKind.STOP]:
            row.append(_button("⏹ Stop", "stop"))
    elif view.status == AgentStatus.PAUSED:
        if view.enabled[CommandKind.RESUME]:
            row.append(_button("▶️ Resume", "resume"))
        if view.enabled[CommandKind.STOP]:
            row.append(_button("⏹ Stop", "stop"))
    if row:
        rows.append(row)
    rows.append([_button("🔃 Refresh", "refresh")])
    return InlineKeyboardMarkup(rows)


class TelegramAdapter:
    """Telegram bot adapter for agentdeck."""

    def __init__(self, settings: Settings, client: AgentApiClient):
        self.settings = settings
        self.client = client
        self._control: Optional[AgentControl] = None
        if settings.DEFAULT_PROJECT:
            self.activate(settings.DEFAULT_PROJECT)

    @property
    def control(self) -> Optional[AgentControl]:
        return self._control

    def activate(self, project_name: str) -> AgentControl:
        """Make `project_name` the controlled project. The previous coordinator is dropped."""
        if self._control is not None:
            logger.info(f"Deactivating controls for {self._control.project_name}")
        self._control = AgentControl(project_name, self.client)
        logger.info(f"Activated controls for {project_name}")
        return self._control

    async def refresh(self) -> Optional[str]:
        """
        Pull a fresh observation for the active project.

        Returns:
            A notice to show the user if the status could not be read.
        """
        if self._control is None:
            return None
        try:
            observation = await self.client.get_status(self._control.project_name)
        except AgentCommandError as e:
            logger.warning(f"Status refresh failed for {self._control.project_name}: {e}")
            return f"⚠️ Status unavailable: {e}"
        self._control.observe(observation.status, observation.yolo_mode)
        return None

    async def dispatch(self, action: str) -> Optional[str]:
        """
        Run one panel action against the active coordinator.

        Returns:
            A notice to show the user when the action was refused.
        """
        control = self._control
        if control is None:
            return "No project selected. Use /project <name>."
        if not control.status_model.observed:
            # Never act on a status nobody has reported
            notice = await self.refresh()
            if notice:
                return notice
        if action == "refresh":
            return None
        if action == "yolo":
            if control.toggle_yolo() is None:
                return "YOLO mode can only be changed while the agent is stopped."
            return None
        if action == "reset_open":
            return None if control.open_reset() else "Reset is not available right now."
        if action == "reset_cancel":
            return None if control.cancel_reset() else "Cannot cancel right now."
        if action == "reset_confirm":
            done = await control.confirm_reset()
            return "✅ Project reset." if done else None

        commands = {
            "start": control.start,
            "stop": control.stop,
            "pause": control.pause,
            "resume": control.resume,
        }
        command = commands.get(action)
        if command is None:
            logger.warning(f"Unknown panel action: {action}")
            return f"Unknown action: {action}"
        outcome = await command()
        if outcome is None:
            return f"Cannot {action} right now."
        return None

    async def _start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start command."""
        await update.message.reply_text(HELP_TEXT)

    async def _help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._start(update, context)

    async def _project(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /project <name>."""
        if not context.args:
            current = self._control.project_name if self._control else "none"
            await update.message.reply_text(
                f"Usage: /project <name>\nCurrent project: {current}"
            )
            return
        self.activate(" ".join(context.args).strip())
        await self._panel(update, context)

    async def _panel(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /panel — show the active project's controls."""
        if self._control is None:
            await update.message.reply_text("No project selected. Use /project <name>.")
            return
        notice = await self.refresh()
        view = self._control.view()
        await update.message.reply_text(
            render_text(view, notice), reply_markup=render_keyboard(view)
        )

    async def _handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle inline keyboard button presses."""
        query = update.callback_query
        await query.answer()

        data = query.data or ""
        if not data.startswith(CALLBACK_PREFIX):
            return
        if self._control is None:
            await query.edit_message_text("No project selected. Use /project <name>.")
            return

        control = self._control
        action = data[len(CALLBACK_PREFIX):]
        logger.info(f"[{control.project_name}] panel action: {action}")

        task = asyncio.create_task(self.dispatch(action))
        # Let the action register as in flight, then show the busy panel
        await asyncio.sleep(0)
        if not task.done() and control.view().busy:
            await self._edit_panel(query, control.view())

        notice = await task
        if control is self._control:
            refresh_notice = await self.refresh()
            notice = notice or refresh_notice
        await self._edit_panel(query, control.view(), notice)

    async def _edit_panel(self, query, view: ControlView, notice: Optional[str] = None) -> None:
        try:
            await query.edit_message_text(
                render_text(view, notice), reply_markup=render_keyboard(view)
            )
        except BadRequest as e:
            # Telegram rejects edits that leave the message unchanged
            logger.debug(f"Panel edit skipped: {e}")

    def run(self) -> None:
        """Start the Telegram bot (blocking)."""
        token = self.settings.TELEGRAM_BOT_TOKEN
        if not token or token == "your-token":
            raise ValueError(
                "TELEGRAM_BOT_TOKEN is not set. Add it to your .env file."
            )

        # Concurrent updates so a second press during a command reaches the gate
        app = ApplicationBuilder().token(token).concurrent_updates(True).build()

        app.add_handler(CommandHandler("start", self._start))
        app.add_handler(CommandHandler("help", self._help))
        app.add_handler(CommandHandler("project", self._project))
        app.add_handler(CommandHandler("panel", self._panel))
        app.add_handler(CallbackQueryHandler(self._handle_callback))

        logger.info("agentdeck is online via Telegram")
        print("agentdeck is online via Telegram")

        app.run_polling(drop_pending_updates=True)

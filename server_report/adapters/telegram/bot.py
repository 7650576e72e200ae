"""Telegram bot entry point for ServerReport."""

from __future__ import annotations

import atexit
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from ...config import Settings, database_path, get_settings
from ...identity import IdentityLinker
from ...service import ReportService
from ...state import ReportState
from ...telemetry import get_telemetry
from ...telemetry_decorator import track_command
from . import handlers

logger = logging.getLogger(__name__)

TITLE, DESCRIPTION, CATEGORY = range(3)
_DRAFT_KEY = "report_draft"


async def _reply(update: Update, text: str) -> None:
    await update.effective_message.reply_text(text, parse_mode=ParseMode.MARKDOWN)


def _username(update: Update) -> Optional[str]:
    user = update.effective_user
    return user.username or user.first_name


def build_application(
    token: str,
    service: ReportService,
    linker: IdentityLinker,
    *,
    settings: Optional[Settings] = None,
) -> Application:
    settings = settings or service.settings
    application = ApplicationBuilder().token(token).build()

    @track_command("telegram")
    async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await _reply(update, handlers.start(linker, update.effective_user.id, _username(update)))

    @track_command("telegram")
    async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await _reply(update, handlers.HELP_TEXT)

    @track_command("telegram")
    async def status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        text = handlers.status(service, linker, update.effective_user.id, context.args or [])
        await _reply(update, text)

    @track_command("telegram")
    async def list_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        text = handlers.list_reports(
            service, linker, update.effective_user.id, settings.bot_list_limit
        )
        await _reply(update, text)

    # Report conversation ------------------------------------------------
    @track_command("telegram")
    async def report(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        user = update.effective_user
        if context.args:
            text = handlers.create_inline_report(
                service, linker, user.id, _username(update), context.args
            )
            await _reply(update, text)
            return ConversationHandler.END
        error = handlers.begin_report(linker, user.id, _username(update))
        if error is not None:
            await _reply(update, error)
            return ConversationHandler.END
        context.user_data[_DRAFT_KEY] = {}
        await _reply(update, handlers.TITLE_PROMPT)
        return TITLE

    async def receive_title(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        title = update.effective_message.text
        error = handlers.check_draft_field(service, "title", title)
        if error is not None:
            await _reply(update, error)
            return TITLE
        context.user_data.setdefault(_DRAFT_KEY, {})["title"] = title.strip()
        await _reply(update, handlers.DESCRIPTION_PROMPT)
        return DESCRIPTION

    async def receive_description(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        description = update.effective_message.text
        error = handlers.check_draft_field(service, "description", description)
        if error is not None:
            await _reply(update, error)
            return DESCRIPTION
        context.user_data.setdefault(_DRAFT_KEY, {})["description"] = description.strip()
        await _reply(update, handlers.CATEGORY_PROMPT)
        return CATEGORY

    async def _finish(update: Update, context: ContextTypes.DEFAULT_TYPE, category: Optional[str]) -> int:
        draft = context.user_data.pop(_DRAFT_KEY, {})
        draft["category"] = category
        text = handlers.create_report(service, linker, update.effective_user.id, draft)
        await _reply(update, text)
        return ConversationHandler.END

    async def receive_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        return await _finish(update, context, update.effective_message.text.strip() or None)

    async def skip_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        return await _finish(update, context, None)

    async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
        context.user_data.pop(_DRAFT_KEY, None)
        await _reply(update, handlers.CANCELLED_TEXT)
        return ConversationHandler.END

    text_only = filters.TEXT & ~filters.COMMAND
    conversation = ConversationHandler(
        entry_points=[CommandHandler("report", report)],
        states={
            TITLE: [MessageHandler(text_only, receive_title)],
            DESCRIPTION: [MessageHandler(text_only, receive_description)],
            CATEGORY: [
                MessageHandler(text_only, receive_category),
                CommandHandler("skip", skip_category),
            ],
        },
        fallbacks=[CommandHandler("cancel", cancel)],
    )

    async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("Error while handling update %s", update, exc_info=context.error)
        if isinstance(update, Update) and update.effective_message is not None:
            await update.effective_message.reply_text("An error occurred. Please try again.")

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("status", status))
    application.add_handler(CommandHandler("list", list_command))
    application.add_handler(conversation)
    application.add_error_handler(on_error)
    return application


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    token = os.environ.get("TELEGRAM_TOKEN")
    if not token:
        raise RuntimeError("TELEGRAM_TOKEN environment variable must be set")
    settings = get_settings()
    state = ReportState(database_path())
    application = build_application(
        token,
        ReportService(state, settings),
        IdentityLinker(state),
        settings=settings,
    )
    atexit.register(get_telemetry().flush)
    logger.info("Telegram bot is running")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


__all__ = ["build_application", "main"]

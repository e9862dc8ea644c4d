"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from ask_match.api.admin import router as admin_router
from ask_match.api.game import RejectedRequest, rejected_request_handler
from ask_match.api.game import router as game_router
from ask_match.api.telegram_models import TelegramUpdate
from ask_match.api.ws import router as ws_router
from ask_match.app_logging import configure_logging
from ask_match.containers import AppContainer
from ask_match.telegram_commands import (
    BotCommand,
    chat_menu_button,
    telegram_commands,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.telegram_client.set_my_commands(
                telegram_commands()
            )
            await state_container.telegram_client.set_chat_menu_button(
                chat_menu_button(state_container.settings.webapp_url)
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        state_container.game_service.resume_sessions()
        yield
        state_container.game_service.shutdown()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_exception_handler(RejectedRequest, rejected_request_handler)
    app.include_router(game_router)
    app.include_router(ws_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        message = update.message
        if message is None or message.from_user is None:
            return {"status": "ok"}
        command = message.command
        sender = message.from_user
        try:
            if command is BotCommand.START:
                await state_container.start_command_handler.handle(
                    telegram_user_id=sender.id,
                    chat_id=message.chat.id,
                    first_name=sender.display_name,
                    username=sender.username,
                )
            elif command is BotCommand.HELP:
                await state_container.help_command_handler.handle(message.chat.id)
        except Exception:
            logger.exception(
                "Failed to handle Telegram command",
                extra={"chat_id": message.chat.id},
            )
        return {"status": "ok"}

    return app


"""Command handlers for Telegram updates."""

import time
from dataclasses import dataclass

from ask_match.adapters.telegram_client import TelegramClient
from ask_match.services.participants import ParticipantService

WELCOME_TEXT = (
    "Welcome! Ask a question, read the answers, pick the one you like best. "
    "If the pick is mutual, it's a match.\n\nTap the button below to play."
)

HELP_TEXT = (
    "How it works:\n"
    "1. Write a question.\n"
    "2. Join a room with players from both groups.\n"
    "3. Answer the other group's questions.\n"
    "4. Pick the player whose answers you liked most.\n"
    "5. If they picked you too, it's a match!\n\n"
    "Send /start to play."
)


@dataclass
class StartCommandHandler:
    """Handle the /start Telegram command."""

    participant_service: ParticipantService
    telegram_client: TelegramClient
    webapp_url: str

    async def handle(
        self,
        telegram_user_id: int,
        chat_id: int,
        first_name: str,
        username: str | None = None,
    ) -> None:
        """Register the caller and send the button that opens the game."""
        existing = self.participant_service.repository.get_by_telegram_id(
            telegram_user_id
        )
        self.participant_service.ensure_participant(
            telegram_user_id=telegram_user_id,
            first_name=first_name,
            username=username,
            photo_url=existing.photo_url if existing else None,
        )
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=WELCOME_TEXT,
            reply_markup=_play_keyboard(f"{self.webapp_url}/?v={int(time.time())}"),
        )


@dataclass
class HelpCommandHandler:
    """Handle the /help Telegram command."""

    telegram_client: TelegramClient

    async def handle(self, chat_id: int) -> None:
        await self.telegram_client.send_message(chat_id=chat_id, text=HELP_TEXT)


def _play_keyboard(url: str) -> dict:
    return {"inline_keyboard": [[{"text": "Play", "web_app": {"url": url}}]]}

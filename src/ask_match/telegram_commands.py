"""What the bot advertises in the Telegram client."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    command: str
    description: str


class BotCommand(Enum):
    """Commands the webhook understands."""

    START = TelegramCommand("start", "Open the game")
    HELP = TelegramCommand("help", "How a round works")

    @classmethod
    def parse(cls, name: str) -> "BotCommand | None":
        """Look up a command by its bare name (no slash, no bot suffix)."""
        for entry in cls:
            if entry.value.command == name:
                return entry
        return None


def telegram_commands() -> list[dict[str, str]]:
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]


def chat_menu_button(webapp_url: str) -> dict[str, object]:
    """Menu button that opens the Mini App next to the message field."""
    return {"type": "web_app", "text": "Play", "web_app": {"url": webapp_url}}

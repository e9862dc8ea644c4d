"""Subset of the Telegram Bot API update payload the webhook reads."""

from pydantic import BaseModel, Field

from ask_match.telegram_commands import BotCommand


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None

    @property
    def display_name(self) -> str:
        """First name, falling back to the username for accounts without one."""
        return self.first_name or self.username or "Player"


class TelegramChat(BaseModel):
    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    message_id: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None

    @property
    def command(self) -> BotCommand | None:
        """The bot command the text starts with, if any.

        ``/help@SomeBot extra words`` resolves to ``BotCommand.HELP``.
        """
        if not self.text or not self.text.startswith("/"):
            return None
        head = self.text.split(maxsplit=1)[0]
        return BotCommand.parse(head[1:].split("@", 1)[0].lower())


class TelegramUpdate(BaseModel):
    """A webhook update; anything other than a message is ignored."""

    update_id: int
    message: TelegramMessage | None = None

"""Request bodies for the game API."""

from uuid import UUID

from pydantic import BaseModel

from ask_match.domain.models import Category


class RegisterParticipantRequest(BaseModel):
    """Profile as reported by the Telegram Mini App."""

    telegram_user_id: int
    first_name: str
    username: str | None = None
    photo_url: str | None = None


class CategoryRequest(BaseModel):
    category: Category


class JoinLobbyRequest(BaseModel):
    prompt_text: str


class ResponseRequest(BaseModel):
    prompt_id: UUID
    text: str


class FinalChoiceRequest(BaseModel):
    """Target of the pick; null means no choice."""

    target_id: UUID | None = None


class ReportRequest(BaseModel):
    reported_id: UUID
    reason: str
    content_ref: str | None = None

"""Text sanitising and banned-word filtering."""

import re
from dataclasses import dataclass, field

from ask_match.domain.errors import ValidationRejected

MAX_TEXT_LENGTH = 500
MIN_PROMPT_LENGTH = 3
MIN_RESPONSE_LENGTH = 1
MIN_REPORT_REASON_LENGTH = 3

DEFAULT_BANNED_WORDS = (
    "блять",
    "сука",
    "хуй",
    "пизд",
    "ебат",
    "ёбан",
    "мудак",
    "шлюх",
    "fuck",
    "shit",
    "bitch",
    "asshole",
    "dick",
    "pussy",
)

_NON_WORD = re.compile(r"[^\w]", re.UNICODE)


@dataclass
class ModerationService:
    """Word-list moderation for user-authored text."""

    banned_words: tuple[str, ...] = field(default=DEFAULT_BANNED_WORDS)

    def sanitize(self, text: str) -> str:
        """Trim whitespace and cap the length."""
        return text.strip()[:MAX_TEXT_LENGTH]

    def contains_banned(self, text: str) -> bool:
        """Return true when the normalized text contains a banned word."""
        normalized = _NON_WORD.sub("", text.lower())
        return any(word in normalized for word in self.banned_words)

    def check_prompt(self, text: str) -> str:
        """Return the sanitized prompt or raise ValidationRejected."""
        return self._check(text, MIN_PROMPT_LENGTH, "Prompt")

    def check_response(self, text: str) -> str:
        """Return the sanitized response or raise ValidationRejected."""
        return self._check(text, MIN_RESPONSE_LENGTH, "Response")

    def check_report_reason(self, text: str) -> str:
        cleaned = self.sanitize(text)
        if len(cleaned) < MIN_REPORT_REASON_LENGTH:
            raise ValidationRejected("Report reason is too short")
        return cleaned

    def _check(self, text: str, min_length: int, label: str) -> str:
        cleaned = self.sanitize(text)
        if len(cleaned) < min_length:
            raise ValidationRejected(f"{label} is too short")
        if self.contains_banned(cleaned):
            raise ValidationRejected(f"{label} rejected by moderation")
        return cleaned

"""Per-session phase deadlines with a cosmetic countdown."""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import UUID

from ask_match.domain.models import DeadlineKind
from ask_match.services.events import EventPublisher

_logger = logging.getLogger(__name__)

DeadlineHandler = Callable[[UUID, DeadlineKind], Awaitable[None]]


@dataclass
class _ArmedDeadline:
    kind: DeadlineKind
    expires_at: float
    task: asyncio.Task[None]


@dataclass
class RoundTimer:
    """Holds at most one armed deadline per session.

    Arming cancels whatever was armed for the session before. When a deadline
    expires the entry is removed before the handler runs, so a handler that
    arms the next phase never cancels itself.
    """

    publisher: EventPublisher
    tick_interval: float = 1.0
    retry_interval: float = 1.0
    _armed: dict[UUID, _ArmedDeadline] = field(default_factory=dict)
    _firing: set[asyncio.Task[None]] = field(default_factory=set)

    def arm(
        self,
        session_id: UUID,
        kind: DeadlineKind,
        seconds: float,
        handler: DeadlineHandler,
    ) -> None:
        """Cancel any deadline for the session and arm a new one."""
        self.cancel(session_id)
        loop = asyncio.get_running_loop()
        expires_at = loop.time() + max(seconds, 0.0)
        task = loop.create_task(self._run(session_id, kind, expires_at, handler))
        self._armed[session_id] = _ArmedDeadline(
            kind=kind, expires_at=expires_at, task=task
        )
        _logger.info(
            "Deadline armed: session=%s kind=%s seconds=%.1f",
            session_id,
            kind.value,
            seconds,
        )

    def cancel(self, session_id: UUID) -> None:
        """Cancel the deadline armed for a session, if any."""
        armed = self._armed.pop(session_id, None)
        if armed is not None and not armed.task.done():
            armed.task.cancel()

    def cancel_all(self) -> None:
        """Cancel every armed deadline and any handler still retrying."""
        for session_id in list(self._armed):
            self.cancel(session_id)
        for task in list(self._firing):
            task.cancel()
        self._firing.clear()

    def armed_kind(self, session_id: UUID) -> DeadlineKind | None:
        armed = self._armed.get(session_id)
        return armed.kind if armed else None

    def seconds_remaining(self, session_id: UUID) -> int | None:
        """Whole seconds left on the armed deadline, rounded up."""
        armed = self._armed.get(session_id)
        if armed is None:
            return None
        remaining = armed.expires_at - asyncio.get_running_loop().time()
        return max(math.ceil(remaining), 0)

    async def _run(
        self,
        session_id: UUID,
        kind: DeadlineKind,
        expires_at: float,
        handler: DeadlineHandler,
    ) -> None:
        loop = asyncio.get_running_loop()
        remaining = expires_at - loop.time()
        while remaining > 0:
            await self._tick(session_id, kind, math.ceil(remaining))
            await asyncio.sleep(min(self.tick_interval, remaining))
            remaining = expires_at - loop.time()

        current = asyncio.current_task()
        armed = self._armed.get(session_id)
        if armed is not None and armed.task is current:
            del self._armed[session_id]
        if current is not None:
            self._firing.add(current)
        try:
            await self._fire(session_id, kind, handler)
        finally:
            self._firing.discard(current)

    async def _fire(
        self, session_id: UUID, kind: DeadlineKind, handler: DeadlineHandler
    ) -> None:
        while True:
            try:
                await handler(session_id, kind)
            except Exception:
                _logger.exception(
                    "Deadline action failed, retrying: session=%s kind=%s",
                    session_id,
                    kind.value,
                )
                await asyncio.sleep(self.retry_interval)
            else:
                return

    async def _tick(
        self, session_id: UUID, kind: DeadlineKind, seconds_remaining: int
    ) -> None:
        try:
            await self.publisher.countdown_tick(session_id, kind, seconds_remaining)
        except Exception:
            _logger.warning("Countdown tick failed: session=%s", session_id)

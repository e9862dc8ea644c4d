"""Per-session critical sections."""

import asyncio
import weakref
from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class SessionLocks:
    """Lazily created asyncio locks keyed by session id.

    Locks are held weakly: an entry lives only while some coroutine holds or
    waits on the lock, so finished sessions leave nothing behind.
    ``matchmaking`` serialises lobby placement, which reads every open lobby
    before attaching to one of them.
    """

    _locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = field(
        default_factory=weakref.WeakValueDictionary
    )
    _matchmaking: asyncio.Lock | None = None

    def for_session(self, session_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)

    @property
    def matchmaking(self) -> asyncio.Lock:
        if self._matchmaking is None:
            self._matchmaking = asyncio.Lock()
        return self._matchmaking

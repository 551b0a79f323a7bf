import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

from ..utils.constants import AppConstants
from .identity_store import IdentityStore
from .sync_adapter import SyncAdapter
from .view_model import ViewModel

logger = logging.getLogger(__name__)


@dataclass
class ViewSession:
    """One browser's mounted view"""

    session_id: str
    view: ViewModel
    last_seen: float = field(default_factory=time.monotonic)
    streams: int = 0
    close_requested: bool = False

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def attach_stream(self) -> None:
        self.streams += 1
        self.close_requested = False

    def detach_stream(self) -> None:
        self.streams -= 1
        self.touch()

    @property
    def streaming(self) -> bool:
        return self.streams > 0


class SessionRegistry:
    """Keeps one mounted ViewModel per browser session.

    Views are mounted when their session is first seen and unmounted when the
    session is closed, goes idle without an open stream, is evicted to stay
    under ``max_sessions``, or the registry shuts down. Every tab of a browser
    shares one session, so a session with an open stream is never closed from
    under it: a close request is deferred until its last stream ends.
    """

    def __init__(
        self,
        adapter: SyncAdapter,
        idle_seconds: float = AppConstants.SESSION_IDLE_SECONDS,
        max_sessions: int = AppConstants.MAX_SESSIONS,
    ):
        self.adapter = adapter
        self.idle_seconds = idle_seconds
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, ViewSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: Optional[str]) -> Optional[ViewSession]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    async def open(
        self, session_id: Optional[str], identity_token: Optional[str] = None
    ) -> ViewSession:
        """Return the live session for ``session_id`` or mount a new one"""
        await self.prune()

        session = self.get(session_id)
        if session is not None:
            session.touch()
            self._sessions.move_to_end(session.session_id)
            return session

        view = ViewModel(self.adapter, IdentityStore(identity_token))
        await view.mount()

        session = ViewSession(session_id=uuid.uuid4().hex, view=view)
        self._sessions[session.session_id] = session
        logger.info(f"Mounted view session {session.session_id}")

        await self._evict(keep=session.session_id)
        return session

    async def close(self, session_id: Optional[str], force: bool = False) -> bool:
        """Unmount a session. Returns False if nothing was unmounted.

        A session with an open stream is only marked; it is unmounted by the
        next ``prune`` after its last stream ends. ``force`` skips the check.
        """
        session = self.get(session_id)
        if session is None:
            return False

        if session.streaming and not force:
            session.close_requested = True
            logger.info(
                f"View session {session_id} has {session.streams} open stream(s); "
                "close deferred"
            )
            return False

        del self._sessions[session_id]
        await session.view.unmount()
        logger.info(f"Unmounted view session {session_id}")
        return True

    async def prune(self) -> int:
        """Unmount closed or idle sessions that have no open stream"""
        now = time.monotonic()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if not session.streaming
            and (session.close_requested or now - session.last_seen > self.idle_seconds)
        ]
        for session_id in expired:
            await self.close(session_id)
        return len(expired)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id, force=True)

    async def _evict(self, keep: str) -> None:
        """Close the oldest sessions without a stream until under the limit"""
        while len(self._sessions) > self.max_sessions:
            oldest_id = next(
                (
                    session_id
                    for session_id, session in self._sessions.items()
                    if session_id != keep and not session.streaming
                ),
                None,
            )
            if oldest_id is None:
                logger.warning(
                    f"{len(self._sessions)} view sessions open, all streaming; "
                    "nothing to evict"
                )
                return
            logger.info(f"Evicting view session {oldest_id}")
            await self.close(oldest_id)

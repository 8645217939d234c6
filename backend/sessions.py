# backend/sessions.py

import asyncio
import logging
import time
from typing import Dict, Optional, Set

from .controller import ImageClient, SessionController
from .utils import gen_session_id

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    In-memory map of browser sessions to their controllers. Nothing outlives the
    process, and a session nobody has touched for `ttl` seconds is dropped along
    with its images.
    """

    def __init__(self, client: ImageClient, ttl: float = 1800.0):
        self.client = client
        self.ttl = ttl
        self._sessions: Dict[str, SessionController] = {}
        # calls still running for sessions that were already dropped
        self._orphaned: Set[asyncio.Task] = set()

    def create(self) -> SessionController:
        session_id = gen_session_id()
        controller = SessionController(self.client, session_id=session_id)
        self._sessions[session_id] = controller
        logger.info("[Sessions] created %s (%d active)", session_id, len(self._sessions))
        return controller

    def get(self, session_id: str) -> Optional[SessionController]:
        controller = self._sessions.get(session_id)
        if controller is not None:
            controller.touch()
        return controller

    def discard(self, session_id: str) -> bool:
        controller = self._sessions.pop(session_id, None)
        if controller is None:
            return False
        self._release(controller)
        logger.info("[Sessions] discarded %s", session_id)
        return True

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Drop every session idle for longer than ttl. Returns how many went."""
        now = time.monotonic() if now is None else now
        expired = [sid for sid, c in self._sessions.items() if now - c.last_access > self.ttl]
        for sid in expired:
            self._release(self._sessions.pop(sid))
        if expired:
            logger.info("[Sessions] evicted %d idle session(s), %d active",
                        len(expired), len(self._sessions))
        return len(expired)

    async def sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.evict_idle()

    def _release(self, controller: SessionController) -> None:
        for task in controller.pending:
            self._orphaned.add(task)
            task.add_done_callback(self._orphaned.discard)
        controller.reset()

    def __len__(self) -> int:
        return len(self._sessions)

    async def drain(self) -> None:
        await asyncio.gather(
            *(c.drain() for c in list(self._sessions.values())),
            *list(self._orphaned),
        )

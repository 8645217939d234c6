# backend/controller.py

import asyncio
import logging
import time
from typing import Optional, Protocol, Set

from . import workflow
from .model import ImageArtifact, SessionView
from .workflow import SessionState

logger = logging.getLogger(__name__)

GENERATE_FALLBACK_ERROR = "An unknown error occurred during image generation."
EDIT_FALLBACK_ERROR = "An unknown error occurred during image editing."


class ImageClient(Protocol):
    async def generate(self, prompt: str) -> ImageArtifact: ...

    async def edit(self, prompt: str, source_data: str, source_mime_type: str) -> ImageArtifact: ...


class SessionController:
    """
    Owns one session's SessionState and dispatches its remote calls.

    request_generate / request_edit apply the start transition right away and
    schedule the remote call on the running loop. The returned task settles the
    state when the call finishes; None means the command was skipped.
    """

    def __init__(self, client: ImageClient, session_id: str = ""):
        self.client = client
        self.session_id = session_id
        self.state = SessionState()
        self._tasks: Set[asyncio.Task] = set()
        self.last_access = time.monotonic()

    def touch(self) -> None:
        self.last_access = time.monotonic()

    @property
    def pending(self) -> Set[asyncio.Task]:
        return {t for t in self._tasks if not t.done()}

    def view(self, include_images: bool = True) -> SessionView:
        return workflow.view(self.state, self.session_id, include_images=include_images)

    def update_prompt(self, text: str) -> None:
        self.state = workflow.update_prompt(self.state, text)

    def request_generate(self, prompt: str) -> Optional[asyncio.Task]:
        started = workflow.start_generate(self.state, prompt)
        if started is None:
            logger.debug("[Controller %s] generate skipped", self.session_id)
            return None
        self.state = started
        logger.info("[Controller %s] generate #%d, prompt=%s...",
                    self.session_id, started.request_id, prompt[:50])
        return self._dispatch(self._run_generate(started.request_id, prompt))

    def request_edit(self, prompt: str) -> Optional[asyncio.Task]:
        started = workflow.start_edit(self.state, prompt)
        if started is None:
            logger.debug("[Controller %s] edit skipped", self.session_id)
            return None
        self.state = started
        source = started.generated
        logger.info("[Controller %s] edit #%d, prompt=%s...",
                    self.session_id, started.request_id, prompt[:50])
        return self._dispatch(
            self._run_edit(started.request_id, prompt, source.data, source.mime_type)
        )

    def reset(self) -> None:
        if self.state.in_flight is not None:
            logger.info("[Controller %s] reset while #%d in flight, its result will be dropped",
                        self.session_id, self.state.request_id)
        self.state = workflow.reset(self.state)

    async def drain(self) -> None:
        """Wait for every outstanding remote call to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _dispatch(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_generate(self, request_id: int, prompt: str) -> None:
        try:
            artifact = await self.client.generate(prompt)
        except Exception as e:
            logger.error("[Controller %s] generate #%d failed: %s", self.session_id, request_id, e)
            self._settle_failure(request_id, str(e) or GENERATE_FALLBACK_ERROR)
            return
        self._settle_success(request_id, artifact)

    async def _run_edit(self, request_id: int, prompt: str, data: str, mime_type: str) -> None:
        try:
            artifact = await self.client.edit(prompt, data, mime_type)
        except Exception as e:
            logger.error("[Controller %s] edit #%d failed: %s", self.session_id, request_id, e)
            self._settle_failure(request_id, str(e) or EDIT_FALLBACK_ERROR)
            return
        self._settle_success(request_id, artifact)

    def _settle_success(self, request_id: int, artifact: ImageArtifact) -> None:
        if request_id != self.state.request_id:
            logger.info("[Controller %s] dropping stale result #%d", self.session_id, request_id)
            return
        self.state = workflow.complete(self.state, request_id, artifact)

    def _settle_failure(self, request_id: int, message: str) -> None:
        if request_id != self.state.request_id:
            logger.info("[Controller %s] dropping stale failure #%d", self.session_id, request_id)
            return
        self.state = workflow.fail(self.state, request_id, message)

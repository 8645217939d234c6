"""Shared fixtures: a scriptable stand-in for the Gemini client."""

import asyncio
from typing import List, Optional, Tuple

import pytest

from backend.model import ImageArtifact


class FakeImageClient:
    """
    Returns queued results in order. Each result is an ImageArtifact or an
    exception to raise. When `gate` is set, calls block until it is released,
    which lets tests look at the in-flight state.
    """

    def __init__(self, results=None, gate: Optional[asyncio.Event] = None):
        self.results = list(results or [])
        self.gate = gate
        self.generate_calls: List[str] = []
        self.edit_calls: List[Tuple[str, str, str]] = []

    async def _next(self):
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    async def generate(self, prompt: str) -> ImageArtifact:
        self.generate_calls.append(prompt)
        return await self._next()

    async def edit(self, prompt: str, source_data: str, source_mime_type: str) -> ImageArtifact:
        self.edit_calls.append((prompt, source_data, source_mime_type))
        return await self._next()


@pytest.fixture
def red_cube():
    return ImageArtifact(data="AAA", mime_type="image/png")


@pytest.fixture
def blue_cube():
    return ImageArtifact(data="BBB", mime_type="image/png")

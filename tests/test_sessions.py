import asyncio

import pytest

from backend.model import ImageArtifact
from backend.sessions import SessionRegistry
from conftest import FakeImageClient


class TestIdleEviction:

    def test_idle_session_is_evicted(self):
        registry = SessionRegistry(FakeImageClient(), ttl=60)
        idle = registry.create()

        assert registry.evict_idle(now=idle.last_access + 59) == 0
        assert registry.evict_idle(now=idle.last_access + 61) == 1
        assert registry.get(idle.session_id) is None
        assert len(registry) == 0

    def test_access_keeps_session_alive(self):
        registry = SessionRegistry(FakeImageClient(), ttl=60)
        kept = registry.create()
        dropped = registry.create()
        dropped.last_access -= 120

        assert registry.evict_idle() == 1
        assert registry.get(kept.session_id) is kept
        assert registry.get(dropped.session_id) is None

    def test_get_refreshes_last_access(self):
        registry = SessionRegistry(FakeImageClient(), ttl=60)
        controller = registry.create()
        controller.last_access -= 120

        registry.get(controller.session_id)

        assert registry.evict_idle() == 0

    @pytest.mark.asyncio
    async def test_eviction_drops_images(self, red_cube):
        registry = SessionRegistry(FakeImageClient([red_cube]), ttl=60)
        controller = registry.create()
        await controller.request_generate("a red cube")
        assert controller.state.generated == red_cube

        controller.last_access -= 120
        registry.evict_idle()

        assert controller.state.generated is None

    @pytest.mark.asyncio
    async def test_sweeper_evicts_in_background(self):
        registry = SessionRegistry(FakeImageClient(), ttl=0)
        registry.create()

        sweeper = asyncio.create_task(registry.sweep_forever(0.01))
        await asyncio.sleep(0.05)
        sweeper.cancel()

        assert len(registry) == 0


class TestDrainAfterRelease:

    @pytest.mark.asyncio
    async def test_drain_awaits_calls_of_discarded_session(self):
        gate = asyncio.Event()
        client = FakeImageClient([ImageArtifact(data="AAA")], gate=gate)
        registry = SessionRegistry(client)
        controller = registry.create()
        task = controller.request_generate("a red cube")

        assert registry.discard(controller.session_id) is True

        asyncio.get_running_loop().call_soon(gate.set)
        await registry.drain()

        assert task.done()
        # the late result is stale: the discarded session was reset
        assert controller.state.generated is None

    @pytest.mark.asyncio
    async def test_drain_awaits_calls_of_evicted_session(self):
        gate = asyncio.Event()
        client = FakeImageClient([ImageArtifact(data="AAA")], gate=gate)
        registry = SessionRegistry(client, ttl=60)
        controller = registry.create()
        task = controller.request_generate("a red cube")
        controller.last_access -= 120

        assert registry.evict_idle() == 1

        asyncio.get_running_loop().call_soon(gate.set)
        await registry.drain()

        assert task.done()

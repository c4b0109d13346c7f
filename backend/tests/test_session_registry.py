"""Tests for the session registry and the idle-session sweeper."""

import pytest

from helpers import make_file, settle
from media_uploads.exceptions import SessionNotFoundError
from media_uploads.services.session_registry import SessionRegistry
from media_uploads.services.session_sweeper import SessionSweeper


@pytest.fixture
def registry(fake_transfer):
    return SessionRegistry(fake_transfer)


class TestRegistry:
    @pytest.mark.asyncio
    async def test_create_get_close(self, registry):
        session = registry.create()
        assert registry.get(session.id) is session
        assert len(registry) == 1

        await registry.close(session.id)

        assert session.closed is True
        assert len(registry) == 0
        with pytest.raises(SessionNotFoundError):
            registry.get(session.id)
        with pytest.raises(SessionNotFoundError):
            await registry.close(session.id)

    @pytest.mark.asyncio
    async def test_get_counts_as_activity(self, registry):
        session = registry.create()
        session.last_activity -= 100

        registry.get(session.id)

        assert session.idle_seconds() < 100
        await registry.close_all()


class TestIdleExpiry:
    @pytest.mark.asyncio
    async def test_abandoned_sessions_are_closed(self, registry):
        abandoned = [registry.create() for _ in range(5)]
        for s in abandoned:
            s.add_files([make_file("a.jpg"), make_file("b.jpg")], auto_start=False)
            s.last_activity -= 3600
        active = registry.create()
        active.add_files([make_file("c.jpg")], auto_start=False)

        expired = await registry.expire_idle(max_idle=1800)

        assert sorted(expired) == sorted(s.id for s in abandoned)
        assert len(registry) == 1
        assert registry.get(active.id) is active
        for s in abandoned:
            assert s.closed is True
            assert len(s.attachments.previews) == 0
            assert s.pending_held_count == 0
        assert len(active.attachments.previews) == 1
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_busy_session_is_kept(self, registry, fake_transfer):
        session = registry.create()
        session.add_files([make_file("a.jpg")])
        await settle(lambda: fake_transfer.started)
        session.last_activity -= 3600

        assert await registry.expire_idle(max_idle=1800) == []
        assert session.closed is False

        fake_transfer.complete("a.jpg")
        await session.wait_idle()
        assert await registry.expire_idle(max_idle=1800) == [session.id]

    @pytest.mark.asyncio
    async def test_nothing_to_expire(self, registry):
        registry.create()
        assert await registry.expire_idle(max_idle=1800) == []
        assert len(registry) == 1
        await registry.close_all()


class TestSessionSweeper:
    @pytest.mark.asyncio
    async def test_loop_expires_idle_sessions(self, registry):
        for _ in range(3):
            registry.create().add_files([make_file()], auto_start=False)
        sweeper = SessionSweeper(registry, interval=0, max_idle=0)

        sweeper.start()
        assert sweeper.running is True
        await settle(lambda: len(registry) == 0)

        await sweeper.stop()
        assert sweeper.running is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_without_start(self, registry):
        sweeper = SessionSweeper(registry, interval=3600, max_idle=1800)
        await sweeper.stop()

        sweeper.start()
        sweeper.start()
        assert sweeper.running is True
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_sweep_once(self, registry):
        session = registry.create()
        session.last_activity -= 10
        sweeper = SessionSweeper(registry, interval=3600, max_idle=5)

        assert await sweeper.sweep() == [session.id]
        assert session.closed is True

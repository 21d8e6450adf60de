"""Tests for the expiry sweeper."""

import asyncio
from datetime import timedelta

import pytest
from flow_config import EngineSettings
from flow_core import EventType, ExpirySweeper, InMemoryEventSink, InvalidStateError, SessionEngine
from flow_runtime import SessionStatus, utcnow


@pytest.fixture
def events():
    """Record emitted events."""
    return InMemoryEventSink()


@pytest.fixture
def engine(events, balance_flow):
    """Engine with the balance flow published."""
    engine = SessionEngine(event_sink=events)
    engine.publish_flow(balance_flow)
    return engine


class TestExpirySweeper:
    """Tests for ExpirySweeper class."""

    @pytest.mark.asyncio
    async def test_sweep_expires_stale_sessions(self, engine, events):
        """Test that only sessions past their window are expired."""
        stale = await engine.create_session("balance", "0241234567", "*123#")
        fresh = await engine.create_session("balance", "0209876543", "*123#")
        stale.expires_at = utcnow() - timedelta(seconds=1)

        count = await ExpirySweeper(engine).sweep_once()

        assert count == 1
        assert stale.status == SessionStatus.EXPIRED
        assert fresh.status == SessionStatus.ACTIVE
        assert events.types(stale.session_id)[-1] == EventType.SESSION_EXPIRED

    @pytest.mark.asyncio
    async def test_sweep_with_reference_time(self, engine):
        """Test sweeping as of a future time."""
        session = await engine.create_session("balance", "0241234567", "*123#")

        count = await ExpirySweeper(engine).sweep_once(utcnow() + timedelta(hours=1))

        assert count == 1
        assert session.status == SessionStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_finished_sessions_are_left_alone(self, engine):
        """Test that completed sessions are never expired."""
        session = await engine.create_session("balance", "0241234567", "*123#")
        await engine.process_input(session, "0")

        sweeper = ExpirySweeper(engine, retention_seconds=7200)
        count = await sweeper.sweep_once(utcnow() + timedelta(hours=1))

        assert count == 0
        assert session.status == SessionStatus.COMPLETED
        assert engine.store.get(session.session_id) is session

    @pytest.mark.asyncio
    async def test_old_finished_sessions_are_removed(self, engine):
        """Test that finished sessions leave the store after the retention window."""
        done = await engine.create_session("balance", "0241234567", "*123#")
        await engine.process_input(done, "0")
        stopped = await engine.create_session("balance", "0209876543", "*123#")
        await engine.terminate_session(stopped.session_id)
        sweeper = ExpirySweeper(engine, retention_seconds=600)

        assert await sweeper.sweep_once(utcnow() + timedelta(minutes=5)) == 0
        assert engine.store.get(done.session_id) is done

        await sweeper.sweep_once(utcnow() + timedelta(minutes=11))

        assert engine.store.get(done.session_id) is None
        assert engine.store.get(stopped.session_id) is None
        assert engine.store.list() == []

    @pytest.mark.asyncio
    async def test_expired_session_is_kept_until_retention_elapses(self, engine):
        """Test that a session expired by a sweep is readable until a later sweep."""
        session = await engine.create_session("balance", "0241234567", "*123#")
        sweeper = ExpirySweeper(engine, retention_seconds=600)
        expiry_time = utcnow() + timedelta(hours=1)

        assert await sweeper.sweep_once(expiry_time) == 1
        assert engine.store.get(session.session_id) is session

        await sweeper.sweep_once(expiry_time + timedelta(minutes=11))

        assert engine.store.get(session.session_id) is None

    def test_retention_defaults_to_engine_settings(self):
        """Test that retention comes from the engine settings."""
        engine = SessionEngine(settings=EngineSettings(session_retention_seconds=90))

        assert ExpirySweeper(engine).retention_seconds == 90

    @pytest.mark.asyncio
    async def test_expired_session_rejects_input(self, engine):
        """Test that a swept session cannot be advanced."""
        session = await engine.create_session("balance", "0241234567", "*123#")
        session.expires_at = utcnow() - timedelta(seconds=1)
        await ExpirySweeper(engine).sweep_once()

        with pytest.raises(InvalidStateError):
            await engine.process_input(session, "1")

    @pytest.mark.asyncio
    async def test_input_renewal_wins_over_sweep(self, engine):
        """Test that a session renewed under its lock is not expired."""
        session = await engine.create_session("balance", "0241234567", "*123#")
        sweeper = ExpirySweeper(engine)
        later = utcnow() + timedelta(seconds=engine.settings.session_timeout_seconds + 1)

        async with engine.locks.hold(session.session_id):
            sweep = asyncio.create_task(sweeper.sweep_once(later))
            await asyncio.sleep(0)
            session.expires_at = later + timedelta(minutes=30)

        assert await sweep == 0
        assert session.status == SessionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine):
        """Test the background loop lifecycle."""
        sweeper = ExpirySweeper(engine, interval_seconds=0.01)

        await sweeper.start()
        assert sweeper.running is True

        await sweeper.stop()
        assert sweeper.running is False

    @pytest.mark.asyncio
    async def test_loop_sweeps_periodically(self, engine):
        """Test that the running loop expires stale sessions."""
        session = await engine.create_session("balance", "0241234567", "*123#")
        session.expires_at = utcnow() - timedelta(seconds=1)
        sweeper = ExpirySweeper(engine, interval_seconds=0.01)

        await sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert session.status == SessionStatus.EXPIRED

"""Tests for the application-level heartbeat monitor."""

import asyncio
import time

from office.server.settings import RelayServerSettings
from office.session.heartbeat import HeartbeatMonitor
from office.sync.settings import SyncSettings
from office.tests.mocks import MockConnection


class TestHeartbeatMonitor:
    async def test_silent_connection_is_closed(self, heartbeat):
        connection = MockConnection()
        heartbeat.record_connect(connection)

        closed = await heartbeat.close_stale_connections(now=time.monotonic() + 31)

        assert closed == [connection.connection_id]
        assert connection.is_closed
        assert connection.close_reason == "heartbeat_timeout"
        assert heartbeat.tracked_count == 0

    async def test_recent_connection_is_kept(self, heartbeat):
        connection = MockConnection()
        heartbeat.record_connect(connection)

        closed = await heartbeat.close_stale_connections(now=time.monotonic() + 10)

        assert closed == []
        assert not connection.is_closed
        assert heartbeat.tracked_count == 1

    async def test_ping_resets_the_clock(self, heartbeat):
        connection = MockConnection()
        heartbeat.record_connect(connection)
        heartbeat._last_ping[connection.connection_id] -= 25

        heartbeat.record_ping(connection.connection_id)

        assert await heartbeat.close_stale_connections(now=time.monotonic() + 10) == []

    async def test_disconnect_stops_tracking(self, heartbeat):
        connection = MockConnection()
        heartbeat.record_connect(connection)

        heartbeat.record_disconnect(connection.connection_id)
        heartbeat.record_ping(connection.connection_id)

        assert heartbeat.tracked_count == 0
        assert await heartbeat.close_stale_connections(now=time.monotonic() + 60) == []

    async def test_background_sweep(self):
        monitor = HeartbeatMonitor(timeout=0.01, check_interval=0.01)
        connection = MockConnection()
        monitor.record_connect(connection)

        monitor.start()
        monitor.start()
        await asyncio.sleep(0.1)
        await monitor.stop()

        assert connection.is_closed
        assert monitor._task is None

    async def test_default_pairing_survives_two_missed_keepalives(self, monkeypatch):
        monkeypatch.delenv("OFFICE_HEARTBEAT_TIMEOUT_SECONDS", raising=False)
        monkeypatch.delenv("OFFICE_SYNC_KEEPALIVE_INTERVAL_SECONDS", raising=False)
        monitor = HeartbeatMonitor(timeout=RelayServerSettings().heartbeat_timeout_seconds)
        keepalive = SyncSettings().keepalive_interval_seconds
        connection = MockConnection()
        connected_at = time.monotonic()
        monitor.record_connect(connection)

        closed = await monitor.close_stale_connections(now=connected_at + 2 * keepalive + 0.05)

        assert closed == []
        assert not connection.is_closed

import random

import pytest

from office.engine.office_state import OfficeState
from office.layout.models import OfficeLayout, create_blank_layout
from office.messaging.router import MessageRouter
from office.server.app import create_app
from office.server.settings import RelayServerSettings
from office.session.heartbeat import HeartbeatMonitor
from office.session.room_manager import RoomManager
from office.sync.settings import SyncSettings
from office.tests.mocks import MockConnection, RecordingTransport


@pytest.fixture
def open_floor() -> OfficeLayout:
    """A 10x10 room with no walls or furniture."""
    return create_blank_layout(10, 10)


@pytest.fixture
def office(open_floor):
    return OfficeState(open_floor, rng=random.Random(7))


@pytest.fixture
def sync_settings():
    return SyncSettings(position_interval_ms=200, teleport_threshold=10)


@pytest.fixture
def recording_transport():
    return RecordingTransport()


@pytest.fixture
def heartbeat():
    return HeartbeatMonitor(timeout=30, check_interval=5)


@pytest.fixture
def room_manager(heartbeat):
    return RoomManager(heartbeat=heartbeat, max_rooms=10, max_players_per_room=4, empty_room_ttl_seconds=0)


@pytest.fixture
def message_router(room_manager):
    return MessageRouter(room_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def relay_settings():
    return RelayServerSettings(max_rooms=10, max_players_per_room=4, empty_room_ttl_seconds=0)


@pytest.fixture
def app(relay_settings):
    return create_app(settings=relay_settings)

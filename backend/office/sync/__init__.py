"""Room synchronization: membership reconciliation, the synchronizer and its transports."""

from office.sync.membership import MembershipDelta, RoomMembership
from office.sync.presence import PresenceHub, PresenceTransport
from office.sync.relay import RelaySocket, RelayTransport
from office.sync.settings import SyncSettings
from office.sync.synchronizer import RoomSynchronizer
from office.sync.transport import Transport

__all__ = [
    "MembershipDelta",
    "PresenceHub",
    "PresenceTransport",
    "RelaySocket",
    "RelayTransport",
    "RoomMembership",
    "RoomSynchronizer",
    "SyncSettings",
    "Transport",
]

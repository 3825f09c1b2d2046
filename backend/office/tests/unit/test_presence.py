import random

import pytest

from office.engine.enums import PlayerStatus
from office.engine.office_state import OfficeState
from office.messaging.types import SessionErrorCode
from office.sync.presence import PRESENCE_ID_MAX, PRESENCE_ID_MIN, PresenceHub, channel_name
from office.sync.synchronizer import RoomSynchronizer


@pytest.fixture
def hub():
    return PresenceHub(rng=random.Random(3))


def _client(hub, seed):
    transport = hub.connect()
    return RoomSynchronizer(OfficeState(rng=random.Random(seed)), transport), transport


@pytest.fixture
def room(hub):
    """Two clients in one channel, all deliveries drained."""
    alice, alice_transport = _client(hub, 1)
    bob, bob_transport = _client(hub, 2)
    alice.create_room("Alice", 1)
    hub.drain()
    bob.join_room(alice.room_id, "Bob", 8)
    hub.drain()
    return alice, bob, alice_transport, bob_transport


def _inbox(transport):
    received = []
    transport.set_message_handler(received.append)
    return received


class TestPresenceMembership:
    def test_both_sides_see_each_other(self, hub, room):
        alice, bob, *_ = room

        assert alice.room_id == bob.room_id
        assert hub.has_channel(alice.room_id)
        assert channel_name(alice.room_id) in hub.channels
        assert alice.office.character_ids() == {alice.local_id, bob.local_id}
        assert bob.office.character_ids() == {alice.local_id, bob.local_id}

    def test_ids_are_six_digit_and_distinct(self, room):
        alice, bob, *_ = room

        for player_id in (alice.local_id, bob.local_id):
            assert PRESENCE_ID_MIN <= player_id <= PRESENCE_ID_MAX
        assert alice.local_id != bob.local_id

    def test_character_index_is_wrapped(self, hub, room):
        alice, bob, *_ = room

        record = next(p for p in hub.tracked(alice.room_id) if p.id == bob.local_id)
        assert record.character_index == 2
        assert alice.office.get_character(bob.local_id).variant == 2

    def test_leave_reaches_others_as_snapshot(self, hub, room):
        alice, bob, alice_transport, _ = room
        received = []
        original = alice.handle_message
        alice_transport.set_message_handler(lambda m: (received.append(m["type"]), original(m)))

        bob.leave_room()
        hub.drain()

        assert received == ["room_snapshot"]
        assert alice.office.character_ids() == {alice.local_id}
        assert [p.id for p in hub.tracked(alice.room_id)] == [alice.local_id]

    async def test_close_untracks(self, hub, room):
        alice, _, _, bob_transport = room

        await bob_transport.close()
        hub.drain()

        assert alice.office.character_ids() == {alice.local_id}
        assert bob_transport.room_id is None
        assert [p.id for p in hub.tracked(alice.room_id)] == [alice.local_id]


class TestPresenceDeltas:
    def test_status_change_fans_out(self, hub, room):
        alice, bob, *_ = room

        bob.set_status(PlayerStatus.CODING)
        hub.drain()

        assert alice.office.get_character(bob.local_id).status == PlayerStatus.CODING
        record = next(p for p in hub.tracked(alice.room_id) if p.id == bob.local_id)
        assert record.status == PlayerStatus.CODING

    def test_position_fans_out(self, hub, room):
        alice, bob, *_ = room

        bob.tick(16)
        hub.drain()

        bob_cell = bob.office.get_character(bob.local_id).cell
        remote = alice.office.get_character(bob.local_id)
        assert bob_cell in (remote.cell, remote.destination)

    def test_seat_claim_displaces_previous_holder(self, hub, room):
        alice, bob, *_ = room
        alice.reassign_seat("desk-1")
        hub.drain()

        bob.reassign_seat("desk-1")
        hub.drain()

        records = {p.id: p for p in hub.tracked(alice.room_id)}
        assert records[bob.local_id].seat_id == "desk-1"
        assert records[alice.local_id].seat_id is None
        assert alice.office.seat_occupant("desk-1") == bob.local_id


class TestPresenceErrors:
    def test_join_unknown_channel(self, hub):
        transport = hub.connect()
        received = _inbox(transport)

        transport.send({"type": "join_room", "room_id": "ZZZZZZ", "player_name": "Eve"})
        hub.drain()

        assert received[0]["type"] == "session_error"
        assert received[0]["code"] == SessionErrorCode.ROOM_NOT_FOUND

    def test_intent_outside_channel(self, hub):
        transport = hub.connect()
        received = _inbox(transport)

        transport.send({"type": "set_status", "status": "coding"})
        hub.drain()

        assert received[0]["code"] == SessionErrorCode.NOT_IN_ROOM

    def test_ping_gets_pong(self, hub):
        transport = hub.connect()
        received = _inbox(transport)

        transport.send({"type": "ping"})

        assert transport.pending_count == 1
        assert hub.drain() == 1
        assert received == [{"type": "pong"}]

    def test_malformed_intent_is_dropped(self, hub):
        transport = hub.connect()
        received = _inbox(transport)

        transport.send({"type": "teleport"})

        assert hub.drain() == 0
        assert received == []

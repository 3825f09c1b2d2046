"""End-to-end tests: synchronizers talking to the relay through an in-process loopback.

Each client owns a MockConnection registered with the real MessageRouter.
Outbound intents are pumped into the router, and whatever the router sent
back is delivered to the client's synchronizer, until nothing moves.
"""

import itertools
import random
from typing import Any

import pytest

from office.engine.enums import PlayerStatus
from office.engine.office_state import OfficeState
from office.layout.geometry import Cell
from office.layout.models import create_default_layout
from office.messaging.router import MessageRouter
from office.sync.synchronizer import RoomSynchronizer
from office.sync.transport import Transport
from office.tests.mocks import MockConnection


class LoopbackTransport(Transport):
    def __init__(self, router: MessageRouter) -> None:
        super().__init__()
        self._router = router
        self._outbound: list[dict[str, Any]] = []
        self._delivered = 0
        self.connection = MockConnection()
        self.dropped_types: set[str] = set()

    def send(self, message: dict[str, Any]) -> None:
        self._outbound.append(message)

    async def close(self) -> None:
        await self._router.handle_disconnect(self.connection)

    async def connect(self) -> None:
        await self._router.handle_connect(self.connection)

    async def reconnect(self) -> None:
        """Drop the current connection and come back on a fresh one."""
        await self._router.handle_disconnect(self.connection)
        self.connection = MockConnection()
        self._delivered = 0
        await self.connect()
        self._notify_reconnect()

    async def pump(self) -> int:
        outbound, self._outbound = self._outbound, []
        for message in outbound:
            await self._router.handle_message(self.connection, message)
        return len(outbound)

    def deliver(self) -> int:
        inbound = self.connection.sent_messages[self._delivered :]
        self._delivered += len(inbound)
        for message in inbound:
            if message["type"] not in self.dropped_types:
                self._deliver(message)
        return len(inbound)


async def _settle(*transports: LoopbackTransport, rounds: int = 20) -> None:
    for _ in range(rounds):
        moved = 0
        for transport in transports:
            moved += await transport.pump()
        for transport in transports:
            moved += transport.deliver()
        if moved == 0:
            return
    raise AssertionError("relay traffic did not settle")


async def _run(ticks: int, *clients: tuple[RoomSynchronizer, LoopbackTransport]) -> None:
    for _ in range(ticks):
        for sync, _transport in clients:
            sync.tick(100)
        await _settle(*(transport for _sync, transport in clients))


@pytest.fixture
def make_client(message_router):
    async def _make(seed: int) -> tuple[RoomSynchronizer, LoopbackTransport]:
        transport = LoopbackTransport(message_router)
        await transport.connect()
        office = OfficeState(create_default_layout(), rng=random.Random(seed))
        # every clock read is a second later, so position sends are never throttled
        clock = itertools.count(0.0, 1.0).__next__
        return RoomSynchronizer(office, transport, clock=clock), transport

    return _make


@pytest.fixture
async def room(make_client):
    alice, alice_transport = await make_client(1)
    bob, bob_transport = await make_client(2)
    alice.create_room("Alice", 1)
    await _settle(alice_transport, bob_transport)
    bob.join_room(alice.room_id.lower(), "Bob", 2)
    await _settle(alice_transport, bob_transport)
    return alice, bob, alice_transport, bob_transport


class TestMembership:
    async def test_both_clients_see_each_other(self, room):
        alice, bob, _, _ = room

        assert alice.local_id == 1
        assert bob.local_id == 2
        assert alice.room_id == bob.room_id
        assert alice.office.character_ids() == {1, 2}
        assert bob.office.character_ids() == {1, 2}
        assert alice.office.get_character(2).is_remote
        assert bob.office.get_character(2).is_local
        assert alice.office.get_character(2).variant == 2

    async def test_leave_removes_character_everywhere(self, room):
        alice, bob, alice_transport, bob_transport = room

        bob.leave_room()
        await _settle(alice_transport, bob_transport)

        assert alice.office.character_ids() == {1}
        assert bob.office.character_ids() == set()
        assert bob.room_id is None

    async def test_missed_leave_heals_on_snapshot(self, room, room_manager):
        alice, bob, alice_transport, bob_transport = room
        alice_transport.dropped_types = {"player_left"}

        bob.leave_room()
        await _settle(alice_transport, bob_transport)
        assert alice.office.character_ids() == {1, 2}

        await room_manager.broadcast_snapshots()
        await _settle(alice_transport, bob_transport)

        assert alice.office.character_ids() == {1}
        assert alice.membership.ids == {1}

    async def test_third_client_joins_late(self, room, make_client):
        alice, bob, alice_transport, bob_transport = room
        carol, carol_transport = await make_client(3)

        carol.join_room(alice.room_id, "Carol", 5)
        await _settle(alice_transport, bob_transport, carol_transport)

        for sync in (alice, bob, carol):
            assert sync.office.character_ids() == {1, 2, 3}


class TestStateRelay:
    async def test_status_propagates(self, room):
        alice, bob, alice_transport, bob_transport = room

        bob.set_status(PlayerStatus.CODING)
        await _settle(alice_transport, bob_transport)

        assert alice.office.get_character(2).status == PlayerStatus.CODING
        assert alice.membership.get(2).status == PlayerStatus.CODING

    async def test_remote_walks_to_claimed_seat(self, room):
        alice, bob, alice_transport, bob_transport = room

        alice.reassign_seat("desk-1")
        alice.set_status(PlayerStatus.CODING)
        await _settle(alice_transport, bob_transport)

        assert bob.office.seat_occupant("desk-1") == 1
        await _run(200, (alice, alice_transport), (bob, bob_transport))

        remote = bob.office.get_character(1)
        assert remote.is_on_seat
        assert remote.cell == Cell(3, 4)
        assert alice.office.get_character(1).is_on_seat

    async def test_sequential_seat_conflict_converges(self, room):
        alice, bob, alice_transport, bob_transport = room

        alice.reassign_seat("desk-1")
        await _settle(alice_transport, bob_transport)
        bob.reassign_seat("desk-1")
        await _settle(alice_transport, bob_transport)

        for sync in (alice, bob):
            assert sync.office.seat_occupant("desk-1") == 2
            assert sync.office.get_character(1).seat_id is None
            assert sync.office.get_character(2).seat_id == "desk-1"

    async def test_local_movement_is_mirrored(self, room):
        alice, bob, alice_transport, bob_transport = room

        assert alice.office.move_to(1, 10, 5)
        await _run(150, (alice, alice_transport), (bob, bob_transport))

        assert alice.office.get_character(1).cell == Cell(10, 5)
        assert bob.office.get_character(1).cell == Cell(10, 5)
        assert bob.membership.get(1).col == 10


class TestRoomSwitch:
    async def test_join_another_room_moves_player_between_rooms(self, room, make_client, room_manager):
        alice, bob, alice_transport, bob_transport = room
        carol, carol_transport = await make_client(3)
        carol.create_room("Carol", 4)
        await _settle(alice_transport, bob_transport, carol_transport)
        first_room, second_room = alice.room_id, carol.room_id

        bob.join_room(second_room, "Bob", 2)
        await _settle(alice_transport, bob_transport, carol_transport)

        assert bob.last_error is None
        assert bob.room_id == second_room
        assert bob.local_id == 2
        assert bob.office.character_ids() == {1, 2}
        assert carol.office.character_ids() == {1, 2}
        assert alice.office.character_ids() == {1}
        assert [p.player_id for p in room_manager.get_room(first_room).players.values()] == [1]
        assert room_manager.get_room(second_room).player_count == 2

    async def test_create_room_while_in_one(self, room, room_manager):
        alice, bob, alice_transport, bob_transport = room
        first_room = alice.room_id

        bob.create_room("Bob", 2)
        await _settle(alice_transport, bob_transport)

        assert bob.last_error is None
        assert bob.room_id not in (None, first_room)
        assert bob.local_id == 1
        assert bob.office.character_ids() == {1}
        assert alice.office.character_ids() == {1}
        assert room_manager.room_count == 2


class TestReconnect:
    async def test_rejoin_rekeys_local_character(self, room):
        alice, bob, alice_transport, bob_transport = room
        bob.set_status(PlayerStatus.CODING)
        await _settle(alice_transport, bob_transport)
        local = bob.office.get_character(2)

        await bob_transport.reconnect()
        await _settle(alice_transport, bob_transport)

        assert bob.local_id == 3
        assert bob.office.get_character(3) is local
        assert bob.office.character_ids() == {1, 3}
        assert alice.office.character_ids() == {1, 3}
        assert alice.office.get_character(3).status == PlayerStatus.CODING
        assert (alice.membership.get(3).col, alice.membership.get(3).row) == (local.col, local.row)

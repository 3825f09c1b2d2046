import pytest

from office.engine.character import Character
from office.engine.enums import CharacterState, PlayerStatus
from office.layout.geometry import Cell, Direction
from office.layout.tile_map import SeatAnchor

SEAT = SeatAnchor(seat_id="desk-1", desk=Cell(3, 3), chair=Cell(3, 4))


def _walker(path):
    character = Character(id=1, variant=0, col=0, row=0)
    character.assign_path(path)
    return character


class TestAssignPath:
    def test_walking_state_and_facing(self):
        character = _walker([Cell(1, 0), Cell(2, 0)])

        assert character.state == CharacterState.WALKING
        assert character.facing == Direction.RIGHT
        assert character.destination == Cell(2, 0)

    def test_empty_path_settles(self):
        character = _walker([Cell(1, 0)])

        character.assign_path([])

        assert character.state == CharacterState.IDLE
        assert character.path == []

    def test_progress_kept_when_next_step_is_unchanged(self):
        character = _walker([Cell(1, 0), Cell(2, 0)])
        character.advance(0.1)

        character.assign_path([Cell(1, 0), Cell(1, 1)])

        assert character.move_progress == pytest.approx(0.3)

    def test_progress_reset_when_next_step_changes(self):
        character = _walker([Cell(1, 0)])
        character.advance(0.1)

        character.assign_path([Cell(0, 1)])

        assert character.move_progress == 0.0
        assert character.facing == Direction.DOWN


class TestAdvance:
    def test_delta_is_clamped(self):
        character = _walker([Cell(1, 0)])

        moved = character.advance(5.0)

        assert not moved
        assert character.move_progress == pytest.approx(0.3)
        assert character.cell == Cell(0, 0)

    def test_negative_delta_does_not_move(self):
        character = _walker([Cell(1, 0)])

        assert not character.advance(-1.0)
        assert character.move_progress == 0.0

    def test_steps_after_accumulating_a_full_tile(self):
        character = _walker([Cell(1, 0), Cell(2, 0)])

        moves = [character.advance(0.1) for _ in range(4)]

        assert moves == [False, False, False, True]
        assert character.cell == Cell(1, 0)
        assert character.path == [Cell(2, 0)]
        assert character.move_progress == pytest.approx(0.2)

    def test_idle_when_path_exhausted_off_seat(self):
        character = _walker([Cell(0, 1)])

        for _ in range(5):
            character.advance(0.1)

        assert character.cell == Cell(0, 1)
        assert character.state == CharacterState.IDLE
        assert character.facing == Direction.DOWN
        assert character.move_progress == 0.0

    def test_pixel_position_interpolates_toward_next_cell(self):
        character = _walker([Cell(1, 0)])
        character.move_progress = 0.5

        assert character.pixel_position == (16.0, 8.0)

    def test_no_path_does_nothing(self):
        character = Character(id=1, variant=0, col=2, row=2)

        assert not character.advance(0.1)
        assert character.state == CharacterState.IDLE


class TestSitting:
    def test_sits_on_arrival_at_bound_chair(self):
        character = Character(id=1, variant=0, col=3, row=6, status=PlayerStatus.CODING)
        character.bind_seat(SEAT)
        character.assign_path([Cell(3, 5), Cell(3, 4)])

        while character.path:
            character.advance(0.1)

        assert character.state == CharacterState.SITTING_ACTIVE
        assert character.facing == Direction.UP

    def test_sitting_substate_follows_status(self):
        character = Character(id=1, variant=0, col=3, row=4)
        character.bind_seat(SEAT)
        assert character.state == CharacterState.SITTING_IDLE

        character.set_status(PlayerStatus.READING)
        assert character.state == CharacterState.SITTING_ACTIVE

        character.set_status(PlayerStatus.AFK)
        assert character.state == CharacterState.SITTING_IDLE

    def test_status_change_does_not_seat_a_standing_character(self):
        character = Character(id=1, variant=0, col=0, row=0)

        character.set_status(PlayerStatus.CODING)

        assert character.state == CharacterState.IDLE

    def test_clearing_seat_stands_up_in_place(self):
        character = Character(id=1, variant=0, col=3, row=4)
        character.bind_seat(SEAT)

        character.bind_seat(None)

        assert character.state == CharacterState.IDLE
        assert character.cell == Cell(3, 4)

    def test_new_path_from_seat_walks(self):
        character = Character(id=1, variant=0, col=3, row=4)
        character.bind_seat(SEAT)

        character.assign_path([Cell(3, 5)])

        assert character.state == CharacterState.WALKING
        assert character.seat_id == "desk-1"

    def test_place_at_settles(self):
        character = _walker([Cell(1, 0)])
        character.bind_seat(SEAT)

        character.place_at(Cell(3, 4))

        assert character.path == []
        assert character.state == CharacterState.SITTING_IDLE

import random

import pytest

from office.engine.character import Character
from office.engine.enums import CharacterState
from office.engine.office_state import OfficeState
from office.engine.wander import IdleWander
from office.layout.geometry import Cell
from office.tests.helpers.layouts import desk, layout_from_rows


class TestIdleWander:
    def test_rejects_inverted_range(self):
        with pytest.raises(ValueError, match="Invalid wander pause range"):
            IdleWander(random.Random(), min_pause=5.0, max_pause=1.0)

    def test_pause_within_range(self):
        wander = IdleWander(random.Random(4), min_pause=2.0, max_pause=3.0)

        assert all(2.0 <= wander.next_pause() <= 3.0 for _ in range(50))

    def test_only_idle_unseated_local_characters_are_eligible(self):
        wander = IdleWander(random.Random())

        assert wander.is_eligible(Character(id=1, variant=0, col=0, row=0, is_local=True))
        assert not wander.is_eligible(Character(id=2, variant=0, col=0, row=0))
        walking = Character(id=3, variant=0, col=0, row=0, is_local=True)
        walking.assign_path([Cell(1, 0)])
        assert not wander.is_eligible(walking)


class TestWanderInOffice:
    def test_local_character_wanders_remote_does_not(self, open_floor):
        office = OfficeState(open_floor, rng=random.Random(11), wander=True)
        office.add_character(1, 0, cell=Cell(0, 0), is_local=True)
        office.add_character(2, 0, cell=Cell(9, 9))
        local, remote = office.get_character(1), office.get_character(2)

        local_walked = False
        for _ in range(300):
            office.tick(100)
            local_walked = local_walked or local.state == CharacterState.WALKING
            assert remote.state == CharacterState.IDLE

        assert local_walked
        assert remote.cell == Cell(9, 9)

    def test_seated_local_character_stays_put(self):
        layout = layout_from_rows(*("......",) * 6, furniture=(desk("desk-1", 2, 2),))
        office = OfficeState(layout, rng=random.Random(11), wander=True)
        office.add_character(1, 0, "desk-1", is_local=True)

        for _ in range(300):
            office.tick(100)

        character = office.get_character(1)
        assert character.cell == Cell(2, 3)
        assert character.state == CharacterState.SITTING_IDLE

    def test_disabled_by_default(self, office):
        office.add_character(1, 0, cell=Cell(0, 0), is_local=True)

        for _ in range(300):
            office.tick(100)

        assert not office.wander_enabled
        assert office.get_character(1).cell == Cell(0, 0)

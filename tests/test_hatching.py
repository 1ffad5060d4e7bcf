"""Tests for the hatching contract."""

from dataclasses import replace

from py_terrarium.core.coordinates import Coordinate
from py_terrarium.core.hatching import HatchResult, hatch_in_place, spawn_animal
from py_terrarium.core.models import Board, Creature, CreatureState, Egg, GameState


def make_state(occupied=False):
    egg_creature = Creature(
        id="egg-1", species="snake", owner_id=0, position=Coordinate(1, 1), state=CreatureState.DORMANT
    )
    creatures = [egg_creature]
    if occupied:
        creatures.append(Creature(id="squatter", species="turtle", owner_id=1, position=Coordinate(1, 1)))
    return GameState(
        board=Board.filled(3, 3),
        creatures=tuple(creatures),
        eggs={"egg-1": Egg(id="egg-1", owner_id=0, position=Coordinate(1, 1), biome_id="biome-0")},
    )


class TestHatchInPlace:
    def test_activates_and_unindexes(self):
        result = hatch_in_place("egg-1", make_state())

        hatched = result.creatures[0]
        assert hatched.state == CreatureState.ACTIVE
        assert hatched.has_moved is True
        assert result.eggs == {}
        assert result.new_creature_id == "egg-1"
        assert result.biome_id_affected == "biome-0"
        assert result.displacement_event is None

    def test_displaces_occupant(self):
        result = hatch_in_place("egg-1", make_state(occupied=True))

        assert result.displacement_event.creature_id == "squatter"
        squatter = next(c for c in result.creatures if c.id == "squatter")
        assert squatter.position == (1, 0)

    def test_unknown_egg(self):
        state = make_state()
        result = hatch_in_place("nope", state)
        assert result.creatures == state.creatures
        assert result.new_creature_id is None


class TestSpawnAnimal:
    def test_merges_result(self):
        state, result = spawn_animal("egg-1", make_state())
        assert result is not None
        assert state.eggs == {}
        assert not state.creatures[0].is_dormant

    def test_not_an_egg(self):
        original = make_state()
        state, result = spawn_animal("squatter", original)
        assert result is None
        assert state is original

    def test_custom_hatcher(self):
        """The hatcher decides the outcome; spawn_animal only merges it."""

        def recolour(egg_id, state):
            biomes = {"biome-0": "marker"}
            return HatchResult(
                creatures=tuple(replace(c, species="bird") for c in state.creatures),
                board=state.board,
                biomes=biomes,
                eggs={},
                new_creature_id=egg_id,
            )

        state, _ = spawn_animal("egg-1", make_state(), hatcher=recolour)
        assert state.creatures[0].species == "bird"
        assert state.biomes == {"biome-0": "marker"}

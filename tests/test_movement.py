"""Tests for movement and collision resolution."""

from dataclasses import replace

import numpy as np
import pytest

from py_terrarium.core.coordinates import Coordinate
from py_terrarium.core.environment import no_effect
from py_terrarium.core.models import Board, Creature, Egg, Facing, GameState, TerrainType
from py_terrarium.core.movement import (
    calculate_valid_moves,
    determine_previous_direction,
    get_valid_displacement_tiles,
    handle_displacement,
    move_animal,
    reset_movement_flags,
    resolve_spawn_collision,
)


def creature(creature_id, x, y, species="turtle", owner_id=0, **kwargs):
    return Creature(id=creature_id, species=species, owner_id=owner_id, position=Coordinate(x, y), **kwargs)


def make_state(creatures, width=4, height=4, board=None, eggs=None):
    return GameState(
        board=board if board is not None else Board.filled(width, height),
        creatures=tuple(creatures),
        eggs=eggs or {},
    )


def positions(creatures):
    return [c.position for c in creatures]


class TestMoveAnimal:
    """Test a single move action."""

    def test_collision_displaces_occupant(self):
        u1 = creature("u1", 0, 0)
        u2 = creature("u2", 1, 0, owner_id=1)
        state = make_state([u1, u2])

        result = move_animal("u1", 1, 0, state)
        by_id = {c.id: c for c in result.creatures}

        assert by_id["u1"].position == (1, 0)
        assert by_id["u2"].position != (1, 0)
        # No previous direction: first free tile clockwise from north
        assert by_id["u2"].position == (2, 0)
        assert result.displacement_event is not None
        assert result.displacement_event.creature_id == "u2"
        assert result.displacement_event.from_position == (1, 0)
        assert result.displacement_event.to_position == (2, 0)

    def test_displaced_creature_keeps_moved_flag(self):
        u1 = creature("u1", 0, 0)
        u2 = creature("u2", 1, 0, owner_id=1)
        result = move_animal("u1", 1, 0, make_state([u1, u2]))
        displaced = next(c for c in result.creatures if c.id == "u2")
        assert displaced.has_moved is False
        assert displaced.previous_position == (1, 0)

    def test_move_to_free_tile(self):
        state = make_state([creature("u1", 1, 1)])
        result = move_animal("u1", 2, 2, state)

        moved = result.creatures[0]
        assert moved.position == (2, 2)
        assert moved.previous_position == (1, 1)
        assert moved.has_moved is True
        assert result.displacement_event is None

    def test_input_state_not_modified(self):
        u1 = creature("u1", 0, 0)
        state = make_state([u1])
        move_animal("u1", 1, 0, state)
        assert state.creatures[0] is u1
        assert u1.position == (0, 0)

    @pytest.mark.parametrize(
        "start,target,facing",
        [
            ((1, 1), (2, 1), Facing.RIGHT),
            ((1, 1), (0, 2), Facing.LEFT),
        ],
    )
    def test_facing_follows_horizontal_motion(self, start, target, facing):
        state = make_state([creature("u1", *start, facing=Facing.LEFT if facing == Facing.RIGHT else Facing.RIGHT)])
        result = move_animal("u1", *target, state)
        assert result.creatures[0].facing == facing

    def test_vertical_move_keeps_facing(self):
        state = make_state([creature("u1", 1, 1, facing=Facing.RIGHT)])
        result = move_animal("u1", 1, 2, state)
        assert result.creatures[0].facing == Facing.RIGHT

    def test_unknown_creature_is_noop(self):
        state = make_state([creature("u1", 1, 1)])
        result = move_animal("ghost", 2, 2, state)
        assert result.creatures == state.creatures
        assert result.displacement_event is None

    def test_missing_board_is_noop(self):
        state = GameState(board=None, creatures=(creature("u1", 1, 1),))
        result = move_animal("u1", 2, 2, state)
        assert result.creatures == state.creatures

    def test_mover_dying_skips_collision(self):
        u1 = creature("u1", 0, 0)
        u2 = creature("u2", 1, 0, owner_id=1)

        def lethal(c, board):
            return replace(c, health=0)

        result = move_animal("u1", 1, 0, make_state([u1, u2]), environment_effect=lethal)

        assert [c.id for c in result.creatures] == ["u2"]
        assert result.creatures[0].position == (1, 0)
        assert result.displacement_event is None

    def test_dead_creatures_are_removed(self):
        u1 = creature("u1", 0, 0)
        corpse = creature("dead", 3, 3, health=0)
        result = move_animal("u1", 1, 0, make_state([u1, corpse]), environment_effect=no_effect)
        assert [c.id for c in result.creatures] == ["u1"]

    def test_hostile_terrain_costs_health(self):
        terrain = [[TerrainType.GRASS, TerrainType.MOUNTAIN]]
        state = make_state([creature("u1", 0, 0, health=4)], board=Board.from_terrain(terrain))
        result = move_animal("u1", 1, 0, state)
        assert result.creatures[0].health == 3

    def test_eggs_do_not_collide(self):
        u1 = creature("u1", 0, 0)
        egg = creature("egg1", 1, 0)
        eggs = {"egg1": Egg(id="egg1", owner_id=0, position=Coordinate(1, 0))}
        result = move_animal("u1", 1, 0, make_state([u1, egg], eggs=eggs))

        assert result.displacement_event is None
        assert positions(result.creatures) == [(1, 0), (1, 0)]


class TestDisplacement:
    """Test where a pushed creature lands."""

    def test_continues_in_previous_direction(self):
        # u2 last moved east from (1, 2) to (2, 2)
        u2 = creature("u2", 2, 2, owner_id=1, previous_position=Coordinate(1, 2))
        u1 = creature("u1", 2, 1)
        result = move_animal("u1", 2, 2, make_state([u1, u2], width=5, height=5))

        assert result.displacement_event.to_position == (3, 2)

    def test_falls_back_to_neighbouring_heading(self):
        u2 = creature("u2", 2, 2, owner_id=1, previous_position=Coordinate(1, 2))
        u1 = creature("u1", 2, 1)
        blocker = creature("u3", 3, 2, owner_id=1)
        result = move_animal("u1", 2, 2, make_state([u1, u2, blocker], width=5, height=5))

        assert result.displacement_event.to_position == (3, 3)

    def test_no_legal_tile_leaves_creature(self):
        # The only neighbour is mountain, which a snake cannot stand on
        board = Board.from_terrain([[TerrainType.MOUNTAIN, TerrainType.GRASS]])
        u1 = creature("u1", 0, 0, species="buffalo")
        u2 = creature("u2", 1, 0, species="snake", owner_id=1)
        result = move_animal("u1", 1, 0, make_state([u1, u2], board=board))

        assert result.displacement_event is None
        assert positions(result.creatures) == [(1, 0), (1, 0)]

    def test_handle_displacement_directly(self):
        mover = creature("m", 1, 1)
        occupant = creature("o", 1, 1, owner_id=1)
        board = Board.filled(3, 3)
        result = handle_displacement(1, 1, occupant, [mover, occupant], board)

        assert result.event.to_position == (1, 0)
        assert result.creatures[1].position == (1, 0)

    def test_valid_displacement_tiles_order_and_blocking(self):
        board = Board.filled(3, 3)
        others = [creature("a", 1, 0), creature("b", 2, 1)]
        tiles = get_valid_displacement_tiles((1, 1), others, board)
        assert tiles == [(2, 0), (2, 2), (1, 2), (0, 2), (0, 1), (0, 0)]

    def test_valid_displacement_tiles_ignore_eggs(self):
        board = Board.filled(3, 3)
        others = [creature("egg", 1, 0)]
        tiles = get_valid_displacement_tiles((1, 1), others, board, eggs={"egg"})
        assert tiles[0] == (1, 0)

    def test_valid_displacement_tiles_without_board(self):
        assert get_valid_displacement_tiles((0, 0), [], None) == []

    def test_previous_direction(self):
        assert determine_previous_direction(creature("a", 2, 2)) is None
        moved = creature("a", 2, 2, previous_position=Coordinate(0, 3))
        assert determine_previous_direction(moved) == (1, -1)

    def test_spawn_collision_spares_the_spawned_creature(self):
        board = Board.filled(3, 3)
        hatched = creature("h", 1, 1)
        occupant = creature("o", 1, 1, owner_id=1)
        result = resolve_spawn_collision(1, 1, [hatched, occupant], board, spawned_id="h")

        assert result.event.creature_id == "o"
        assert result.creatures[0].position == (1, 1)

    def test_spawn_collision_on_empty_tile(self):
        board = Board.filled(3, 3)
        result = resolve_spawn_collision(1, 1, [creature("h", 1, 1)], board, spawned_id="h")
        assert result.event is None


class TestOccupancyInvariant:
    """Random play keeps one creature per tile and everyone on the board."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_random_moves(self, seed):
        rng = np.random.default_rng(seed)
        creatures = [
            creature("a", 0, 0),
            creature("b", 5, 5, owner_id=1),
            creature("c", 2, 3),
            creature("d", 4, 1, owner_id=1),
        ]
        state = make_state(creatures, width=6, height=6)

        for _ in range(60):
            mover = state.creatures[int(rng.integers(len(state.creatures)))]
            moves = calculate_valid_moves(mover, state.board, state.creatures, include_occupied=True)
            if not moves:
                continue
            target = moves[int(rng.integers(len(moves)))]
            result = move_animal(mover.id, target.x, target.y, state, environment_effect=no_effect)
            state = replace(state, creatures=reset_movement_flags(result.creatures))

            occupied = positions(state.creatures)
            assert len(set(occupied)) == len(occupied)
            assert all(state.board.in_bounds(x, y) for x, y in occupied)
            assert len(state.creatures) == 4


class TestValidMoves:
    """Test breadth-first move computation."""

    def test_turtle_in_open_field(self):
        board = Board.filled(3, 3)
        moves = calculate_valid_moves(creature("t", 1, 1), board, [])
        assert len(moves) == 8
        assert (1, 1) not in moves

    def test_occupied_tiles_block(self):
        board = Board.filled(3, 3)
        t = creature("t", 1, 1)
        other = creature("o", 2, 2, owner_id=1)
        moves = calculate_valid_moves(t, board, [t, other])
        assert (2, 2) not in moves
        assert len(moves) == 7

    def test_include_occupied(self):
        board = Board.filled(3, 3)
        t = creature("t", 1, 1)
        other = creature("o", 2, 2, owner_id=1)
        moves = calculate_valid_moves(t, board, [t, other], include_occupied=True)
        assert (2, 2) in moves

    def test_occupied_tiles_are_not_passed_through(self):
        board = Board.filled(5, 5)
        snake = creature("s", 0, 0, species="snake")
        walls = [creature(f"w{i}", x, y, owner_id=1) for i, (x, y) in enumerate([(1, 0), (1, 1), (0, 1)])]

        assert calculate_valid_moves(snake, board, [snake] + walls) == []
        reachable = calculate_valid_moves(snake, board, [snake] + walls, include_occupied=True)
        assert set(reachable) == {(1, 0), (1, 1), (0, 1)}

    def test_range_follows_species(self):
        board = Board.filled(5, 5)
        moves = calculate_valid_moves(creature("s", 0, 0, species="snake"), board, [])
        assert set(moves) == {(x, y) for x in range(3) for y in range(3)} - {(0, 0)}

    def test_incompatible_terrain_excluded(self):
        board = Board.from_terrain([[TerrainType.GRASS, TerrainType.MOUNTAIN, TerrainType.GRASS]])
        moves = calculate_valid_moves(creature("s", 0, 0, species="snake"), board, [])
        assert moves == []

    def test_moved_creatures_and_eggs_get_nothing(self):
        board = Board.filled(3, 3)
        assert calculate_valid_moves(creature("t", 1, 1, has_moved=True), board, []) == []
        assert calculate_valid_moves(creature("e", 1, 1), board, [], eggs={"e"}) == []


class TestResetMovementFlags:
    def test_only_flag_changes(self):
        moved = creature("a", 1, 1, has_moved=True, health=3, previous_position=Coordinate(0, 0))
        reset = reset_movement_flags([moved, creature("b", 2, 2)])

        assert [c.has_moved for c in reset] == [False, False]
        assert reset[0] == replace(moved, has_moved=False)

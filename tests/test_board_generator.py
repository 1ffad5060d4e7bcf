"""Tests for map generation."""

import numpy as np
import pytest

from py_terrarium.core.board_generator import create_game_state, initialize_board, place_nodes
from py_terrarium.core.coordinates import manhattan_distance
from py_terrarium.core.models import TerrainType


class TestPlaceNodes:
    """Test biome seed node placement."""

    def test_uniform_terrain_respects_spacing(self):
        terrain = [[TerrainType.GRASS] * 20 for _ in range(20)]
        nodes = place_nodes(terrain, np.random.default_rng(0), min_separation=5)

        assert len(nodes) > 1
        for i, a in enumerate(nodes):
            assert 1 <= a.position.x <= 18 and 1 <= a.position.y <= 18
            for b in nodes[i + 1:]:
                assert manhattan_distance(*a.position, *b.position) >= 5

    def test_ids_are_sequential(self):
        terrain = [[TerrainType.GRASS] * 12 for _ in range(12)]
        nodes = place_nodes(terrain, np.random.default_rng(1))
        assert [n.id for n in nodes] == [f"biome-{i}" for i in range(len(nodes))]

    def test_one_node_per_terrain_type_first(self):
        terrain = [[TerrainType.WATER] * 10 for _ in range(10)]
        terrain[5][5] = TerrainType.BEACH
        nodes = place_nodes(terrain, np.random.default_rng(2))
        assert nodes[0].position == (5, 5)

    def test_no_interior(self):
        terrain = [[TerrainType.GRASS] * 2 for _ in range(2)]
        assert place_nodes(terrain, np.random.default_rng(0)) == []


class TestInitializeBoard:
    """Test the whole generation pass."""

    @pytest.fixture(scope="class")
    def generated(self):
        return initialize_board(30, 30, 2, seed=42)

    def test_every_tile_has_a_known_biome(self, generated):
        for tile in generated.board.iter_tiles():
            assert tile.biome_id in generated.biomes

    def test_habitats_match_biomes(self, generated):
        habitat_tiles = [t for t in generated.board.iter_tiles() if t.is_habitat]
        assert len(habitat_tiles) == len(generated.biomes)
        for biome in generated.biomes.values():
            tile = generated.board.tile_at(*biome.habitat.position)
            assert tile.is_habitat
            assert tile.biome_id == biome.id

    def test_players_start_on_beach_biomes(self, generated):
        for player_id in range(2):
            owned = [b for b in generated.biomes.values() if b.owner_id == player_id]
            assert len(owned) <= 1
            for biome in owned:
                assert generated.board.tile_at(*biome.habitat.position).terrain == TerrainType.BEACH

    def test_starting_creatures(self, generated):
        positions = [c.position for c in generated.creatures]
        assert len(set(positions)) == len(positions)
        for c in generated.creatures:
            assert generated.board.in_bounds(*c.position)
            assert c.species == "turtle"
            assert c.health == 10
            assert c.owner_id in (0, 1)

    def test_reproducible(self, generated):
        again = initialize_board(30, 30, 2, seed=42)
        assert again.board == generated.board
        assert again.creatures == generated.creatures

    def test_degenerate_board_gets_single_biome(self):
        generated = initialize_board(2, 2, 1, seed=0)
        assert list(generated.biomes) == ["biome-0"]
        assert all(t.biome_id == "biome-0" for t in generated.board.iter_tiles())


class TestCreateGameState:
    def test_players_and_visibility(self):
        state = create_game_state(20, 20, 3, seed=7)

        assert [p.name for p in state.players] == ["Player 1", "Player 2", "Player 3"]
        assert state.active_player_id == 0
        assert state.turn == 1
        for player in state.players:
            assert all(state.board.in_bounds(x, y) for x, y in player.visible_tiles)

    def test_fog_disabled_reveals_board(self):
        state = create_game_state(12, 10, 2, seed=7, fog_of_war_enabled=False)
        assert all(len(p.visible_tiles) == 120 for p in state.players)

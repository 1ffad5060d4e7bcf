"""
Core simulation functionality.
"""

from .coordinates import Coordinate, coord_key, get_adjacent_tiles, manhattan_distance
from .models import Biome, Board, Creature, CreatureState, Egg, Facing, GameState, Player, TerrainType
from .partition import VoronoiNode, generate_partition, generate_voronoi_biomes, is_node_overlapping
from .movement import handle_displacement, move_animal, reset_movement_flags
from .visibility import VisibilityEngine, GameStateReader, diff_visible_tiles
from .board_generator import create_game_state, initialize_board
from .game import GameSession

__all__ = ['Coordinate', 'coord_key', 'get_adjacent_tiles', 'manhattan_distance',
           'Biome', 'Board', 'Creature', 'CreatureState', 'Egg', 'Facing', 'GameState',
           'Player', 'TerrainType',
           'VoronoiNode', 'generate_partition', 'generate_voronoi_biomes', 'is_node_overlapping',
           'handle_displacement', 'move_animal', 'reset_movement_flags',
           'VisibilityEngine', 'GameStateReader', 'diff_visible_tiles',
           'create_game_state', 'initialize_board', 'GameSession']

"""
Map generation.

Runs once per game, upstream of play:
1. Generate island terrain
2. Place biome seed nodes, one per terrain type first (beach, grass,
   mountain, water, underwater), then round-robin until no candidate keeps
   the minimum spacing
3. Partition the board around the nodes
4. Build biome and habitat records, hand the first beach biomes to players
5. Put one starting creature next to each owned habitat
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..config import settings
from .coordinates import DIRECTIONS_8, Coordinate
from .models import Biome, Board, Creature, Facing, GameState, Habitat, Player, TerrainType
from .partition import VoronoiNode, generate_voronoi_biomes, is_node_overlapping
from .species import is_terrain_compatible
from .terrain import TerrainOptions, generate_island_terrain
from .visibility import calculate_full_visibility_for_players, calculate_visibility_for_players

logger = structlog.get_logger()

BIOME_TERRAIN_ORDER: Tuple[TerrainType, ...] = (
    TerrainType.BEACH,
    TerrainType.GRASS,
    TerrainType.MOUNTAIN,
    TerrainType.WATER,
    TerrainType.UNDERWATER,
)

PLAYER_COLORS = ("#e74c3c", "#3498db", "#2ecc71", "#f1c40f", "#9b59b6", "#e67e22")


@dataclass
class GeneratedMap:
    """Output of :func:`initialize_board`."""

    board: Board
    creatures: List[Creature]
    biomes: Dict[str, Biome]
    nodes: List[VoronoiNode] = field(default_factory=list)


def _interior_candidates(
    terrain: Sequence[Sequence[TerrainType]], terrain_type: TerrainType, taken: set
) -> List[Coordinate]:
    height = len(terrain)
    width = len(terrain[0]) if height else 0
    return [
        Coordinate(x, y)
        for y in range(1, height - 1)
        for x in range(1, width - 1)
        if terrain[y][x] == terrain_type and (x, y) not in taken
    ]


def place_nodes(
    terrain: Sequence[Sequence[TerrainType]],
    rng: np.random.Generator,
    min_separation: int = 5,
    max_iterations: int = 100,
) -> List[VoronoiNode]:
    """
    Sample biome seed nodes on interior tiles.

    The first pass guarantees one node per terrain type present, even if it
    has to break the spacing rule. Later passes only add nodes that pass
    :func:`is_node_overlapping`.
    """
    nodes: List[VoronoiNode] = []

    def add(position: Coordinate) -> None:
        nodes.append(VoronoiNode(id=f"biome-{len(nodes)}", position=position))

    for terrain_type in BIOME_TERRAIN_ORDER:
        candidates = _interior_candidates(terrain, terrain_type, set())
        if not candidates:
            continue
        shuffled = [candidates[i] for i in rng.permutation(len(candidates))]
        position = next(
            (p for p in shuffled if not is_node_overlapping(p, nodes, min_separation)),
            shuffled[0],
        )
        add(position)

    placed = True
    iterations = 0
    while placed and iterations < max_iterations:
        placed = False
        iterations += 1
        for terrain_type in BIOME_TERRAIN_ORDER:
            taken = {(n.position.x, n.position.y) for n in nodes}
            candidates = _interior_candidates(terrain, terrain_type, taken)
            shuffled = [candidates[i] for i in rng.permutation(len(candidates))]
            position = next(
                (p for p in shuffled if not is_node_overlapping(p, nodes, min_separation)),
                None,
            )
            if position is not None:
                add(position)
                placed = True

    logger.info("Biome nodes placed", nodes=len(nodes), iterations=iterations)
    return nodes


def _starting_creature(
    player_id: int,
    habitat: Habitat,
    board: Board,
    creatures: Sequence[Creature],
    rng: np.random.Generator,
    species: str,
    health: int,
) -> Optional[Creature]:
    occupied = {(c.position.x, c.position.y) for c in creatures}
    hx, hy = habitat.position
    free = [
        Coordinate(hx + dx, hy + dy)
        for dx, dy in DIRECTIONS_8
        if board.in_bounds(hx + dx, hy + dy) and (hx + dx, hy + dy) not in occupied
    ]
    compatible = [p for p in free if is_terrain_compatible(species, board.tile_at(p.x, p.y).terrain)]
    free = compatible or free
    if not free:
        return None
    position = free[int(rng.integers(len(free)))]
    return Creature(
        id=f"{species}-{int(rng.integers(0, 2**32)):08x}",
        species=species,
        owner_id=player_id,
        position=position,
        health=health,
        facing=Facing.RIGHT,
    )


def initialize_board(
    width: int,
    height: int,
    num_players: int,
    seed: Optional[int] = None,
    terrain_options: Optional[TerrainOptions] = None,
) -> GeneratedMap:
    """
    Generate terrain, biomes, habitats and starting creatures.

    Args:
        width: Board width in tiles
        height: Board height in tiles
        num_players: Players to seat; each gets a beach biome if enough exist
        seed: Seed for reproducible maps
        terrain_options: Island generation options

    Returns:
        GeneratedMap with a fully partitioned board
    """
    rng = np.random.default_rng(seed)
    terrain = generate_island_terrain(
        width, height, seed=int(rng.integers(0, 2**31)), options=terrain_options
    )
    board = Board.from_terrain(terrain)

    nodes = place_nodes(
        terrain,
        rng,
        min_separation=settings.min_node_separation,
        max_iterations=settings.node_placement_iterations,
    )
    if not nodes:
        # Degenerate boards (too small for an interior) get a single central node
        logger.warning("No interior tiles for biome nodes", width=width, height=height)
        nodes = [VoronoiNode(id="biome-0", position=Coordinate(width // 2, height // 2))]

    generation = generate_voronoi_biomes(
        width,
        height,
        nodes,
        use_kdtree=len(nodes) > settings.partition_kdtree_threshold,
    )
    board = board.with_biome_map(generation.biome_map).with_habitats([n.position for n in nodes])

    biomes: Dict[str, Biome] = {}
    for node in nodes:
        suffix = node.id.split("-", 1)[1]
        biomes[node.id] = Biome(
            id=node.id,
            habitat=Habitat(id=f"habitat-{suffix}", position=node.position),
            color=generation.biome_colors[node.id],
        )

    beach_biomes = [
        b for b in biomes.values()
        if terrain[b.habitat.position.y][b.habitat.position.x] == TerrainType.BEACH
    ]
    for player_id, biome in enumerate(beach_biomes[:num_players]):
        biomes[biome.id] = replace(biome, owner_id=player_id)

    creatures: List[Creature] = []
    for player_id in range(num_players):
        starting = next((b for b in biomes.values() if b.owner_id == player_id), None)
        if starting is None:
            logger.warning("No starting biome for player", player_id=player_id)
            continue
        creature = _starting_creature(
            player_id,
            starting.habitat,
            board,
            creatures,
            rng,
            settings.starting_species,
            settings.max_health,
        )
        if creature is not None:
            creatures.append(creature)

    logger.info(
        "Board initialized",
        width=width,
        height=height,
        biomes=len(biomes),
        creatures=len(creatures),
    )
    return GeneratedMap(board=board, creatures=creatures, biomes=biomes, nodes=nodes)


def create_game_state(
    width: int,
    height: int,
    num_players: int,
    seed: Optional[int] = None,
    fog_of_war_enabled: bool = True,
) -> GameState:
    """New game: generated map, seated players and their initial visibility."""
    generated = initialize_board(width, height, num_players, seed=seed)
    players = tuple(
        Player(id=i, name=f"Player {i + 1}", color=PLAYER_COLORS[i % len(PLAYER_COLORS)])
        for i in range(num_players)
    )
    state = GameState(
        board=generated.board,
        creatures=tuple(generated.creatures),
        eggs={},
        biomes=generated.biomes,
        players=players,
        active_player_id=0,
        turn=1,
        fog_of_war_enabled=fog_of_war_enabled,
    )
    if fog_of_war_enabled:
        players = calculate_visibility_for_players(state, settings.reveal_radius)
    else:
        players = calculate_full_visibility_for_players(state.players, generated.board)
    return replace(state, players=players)

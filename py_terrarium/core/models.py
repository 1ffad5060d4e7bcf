"""
Game data model.

All records are frozen dataclasses: operations build new values with
``dataclasses.replace`` and never mutate a snapshot they were handed.
The aggregate root, :class:`GameState`, belongs to whoever orchestrates a
game; the core only reads it and returns derived values.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, List, Mapping, Optional, Sequence, Tuple

from .coordinates import Coordinate, is_valid_coordinate


class TerrainType(str, Enum):
    """Terrain categories produced by the island generator."""

    WATER = "water"
    GRASS = "grass"
    BEACH = "beach"
    MOUNTAIN = "mountain"
    UNDERWATER = "underwater"


class CreatureState(str, Enum):
    DORMANT = "dormant"
    ACTIVE = "active"


class Facing(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Tile:
    """A single board cell."""

    coordinate: Coordinate
    terrain: TerrainType
    biome_id: Optional[str] = None
    is_habitat: bool = False


@dataclass(frozen=True)
class Board:
    """
    Fixed-size grid of tiles, indexed ``tiles[y][x]``.

    The shape never changes after generation. Tile to biome assignment is
    written by the partitioner through :meth:`with_biome_map`.
    """

    width: int
    height: int
    tiles: Tuple[Tuple[Tile, ...], ...]

    @classmethod
    def from_terrain(cls, terrain: Sequence[Sequence[TerrainType]]) -> "Board":
        """Build an unpartitioned board from a row-major terrain grid."""
        height = len(terrain)
        width = len(terrain[0]) if height else 0
        tiles = tuple(
            tuple(Tile(Coordinate(x, y), TerrainType(terrain[y][x])) for x in range(width))
            for y in range(height)
        )
        return cls(width=width, height=height, tiles=tiles)

    @classmethod
    def filled(cls, width: int, height: int, terrain: TerrainType = TerrainType.GRASS) -> "Board":
        return cls.from_terrain([[terrain] * width for _ in range(height)])

    def in_bounds(self, x: int, y: int) -> bool:
        return is_valid_coordinate(x, y, self.width, self.height)

    def tile_at(self, x: int, y: int) -> Tile:
        return self.tiles[y][x]

    def iter_tiles(self):
        for row in self.tiles:
            yield from row

    def tiles_for_biome(self, biome_id: str) -> List[Coordinate]:
        """Coordinates of every tile assigned to ``biome_id``, row-major."""
        return [tile.coordinate for tile in self.iter_tiles() if tile.biome_id == biome_id]

    def all_coordinates(self) -> List[Coordinate]:
        return [tile.coordinate for tile in self.iter_tiles()]

    def with_biome_map(self, biome_map: Sequence[Sequence[Optional[str]]]) -> "Board":
        """Return a copy whose tiles carry the biome ids of ``biome_map[y][x]``."""
        tiles = tuple(
            tuple(replace(tile, biome_id=biome_map[y][x]) for x, tile in enumerate(row))
            for y, row in enumerate(self.tiles)
        )
        return replace(self, tiles=tiles)

    def with_habitats(self, positions: Sequence[Tuple[int, int]]) -> "Board":
        """Return a copy with the habitat flag set on ``positions``."""
        marked = {Coordinate(x, y) for x, y in positions}
        tiles = tuple(
            tuple(
                replace(tile, is_habitat=True) if tile.coordinate in marked else tile
                for tile in row
            )
            for row in self.tiles
        )
        return replace(self, tiles=tiles)


@dataclass(frozen=True)
class Creature:
    """Game entity occupying a tile."""

    id: str
    species: str
    owner_id: Optional[int]
    position: Coordinate
    previous_position: Optional[Coordinate] = None
    state: CreatureState = CreatureState.ACTIVE
    health: int = 10
    has_moved: bool = False
    facing: Facing = Facing.LEFT

    @property
    def is_dormant(self) -> bool:
        return self.state == CreatureState.DORMANT


@dataclass(frozen=True)
class Egg:
    """Index entry for a dormant creature."""

    id: str
    owner_id: Optional[int]
    position: Coordinate
    biome_id: Optional[str] = None
    created_at_turn: int = 0


@dataclass(frozen=True)
class Habitat:
    id: str
    position: Coordinate


@dataclass(frozen=True)
class Biome:
    """
    Territory grown from one partition node.

    Tile membership is read off the board; it is not stored here.
    """

    id: str
    habitat: Habitat
    owner_id: Optional[int] = None
    color: int = 0
    lushness: float = 0.0


@dataclass(frozen=True)
class Player:
    id: int
    name: str
    color: str
    visible_tiles: FrozenSet[Coordinate] = frozenset()


@dataclass(frozen=True)
class DisplacementEvent:
    """A creature pushed off a tile; consumed by presentation only."""

    creature_id: str
    from_position: Coordinate
    to_position: Coordinate


@dataclass(frozen=True)
class GameState:
    """Snapshot of a whole game."""

    board: Optional[Board]
    creatures: Tuple[Creature, ...] = ()
    eggs: Mapping[str, Egg] = field(default_factory=dict)
    biomes: Mapping[str, Biome] = field(default_factory=dict)
    players: Tuple[Player, ...] = ()
    active_player_id: int = 0
    turn: int = 1
    fog_of_war_enabled: bool = True

    def find_creature(self, creature_id: str) -> Optional[Creature]:
        for creature in self.creatures:
            if creature.id == creature_id:
                return creature
        return None

    def find_player(self, player_id: int) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def with_player_visibility(self, player_id: int, visible: FrozenSet[Coordinate]) -> "GameState":
        """Copy with one player's visible-tile set replaced."""
        players = tuple(
            replace(p, visible_tiles=frozenset(visible)) if p.id == player_id else p
            for p in self.players
        )
        return replace(self, players=players)

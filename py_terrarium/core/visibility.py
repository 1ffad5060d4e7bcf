"""
Per-player fog-of-war visibility.

This module provides:
- Pure computation of a player's visible tiles from owned creatures and biomes
- Set diffing so only added/removed tiles reach the presentation layer
- :class:`VisibilityEngine`, which orchestrates the fog renderer over those
  primitives

The engine never writes to the game state. Each operation returns a
:class:`VisibilityUpdate` that the caller commits after movement and
capture resolution for the turn has finished.
"""

from dataclasses import dataclass, replace
from typing import Callable, Collection, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from .coordinates import Coordinate, coord_key, get_adjacent_tiles, parse_coord_key, remove_duplicate_tiles
from .fog import FogRenderer, NullFogRenderer
from .models import Biome, Board, Creature, Egg, GameState, Player

logger = structlog.get_logger()

REVEAL_RADIUS = 1


@dataclass(frozen=True)
class VisibilityDiff:
    """Tiles that became visible and tiles that were lost."""

    added: Tuple[Coordinate, ...] = ()
    removed: Tuple[Coordinate, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


@dataclass(frozen=True)
class VisibilityUpdate:
    """New visible set for one player, with the delta from the stored set."""

    player_id: int
    visible: FrozenSet[Coordinate]
    added: Tuple[Coordinate, ...] = ()
    removed: Tuple[Coordinate, ...] = ()

    def apply(self, state: GameState) -> GameState:
        return state.with_player_visibility(self.player_id, self.visible)


def _row_major(coords: Iterable[Coordinate]) -> Tuple[Coordinate, ...]:
    return tuple(sorted(coords, key=lambda c: (c.y, c.x)))


def diff_visible_tiles(
    old: Iterable[Tuple[int, int]], new: Iterable[Tuple[int, int]]
) -> VisibilityDiff:
    """
    Compare two visible sets by canonical coordinate key.

    Returns:
        ``added = new - old`` and ``removed = old - new``, each in row-major
        order. Equal sets give an empty diff.
    """
    old_keys = {coord_key(x, y) for x, y in old}
    new_keys = {coord_key(x, y) for x, y in new}
    if old_keys == new_keys:
        return VisibilityDiff()
    added = _row_major(parse_coord_key(k) for k in new_keys - old_keys)
    removed = _row_major(parse_coord_key(k) for k in old_keys - new_keys)
    return VisibilityDiff(added=added, removed=removed)


def unit_vision_tiles(
    player_id: int,
    board: Board,
    creatures: Sequence[Creature],
    eggs: Collection[str],
    radius: int = REVEAL_RADIUS,
) -> List[Coordinate]:
    """Deduplicated neighbourhoods around the player's active, non-egg creatures."""
    tiles: List[Coordinate] = []
    for creature in creatures:
        if creature.owner_id != player_id or creature.id in eggs or creature.is_dormant:
            continue
        tiles.extend(
            get_adjacent_tiles(creature.position.x, creature.position.y, board.width, board.height, radius)
        )
    return remove_duplicate_tiles(tiles)


def biome_vision_tiles(player_id: int, board: Board, biomes: Mapping[str, Biome]) -> List[Coordinate]:
    """Every tile of every biome the player owns."""
    owned = {b.id for b in biomes.values() if b.owner_id == player_id}
    if not owned:
        return []
    return [tile.coordinate for tile in board.iter_tiles() if tile.biome_id in owned]


def compute_visible_tiles(
    state: GameState, player_id: int, radius: int = REVEAL_RADIUS
) -> FrozenSet[Coordinate]:
    """Ground-truth visible set: unit neighbourhoods plus owned biome tiles."""
    if state.board is None:
        return frozenset()
    units = unit_vision_tiles(player_id, state.board, state.creatures, state.eggs, radius)
    biomes = biome_vision_tiles(player_id, state.board, state.biomes)
    return frozenset(units) | frozenset(biomes)


def calculate_visibility_for_players(state: GameState, radius: int = REVEAL_RADIUS) -> Tuple[Player, ...]:
    """Recompute every player's visible set with fog enabled."""
    if state.board is None:
        return tuple(state.players)
    return tuple(
        replace(player, visible_tiles=compute_visible_tiles(state, player.id, radius))
        for player in state.players
    )


def calculate_full_visibility_for_players(
    players: Sequence[Player], board: Board
) -> Tuple[Player, ...]:
    """Fog disabled: every player sees the whole board."""
    everything = frozenset(board.all_coordinates())
    return tuple(replace(player, visible_tiles=everything) for player in players)


def apply_fog_toggle(state: GameState, enabled: bool, radius: int = REVEAL_RADIUS) -> GameState:
    """Flip the fog flag and recompute all players' sets accordingly."""
    if state.board is None:
        return replace(state, fog_of_war_enabled=enabled)
    if enabled:
        players = calculate_visibility_for_players(replace(state, fog_of_war_enabled=True), radius)
    else:
        players = calculate_full_visibility_for_players(state.players, state.board)
    return replace(state, fog_of_war_enabled=enabled, players=players)


class GameStateReader:
    """
    Narrow read-only view of the current game state.

    Wraps a zero-argument callable so the engine always sees the latest
    committed snapshot without holding the store itself.
    """

    def __init__(self, get_state: Callable[[], GameState]):
        self._get_state = get_state

    @classmethod
    def of(cls, state: GameState) -> "GameStateReader":
        return cls(lambda: state)

    def snapshot(self) -> GameState:
        return self._get_state()

    def board(self) -> Optional[Board]:
        return self._get_state().board

    def creatures(self) -> Sequence[Creature]:
        return self._get_state().creatures

    def eggs(self) -> Mapping[str, Egg]:
        return self._get_state().eggs

    def biomes(self) -> Mapping[str, Biome]:
        return self._get_state().biomes

    def active_player_id(self) -> int:
        return self._get_state().active_player_id

    def stored_visible_tiles(self, player_id: int) -> FrozenSet[Coordinate]:
        player = self._get_state().find_player(player_id)
        return player.visible_tiles if player is not None else frozenset()


class VisibilityEngine:
    """Computes visibility changes and forwards minimal batches to a fog renderer."""

    def __init__(
        self,
        reader: GameStateReader,
        renderer: Optional[FogRenderer] = None,
        radius: int = REVEAL_RADIUS,
    ):
        """
        Initialize the engine.

        Args:
            reader: Read access to the current game state
            renderer: Fog-of-war collaborator; defaults to a no-op renderer
            radius: Chebyshev radius revealed around each creature
        """
        self.reader = reader
        self.renderer = renderer or NullFogRenderer()
        self.radius = radius

    def _reveal(self, player_id: int, tiles: Sequence[Coordinate]) -> VisibilityUpdate:
        old = self.reader.stored_visible_tiles(player_id)
        visible = old | frozenset(tiles)
        diff = diff_visible_tiles(old, visible)
        self.renderer.reveal_tiles(tiles)
        return VisibilityUpdate(player_id=player_id, visible=visible, added=diff.added)

    def reveal_around(self, x: int, y: int, player_id: Optional[int] = None) -> Optional[VisibilityUpdate]:
        """
        Mark the block around (x, y) visible.

        The renderer receives exactly that block, clipped to the board.
        Returns None when there is no board.
        """
        board = self.reader.board()
        if board is None:
            return None
        if player_id is None:
            player_id = self.reader.active_player_id()
        tiles = remove_duplicate_tiles(get_adjacent_tiles(x, y, board.width, board.height, self.radius))
        return self._reveal(player_id, tiles)

    def reveal_biome_tiles(self, biome_id: str, player_id: Optional[int] = None) -> Optional[VisibilityUpdate]:
        """Mark every tile of a biome visible; a biome with no tiles is a no-op."""
        board = self.reader.board()
        if board is None:
            return None
        tiles = board.tiles_for_biome(biome_id)
        if not tiles:
            return None
        if player_id is None:
            player_id = self.reader.active_player_id()
        return self._reveal(player_id, tiles)

    def update_player_visibility(self, player_id: int) -> Optional[VisibilityUpdate]:
        """
        Recompute a player's visible set from scratch.

        The stored set is replaced wholesale; only the difference is sent to
        the renderer, and nothing at all when the sets are equal.
        """
        state = self.reader.snapshot()
        if state.board is None:
            return None

        if state.fog_of_war_enabled:
            new = compute_visible_tiles(state, player_id, self.radius)
        else:
            new = frozenset(state.board.all_coordinates())

        old = self.reader.stored_visible_tiles(player_id)
        diff = diff_visible_tiles(old, new)
        if not diff.is_empty:
            if diff.added:
                self.renderer.reveal_tiles(diff.added)
            if diff.removed:
                self.renderer.hide_tiles(diff.removed)
            logger.debug(
                "Player visibility changed",
                player_id=player_id,
                added=len(diff.added),
                removed=len(diff.removed),
            )
        return VisibilityUpdate(player_id=player_id, visible=new, added=diff.added, removed=diff.removed)

    def initialize_visibility(self) -> Optional[VisibilityUpdate]:
        """
        Reveal the active player's starting view in one batch.

        Units' neighbourhoods and owned biome tiles are added to whatever the
        player already had.
        """
        state = self.reader.snapshot()
        board = state.board
        if board is None:
            return None

        player_id = state.active_player_id
        unit_tiles = unit_vision_tiles(player_id, board, state.creatures, state.eggs, self.radius)
        biome_tiles = biome_vision_tiles(player_id, board, state.biomes)
        tiles = remove_duplicate_tiles(unit_tiles + biome_tiles)
        if not tiles:
            return VisibilityUpdate(player_id=player_id, visible=self.reader.stored_visible_tiles(player_id))

        logger.info("Initializing visibility", player_id=player_id, tiles=len(tiles))
        return self._reveal(player_id, tiles)

    def toggle_fog_of_war(self, enabled: bool) -> Optional[VisibilityUpdate]:
        """
        Turn the fog overlay on or off.

        Enabling rebuilds full fog, then reveals the active player's current
        visible set in one batch. Disabling clears all fog.
        """
        state = self.reader.snapshot()
        if state.board is None:
            return None

        if not enabled:
            self.renderer.clear_fog_of_war()
            return None

        self.renderer.create_fog_of_war(state.board)
        player_id = state.active_player_id
        visible = compute_visible_tiles(state, player_id, self.radius)
        if visible:
            self.renderer.reveal_tiles(_row_major(visible))
        old = self.reader.stored_visible_tiles(player_id)
        diff = diff_visible_tiles(old, visible)
        return VisibilityUpdate(player_id=player_id, visible=visible, added=diff.added, removed=diff.removed)

    def update_fog_for_active_player(self, player_id: int) -> None:
        """Redraw fog from scratch for a newly active player's stored view."""
        board = self.reader.board()
        if board is None:
            return
        self.renderer.clear_fog_of_war()
        self.renderer.create_fog_of_war(board)
        visible = self.reader.stored_visible_tiles(player_id)
        if visible:
            self.renderer.reveal_tiles(_row_major(visible))

"""
Movement and collision resolution.

This module implements:
- Moving a creature one action, with facing and has-moved bookkeeping
- Environment effects on the mover and silent removal of the dead
- Displacement of a creature whose tile was just entered
- Breadth-first valid-move computation per species
- Turn-boundary reset of movement flags

Displacement picks its destination deterministically:
1. keep going in the displaced creature's last direction of travel
2. otherwise try the two neighbouring headings of that direction
3. otherwise take the first free tile clockwise from north

Candidates must be on the board, terrain compatible with the displaced
species and free of any non-egg creature. When nothing qualifies the
creature stays put and no event is produced.
"""

from collections import deque
from dataclasses import dataclass, replace
from typing import Collection, List, Optional, Sequence, Tuple

import structlog

from .coordinates import DIRECTIONS_8, Coordinate, coord_key
from .environment import EnvironmentEffect, terrain_exposure_effect
from .models import Board, Creature, DisplacementEvent, Facing, GameState
from .species import get_species_move_range, is_terrain_compatible

logger = structlog.get_logger()


@dataclass(frozen=True)
class DisplacementResult:
    """Creature list after a displacement attempt, plus the event if one happened."""

    creatures: Tuple[Creature, ...]
    event: Optional[DisplacementEvent] = None


@dataclass(frozen=True)
class MoveResult:
    creatures: Tuple[Creature, ...]
    displacement_event: Optional[DisplacementEvent] = None


def _is_occupied(x: int, y: int, creatures: Sequence[Creature], eggs: Collection[str]) -> bool:
    return any(
        c.position.x == x and c.position.y == y and c.id not in eggs
        for c in creatures
    )


def get_valid_displacement_tiles(
    position: Tuple[int, int],
    creatures: Sequence[Creature],
    board: Optional[Board],
    eggs: Collection[str] = (),
    species: Optional[str] = None,
) -> List[Coordinate]:
    """
    Free neighbours of ``position`` in clockwise order from north.

    Args:
        position: Tile being vacated
        creatures: Current creature list
        board: Game board; None yields no tiles
        eggs: Ids indexed as eggs; these never block a tile
        species: When given, only terrain this species can stand on counts

    Returns:
        On-board, unoccupied neighbour coordinates. The centre tile itself is
        never included.
    """
    if board is None:
        return []
    x, y = position
    valid = []
    for dx, dy in DIRECTIONS_8:
        nx, ny = x + dx, y + dy
        if not board.in_bounds(nx, ny):
            continue
        if species is not None and not is_terrain_compatible(species, board.tile_at(nx, ny).terrain):
            continue
        if _is_occupied(nx, ny, creatures, eggs):
            continue
        valid.append(Coordinate(nx, ny))
    return valid


def determine_previous_direction(creature: Creature) -> Optional[Tuple[int, int]]:
    """Unit step of the creature's last move, or None if it has not moved."""
    if creature.previous_position is None:
        return None
    dx = creature.position.x - creature.previous_position.x
    dy = creature.position.y - creature.previous_position.y
    if dx == 0 and dy == 0:
        return None
    return (dx > 0) - (dx < 0), (dy > 0) - (dy < 0)


def find_continuation_tile(
    creature: Creature,
    valid_tiles: Sequence[Coordinate],
    direction: Optional[Tuple[int, int]],
) -> Optional[Coordinate]:
    """
    Choose where a pushed creature ends up.

    Prefers carrying on in ``direction``, then the two headings next to it,
    then the first entry of ``valid_tiles``.
    """
    if not valid_tiles:
        return None
    if direction is None:
        return valid_tiles[0]

    x, y = creature.position
    dx, dy = direction
    options = [(x + dx, y + dy)]
    if dx and dy:
        options += [(x + dx, y), (x, y + dy)]
    elif dx:
        options += [(x + dx, y + 1), (x + dx, y - 1)]
    else:
        options += [(x + 1, y + dy), (x - 1, y + dy)]

    for option in options:
        if option in valid_tiles:
            return Coordinate(*option)
    return valid_tiles[0]


def handle_displacement(
    x: int,
    y: int,
    displaced: Creature,
    creatures: Sequence[Creature],
    board: Board,
    eggs: Collection[str] = (),
) -> DisplacementResult:
    """
    Push ``displaced`` off tile (x, y) onto a free neighbour.

    Args:
        x: X of the contested tile (the mover's destination)
        y: Y of the contested tile
        displaced: Creature currently holding the tile
        creatures: In-progress creature list, mover already at (x, y)
        board: Game board
        eggs: Ids indexed as eggs

    Returns:
        Updated creature list and a displacement event. If no legal tile
        exists the list is returned unchanged with no event.
    """
    valid = get_valid_displacement_tiles((x, y), creatures, board, eggs, species=displaced.species)
    destination = find_continuation_tile(
        displaced, valid, determine_previous_direction(displaced)
    )
    if destination is None:
        logger.warning(
            "No legal displacement tile",
            creature_id=displaced.id,
            x=x,
            y=y,
        )
        return DisplacementResult(creatures=tuple(creatures))

    origin = displaced.position
    moved = tuple(
        replace(c, previous_position=c.position, position=destination)
        if c.id == displaced.id
        else c
        for c in creatures
    )
    event = DisplacementEvent(
        creature_id=displaced.id,
        from_position=origin,
        to_position=destination,
    )
    logger.debug(
        "Creature displaced",
        creature_id=displaced.id,
        origin=coord_key(*origin),
        destination=coord_key(*destination),
    )
    return DisplacementResult(creatures=moved, event=event)


def move_animal(
    creature_id: str,
    target_x: int,
    target_y: int,
    state: GameState,
    environment_effect: EnvironmentEffect = terrain_exposure_effect,
) -> MoveResult:
    """
    Move one creature and resolve the consequences.

    Args:
        creature_id: Creature to move
        target_x: Destination X
        target_y: Destination Y
        state: Game snapshot; it is not modified
        environment_effect: Vitality rule applied to the mover after moving

    Returns:
        New creature list and, if the destination was occupied, the
        displacement event. An unknown creature or missing board returns the
        input creature list untouched.
    """
    mover = state.find_creature(creature_id)
    if mover is None or state.board is None:
        logger.debug("Move ignored", creature_id=creature_id, board=state.board is not None)
        return MoveResult(creatures=tuple(state.creatures))

    board = state.board
    if target_x > mover.position.x:
        facing = Facing.RIGHT
    elif target_x < mover.position.x:
        facing = Facing.LEFT
    else:
        facing = mover.facing

    updated_mover = replace(
        mover,
        position=Coordinate(target_x, target_y),
        previous_position=mover.position,
        has_moved=True,
        facing=facing,
    )
    updated_mover = environment_effect(updated_mover, board)

    creatures = tuple(updated_mover if c.id == creature_id else c for c in state.creatures)
    creatures = tuple(c for c in creatures if c.health > 0)

    if updated_mover.health <= 0:
        # Nobody ends up on the target tile, so there is nothing to displace
        logger.info("Creature died while moving", creature_id=creature_id)
        return MoveResult(creatures=creatures)

    collided = next(
        (
            c for c in creatures
            if c.id != creature_id
            and c.id not in state.eggs
            and c.position.x == target_x
            and c.position.y == target_y
        ),
        None,
    )
    if collided is None:
        return MoveResult(creatures=creatures)

    result = handle_displacement(target_x, target_y, collided, creatures, board, state.eggs)
    return MoveResult(creatures=result.creatures, displacement_event=result.event)


def resolve_spawn_collision(
    x: int,
    y: int,
    creatures: Sequence[Creature],
    board: Board,
    eggs: Collection[str] = (),
    spawned_id: Optional[str] = None,
) -> DisplacementResult:
    """
    Clear a hatch site.

    Any active creature other than ``spawned_id`` standing on (x, y) is
    displaced with the same rules as a move collision.
    """
    collider = next(
        (
            c for c in creatures
            if c.position.x == x
            and c.position.y == y
            and c.id != spawned_id
            and c.id not in eggs
        ),
        None,
    )
    if collider is None:
        return DisplacementResult(creatures=tuple(creatures))
    return handle_displacement(x, y, collider, creatures, board, eggs)


def calculate_valid_moves(
    creature: Creature,
    board: Board,
    creatures: Sequence[Creature],
    eggs: Collection[str] = (),
    include_occupied: bool = False,
) -> List[Coordinate]:
    """
    Tiles a creature may move to this turn.

    Breadth-first search over the 8-neighbourhood up to the species' move
    range, through compatible terrain only and never through tiles held by
    other non-egg creatures. Eggs and creatures that already moved get none.

    With ``include_occupied`` an occupied tile within range is still a legal
    destination (the occupant gets displaced), but the search does not
    continue past it.
    """
    if creature.id in eggs or creature.is_dormant or creature.has_moved:
        return []

    max_dist = get_species_move_range(creature.species)
    start = creature.position
    blocked = {
        coord_key(c.position.x, c.position.y)
        for c in creatures
        if c.id != creature.id and c.id not in eggs
    }
    visited = {coord_key(start.x, start.y)}
    queue = deque([(start.x, start.y, 0)])
    valid: List[Coordinate] = []

    while queue:
        x, y, dist = queue.popleft()
        if dist > 0:
            valid.append(Coordinate(x, y))
        if dist >= max_dist:
            continue
        for dx, dy in DIRECTIONS_8:
            nx, ny = x + dx, y + dy
            key = coord_key(nx, ny)
            if key in visited or not board.in_bounds(nx, ny):
                continue
            if not is_terrain_compatible(creature.species, board.tile_at(nx, ny).terrain):
                continue
            visited.add(key)
            if key in blocked:
                if include_occupied:
                    valid.append(Coordinate(nx, ny))
                continue
            queue.append((nx, ny, dist + 1))

    return valid


def reset_movement_flags(creatures: Sequence[Creature]) -> Tuple[Creature, ...]:
    """Clear has-moved on every creature; nothing else changes."""
    return tuple(replace(c, has_moved=False) for c in creatures)

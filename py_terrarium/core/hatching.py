"""
Hatching call contract.

Which species hatches and where it is placed is decided by a hatcher
supplied by the caller. This module fixes the result shape, the way a
result is merged back into a game state, and a minimal in-place hatcher.
"""

from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional, Tuple

import structlog

from .models import Biome, Board, Creature, CreatureState, DisplacementEvent, Egg, GameState
from .movement import resolve_spawn_collision

logger = structlog.get_logger()


@dataclass(frozen=True)
class HatchResult:
    """Everything a hatcher may change."""

    creatures: Tuple[Creature, ...]
    board: Board
    biomes: Mapping[str, Biome]
    eggs: Mapping[str, Egg]
    new_creature_id: Optional[str] = None
    biome_id_affected: Optional[str] = None
    displacement_event: Optional[DisplacementEvent] = None


Hatcher = Callable[[str, GameState], HatchResult]


def merge_hatch_result(state: GameState, result: HatchResult) -> GameState:
    """Replace creatures, board, biomes and egg index with the hatcher's output."""
    return replace(
        state,
        creatures=tuple(result.creatures),
        board=result.board,
        biomes=dict(result.biomes),
        eggs=dict(result.eggs),
    )


def hatch_in_place(egg_id: str, state: GameState) -> HatchResult:
    """
    Activate a dormant creature where its egg lies.

    Any active creature already on the tile is displaced. An unknown egg
    leaves everything as it was.
    """
    unchanged = HatchResult(
        creatures=tuple(state.creatures),
        board=state.board,
        biomes=state.biomes,
        eggs=state.eggs,
    )
    egg = state.eggs.get(egg_id)
    creature = state.find_creature(egg_id)
    if egg is None or creature is None or state.board is None:
        return unchanged

    hatched = replace(
        creature,
        state=CreatureState.ACTIVE,
        position=egg.position,
        previous_position=None,
        has_moved=True,
    )
    creatures = tuple(hatched if c.id == egg_id else c for c in state.creatures)
    eggs = {k: v for k, v in state.eggs.items() if k != egg_id}

    spawn = resolve_spawn_collision(
        egg.position.x, egg.position.y, creatures, state.board, eggs, spawned_id=egg_id
    )
    return HatchResult(
        creatures=spawn.creatures,
        board=state.board,
        biomes=state.biomes,
        eggs=eggs,
        new_creature_id=egg_id,
        biome_id_affected=egg.biome_id,
        displacement_event=spawn.event,
    )


def spawn_animal(
    egg_id: str, state: GameState, hatcher: Hatcher = hatch_in_place
) -> Tuple[GameState, Optional[HatchResult]]:
    """
    Run a hatcher and merge its result.

    Returns:
        The merged state and the raw result, or the input state and None
        when ``egg_id`` is not indexed as an egg.
    """
    if egg_id not in state.eggs:
        logger.debug("Hatch ignored, not an egg", egg_id=egg_id)
        return state, None
    result = hatcher(egg_id, state)
    logger.info(
        "Egg hatched",
        egg_id=egg_id,
        new_creature_id=result.new_creature_id,
        displaced=result.displacement_event is not None,
    )
    return merge_hatch_result(state, result), result

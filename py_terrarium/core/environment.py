"""
Environment-driven vitality changes.

An environment effect is a pure function ``(creature, board) -> creature``.
It must never raise and must not change a creature's identity or position;
the movement resolver applies it to the mover only, right after the move.
"""

from dataclasses import replace
from typing import Callable, List, Mapping, Sequence

import structlog

from .models import Biome, Board, Creature
from .species import is_terrain_compatible

logger = structlog.get_logger()

MAX_HEALTH = 10

EnvironmentEffect = Callable[[Creature, Board], Creature]


def no_effect(creature: Creature, board: Board) -> Creature:
    return creature


def terrain_exposure_effect(creature: Creature, board: Board) -> Creature:
    """
    Lose one health when standing on terrain the species cannot live on.

    Creatures off the board are left untouched.
    """
    x, y = creature.position
    if not board.in_bounds(x, y):
        return creature
    tile = board.tile_at(x, y)
    if is_terrain_compatible(creature.species, tile.terrain):
        return creature
    health = max(0, creature.health - 1)
    logger.debug(
        "Creature exposed to hostile terrain",
        creature_id=creature.id,
        terrain=tile.terrain.value,
        health=health,
    )
    return replace(creature, health=health)


def is_in_owned_biome(creature: Creature, biomes: Mapping[str, Biome], board: Board) -> bool:
    """Check if a creature stands in a biome owned by its own player."""
    x, y = creature.position
    if not board.in_bounds(x, y):
        return False
    biome_id = board.tile_at(x, y).biome_id
    if biome_id is None:
        return False
    biome = biomes.get(biome_id)
    return biome is not None and biome.owner_id == creature.owner_id


def update_health_for_turn(
    creatures: Sequence[Creature],
    biomes: Mapping[str, Biome],
    board: Board,
    max_health: int = MAX_HEALTH,
) -> List[Creature]:
    """
    Start-of-turn vitality update.

    Creatures gain one health (capped) inside their owner's biomes and lose
    one outside them. Those reaching zero are dropped from the result.
    Dormant creatures are unaffected.
    """
    updated = []
    for creature in creatures:
        if creature.is_dormant:
            updated.append(creature)
            continue
        if is_in_owned_biome(creature, biomes, board):
            health = min(max_health, creature.health + 1)
        else:
            health = max(0, creature.health - 1)
        updated.append(replace(creature, health=health))

    alive = [c for c in updated if c.health > 0]
    if len(alive) < len(updated):
        logger.info(
            "Creatures died from health loss",
            dead=[c.id for c in updated if c.health <= 0],
        )
    return alive


def creatures_at_risk(
    creatures: Sequence[Creature], biomes: Mapping[str, Biome], board: Board
) -> List[Creature]:
    """Creatures that will die at the next turn rollover if they stay put."""
    return [
        c for c in creatures
        if c.health == 1 and not is_in_owned_biome(c, biomes, board)
    ]

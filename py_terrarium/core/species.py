"""Species abilities registry."""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List

from .models import TerrainType


@dataclass(frozen=True)
class SpeciesAbilities:
    """Movement abilities of one species."""

    move_range: int
    compatible_terrains: FrozenSet[TerrainType]


SPECIES_REGISTRY: Dict[str, SpeciesAbilities] = {
    "buffalo": SpeciesAbilities(1, frozenset({TerrainType.GRASS, TerrainType.MOUNTAIN})),
    "bird": SpeciesAbilities(
        4,
        frozenset({
            TerrainType.MOUNTAIN,
            TerrainType.GRASS,
            TerrainType.BEACH,
            TerrainType.WATER,
            TerrainType.UNDERWATER,
        }),
    ),
    "snake": SpeciesAbilities(2, frozenset({TerrainType.BEACH, TerrainType.GRASS})),
    "octopus": SpeciesAbilities(3, frozenset({TerrainType.UNDERWATER, TerrainType.WATER})),
    "turtle": SpeciesAbilities(
        1,
        frozenset({
            TerrainType.WATER,
            TerrainType.BEACH,
            TerrainType.UNDERWATER,
            TerrainType.GRASS,
        }),
    ),
}

DEFAULT_ABILITIES = SpeciesAbilities(1, frozenset({TerrainType.GRASS}))


def get_species_abilities(species: str) -> SpeciesAbilities:
    return SPECIES_REGISTRY.get(species, DEFAULT_ABILITIES)


def is_terrain_compatible(species: str, terrain: TerrainType) -> bool:
    """Check if a species can stand on a terrain type."""
    return terrain in get_species_abilities(species).compatible_terrains


def get_species_move_range(species: str) -> int:
    return get_species_abilities(species).move_range


def get_compatible_species(terrain: TerrainType) -> List[str]:
    """Registered species able to live on ``terrain``, in registry order."""
    return [
        name
        for name, abilities in SPECIES_REGISTRY.items()
        if terrain in abilities.compatible_terrains
    ]

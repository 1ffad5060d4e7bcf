"""
Island terrain generation.

Pipeline:
1. Island heightmap: radial falloff from the board centre plus 4 octaves of
   hash noise
2. Thresholding into water / grass / mountain
3. Majority smoothing passes
4. Beaches on grass within a Manhattan radius of water
5. Open water at least two steps from the shore becomes underwater
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import structlog
from scipy import ndimage

from .models import TerrainType

logger = structlog.get_logger()

# Integer codes, in the order smoothing breaks ties
TERRAIN_CODES = (
    TerrainType.WATER,
    TerrainType.GRASS,
    TerrainType.BEACH,
    TerrainType.MOUNTAIN,
    TerrainType.UNDERWATER,
)
WATER, GRASS, BEACH, MOUNTAIN, UNDERWATER = range(len(TERRAIN_CODES))

_RING_8 = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]])
_CROSS = ndimage.generate_binary_structure(2, 1)


@dataclass
class TerrainOptions:
    """Island generation options."""

    water_ratio: float = 0.4  # Elevation below this is water
    mountain_ratio: float = 0.05  # Top fraction of the elevation range is mountain
    beach_width: int = 2  # Manhattan reach of beaches from water
    smoothing_passes: int = 3
    smoothing_majority: int = 5  # Neighbours that must agree to overwrite a tile
    underwater_distance: int = 2  # Steps from shore before water turns deep


def _hash_noise(nx: np.ndarray, ny: np.ndarray, seed: float) -> np.ndarray:
    value = np.sin(nx * 12.9898 + ny * 78.233 + seed) * 43758.5453
    return value - np.floor(value)


def generate_island_heightmap(width: int, height: int, seed: float) -> np.ndarray:
    """
    Elevation in [0, 1], high in the middle and falling off towards the edges.

    Args:
        width: Board width
        height: Board height
        seed: Phase offset for the noise function

    Returns:
        Float array of shape (height, width)
    """
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    center_x = width / 2
    center_y = height / 2
    dx = (xs - center_x) / center_x
    dy = (ys - center_y) / center_y
    distance_from_center = np.sqrt(dx * dx + dy * dy) / np.sqrt(2)

    nx = xs / width
    ny = ys / height
    noise = np.zeros_like(xs)
    for octave in range(4):
        scale = 2 ** octave
        noise += _hash_noise(nx * scale, ny * scale, seed) * (0.5 / scale)

    elevation = 1.0 - distance_from_center * 1.5 + noise * 0.5
    return np.clip(elevation, 0.0, 1.0)


def heightmap_to_terrain(heightmap: np.ndarray, options: TerrainOptions) -> np.ndarray:
    """Threshold elevation into terrain codes."""
    terrain = np.full(heightmap.shape, GRASS, dtype=np.int8)
    terrain[heightmap < options.water_ratio] = WATER
    terrain[heightmap > 1 - options.mountain_ratio] = MOUNTAIN
    return terrain


def smooth_terrain(terrain: np.ndarray, majority: int = 5) -> np.ndarray:
    """
    One majority-filter pass over the 8-neighbourhood.

    A tile takes the most common surrounding terrain when at least
    ``majority`` neighbours share it; ties go to the lower terrain code.
    """
    counts = np.stack([
        ndimage.convolve((terrain == code).astype(np.int16), _RING_8, mode="constant", cval=0)
        for code in range(len(TERRAIN_CODES))
    ])
    most_common = np.argmax(counts, axis=0)
    max_count = np.max(counts, axis=0)
    return np.where(max_count >= majority, most_common, terrain).astype(np.int8)


def add_beaches(terrain: np.ndarray, beach_width: int) -> np.ndarray:
    """Turn grass within ``beach_width`` Manhattan steps of water into beach."""
    water = terrain == WATER
    if not water.any():
        return terrain
    distance = ndimage.distance_transform_cdt(~water, metric="taxicab")
    result = terrain.copy()
    result[(terrain == GRASS) & (distance >= 1) & (distance <= beach_width)] = BEACH
    return result


def add_underwater(terrain: np.ndarray, distance: int = 2) -> np.ndarray:
    """
    Deepen open water.

    Shore water touches a non-water tile in its 8-neighbourhood. Water more
    than ``distance - 1`` orthogonal steps from the shore, travelling through
    water only, becomes underwater.
    """
    water = terrain == WATER
    if not water.any():
        return terrain
    land = ~(water | (terrain == UNDERWATER))
    touches_land = ndimage.convolve(land.astype(np.int16), _RING_8, mode="constant", cval=0) > 0
    near_shore = water & touches_land
    if distance > 1:
        near_shore = ndimage.binary_dilation(
            near_shore, structure=_CROSS, iterations=distance - 1, mask=water
        )
    result = terrain.copy()
    result[water & ~near_shore] = UNDERWATER
    return result


def codes_to_terrain(terrain: np.ndarray) -> List[List[TerrainType]]:
    return [[TERRAIN_CODES[code] for code in row] for row in terrain.tolist()]


def generate_island_terrain(
    width: int,
    height: int,
    seed: Optional[int] = None,
    options: Optional[TerrainOptions] = None,
) -> List[List[TerrainType]]:
    """
    Generate island terrain for a board.

    Args:
        width: Board width in tiles
        height: Board height in tiles
        seed: Seed for reproducible output; None draws a fresh one
        options: Generation options

    Returns:
        Row-major grid ``terrain[y][x]`` of terrain types
    """
    options = options or TerrainOptions()
    rng = np.random.default_rng(seed)
    phase = float(rng.random() * 10000)

    heightmap = generate_island_heightmap(width, height, phase)
    terrain = heightmap_to_terrain(heightmap, options)
    for _ in range(options.smoothing_passes):
        terrain = smooth_terrain(terrain, options.smoothing_majority)
    terrain = add_beaches(terrain, options.beach_width)
    terrain = add_underwater(terrain, options.underwater_distance)

    logger.info(
        "Island terrain generated",
        width=width,
        height=height,
        water=int(np.sum(terrain == WATER)),
        land=int(np.sum((terrain == GRASS) | (terrain == BEACH) | (terrain == MOUNTAIN))),
    )
    return codes_to_terrain(terrain)

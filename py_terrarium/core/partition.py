"""
Spatial partitioning of the board into biome territories.

This module implements:
- Manhattan-metric Voronoi partition of the tile grid around seed nodes
- Minimum-spacing check used when sampling seed nodes
- Per-biome display colours spread by the golden ratio

Ties between equidistant nodes always go to the node that comes first in
the input sequence. Both the brute-force and the k-d tree paths preserve
that rule, so they produce identical maps.
"""

import colorsys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import cKDTree

from .coordinates import Coordinate, manhattan_distance

logger = structlog.get_logger()

MIN_NODE_SEPARATION = 5
GOLDEN_RATIO_CONJUGATE = 0.618033988749895

BiomeMap = List[List[Optional[str]]]


@dataclass(frozen=True)
class VoronoiNode:
    """Seed point for one biome; only lives for the duration of generation."""

    id: str
    position: Coordinate


@dataclass
class BiomeGenerationResult:
    """Tile-to-node assignment plus a colour per node."""

    biome_map: BiomeMap
    biome_colors: Dict[str, int] = field(default_factory=dict)


def _node_positions(nodes: Sequence[VoronoiNode]) -> np.ndarray:
    return np.array([[n.position[0], n.position[1]] for n in nodes], dtype=np.int64)


def _nearest_brute_force(width: int, height: int, positions: np.ndarray) -> np.ndarray:
    """Index of the nearest node per tile, shape (height, width)."""
    ys, xs = np.mgrid[0:height, 0:width]
    # (nodes, height, width) distance field
    dist = (
        np.abs(xs[None, :, :] - positions[:, 0, None, None])
        + np.abs(ys[None, :, :] - positions[:, 1, None, None])
    )
    # argmin returns the first minimum, which is the tie-break we need
    return np.argmin(dist, axis=0)


def _nearest_kdtree(width: int, height: int, positions: np.ndarray) -> np.ndarray:
    """Same result as :func:`_nearest_brute_force` using a Manhattan k-d tree."""
    tree = cKDTree(positions)
    ys, xs = np.mgrid[0:height, 0:width]
    points = np.column_stack([xs.ravel(), ys.ravel()])
    best, _ = tree.query(points, k=1, p=1)
    # The tree returns an arbitrary node among equals; collect every node at
    # the best distance and keep the earliest one.
    candidates = tree.query_ball_point(points, r=best, p=1)
    nearest = np.fromiter((min(c) for c in candidates), dtype=np.int64, count=len(points))
    return nearest.reshape(height, width)


def partition_indices(
    width: int,
    height: int,
    nodes: Sequence[VoronoiNode],
    use_kdtree: Optional[bool] = None,
    kdtree_threshold: int = 64,
) -> Optional[np.ndarray]:
    """
    Nearest-node index for every tile.

    Args:
        width: Board width
        height: Board height
        nodes: Seed nodes; their order is the tie-break authority
        use_kdtree: Force (True) or forbid (False) the k-d tree path;
            ``None`` picks it when there are more than ``kdtree_threshold`` nodes
        kdtree_threshold: Node count above which the tree is used by default

    Returns:
        Integer array of shape (height, width), or None when ``nodes`` is empty
    """
    if not nodes:
        return None

    positions = _node_positions(nodes)
    if use_kdtree is None:
        use_kdtree = len(nodes) > kdtree_threshold

    if use_kdtree:
        return _nearest_kdtree(width, height, positions)
    return _nearest_brute_force(width, height, positions)


def generate_partition(
    width: int,
    height: int,
    nodes: Sequence[VoronoiNode],
    use_kdtree: Optional[bool] = None,
) -> BiomeMap:
    """
    Assign every tile to its Manhattan-nearest node.

    Args:
        width: Board width
        height: Board height
        nodes: Seed nodes in priority order

    Returns:
        Row-major map ``biome_map[y][x]`` of node ids. With no nodes every
        entry stays None and the caller must retry with a valid node set.
    """
    if not nodes:
        logger.warning("Partition requested with no nodes", width=width, height=height)
        return [[None] * width for _ in range(height)]

    indices = partition_indices(width, height, nodes, use_kdtree=use_kdtree)
    ids = [node.id for node in nodes]
    biome_map = [[ids[i] for i in row] for row in indices.tolist()]

    logger.debug("Partition generated", width=width, height=height, nodes=len(nodes))
    return biome_map


def is_node_overlapping(
    position: Tuple[int, int],
    existing_nodes: Sequence[VoronoiNode],
    min_separation: int = MIN_NODE_SEPARATION,
) -> bool:
    """
    Check if a candidate seed is too close to any existing node.

    Returns True when the Manhattan distance to some node is strictly less
    than ``min_separation``. The partitioner itself never enforces spacing.
    """
    x, y = position
    for node in existing_nodes:
        if manhattan_distance(x, y, node.position[0], node.position[1]) < min_separation:
            return True
    return False


def hsl_to_hex(h: float, s: float, l: float) -> int:
    """Convert HSL in [0, 1] to a packed 0xRRGGBB integer."""
    r, g, b = colorsys.hls_to_rgb(h, l, s)
    return (round(r * 255) << 16) | (round(g * 255) << 8) | round(b * 255)


def biome_colors(nodes: Sequence[VoronoiNode]) -> Dict[str, int]:
    """Visually distinct colours, hue stepped by the golden ratio per node."""
    return {
        node.id: hsl_to_hex((index * GOLDEN_RATIO_CONJUGATE) % 1, 0.7, 0.5)
        for index, node in enumerate(nodes)
    }


def generate_voronoi_biomes(
    width: int,
    height: int,
    nodes: Sequence[VoronoiNode],
    use_kdtree: Optional[bool] = None,
) -> BiomeGenerationResult:
    """Partition the board and colour each resulting biome."""
    return BiomeGenerationResult(
        biome_map=generate_partition(width, height, nodes, use_kdtree=use_kdtree),
        biome_colors=biome_colors(nodes),
    )

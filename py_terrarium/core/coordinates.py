"""
Grid geometry for the isometric board.

This module provides:
- Grid <-> isometric (skewed) projection used by any presentation layer
- Bounds checks, 4- and 8-neighbourhoods and Manhattan distance
- The single canonical coordinate key used for set membership
- Order-preserving deduplication of coordinate lists

Out-of-range positions are a caller precondition violation; these helpers
clip neighbourhoods to the board but do not validate their centre.
"""

import math
from typing import Iterable, List, NamedTuple, Tuple


class Coordinate(NamedTuple):
    """Integer grid position, x across, y down."""

    x: int
    y: int


# Clockwise from north; also the displacement scan order
DIRECTIONS_8: Tuple[Tuple[int, int], ...] = (
    (0, -1), (1, -1), (1, 0), (1, 1),
    (0, 1), (-1, 1), (-1, 0), (-1, -1),
)

DIRECTIONS_4: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


def coord_key(x: int, y: int) -> str:
    """
    Canonical key for a grid position.

    Component order is fixed (x first) so (1, 2) and (2, 1) never collide.
    Every set/dict keyed by position goes through this function.
    """
    return f"{x},{y}"


def parse_coord_key(key: str) -> Coordinate:
    """Inverse of :func:`coord_key`."""
    x, y = key.split(",")
    return Coordinate(int(x), int(y))


def grid_to_iso(grid_x: int, grid_y: int, tile_size: float, tile_height: float) -> Tuple[float, float]:
    """Project a grid position to isometric coordinates (no anchor offset)."""
    iso_x = (grid_x - grid_y) * tile_size / 2
    iso_y = (grid_x + grid_y) * tile_height / 2
    return iso_x, iso_y


def grid_to_world(
    grid_x: int,
    grid_y: int,
    tile_size: float,
    tile_height: float,
    anchor_x: float,
    anchor_y: float,
) -> Tuple[float, float]:
    """Project a grid position to world coordinates relative to an anchor."""
    iso_x, iso_y = grid_to_iso(grid_x, grid_y, tile_size, tile_height)
    return anchor_x + iso_x, anchor_y + iso_y


def world_to_grid(
    world_x: float,
    world_y: float,
    tile_size: float,
    tile_height: float,
    anchor_x: float,
    anchor_y: float,
) -> Coordinate:
    """
    Inverse of :func:`grid_to_world`, flooring to the containing tile.

    Args:
        world_x: World X coordinate
        world_y: World Y coordinate
        tile_size: Full tile width
        tile_height: Full tile height
        anchor_x: World X of grid origin
        anchor_y: World Y of grid origin

    Returns:
        Grid coordinate of the tile whose diamond contains the point. The
        result may lie off the board; callers check bounds.
    """
    local_x = world_x - anchor_x
    local_y = world_y - anchor_y
    half_w = tile_size / 2
    half_h = tile_height / 2
    # Shift by half a tile so the diamond centre maps onto its grid cell
    gx = (local_y / half_h + local_x / half_w) / 2 + 0.5
    gy = (local_y / half_h - local_x / half_w) / 2 + 0.5
    return Coordinate(math.floor(gx), math.floor(gy))


def is_valid_coordinate(x: int, y: int, board_width: int, board_height: int) -> bool:
    """Check if a grid coordinate is within the board dimensions."""
    return 0 <= x < board_width and 0 <= y < board_height


def get_neighbors(x: int, y: int, board_width: int, board_height: int) -> List[Coordinate]:
    """Orthogonal neighbours clipped to the board."""
    return [
        Coordinate(x + dx, y + dy)
        for dx, dy in DIRECTIONS_4
        if is_valid_coordinate(x + dx, y + dy, board_width, board_height)
    ]


def get_adjacent_tiles(
    x: int, y: int, board_width: int, board_height: int, radius: int = 1
) -> List[Coordinate]:
    """
    Square neighbourhood around (x, y), centre first, clipped to the board.

    With the default radius this is the 3x3 block: the tile itself plus its
    8 neighbours.
    """
    result = [Coordinate(x, y)]
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if dx == 0 and dy == 0:
                continue
            nx, ny = x + dx, y + dy
            if is_valid_coordinate(nx, ny, board_width, board_height):
                result.append(Coordinate(nx, ny))
    return result


def manhattan_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    return abs(x2 - x1) + abs(y2 - y1)


def remove_duplicate_tiles(tiles: Iterable[Tuple[int, int]]) -> List[Coordinate]:
    """Drop repeated positions, keeping first-seen order."""
    seen = set()
    unique: List[Coordinate] = []
    for x, y in tiles:
        key = coord_key(x, y)
        if key in seen:
            continue
        seen.add(key)
        unique.append(Coordinate(x, y))
    return unique


def iso_diamond_points(
    tile_size: float, tile_height: float, scale: float = 1.0
) -> List[Tuple[float, float]]:
    """Corner offsets (top, right, bottom, left) of an isometric tile."""
    return [
        (0.0, -tile_height / 2 * scale),
        (tile_size / 2 * scale, 0.0),
        (0.0, tile_height / 2 * scale),
        (-tile_size / 2 * scale, 0.0),
    ]

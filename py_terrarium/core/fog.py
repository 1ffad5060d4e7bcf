"""
Fog-of-war layer contract and an in-memory implementation.

The visibility engine talks to any object with this shape; a drawing
front-end implements it by tweening fog sprites, while :class:`FogLayer`
keeps a boolean mask so headless callers (the HTTP API, tests) can ask what
is currently hidden.
"""

from typing import Iterable, List, Optional, Protocol, Tuple

import numpy as np
import structlog

from .coordinates import Coordinate
from .models import Board

logger = structlog.get_logger()


class FogRenderer(Protocol):
    """Receives batched fog changes. Revealing a visible tile is a no-op."""

    def create_fog_of_war(self, board: Board) -> None: ...

    def clear_fog_of_war(self) -> None: ...

    def reveal_tiles(self, coords: Iterable[Tuple[int, int]]) -> None: ...

    def hide_tiles(self, coords: Iterable[Tuple[int, int]]) -> None: ...


class NullFogRenderer:
    """Discards every notification."""

    def create_fog_of_war(self, board: Board) -> None:
        pass

    def clear_fog_of_war(self) -> None:
        pass

    def reveal_tiles(self, coords: Iterable[Tuple[int, int]]) -> None:
        pass

    def hide_tiles(self, coords: Iterable[Tuple[int, int]]) -> None:
        pass


class FogLayer:
    """
    Boolean fog mask, True where a tile is hidden.

    Every call is appended to ``history`` as ``(operation, coords)`` so a
    presentation layer can replay the exact batches it was sent.
    """

    def __init__(self):
        self.mask: Optional[np.ndarray] = None
        self.history: List[Tuple[str, List[Coordinate]]] = []

    @property
    def enabled(self) -> bool:
        return self.mask is not None

    def create_fog_of_war(self, board: Board) -> None:
        self.mask = np.ones((board.height, board.width), dtype=bool)
        self.history.append(("create", []))

    def clear_fog_of_war(self) -> None:
        self.mask = None
        self.history.append(("clear", []))

    def reveal_tiles(self, coords: Iterable[Tuple[int, int]]) -> None:
        batch = [Coordinate(x, y) for x, y in coords]
        self.history.append(("reveal", batch))
        if self.mask is None:
            return
        for x, y in batch:
            self.mask[y, x] = False

    def hide_tiles(self, coords: Iterable[Tuple[int, int]]) -> None:
        batch = [Coordinate(x, y) for x, y in coords]
        self.history.append(("hide", batch))
        if self.mask is None:
            return
        for x, y in batch:
            self.mask[y, x] = True

    def is_hidden(self, x: int, y: int) -> bool:
        if self.mask is None:
            return False
        return bool(self.mask[y, x])

    def revealed_tiles(self) -> List[Coordinate]:
        """Uncovered tiles in row-major order; empty while fog is off."""
        if self.mask is None:
            return []
        ys, xs = np.nonzero(~self.mask)
        return [Coordinate(int(x), int(y)) for y, x in zip(ys, xs)]

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

# Value of a stroke width map pixel no ray has reached.
UNSET = -1.0

Point = Tuple[int, int]
BoundingBox = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Ray:
    """Accepted ray from edge pixel ``p`` to the facing edge pixel ``q``.

    ``points`` is an ``(N, 2)`` int array of ``(x, y)`` pixels in walk order,
    starting with ``p`` and ending with ``q``.
    """

    p: Point
    q: Point
    points: np.ndarray
    length: float

    @property
    def xs(self) -> np.ndarray:
        return self.points[:, 0]

    @property
    def ys(self) -> np.ndarray:
        return self.points[:, 1]


@dataclass(frozen=True)
class Component:
    """Connected region of consistent stroke width that survived filtering.

    ``bbox`` is ``(min_x, min_y, max_x, max_y)`` with inclusive bounds.
    ``length``/``width`` are the x/y extents of the minimal-area rotated box,
    ``width`` being the one compared as character height.
    """

    index: int
    points: np.ndarray
    bbox: BoundingBox
    center: Tuple[float, float]
    length: float
    width: float
    mean: float
    variance: float
    median: float
    color: Optional[Tuple[float, float, float]] = None

    @property
    def size(self) -> int:
        return int(self.points.shape[0])


@dataclass(frozen=True)
class Chain:
    p: int
    q: int
    components: List[int] = field(default_factory=list)
    direction: Tuple[float, float] = (0.0, 0.0)
    dist: float = 0.0

    def unique_components(self) -> List[int]:
        return sorted(set(self.components))

    def shares_end(self, other: "Chain") -> bool:
        return self.p in (other.p, other.q) or self.q in (other.p, other.q)

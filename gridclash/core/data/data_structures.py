"""Grid coordinate and bounds types shared by every battle system.

Positions are exact integer grid points. Absent positions ("no target",
"no free neighbour") are plain ``None`` rather than a far-away sentinel
point, so they can never leak into distance comparisons.
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class GridPoint:
    """Integer (x, y) grid coordinate.

    Frozen so points can be used as dictionary keys and set members.
    Equality is exact integer equality.
    """
    x: int
    y: int

    def __add__(self, other: "GridPoint") -> "GridPoint":
        """Vector addition."""
        return GridPoint(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "GridPoint") -> "GridPoint":
        """Vector subtraction."""
        return GridPoint(self.x - other.x, self.y - other.y)

    def __iter__(self):
        """Make GridPoint iterable for unpacking (x, y order)."""
        yield self.x
        yield self.y

    def __repr__(self) -> str:
        return f"GridPoint({self.x}, {self.y})"

    def manhattan_distance_to(self, other: "GridPoint") -> int:
        """Calculate Manhattan distance to another point."""
        return abs(self.x - other.x) + abs(self.y - other.y)

    def to_tuple(self) -> tuple[int, int]:
        """Convert to coordinate tuple (x, y order)."""
        return (self.x, self.y)

    @classmethod
    def from_tuple(cls, coords: tuple[int, int]) -> "GridPoint":
        """Create GridPoint from coordinate tuple (x, y order)."""
        return cls(int(coords[0]), int(coords[1]))


@dataclass(frozen=True)
class FieldBounds:
    """Axis-aligned inclusive rectangle of grid points.

    Numpy layers covering the field are shaped ``(height, width)`` and
    indexed with :meth:`to_index`, so row 0 is ``min_y`` and column 0 is
    ``min_x``.
    """
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    def __post_init__(self):
        if self.min_x > self.max_x:
            raise ValueError(f"Invalid bounds: min_x {self.min_x} > max_x {self.max_x}")
        if self.min_y > self.max_y:
            raise ValueError(f"Invalid bounds: min_y {self.min_y} > max_y {self.max_y}")

    @property
    def width(self) -> int:
        return abs(self.max_x - self.min_x) + 1

    @property
    def height(self) -> int:
        return abs(self.max_y - self.min_y) + 1

    @property
    def shape(self) -> tuple[int, int]:
        """Shape of a numpy layer covering these bounds (rows, columns)."""
        return (self.height, self.width)

    def contains(self, point: GridPoint) -> bool:
        """Inclusive range test on both axes."""
        return (self.min_x <= point.x <= self.max_x and
                self.min_y <= point.y <= self.max_y)

    def contains_bounds(self, other: "FieldBounds") -> bool:
        """True if ``other`` lies entirely inside these bounds."""
        return (self.min_x <= other.min_x and other.max_x <= self.max_x and
                self.min_y <= other.min_y and other.max_y <= self.max_y)

    def all_points(self) -> list[GridPoint]:
        """Every integer point inside the bounds, row-major (y outer, x inner)."""
        y_coords, x_coords = np.mgrid[self.min_y:self.max_y + 1, self.min_x:self.max_x + 1]
        return [GridPoint(int(x), int(y)) for y, x in zip(y_coords.ravel(), x_coords.ravel())]

    def to_index(self, point: GridPoint) -> tuple[int, int]:
        """Convert a point to a (row, column) index into a layer array."""
        return (point.y - self.min_y, point.x - self.min_x)

    def points_from_mask(self, mask: NDArray[np.bool_]) -> list[GridPoint]:
        """Convert a boolean layer back into points, row-major."""
        rows, cols = np.nonzero(mask)
        return [GridPoint(int(col) + self.min_x, int(row) + self.min_y)
                for row, col in zip(rows, cols)]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldBounds":
        """Create bounds from a mapping with min_x/max_x/min_y/max_y keys."""
        try:
            return cls(
                min_x=int(data["min_x"]),
                max_x=int(data["max_x"]),
                min_y=int(data["min_y"]),
                max_y=int(data["max_y"]),
            )
        except KeyError as e:
            raise ValueError(f"Bounds definition is missing {e.args[0]!r}") from e


def manhattan_distance(start: Optional[GridPoint], goal: Optional[GridPoint]) -> int:
    """Manhattan distance that treats a missing endpoint as zero distance."""
    if start is None or goal is None:
        return 0
    return start.manhattan_distance_to(goal)

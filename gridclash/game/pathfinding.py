"""A* pathfinding over the battleground grid.

The search uses a plain list as its open set and a linear scan to select
the node with the smallest f score, so ties are broken by insertion order.
That ordering decides which of several equally short paths a unit walks and
is relied upon for reproducible battles.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from ..core.data.data_structures import FieldBounds, GridPoint, manhattan_distance

WalkablePredicate = Callable[[GridPoint], bool]

# Expansion order: east, west, north, south
ORTHOGONAL_OFFSETS = (
    GridPoint(1, 0),
    GridPoint(-1, 0),
    GridPoint(0, 1),
    GridPoint(0, -1),
)

DIAGONAL_OFFSETS = (
    GridPoint(1, 1),
    GridPoint(1, -1),
    GridPoint(-1, 1),
    GridPoint(-1, -1),
)

STEP_COST = 1


def heuristic(start: Optional[GridPoint], goal: Optional[GridPoint]) -> int:
    """Manhattan distance; an absent endpoint counts as zero distance."""
    return manhattan_distance(start, goal)


def point_neighbours(point: GridPoint, with_diagonal: bool = False) -> list[GridPoint]:
    """Unfiltered neighbours of ``point``.

    Args:
        point: Centre cell
        with_diagonal: Append the four diagonal neighbours after the
            orthogonal ones

    Returns:
        4 or 8 points, possibly outside any bounds
    """
    offsets = ORTHOGONAL_OFFSETS + DIAGONAL_OFFSETS if with_diagonal else ORTHOGONAL_OFFSETS
    return [point + offset for offset in offsets]


@dataclass
class PathNode:
    """Search node; ``came_from`` links back toward the start."""
    position: GridPoint
    g: int
    h: int
    came_from: Optional["PathNode"] = None

    @property
    def f(self) -> int:
        return self.g + self.h


class Pathfinder:
    """A* search restricted to ``bounds`` and a walkability predicate.

    The goal cell itself is always accepted as a neighbour even when it is
    not walkable, which lets units path toward a cell held by an enemy.
    The start cell is never tested.
    """

    def __init__(self, bounds: FieldBounds, is_walkable: WalkablePredicate):
        self.bounds = bounds
        self.is_walkable = is_walkable

    def find_path(self, start: GridPoint, goal: GridPoint) -> Optional[list[GridPoint]]:
        """Find a shortest 4-connected path.

        Args:
            start: First cell of the path
            goal: Last cell of the path

        Returns:
            Points from start to goal inclusive, or None when the goal is
            unreachable
        """
        open_set: list[PathNode] = [PathNode(start, 0, heuristic(start, goal))]
        closed: set[GridPoint] = set()

        while open_set:
            current = self._select_best(open_set)
            if current.position == goal:
                return self._reconstruct(current)

            open_set.remove(current)
            closed.add(current.position)

            for neighbour in self._expand(current, goal):
                if neighbour.position in closed:
                    continue

                open_node = next(
                    (node for node in open_set if node.position == neighbour.position), None
                )
                if open_node is None:
                    open_set.append(neighbour)
                elif open_node.g > neighbour.g:
                    open_node.came_from = current
                    open_node.g = neighbour.g

        return None

    def find_inner_path(self, start: GridPoint, goal: GridPoint) -> Optional[list[GridPoint]]:
        """Like :meth:`find_path` with both endpoints stripped.

        Only the intermediate cells are returned since neither the walker's
        own cell nor the goal cell is a valid move target.
        """
        path = self.find_path(start, goal)
        if path is None:
            return None
        return path[1:-1]

    @staticmethod
    def _select_best(open_set: list[PathNode]) -> PathNode:
        # First minimal element wins; min() keeps the earliest on ties
        return min(open_set, key=lambda node: node.f)

    def _expand(self, node: PathNode, goal: GridPoint) -> list[PathNode]:
        neighbours = []
        for point in point_neighbours(node.position):
            if not self.bounds.contains(point):
                continue
            if point != goal and not self.is_walkable(point):
                continue
            neighbours.append(
                PathNode(point, node.g + STEP_COST, heuristic(point, goal), came_from=node)
            )
        return neighbours

    @staticmethod
    def _reconstruct(node: PathNode) -> list[GridPoint]:
        path = []
        current: Optional[PathNode] = node
        while current is not None:
            path.append(current.position)
            current = current.came_from
        path.reverse()
        return path

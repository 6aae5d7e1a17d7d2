"""Grid factory for creating maze layouts for the Q-learning engine."""

from typing import Optional, Sequence
import numpy as np

from ..domain.types import Grid, Coord, CellType

# 0 = open, 1 = wall; rows are y, columns are x
REFERENCE_LAYOUT = (
    (0, 0, 0, 1, 0, 0, 0, 1, 1, 1),
    (1, 1, 0, 1, 0, 1, 0, 0, 0, 1),
    (1, 0, 0, 0, 0, 1, 1, 1, 0, 1),
    (1, 0, 1, 1, 1, 1, 1, 1, 0, 1),
    (1, 0, 0, 0, 0, 0, 0, 0, 0, 1),
    (1, 1, 1, 1, 0, 1, 1, 1, 0, 1),
    (1, 0, 0, 0, 0, 1, 0, 0, 0, 1),
    (1, 0, 1, 1, 1, 1, 0, 1, 1, 1),
    (1, 0, 0, 0, 0, 0, 0, 1, 1, 1),
    (1, 1, 1, 1, 1, 1, 0, 0, 0, 0),
)

REFERENCE_START: Coord = (0, 0)
REFERENCE_GOAL: Coord = (9, 9)


def create_empty_grid(size: int, start: Coord = (0, 0), goal: Optional[Coord] = None) -> Grid:
    """
    Create a new open grid with the specified size.

    Args:
        size: Grid width and height (must be > 0)
        start: Start coordinate
        goal: Goal coordinate, defaults to the opposite corner

    Returns:
        New Grid with no walls

    Raises:
        ValueError: If size <= 0
    """
    if size <= 0:
        raise ValueError(f"Grid size must be positive, got {size}")

    layout = [[0] * size for _ in range(size)]
    return create_maze_from_layout(layout, start, goal if goal is not None else (size - 1, size - 1))


def create_maze_from_layout(layout: Sequence[Sequence[int]], start: Coord, goal: Coord) -> Grid:
    """
    Build a grid from rows of 0 (open) / 1 (wall).

    Raises:
        ValueError: If the layout is not square, start/goal are out of bounds
            or placed on a wall, or start equals goal
    """
    cells = np.array(layout, dtype=np.int8)
    if cells.ndim != 2 or cells.shape[0] == 0 or cells.shape[0] != cells.shape[1]:
        raise ValueError(f"Maze layout must be a non-empty square, got shape {cells.shape}")
    if not np.isin(cells, (0, 1)).all():
        raise ValueError("Maze layout may only contain 0 (open) and 1 (wall)")

    size = cells.shape[0]
    for name, (x, y) in (("start", start), ("goal", goal)):
        if not (0 <= x < size and 0 <= y < size):
            raise ValueError(f"{name} {(x, y)} is outside the {size}x{size} maze")
        if cells[y, x] == CellType.WALL:
            raise ValueError(f"{name} {(x, y)} is on a wall")
    if start == goal:
        raise ValueError("start and goal must differ")

    cells[start[1], start[0]] = CellType.START
    cells[goal[1], goal[0]] = CellType.GOAL
    return Grid(cells=cells, start=tuple(start), goal=tuple(goal))


def create_reference_maze() -> Grid:
    """The 10x10 teaching maze: start top-left, goal bottom-right."""
    return create_maze_from_layout(REFERENCE_LAYOUT, REFERENCE_START, REFERENCE_GOAL)

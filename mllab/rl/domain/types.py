"""Core type definitions for the grid-world Q-learning engine."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Tuple, Dict, List
import numpy as np

# Coordinate type for grid positions, (x, y)
Coord = Tuple[int, int]


class CellType(IntEnum):
    """Kinds of cells in the maze."""
    EMPTY = 0
    WALL = 1
    START = 2
    GOAL = 3


class Action(IntEnum):
    """Actions the agent can take. Enumeration order is the greedy tie-break order."""
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3

    @property
    def delta(self) -> Coord:
        return ACTION_DELTAS[self]


ACTION_DELTAS: Dict[Action, Coord] = {
    Action.UP: (0, -1),
    Action.DOWN: (0, 1),
    Action.LEFT: (-1, 0),
    Action.RIGHT: (1, 0),
}


class RLPhase(Enum):
    """Phases of the step-by-step training cycle."""
    IDLE = "idle"
    MAKING_MOVE = "making_move"
    CALCULATING_REWARD = "calculating_reward"
    UPDATING_Q_TABLE = "updating_q_table"


class TrainingSpeed(Enum):
    """Pacing presets for continuous training: (delay in seconds, visualization frequency)."""
    SLOW = (0.1, 1)
    MEDIUM = (0.01, 10)
    FAST = (0.001, 50)
    INSTANT = (0.0, 100)

    @property
    def delay(self) -> float:
        return self.value[0]

    @property
    def visualization_frequency(self) -> int:
        """Only every n-th episode is paced; the others run at full speed."""
        return self.value[1]


@dataclass
class Grid:
    """Square maze of cell kinds with a fixed start and goal."""
    cells: np.ndarray
    start: Coord
    goal: Coord

    @property
    def size(self) -> int:
        return int(self.cells.shape[0])

    def is_valid_coord(self, coord: Coord) -> bool:
        """Check if coordinate is within grid bounds."""
        x, y = coord
        return 0 <= x < self.size and 0 <= y < self.size

    def cell(self, coord: Coord) -> CellType:
        """Kind of the cell at coord (row-major, cells[y][x])."""
        x, y = coord
        return CellType(int(self.cells[y, x]))

    def is_wall(self, coord: Coord) -> bool:
        return self.cell(coord) == CellType.WALL

    def walls(self) -> List[Coord]:
        """All wall coordinates, row by row."""
        ys, xs = np.nonzero(self.cells == CellType.WALL)
        return [(int(x), int(y)) for x, y in zip(xs, ys)]


@dataclass
class QLearningConfig:
    """Configuration for the Q-learning engine."""
    learning_rate: float = 0.5
    discount_factor: float = 0.95
    epsilon: float = 1.0  # Start with 100% exploration
    epsilon_decay: float = 0.998
    epsilon_min: float = 0.05
    max_moves_per_episode: int = 1000
    max_episodes: Optional[int] = None  # None trains until stopped
    reward_goal: float = 200.0
    reward_step: float = -0.01
    reward_wall: float = -0.5
    speed: TrainingSpeed = TrainingSpeed.MEDIUM
    demo_delay: float = 0.3
    demo_max_moves: int = 100
    reward_history_size: int = 100


@dataclass(frozen=True)
class MoveResult:
    """Outcome of one attempted move."""
    new_position: Coord
    reward: float
    attempted: Coord
    hit_wall: bool
    reached_goal: bool


@dataclass
class Episode:
    """Represents a single training episode."""
    number: int
    steps: int
    total_reward: float
    reached_goal: bool
    epsilon_used: float


@dataclass(frozen=True)
class StepInfo:
    """Intermediate values of the step-by-step cycle, for inspection between phases."""
    action: Optional[Action] = None
    previous_position: Optional[Coord] = None
    attempted_position: Optional[Coord] = None
    hit_wall: bool = False
    reward: float = 0.0
    old_q_value: float = 0.0
    new_q_value: float = 0.0
    episode_finished: bool = False


@dataclass(frozen=True)
class GridWorldSnapshot:
    """Immutable view of the engine's observable state."""
    state: str
    phase: RLPhase
    agent_position: Coord
    episode: int
    moves_in_episode: int
    total_reward: float
    successful_episodes: int
    success_rate: float
    epsilon: float
    step: StepInfo
    episode_rewards: Tuple[float, ...] = ()
    best_path: Tuple[Coord, ...] = ()
    q_table_size: int = 0
    walls: Tuple[Coord, ...] = field(default_factory=tuple)

"""Tabular Q-Learning: maze environment and agent."""

import logging
import numpy as np
from typing import Optional, Dict, List, Tuple

from .types import (
    Coord, Grid, Action, QLearningConfig, MoveResult, Episode, ACTION_DELTAS
)
from ...utils.rng import SeededRNG

logger = logging.getLogger(__name__)

ACTIONS: List[Action] = list(Action)


class QLearningEnvironment:
    """Maze environment. Owns the agent's current position."""

    def __init__(self, grid: Grid, config: QLearningConfig):
        self.grid = grid
        self.config = config
        self.current_pos: Coord = grid.start

    @property
    def start(self) -> Coord:
        return self.grid.start

    @property
    def goal(self) -> Coord:
        return self.grid.goal

    def reset(self) -> Coord:
        """Put the agent back on the start cell."""
        self.current_pos = self.grid.start
        return self.current_pos

    def target_of(self, action: Action, position: Optional[Coord] = None) -> Coord:
        """Cell the action points at, which may be outside the grid."""
        x, y = position if position is not None else self.current_pos
        dx, dy = ACTION_DELTAS[action]
        return (x + dx, y + dy)

    def perform_action(self, action: Action, position: Optional[Coord] = None) -> MoveResult:
        """
        Work out the outcome of an action without moving the agent.

        Walls and the boundary leave the agent where it is with a penalty, the goal
        pays the goal reward and any other open cell costs the small step cost.
        """
        position = position if position is not None else self.current_pos
        target = self.target_of(action, position)

        if not self.grid.is_valid_coord(target) or self.grid.is_wall(target):
            return MoveResult(position, self.config.reward_wall, target, True, False)

        if target == self.grid.goal:
            return MoveResult(target, self.config.reward_goal, target, False, True)

        return MoveResult(target, self.config.reward_step, target, False, False)

    def step(self, action: Action) -> MoveResult:
        """Execute action from the current position and move the agent."""
        result = self.perform_action(action)
        self.current_pos = result.new_position
        return result


class QLearningAgent:
    """Q-Learning agent with a sparse Q-table and epsilon-greedy exploration."""

    def __init__(self, config: QLearningConfig, rng: Optional[SeededRNG] = None):
        self.config = config
        self.rng = rng or SeededRNG()
        self.epsilon = config.epsilon
        # Absent states read as all-zero rows
        self.q_table: Dict[Coord, np.ndarray] = {}

    def reset(self):
        """Forget everything learned and restore the initial exploration rate."""
        self.q_table.clear()
        self.epsilon = self.config.epsilon

    def q_values(self, state: Coord) -> np.ndarray:
        """Copy of the Q-values of all actions at state."""
        row = self.q_table.get(state)
        return row.copy() if row is not None else np.zeros(len(ACTIONS))

    def get_q_value(self, state: Coord, action: Action) -> float:
        """Get Q-value for state-action pair."""
        row = self.q_table.get(state)
        return float(row[action]) if row is not None else 0.0

    def max_q_value(self, state: Coord) -> float:
        row = self.q_table.get(state)
        return float(row.max()) if row is not None else 0.0

    def get_best_action(self, state: Coord) -> Action:
        """Action with the highest Q-value; ties go to the first action in enumeration order."""
        # np.argmax returns the first maximum
        return ACTIONS[int(np.argmax(self.q_values(state)))]

    def choose_action(self, state: Coord) -> Action:
        """Select action using the epsilon-greedy policy."""
        if self.rng.random() < self.epsilon:
            return self.rng.choice(ACTIONS)
        return self.get_best_action(state)

    def update(self, state: Coord, action: Action, reward: float, next_state: Coord) -> Tuple[float, float]:
        """
        Apply the Q-learning update rule.

        Q(s,a) <- Q(s,a) + alpha * (reward + gamma * max_a' Q(s',a') - Q(s,a))

        Returns:
            (old Q-value, new Q-value)
        """
        current_q = self.get_q_value(state, action)
        next_q_max = self.max_q_value(next_state)

        target = reward + self.config.discount_factor * next_q_max
        new_q = current_q + self.config.learning_rate * (target - current_q)

        row = self.q_table.get(state)
        if row is None:
            row = self.q_table[state] = np.zeros(len(ACTIONS))
        row[action] = new_q
        return current_q, new_q

    def decay_epsilon(self):
        """Decay epsilon for less exploration over time."""
        self.epsilon = max(self.config.epsilon_min,
                           self.epsilon * self.config.epsilon_decay)


def run_episode(agent: QLearningAgent, env: QLearningEnvironment, number: int = 0) -> Episode:
    """
    Train for one full episode: choose, act and update until the goal or the move cap.

    Decays epsilon at the end. Hitting the cap ends the episode as a failure.
    """
    env.reset()
    epsilon_used = agent.epsilon
    total_reward = 0.0
    moves = 0

    while env.current_pos != env.goal and moves < agent.config.max_moves_per_episode:
        state = env.current_pos
        action = agent.choose_action(state)
        result = env.step(action)
        agent.update(state, action, result.reward, result.new_position)
        total_reward += result.reward
        moves += 1

    agent.decay_epsilon()
    return Episode(
        number=number,
        steps=moves,
        total_reward=total_reward,
        reached_goal=env.current_pos == env.goal,
        epsilon_used=epsilon_used,
    )


def greedy_path(agent: QLearningAgent, env: QLearningEnvironment, max_length: int = 100) -> List[Coord]:
    """Follow the learned policy from the start without touching the Q-table.

    Stops at the goal, at max_length cells, or as soon as the policy would revisit
    a cell (a loop, including bumping into a wall).
    """
    path = [env.start]
    current = env.start
    visited = set()

    while current != env.goal and len(path) < max_length:
        visited.add(current)
        result = env.perform_action(agent.get_best_action(current), current)
        if result.new_position in visited:
            break
        path.append(result.new_position)
        current = result.new_position

    return path

"""Grid-world Q-learning engine: continuous training, step mode and demonstration."""

import logging
from collections import deque
from dataclasses import replace
from typing import Optional, List, Sequence, Deque

from ..domain.types import (
    Coord, Grid, Action, Episode, QLearningConfig, RLPhase, StepInfo,
    TrainingSpeed, GridWorldSnapshot
)
from ..domain.qlearning import QLearningAgent, QLearningEnvironment, run_episode, greedy_path
from ..utils.grid_factory import create_reference_maze, create_maze_from_layout
from ...engine.fsm import EngineStateMachine, EngineState
from ...engine.runner import PacedRunner
from ...utils.rng import SeededRNG

logger = logging.getLogger(__name__)

# Config keys that only affect pacing and may change while a mode is running
PACING_KEYS = frozenset({"speed", "demo_delay"})


class GridWorldQLearning:
    """
    Engine that trains a tabular Q-learning agent in a maze.

    The engine runs in one of three modes at a time:

    * continuous - a paced background task performing one move per tick,
      starting a new episode whenever the goal or the move cap is reached
    * stepping - the caller advances the cycle
      idle -> making_move -> calculating_reward -> updating_q_table -> idle
      one phase at a time and inspects ``step_info`` in between
    * demonstrating - a paced replay of the greedy policy that never writes
      the Q-table

    Observable state is read through properties or ``snapshot()``.
    """

    def __init__(self, config: Optional[QLearningConfig] = None,
                 grid: Optional[Grid] = None, seed: Optional[int] = None):
        self._config = config or QLearningConfig()
        self._rng = SeededRNG(seed)
        self._state_machine = EngineStateMachine("grid-world")
        self._runner = PacedRunner("grid-world")

        self._grid = grid or create_reference_maze()
        self._env = QLearningEnvironment(self._grid, self._config)
        self._agent = QLearningAgent(self._config, self._rng)

        # Session counters
        self._episode = 0
        self._moves = 0
        self._total_reward = 0.0
        self._successful_episodes = 0
        self._episode_rewards: Deque[float] = deque(maxlen=self._config.reward_history_size)
        self._history: Deque[Episode] = deque(maxlen=self._config.reward_history_size)

        # Step mode state
        self._phase = RLPhase.IDLE
        self._step_info = StepInfo()

        self._demo_moves = 0
        self._best_path: List[Coord] = []

        self._setup_state_callbacks()

    def _setup_state_callbacks(self):
        """Setup callbacks for state machine transitions."""
        self._state_machine.on_state_enter(EngineState.IDLE, self._on_idle_entered)
        self._state_machine.on_state_enter(EngineState.CONTINUOUS, self._on_continuous_entered)

    # Properties

    @property
    def config(self) -> QLearningConfig:
        return self._config

    @property
    def state(self) -> EngineState:
        """Current execution mode."""
        return self._state_machine.current_state

    @property
    def phase(self) -> RLPhase:
        return self._phase

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def agent(self) -> QLearningAgent:
        return self._agent

    @property
    def agent_position(self) -> Coord:
        return self._env.current_pos

    @property
    def episode(self) -> int:
        return self._episode

    @property
    def moves_in_episode(self) -> int:
        return self._moves

    @property
    def total_reward(self) -> float:
        """Reward collected so far in the current episode."""
        return self._total_reward

    @property
    def successful_episodes(self) -> int:
        return self._successful_episodes

    @property
    def success_rate(self) -> float:
        return self._successful_episodes / self._episode if self._episode > 0 else 0.0

    @property
    def epsilon(self) -> float:
        return self._agent.epsilon

    @property
    def step_info(self) -> StepInfo:
        return self._step_info

    @property
    def episode_rewards(self) -> List[float]:
        """Rewards of the most recent episodes, oldest first."""
        return list(self._episode_rewards)

    @property
    def history(self) -> List[Episode]:
        return list(self._history)

    @property
    def demo_moves(self) -> int:
        return self._demo_moves

    @property
    def is_running(self) -> bool:
        return self._state_machine.is_active()

    def q_values_at(self, position: Coord) -> dict:
        """Q-values of every action at position, keyed by action."""
        values = self._agent.q_values(position)
        return {action: float(values[action]) for action in Action}

    def best_path(self) -> List[Coord]:
        """Greedy path from start under the current Q-table."""
        return greedy_path(self._agent, self._env, self._config.demo_max_moves)

    # Lifecycle

    def initialize(self, layout: Optional[Sequence[Sequence[int]]] = None,
                   start: Optional[Coord] = None, goal: Optional[Coord] = None) -> bool:
        """
        Install a maze and start a fresh session.

        Args:
            layout: Rows of 0 (open) / 1 (wall); the reference maze if omitted
            start: Start cell, required with a custom layout
            goal: Goal cell, required with a custom layout

        Returns:
            False while a mode is running (the maze is structural)
        """
        if not self._state_machine.is_idle():
            return False

        if layout is None:
            grid = create_reference_maze()
        else:
            grid = create_maze_from_layout(layout, start or (0, 0),
                                           goal or (len(layout) - 1, len(layout) - 1))

        self._grid = grid
        self._env = QLearningEnvironment(self._grid, self._config)
        self._clear_session()
        logger.info("Maze initialized: %dx%d, start %s, goal %s",
                    grid.size, grid.size, grid.start, grid.goal)
        return True

    def reset(self) -> bool:
        """Cancel any running mode and clear the Q-table, epsilon and all counters."""
        self._runner.cancel()
        if self._state_machine.is_active():
            self._state_machine.finish()
        self._clear_session()
        return True

    def _clear_session(self):
        self._rng.reseed()
        self._agent.reset()
        self._env.reset()
        self._reset_counters()
        self._phase = RLPhase.IDLE
        self._step_info = StepInfo()
        self._demo_moves = 0
        self._best_path = []

    def _reset_counters(self):
        """Episode index, move count, reward and success count always restart together."""
        self._episode = 0
        self._moves = 0
        self._total_reward = 0.0
        self._successful_episodes = 0
        self._episode_rewards.clear()
        self._history.clear()

    # Continuous mode

    def start_continuous(self) -> bool:
        """
        Start paced training on the running event loop. No-op if a mode is active.

        Must be called from a coroutine; raises RuntimeError when no event loop
        is running, leaving the engine idle.
        """
        if not self._state_machine.is_idle():
            return False

        self._env.reset()
        self._reset_counters()

        self._runner.start(self._continuous_tick, self._continuous_interval, self._on_run_finished)
        return self._state_machine.start(EngineState.CONTINUOUS)

    def stop(self) -> bool:
        """Stop continuous training or a demonstration. No-op otherwise."""
        if not (self._state_machine.is_continuous() or self._state_machine.is_demonstrating()):
            return False

        was_training = self._state_machine.is_continuous()
        self._runner.cancel()
        self._state_machine.finish()
        if was_training:
            self._best_path = self.best_path()
        return True

    async def wait(self) -> None:
        """Wait for the running continuous/demonstration task to end."""
        await self._runner.wait()

    def _continuous_tick(self) -> bool:
        """One move of the episode loop; rolls over to a new episode when this one ends."""
        state = self._env.current_pos
        action = self._agent.choose_action(state)
        result = self._env.step(action)
        self._agent.update(state, action, result.reward, result.new_position)
        self._total_reward += result.reward
        self._moves += 1

        if result.reached_goal or self._moves >= self._config.max_moves_per_episode:
            self._finish_episode(result.reached_goal)
            max_episodes = self._config.max_episodes
            if max_episodes is not None and self._episode >= max_episodes:
                return False

        return True

    def _continuous_interval(self) -> float:
        speed: TrainingSpeed = self._config.speed
        if self._episode % speed.visualization_frequency != 0:
            return 0.0
        # Pause between episodes, shorter pause between moves
        return speed.delay if self._moves == 0 else speed.delay / 10

    def _finish_episode(self, reached_goal: bool):
        episode = Episode(
            number=self._episode,
            steps=self._moves,
            total_reward=self._total_reward,
            reached_goal=reached_goal,
            epsilon_used=self._agent.epsilon,
        )
        self._agent.decay_epsilon()
        self._record_episode(episode)
        self._env.reset()
        self._moves = 0
        self._total_reward = 0.0

    def _record_episode(self, episode: Episode):
        if episode.reached_goal:
            self._successful_episodes += 1
        self._episode += 1
        self._episode_rewards.append(episode.total_reward)
        self._history.append(episode)
        logger.debug("Episode %d: %s in %d moves, reward %.2f, epsilon %.3f",
                     episode.number, "goal" if episode.reached_goal else "cap",
                     episode.steps, episode.total_reward, self._agent.epsilon)

    def run_episode(self) -> Optional[Episode]:
        """Run one whole episode synchronously. Returns None while a mode is running."""
        if not self._state_machine.is_idle():
            return None

        episode = run_episode(self._agent, self._env, self._episode)
        self._record_episode(episode)
        self._env.reset()
        return episode

    # Step mode

    def start_step_mode(self) -> bool:
        """Enter step mode with a fresh episode. The Q-table and epsilon are kept."""
        if not self._state_machine.start(EngineState.STEPPING):
            return False
        self._begin_step_session()
        return True

    def stop_step_mode(self) -> bool:
        """Leave step mode and put the agent back on the start cell."""
        if not self._state_machine.is_stepping():
            return False
        self._state_machine.finish()
        self._begin_step_session()
        return True

    def _begin_step_session(self):
        self._phase = RLPhase.IDLE
        self._reset_counters()
        self._step_info = StepInfo()
        self._env.reset()

    def advance_step(self) -> bool:
        """Perform the next phase of the step cycle. No-op outside step mode."""
        if not self._state_machine.is_stepping():
            return False

        if self._phase == RLPhase.IDLE:
            self._step_choose_action()
        elif self._phase == RLPhase.MAKING_MOVE:
            self._step_move()
        elif self._phase == RLPhase.CALCULATING_REWARD:
            self._step_update_q_table()
        elif self._phase == RLPhase.UPDATING_Q_TABLE:
            self._step_check_episode()
        return True

    def _step_choose_action(self):
        """Phase 1: pick an action and show where the agent wants to go."""
        state = self._env.current_pos
        action = self._agent.choose_action(state)
        self._step_info = StepInfo(
            action=action,
            previous_position=state,
            attempted_position=self._env.target_of(action),
            old_q_value=self._agent.get_q_value(state, action),
        )
        self._phase = RLPhase.MAKING_MOVE

    def _step_move(self):
        """Phase 2: execute the move and collect the reward."""
        result = self._env.step(self._step_info.action)
        self._total_reward += result.reward
        self._moves += 1
        self._step_info = replace(self._step_info, hit_wall=result.hit_wall, reward=result.reward)
        self._phase = RLPhase.CALCULATING_REWARD

    def _step_update_q_table(self):
        """Phase 3: update the Q-value of the state the move was made from."""
        info = self._step_info
        old_q, new_q = self._agent.update(info.previous_position, info.action,
                                          info.reward, self._env.current_pos)
        self._step_info = replace(info, old_q_value=old_q, new_q_value=new_q)
        self._phase = RLPhase.UPDATING_Q_TABLE

    def _step_check_episode(self):
        """Phase 4: end the episode at the goal or the move cap, then go idle."""
        reached_goal = self._env.current_pos == self._env.goal
        finished = reached_goal or self._moves >= self._config.max_moves_per_episode
        if finished:
            self._finish_episode(reached_goal)
        self._step_info = StepInfo(episode_finished=finished)
        self._phase = RLPhase.IDLE

    # Demonstration mode

    def start_demonstration(self) -> bool:
        """
        Replay the greedy policy from the start cell, paced by ``demo_delay``.

        Must be called from a coroutine, like ``start_continuous()``.
        """
        if not self._state_machine.is_idle():
            return False

        self._env.reset()
        self._demo_moves = 0
        self._runner.start(self._demo_tick, lambda: self._config.demo_delay, self._on_run_finished)
        return self._state_machine.start(EngineState.DEMONSTRATING)

    def _demo_tick(self) -> bool:
        action = self._agent.get_best_action(self._env.current_pos)
        self._env.step(action)
        self._demo_moves += 1
        return (self._env.current_pos != self._env.goal
                and self._demo_moves < self._config.demo_max_moves)

    # Configuration

    def update_config(self, **kwargs) -> bool:
        """
        Update configuration values.

        Pacing values (``speed``, ``demo_delay``) are accepted at any time and are
        picked up on the next tick. Everything else is refused while a mode runs.
        A new ``epsilon`` becomes the agent's current rate and a new
        ``reward_history_size`` resizes the reward and episode histories.

        Raises:
            ValueError: If ``speed`` names no TrainingSpeed preset
        """
        if not self._state_machine.is_idle() and not set(kwargs) <= PACING_KEYS:
            return False

        speed = kwargs.get("speed")
        if isinstance(speed, str):
            try:
                kwargs["speed"] = TrainingSpeed[speed.upper()]
            except KeyError:
                raise ValueError(f"Unknown speed {speed!r}, expected one of "
                                 f"{[s.name.lower() for s in TrainingSpeed]}") from None

        for key, value in kwargs.items():
            if hasattr(self._config, key):
                setattr(self._config, key, value)

        if "epsilon" in kwargs:
            self._agent.epsilon = self._config.epsilon
        if "reward_history_size" in kwargs:
            size = self._config.reward_history_size
            self._episode_rewards = deque(self._episode_rewards, maxlen=size)
            self._history = deque(self._history, maxlen=size)
        return True

    # State machine callbacks

    def _on_continuous_entered(self, context):
        logger.info("Training started at episode %d, epsilon %.3f", self._episode, self._agent.epsilon)

    def _on_idle_entered(self, context):
        logger.info("Grid world idle after %d episodes (%d successful)",
                    self._episode, self._successful_episodes)

    def _on_run_finished(self, completed: bool):
        was_training = self._state_machine.is_continuous()
        self._state_machine.finish()
        if was_training:
            self._best_path = self.best_path()

    def snapshot(self) -> GridWorldSnapshot:
        """Immutable copy of everything a view needs to draw the current state."""
        return GridWorldSnapshot(
            state=self._state_machine.current_state.name.lower(),
            phase=self._phase,
            agent_position=self._env.current_pos,
            episode=self._episode,
            moves_in_episode=self._moves,
            total_reward=self._total_reward,
            successful_episodes=self._successful_episodes,
            success_rate=self.success_rate,
            epsilon=self._agent.epsilon,
            step=self._step_info,
            episode_rewards=tuple(self._episode_rewards),
            best_path=tuple(self._best_path),
            q_table_size=len(self._agent.q_table),
            walls=tuple(self._grid.walls()),
        )

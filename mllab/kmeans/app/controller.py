"""K-means clusterer: continuous Lloyd iterations and step-by-step phases."""

import logging
from typing import Optional
import numpy as np

from ..domain.types import ClusteringPhase, KMeansConfig, KMeansSnapshot
from ..domain.datasets import DATASETS, generate_dataset
from ..domain import kmeans
from ...engine.fsm import EngineStateMachine, EngineState
from ...engine.runner import PacedRunner
from ...utils.rng import SeededRNG

logger = logging.getLogger(__name__)

PACING_KEYS = frozenset({"speed"})


class KMeansClusterer:
    """
    Clusters a fixed point set into k groups.

    Starting either mode seeds the centroids by farthest-point seeding. Each
    iteration then alternates two phases, assignment and update; ``phase`` names
    the one the next step performs. After every update the new assignment vector
    is compared with the one from the previous iteration: equal means converged.
    A run ends when converged or after ``max_iterations`` iterations that still
    changed the assignment.
    """

    def __init__(self, config: Optional[KMeansConfig] = None, seed: Optional[int] = None):
        self._config = config or KMeansConfig()
        if self._config.k < 1:
            raise ValueError(f"k must be at least 1, got {self._config.k}")

        self._rng = SeededRNG(seed)
        self._state_machine = EngineStateMachine("kmeans")
        self._runner = PacedRunner("kmeans")

        self._points = np.zeros((0, 2))
        self._labels = np.zeros(0, dtype=int)
        self._assignments = np.zeros(0, dtype=int)
        self._centroids = np.zeros((0, 2))
        self._previous_assignments: Optional[np.ndarray] = None

        self._phase = ClusteringPhase.IDLE
        self._iteration = 0
        self._converged = False
        self._inertia = 0.0

        self._state_machine.on_state_enter(EngineState.IDLE, self._on_idle_entered)
        self._regenerate()

    # Properties

    @property
    def config(self) -> KMeansConfig:
        return self._config

    @property
    def state(self) -> EngineState:
        return self._state_machine.current_state

    @property
    def phase(self) -> ClusteringPhase:
        return self._phase

    @property
    def points(self) -> np.ndarray:
        return self._points.copy()

    @property
    def labels(self) -> np.ndarray:
        """Generating group of each point (-1 where the dataset has none)."""
        return self._labels.copy()

    @property
    def assignments(self) -> np.ndarray:
        return self._assignments.copy()

    @property
    def centroids(self) -> np.ndarray:
        return self._centroids.copy()

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def converged(self) -> bool:
        return self._converged

    @property
    def current_inertia(self) -> float:
        """Inertia reported after the latest update phase."""
        return self._inertia

    @property
    def is_running(self) -> bool:
        return self._state_machine.is_active()

    def inertia(self) -> float:
        """Inertia of the current assignment against the current centroids."""
        return kmeans.inertia(self._points, self._assignments, self._centroids)

    def cluster_sizes(self) -> np.ndarray:
        return kmeans.cluster_sizes(self._assignments, self._config.k)

    # Lifecycle

    def generate(self, dataset: Optional[str] = None) -> bool:
        """Draw a new point set. Returns False while a mode is running."""
        if not self._state_machine.is_idle():
            return False
        if dataset is not None:
            if dataset not in DATASETS:
                raise ValueError(f"Unknown dataset {dataset!r}, expected one of {sorted(DATASETS)}")
            self._config.dataset = dataset
        self._regenerate()
        return True

    def reset(self) -> bool:
        """Cancel any running mode and start over on a fresh point set."""
        self._runner.cancel()
        if self._state_machine.is_active():
            self._state_machine.finish()
        self._rng.reseed()
        self._regenerate()
        return True

    def _regenerate(self):
        self._points, self._labels = generate_dataset(
            self._config.dataset, self._config.point_count, self._rng)
        self._assignments = np.full(len(self._points), kmeans.UNASSIGNED, dtype=int)
        self._centroids = np.zeros((0, 2))
        self._previous_assignments = None
        self._phase = ClusteringPhase.IDLE
        self._iteration = 0
        self._converged = False
        self._inertia = 0.0

    def _begin_session(self):
        """Seed the centroids and forget the previous assignment."""
        self._centroids = kmeans.farthest_point_seeding(self._points, self._config.k, self._rng)
        self._assignments = np.full(len(self._points), kmeans.UNASSIGNED, dtype=int)
        self._previous_assignments = None
        self._iteration = 0
        self._converged = False
        self._inertia = 0.0
        self._phase = ClusteringPhase.ASSIGNMENT
        logger.debug("Seeded %d centroids on %d points", len(self._centroids), len(self._points))

    def _is_finished(self) -> bool:
        return self._converged or self._iteration >= self._config.max_iterations

    def _assign(self):
        self._assignments = kmeans.assign(self._points, self._centroids)
        self._phase = ClusteringPhase.UPDATE

    def _update(self) -> bool:
        """Update phase plus convergence check. Returns True when the run is over."""
        self._centroids = kmeans.update_centroids(self._points, self._assignments, self._centroids)
        self._inertia = self.inertia()

        current = self._assignments.copy()
        if self._previous_assignments is not None and np.array_equal(current, self._previous_assignments):
            self._converged = True
        else:
            self._iteration += 1
        self._previous_assignments = current
        self._phase = ClusteringPhase.ASSIGNMENT

        logger.debug("Iteration %d: inertia %.5f, converged %s",
                     self._iteration, self._inertia, self._converged)
        return self._is_finished()

    # Continuous mode

    def start_continuous(self) -> bool:
        """
        Seed centroids and start the paced assignment/update loop.

        Must be called from a coroutine; raises RuntimeError when no event loop
        is running, leaving the clusterer idle.
        """
        if not self._state_machine.is_idle():
            return False

        self._runner.start(self._continuous_tick, lambda: self._config.speed, self._on_run_finished)
        self._begin_session()
        return self._state_machine.start(EngineState.CONTINUOUS)

    def stop(self) -> bool:
        """Stop the continuous loop. No-op when it is not running."""
        if not self._state_machine.is_continuous():
            return False
        self._runner.cancel()
        self._state_machine.finish()
        self._phase = ClusteringPhase.IDLE
        return True

    async def wait(self) -> None:
        """Wait for the continuous loop to end."""
        await self._runner.wait()

    def _continuous_tick(self) -> bool:
        if self._is_finished():
            return False

        if self._phase == ClusteringPhase.UPDATE:
            return not self._update()

        self._assign()
        return True

    def _on_run_finished(self, completed: bool):
        self._state_machine.finish()
        self._phase = ClusteringPhase.IDLE

    # Step mode

    def start_step_mode(self) -> bool:
        """Seed centroids and wait for the caller to advance; first phase is assignment."""
        if not self._state_machine.start(EngineState.STEPPING):
            return False
        self._begin_session()
        return True

    def stop_step_mode(self) -> bool:
        if not self._state_machine.is_stepping():
            return False
        self._state_machine.finish()
        self._phase = ClusteringPhase.IDLE
        return True

    def advance_step(self) -> bool:
        """Perform the current phase. No-op outside step mode."""
        if not self._state_machine.is_stepping():
            return False

        if self._is_finished():
            self.stop_step_mode()
            return True

        if self._phase == ClusteringPhase.IDLE:
            self._phase = ClusteringPhase.ASSIGNMENT
        elif self._phase == ClusteringPhase.ASSIGNMENT:
            self._assign()
        elif self._update():
            self.stop_step_mode()
        return True

    # Configuration

    def update_config(self, **kwargs) -> bool:
        """
        Update configuration values.

        ``speed`` may change at any time. ``k``, ``max_iterations``, ``dataset`` and
        ``point_count`` are refused while a mode runs.
        """
        if not self._state_machine.is_idle() and not set(kwargs) <= PACING_KEYS:
            return False
        if "k" in kwargs and kwargs["k"] < 1:
            raise ValueError(f"k must be at least 1, got {kwargs['k']}")
        if "dataset" in kwargs and kwargs["dataset"] not in DATASETS:
            raise ValueError(f"Unknown dataset {kwargs['dataset']!r}, expected one of {sorted(DATASETS)}")

        for key, value in kwargs.items():
            if hasattr(self._config, key):
                setattr(self._config, key, value)
        return True

    def _on_idle_entered(self, context):
        outcome = "converged" if self._converged else "did not converge"
        logger.info("K-means %s after %d iterations, inertia %.5f",
                    outcome, self._iteration, self._inertia)

    def snapshot(self) -> KMeansSnapshot:
        """Immutable copy of the observable state."""
        return KMeansSnapshot(
            state=self._state_machine.current_state.name.lower(),
            phase=self._phase,
            dataset=self._config.dataset,
            k=self._config.k,
            iteration=self._iteration,
            converged=self._converged,
            inertia=self._inertia,
            points=tuple((float(x), float(y)) for x, y in self._points),
            assignments=tuple(int(a) for a in self._assignments),
            centroids=tuple((float(x), float(y)) for x, y in self._centroids),
            cluster_sizes=tuple(int(c) for c in self.cluster_sizes()),
        )

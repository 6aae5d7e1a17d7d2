"""Linear regression trainer: continuous gradient descent and step-by-step epochs."""

import logging
from collections import deque
from typing import Optional, List, Tuple, Deque
import numpy as np

from ..domain.types import RegressionConfig, RegressionPhase, RegressionSnapshot
from ..domain.scenarios import get_scenario, generate_samples
from ..domain import model
from ...engine.fsm import EngineStateMachine, EngineState
from ...engine.runner import PacedRunner
from ...utils.rng import SeededRNG

logger = logging.getLogger(__name__)

PACING_KEYS = frozenset({"speed"})


class LinearRegressionTrainer:
    """
    Fits y = slope * x + intercept to a fixed sample set by gradient descent.

    Continuous mode runs one full epoch per tick until the epoch limit. Step mode
    splits an epoch into three phases; ``phase`` names the phase the next
    ``advance_step()`` performs:

    making_prediction -> calculating_error -> learning_from_error -> making_prediction | idle

    The learning phase only uses the residuals stored by the error phase, so
    whatever happens to the parameters in between does not leak into the gradient.
    """

    def __init__(self, config: Optional[RegressionConfig] = None, seed: Optional[int] = None):
        self._config = config or RegressionConfig()
        self._rng = SeededRNG(seed)
        self._state_machine = EngineStateMachine("regression")
        self._runner = PacedRunner("regression")

        self._xs = np.zeros(0)
        self._ys = np.zeros(0)
        self._slope = self._config.initial_slope
        self._intercept = self._config.initial_intercept
        self._loss = 0.0
        self._loss_history: Deque[float] = deque(maxlen=self._config.loss_history_size)
        self._epoch = 0

        self._phase = RegressionPhase.IDLE
        self._predictions: Optional[np.ndarray] = None
        self._residuals: Optional[np.ndarray] = None
        self._last_gradient: Tuple[float, float] = (0.0, 0.0)
        self._gradient_magnitude = 0.0

        self._state_machine.on_state_enter(EngineState.IDLE, self._on_idle_entered)
        self._regenerate()

    # Properties

    @property
    def config(self) -> RegressionConfig:
        return self._config

    @property
    def state(self) -> EngineState:
        return self._state_machine.current_state

    @property
    def phase(self) -> RegressionPhase:
        return self._phase

    @property
    def xs(self) -> np.ndarray:
        return self._xs.copy()

    @property
    def ys(self) -> np.ndarray:
        return self._ys.copy()

    @property
    def slope(self) -> float:
        return self._slope

    @property
    def intercept(self) -> float:
        return self._intercept

    @property
    def current_loss(self) -> float:
        return self._loss

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def loss_history(self) -> List[float]:
        return list(self._loss_history)

    @property
    def predictions(self) -> Optional[np.ndarray]:
        """Predictions exposed by the last making_prediction phase."""
        return None if self._predictions is None else self._predictions.copy()

    @property
    def residuals(self) -> Optional[np.ndarray]:
        """Residuals (prediction - actual) exposed by the last calculating_error phase."""
        return None if self._residuals is None else self._residuals.copy()

    @property
    def last_gradient(self) -> Tuple[float, float]:
        return self._last_gradient

    @property
    def gradient_magnitude(self) -> float:
        return self._gradient_magnitude

    @property
    def is_running(self) -> bool:
        return self._state_machine.is_active()

    def loss(self, slope: float, intercept: float) -> float:
        """Mean squared error of the given parameters over the sample set."""
        return model.mse(slope, intercept, self._xs, self._ys)

    def predict(self, x):
        """Prediction of the current model for a value or an array of values."""
        result = model.predict(self._slope, self._intercept, x)
        return float(result) if np.ndim(result) == 0 else result

    # Lifecycle

    def generate(self, scenario: Optional[str] = None, n: Optional[int] = None) -> bool:
        """
        Draw a new sample set and reset the model.

        Args:
            scenario: Scenario name; keeps the configured one if omitted
            n: Sample count; keeps the configured one if omitted

        Returns:
            False while a mode is running
        """
        if not self._state_machine.is_idle():
            return False

        if scenario is not None:
            get_scenario(scenario)
            self._config.scenario = scenario
        if n is not None:
            self._config.sample_count = n
        self._regenerate()
        return True

    def reset(self) -> bool:
        """Cancel any running mode and start over on a fresh sample set."""
        self._runner.cancel()
        if self._state_machine.is_active():
            self._state_machine.finish()
        self._rng.reseed()
        self._regenerate()
        return True

    def _regenerate(self):
        scenario = get_scenario(self._config.scenario)
        self._xs, self._ys = generate_samples(scenario, self._config.sample_count, self._rng)
        self._slope = self._config.initial_slope
        self._intercept = self._config.initial_intercept
        self._loss_history.clear()
        self._epoch = 0
        self._phase = RegressionPhase.IDLE
        self._predictions = None
        self._residuals = None
        self._last_gradient = (0.0, 0.0)
        self._gradient_magnitude = 0.0
        self._loss = self.loss(self._slope, self._intercept)
        logger.debug("Generated %d samples for scenario %s", len(self._xs), scenario.name)

    # Continuous mode

    def start_continuous(self) -> bool:
        """
        Start paced training from the current parameters. No-op if a mode is active.

        Must be called from a coroutine; raises RuntimeError when no event loop
        is running, leaving the trainer idle.
        """
        if not self._state_machine.is_idle():
            return False

        self._epoch = 0
        self._runner.start(self._continuous_tick, lambda: self._config.speed, self._on_run_finished)
        return self._state_machine.start(EngineState.CONTINUOUS)

    def stop(self) -> bool:
        """Stop continuous training. No-op when it is not running."""
        if not self._state_machine.is_continuous():
            return False
        self._runner.cancel()
        self._state_machine.finish()
        self._gradient_magnitude = 0.0
        return True

    async def wait(self) -> None:
        """Wait for continuous training to end."""
        await self._runner.wait()

    def _continuous_tick(self) -> bool:
        if self._epoch >= self._config.epochs:
            return False

        predictions = model.predict(self._slope, self._intercept, self._xs)
        self._learn(model.residuals(predictions, self._ys))
        return self._epoch < self._config.epochs

    def _learn(self, errors: np.ndarray):
        """Gradient step from the given residuals, then record the loss and the epoch."""
        grad = model.gradients(self._xs, errors)
        self._last_gradient = grad
        self._gradient_magnitude = model.gradient_magnitude(*grad)
        self._slope, self._intercept = model.gradient_step(
            self._slope, self._intercept, grad, self._config.learning_rate)

        self._loss = self.loss(self._slope, self._intercept)
        self._loss_history.append(self._loss)
        self._epoch += 1

    def _on_run_finished(self, completed: bool):
        self._state_machine.finish()
        self._gradient_magnitude = 0.0

    # Step mode

    def start_step_mode(self) -> bool:
        """Enter step mode; the first phase is making_prediction."""
        if not self._state_machine.start(EngineState.STEPPING):
            return False

        self._epoch = 0
        self._loss_history.clear()
        self._predictions = None
        self._residuals = None
        self._phase = RegressionPhase.MAKING_PREDICTION
        return True

    def stop_step_mode(self) -> bool:
        """Leave step mode, keeping the parameters learned so far."""
        if not self._state_machine.is_stepping():
            return False
        self._state_machine.finish()
        self._end_step_session()
        return True

    def _end_step_session(self):
        self._phase = RegressionPhase.IDLE
        self._gradient_magnitude = 0.0
        self._predictions = None
        self._residuals = None

    def advance_step(self) -> bool:
        """Perform the current phase and move to the next one. No-op outside step mode."""
        if not self._state_machine.is_stepping():
            return False

        if self._phase == RegressionPhase.IDLE:
            self._phase = RegressionPhase.MAKING_PREDICTION

        elif self._phase == RegressionPhase.MAKING_PREDICTION:
            self._predictions = model.predict(self._slope, self._intercept, self._xs)
            self._phase = RegressionPhase.CALCULATING_ERROR

        elif self._phase == RegressionPhase.CALCULATING_ERROR:
            self._residuals = model.residuals(self._predictions, self._ys)
            self._phase = RegressionPhase.LEARNING_FROM_ERROR

        elif self._phase == RegressionPhase.LEARNING_FROM_ERROR:
            self._learn(self._residuals)
            self._predictions = None
            self._residuals = None

            if self._epoch >= self._config.epochs:
                self._state_machine.finish()
                self._end_step_session()
            else:
                self._phase = RegressionPhase.MAKING_PREDICTION

        return True

    # Configuration

    def update_config(self, **kwargs) -> bool:
        """
        Update configuration values.

        ``speed`` may change at any time. Everything else is refused while a mode
        runs; scenario and sample count take effect on the next ``generate()``.
        A new ``loss_history_size`` resizes the history, keeping the newest entries.
        """
        if not self._state_machine.is_idle() and not set(kwargs) <= PACING_KEYS:
            return False
        if "scenario" in kwargs:
            get_scenario(kwargs["scenario"])

        for key, value in kwargs.items():
            if hasattr(self._config, key):
                setattr(self._config, key, value)

        if "loss_history_size" in kwargs:
            self._loss_history = deque(self._loss_history, maxlen=self._config.loss_history_size)
        return True

    def _on_idle_entered(self, context):
        logger.info("Regression idle at epoch %d: slope %.4f, intercept %.4f, loss %.5f",
                    self._epoch, self._slope, self._intercept, self._loss)

    def snapshot(self) -> RegressionSnapshot:
        """Immutable copy of the observable state."""
        return RegressionSnapshot(
            state=self._state_machine.current_state.name.lower(),
            phase=self._phase,
            scenario=self._config.scenario,
            slope=self._slope,
            intercept=self._intercept,
            loss=self._loss,
            epoch=self._epoch,
            gradient=self._last_gradient,
            gradient_magnitude=self._gradient_magnitude,
            xs=tuple(self._xs.tolist()),
            ys=tuple(self._ys.tolist()),
            predictions=() if self._predictions is None else tuple(self._predictions.tolist()),
            residuals=() if self._residuals is None else tuple(self._residuals.tolist()),
            loss_history=tuple(self._loss_history),
        )

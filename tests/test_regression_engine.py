"""Tests for the linear regression trainer."""

import asyncio

import numpy as np
import pytest

from mllab.engine.fsm import EngineState
from mllab.regression import LinearRegressionTrainer, RegressionConfig, RegressionPhase
from mllab.regression.domain import model


@pytest.fixture
def trainer():
    return LinearRegressionTrainer(seed=1)


def run_continuous(trainer):
    async def scenario():
        assert trainer.start_continuous()
        await trainer.wait()

    asyncio.run(scenario())


def test_initial_state(trainer):
    assert trainer.state == EngineState.IDLE
    assert trainer.phase == RegressionPhase.IDLE
    assert len(trainer.xs) == 56
    assert trainer.slope == 0.0
    assert trainer.intercept == 0.5
    assert trainer.current_loss == pytest.approx(trainer.loss(0.0, 0.5))
    assert trainer.loss_history == []


class TestStepMode:
    def test_phase_order(self, trainer):
        assert trainer.start_step_mode()
        assert trainer.phase == RegressionPhase.MAKING_PREDICTION

        trainer.advance_step()
        assert trainer.phase == RegressionPhase.CALCULATING_ERROR
        assert np.allclose(trainer.predictions, 0.0 * trainer.xs + 0.5)
        assert trainer.residuals is None

        trainer.advance_step()
        assert trainer.phase == RegressionPhase.LEARNING_FROM_ERROR
        assert np.allclose(trainer.residuals, trainer.predictions - trainer.ys)

        trainer.advance_step()
        assert trainer.phase == RegressionPhase.MAKING_PREDICTION
        assert trainer.epoch == 1
        assert len(trainer.loss_history) == 1
        assert trainer.predictions is None
        assert trainer.residuals is None
        assert trainer.gradient_magnitude > 0.0

    def test_learning_uses_stored_residuals(self, trainer):
        trainer.start_step_mode()
        trainer.advance_step()
        trainer.advance_step()
        captured = trainer.residuals

        # Moving the parameters between phases must not change the gradient
        trainer._slope = 100.0
        trainer.advance_step()

        expected = model.gradients(trainer.xs, captured)
        assert trainer.last_gradient == pytest.approx(expected)

    def test_one_epoch_matches_continuous_epoch(self):
        stepped = LinearRegressionTrainer(RegressionConfig(epochs=1, speed=0.0), seed=3)
        stepped.start_step_mode()
        for _ in range(3):
            stepped.advance_step()

        continuous = LinearRegressionTrainer(RegressionConfig(epochs=1, speed=0.0), seed=3)
        run_continuous(continuous)

        assert stepped.slope == pytest.approx(continuous.slope)
        assert stepped.intercept == pytest.approx(continuous.intercept)
        assert stepped.current_loss == pytest.approx(continuous.current_loss)

    def test_epoch_limit_returns_to_idle(self):
        trainer = LinearRegressionTrainer(RegressionConfig(epochs=2), seed=2)
        trainer.start_step_mode()
        for _ in range(6):
            trainer.advance_step()

        assert trainer.state == EngineState.IDLE
        assert trainer.phase == RegressionPhase.IDLE
        assert trainer.epoch == 2
        assert not trainer.advance_step()

    def test_advance_when_idle_is_noop(self, trainer):
        before = trainer.snapshot()
        assert not trainer.advance_step()
        assert not trainer.stop()
        assert not trainer.stop_step_mode()
        assert trainer.snapshot() == before

    def test_stop_step_mode_keeps_parameters(self, trainer):
        trainer.start_step_mode()
        for _ in range(3):
            trainer.advance_step()
        slope = trainer.slope

        assert trainer.stop_step_mode()
        assert trainer.state == EngineState.IDLE
        assert trainer.phase == RegressionPhase.IDLE
        assert trainer.slope == slope

    def test_empty_sample_set(self):
        trainer = LinearRegressionTrainer(RegressionConfig(sample_count=0), seed=0)
        trainer.start_step_mode()
        for _ in range(3):
            trainer.advance_step()

        assert trainer.current_loss == 0.0
        assert trainer.last_gradient == (0.0, 0.0)
        assert trainer.slope == 0.0
        assert trainer.intercept == 0.5


class TestContinuousMode:
    def test_converges_on_weather(self):
        trainer = LinearRegressionTrainer(RegressionConfig(speed=0.0), seed=7)
        initial = trainer.current_loss
        run_continuous(trainer)

        assert trainer.state == EngineState.IDLE
        assert trainer.epoch == 600
        assert trainer.current_loss < 0.1
        assert trainer.current_loss < initial
        assert len(trainer.loss_history) == 600
        assert trainer.loss_history[-1] < trainer.loss_history[0]
        assert trainer.gradient_magnitude == 0.0

    def test_loss_history_is_bounded(self):
        trainer = LinearRegressionTrainer(
            RegressionConfig(epochs=25, speed=0.0, loss_history_size=10), seed=1)
        run_continuous(trainer)

        assert trainer.epoch == 25
        assert len(trainer.loss_history) == 10
        assert trainer.loss_history[-1] == trainer.current_loss

    def test_stop_halts_training(self):
        trainer = LinearRegressionTrainer(RegressionConfig(speed=0.01), seed=1)

        async def scenario():
            trainer.start_continuous()
            await asyncio.sleep(0.05)
            assert trainer.stop()
            await trainer.wait()
            epoch = trainer.epoch
            await asyncio.sleep(0.05)
            return epoch

        epoch = asyncio.run(scenario())
        assert trainer.epoch == epoch
        assert epoch < 600
        assert trainer.state == EngineState.IDLE

    def test_reset_cancels_and_restores_initial_parameters(self):
        trainer = LinearRegressionTrainer(RegressionConfig(speed=0.01), seed=1)
        xs = trainer.xs
        ys = trainer.ys

        async def scenario():
            trainer.start_continuous()
            await asyncio.sleep(0.05)
            trainer.reset()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert trainer.state == EngineState.IDLE
        assert trainer.epoch == 0
        assert trainer.slope == 0.0
        assert trainer.intercept == 0.5
        assert trainer.loss_history == []
        assert np.array_equal(trainer.xs, xs)
        assert np.array_equal(trainer.ys, ys)


class TestConfiguration:
    def test_speed_accepted_while_stepping(self, trainer):
        trainer.start_step_mode()
        assert trainer.update_config(speed=0.5)
        assert trainer.config.speed == 0.5

    def test_structural_change_refused_while_stepping(self, trainer):
        trainer.start_step_mode()
        assert not trainer.update_config(scenario="sales")
        assert trainer.config.scenario == "weather"
        assert not trainer.generate("sales")

    def test_unknown_scenario_raises(self, trainer):
        with pytest.raises(ValueError):
            trainer.update_config(scenario="lottery")
        with pytest.raises(ValueError):
            trainer.generate("lottery")

    def test_generate_new_scenario(self, trainer):
        assert trainer.generate("housing", 20)
        assert trainer.config.scenario == "housing"
        assert len(trainer.xs) == 20

    def test_predict(self, trainer):
        assert trainer.predict(1.0) == pytest.approx(0.5)
        assert np.allclose(trainer.predict(np.array([0.0, 1.0])), [0.5, 0.5])


def test_restart_immediately_after_reset():
    trainer = LinearRegressionTrainer(RegressionConfig(epochs=5, speed=0.0), seed=1)

    async def scenario():
        trainer.start_continuous()
        trainer.reset()
        assert trainer.start_continuous()
        await trainer.wait()

    asyncio.run(scenario())
    assert trainer.state == EngineState.IDLE
    assert trainer.epoch == 5


def test_loss_history_size_resizes_history():
    trainer = LinearRegressionTrainer(RegressionConfig(epochs=20, speed=0.0), seed=1)
    run_continuous(trainer)
    newest = trainer.loss_history[-5:]

    assert trainer.update_config(loss_history_size=5)
    assert trainer.loss_history == newest


def test_start_without_event_loop_raises_and_stays_idle(trainer):
    with pytest.raises(RuntimeError):
        trainer.start_continuous()
    assert trainer.state == EngineState.IDLE

"""Tests for the engine state machine."""

from mllab.engine.fsm import EngineStateMachine, EngineState


def test_starts_idle():
    fsm = EngineStateMachine("test")
    assert fsm.is_idle()
    assert not fsm.is_active()
    assert fsm.mode is None
    assert fsm.get_state_description() == "Ready"


def test_start_and_finish_each_mode():
    for mode in (EngineState.CONTINUOUS, EngineState.STEPPING, EngineState.DEMONSTRATING):
        fsm = EngineStateMachine()
        assert fsm.start(mode)
        assert fsm.current_state == mode
        assert fsm.mode == mode
        assert fsm.is_active()
        assert fsm.finish()
        assert fsm.is_idle()


def test_cannot_start_while_active():
    fsm = EngineStateMachine()
    assert fsm.start(EngineState.STEPPING)
    assert not fsm.start(EngineState.CONTINUOUS)
    assert not fsm.start(EngineState.STEPPING)
    assert fsm.is_stepping()


def test_start_rejects_idle_as_mode():
    fsm = EngineStateMachine()
    assert not fsm.start(EngineState.IDLE)
    assert fsm.is_idle()


def test_finish_when_idle_is_refused():
    fsm = EngineStateMachine()
    assert not fsm.finish()


def test_callbacks_run_on_transitions():
    fsm = EngineStateMachine()
    events = []
    fsm.on_state_exit(EngineState.IDLE, lambda ctx: events.append("exit-idle"))
    fsm.on_state_enter(EngineState.CONTINUOUS, lambda ctx: events.append(("enter", ctx)))
    fsm.on_state_enter(EngineState.IDLE, lambda ctx: events.append("enter-idle"))

    fsm.start(EngineState.CONTINUOUS, {"why": "test"})
    fsm.finish()

    assert events == ["exit-idle", ("enter", {"why": "test"}), "enter-idle"]


def test_refused_transition_runs_no_callbacks():
    fsm = EngineStateMachine()
    events = []
    fsm.on_state_enter(EngineState.IDLE, lambda ctx: events.append("idle"))
    fsm.finish()
    assert events == []

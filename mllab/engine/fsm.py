"""Finite State Machine for engine execution modes."""

import logging
from enum import Enum, auto
from typing import Dict, Callable, Optional

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Execution modes of an engine. Exactly one is current at any time."""
    IDLE = auto()
    CONTINUOUS = auto()
    STEPPING = auto()
    DEMONSTRATING = auto()


RUNNING_STATES = frozenset({EngineState.CONTINUOUS, EngineState.STEPPING, EngineState.DEMONSTRATING})


class EngineStateMachine:
    """State machine guarding which mode an engine is running in.

    State Transitions:
    IDLE -> CONTINUOUS | STEPPING | DEMONSTRATING (when a mode is started)
    CONTINUOUS | STEPPING | DEMONSTRATING -> IDLE (stop, completion or reset)

    Starting a mode while another one is active is refused, which is what makes
    the engines' start operations no-ops in that situation.
    """

    def __init__(self, name: str = "engine"):
        self.name = name
        self.current_state = EngineState.IDLE
        self._enter_callbacks: Dict[EngineState, Callable[[Optional[Dict]], None]] = {}
        self._exit_callbacks: Dict[EngineState, Callable[[Optional[Dict]], None]] = {}

        self._valid_transitions = {
            EngineState.IDLE: set(RUNNING_STATES),
            EngineState.CONTINUOUS: {EngineState.IDLE},
            EngineState.STEPPING: {EngineState.IDLE},
            EngineState.DEMONSTRATING: {EngineState.IDLE},
        }

    def on_state_enter(self, state: EngineState, callback: Callable[[Optional[Dict]], None]):
        """Register callback for state entry."""
        self._enter_callbacks[state] = callback

    def on_state_exit(self, state: EngineState, callback: Callable[[Optional[Dict]], None]):
        """Register callback for state exit."""
        self._exit_callbacks[state] = callback

    def can_transition(self, to_state: EngineState) -> bool:
        """Check if transition to target state is valid."""
        return to_state in self._valid_transitions.get(self.current_state, set())

    def transition(self, to_state: EngineState, context: Optional[Dict] = None) -> bool:
        """Attempt to transition to target state."""
        if not self.can_transition(to_state):
            return False

        from_state = self.current_state

        if from_state in self._exit_callbacks:
            self._exit_callbacks[from_state](context)

        self.current_state = to_state
        logger.debug("%s: %s -> %s", self.name, from_state.name, to_state.name)

        if to_state in self._enter_callbacks:
            self._enter_callbacks[to_state](context)

        return True

    # Convenience methods for common transitions

    def start(self, mode: EngineState, context: Optional[Dict] = None) -> bool:
        """Enter a running mode. Refused unless idle."""
        if mode not in RUNNING_STATES:
            return False
        return self.transition(mode, context)

    def finish(self, context: Optional[Dict] = None) -> bool:
        """Return to idle from whatever mode is running."""
        return self.transition(EngineState.IDLE, context)

    # State checking methods

    @property
    def mode(self) -> Optional[EngineState]:
        """The running mode, or None when idle."""
        return None if self.current_state == EngineState.IDLE else self.current_state

    def is_idle(self) -> bool:
        return self.current_state == EngineState.IDLE

    def is_continuous(self) -> bool:
        return self.current_state == EngineState.CONTINUOUS

    def is_stepping(self) -> bool:
        return self.current_state == EngineState.STEPPING

    def is_demonstrating(self) -> bool:
        return self.current_state == EngineState.DEMONSTRATING

    def is_active(self) -> bool:
        """Check if any mode is running."""
        return self.current_state in RUNNING_STATES

    def get_state_description(self) -> str:
        """Get human-readable state description."""
        descriptions = {
            EngineState.IDLE: "Ready",
            EngineState.CONTINUOUS: "Running continuously",
            EngineState.STEPPING: "Step-by-step mode",
            EngineState.DEMONSTRATING: "Demonstrating learned policy",
        }
        return descriptions.get(self.current_state, "Unknown state")

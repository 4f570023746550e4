"""
Tracking session state management.

State transitions:
    IDLE -> TRACKING -> PAUSED -> TRACKING
    TRACKING / PAUSED -> IDLE
    Any -> ERROR -> IDLE
"""

from enum import Enum, auto
from typing import Optional, Set
from dataclasses import dataclass


class AppState(Enum):
    """Tracking session states."""

    IDLE = auto()       # No pose stream consumed
    TRACKING = auto()   # Poses drive the projection every frame
    PAUSED = auto()     # Poses are dropped, projection frozen
    ERROR = auto()      # Pose source failed, requires restart


_VALID_TRANSITIONS: dict[AppState, Set[AppState]] = {
    AppState.IDLE: {AppState.TRACKING, AppState.ERROR},
    AppState.TRACKING: {AppState.PAUSED, AppState.IDLE, AppState.ERROR},
    AppState.PAUSED: {AppState.TRACKING, AppState.IDLE, AppState.ERROR},
    AppState.ERROR: {AppState.IDLE},
}


def is_valid_transition(from_state: AppState, to_state: AppState) -> bool:
    """
    Check if a state transition is valid.

    Same-state transitions are always valid (no-op).
    """
    if from_state == to_state:
        return True

    return to_state in _VALID_TRANSITIONS.get(from_state, set())


@dataclass
class ErrorInfo:
    """Information about an error that occurred."""

    error_type: str
    message: str
    recoverable: bool = True


class StateMachine:
    """Validated state transitions for one tracking session."""

    def __init__(self, initial_state: AppState = AppState.IDLE):
        self._current_state = initial_state
        self._error: Optional[ErrorInfo] = None

    @property
    def current_state(self) -> AppState:
        return self._current_state

    @property
    def error(self) -> Optional[ErrorInfo]:
        """Error information if in ERROR state."""
        return self._error

    def transition_to(self, new_state: AppState) -> bool:
        """
        Transition to a new state.

        Returns:
            True if transition succeeded, False if invalid
        """
        if not is_valid_transition(self._current_state, new_state):
            return False

        previous = self._current_state
        self._current_state = new_state

        if previous == AppState.ERROR and new_state != AppState.ERROR:
            self._error = None

        return True

    def set_error(self, error_info: ErrorInfo) -> bool:
        """Record an error and enter ERROR."""
        self._error = error_info
        return self.transition_to(AppState.ERROR)

    def can_transition_to(self, new_state: AppState) -> bool:
        return is_valid_transition(self._current_state, new_state)

    def reset(self):
        """Reset to IDLE state, clearing error."""
        self._current_state = AppState.IDLE
        self._error = None

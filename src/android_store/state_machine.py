"""
App State Machine

Manages app state transitions with validation and recovery of the
last stable state when an operation fails.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Set

from common.exceptions import StateTransitionError

logger = logging.getLogger(__name__)


class AppState(Enum):
    """Lifecycle states of an app or repository."""
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    INSTALLING = "installing"
    INSTALLED = "installed"
    UPDATABLE = "updatable"
    REMOVING = "removing"


# States an operation passes through; never recorded for recovery
TRANSIENT_STATES: Set[AppState] = {AppState.INSTALLING, AppState.REMOVING}

# Valid state transitions map
# Format: {current_state: {allowed target states}}
VALID_TRANSITIONS: Dict[AppState, Set[AppState]] = {
    AppState.UNKNOWN: set(AppState),
    AppState.AVAILABLE: {
        AppState.INSTALLING,
        AppState.INSTALLED,
        AppState.UPDATABLE,
    },
    AppState.INSTALLED: {
        AppState.REMOVING,
        AppState.UPDATABLE,
        AppState.INSTALLING,
    },
    AppState.UPDATABLE: {
        AppState.INSTALLING,
        AppState.INSTALLED,
        AppState.REMOVING,
    },
    AppState.INSTALLING: {
        AppState.INSTALLED,
        AppState.AVAILABLE,
    },
    AppState.REMOVING: {
        AppState.AVAILABLE,
        AppState.INSTALLED,
    },
}


TransitionCallback = Callable[[str, AppState, AppState], None]


class AppStateMachine:
    """
    Tracks the state of one app.

    Every stable state entered is remembered so that ``recover()`` can
    undo a transient INSTALLING/REMOVING state after a failed call.
    """

    def __init__(self, app_id: str, initial_state: AppState = AppState.UNKNOWN):
        self.app_id = app_id
        self._state = initial_state
        self._recover_state = initial_state
        self._callbacks: List[TransitionCallback] = []

    @property
    def state(self) -> AppState:
        """Get current app state."""
        return self._state

    @property
    def recover_state(self) -> AppState:
        """State restored by recover()."""
        return self._recover_state

    def can_transition(self, new_state: AppState) -> bool:
        """Check if a transition is valid from current state."""
        if new_state == self._state:
            return True
        return new_state in VALID_TRANSITIONS.get(self._state, set())

    def transition(self, new_state: AppState) -> AppState:
        """
        Move to a new state.

        Args:
            new_state: Target state

        Returns:
            The new state

        Raises:
            StateTransitionError: If transition is not valid
        """
        if not self.can_transition(new_state):
            raise StateTransitionError(self.app_id, self._state.value, new_state.value)

        old_state = self._state
        self._state = new_state
        if new_state not in TRANSIENT_STATES:
            self._recover_state = new_state

        if old_state != new_state:
            logger.debug(f"App {self.app_id}: {old_state.name} -> {new_state.name}")
            self._fire(old_state, new_state)

        return new_state

    def recover(self) -> AppState:
        """
        Restore the last stable state.

        Bypasses transition validation; only the recorded state can be
        restored.
        """
        old_state = self._state
        self._state = self._recover_state
        if old_state != self._state:
            logger.debug(
                f"App {self.app_id}: recovered {old_state.name} -> {self._state.name}"
            )
            self._fire(old_state, self._state)
        return self._state

    def on_transition(self, callback: TransitionCallback) -> None:
        """
        Register a callback for state changes.

        Args:
            callback: Function(app_id, old_state, new_state)
        """
        self._callbacks.append(callback)

    def _fire(self, old_state: AppState, new_state: AppState) -> None:
        for callback in self._callbacks:
            try:
                callback(self.app_id, old_state, new_state)
            except Exception as e:
                logger.warning(f"Transition callback error: {e}")

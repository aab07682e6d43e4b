# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Per-turn state machine for the conversation control loop."""
from enum import StrEnum

from loguru import logger

from wilson.core.exceptions import InvalidTransitionError


class TurnState(StrEnum):
    """Lifecycle of one user message across backend continuations.

    Attributes:
        AWAITING_BACKEND: A request has been sent, no response yet.
        STREAMING: Response frames are being normalized.
        TOOLS_PENDING: A tool batch was observed and the stream completed.
        EXECUTING_TOOLS: The coordinator is running the batch.
        DONE: The backend finished normally.
        ERROR: The turn ended with an unrecoverable error.
    """

    AWAITING_BACKEND = "awaiting_backend"
    STREAMING = "streaming"
    TOOLS_PENDING = "tools_pending"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS: dict[TurnState, frozenset[TurnState]] = {
    TurnState.AWAITING_BACKEND: frozenset({TurnState.STREAMING, TurnState.ERROR}),
    TurnState.STREAMING: frozenset({TurnState.TOOLS_PENDING, TurnState.DONE, TurnState.ERROR}),
    TurnState.TOOLS_PENDING: frozenset({TurnState.EXECUTING_TOOLS, TurnState.ERROR}),
    TurnState.EXECUTING_TOOLS: frozenset({TurnState.AWAITING_BACKEND, TurnState.ERROR}),
    TurnState.DONE: frozenset(),
    TurnState.ERROR: frozenset(),
}


class TurnStateMachine:
    """Validates transitions between TurnState values.

    Args:
        initial: Starting state.
    """

    def __init__(self, initial: TurnState = TurnState.AWAITING_BACKEND):
        self._state = initial

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self._state]

    def can_advance(self, new_state: TurnState) -> bool:
        return new_state in _TRANSITIONS[self._state]

    def advance(self, new_state: TurnState) -> TurnState:
        """Move to ``new_state``.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        if not self.can_advance(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self._state} to {new_state}"
            )
        logger.debug("Turn state changed", old=self._state, new=new_state)
        self._state = new_state
        return new_state

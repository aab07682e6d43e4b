"""Tests for the turn state machine."""
import pytest

from wilson.core.exceptions import InvalidTransitionError
from wilson.core.state import TurnState, TurnStateMachine


class TestTurnStateMachine:
    """Tests for transition validation."""

    def test_starts_awaiting_backend(self) -> None:
        assert TurnStateMachine().state == TurnState.AWAITING_BACKEND

    def test_full_tool_round_trip(self) -> None:
        machine = TurnStateMachine()
        for state in (
            TurnState.STREAMING,
            TurnState.TOOLS_PENDING,
            TurnState.EXECUTING_TOOLS,
            TurnState.AWAITING_BACKEND,
            TurnState.STREAMING,
            TurnState.DONE,
        ):
            machine.advance(state)
        assert machine.state == TurnState.DONE
        assert machine.is_terminal

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (TurnState.AWAITING_BACKEND, TurnState.DONE),
            (TurnState.AWAITING_BACKEND, TurnState.EXECUTING_TOOLS),
            (TurnState.STREAMING, TurnState.EXECUTING_TOOLS),
            (TurnState.TOOLS_PENDING, TurnState.DONE),
            (TurnState.DONE, TurnState.STREAMING),
            (TurnState.ERROR, TurnState.AWAITING_BACKEND),
        ],
    )
    def test_invalid_transitions(self, start: TurnState, target: TurnState) -> None:
        machine = TurnStateMachine(start)
        assert not machine.can_advance(target)
        with pytest.raises(InvalidTransitionError, match=f"Cannot transition from {start} to {target}"):
            machine.advance(target)
        assert machine.state == start

    @pytest.mark.parametrize(
        "state",
        [
            TurnState.AWAITING_BACKEND,
            TurnState.STREAMING,
            TurnState.TOOLS_PENDING,
            TurnState.EXECUTING_TOOLS,
        ],
    )
    def test_error_reachable_from_every_active_state(self, state: TurnState) -> None:
        machine = TurnStateMachine(state)
        assert not machine.is_terminal
        machine.advance(TurnState.ERROR)
        assert machine.is_terminal

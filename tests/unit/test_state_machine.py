"""
Unit tests for the handshake state machine.

Tests transitions, invariants, trace recording and redaction.
"""

import json

import attrs
import pytest
from returns.result import Failure, Success

from webauthclient.core.exceptions import InvariantViolation
from webauthclient.core.state_machine import REDACTED
from webauthclient.core.types import (
    ConfirmationReceived,
    HandshakeContext,
    HandshakeFailed,
    HandshakeState,
    SignedURLReceived,
    TokenReceived,
)
from webauthclient.handshake.authenticator import HandshakeStateMachine


ALLOWED_TRANSITIONS = {
    ("START", "TokenReceived"): "TOKEN_ACQUIRED",
    ("TOKEN_ACQUIRED", "SignedURLReceived"): "SIGNED_TOKEN_ACQUIRED",
    ("SIGNED_TOKEN_ACQUIRED", "ConfirmationReceived"): "AUTHENTICATED",
    ("START", "HandshakeFailed"): "FAILED",
    ("TOKEN_ACQUIRED", "HandshakeFailed"): "FAILED",
    ("SIGNED_TOKEN_ACQUIRED", "HandshakeFailed"): "FAILED",
}


@pytest.fixture
def machine() -> HandshakeStateMachine:
    return HandshakeStateMachine(
        _state=HandshakeState.START,
        _context=HandshakeContext(),
    )


def _token_event() -> TokenReceived:
    return TokenReceived(redirect_url="https://x/login?token=abc123", token="abc123")


class TestHandshakeTransitions:
    """Tests for the happy-path transitions."""

    def test_initial_state(self, machine):
        assert machine.state == HandshakeState.START
        assert machine.initial_state() == HandshakeState.START

    def test_full_sequence(self, machine):
        assert machine.process_event(_token_event()) == Success(HandshakeState.TOKEN_ACQUIRED)
        assert machine.context.token == "abc123"

        machine.process_event(SignedURLReceived(signed_url="https://x/sign?v=1"))
        assert machine.state == HandshakeState.SIGNED_TOKEN_ACQUIRED
        assert machine.context.signed_url == "https://x/sign?v=1"

        machine.process_event(ConfirmationReceived())
        assert machine.state == HandshakeState.AUTHENTICATED

    def test_trace_is_valid(self, machine):
        machine.process_event(_token_event())
        machine.process_event(SignedURLReceived(signed_url="https://x/sign?v=1"))
        machine.process_event(ConfirmationReceived())

        trace = machine.get_trace()
        assert len(trace) == 3
        for t in trace:
            assert ALLOWED_TRANSITIONS[(t.from_state.name, t.event_type)] == t.to_state.name


class TestHandshakeFailures:
    """Tests for failure transitions and rejected events."""

    @pytest.mark.parametrize("steps", [0, 1, 2])
    def test_failure_from_any_non_terminal_state(self, machine, steps):
        events = [_token_event(), SignedURLReceived(signed_url="https://x/s")]
        for event in events[:steps]:
            machine.process_event(event)

        machine.process_event(HandshakeFailed(error_kind="APIError", error_message="bad"))

        assert machine.state == HandshakeState.FAILED
        assert machine.context.error_kind == "APIError"
        assert machine.context.error_message == "bad"

    def test_out_of_order_event_is_rejected(self, machine):
        result = machine.process_event(ConfirmationReceived())

        assert isinstance(result, Failure)
        assert machine.state == HandshakeState.START
        assert machine.get_trace() == []

    def test_no_transition_out_of_failed(self, machine):
        machine.process_event(HandshakeFailed(error_kind="AuthError", error_message="x"))
        result = machine.process_event(_token_event())
        assert isinstance(result, Failure)
        assert machine.state == HandshakeState.FAILED

    def test_empty_token_violates_invariant(self, machine):
        with pytest.raises(InvariantViolation):
            machine.process_event(TokenReceived(redirect_url="https://x/", token=""))
        assert machine.state == HandshakeState.START

    def test_empty_signed_url_violates_invariant(self, machine):
        machine.process_event(_token_event())
        with pytest.raises(InvariantViolation):
            machine.process_event(SignedURLReceived(signed_url=""))
        assert machine.state == HandshakeState.TOKEN_ACQUIRED


class TestTraceRedaction:
    """Secrets must not appear in trace snapshots."""

    def test_snapshot_redacts_token_and_urls(self, machine):
        machine.process_event(_token_event())
        machine.process_event(SignedURLReceived(signed_url="https://x/sign?v=1"))

        for transition in machine.get_trace():
            snapshot = transition.context_snapshot
            assert snapshot["token"] == REDACTED
            assert snapshot["redirect_url"] == REDACTED
            assert "abc123" not in json.dumps(snapshot)

        assert machine.get_trace()[-1].context_snapshot["signed_url"] == REDACTED

    def test_empty_fields_are_not_marked_redacted(self, machine):
        machine.process_event(_token_event())
        assert machine.get_trace()[0].context_snapshot["signed_url"] == ""

    def test_export_trace_json(self, machine):
        machine.process_event(_token_event())
        exported = json.loads(machine.export_trace_json())

        assert exported["initial_state"] == "START"
        assert exported["final_state"] == "TOKEN_ACQUIRED"
        assert exported["transitions"][0]["event_type"] == "TokenReceived"
        assert "abc123" not in machine.export_trace_json()

    def test_context_is_not_shared_between_machines(self):
        first = HandshakeStateMachine(_state=HandshakeState.START, _context=HandshakeContext())
        second = HandshakeStateMachine(_state=HandshakeState.START, _context=HandshakeContext())

        first.process_event(_token_event())

        assert second.state == HandshakeState.START
        assert second.get_trace() == []
        assert attrs.asdict(second.context)["token"] == ""

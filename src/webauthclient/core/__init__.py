"""
webauthclient Core Module

Foundational types and abstractions shared by the transport and
handshake layers.

Components:
- types: Handshake states, events, context and result types
- state_machine: Base state machine with invariant checking
- exceptions: Error taxonomy
"""

from webauthclient.core.types import (
    Credentials,
    HandshakeContext,
    HandshakeResult,
    HandshakeState,
)
from webauthclient.core.state_machine import StateMachineBase, Transition
from webauthclient.core.exceptions import (
    WebAuthError,
    ConfigurationError,
    UserError,
    TransportError,
    NoSuitableAddress,
    ProtocolError,
    APIError,
    AuthenticationError,
    AuthError,
    SignedTokenError,
    StateError,
    InvariantViolation,
)

__all__ = [
    # Types
    "Credentials",
    "HandshakeContext",
    "HandshakeResult",
    "HandshakeState",
    # State Machine
    "StateMachineBase",
    "Transition",
    # Exceptions
    "WebAuthError",
    "ConfigurationError",
    "UserError",
    "TransportError",
    "NoSuitableAddress",
    "ProtocolError",
    "APIError",
    "AuthenticationError",
    "AuthError",
    "SignedTokenError",
    "StateError",
    "InvariantViolation",
]

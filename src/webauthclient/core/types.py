"""
webauthclient Core Types

Type definitions shared by the transport and handshake layers.

Design Principles:
- Immutable: values use frozen attrs classes
- Validated: constraints enforced at construction
- Quiet: secrets are excluded from repr and trace snapshots
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, auto
from typing import Optional, Tuple

import attrs
from attrs import field, validators

from webauthclient.core.exceptions import UserError


# =============================================================================
# ENUMS
# =============================================================================


class HandshakeState(Enum):
    """
    States of one authentication attempt.

    START -> TOKEN_ACQUIRED -> SIGNED_TOKEN_ACQUIRED -> AUTHENTICATED,
    or FAILED from any non-terminal state.
    """

    START = auto()
    TOKEN_ACQUIRED = auto()
    SIGNED_TOKEN_ACQUIRED = auto()
    AUTHENTICATED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        """Return True if no further transitions are possible."""
        return self in (HandshakeState.AUTHENTICATED, HandshakeState.FAILED)


# =============================================================================
# CREDENTIALS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Credentials:
    """
    ClientID/Password pair for one handshake.

    INVARIANT: both non-empty
    INVARIANT: never rendered by repr
    """

    client_id: str = field(validator=validators.instance_of(str), repr=False)
    password: str = field(validator=validators.instance_of(str), repr=False)

    def __attrs_post_init__(self) -> None:
        if not self.client_id or not self.password:
            raise UserError()


# =============================================================================
# HANDSHAKE CONTEXT
# =============================================================================


@attrs.define(frozen=True, slots=True)
class HandshakeContext:
    """
    Values threaded through the three handshake steps.

    redirect_url (which embeds the token), token and signed_url are
    hidden from repr and redacted from trace snapshots.
    """

    redirect_url: str = field(default="", repr=False)
    token: str = field(default="", repr=False)
    signed_url: str = field(default="", repr=False)
    error_kind: Optional[str] = None
    error_message: str = ""


# =============================================================================
# HANDSHAKE EVENTS (for state machine)
# =============================================================================


@attrs.define(frozen=True, slots=True)
class TokenReceived:
    """Event: the auth URL redirected with a token."""

    redirect_url: str = field(repr=False)
    token: str = field(repr=False)


@attrs.define(frozen=True, slots=True)
class SignedURLReceived:
    """Event: the credential POST returned a signed URL."""

    signed_url: str = field(repr=False)


@attrs.define(frozen=True, slots=True)
class ConfirmationReceived:
    """Event: the signed URL confirmed the connection."""


@attrs.define(frozen=True, slots=True)
class HandshakeFailed:
    """Event: a step failed."""

    error_kind: str
    error_message: str


# =============================================================================
# RESULT TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class HandshakeResult:
    """
    Result of a successful authentication.

    Attributes:
        auth_url: The gateway URL the handshake started from
        authenticated_at: When the confirmation was received
        transitions: State machine trace of the attempt
    """

    auth_url: str
    authenticated_at: datetime = field(factory=lambda: datetime.now(timezone.utc))
    transitions: Tuple = field(factory=tuple, converter=tuple)

    @property
    def states(self) -> Tuple[HandshakeState, ...]:
        """States visited, starting with START."""
        if not self.transitions:
            return ()
        return (self.transitions[0].from_state,) + tuple(
            t.to_state for t in self.transitions
        )

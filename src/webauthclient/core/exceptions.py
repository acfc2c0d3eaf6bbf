"""
webauthclient Exception Types

Custom exceptions for the web authentication handshake.

Each handshake step fails with exactly one of these. Transport-level
failures (connection refused, DNS, timeouts) are NOT wrapped: they
propagate from httpx unmodified.
"""

from typing import Optional


class WebAuthError(Exception):
    """Base exception for all webauthclient errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(WebAuthError):
    """
    Invalid configuration.

    Raised when an AuthenticatorConfig is built with an unusable
    auth URL or POST body template.
    """

    pass


class UserError(ConfigurationError):
    """ClientID or Password is empty."""

    def __init__(self, message: str = "ClientID or Password empty") -> None:
        super().__init__(message)


class TransportError(WebAuthError):
    """
    Local transport setup failed.

    Raised while preparing HTTP clients, before any request is sent.
    """

    pass


class NoSuitableAddress(TransportError):
    """The requested interface does not exist or has no IPv4 address."""

    def __init__(
        self, interface: str, message: Optional[str] = None
    ) -> None:
        if message is None:
            message = f"No suitable address on interface {interface!r}"
        super().__init__(message)
        self.interface = interface


class ProtocolError(WebAuthError):
    """
    Protocol-level error.

    The gateway answered, but not in the shape the handshake expects.
    """

    pass


class APIError(ProtocolError):
    """
    The gateway API did not behave as expected.

    Missing or malformed Location header, missing or empty token,
    or an unterminated signed URL.
    """

    pass


class AuthenticationError(WebAuthError):
    """
    Authentication failed.

    The exchange completed but the gateway rejected the attempt.
    """

    pass


class AuthError(AuthenticationError):
    """Credential POST was answered without a signed token (bad credentials)."""

    def __init__(self, message: str = "Authentication error") -> None:
        super().__init__(message)


class SignedTokenError(AuthenticationError):
    """The gateway refused the signed token."""

    def __init__(self, message: str = "Authenticator refused token") -> None:
        super().__init__(message)


class StateError(WebAuthError):
    """
    Invalid state transition.

    An event arrived that is not valid in the current handshake state.
    """

    pass


class InvariantViolation(WebAuthError):
    """
    Handshake invariant was violated.

    The state machine would have entered a state whose context is
    inconsistent (e.g. TOKEN_ACQUIRED without a token).
    """

    pass

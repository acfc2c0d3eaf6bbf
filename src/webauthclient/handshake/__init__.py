"""
webauthclient Handshake

Three-step gateway web login.

Components:
- authenticator: Handshake state machine and Authenticator
- config: AuthenticatorConfig and defaults
- parsing: Wire format helpers (token, POST body, signed URL)
"""

from webauthclient.handshake.authenticator import (
    Authenticator,
    HandshakeStateMachine,
    create_authenticator,
)
from webauthclient.handshake.config import (
    DEFAULT_AUTH_URL,
    DEFAULT_POST_BODY_TEMPLATE,
    DEFAULT_TOKEN_QUERY_KEY,
    MAX_RESPONSE_BYTES,
    AuthenticatorConfig,
    create_config,
)

__all__ = [
    "Authenticator",
    "HandshakeStateMachine",
    "create_authenticator",
    "AuthenticatorConfig",
    "create_config",
    "DEFAULT_AUTH_URL",
    "DEFAULT_POST_BODY_TEMPLATE",
    "DEFAULT_TOKEN_QUERY_KEY",
    "MAX_RESPONSE_BYTES",
]

"""
webauthclient - Web Login Client for VPN Gateway Authentication

Logs a client in to a VPN gateway's web authentication front end using
its three-step handshake:

1. Token: GET the auth URL, read the token from the redirect
2. Credentials: POST token, ClientID and Password, receive a signed URL
3. Confirmation: GET the signed URL, expect "Connection authenticated."

Connections can be bound to a local network interface or source address.

Example Usage:
    from webauthclient import create_authenticator, for_interface

    auth = create_authenticator(
        client_factory=for_interface("eth0", timeout_factor=2),
    )
    result = auth.authenticate("client-id", "secret")
    print(f"Authenticated at {result.authenticated_at}")
"""

from webauthclient.core.exceptions import (
    APIError,
    AuthError,
    NoSuitableAddress,
    SignedTokenError,
    UserError,
    WebAuthError,
)
from webauthclient.core.types import HandshakeResult, HandshakeState
from webauthclient.handshake.authenticator import Authenticator, create_authenticator
from webauthclient.handshake.config import AuthenticatorConfig, create_config
from webauthclient.transport.client_factory import (
    ClientFactory,
    HTTPClientFactory,
    for_address,
    for_interface,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Authenticator",
    "AuthenticatorConfig",
    "create_authenticator",
    "create_config",
    # Transport
    "ClientFactory",
    "HTTPClientFactory",
    "for_address",
    "for_interface",
    # Types
    "HandshakeResult",
    "HandshakeState",
    # Errors
    "WebAuthError",
    "UserError",
    "APIError",
    "AuthError",
    "SignedTokenError",
    "NoSuitableAddress",
    # Metadata
    "__version__",
]

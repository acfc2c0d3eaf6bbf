"""
webauthclient Authenticator Configuration

AuthenticatorConfig is built once per authentication attempt. Unset
(None or empty) fields take the module defaults below; the defaults
themselves are constants and are never modified.
"""

from __future__ import annotations

from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import attrs
import httpx
from attrs import field, validators

from webauthclient.core.exceptions import ConfigurationError
from webauthclient.handshake.parsing import render_post_body
from webauthclient.transport.client_factory import ClientFactory, HTTPClientFactory

DEFAULT_AUTH_URL = "https://auth.cryptohippie.net/"
DEFAULT_POST_BODY_TEMPLATE = (
    "form_name=login&token={Token}&clientid={ClientID}&password={Password}"
)
DEFAULT_TOKEN_QUERY_KEY = "token"
MAX_RESPONSE_BYTES = 1024 * 1024


def _or_default(default: Any) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        return default if value is None or value == "" else value

    return convert


def _default_client_factory(value: Optional[ClientFactory]) -> ClientFactory:
    return HTTPClientFactory() if value is None else value


def _validate_auth_url(instance: Any, attribute: attrs.Attribute, value: str) -> None:
    try:
        parts = urlsplit(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid auth URL {value!r}: {e}") from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"Auth URL must be an absolute http(s) URL: {value!r}")
    try:
        httpx.URL(value)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid auth URL {value!r}: {e}") from e


def _validate_template(instance: Any, attribute: attrs.Attribute, value: str) -> None:
    # Raises ConfigurationError for unknown or malformed placeholders.
    render_post_body(value, "t", "c", "p")


@attrs.define(frozen=True, slots=True)
class AuthenticatorConfig:
    """
    Configuration for one authentication attempt.

    Attributes:
        auth_url: Gateway URL that redirects with a token
        post_body_template: Form body with {Token}, {ClientID} and
            {Password} placeholders
        token_query_key: Query key carrying the token in the redirect
        client_factory: Produces the HTTP client for each step
        max_response_bytes: Cap on how much of a response body is read
    """

    auth_url: str = field(
        default=DEFAULT_AUTH_URL,
        converter=_or_default(DEFAULT_AUTH_URL),
        validator=[validators.instance_of(str), _validate_auth_url],
    )
    post_body_template: str = field(
        default=DEFAULT_POST_BODY_TEMPLATE,
        converter=_or_default(DEFAULT_POST_BODY_TEMPLATE),
        validator=[validators.instance_of(str), _validate_template],
    )
    token_query_key: str = field(
        default=DEFAULT_TOKEN_QUERY_KEY,
        converter=_or_default(DEFAULT_TOKEN_QUERY_KEY),
        validator=validators.instance_of(str),
    )
    client_factory: ClientFactory = field(
        default=None,
        converter=_default_client_factory,
        validator=validators.instance_of(ClientFactory),
    )
    max_response_bytes: int = field(
        default=MAX_RESPONSE_BYTES,
        validator=[validators.instance_of(int), validators.gt(0)],
    )


def create_config(
    auth_url: Optional[str] = None,
    post_body_template: Optional[str] = None,
    token_query_key: Optional[str] = None,
    client_factory: Optional[ClientFactory] = None,
) -> AuthenticatorConfig:
    """
    Build a fully defaulted AuthenticatorConfig.

    Any argument left as None (or empty) takes its default.

    Raises:
        ConfigurationError: invalid auth URL or POST body template
    """
    return AuthenticatorConfig(
        auth_url=auth_url,
        post_body_template=post_body_template,
        token_query_key=token_query_key,
        client_factory=client_factory,
    )

"""
webauthclient Handshake Wire Format

Parsing and rendering of the gateway's ad-hoc web login format:

- token:      query parameter of the Location header on the auth URL
- POST body:  template rendered with percent-encoded form values
- signed URL: bytes between "SIGNEDTOKEN:" and the next space
- success:    literal "Connection authenticated." in the final body

The format has no escaping or length prefixes. Everything that depends
on it lives here so it can be replaced in one place.
"""

from __future__ import annotations

from typing import Tuple
from urllib.parse import parse_qs, quote, urljoin, urlsplit

import httpx
import structlog

from webauthclient.core.exceptions import APIError, AuthError, ConfigurationError

logger = structlog.get_logger()

SIGNED_URL_MARKER = b"SIGNEDTOKEN:"
SIGNED_URL_TERMINATOR = b" "
SUCCESS_MARKER = b"Connection authenticated."

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

TEMPLATE_FIELDS = ("Token", "ClientID", "Password")


def check_request_url(url: str, what: str) -> None:
    """
    Check that httpx will accept url as an absolute http(s) request URL.

    httpx parses more strictly than urllib (ports, hosts, characters),
    so a URL urlsplit accepts can still be rejected when requested.

    Raises:
        APIError: url is not an absolute http(s) URL httpx can request
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        # the message can quote the URL, which may carry the token
        raise APIError(f"{what} is not a valid URL") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise APIError(f"{what} is not an absolute http(s) URL")


def extract_token(
    location: str, token_query_key: str, base_url: str = ""
) -> Tuple[str, str]:
    """
    Extract the redirect URL and token from a Location header value.

    A relative Location is resolved against base_url.

    Args:
        location: Raw Location header value
        token_query_key: Query key carrying the token
        base_url: URL the redirect was received from

    Returns:
        (redirect_url, token)

    Raises:
        APIError: missing/malformed Location, missing or empty token
    """
    if not location:
        raise APIError("Missing Location header")

    try:
        parts = urlsplit(location)
        if not (parts.scheme and parts.netloc) and base_url:
            location = urljoin(base_url, location)
            parts = urlsplit(location)
    except ValueError as e:
        raise APIError(f"Malformed Location header: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise APIError("Location header is not an absolute http(s) URL")
    check_request_url(location, "Location header")

    values = parse_qs(parts.query, keep_blank_values=True).get(token_query_key)
    if not values:
        raise APIError(f"Location query has no {token_query_key!r} parameter")
    if not values[0]:
        raise APIError(f"Location query has an empty {token_query_key!r} parameter")

    return location, values[0]


def escape_form_value(value: str) -> str:
    """Percent-encode one value for a URL query or form body."""
    return quote(value, safe="")


def render_post_body(template: str, token: str, client_id: str, password: str) -> str:
    """
    Render the credential POST body.

    Each value is escaped independently, so "&", "=" or "%" inside a
    password cannot add or corrupt form fields.

    Raises:
        ConfigurationError: template references unknown placeholders
    """
    fields = {
        "Token": escape_form_value(token),
        "ClientID": escape_form_value(client_id),
        "Password": escape_form_value(password),
    }
    try:
        return template.format(**fields)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid POST body template: {e!r}") from e


def extract_signed_url(body: bytes) -> str:
    """
    Extract the signed URL from a credential POST response.

    Raises:
        AuthError: marker absent (credentials rejected)
        APIError: no terminating space after the marker, or an empty or
            malformed URL
    """
    marker_at = body.find(SIGNED_URL_MARKER)
    if marker_at < 0:
        raise AuthError()

    start = marker_at + len(SIGNED_URL_MARKER)
    end = body.find(SIGNED_URL_TERMINATOR, start)
    if end < 0:
        raise APIError("Signed URL is not terminated")

    try:
        signed_url = body[start:end].decode("utf-8")
    except UnicodeDecodeError as e:
        raise APIError(f"Signed URL is not valid UTF-8: {e}") from e

    if not signed_url:
        raise APIError("Signed URL is empty")
    check_request_url(signed_url, "Signed URL")
    return signed_url


def is_authenticated(body: bytes) -> bool:
    """Return True if the confirmation body carries the success marker."""
    return SUCCESS_MARKER in body


def read_capped(response: httpx.Response, limit: int) -> bytes:
    """
    Read at most limit bytes of a streamed response body.

    Errors while reading are ignored; only the content read so far
    matters to the handshake.
    """
    buffer = bytearray()
    try:
        for chunk in response.iter_bytes():
            buffer += chunk[: limit - len(buffer)]
            if len(buffer) >= limit:
                break
    except (httpx.TransportError, httpx.DecodingError) as e:
        logger.debug(
            "response_read_interrupted",
            bytes_read=len(buffer),
            error=type(e).__name__,
        )
    return bytes(buffer)

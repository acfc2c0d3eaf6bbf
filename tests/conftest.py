"""
Pytest configuration and shared fixtures for webauthclient tests.
"""

from typing import List, Optional

import httpx
import pytest
import structlog

from webauthclient.handshake.authenticator import Authenticator, create_authenticator
from webauthclient.transport.client_factory import ClientFactory


AUTH_URL = "https://auth.example.net/"
REDIRECT_URL = "https://auth.example.net/login?token=abc123"
SIGNED_URL = "https://auth.example.net/sign?v=1"

SIGNED_BODY = b"<html><body>SIGNEDTOKEN:" + SIGNED_URL.encode() + b" trailing</body></html>"
CONFIRM_BODY = b"<html><body><p>Connection authenticated.</p></body></html>"


# =============================================================================
# MOCK GATEWAY
# =============================================================================


class MockGateway:
    """
    In-memory gateway answering the three handshake requests.

    GET /          -> 302 with Location (or none if location is None)
    POST anything  -> signed_body
    GET other      -> confirm_body
    """

    def __init__(
        self,
        location: Optional[str] = REDIRECT_URL,
        signed_body: bytes = SIGNED_BODY,
        confirm_body: bytes = CONFIRM_BODY,
    ) -> None:
        self.location = location
        self.signed_body = signed_body
        self.confirm_body = confirm_body
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path == "/":
            headers = {"Location": self.location} if self.location is not None else {}
            return httpx.Response(302, headers=headers)
        if request.method == "POST":
            return self.respond(self.signed_body)
        return self.respond(self.confirm_body)

    @staticmethod
    def respond(body) -> httpx.Response:
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, content=body)


class MockClientFactory(ClientFactory):
    """ClientFactory producing clients wired to a MockGateway."""

    def __init__(self, gateway: MockGateway) -> None:
        self.gateway = gateway
        self.clients_created = 0

    def create_client(self) -> httpx.Client:
        self.clients_created += 1
        return httpx.Client(
            transport=httpx.MockTransport(self.gateway.handler),
            follow_redirects=True,
        )


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def gateway() -> MockGateway:
    """Gateway that accepts the handshake."""
    return MockGateway()


@pytest.fixture
def client_factory(gateway: MockGateway) -> MockClientFactory:
    """Client factory routed to the mock gateway."""
    return MockClientFactory(gateway)


@pytest.fixture
def authenticator(client_factory: MockClientFactory) -> Authenticator:
    """Authenticator pointed at the mock gateway."""
    return create_authenticator(auth_url=AUTH_URL, client_factory=client_factory)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test (e.g. the CLI) applied."""
    yield
    structlog.reset_defaults()


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )

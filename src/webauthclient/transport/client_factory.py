"""
webauthclient HTTP Client Factory

Produces httpx clients bound to a fixed local source address with a
uniformly scaled timeout profile.

Supports:
- Binding by network interface name (first IPv4 address)
- Binding by explicit IPv4/IPv6 literal
- Unbound clients with base timeouts (the default)

Every create_client() call returns a NEW client, so cookies and
connection state never leak from one handshake step into the next.
"""

from __future__ import annotations

import ipaddress
import socket
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple, Union

import attrs
import httpx
import psutil
import structlog
from attrs import field

from webauthclient.core.exceptions import NoSuitableAddress

logger = structlog.get_logger()

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Base timeouts in seconds, multiplied by the timeout factor.
BASE_CONNECT_TIMEOUT = 10.0
BASE_KEEPALIVE = 10.0
BASE_IDLE_CONNECTION_TIMEOUT = 30.0
BASE_TLS_HANDSHAKE_TIMEOUT = 10.0
BASE_EXPECT_CONTINUE_TIMEOUT = 1.0

MAX_IDLE_CONNECTIONS = 100


# =============================================================================
# TIMEOUTS
# =============================================================================


def check_timeout_factor(value: Any) -> int:
    """Return value if it is a positive integer, else raise ValueError."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"timeout_factor must be a positive integer, got {value!r}")
    return value


@attrs.define(frozen=True, slots=True)
class TimeoutProfile:
    """
    Per-client timeouts, in seconds.

    httpx has no separate TLS handshake timeout: its connect timeout
    covers TCP connect and TLS handshake together, so both budgets are
    added up. httpx never sends "Expect: 100-continue"; expect_continue
    is carried for completeness and reported in logs only.
    """

    connect: float = BASE_CONNECT_TIMEOUT
    keepalive: float = BASE_KEEPALIVE
    idle_connection: float = BASE_IDLE_CONNECTION_TIMEOUT
    tls_handshake: float = BASE_TLS_HANDSHAKE_TIMEOUT
    expect_continue: float = BASE_EXPECT_CONTINUE_TIMEOUT

    @classmethod
    def scaled(cls, timeout_factor: int = 1) -> TimeoutProfile:
        """Base timeouts multiplied by timeout_factor (a positive integer)."""
        check_timeout_factor(timeout_factor)
        return cls(
            connect=BASE_CONNECT_TIMEOUT * timeout_factor,
            keepalive=BASE_KEEPALIVE * timeout_factor,
            idle_connection=BASE_IDLE_CONNECTION_TIMEOUT * timeout_factor,
            tls_handshake=BASE_TLS_HANDSHAKE_TIMEOUT * timeout_factor,
            expect_continue=BASE_EXPECT_CONTINUE_TIMEOUT * timeout_factor,
        )

    def to_httpx_timeout(self) -> httpx.Timeout:
        # read also bounds a gateway that accepts and then stalls
        return httpx.Timeout(
            connect=self.connect + self.tls_handshake,
            read=self.idle_connection,
            write=self.connect,
            pool=self.connect,
        )

    def to_httpx_limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_keepalive_connections=MAX_IDLE_CONNECTIONS,
            keepalive_expiry=self.idle_connection,
        )

    def socket_options(self) -> List[Tuple[int, int, int]]:
        """TCP keep-alive probe options for outbound sockets."""
        interval = max(1, int(self.keepalive))
        options = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]
        if hasattr(socket, "TCP_KEEPIDLE"):
            options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, interval))
        if hasattr(socket, "TCP_KEEPINTVL"):
            options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, interval))
        return options


# =============================================================================
# LOCAL ADDRESS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class BoundAddress:
    """
    Local source address embedded into every produced client.

    INVARIANT: ip is a parsed IPv4Address or IPv6Address
    """

    ip: IPAddress = field(converter=ipaddress.ip_address)
    interface: Optional[str] = None

    def __str__(self) -> str:
        if self.interface:
            return f"{self.ip}%{self.interface}"
        return str(self.ip)


def resolve_interface_address(interface: str) -> BoundAddress:
    """
    Return the first IPv4 address configured on a network interface.

    Args:
        interface: Interface name (e.g. "eth0")

    Returns:
        BoundAddress for that interface

    Raises:
        NoSuitableAddress: interface unknown or without IPv4 address
    """
    addrs = psutil.net_if_addrs().get(interface)
    if addrs is None:
        logger.debug("interface_not_found", interface=interface)
        raise NoSuitableAddress(interface, f"No such network interface: {interface!r}")

    for addr in addrs:
        if addr.family != socket.AF_INET:
            continue
        try:
            return BoundAddress(ip=addr.address, interface=interface)
        except ValueError:
            continue

    logger.debug("interface_without_ipv4", interface=interface, address_count=len(addrs))
    raise NoSuitableAddress(interface)


# =============================================================================
# CLIENT FACTORIES
# =============================================================================


class ClientFactory(ABC):
    """
    Strategy that produces HTTP clients for the handshake.

    Implementations must return a new, independent client on each call;
    the caller closes it.
    """

    @abstractmethod
    def create_client(self) -> httpx.Client:
        """Create a new HTTP client."""
        ...


@attrs.define(frozen=True)
class HTTPClientFactory(ClientFactory):
    """
    Factory for httpx clients with a fixed source address and timeouts.

    Example:
        factory = for_interface("eth0", timeout_factor=2)
        with factory.create_client() as client:
            client.get("https://auth.example.net/")
    """

    bound_address: Optional[BoundAddress] = None
    timeouts: TimeoutProfile = attrs.Factory(TimeoutProfile)

    def create_client(self) -> httpx.Client:
        return httpx.Client(
            transport=self.create_transport(),
            timeout=self.timeouts.to_httpx_timeout(),
            follow_redirects=True,
        )

    def create_transport(self) -> httpx.HTTPTransport:
        local_address = str(self.bound_address.ip) if self.bound_address else None
        return httpx.HTTPTransport(
            local_address=local_address,
            limits=self.timeouts.to_httpx_limits(),
            socket_options=self.timeouts.socket_options(),
        )


def for_interface(interface: str, timeout_factor: int = 1) -> HTTPClientFactory:
    """
    Create a client factory whose connections originate from an interface.

    Args:
        interface: Network interface name
        timeout_factor: Positive multiplier for all base timeouts

    Returns:
        HTTPClientFactory bound to the interface's first IPv4 address

    Raises:
        NoSuitableAddress: interface unknown or without IPv4 address
        ValueError: timeout_factor is not a positive integer
    """
    timeouts = TimeoutProfile.scaled(timeout_factor)
    address = resolve_interface_address(interface)
    logger.info(
        "client_factory_created",
        interface=interface,
        local_address=str(address.ip),
        timeout_factor=timeout_factor,
        expect_continue=timeouts.expect_continue,
    )
    return HTTPClientFactory(bound_address=address, timeouts=timeouts)


def for_address(address: Union[str, IPAddress], timeout_factor: int = 1) -> HTTPClientFactory:
    """
    Create a client factory whose connections originate from an IP address.

    Args:
        address: IPv4 or IPv6 literal, or a parsed ipaddress object
        timeout_factor: Positive multiplier for all base timeouts

    Returns:
        HTTPClientFactory bound to the address

    Raises:
        ValueError: address is not an IP literal, or bad timeout_factor
    """
    timeouts = TimeoutProfile.scaled(timeout_factor)
    bound = BoundAddress(ip=address)
    logger.info(
        "client_factory_created",
        local_address=str(bound.ip),
        timeout_factor=timeout_factor,
        expect_continue=timeouts.expect_continue,
    )
    return HTTPClientFactory(bound_address=bound, timeouts=timeouts)

"""
webauthclient Transport Layer

HTTP client factories bound to a local interface or source address.
"""

from webauthclient.transport.client_factory import (
    BoundAddress,
    ClientFactory,
    HTTPClientFactory,
    TimeoutProfile,
    for_address,
    for_interface,
    resolve_interface_address,
)

__all__ = [
    "BoundAddress",
    "ClientFactory",
    "HTTPClientFactory",
    "TimeoutProfile",
    "for_address",
    "for_interface",
    "resolve_interface_address",
]

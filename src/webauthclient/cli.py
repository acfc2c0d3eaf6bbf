"""Command-line front end for the gateway web login."""

import logging
import sys
from typing import Optional

import httpx
import structlog
import typer
from rich.console import Console
from rich.markup import escape

from webauthclient.core.exceptions import WebAuthError
from webauthclient.handshake.authenticator import create_authenticator
from webauthclient.transport.client_factory import (
    ClientFactory,
    HTTPClientFactory,
    TimeoutProfile,
    for_address,
    for_interface,
)

console = Console(stderr=True)
app = typer.Typer(
    add_completion=False,
    pretty_exceptions_show_locals=False,
    help="Log in to a VPN gateway's web authentication front end.",
)


def setup_logging(verbose: bool = False) -> None:
    """Configure structlog for the CLI.

    Args:
        verbose: Enable debug logging
    """
    level = logging.DEBUG if verbose else logging.WARNING

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )

    # Suppress noisy httpx logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def read_password_file(path: str) -> str:
    """Return the first line of path ("-" for stdin) without its line ending."""
    if path == "-":
        line = sys.stdin.readline()
    else:
        with open(path, encoding="utf-8") as f:
            line = f.readline()
    return line.rstrip("\r\n")


def build_client_factory(
    interface: Optional[str], address: Optional[str], timeout_factor: int
) -> ClientFactory:
    """Select the client factory for the requested local binding."""
    if interface:
        return for_interface(interface, timeout_factor)
    if address:
        return for_address(address, timeout_factor)
    return HTTPClientFactory(timeouts=TimeoutProfile.scaled(timeout_factor))


def _fail(message: str) -> None:
    console.print(escape(message), highlight=False)
    raise typer.Exit(1)


@app.command()
def main(
    interface: Optional[str] = typer.Option(None, "--interface", help="Network interface to make connections from"),
    address: Optional[str] = typer.Option(None, "--address", help="Local IP address to make connections from"),
    timeout_factor: int = typer.Option(1, "--timeout-factor", min=1, help="Multiply all network timeouts by this factor"),
    client_id: str = typer.Option("", "--clientid", help="Account ClientID for authentication"),
    password: str = typer.Option("", "--password", help="Password for ClientID"),
    password_file: Optional[str] = typer.Option(
        None, "--passwordfile", help="Read password from file (first line), '-' for stdin"
    ),
    auth_url: Optional[str] = typer.Option(None, "--auth-url", envvar="WEBAUTH_URL", help="Gateway authentication URL"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose logging"),
):
    """Authenticate ClientID/Password against the gateway."""
    setup_logging(verbose)

    if interface and address:
        _fail("Usage error: --interface and --address are mutually exclusive")

    if password_file:
        try:
            password = read_password_file(password_file)
        except OSError as e:
            _fail(f"File error, cannot read {password_file}: {e.strerror or e}")
        except UnicodeDecodeError:
            _fail(f"File error, cannot read {password_file}: not valid UTF-8")

    try:
        factory = build_client_factory(interface, address, timeout_factor)
    except (WebAuthError, ValueError) as e:
        _fail(f"Interface error: {e}")

    try:
        authenticator = create_authenticator(auth_url=auth_url, client_factory=factory)
        authenticator.authenticate(client_id, password)
    except (WebAuthError, httpx.HTTPError) as e:
        _fail(f"Authentication error: {e}")

    raise typer.Exit(0)


if __name__ == "__main__":
    app()

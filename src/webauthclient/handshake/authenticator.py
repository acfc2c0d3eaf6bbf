"""
webauthclient Authenticator

Client side of the gateway's three-step web login handshake:

1. GET the auth URL without following redirects; the Location header
   carries a one-time token.
2. POST the percent-encoded token, ClientID and Password to the
   redirect URL; the response carries "SIGNEDTOKEN:<url> ".
3. GET the signed URL; the response must contain
   "Connection authenticated.".

Each step uses a fresh client from the configured ClientFactory and
fails fast with exactly one error. Nothing is retained between calls.

SECURITY: ClientID, Password, token and signed URL never reach a log
event or a trace snapshot.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple

import attrs
import httpx
import structlog
from returns.result import Failure, Result, Success

from webauthclient.core.exceptions import (
    APIError,
    SignedTokenError,
    StateError,
    WebAuthError,
)
from webauthclient.core.state_machine import StateMachineBase, TransitionEntry
from webauthclient.core.types import (
    ConfirmationReceived,
    Credentials,
    HandshakeContext,
    HandshakeFailed,
    HandshakeResult,
    HandshakeState,
    SignedURLReceived,
    TokenReceived,
)
from webauthclient.handshake.config import AuthenticatorConfig, create_config
from webauthclient.handshake.parsing import (
    FORM_CONTENT_TYPE,
    extract_signed_url,
    extract_token,
    is_authenticated,
    read_capped,
    render_post_body,
)
from webauthclient.transport.client_factory import ClientFactory

logger = structlog.get_logger()

# httpx raises RemoteProtocolError with this prefix for an unparsable Location
INVALID_LOCATION_PREFIX = "Invalid URL in location header"


# =============================================================================
# HANDSHAKE STATE MACHINE
# =============================================================================


@attrs.define
class HandshakeStateMachine(
    StateMachineBase[HandshakeState, Any, HandshakeContext]
):
    """
    State machine for one authentication attempt.

    States:
    - START: Nothing sent yet
    - TOKEN_ACQUIRED: Redirect URL and token known
    - SIGNED_TOKEN_ACQUIRED: Signed URL known
    - AUTHENTICATED: Gateway confirmed the connection
    - FAILED: A step failed
    """

    redacted_fields: ClassVar[FrozenSet[str]] = frozenset({"redirect_url", "token", "signed_url"})

    def __attrs_post_init__(self) -> None:
        self.add_invariant("token_before_submission", self._token_before_submission)
        self.add_invariant(
            "signed_url_before_confirmation", self._signed_url_before_confirmation
        )

    def initial_state(self) -> HandshakeState:
        return HandshakeState.START

    def transition_table(
        self,
    ) -> Dict[Tuple[HandshakeState, type], TransitionEntry]:
        table: Dict[Tuple[HandshakeState, type], TransitionEntry] = {
            (HandshakeState.START, TokenReceived): (
                HandshakeState.TOKEN_ACQUIRED,
                self._handle_token,
            ),
            (HandshakeState.TOKEN_ACQUIRED, SignedURLReceived): (
                HandshakeState.SIGNED_TOKEN_ACQUIRED,
                self._handle_signed_url,
            ),
            (HandshakeState.SIGNED_TOKEN_ACQUIRED, ConfirmationReceived): (
                HandshakeState.AUTHENTICATED,
                self._handle_confirmation,
            ),
        }
        for state in (
            HandshakeState.START,
            HandshakeState.TOKEN_ACQUIRED,
            HandshakeState.SIGNED_TOKEN_ACQUIRED,
        ):
            table[(state, HandshakeFailed)] = (HandshakeState.FAILED, self._handle_failure)
        return table

    @staticmethod
    def _handle_token(event: TokenReceived, ctx: HandshakeContext) -> HandshakeContext:
        return attrs.evolve(ctx, redirect_url=event.redirect_url, token=event.token)

    @staticmethod
    def _handle_signed_url(
        event: SignedURLReceived, ctx: HandshakeContext
    ) -> HandshakeContext:
        return attrs.evolve(ctx, signed_url=event.signed_url)

    @staticmethod
    def _handle_confirmation(
        event: ConfirmationReceived, ctx: HandshakeContext
    ) -> HandshakeContext:
        return ctx

    @staticmethod
    def _handle_failure(event: HandshakeFailed, ctx: HandshakeContext) -> HandshakeContext:
        return attrs.evolve(
            ctx,
            error_kind=event.error_kind,
            error_message=event.error_message,
        )

    @staticmethod
    def _token_before_submission(state: HandshakeState, ctx: HandshakeContext) -> bool:
        if state in (
            HandshakeState.TOKEN_ACQUIRED,
            HandshakeState.SIGNED_TOKEN_ACQUIRED,
            HandshakeState.AUTHENTICATED,
        ):
            return bool(ctx.token and ctx.redirect_url)
        return True

    @staticmethod
    def _signed_url_before_confirmation(
        state: HandshakeState, ctx: HandshakeContext
    ) -> bool:
        if state in (HandshakeState.SIGNED_TOKEN_ACQUIRED, HandshakeState.AUTHENTICATED):
            return bool(ctx.signed_url)
        return True


# =============================================================================
# AUTHENTICATOR
# =============================================================================


@attrs.define(frozen=True)
class Authenticator:
    """
    Gateway web login client.

    The Authenticator itself holds only its immutable configuration;
    every call builds its own state machine, so concurrent calls with
    different credentials share nothing mutable.

    Example:
        auth = Authenticator(create_config(client_factory=for_interface("eth0")))
        result = auth.authenticate("client-id", "secret")
        print(result.states)
    """

    config: AuthenticatorConfig = attrs.Factory(AuthenticatorConfig)

    _logger: Any = attrs.field(
        factory=lambda: structlog.get_logger(), alias="_logger", repr=False
    )

    def authenticate(self, client_id: str, password: str) -> HandshakeResult:
        """
        Run the three-step handshake.

        Args:
            client_id: Account ClientID
            password: Account password

        Returns:
            HandshakeResult with the transition trace

        Raises:
            UserError: client_id or password empty (no request is sent)
            APIError: token redirect or signed URL malformed
            AuthError: credentials rejected
            SignedTokenError: signed token refused
            httpx.HTTPError: transport failures, unmodified
        """
        credentials = Credentials(client_id=client_id or "", password=password or "")

        machine = HandshakeStateMachine(
            _state=HandshakeState.START,
            _context=HandshakeContext(),
            _logger=self._logger,
        )
        self._logger.info("handshake_start", auth_url=self.config.auth_url)

        try:
            redirect_url, token = self._get_token()
            self._advance(machine, TokenReceived(redirect_url=redirect_url, token=token))

            signed_url = self._get_signed_url(redirect_url, token, credentials)
            self._advance(machine, SignedURLReceived(signed_url=signed_url))

            self._confirm(signed_url)
            self._advance(machine, ConfirmationReceived())
        except (WebAuthError, httpx.HTTPError) as e:
            self._record_failure(machine, e)
            raise

        self._logger.info("handshake_authenticated", auth_url=self.config.auth_url)
        return HandshakeResult(
            auth_url=self.config.auth_url,
            authenticated_at=datetime.now(timezone.utc),
            transitions=machine.get_trace(),
        )

    def try_authenticate(
        self, client_id: str, password: str
    ) -> Result[HandshakeResult, Exception]:
        """
        Run the handshake, returning Success/Failure instead of raising.

        Failure carries the same exception authenticate() would raise.
        """
        try:
            return Success(self.authenticate(client_id, password))
        except (WebAuthError, httpx.HTTPError) as e:
            return Failure(e)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _get_token(self) -> Tuple[str, str]:
        """Step 1: fetch the token redirect from the auth URL."""
        try:
            with self.config.client_factory.create_client() as client:
                with client.stream(
                    "GET", self.config.auth_url, follow_redirects=False
                ) as response:
                    location = response.headers.get("location", "")
        except httpx.RemoteProtocolError as e:
            # httpx prepares the redirect request even when not following it
            if str(e).startswith(INVALID_LOCATION_PREFIX):
                raise APIError("Location header is not a valid URL") from e
            raise

        self._logger.debug(
            "token_response",
            status_code=response.status_code,
            has_location=bool(location),
        )
        return extract_token(
            location,
            self.config.token_query_key,
            base_url=self.config.auth_url,
        )

    def _get_signed_url(
        self, redirect_url: str, token: str, credentials: Credentials
    ) -> str:
        """Step 2: submit credentials, receive the signed URL."""
        body = render_post_body(
            self.config.post_body_template,
            token=token,
            client_id=credentials.client_id,
            password=credentials.password,
        )
        with self.config.client_factory.create_client() as client:
            with client.stream(
                "POST",
                redirect_url,
                content=body.encode("utf-8"),
                headers={"Content-Type": FORM_CONTENT_TYPE},
            ) as response:
                payload = read_capped(response, self.config.max_response_bytes)

        self._logger.debug(
            "signed_token_response",
            status_code=response.status_code,
            bytes_read=len(payload),
        )
        return extract_signed_url(payload)

    def _confirm(self, signed_url: str) -> None:
        """Step 3: present the signed URL and check the confirmation."""
        with self.config.client_factory.create_client() as client:
            with client.stream("GET", signed_url) as response:
                payload = read_capped(response, self.config.max_response_bytes)

        self._logger.debug(
            "confirmation_response",
            status_code=response.status_code,
            bytes_read=len(payload),
        )
        if not is_authenticated(payload):
            raise SignedTokenError()

    # -------------------------------------------------------------------------
    # State tracking
    # -------------------------------------------------------------------------

    @staticmethod
    def _advance(machine: HandshakeStateMachine, event: Any) -> None:
        result = machine.process_event(event)
        if isinstance(result, Failure):
            raise StateError(result.failure())

    def _record_failure(self, machine: HandshakeStateMachine, error: Exception) -> None:
        failed_in = machine.state
        # httpx messages may embed the request URL, which can carry the token
        message = str(error) if isinstance(error, WebAuthError) else type(error).__name__
        if not failed_in.is_terminal:
            machine.process_event(
                HandshakeFailed(
                    error_kind=type(error).__name__,
                    error_message=message,
                )
            )
        self._logger.warning(
            "handshake_failed",
            auth_url=self.config.auth_url,
            failed_in=failed_in.name,
            error_kind=type(error).__name__,
            error=message,
        )


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_authenticator(
    auth_url: Optional[str] = None,
    post_body_template: Optional[str] = None,
    token_query_key: Optional[str] = None,
    client_factory: Optional[ClientFactory] = None,
) -> Authenticator:
    """
    Create an Authenticator with defaults applied to unset options.

    Args:
        auth_url: Gateway auth URL (default: DEFAULT_AUTH_URL)
        post_body_template: Credential form template
        token_query_key: Redirect query key carrying the token
        client_factory: HTTP client factory (default: unbound, base timeouts)

    Returns:
        Configured Authenticator

    Example:
        auth = create_authenticator(client_factory=for_address("10.0.0.2"))
        auth.authenticate("client-id", "secret")
    """
    return Authenticator(
        config=create_config(
            auth_url=auth_url,
            post_body_template=post_body_template,
            token_query_key=token_query_key,
            client_factory=client_factory,
        )
    )

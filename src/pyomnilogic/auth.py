"""Authentication handler for the OmniLogic auth service."""

from __future__ import annotations

import base64
import json
import logging
from datetime import UTC, datetime
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from pyomnilogic.const import (
    BASE64_PADDING_MODULO,
    DEFAULT_AUTH_URL,
    DEFAULT_TIMEOUT,
    HAYWARD_APP_ID,
    HAYWARD_APP_ID_HEADER,
    JWT_PARTS_COUNT,
)
from pyomnilogic.exceptions import AuthenticationError
from pyomnilogic.models import Session, Token


if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


def _require_text(data: dict[str, Any], key: str) -> str:
    """Return a non-empty string field from a JSON response.

    Raises:
        KeyError: If the field is missing.
        TypeError: If the field is not a string.
        ValueError: If the field is empty.
    """
    value = data[key]
    if not isinstance(value, str):
        msg = f"{key} must be a string, got {type(value).__name__}"
        raise TypeError(msg)
    if not value:
        msg = f"{key} is empty"
        raise ValueError(msg)
    return value


def _require_int(data: dict[str, Any], key: str) -> int:
    """Return an integer field from a JSON response, accepting numeric strings."""
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int | str):
        msg = f"{key} must be an integer, got {type(value).__name__}"
        raise TypeError(msg)
    return int(value)


class AuthenticationHandler:
    """Handle authentication with the Hayward auth service.

    The handler logs in with credentials and exchanges refresh tokens. It keeps
    no token state between calls: callers own the Token and pass it back in
    for refresh. Every call is a single attempt; any transport failure,
    non-2xx status or malformed body raises AuthenticationError.

    Example:
        ```python
        async with AuthenticationHandler() as auth:
            session = await auth.login("user@example.com", "password")
            token = await auth.refresh_token(session.token)
        ```

    Attributes:
        base_url: Base URL for the auth service (without trailing slash).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_AUTH_URL,
        *,
        session: ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the authentication handler.

        Args:
            base_url: Base URL for the auth service.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            timeout: Total request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")

        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    def set_session(self, session: ClientSession) -> None:
        """Set the aiohttp session for this handler.

        This should be called by the client managing the session lifecycle.
        The handler will not take ownership and will not close this session.

        Args:
            session: The aiohttp ClientSession to use for requests.
        """
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> AuthenticationHandler:
        """Enter the context manager.

        Creates a new aiohttp session if one wasn't provided during initialization.

        Returns:
            Self for use in async with statements.
        """
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager.

        Closes the session if it was created by this handler.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _validate_session(self) -> None:
        """Validate that the session is initialized and open.

        Raises:
            RuntimeError: If session is not initialized or is closed.
        """
        if self._session is None:
            msg = "Session not initialized. Use 'async with' or provide a session."
            raise RuntimeError(msg)

        if self._session.closed:
            msg = "Session is closed. Cannot make requests."
            raise RuntimeError(msg)

    def _decode_jwt_payload(self, jwt_token: str) -> dict[str, Any]:
        """Decode JWT token payload without verification.

        Args:
            jwt_token: JWT token string in format header.payload.signature.

        Returns:
            Dictionary containing the decoded payload, or empty dict if decoding fails.
        """
        try:
            parts = jwt_token.split(".")
            if len(parts) != JWT_PARTS_COUNT:
                _LOGGER.debug(
                    "Invalid JWT format: expected %d parts, got %d",
                    JWT_PARTS_COUNT,
                    len(parts),
                )
                return {}

            payload = parts[1]

            # Add base64 padding if needed
            padding = BASE64_PADDING_MODULO - len(payload) % BASE64_PADDING_MODULO
            if padding != BASE64_PADDING_MODULO:
                payload += "=" * padding

            decoded_bytes = base64.urlsafe_b64decode(payload)
            decoded_payload = json.loads(decoded_bytes.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as exc:
            _LOGGER.debug("Failed to decode JWT payload: %s", exc)
            return {}

        if not isinstance(decoded_payload, dict):
            return {}
        return decoded_payload

    def token_expires_at(self, token: Token) -> datetime | None:
        """Return the expiry time of an access token.

        Args:
            token: Token whose access token is a JWT.

        Returns:
            Expiry time from the ``exp`` claim, or None if it cannot be determined.
        """
        expires = self._decode_jwt_payload(token.access_token).get("exp")
        if not isinstance(expires, int | float) or isinstance(expires, bool):
            return None

        try:
            return datetime.fromtimestamp(expires, UTC)
        except (OverflowError, OSError, ValueError) as exc:
            _LOGGER.debug("Invalid JWT expiry %r: %s", expires, exc)
            return None

    def token_lifetime_remaining(self, token: Token) -> float | None:
        """Return the seconds left before an access token expires.

        Returns:
            Remaining lifetime in seconds (negative once expired), or None if unknown.
        """
        expires_at = self.token_expires_at(token)
        if expires_at is None:
            return None
        return (expires_at - datetime.now(UTC)).total_seconds()

    async def login(self, email: str, password: str) -> Session:
        """Log in with email and password.

        Args:
            email: Account email address.
            password: Account password.

        Returns:
            Session with the issued token and account details.

        Raises:
            AuthenticationError: If the request fails, returns a non-2xx status
                or the response is missing a field.
        """
        data = await self._post("login", {"email": email, "password": password})

        try:
            session = Session(
                token=Token(
                    access_token=_require_text(data, "token"),
                    refresh_token=_require_text(data, "refreshToken"),
                ),
                user_id=_require_int(data, "userID"),
                email=str(data.get("email", email)),
                first_name=str(data.get("firstName", "")),
                last_name=str(data.get("lastName", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Malformed login response: {exc!r}"
            raise AuthenticationError(msg) from exc

        _LOGGER.info("Authentication successful for user %s", session.user_id)
        return session

    async def refresh_token(self, token: Token) -> Token:
        """Exchange a refresh token for a new token pair.

        Args:
            token: Current token; both fields must be set.

        Returns:
            New Token. The old token stays valid until it expires.

        Raises:
            AuthenticationError: If the token is incomplete (checked before any
                request), the request fails or the response is malformed.
        """
        if not token.access_token or not token.refresh_token:
            msg = "Attempted to refresh without refresh token"
            raise AuthenticationError(msg)

        data = await self._post(
            "refresh",
            {"refreshToken": token.refresh_token},
            headers={"Authorization": f"Bearer {token.access_token}"},
        )

        try:
            new_token = Token(
                access_token=_require_text(data, "token"),
                refresh_token=_require_text(data, "refreshToken"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Malformed refresh response: {exc!r}"
            raise AuthenticationError(msg) from exc

        _LOGGER.debug("Token refreshed")
        return new_token

    async def _post(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST JSON to the auth service and return the decoded body.

        Raises:
            AuthenticationError: On any transport failure, non-2xx status or
                a body that is not a JSON object.
        """
        self._validate_session()
        # We know _session is not None after validation
        assert self._session is not None

        url = f"{self.base_url}/{endpoint}"
        request_headers = {
            "Content-Type": "application/json",
            HAYWARD_APP_ID_HEADER: HAYWARD_APP_ID,
            **(headers or {}),
        }
        timeout = ClientTimeout(total=self._timeout)

        _LOGGER.debug("Posting to %s", url)

        try:
            async with self._session.post(url, json=payload, headers=request_headers, timeout=timeout) as response:
                if response.status == HTTPStatus.UNAUTHORIZED:
                    msg = "Authentication failed: Invalid credentials"
                    raise AuthenticationError(msg)

                if not HTTPStatus.OK <= response.status < HTTPStatus.MULTIPLE_CHOICES:
                    msg = f"Authentication failed with status {response.status}"
                    raise AuthenticationError(msg)

                data = await response.json()

        except TimeoutError as exc:
            msg = "Authentication request timed out"
            raise AuthenticationError(msg) from exc

        except ClientError as exc:
            msg = f"Failed to connect to auth service: {exc}"
            raise AuthenticationError(msg) from exc

        except json.JSONDecodeError as exc:
            msg = f"Invalid JSON response from auth service: {exc}"
            raise AuthenticationError(msg) from exc

        if not isinstance(data, dict):
            msg = "Invalid response from auth service: expected a JSON object"
            raise AuthenticationError(msg)

        return data

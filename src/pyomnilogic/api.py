"""Low-level API client for the OmniLogic MobileInterface endpoint.

This module provides direct HTTP communication with the OmniLogic API.
Every request is a named command with an ordered parameter list, POSTed as
an XML document; every response is returned as a parsed document.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence  # noqa: TC003 - Used at runtime for type hints
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from pyomnilogic.const import (
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
    REQUEST_MSP_LIST,
    REQUEST_SET_EQUIPMENT,
    REQUEST_SET_HEATER_ENABLE,
    REQUEST_SET_HEATER_TEMPERATURE,
    REQUEST_TELEMETRY_DATA,
)
from pyomnilogic.exceptions import OmniLogicConnectionError, OmniLogicTimeoutError
from pyomnilogic.serializers import (
    deserialize_response,
    empty_timer_parameters,
    enabled_parameter,
    equipment_parameter,
    heater_parameter,
    is_on_parameter,
    owner_parameter,
    pool_parameter,
    serialize_request,
    system_parameter,
    temperature_parameter,
    token_parameter,
)


if TYPE_CHECKING:
    from types import TracebackType

    from pyomnilogic.models import Parameter

_LOGGER = logging.getLogger(__name__)


class OmniLogicAPI:
    """Low-level API client for the OmniLogic MobileInterface endpoint.

    This class handles raw HTTP communication: building the XML request,
    posting it and parsing the XML response. It holds no credentials; the
    token is passed to each endpoint method.

    Transport failures surface as a single error channel: aiohttp errors and
    non-2xx responses raise OmniLogicConnectionError, timeouts raise
    OmniLogicTimeoutError and malformed bodies raise ParseError. No request
    is retried.

    Example:
        ```python
        from aiohttp import ClientSession
        from pyomnilogic.api import OmniLogicAPI
        from pyomnilogic.parsers import parse_telemetry_data

        async with ClientSession() as session:
            api = OmniLogicAPI(session=session)
            document = await api.request_telemetry_data(token, system_id)
            status = parse_telemetry_data(document)
        ```

    Attributes:
        base_url: URL of the MobileInterface endpoint.
    """

    def __init__(
        self,
        *,
        session: ClientSession | None = None,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the API client.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            base_url: URL of the MobileInterface endpoint.
            timeout: Total request timeout in seconds.
        """
        self.base_url = base_url
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    def set_session(self, session: ClientSession) -> None:
        """Set the aiohttp session for this client.

        The client will not take ownership and will not close this session.

        Args:
            session: The aiohttp ClientSession to use for requests.
        """
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> OmniLogicAPI:
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

        Closes the session if it was created by this client.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def send_command(self, name: str, parameters: Sequence[Parameter]) -> dict[str, Any]:
        """Send a named command and return the parsed response document.

        This is the core method for all HTTP communication.

        Args:
            name: Request name, e.g. ``RequestTelemetryData``.
            parameters: Ordered request parameters.

        Returns:
            Parsed response document.

        Raises:
            RuntimeError: If session is not initialized or is closed.
            OmniLogicConnectionError: If the request fails or returns a non-2xx status.
            OmniLogicTimeoutError: If the request times out.
            ParseError: If the response body is not well-formed XML.
        """
        if self._session is None:
            msg = "Session not initialized. Use 'async with' or provide a session."
            raise RuntimeError(msg)

        if self._session.closed:
            msg = "Session is closed. Cannot make request."
            raise RuntimeError(msg)

        body = serialize_request(name, parameters)
        headers = {"Content-Type": "text/xml"}
        timeout = ClientTimeout(total=self._timeout)

        _LOGGER.debug("Sending %s request", name)

        try:
            async with self._session.post(self.base_url, data=body, headers=headers, timeout=timeout) as response:
                if not HTTPStatus.OK <= response.status < HTTPStatus.MULTIPLE_CHOICES:
                    msg = f"{name} request failed with status {response.status}"
                    raise OmniLogicConnectionError(msg)

                text = await response.text()

        except TimeoutError as exc:
            msg = f"{name} request timed out"
            raise OmniLogicTimeoutError(msg) from exc

        except ClientError as exc:
            msg = f"Failed to connect to API: {exc}"
            raise OmniLogicConnectionError(msg) from exc

        return deserialize_response(text)

    # -------------------------------------------------------------------------
    # Telemetry Endpoints
    # -------------------------------------------------------------------------

    async def request_telemetry_data(self, access_token: str, system_id: int) -> dict[str, Any]:
        """Request the full telemetry document for a controller.

        Args:
            access_token: Current access token.
            system_id: MSP system ID.

        Returns:
            Parsed document in format {"STATUS": {"@version": str, "Backyard": {...}, ...}}
        """
        return await self.send_command(
            REQUEST_TELEMETRY_DATA,
            [token_parameter(access_token), system_parameter(system_id)],
        )

    async def get_msp_list(self, access_token: str, user_id: int) -> dict[str, Any]:
        """Request the list of controllers linked to an account.

        Args:
            access_token: Current access token.
            user_id: Account owner ID.

        Returns:
            Parsed document in format
            {"Response": {"Parameters": {"Parameter": [status, message, {"Item": [...]}]}}}
        """
        return await self.send_command(
            REQUEST_MSP_LIST,
            [token_parameter(access_token), owner_parameter(user_id)],
        )

    # -------------------------------------------------------------------------
    # Command Endpoints
    # -------------------------------------------------------------------------

    async def set_equipment_state(
        self,
        access_token: str,
        system_id: int,
        pool_id: int,
        equipment_id: int,
        value: int,
    ) -> dict[str, Any]:
        """Set the state of a pump or light.

        Args:
            access_token: Current access token.
            system_id: MSP system ID.
            pool_id: System ID of the body of water owning the equipment.
            equipment_id: System ID of the equipment.
            value: Speed percentage for pumps, 1/0 for lights.

        Returns:
            Parsed document in format
            {"Response": {"Name": str, "Parameters": {"Parameter": [status, message]}}}
        """
        return await self.send_command(
            REQUEST_SET_EQUIPMENT,
            [
                token_parameter(access_token),
                system_parameter(system_id),
                pool_parameter(pool_id),
                equipment_parameter(equipment_id),
                is_on_parameter(value),
                *empty_timer_parameters(),
            ],
        )

    async def set_heater_temperature(
        self,
        access_token: str,
        system_id: int,
        pool_id: int,
        heater_id: int,
        temperature: int,
    ) -> dict[str, Any]:
        """Set the heater set point.

        Args:
            access_token: Current access token.
            system_id: MSP system ID.
            pool_id: System ID of the body of water owning the heater.
            heater_id: System ID of the virtual heater.
            temperature: Target temperature in Fahrenheit.

        Returns:
            Parsed command response document.
        """
        return await self.send_command(
            REQUEST_SET_HEATER_TEMPERATURE,
            [
                token_parameter(access_token),
                system_parameter(system_id),
                pool_parameter(pool_id),
                heater_parameter(heater_id),
                temperature_parameter(temperature),
            ],
        )

    async def set_heater_enable(
        self,
        access_token: str,
        system_id: int,
        pool_id: int,
        heater_id: int,
        enabled: bool,
    ) -> dict[str, Any]:
        """Enable or disable a heater.

        Args:
            access_token: Current access token.
            system_id: MSP system ID.
            pool_id: System ID of the body of water owning the heater.
            heater_id: System ID of the virtual heater.
            enabled: Whether the heater should be enabled.

        Returns:
            Parsed command response document.
        """
        return await self.send_command(
            REQUEST_SET_HEATER_ENABLE,
            [
                token_parameter(access_token),
                system_parameter(system_id),
                pool_parameter(pool_id),
                heater_parameter(heater_id),
                enabled_parameter(enabled),
            ],
        )

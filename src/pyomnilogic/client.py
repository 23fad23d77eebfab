"""High-level client for OmniLogic pool controllers.

This module composes the auth handler, the low-level API and the parsers
into per-equipment operations. It owns the token, the connected system ID,
a short-lived telemetry cache and the equipment to body-of-water index used
to route commands.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence  # noqa: TC003 - Used at runtime for type hints
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from aiohttp import ClientSession

from pyomnilogic.api import OmniLogicAPI
from pyomnilogic.auth import AuthenticationHandler
from pyomnilogic.const import (
    DEFAULT_API_URL,
    DEFAULT_AUTH_URL,
    DEFAULT_TELEMETRY_CACHE_SECONDS,
    DEFAULT_TOKEN_CHECK_INTERVAL,
    DEFAULT_TOKEN_REFRESH_THRESHOLD,
    HEATER_STATE_ON,
    HEATER_TEMPERATURE_MAX,
    HEATER_TEMPERATURE_MIN,
    PUMP_SPEED_MAX,
    PUMP_SPEED_MIN,
    STATUS_SUCCESS,
)
from pyomnilogic.exceptions import (
    AuthenticationError,
    EquipmentError,
    OmniLogicAPIError,
    OmniLogicConnectionError,
    ValidationError,
)
from pyomnilogic.models import (
    BackyardStatus,
    ChlorinatorStatus,
    ColorLogicLightStatus,
    CSADStatus,
    EquipmentRef,
    FilterStatus,
    MspListResponse,
    Session,
    StatusResponse,
    Token,
    VirtualHeaterStatus,
    WaterTemperature,
    equipment_id,
)
from pyomnilogic.parsers import (
    parse_command_response,
    parse_msp_list,
    parse_response_status,
    parse_telemetry_data,
)


if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)

_EquipmentT = TypeVar("_EquipmentT", FilterStatus, VirtualHeaterStatus, ColorLogicLightStatus)


class OmniLogicClient:
    """Client for a single OmniLogic controller.

    The client moves from unconnected to connected once connect() resolves the
    account's first controller, and is terminal after close(). Every equipment
    operation requires a connected client.

    Telemetry is cached for ``telemetry_cache_seconds``; any successful
    state-changing command clears the cache so the next read hits the API.
    Failed commands leave the cache untouched.

    A background task checks the access token every ``token_check_interval``
    seconds and refreshes it when less than ``token_refresh_threshold``
    seconds remain. The task is not synchronized with requests: a request may
    still go out with the old token, which stays valid until it expires.

    Operations on one client are meant to be awaited one at a time; concurrent
    mutating calls on the same instance are not guarded.

    Example:
        ```python
        from pyomnilogic import OmniLogicClient

        client = await OmniLogicClient.with_credentials("user@example.com", "password")
        async with client:
            await client.connect()
            pumps = await client.get_pumps()
            await client.set_pump_speed(pumps[0], 60)
            temperature = await client.get_water_temperature()
        ```

        Reusing a stored token:

        ```python
        client = await OmniLogicClient.with_token(token, user_id)
        async with client:
            await client.connect()
            speed = await client.get_pump_speed(pump_id)
        ```
    """

    def __init__(
        self,
        token: Token | None = None,
        user_id: int | None = None,
        *,
        session: ClientSession | None = None,
        auth_handler: AuthenticationHandler | None = None,
        api: OmniLogicAPI | None = None,
        api_url: str = DEFAULT_API_URL,
        auth_url: str = DEFAULT_AUTH_URL,
        telemetry_cache_seconds: float = DEFAULT_TELEMETRY_CACHE_SECONDS,
        token_check_interval: float = DEFAULT_TOKEN_CHECK_INTERVAL,
        token_refresh_threshold: float = DEFAULT_TOKEN_REFRESH_THRESHOLD,
        on_token_refreshed: Callable[[Token], None] | None = None,
    ) -> None:
        """Initialize the client.

        Prefer the with_credentials() and with_token() factories, which also
        start the background token refresh.

        Args:
            token: Existing token, if already authenticated.
            user_id: Account owner ID matching the token.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created on first use and closed by close().
            auth_handler: Optional pre-configured AuthenticationHandler.
            api: Optional pre-configured OmniLogicAPI.
            api_url: URL of the MobileInterface endpoint.
            auth_url: Base URL of the auth service.
            telemetry_cache_seconds: How long a telemetry snapshot is reused.
            token_check_interval: Seconds between token expiry checks.
            token_refresh_threshold: Refresh when fewer seconds than this remain.
            on_token_refreshed: Optional callback invoked with each new token,
                so applications can persist it.
        """
        self._token = token
        self._user_id = user_id
        self._system_id: int | None = None
        self._session_info: Session | None = None

        self._http_session = session
        self._owns_session = session is None
        self._auth_handler = auth_handler or AuthenticationHandler(auth_url, session=session)
        self._api = api or OmniLogicAPI(session=session, base_url=api_url)

        # Telemetry cache
        self._telemetry_cache_seconds = telemetry_cache_seconds
        self._telemetry: StatusResponse | None = None
        self._telemetry_fetched_at: datetime | None = None

        # Equipment system ID -> owning body of water system ID
        self._equipment_bodies: dict[int, int] = {}

        # Token refresh task
        self._token_check_interval = token_check_interval
        self._token_refresh_threshold = token_refresh_threshold
        self._token_refresh_task: asyncio.Task[None] | None = None
        self._on_token_refreshed = on_token_refreshed

        self._closed = False

    # -------------------------------------------------------------------------
    # Factories and lifecycle
    # -------------------------------------------------------------------------

    @classmethod
    async def with_credentials(cls, email: str, password: str, **kwargs: Any) -> OmniLogicClient:
        """Create a client by logging in with email and password.

        Args:
            email: Account email address.
            password: Account password.
            **kwargs: Passed to the constructor.

        Returns:
            Authenticated client with token refresh running.

        Raises:
            AuthenticationError: If login fails.
        """
        client = cls(**kwargs)
        try:
            await client.login(email, password)
            await client.start_token_refresh()
        except Exception:
            await client.close()
            raise
        return client

    @classmethod
    async def with_token(cls, token: Token, user_id: int, **kwargs: Any) -> OmniLogicClient:
        """Create a client from a previously issued token.

        Args:
            token: Stored token.
            user_id: Account owner ID matching the token.
            **kwargs: Passed to the constructor.

        Returns:
            Client with token refresh running.
        """
        client = cls(token, user_id, **kwargs)
        client._ensure_session()
        await client.start_token_refresh()
        return client

    async def __aenter__(self) -> OmniLogicClient:
        """Enter the context manager.

        Creates the session if needed and starts the token refresh task if it
        is not already running.

        Returns:
            Self for use in async with statements.
        """
        self._ensure_open()
        self._ensure_session()
        if self._token_refresh_task is None:
            await self.start_token_refresh()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager and close the client.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        await self.close()

    async def close(self) -> None:
        """Stop the token refresh task and close the session if owned.

        The client cannot be used afterwards. Calling close() again does nothing.
        """
        if self._closed:
            return
        self._closed = True

        await self.stop_token_refresh()

        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

        _LOGGER.debug("Client closed")

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "Client is closed"
            raise OmniLogicConnectionError(msg)

    def _ensure_session(self) -> None:
        """Create the aiohttp session on first use and share it with the API and auth handler."""
        if self._http_session is None:
            self._http_session = ClientSession()
            self._owns_session = True
            self._auth_handler.set_session(self._http_session)
            self._api.set_session(self._http_session)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def api(self) -> OmniLogicAPI:
        """Get the underlying API client for advanced use cases."""
        return self._api

    @property
    def token(self) -> Token | None:
        """Get the current token. Changes after each background refresh."""
        return self._token

    @property
    def user_id(self) -> int | None:
        """Get the account owner ID."""
        return self._user_id

    @property
    def session(self) -> Session | None:
        """Get the login session, None if the client was created from a token."""
        return self._session_info

    @property
    def system_id(self) -> int | None:
        """Get the connected controller's system ID."""
        return self._system_id

    @property
    def is_connected(self) -> bool:
        """Check if connect() has resolved a controller and the client is open."""
        return self._system_id is not None and not self._closed

    @property
    def telemetry_age_seconds(self) -> float | None:
        """Get the age of the cached telemetry in seconds, None if nothing is cached."""
        if self._telemetry_fetched_at is None:
            return None
        return (datetime.now(UTC) - self._telemetry_fetched_at).total_seconds()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        """Log in and store the issued token and user ID.

        Raises:
            AuthenticationError: If login fails.
        """
        self._ensure_open()
        self._ensure_session()

        session = await self._auth_handler.login(email, password)
        self._session_info = session
        self._token = session.token
        self._user_id = session.user_id
        return session

    def _require_token(self) -> Token:
        if self._token is None:
            msg = "No valid token available"
            raise AuthenticationError(msg)
        return self._token

    def _require_user_id(self) -> int:
        if self._user_id is None:
            msg = "No user ID available"
            raise AuthenticationError(msg)
        return self._user_id

    async def refresh_token_if_needed(self, *, force: bool = False) -> bool:
        """Refresh the token if it expires within the refresh threshold.

        A token whose expiry cannot be read is treated as expiring.

        Args:
            force: Refresh regardless of the remaining lifetime.

        Returns:
            True if the token was replaced.

        Raises:
            AuthenticationError: If there is no token or the refresh fails.
        """
        token = self._require_token()

        if not force:
            remaining = self._auth_handler.token_lifetime_remaining(token)
            if remaining is not None and remaining >= self._token_refresh_threshold:
                _LOGGER.debug("Token valid for %.0fs, no refresh needed", remaining)
                return False

        new_token = await self._auth_handler.refresh_token(token)
        self._token = new_token
        _LOGGER.info("Access token refreshed")

        if self._on_token_refreshed is not None:
            self._on_token_refreshed(new_token)

        return True

    async def start_token_refresh(self, interval: float | None = None) -> None:
        """Start the background task that keeps the token fresh.

        Any running refresh task is stopped first, so there is never more than one.

        Args:
            interval: Optional new check interval in seconds.
        """
        await self.stop_token_refresh()

        if interval is not None:
            self._token_check_interval = interval

        self._token_refresh_task = asyncio.create_task(self._token_refresh_loop())
        _LOGGER.debug("Started token refresh (interval: %ss)", self._token_check_interval)

    async def stop_token_refresh(self) -> None:
        """Stop the background token refresh task if it is running."""
        if self._token_refresh_task is not None:
            self._token_refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._token_refresh_task
            self._token_refresh_task = None
            _LOGGER.debug("Stopped token refresh")

    async def _token_refresh_loop(self) -> None:
        """Check the token at regular intervals until cancelled.

        A failed refresh is logged and retried on the next tick.
        """
        try:
            while True:
                await asyncio.sleep(self._token_check_interval)
                try:
                    await self.refresh_token_if_needed()
                except Exception:  # noqa: BLE001 - Keep the loop alive for the next tick
                    _LOGGER.exception("Token refresh failed, retrying in %ss", self._token_check_interval)
        except asyncio.CancelledError:
            _LOGGER.debug("Token refresh loop cancelled")

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def get_msp_list(self) -> MspListResponse:
        """Get the controllers linked to the account.

        Raises:
            AuthenticationError: If there is no token or user ID.
        """
        self._ensure_open()
        document = await self._api.get_msp_list(self._require_token().access_token, self._require_user_id())
        return parse_msp_list(document)

    async def connect(self) -> int:
        """Resolve the system ID of the account's first controller.

        The system ID is set once; later calls return it without a request.

        Returns:
            The connected system ID.

        Raises:
            OmniLogicConnectionError: If the account has no controller.
            OmniLogicAPIError: If the controller list request reports an error.
        """
        self._ensure_open()
        if self._system_id is not None:
            return self._system_id

        self._ensure_session()
        msp_list = await self.get_msp_list()

        if msp_list.status != STATUS_SUCCESS:
            raise OmniLogicAPIError(msp_list.status, msp_list.status_message)

        if not msp_list.items:
            msg = "No controllers found for this account"
            raise OmniLogicConnectionError(msg)

        self._system_id = msp_list.items[0].system_id
        _LOGGER.info("Connected to %s (system %d)", msp_list.items[0].name, self._system_id)
        return self._system_id

    def _require_system_id(self) -> int:
        self._ensure_open()
        if self._system_id is None:
            msg = "System ID not set, did you call `connect()`?"
            raise OmniLogicConnectionError(msg)
        return self._system_id

    # -------------------------------------------------------------------------
    # Telemetry cache
    # -------------------------------------------------------------------------

    async def request_telemetry_data(self) -> StatusResponse:
        """Get the telemetry snapshot, from cache while it is fresh.

        Returns:
            The cached snapshot if younger than the cache window, otherwise a
            freshly fetched one.

        Raises:
            OmniLogicConnectionError: If the client is not connected.
            OmniLogicAPIError: If the API answers with an error instead of telemetry.
            ParseError: If the telemetry document is malformed.
        """
        system_id = self._require_system_id()

        age = self.telemetry_age_seconds
        if self._telemetry is not None and age is not None and age < self._telemetry_cache_seconds:
            _LOGGER.debug("Using cached telemetry (%.1fs old)", age)
            return self._telemetry

        document = await self._api.request_telemetry_data(self._require_token().access_token, system_id)

        # Errors such as an expired token come back as a Response instead of STATUS
        if "STATUS" not in document and "Response" in document:
            status_code, status_message = parse_response_status(document)
            raise OmniLogicAPIError(status_code, status_message)

        telemetry = parse_telemetry_data(document)
        self._telemetry = telemetry
        self._telemetry_fetched_at = datetime.now(UTC)
        return telemetry

    def clear_telemetry_cache(self) -> None:
        """Drop the cached telemetry so the next read fetches it again."""
        self._telemetry = None
        self._telemetry_fetched_at = None

    async def refresh_telemetry(self) -> StatusResponse:
        """Fetch telemetry from the API, ignoring the cache."""
        self.clear_telemetry_cache()
        return await self.request_telemetry_data()

    # -------------------------------------------------------------------------
    # Equipment index
    # -------------------------------------------------------------------------

    async def update_equipment_body_map(self) -> dict[int, int]:
        """Rebuild the equipment to body-of-water index from telemetry.

        Equipment is matched to bodies of water by position: the i-th filter,
        virtual heater, heater and light belong to the i-th body of water.
        Kinds with fewer entries are skipped at the missing positions.

        Returns:
            Copy of the rebuilt index.
        """
        telemetry = await self.request_telemetry_data()

        self._equipment_bodies.clear()
        correlated: Sequence[Sequence[Any]] = (
            telemetry.filters,
            telemetry.virtual_heaters,
            telemetry.heaters,
            telemetry.color_logic_lights,
        )
        for index, body in enumerate(telemetry.bodies_of_water):
            self._equipment_bodies[body.system_id] = body.system_id
            for equipment in correlated:
                if index < len(equipment):
                    self._equipment_bodies[equipment[index].system_id] = body.system_id

        _LOGGER.debug("Equipment index rebuilt with %d entries", len(self._equipment_bodies))
        return dict(self._equipment_bodies)

    async def _resolve_body_of_water(self, equipment: int) -> int:
        """Return the body of water owning a piece of equipment.

        Rebuilds the index once on a miss.

        Raises:
            EquipmentError: If the equipment is still unknown after the rebuild.
        """
        body_id = self._equipment_bodies.get(equipment)
        if body_id is None:
            await self.update_equipment_body_map()
            body_id = self._equipment_bodies.get(equipment)

        if body_id is None:
            raise EquipmentError(equipment_id=equipment)
        return body_id

    @staticmethod
    def _find(items: Sequence[_EquipmentT], ref: EquipmentRef, kind: str) -> _EquipmentT:
        target = equipment_id(ref)
        if not items:
            msg = f"No {kind}s found"
            raise EquipmentError(msg, target)

        for item in items:
            if item.system_id == target:
                return item

        msg = f"Could not find {kind} {target}"
        raise EquipmentError(msg, target)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _handle_command_response(self, document: dict[str, Any], equipment: int) -> bool:
        """Clear the telemetry cache on success; report failure without raising."""
        response = parse_command_response(document)
        if not response.success:
            _LOGGER.warning(
                "%s for equipment %d failed: %s (%d)",
                response.name or "Command",
                equipment,
                response.status_message,
                response.status_code,
            )
            return False

        self.clear_telemetry_cache()
        return True

    async def _set_equipment_state(self, equipment: int, value: int) -> bool:
        """Send SetUIEquipmentCmd for a pump or light.

        Returns:
            True if the command succeeded, False if the API reported a failure.
        """
        system_id = self._require_system_id()
        pool_id = await self._resolve_body_of_water(equipment)

        _LOGGER.debug("Setting equipment %d in pool %d to %d", equipment, pool_id, value)
        document = await self._api.set_equipment_state(
            self._require_token().access_token,
            system_id,
            pool_id,
            equipment,
            value,
        )
        return self._handle_command_response(document, equipment)

    # -------------------------------------------------------------------------
    # Backyard and chemistry
    # -------------------------------------------------------------------------

    async def get_backyard(self) -> BackyardStatus:
        """Get controller-level telemetry (air temperature, state)."""
        return (await self.request_telemetry_data()).backyard

    async def get_chlorinators(self) -> list[ChlorinatorStatus]:
        """Get all salt chlorinators."""
        return (await self.request_telemetry_data()).chlorinators

    async def get_csads(self) -> list[CSADStatus]:
        """Get all chemistry controllers."""
        return (await self.request_telemetry_data()).csads

    async def get_water_temperature(self) -> WaterTemperature:
        """Get the water temperature of the first circuit with a running pump.

        Only a circulating circuit reports a meaningful temperature. The body of
        water, virtual heater and heater at the pump's position are read.

        Raises:
            EquipmentError: If there is no body of water or no pump is running.
        """
        telemetry = await self.request_telemetry_data()
        bodies = telemetry.bodies_of_water
        if not bodies:
            msg = "No body of water found"
            raise EquipmentError(msg)

        for index, pump in enumerate(telemetry.filters):
            if pump.filter_speed <= 0 or index >= len(bodies):
                continue

            virtual_heater = telemetry.virtual_heaters[index] if index < len(telemetry.virtual_heaters) else None
            heater = telemetry.heaters[index] if index < len(telemetry.heaters) else None
            return WaterTemperature(
                current=bodies[index].water_temp,
                target=virtual_heater.current_set_point if virtual_heater else None,
                heater_on=heater is not None and heater.heater_state == HEATER_STATE_ON,
            )

        msg = "No pump is running, water temperature is unavailable"
        raise EquipmentError(msg)

    # -------------------------------------------------------------------------
    # Pumps
    # -------------------------------------------------------------------------

    async def get_pumps(self) -> list[FilterStatus]:
        """Get all filter pumps."""
        return (await self.request_telemetry_data()).filters

    async def get_pump_speed(self, pump: EquipmentRef) -> int:
        """Get the current speed of a pump in percent.

        Raises:
            EquipmentError: If there are no pumps or the pump is unknown.
        """
        telemetry = await self.request_telemetry_data()
        return self._find(telemetry.filters, pump, "pump").filter_speed

    async def set_pump_speed(self, pump: EquipmentRef, speed: int) -> bool:
        """Set a pump's speed.

        Args:
            pump: Pump record or system ID.
            speed: Speed in percent, 0 stops the pump.

        Returns:
            True if the command succeeded.

        Raises:
            ValidationError: If speed is outside 0-100.
            EquipmentError: If the pump has no body of water.
        """
        if not PUMP_SPEED_MIN <= speed <= PUMP_SPEED_MAX:
            msg = f"Pump speed must be between {PUMP_SPEED_MIN} and {PUMP_SPEED_MAX}, got {speed}"
            raise ValidationError(msg, parameter_name="speed", value=speed)

        return await self._set_equipment_state(equipment_id(pump), speed)

    async def set_pump_on(self, pump: EquipmentRef) -> bool:
        """Turn a pump on at the last speed it ran at.

        Raises:
            ValidationError: If the pump has no recorded speed to resume.
            EquipmentError: If the pump is unknown.
        """
        telemetry = await self.request_telemetry_data()
        record = self._find(telemetry.filters, pump, "pump")

        if record.last_speed <= PUMP_SPEED_MIN:
            msg = f"Pump {record.system_id} has no previous speed to resume"
            raise ValidationError(msg, parameter_name="speed", value=record.last_speed)

        return await self._set_equipment_state(record.system_id, record.last_speed)

    # -------------------------------------------------------------------------
    # Heaters
    # -------------------------------------------------------------------------

    async def get_heaters(self) -> list[VirtualHeaterStatus]:
        """Get all heaters (virtual heater configuration)."""
        return (await self.request_telemetry_data()).virtual_heaters

    async def get_heater_temperature(self, heater: EquipmentRef) -> int:
        """Get a heater's set point in Fahrenheit.

        Raises:
            EquipmentError: If the heater is unknown.
        """
        telemetry = await self.request_telemetry_data()
        return self._find(telemetry.virtual_heaters, heater, "heater").current_set_point

    async def set_heater_temperature(self, heater: EquipmentRef, target_temperature: int) -> bool:
        """Set a heater's set point.

        Args:
            heater: Heater record or system ID.
            target_temperature: Set point in Fahrenheit, 50-105 inclusive.

        Returns:
            True if the command succeeded.

        Raises:
            ValidationError: If the temperature is out of range.
            EquipmentError: If the heater has no body of water.
        """
        if not HEATER_TEMPERATURE_MIN <= target_temperature <= HEATER_TEMPERATURE_MAX:
            msg = (
                f"Temperature must be between {HEATER_TEMPERATURE_MIN} and {HEATER_TEMPERATURE_MAX}, "
                f"got {target_temperature}"
            )
            raise ValidationError(msg, parameter_name="target_temperature", value=target_temperature)

        system_id = self._require_system_id()
        heater_id = equipment_id(heater)
        pool_id = await self._resolve_body_of_water(heater_id)

        document = await self._api.set_heater_temperature(
            self._require_token().access_token,
            system_id,
            pool_id,
            heater_id,
            target_temperature,
        )
        return self._handle_command_response(document, heater_id)

    async def set_heater_state(self, heater: EquipmentRef, on: bool) -> bool:
        """Enable or disable a heater.

        Returns:
            True if the command succeeded.

        Raises:
            EquipmentError: If the heater has no body of water.
        """
        system_id = self._require_system_id()
        heater_id = equipment_id(heater)
        pool_id = await self._resolve_body_of_water(heater_id)

        document = await self._api.set_heater_enable(
            self._require_token().access_token,
            system_id,
            pool_id,
            heater_id,
            on,
        )
        return self._handle_command_response(document, heater_id)

    # -------------------------------------------------------------------------
    # Lights
    # -------------------------------------------------------------------------

    async def get_lights(self) -> list[ColorLogicLightStatus]:
        """Get all ColorLogic lights."""
        return (await self.request_telemetry_data()).color_logic_lights

    async def get_light_state(self, light: EquipmentRef) -> bool:
        """Check if a light is on. Powering on and off count as off.

        Raises:
            EquipmentError: If the light is unknown.
        """
        telemetry = await self.request_telemetry_data()
        return self._find(telemetry.color_logic_lights, light, "light").is_on

    async def set_light_state(self, light: EquipmentRef, on: bool) -> bool:
        """Turn a light on or off.

        Returns:
            True if the command succeeded.

        Raises:
            EquipmentError: If the light has no body of water.
        """
        return await self._set_equipment_state(equipment_id(light), 1 if on else 0)

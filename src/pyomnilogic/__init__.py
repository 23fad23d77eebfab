"""Python client library for Hayward OmniLogic pool controllers.

This package provides an async client for reading telemetry from and sending
commands to OmniLogic controllers through the Hayward cloud API.

The library is organized into three layers:
1. **API Layer** (pyomnilogic.api): Low-level XML-over-HTTP communication
2. **Parsing Layer** (pyomnilogic.serializers, pyomnilogic.parsers): Wire codec
   and response decoding into typed models
3. **Client Layer** (pyomnilogic.client): Token lifecycle, telemetry cache,
   equipment routing and per-equipment operations

Example:
    Basic usage:

    ```python
    from pyomnilogic import OmniLogicClient

    client = await OmniLogicClient.with_credentials("user@example.com", "password")
    async with client:
        await client.connect()

        for pump in await client.get_pumps():
            print(f"Pump {pump.system_id}: {pump.filter_speed}%")

        temperature = await client.get_water_temperature()
        print(f"Water: {temperature.current}F, heater on: {temperature.heater_on}")
    ```

    Advanced usage with direct API access:

    ```python
    from pyomnilogic import OmniLogicClient, parse_telemetry_data

    async with client:
        document = await client.api.request_telemetry_data(client.token.access_token, client.system_id)
        status = parse_telemetry_data(document)
    ```
"""

from __future__ import annotations

from pyomnilogic.api import OmniLogicAPI
from pyomnilogic.auth import AuthenticationHandler
from pyomnilogic.client import OmniLogicClient
from pyomnilogic.exceptions import (
    AuthenticationError,
    EquipmentError,
    OmniLogicAPIError,
    OmniLogicConnectionError,
    OmniLogicError,
    OmniLogicTimeoutError,
    ParseError,
    UnsupportedTypeError,
    ValidationError,
)
from pyomnilogic.models import (
    BackyardStatus,
    BodyOfWater,
    ChlorinatorStatus,
    ColorLogicLightStatus,
    CommandResponse,
    CSADStatus,
    EquipmentRef,
    FilterStatus,
    GroupStatus,
    HeaterStatus,
    LightState,
    MspItem,
    MspListResponse,
    Parameter,
    Session,
    StatusResponse,
    Token,
    VirtualHeaterStatus,
    WaterTemperature,
)
from pyomnilogic.parsers import (
    parse_command_response,
    parse_msp_list,
    parse_response_status,
    parse_telemetry_data,
)
from pyomnilogic.serializers import encode_parameter


__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "AuthenticationHandler",
    "BackyardStatus",
    "BodyOfWater",
    "CSADStatus",
    "ChlorinatorStatus",
    "ColorLogicLightStatus",
    "CommandResponse",
    "EquipmentError",
    "EquipmentRef",
    "FilterStatus",
    "GroupStatus",
    "HeaterStatus",
    "LightState",
    "MspItem",
    "MspListResponse",
    "OmniLogicAPI",
    "OmniLogicAPIError",
    "OmniLogicClient",
    "OmniLogicConnectionError",
    "OmniLogicError",
    "OmniLogicTimeoutError",
    "Parameter",
    "ParseError",
    "Session",
    "StatusResponse",
    "Token",
    "UnsupportedTypeError",
    "ValidationError",
    "VirtualHeaterStatus",
    "WaterTemperature",
    "__version__",
    "encode_parameter",
    "parse_command_response",
    "parse_msp_list",
    "parse_response_status",
    "parse_telemetry_data",
]

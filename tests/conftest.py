"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import base64
import json
import time
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession

from pyomnilogic.api import OmniLogicAPI
from pyomnilogic.auth import AuthenticationHandler
from pyomnilogic.client import OmniLogicClient
from pyomnilogic.const import (
    REQUEST_MSP_LIST,
    REQUEST_SET_EQUIPMENT,
    REQUEST_SET_HEATER_ENABLE,
    REQUEST_SET_HEATER_TEMPERATURE,
    REQUEST_TELEMETRY_DATA,
)
from pyomnilogic.models import Token
from pyomnilogic.serializers import deserialize_response


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

    from pyomnilogic.models import Parameter


USER_ID = 42
SYSTEM_ID = 12345

# Two circuits: pool (body 1) with a running pump and a firing heater,
# spa (body 12) with a stopped pump. One light, on the pool circuit.
TELEMETRY_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<STATUS version="1.11">
<Backyard systemId="0" statusVersion="11" airTemp="74" status="1" state="1" mspVersion="R0408000"
 configUpdatedTime="2024-06-01T10:00:00" datetime="2024-06-01T12:00:00" messageVersion="11"/>
<BodyOfWater systemId="1" flow="1" waterTemp="82"/>
<BodyOfWater systemId="12" flow="0" waterTemp="-1"/>
<Filter systemId="3" valvePosition="1" filterSpeed="60" filterState="1" whyFilterIsOn="14" fpOverride="0"
 lastSpeed="60"/>
<Filter systemId="14" valvePosition="0" filterSpeed="0" filterState="0" whyFilterIsOn="0" fpOverride="0"
 lastSpeed="75"/>
<VirtualHeater systemId="5" Current-Set-Point="84" enable="yes" SolarSetPoint="95" Mode="0"/>
<VirtualHeater systemId="16" Current-Set-Point="102" enable="no" SolarSetPoint="95" Mode="0"/>
<Heater systemId="6" heaterState="1" temp="82" enable="yes" priority="254" maintainFor="24"/>
<Heater systemId="17" heaterState="0" temp="-1" enable="no" priority="254" maintainFor="24"/>
<Chlorinator systemId="7" status="68" instantSaltLevel="3200" avgSaltLevel="3250" chlrAlert="0" chlrError="0"
 scMode="0" operatingState="1" Timed-Percent="50" operatingMode="1" enable="1"/>
<ColorLogic-Light systemId="9" lightState="6" currentShow="2" speed="4" brightness="4" specialEffect="0"/>
<CSAD systemId="10" ph="7.4" orp="650" status="0" mode="1"/>
<Group systemId="20" groupState="0"/>
</STATUS>
"""

MSP_LIST_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<Response xmlns="http://nextgen.hayward.com/api">
<Name>GetMspListResponse</Name>
<Parameters>
<Parameter name="Status" dataType="int">0</Parameter>
<Parameter name="StatusMessage" dataType="string">Successful</Parameter>
<Parameter name="List" dataType="ObjectCollection">
<Item>
<Property name="MspSystemID" dataType="int">12345</Property>
<Property name="BackyardName" dataType="string">Home Pool</Property>
<Property name="Address" dataType="string">1 Main St</Property>
<Property name="MessageVersion" dataType="string">11</Property>
<Property name="NeedsPopup" dataType="bool">false</Property>
</Item>
</Parameter>
</Parameters>
</Response>
"""

EMPTY_MSP_LIST_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<Response xmlns="http://nextgen.hayward.com/api">
<Name>GetMspListResponse</Name>
<Parameters>
<Parameter name="Status" dataType="int">0</Parameter>
<Parameter name="StatusMessage" dataType="string">Successful</Parameter>
<Parameter name="List" dataType="ObjectCollection"></Parameter>
</Parameters>
</Response>
"""

COMMAND_SUCCESS_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<Response xmlns="http://nextgen.hayward.com/api">
<Name>SetUIEquipmentCmdRsp</Name>
<Parameters>
<Parameter name="Status" dataType="int">0</Parameter>
<Parameter name="StatusMessage" dataType="string">Successful</Parameter>
</Parameters>
</Response>
"""

COMMAND_FAILURE_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<Response xmlns="http://nextgen.hayward.com/api">
<Name>SetUIEquipmentCmdRsp</Name>
<Parameters>
<Parameter name="Status" dataType="int">4</Parameter>
<Parameter name="StatusMessage" dataType="string">Equipment not found</Parameter>
</Parameters>
</Response>
"""

ERROR_RESPONSE_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<Response xmlns="http://nextgen.hayward.com/api">
<Name>RequestTelemetryDataRsp</Name>
<Parameters>
<Parameter name="Status" dataType="int">5</Parameter>
<Parameter name="StatusMessage" dataType="string">Token expired</Parameter>
</Parameters>
</Response>
"""


def make_jwt(expires_in: float, **claims: Any) -> str:
    """Build an unsigned JWT expiring ``expires_in`` seconds from now."""

    def encode(part: dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(part).encode()).decode().rstrip("=")

    payload = {"exp": int(time.time() + expires_in), **claims}
    return f"{encode({'alg': 'HS256', 'typ': 'JWT'})}.{encode(payload)}.signature"


def calls_named(send_command: AsyncMock, name: str) -> list[Sequence[Parameter]]:
    """Return the parameter lists of every send_command call for one request name."""
    return [call.args[1] for call in send_command.call_args_list if call.args[0] == name]


def params_by_name(parameters: Sequence[Parameter]) -> dict[str, Parameter]:
    """Index a parameter list by name."""
    return {param.name: param for param in parameters}


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()


@pytest.fixture
def mock_response() -> MagicMock:
    """Create a mock aiohttp ClientResponse.

    Returns:
        Mock ClientResponse for testing.
    """
    response = MagicMock()
    response.status = 200
    response.headers = {}
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def api_responses() -> dict[str, str]:
    """XML bodies served per request name. Tests may replace entries."""
    return {
        REQUEST_TELEMETRY_DATA: TELEMETRY_XML,
        REQUEST_MSP_LIST: MSP_LIST_XML,
        REQUEST_SET_EQUIPMENT: COMMAND_SUCCESS_XML,
        REQUEST_SET_HEATER_TEMPERATURE: COMMAND_SUCCESS_XML,
        REQUEST_SET_HEATER_ENABLE: COMMAND_SUCCESS_XML,
    }


@pytest.fixture
def fake_api(mock_session: ClientSession, api_responses: dict[str, str]) -> OmniLogicAPI:
    """Create an OmniLogicAPI whose send_command answers from api_responses.

    The endpoint helpers still build their real parameter lists, which tests
    can inspect through ``fake_api.send_command.call_args_list``.
    """
    api = OmniLogicAPI(session=mock_session)

    async def route(name: str, parameters: Sequence[Parameter]) -> dict[str, Any]:
        return deserialize_response(api_responses[name])

    api.send_command = AsyncMock(side_effect=route)  # type: ignore[method-assign]
    return api


@pytest.fixture
def mock_auth(mock_session: ClientSession) -> AuthenticationHandler:
    """Create an AuthenticationHandler with network calls mocked."""
    auth = AuthenticationHandler(session=mock_session)
    auth.login = AsyncMock()  # type: ignore[method-assign]
    auth.refresh_token = AsyncMock(  # type: ignore[method-assign]
        return_value=Token(access_token=make_jwt(7 * 86400), refresh_token="new-refresh")
    )
    return auth


@pytest.fixture
def token() -> Token:
    """Token valid for a week."""
    return Token(access_token=make_jwt(7 * 86400), refresh_token="refresh-token")


@pytest.fixture
async def client(
    mock_session: ClientSession,
    fake_api: OmniLogicAPI,
    mock_auth: AuthenticationHandler,
    token: Token,
) -> AsyncGenerator[OmniLogicClient]:
    """Create an unconnected client wired to the fake API."""
    omni = OmniLogicClient(token, USER_ID, session=mock_session, api=fake_api, auth_handler=mock_auth)
    yield omni
    await omni.close()


@pytest.fixture
async def connected_client(client: OmniLogicClient) -> OmniLogicClient:
    """Create a client that has resolved its system ID."""
    await client.connect()
    return client

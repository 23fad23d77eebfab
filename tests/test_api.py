"""Tests for OmniLogicAPI using pytest-aiohttp."""

from __future__ import annotations

import builtins
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest
import xmltodict
from aiohttp import ClientError, web

from pyomnilogic.api import OmniLogicAPI
from pyomnilogic.exceptions import OmniLogicConnectionError, OmniLogicTimeoutError, ParseError
from pyomnilogic.serializers import token_parameter

from .conftest import COMMAND_SUCCESS_XML, MSP_LIST_XML, TELEMETRY_XML


if TYPE_CHECKING:
    from aiohttp import ClientSession
    from aiohttp.test_utils import TestClient
    from aiohttp.web import Application


ENDPOINT = "/MobileInterface/MobileInterface.ashx"


@pytest.fixture
def received() -> list[dict[str, Any]]:
    """Request documents received by the test server."""
    return []


@pytest.fixture
def app(received: list[dict[str, Any]]) -> Application:
    """Create a test aiohttp application serving the MobileInterface endpoint."""
    app = web.Application()

    async def mobile_interface(request: web.Request) -> web.Response:
        """Answer by request name."""
        document = xmltodict.parse(await request.text())
        received.append({"content_type": request.content_type, **document})
        name = document["Request"]["Name"]

        if name == "RequestTelemetryData":
            return web.Response(text=TELEMETRY_XML, content_type="text/xml")
        if name == "GetMspList":
            return web.Response(text=MSP_LIST_XML, content_type="text/xml")
        return web.Response(text=COMMAND_SUCCESS_XML, content_type="text/xml")

    async def error_endpoint(request: web.Request) -> web.Response:
        """Mock endpoint that returns error."""
        return web.Response(status=HTTPStatus.INTERNAL_SERVER_ERROR)

    async def garbage_endpoint(request: web.Request) -> web.Response:
        """Mock endpoint that returns malformed XML."""
        return web.Response(text="<STATUS><oops></STATUS>", content_type="text/xml")

    app.router.add_post(ENDPOINT, mobile_interface)
    app.router.add_post("/error", error_endpoint)
    app.router.add_post("/garbage", garbage_endpoint)
    return app


async def make_api(aiohttp_client: Any, app: Application, path: str = ENDPOINT) -> OmniLogicAPI:
    """Create an OmniLogicAPI pointed at the test server."""
    client: TestClient = await aiohttp_client(app)
    return OmniLogicAPI(session=client.session, base_url=str(client.make_url(path)))


def request_params(document: dict[str, Any]) -> dict[str, tuple[str, str]]:
    """Map a received request's parameters to (dataType, text)."""
    params = document["Request"]["Parameters"]["Parameter"]
    if isinstance(params, dict):
        params = [params]
    return {p["@name"]: (p["@dataType"], p.get("#text", "")) for p in params}


class TestOmniLogicAPIInit:
    """Test OmniLogicAPI initialization and session handling."""

    async def test_init_with_session(self, mock_session: ClientSession) -> None:
        """Test a provided session is not owned."""
        api = OmniLogicAPI(session=mock_session)

        assert api._session is mock_session
        assert api._owns_session is False

    async def test_context_manager_owns_created_session(self) -> None:
        """Test the context manager closes a session it created."""
        api = OmniLogicAPI()

        async with api:
            session = api._session
            assert session is not None

        assert session.closed
        assert api._session is None

    async def test_send_without_session(self) -> None:
        """Test sending without a session raises RuntimeError."""
        api = OmniLogicAPI()

        with pytest.raises(RuntimeError, match="Session not initialized"):
            await api.send_command("RequestTelemetryData", [])

    async def test_send_with_closed_session(self, mock_session: ClientSession) -> None:
        """Test sending with a closed session raises RuntimeError."""
        api = OmniLogicAPI(session=mock_session)
        await mock_session.close()

        with pytest.raises(RuntimeError, match="Session is closed"):
            await api.send_command("RequestTelemetryData", [])


class TestSendCommand:
    """Test the request/response round trip against a test server."""

    async def test_posts_xml(
        self,
        aiohttp_client: Any,
        app: Application,
        received: list[dict[str, Any]],
    ) -> None:
        """Test the request is posted as XML with its name and parameters."""
        api = await make_api(aiohttp_client, app)

        document = await api.send_command("RequestTelemetryData", [token_parameter("jwt")])

        assert "STATUS" in document
        assert received[0]["content_type"] == "text/xml"
        assert received[0]["Request"]["Name"] == "RequestTelemetryData"
        assert request_params(received[0]) == {"Token": ("string", "jwt")}

    async def test_non_2xx_status(self, aiohttp_client: Any, app: Application) -> None:
        """Test a non-2xx status raises OmniLogicConnectionError."""
        api = await make_api(aiohttp_client, app, "/error")

        with pytest.raises(OmniLogicConnectionError, match="status 500"):
            await api.send_command("RequestTelemetryData", [])

    async def test_malformed_body(self, aiohttp_client: Any, app: Application) -> None:
        """Test a malformed body raises ParseError."""
        api = await make_api(aiohttp_client, app, "/garbage")

        with pytest.raises(ParseError):
            await api.send_command("RequestTelemetryData", [])

    async def test_timeout(self, mock_session: ClientSession) -> None:
        """Test a timeout raises OmniLogicTimeoutError."""
        api = OmniLogicAPI(session=mock_session)

        async def timeout_side_effect(*args: object, **kwargs: object) -> None:
            raise builtins.TimeoutError

        mock_response = MagicMock()
        mock_response.__aenter__ = timeout_side_effect
        mock_session.post.return_value = mock_response

        with pytest.raises(OmniLogicTimeoutError, match="timed out"):
            await api.send_command("RequestTelemetryData", [])

    async def test_connection_error(self, mock_session: ClientSession) -> None:
        """Test a client error raises OmniLogicConnectionError."""
        api = OmniLogicAPI(session=mock_session)

        async def connection_error_side_effect(*args: object, **kwargs: object) -> None:
            msg = "Connection refused"
            raise ClientError(msg)

        mock_response = MagicMock()
        mock_response.__aenter__ = connection_error_side_effect
        mock_session.post.return_value = mock_response

        with pytest.raises(OmniLogicConnectionError, match="Failed to connect"):
            await api.send_command("RequestTelemetryData", [])


class TestEndpoints:
    """Test the endpoint helpers build the right requests."""

    async def test_request_telemetry_data(
        self,
        aiohttp_client: Any,
        app: Application,
        received: list[dict[str, Any]],
    ) -> None:
        """Test telemetry request parameters."""
        api = await make_api(aiohttp_client, app)

        await api.request_telemetry_data("jwt", 12345)

        assert request_params(received[0]) == {
            "Token": ("string", "jwt"),
            "MspSystemID": ("int", "12345"),
        }

    async def test_get_msp_list(
        self,
        aiohttp_client: Any,
        app: Application,
        received: list[dict[str, Any]],
    ) -> None:
        """Test controller list request parameters."""
        api = await make_api(aiohttp_client, app)

        document = await api.get_msp_list("jwt", 42)

        assert "Response" in document
        assert received[0]["Request"]["Name"] == "GetMspList"
        assert request_params(received[0])["OwnerID"] == ("int", "42")

    async def test_set_equipment_state(
        self,
        aiohttp_client: Any,
        app: Application,
        received: list[dict[str, Any]],
    ) -> None:
        """Test equipment command carries the routing IDs and the empty timer."""
        api = await make_api(aiohttp_client, app)

        await api.set_equipment_state("jwt", 12345, 1, 3, 60)

        names = [p["@name"] for p in received[0]["Request"]["Parameters"]["Parameter"]]
        assert names == [
            "Token",
            "MspSystemID",
            "PoolID",
            "EquipmentID",
            "IsOn",
            "IsCountDownTimer",
            "StartTimeHours",
            "StartTimeMinutes",
            "EndTimeHours",
            "EndTimeMinutes",
            "DaysActive",
            "Recurring",
        ]
        params = request_params(received[0])
        assert params["PoolID"] == ("int", "1")
        assert params["EquipmentID"] == ("int", "3")
        assert params["IsOn"] == ("int", "60")
        assert params["IsCountDownTimer"] == ("bool", "false")

    async def test_set_heater_temperature(
        self,
        aiohttp_client: Any,
        app: Application,
        received: list[dict[str, Any]],
    ) -> None:
        """Test heater set point request parameters."""
        api = await make_api(aiohttp_client, app)

        await api.set_heater_temperature("jwt", 12345, 1, 5, 85)

        assert received[0]["Request"]["Name"] == "SetUIHeaterCmd"
        params = request_params(received[0])
        assert params["HeaterID"] == ("int", "5")
        assert params["Temp"] == ("int", "85")

    async def test_set_heater_enable(
        self,
        aiohttp_client: Any,
        app: Application,
        received: list[dict[str, Any]],
    ) -> None:
        """Test heater enable is sent as string text."""
        api = await make_api(aiohttp_client, app)

        await api.set_heater_enable("jwt", 12345, 1, 5, True)

        assert received[0]["Request"]["Name"] == "SetHeaterEnable"
        assert request_params(received[0])["Enabled"] == ("string", "true")

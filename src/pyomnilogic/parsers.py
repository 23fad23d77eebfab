"""Parsing utilities for OmniLogic API responses.

This module provides pure functions that convert response documents (as
produced by serializers.deserialize_response) into data models.
"""

from __future__ import annotations

from typing import Any

from pyomnilogic.exceptions import ParseError
from pyomnilogic.models import (
    BackyardStatus,
    BodyOfWater,
    ChlorinatorStatus,
    ColorLogicLightStatus,
    CommandResponse,
    CSADStatus,
    FilterStatus,
    GroupStatus,
    HeaterStatus,
    MspItem,
    MspListResponse,
    StatusResponse,
    VirtualHeaterStatus,
)
from pyomnilogic.serializers import decode_flag, decode_int, decode_text


__all__ = [
    "ensure_list",
    "parse_command_response",
    "parse_msp_list",
    "parse_response_status",
    "parse_telemetry_data",
]

MSP_PROPERTY_COUNT = 5


def ensure_list(value: Any) -> list[Any]:
    """Normalize a child that may be absent, a single element or a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _element(parent: dict[str, Any], key: str, path: str) -> dict[str, Any]:
    """Return a required child element."""
    value = parent.get(key) if isinstance(parent, dict) else None
    if not isinstance(value, dict):
        full_path = f"{path}/{key}" if path else key
        msg = f"Missing required element {full_path}"
        raise ParseError(msg, full_path)
    return value


def _int(element: dict[str, Any], attribute: str, path: str) -> int:
    return decode_int(element.get(f"@{attribute}"), f"{path}/@{attribute}")


def _optional_text(element: dict[str, Any], attribute: str) -> str | None:
    # Empty attributes mean "no reading" and are reported as None
    return element.get(f"@{attribute}") or None


# -------------------------------------------------------------------------
# Telemetry
# -------------------------------------------------------------------------


def _parse_backyard(element: dict[str, Any], path: str) -> BackyardStatus:
    return BackyardStatus(
        system_id=_int(element, "systemId", path),
        status_version=_int(element, "statusVersion", path),
        air_temp=_int(element, "airTemp", path),
        status=_int(element, "status", path),
        state=_int(element, "state", path),
        msp_version=_optional_text(element, "mspVersion"),
        config_updated_time=_optional_text(element, "configUpdatedTime"),
        datetime=_optional_text(element, "datetime"),
        message_version=_optional_text(element, "messageVersion"),
    )


def _parse_body_of_water(element: dict[str, Any], path: str) -> BodyOfWater:
    return BodyOfWater(
        system_id=_int(element, "systemId", path),
        flow=_int(element, "flow", path),
        water_temp=_int(element, "waterTemp", path),
    )


def _parse_filter(element: dict[str, Any], path: str) -> FilterStatus:
    return FilterStatus(
        system_id=_int(element, "systemId", path),
        valve_position=_int(element, "valvePosition", path),
        filter_speed=_int(element, "filterSpeed", path),
        filter_state=_int(element, "filterState", path),
        why_filter_is_on=_int(element, "whyFilterIsOn", path),
        fp_override=_int(element, "fpOverride", path),
        last_speed=_int(element, "lastSpeed", path),
    )


def _parse_virtual_heater(element: dict[str, Any], path: str) -> VirtualHeaterStatus:
    return VirtualHeaterStatus(
        system_id=_int(element, "systemId", path),
        current_set_point=_int(element, "Current-Set-Point", path),
        enable=decode_flag(element.get("@enable"), f"{path}/@enable", "yes", "no"),
        solar_set_point=_int(element, "SolarSetPoint", path),
        mode=_int(element, "Mode", path),
    )


def _parse_heater(element: dict[str, Any], path: str) -> HeaterStatus:
    return HeaterStatus(
        system_id=_int(element, "systemId", path),
        heater_state=_int(element, "heaterState", path),
        temp=_int(element, "temp", path),
        enable=decode_flag(element.get("@enable"), f"{path}/@enable", "yes", "no"),
        priority=_int(element, "priority", path),
        maintain_for=_int(element, "maintainFor", path),
    )


def _parse_chlorinator(element: dict[str, Any], path: str) -> ChlorinatorStatus:
    return ChlorinatorStatus(
        system_id=_int(element, "systemId", path),
        operating_mode=_int(element, "operatingMode", path),
        timed_percent=_int(element, "Timed-Percent", path),
        operating_state=_int(element, "operatingState", path),
        sc_mode=_int(element, "scMode", path),
        chlr_error=_int(element, "chlrError", path),
        chlr_alert=_int(element, "chlrAlert", path),
        avg_salt_level=_int(element, "avgSaltLevel", path),
        instant_salt_level=_int(element, "instantSaltLevel", path),
        status=_int(element, "status", path),
        # Chlorinators report enable as 1/0, unlike heaters
        enable=decode_flag(element.get("@enable"), f"{path}/@enable", "1", "0"),
    )


def _parse_light(element: dict[str, Any], path: str) -> ColorLogicLightStatus:
    return ColorLogicLightStatus(
        system_id=_int(element, "systemId", path),
        light_state=_int(element, "lightState", path),
        current_show=_int(element, "currentShow", path),
        speed=_int(element, "speed", path),
        brightness=_int(element, "brightness", path),
        special_effect=_int(element, "specialEffect", path),
    )


def _parse_csad(element: dict[str, Any], path: str) -> CSADStatus:
    return CSADStatus(
        system_id=_int(element, "systemId", path),
        ph=_optional_text(element, "ph"),
        orp=_optional_text(element, "orp"),
        status=_optional_text(element, "status"),
        mode=_optional_text(element, "mode"),
    )


def _parse_group(element: dict[str, Any], path: str) -> GroupStatus:
    return GroupStatus(
        system_id=_int(element, "systemId", path),
        group_state=_int(element, "groupState", path),
    )


def _parse_children(status: dict[str, Any], tag: str, parser: Any) -> list[Any]:
    """Parse every child of one kind, keeping wire order."""
    parsed = []
    for index, child in enumerate(ensure_list(status.get(tag))):
        path = f"STATUS/{tag}[{index}]"
        if child is not None and not isinstance(child, dict):
            msg = f"Expected {tag} element with attributes, got {type(child).__name__}"
            raise ParseError(msg, path)
        parsed.append(parser(child or {}, path))
    return parsed


def parse_telemetry_data(document: dict[str, Any]) -> StatusResponse:
    """Parse a telemetry document into a status snapshot.

    Each equipment kind may appear on the wire as a single element or as a
    list; both yield a list. Elements keep their wire order because the i-th
    body of water, filter, virtual heater and heater describe one circuit.

    Args:
        document: Parsed response in format
            {"STATUS": {"@version": str, "Backyard": {...}, "Filter": [...], ...}}

    Returns:
        StatusResponse with all equipment decoded.

    Raises:
        ParseError: If a required element or numeric attribute is missing or malformed.
    """
    status = _element(document, "STATUS", "")
    version = decode_text(status.get("@version"), "STATUS/@version")

    return StatusResponse(
        version=version,
        backyard=_parse_backyard(_element(status, "Backyard", "STATUS"), "STATUS/Backyard"),
        bodies_of_water=_parse_children(status, "BodyOfWater", _parse_body_of_water),
        filters=_parse_children(status, "Filter", _parse_filter),
        virtual_heaters=_parse_children(status, "VirtualHeater", _parse_virtual_heater),
        heaters=_parse_children(status, "Heater", _parse_heater),
        chlorinators=_parse_children(status, "Chlorinator", _parse_chlorinator),
        color_logic_lights=_parse_children(status, "ColorLogic-Light", _parse_light),
        csads=_parse_children(status, "CSAD", _parse_csad),
        groups=_parse_children(status, "Group", _parse_group),
    )


# -------------------------------------------------------------------------
# Response envelopes
# -------------------------------------------------------------------------


def _response_parameters(document: dict[str, Any], minimum: int) -> list[Any]:
    """Return the ordered parameter list of a Response document."""
    response = _element(document, "Response", "")
    parameters = ensure_list(_element(response, "Parameters", "Response").get("Parameter"))
    if len(parameters) < minimum:
        msg = f"Expected at least {minimum} parameters, got {len(parameters)}"
        raise ParseError(msg, "Response/Parameters/Parameter")
    return parameters


def _parameter_text(parameter: Any) -> Any:
    if isinstance(parameter, dict):
        return parameter.get("#text")
    # Elements without attributes come back as plain text
    return parameter


def parse_response_status(document: dict[str, Any]) -> tuple[int, str]:
    """Parse the status code and message of a Response document.

    Returns:
        Tuple of (status_code, status_message).

    Raises:
        ParseError: If the status parameters are missing or malformed.
    """
    parameters = _response_parameters(document, 2)
    path = "Response/Parameters/Parameter"
    status_code = decode_int(_parameter_text(parameters[0]), f"{path}[0]")
    status_message = _parameter_text(parameters[1]) or ""
    return status_code, str(status_message)


def parse_msp_list(document: dict[str, Any]) -> MspListResponse:
    """Parse the controller list response.

    The parameter list holds the status code, the status message and then
    the items collection. Each item's properties are decoded by position:
    system ID, backyard name, address, message version, popup flag.

    Args:
        document: Parsed response in format
            {"Response": {"Parameters": {"Parameter": [status, message, {"Item": [...]}]}}}

    Returns:
        MspListResponse with decoded items.

    Raises:
        ParseError: If the response or an item is malformed.
    """
    status_code, status_message = parse_response_status(document)
    parameters = _response_parameters(document, 2)

    items: list[MspItem] = []
    if len(parameters) > 2 and isinstance(parameters[2], dict):
        for index, item in enumerate(ensure_list(parameters[2].get("Item"))):
            path = f"Response/Parameters/Parameter[2]/Item[{index}]"
            properties = ensure_list(item.get("Property") if isinstance(item, dict) else None)
            if len(properties) < MSP_PROPERTY_COUNT:
                msg = f"Expected {MSP_PROPERTY_COUNT} properties, got {len(properties)}"
                raise ParseError(msg, f"{path}/Property")

            texts = [_parameter_text(prop) for prop in properties]
            items.append(
                MspItem(
                    system_id=decode_int(texts[0], f"{path}/Property[0]"),
                    name=decode_text(texts[1], f"{path}/Property[1]"),
                    address=texts[2] or None,
                    message_version=texts[3] or None,
                    needs_popup=decode_flag(texts[4], f"{path}/Property[4]", "true", "false"),
                )
            )

    return MspListResponse(status=status_code, status_message=status_message, items=items)


def parse_command_response(document: dict[str, Any]) -> CommandResponse:
    """Parse the result of a state-changing command.

    Args:
        document: Parsed response in format
            {"Response": {"Name": str, "Parameters": {"Parameter": [status, message]}}}

    Returns:
        CommandResponse; success when the status code is 0.

    Raises:
        ParseError: If the status parameters are missing or malformed.
    """
    status_code, status_message = parse_response_status(document)
    name = document["Response"].get("Name")
    return CommandResponse(name=name, status_code=status_code, status_message=status_message)

"""Serialization and deserialization of OmniLogic request parameters.

This module provides stateless functions for converting between typed Python
scalars and the wire's ``name``/``dataType``/text parameter triples, plus the
XML envelope requests travel in.

Design Philosophy:
    - Stateless functions (no classes, no state)
    - A closed set of scalar kinds: int, float, str, bool
    - Decoding is driven by the field's known domain type; the wire's own
      ``dataType`` attribute is never trusted for business fields
"""

from __future__ import annotations

from collections.abc import Sequence  # noqa: TC003 - Used at runtime for type hints
from typing import Any
from xml.parsers.expat import ExpatError

import xmltodict

from pyomnilogic.exceptions import ParseError, UnsupportedTypeError
from pyomnilogic.models import Parameter


__all__ = [
    "build_request",
    "decode_flag",
    "decode_int",
    "decode_text",
    "deserialize_response",
    "empty_timer_parameters",
    "encode_parameter",
    "serialize_request",
]

TYPE_INT = "int"
TYPE_FLOAT = "float"
TYPE_STRING = "string"
TYPE_BOOL = "bool"


def encode_parameter(name: str, value: int | float | str | bool) -> Parameter:
    """Encode a scalar as a wire parameter.

    The type tag is chosen from the value's kind. Floats with an integral value
    are tagged ``int``, matching how the controller distinguishes numbers.

    Args:
        name: Parameter name.
        value: Scalar value to encode.

    Returns:
        Parameter triple.

    Raises:
        UnsupportedTypeError: If the value is not an int, float, str or bool.

    Example:
        >>> encode_parameter("IsOn", 60)
        Parameter(name='IsOn', data_type='int', text='60')
        >>> encode_parameter("Recurring", False)
        Parameter(name='Recurring', data_type='bool', text='false')
    """
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return Parameter(name, TYPE_BOOL, "true" if value else "false")
    if isinstance(value, int):
        return Parameter(name, TYPE_INT, str(value))
    if isinstance(value, float):
        if value.is_integer():
            return Parameter(name, TYPE_INT, str(int(value)))
        return Parameter(name, TYPE_FLOAT, repr(value))
    if isinstance(value, str):
        return Parameter(name, TYPE_STRING, value)

    msg = f"Unsupported data type: {type(value).__name__}"
    raise UnsupportedTypeError(msg)


# -------------------------------------------------------------------------
# Named parameters
# -------------------------------------------------------------------------


def token_parameter(access_token: str) -> Parameter:
    """Build the token parameter sent with every request."""
    return encode_parameter("Token", access_token)


def system_parameter(system_id: int) -> Parameter:
    """Build the MSP system ID parameter."""
    return encode_parameter("MspSystemID", system_id)


def owner_parameter(user_id: int) -> Parameter:
    """Build the account owner parameter."""
    return encode_parameter("OwnerID", user_id)


def pool_parameter(pool_id: int) -> Parameter:
    """Build the body-of-water parameter."""
    return encode_parameter("PoolID", pool_id)


def equipment_parameter(equipment_id: int) -> Parameter:
    """Build the equipment ID parameter."""
    return encode_parameter("EquipmentID", equipment_id)


def is_on_parameter(value: int) -> Parameter:
    """Build the equipment state parameter (speed percentage or 1/0)."""
    return encode_parameter("IsOn", value)


def heater_parameter(heater_id: int) -> Parameter:
    """Build the heater ID parameter."""
    return encode_parameter("HeaterID", heater_id)


def temperature_parameter(temperature: int) -> Parameter:
    """Build the heater set point parameter."""
    return encode_parameter("Temp", temperature)


def enabled_parameter(enabled: bool) -> Parameter:
    """Build the heater enable parameter.

    SetHeaterEnable expects the literal text "true"/"false" as a string,
    unlike the bool tags used elsewhere.
    """
    return encode_parameter("Enabled", "true" if enabled else "false")


def empty_timer_parameters() -> list[Parameter]:
    """Build the scheduling block required by SetUIEquipmentCmd.

    The command couples equipment toggling with an optional countdown timer.
    This block disables it: not a countdown, zero start/end time, no active
    days, not recurring.
    """
    return [
        encode_parameter("IsCountDownTimer", False),
        encode_parameter("StartTimeHours", 0),
        encode_parameter("StartTimeMinutes", 0),
        encode_parameter("EndTimeHours", 0),
        encode_parameter("EndTimeMinutes", 0),
        encode_parameter("DaysActive", 0),
        encode_parameter("Recurring", False),
    ]


# -------------------------------------------------------------------------
# Request envelope
# -------------------------------------------------------------------------


def build_request(name: str, parameters: Sequence[Parameter]) -> dict[str, Any]:
    """Build the request document for a named command.

    Args:
        name: Request name, e.g. ``RequestTelemetryData``.
        parameters: Ordered request parameters.

    Returns:
        Request document in the same shape deserialize_response() produces.
    """
    return {
        "Request": {
            "Name": name,
            "Parameters": {
                "Parameter": [
                    {"@name": param.name, "@dataType": param.data_type, "#text": param.text}
                    for param in parameters
                ],
            },
        },
    }


def serialize_request(name: str, parameters: Sequence[Parameter]) -> str:
    """Serialize a named command to XML text."""
    return xmltodict.unparse(build_request(name, parameters))


def deserialize_response(text: str) -> dict[str, Any]:
    """Parse an XML response body into a document.

    Attributes are keyed with an ``@`` prefix and element text under ``#text``.
    Repeated elements become lists, single elements stay dicts.

    Raises:
        ParseError: If the body is not well-formed XML.
    """
    try:
        document: dict[str, Any] = xmltodict.parse(text)
    except ExpatError as exc:
        msg = f"Invalid XML response from API: {exc}"
        raise ParseError(msg) from exc
    return document


# -------------------------------------------------------------------------
# Decoding
# -------------------------------------------------------------------------


def decode_text(value: Any, path: str) -> str:
    """Decode a required text field.

    Raises:
        ParseError: If the field is missing.
    """
    if value is None:
        msg = f"Missing required field {path}"
        raise ParseError(msg, path)
    return str(value)


def decode_int(value: Any, path: str) -> int:
    """Decode a required integer field.

    Decimal text is truncated toward zero, so "72.5" decodes to 72.

    Raises:
        ParseError: If the field is missing or not numeric.
    """
    text = decode_text(value, path).strip()
    try:
        return int(text)
    except ValueError:
        pass

    try:
        number = float(text)
        return int(number)
    except (ValueError, OverflowError) as exc:
        msg = f"Invalid integer {text!r} for field {path}"
        raise ParseError(msg, path) from exc


def decode_flag(value: Any, path: str, true_text: str, false_text: str) -> bool:
    """Decode a boolean field that uses sentinel text.

    Each field has its own convention (``yes``/``no``, ``1``/``0``,
    ``true``/``false``); matching is case-insensitive.

    Raises:
        ParseError: If the field is missing or holds neither sentinel.
    """
    text = decode_text(value, path).strip().lower()
    if text == true_text:
        return True
    if text == false_text:
        return False

    msg = f"Invalid flag {text!r} for field {path}, expected {true_text!r} or {false_text!r}"
    raise ParseError(msg, path)

"""Data models for OmniLogic API requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol, TypeAlias


__all__ = [
    "BackyardStatus",
    "BodyOfWater",
    "CSADStatus",
    "ChlorinatorStatus",
    "ColorLogicLightStatus",
    "CommandResponse",
    "EquipmentRef",
    "FilterStatus",
    "GroupStatus",
    "HeaterStatus",
    "LightState",
    "MspItem",
    "MspListResponse",
    "Parameter",
    "Session",
    "StatusResponse",
    "Token",
    "VirtualHeaterStatus",
    "WaterTemperature",
    "equipment_id",
]


@dataclass(frozen=True)
class Token:
    """Credential material issued by the auth service.

    A token is never partially updated; a refresh produces a new instance.

    Attributes:
        access_token: JWT sent with every API request.
        refresh_token: Token exchanged for a new access token.
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class Session:
    """Response from the login endpoint.

    Attributes:
        token: Access and refresh token pair.
        user_id: Account owner ID, used to look up controllers.
        email: Account email address.
        first_name: Account holder first name.
        last_name: Account holder last name.
    """

    token: Token
    user_id: int
    email: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class Parameter:
    """A single request parameter as sent on the wire.

    Attributes:
        name: Parameter name, e.g. ``MspSystemID``.
        data_type: Wire type tag, one of ``int``, ``float``, ``string``, ``bool``.
        text: Textual value.
    """

    name: str
    data_type: str
    text: str


class LightState(IntEnum):
    """ColorLogic light state codes reported by telemetry."""

    OFF = 0
    POWERING_ON = 4
    ON = 6
    POWERING_OFF = 7


@dataclass
class BackyardStatus:
    """Controller-level telemetry."""

    system_id: int
    status_version: int
    air_temp: int
    status: int
    state: int
    msp_version: str | None = None
    config_updated_time: str | None = None
    datetime: str | None = None
    message_version: str | None = None


@dataclass
class BodyOfWater:
    """A pool or spa circuit."""

    system_id: int
    flow: int
    water_temp: int


@dataclass
class FilterStatus:
    """Filter (circulation pump) state.

    Attributes:
        system_id: Equipment ID.
        valve_position: Valve position code.
        filter_speed: Current speed in percent, 0 when stopped.
        filter_state: Filter state code.
        why_filter_is_on: Reason code for the filter running.
        fp_override: Freeze protection override flag.
        last_speed: Last speed the pump ran at, in percent.
    """

    system_id: int
    valve_position: int
    filter_speed: int
    filter_state: int
    why_filter_is_on: int
    fp_override: int
    last_speed: int

    @property
    def is_running(self) -> bool:
        """Check if the pump is running."""
        return self.filter_speed > 0


@dataclass
class VirtualHeaterStatus:
    """Logical heater configuration (set point and mode)."""

    system_id: int
    current_set_point: int
    enable: bool
    solar_set_point: int
    mode: int


@dataclass
class HeaterStatus:
    """Physical heater state."""

    system_id: int
    heater_state: int
    temp: int
    enable: bool
    priority: int
    maintain_for: int


@dataclass
class ChlorinatorStatus:
    """Salt chlorinator state."""

    system_id: int
    operating_mode: int
    timed_percent: int
    operating_state: int
    sc_mode: int
    chlr_error: int
    chlr_alert: int
    avg_salt_level: int
    instant_salt_level: int
    status: int
    enable: bool


@dataclass
class ColorLogicLightStatus:
    """ColorLogic light state.

    Attributes:
        system_id: Equipment ID.
        light_state: State code, see LightState.
        current_show: Active light show number.
        speed: Show speed.
        brightness: Show brightness.
        special_effect: Special effect code.
    """

    system_id: int
    light_state: int
    current_show: int
    speed: int
    brightness: int
    special_effect: int

    @property
    def is_on(self) -> bool:
        """Check if the light is on. Transitional states count as off."""
        return self.light_state == LightState.ON


@dataclass
class CSADStatus:
    """Chemistry controller readings. Values are passed through as reported."""

    system_id: int
    ph: str | None = None
    orp: str | None = None
    status: str | None = None
    mode: str | None = None


@dataclass
class GroupStatus:
    """Equipment group state."""

    system_id: int
    group_state: int


@dataclass
class StatusResponse:
    """Full telemetry snapshot for one controller.

    Equipment lists are kept in wire order. The i-th body of water, filter,
    virtual heater and heater belong to the same circuit.
    """

    version: str
    backyard: BackyardStatus
    bodies_of_water: list[BodyOfWater] = field(default_factory=list)
    filters: list[FilterStatus] = field(default_factory=list)
    virtual_heaters: list[VirtualHeaterStatus] = field(default_factory=list)
    heaters: list[HeaterStatus] = field(default_factory=list)
    chlorinators: list[ChlorinatorStatus] = field(default_factory=list)
    color_logic_lights: list[ColorLogicLightStatus] = field(default_factory=list)
    csads: list[CSADStatus] = field(default_factory=list)
    groups: list[GroupStatus] = field(default_factory=list)


@dataclass
class MspItem:
    """A controller (MSP) linked to the account.

    Attributes:
        system_id: MSP system ID used by every telemetry and command request.
        name: Backyard name.
        address: Backyard address, or None when not reported.
        message_version: Protocol message version, or None when not reported.
        needs_popup: Whether the app should show a popup message.
    """

    system_id: int
    name: str
    address: str | None
    message_version: str | None
    needs_popup: bool


@dataclass
class MspListResponse:
    """Response from the controller list request."""

    status: int
    status_message: str
    items: list[MspItem] = field(default_factory=list)


@dataclass
class CommandResponse:
    """Result of a state-changing command.

    Attributes:
        name: Response name, e.g. ``SetUIEquipmentCmdRsp``.
        status_code: Status code, 0 on success.
        status_message: Textual status.
    """

    name: str | None
    status_code: int
    status_message: str

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.status_code == 0


@dataclass
class WaterTemperature:
    """Water temperature of the active circuit, in Fahrenheit.

    Attributes:
        current: Measured water temperature.
        target: Heater set point, None if the circuit has no virtual heater.
        heater_on: Whether the physical heater is firing.
    """

    current: int
    target: int | None
    heater_on: bool


class HasSystemId(Protocol):
    """Any equipment record carrying a system ID."""

    @property
    def system_id(self) -> int: ...


EquipmentRef: TypeAlias = int | HasSystemId


def equipment_id(ref: EquipmentRef) -> int:
    """Return the system ID for an equipment record or a raw ID.

    Raises:
        TypeError: If ref is a bool.
    """
    if isinstance(ref, bool):
        msg = f"Equipment reference must be an int or an equipment record, got {ref!r}"
        raise TypeError(msg)
    if isinstance(ref, int):
        return ref
    return ref.system_id

"""Custom exceptions for pyomnilogic library."""

from __future__ import annotations

from typing import Any


class OmniLogicError(Exception):
    """Base exception for all OmniLogic errors."""


class AuthenticationError(OmniLogicError):
    """Exception raised for login, token refresh and token state failures."""


class OmniLogicConnectionError(OmniLogicError):
    """Exception raised when the client is not connected or the API is unreachable.

    Raised when no system ID is set (``connect()`` was not called or found no
    controller), after the client was closed, and for transport failures.
    """


class OmniLogicTimeoutError(OmniLogicError):
    """Exception raised when API requests timeout."""


class OmniLogicAPIError(OmniLogicError):
    """Exception raised when the API answers with a non-zero status.

    Attributes:
        status_code: Status code reported by the API.
        status_message: Status message reported by the API.
    """

    def __init__(self, status_code: int, status_message: str = "") -> None:
        """Initialize OmniLogicAPIError.

        Args:
            status_code: Status code reported by the API.
            status_message: Status message reported by the API.
        """
        super().__init__(f"API request failed: {status_message} ({status_code})")
        self.status_code = status_code
        self.status_message = status_message


class EquipmentError(OmniLogicError):
    """Exception raised when equipment cannot be found or resolved to a body of water.

    Attributes:
        equipment_id: Optional system ID of the equipment.
    """

    def __init__(self, message: str = "", equipment_id: int | None = None) -> None:
        """Initialize EquipmentError.

        Args:
            message: Error message. Defaults to a message naming the equipment.
            equipment_id: Optional system ID of the equipment.
        """
        if not message and equipment_id is not None:
            message = f"Could not find body of water for equipment {equipment_id}"
        super().__init__(message or "Could not find equipment")
        self.equipment_id = equipment_id


class ValidationError(OmniLogicError):
    """Exception raised for out-of-range parameter values.

    Attributes:
        parameter_name: Optional name of the invalid parameter.
        value: Optional value that was invalid.
    """

    def __init__(
        self,
        message: str = "",
        parameter_name: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Error message.
            parameter_name: Optional name of the invalid parameter.
            value: Optional value that was invalid.
        """
        super().__init__(message)
        self.parameter_name = parameter_name
        self.value = value


class ParseError(OmniLogicError):
    """Exception raised for malformed API responses.

    Attributes:
        path: Path of the offending field, e.g. ``STATUS/Filter[0]/@filterSpeed``.
    """

    def __init__(self, message: str = "", path: str | None = None) -> None:
        """Initialize ParseError.

        Args:
            message: Error message.
            path: Optional path of the offending field.
        """
        super().__init__(message)
        self.path = path


class UnsupportedTypeError(OmniLogicError, TypeError):
    """Exception raised when a value cannot be encoded as a request parameter.

    This signals a programming error in the caller, not a runtime condition.
    """

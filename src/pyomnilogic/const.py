"""Constants for pyomnilogic library."""

from __future__ import annotations


# API Configuration
DEFAULT_API_URL = "https://www.haywardomnilogic.com/MobileInterface/MobileInterface.ashx"
DEFAULT_AUTH_URL = "https://services-gamma.haywardcloud.net/auth-service/v2"
DEFAULT_TIMEOUT = 30  # seconds
HAYWARD_APP_ID = "6jf6n7jt9fqqe9qkbutaqajl2i"
HAYWARD_APP_ID_HEADER = "X-Hayward-App-Id"

# Telemetry cache
DEFAULT_TELEMETRY_CACHE_SECONDS = 30

# Token refresh
DEFAULT_TOKEN_CHECK_INTERVAL = 3600  # 1 hour between expiry checks
DEFAULT_TOKEN_REFRESH_THRESHOLD = 86400  # refresh when under 24 hours remain

# Request names
REQUEST_TELEMETRY_DATA = "RequestTelemetryData"
REQUEST_MSP_LIST = "GetMspList"
REQUEST_SET_EQUIPMENT = "SetUIEquipmentCmd"
REQUEST_SET_HEATER_TEMPERATURE = "SetUIHeaterCmd"
REQUEST_SET_HEATER_ENABLE = "SetHeaterEnable"

# Command status
STATUS_SUCCESS = 0

# Parameter Validation
PUMP_SPEED_MIN = 0
PUMP_SPEED_MAX = 100
HEATER_TEMPERATURE_MIN = 50  # Fahrenheit
HEATER_TEMPERATURE_MAX = 105  # Fahrenheit

# Heater state reported by telemetry when the physical heater is firing
HEATER_STATE_ON = 1

# JWT Token Constants
JWT_PARTS_COUNT = 3
BASE64_PADDING_MODULO = 4

"""
adcontext - Constants and Enums

Defines all enums, lookup tables, and default values shared by the
context aggregation components.
"""

from enum import Enum, IntEnum
from typing import Dict, Optional


# =============================================================================
# ENUMS
# =============================================================================

class ConnectionType(IntEnum):
    """
    The type of network the device is connected to.

    Values are part of the device payload contract (connection_type).
    """
    CONNECTION_UNKNOWN = 0
    ETHERNET = 1
    WIFI = 2
    CELL_UNKNOWN = 3
    CELL_2G = 4
    CELL_3G = 5
    CELL_4G = 6
    CELL_5G = 7

    @property
    def is_cellular(self) -> bool:
        return self in CELLULAR_TYPES


CELLULAR_TYPES = frozenset({
    ConnectionType.CELL_UNKNOWN,
    ConnectionType.CELL_2G,
    ConnectionType.CELL_3G,
    ConnectionType.CELL_4G,
    ConnectionType.CELL_5G,
})


class ScreenOrientation(IntEnum):
    """Screen orientation as reported in the device payload."""
    UNKNOWN = 0
    PORTRAIT = 1
    LANDSCAPE = 2


class AppTrackingStatus(IntEnum):
    """App tracking authorization status."""
    NOT_DETERMINED = 0
    RESTRICTED = 1
    DENIED = 2
    AUTHORIZED = 3


class AuthorizationState(Enum):
    """Location permission state as seen by the geo resolver."""
    NOT_DETERMINED = "not_determined"
    GRANTED = "granted"
    DENIED = "denied"


class PathStatus(Enum):
    """Network path status from the path monitor."""
    SATISFIED = "satisfied"
    UNSATISFIED = "unsatisfied"
    REQUIRES_CONNECTION = "requires_connection"


class InterfaceKind(Enum):
    """Interface used by the current network path."""
    WIFI = "wifi"
    CELLULAR = "cellular"
    WIRED_ETHERNET = "wired_ethernet"
    LOOPBACK = "loopback"
    OTHER = "other"


class RendezvousState(Enum):
    """Join state of a delivery rendezvous."""
    WAITING = "waiting"
    CONSUMER_ATTACHED = "consumer_attached"
    DATA_ASSEMBLED = "data_assembled"
    FIRED = "fired"


# =============================================================================
# LOCATION
# =============================================================================

# Seconds to wait for a usable coordinate before falling back
LOCATION_TIMEOUT = 10.0

# Horizontal accuracy bounds (meters) for a coordinate to count as valid
MIN_VALID_ACCURACY = 0.0
MAX_VALID_ACCURACY = 1000.0

COUNTRY_CODES: Dict[str, str] = {
    "US": "USA",
    "CA": "CAN",
    "MX": "MEX",
    "GB": "GBR",
    "FR": "FRA",
    "DE": "DEU",
    "JP": "JPN",
    "CN": "CHN",
    "IN": "IND",
    "BR": "BRA",
    "AU": "AUS",
    "RU": "RUS",
    "IT": "ITA",
    "ES": "ESP",
    "KR": "KOR",
    "NL": "NLD",
    "SE": "SWE",
    "NO": "NOR",
    "DK": "DNK",
    "FI": "FIN",
}


def to_alpha3(iso_code: Optional[str]) -> Optional[str]:
    """Map a two-letter country code to three letters; unknown codes pass through."""
    if iso_code is None:
        return None
    return COUNTRY_CODES.get(iso_code, iso_code)


# =============================================================================
# NETWORK
# =============================================================================

RADIO_TECHNOLOGY_PREFIX = "CTRadioAccessTechnology"

RADIO_TECHNOLOGY_GENERATIONS: Dict[str, ConnectionType] = {
    # 2G
    "GPRS": ConnectionType.CELL_2G,
    "Edge": ConnectionType.CELL_2G,
    # 3G
    "WCDMA": ConnectionType.CELL_3G,
    "HSDPA": ConnectionType.CELL_3G,
    "HSUPA": ConnectionType.CELL_3G,
    "CDMA1x": ConnectionType.CELL_3G,
    "CDMAEVDORev0": ConnectionType.CELL_3G,
    "CDMAEVDORevA": ConnectionType.CELL_3G,
    "CDMAEVDORevB": ConnectionType.CELL_3G,
    # 4G
    "LTE": ConnectionType.CELL_4G,
}

# Only bucketed when the platform exposes NR identifiers
NR_TECHNOLOGIES = frozenset({"NRNSA", "NR"})


# =============================================================================
# DELIVERY
# =============================================================================

# Consumer-side globals, in delivery order
MOBILE_SLOT = "bwsMobile"
GEO_SLOT = "bwsGeo"
DEVICE_SLOT = "bwsDevice"
METADATA_SLOT = "bwsdk"

COMPLETION_HOOK = "onSdkDataReady"

# Seconds before the single completion-hook retry
COMPLETION_RETRY_DELAY = 1.0

STEP_NAMES = (
    "set_mobile",
    "set_geo",
    "set_device",
    "set_metadata",
    "verify",
    "invoke_completion",
)


# =============================================================================
# DEVICE DEFAULTS
# =============================================================================

# Used when the host cannot report a screen
DEFAULT_SCREEN_WIDTH = 375
DEFAULT_SCREEN_HEIGHT = 667
DEFAULT_SCREEN_SCALE = 1.0

UNKNOWN_CARRIER = "--"

"""
adcontext - Core Data Models

Defines the snapshots delivered to the consumer and the small value
types passed between components:
- MobileSnapshot: App and advertising identity
- GeoSnapshot: Approximate location, always carrying the UTC offset
- DeviceSnapshot: Device, screen and network information
- SdkMetadata: Version information
- ContextSnapshots: The three data snapshots assembled together
- StepOutcome / DeliveryReport: Results of one delivery pass
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional
import json
import uuid

from .constants import (
    AppTrackingStatus,
    ConnectionType,
    ScreenOrientation,
    MAX_VALID_ACCURACY,
    MIN_VALID_ACCURACY,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def generate_id(prefix: str = "") -> str:
    """Generate a unique ID."""
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_offset_minutes() -> int:
    """Current local UTC offset in whole minutes."""
    offset = datetime.now().astimezone().utcoffset()
    if offset is None:
        return 0
    return int(offset.total_seconds()) // 60


def compact_json(data: Dict[str, Any]) -> str:
    """Encode a payload dict without insignificant whitespace."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# LOCATION VALUES
# =============================================================================

@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in degrees."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ReverseGeocodeResult:
    """What a reverse geocoder knows about a coordinate."""
    country_code: Optional[str] = None
    locality: Optional[str] = None
    postal_code: Optional[str] = None


def accuracy_is_valid(accuracy: Optional[float]) -> bool:
    """A horizontal accuracy is usable when strictly inside the bounds."""
    if accuracy is None:
        return False
    return MIN_VALID_ACCURACY < accuracy < MAX_VALID_ACCURACY


# =============================================================================
# SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class MobileSnapshot:
    """
    Information for requests coming from a mobile app.

    idfa is only present when the user authorized tracking.
    """
    is_app: bool = True
    app_id: Optional[str] = None
    idfa: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "is_app": self.is_app,
            "app_id": self.app_id,
            "idfa": self.idfa,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MobileSnapshot":
        return cls(
            is_app=data.get("is_app", True),
            app_id=data.get("app_id"),
            idfa=data.get("idfa"),
        )

    def to_json(self) -> str:
        return compact_json(self.to_dict())


@dataclass(frozen=True)
class GeoSnapshot:
    """
    The device's approximate geographic location.

    Only utcoffset is guaranteed. Coordinate fields are filled when a valid
    fix exists; country/city/zip when reverse geocoding succeeded.
    """
    utcoffset: int
    lat: Optional[float] = None
    lon: Optional[float] = None
    country: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    accuracy: Optional[float] = None

    @classmethod
    def offset_only(cls) -> "GeoSnapshot":
        return cls(utcoffset=utc_offset_minutes())

    def with_coordinate(self, coordinate: Coordinate, accuracy: float) -> "GeoSnapshot":
        return replace(
            self,
            lat=coordinate.latitude,
            lon=coordinate.longitude,
            accuracy=accuracy,
        )

    def with_place(self, country: Optional[str], city: str, zip_code: str) -> "GeoSnapshot":
        return replace(self, country=country, city=city, zip=zip_code)

    @property
    def has_coordinate(self) -> bool:
        return self.lat is not None and self.lon is not None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "lat": self.lat,
            "lon": self.lon,
            "country": self.country,
            "city": self.city,
            "zip": self.zip,
            "accuracy": self.accuracy,
            "utcoffset": self.utcoffset,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoSnapshot":
        return cls(
            utcoffset=int(data["utcoffset"]),
            lat=data.get("lat"),
            lon=data.get("lon"),
            country=data.get("country"),
            city=data.get("city"),
            zip=data.get("zip"),
            accuracy=data.get("accuracy"),
        )

    def to_json(self) -> str:
        return compact_json(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "GeoSnapshot":
        return cls.from_dict(json.loads(text))


@dataclass(frozen=True)
class OSVersion:
    """OS version components. For 17.4.1, major=17, minor=4, micro=1."""
    major: Optional[int] = None
    minor: Optional[int] = None
    micro: Optional[int] = None

    @classmethod
    def parse(cls, version: str) -> "OSVersion":
        """Split on dots, keeping only the purely numeric components."""
        parts = [int(p) for p in version.split(".") if p.isdigit()]
        return cls(
            major=parts[0] if len(parts) > 0 else None,
            minor=parts[1] if len(parts) > 1 else None,
            micro=parts[2] if len(parts) > 2 else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "major": self.major,
            "minor": self.minor,
            "micro": self.micro,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OSVersion":
        return cls(
            major=data.get("major"),
            minor=data.get("minor"),
            micro=data.get("micro"),
        )


@dataclass(frozen=True)
class ScreenGeometry:
    """Screen size in points plus the points-to-pixels scale."""
    width: float
    height: float
    scale: float = 1.0
    orientation: ScreenOrientation = ScreenOrientation.UNKNOWN

    @property
    def pixel_width(self) -> int:
        return int(self.width * self.scale)

    @property
    def pixel_height(self) -> int:
        return int(self.height * self.scale)

    @property
    def ratio_millis(self) -> Optional[int]:
        if not self.width:
            return None
        return int((self.height / self.width) * 1000)


@dataclass(frozen=True)
class DeviceSnapshot:
    """
    Information about the device.

    connection carries the payload value. 5G connections are reported as
    CELL_4G unless the SDK is configured with report_5g_as_4g=False.
    """
    platform: str
    model: str
    hardware_version: str
    limit_ad_tracking: bool
    brand: Optional[str] = None
    os_version: Optional[OSVersion] = None
    carrier: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    screen_ratio: Optional[int] = None
    screen_orientation: ScreenOrientation = ScreenOrientation.UNKNOWN
    app_tracking_status: AppTrackingStatus = AppTrackingStatus.NOT_DETERMINED
    connection: ConnectionType = ConnectionType.CONNECTION_UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "platform": self.platform,
            "brand": self.brand,
            "model": self.model,
            "os_version": self.os_version.to_dict() if self.os_version else None,
            "carrier": self.carrier,
            "screen_width": self.screen_width,
            "screen_height": self.screen_height,
            "screen_pixel_ratio_millis": self.screen_ratio,
            "screen_orientation": int(self.screen_orientation),
            "hardware_version": self.hardware_version,
            "limit_ad_tracking": self.limit_ad_tracking,
            "app_tracking_authorization_status": int(self.app_tracking_status),
            "connection_type": int(self.connection),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceSnapshot":
        os_version = data.get("os_version")
        return cls(
            platform=data["platform"],
            model=data["model"],
            hardware_version=data.get("hardware_version", data["model"]),
            limit_ad_tracking=data.get("limit_ad_tracking", True),
            brand=data.get("brand"),
            os_version=OSVersion.from_dict(os_version) if os_version else None,
            carrier=data.get("carrier"),
            screen_width=data.get("screen_width"),
            screen_height=data.get("screen_height"),
            screen_ratio=data.get("screen_pixel_ratio_millis"),
            screen_orientation=ScreenOrientation(data.get("screen_orientation", 0)),
            app_tracking_status=AppTrackingStatus(
                data.get("app_tracking_authorization_status", 0)
            ),
            connection=ConnectionType(data.get("connection_type", 0)),
        )

    def to_json(self) -> str:
        return compact_json(self.to_dict())


@dataclass(frozen=True)
class SdkMetadata:
    """Version information handed to the consumer."""
    sdk_version: str

    def to_dict(self) -> Dict[str, Any]:
        return {"sdk_version": self.sdk_version}

    def to_json(self) -> str:
        return compact_json(self.to_dict())


@dataclass(frozen=True)
class ContextSnapshots:
    """The three data snapshots produced by one assembly pass."""
    mobile: Optional[MobileSnapshot] = None
    geo: Optional[GeoSnapshot] = None
    device: Optional[DeviceSnapshot] = None


# =============================================================================
# DELIVERY RESULTS
# =============================================================================

@dataclass
class StepOutcome:
    """Result of evaluating one delivery step."""
    index: int
    name: str
    success: bool
    result: Any = None
    error: Optional[str] = None


@dataclass
class DeliveryReport:
    """Per-step results of a delivery pass, in execution order."""
    steps: List[StepOutcome] = field(default_factory=list)
    completion_invoked: bool = False
    completion_retried: bool = False

    @property
    def evaluations(self) -> int:
        return len(self.steps)

    @property
    def failures(self) -> List[StepOutcome]:
        return [s for s in self.steps if not s.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": [
                {
                    "index": s.index,
                    "name": s.name,
                    "success": s.success,
                    "error": s.error,
                }
                for s in self.steps
            ],
            "completion_invoked": self.completion_invoked,
            "completion_retried": self.completion_retried,
        }

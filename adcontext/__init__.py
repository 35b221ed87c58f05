"""
adcontext

Aggregates runtime context (approximate location, network class, device
and app identity) and delivers it once to a consumer script context as
soon as both the data and the consumer are ready.

Key Components:
- GeoResolver: Deadline-bounded, permission-gated location lookups
- ConnectionClassifier: Current network classification
- SnapshotAssembler: Builds the mobile, device and geo snapshots
- DeliveryRendezvous: Fires once data and consumer are both ready
- OrderedDeliveryPipeline: Best-effort, strictly sequential delivery
- ContextSDK: Facade wiring it all together

Usage:
    from adcontext import ContextConfig, get_context_sdk

    sdk = get_context_sdk()
    sdk.initialize(ContextConfig(logging_enabled=True))
    sdk.register_consumer(consumer)
"""

import logging

from .models import (
    Coordinate,
    ReverseGeocodeResult,
    MobileSnapshot,
    GeoSnapshot,
    OSVersion,
    ScreenGeometry,
    DeviceSnapshot,
    SdkMetadata,
    ContextSnapshots,
    StepOutcome,
    DeliveryReport,
    generate_id,
    utc_offset_minutes,
)

from .constants import (
    ConnectionType,
    ScreenOrientation,
    AppTrackingStatus,
    AuthorizationState,
    PathStatus,
    InterfaceKind,
    RendezvousState,
    COUNTRY_CODES,
    to_alpha3,
)

from .errors import (
    ErrorCode,
    ContextSDKError,
    NotInitializedError,
    InjectionFailedError,
    ConsumerNotReadyError,
    InvalidConfigurationError,
    UnsupportedConsumerError,
)

from .config import ContextConfig
from .logs import configure_logging
from .readers import DeviceReaders, HostReaders
from .sensors import (
    GeoResolver,
    ConnectionClassifier,
    NominatimReverseGeocoder,
)
from .assembler import SnapshotAssembler
from .delivery import DeliveryRendezvous, OrderedDeliveryPipeline, ConsumerChannel
from .sdk import SDK_VERSION, ContextSDK, ConsumerRegistration, get_context_sdk

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = SDK_VERSION

__all__ = [
    # Models
    "Coordinate",
    "ReverseGeocodeResult",
    "MobileSnapshot",
    "GeoSnapshot",
    "OSVersion",
    "ScreenGeometry",
    "DeviceSnapshot",
    "SdkMetadata",
    "ContextSnapshots",
    "StepOutcome",
    "DeliveryReport",
    "generate_id",
    "utc_offset_minutes",

    # Enums and tables
    "ConnectionType",
    "ScreenOrientation",
    "AppTrackingStatus",
    "AuthorizationState",
    "PathStatus",
    "InterfaceKind",
    "RendezvousState",
    "COUNTRY_CODES",
    "to_alpha3",

    # Errors
    "ErrorCode",
    "ContextSDKError",
    "NotInitializedError",
    "InjectionFailedError",
    "ConsumerNotReadyError",
    "InvalidConfigurationError",
    "UnsupportedConsumerError",

    # Configuration
    "ContextConfig",
    "configure_logging",

    # Components
    "DeviceReaders",
    "HostReaders",
    "GeoResolver",
    "ConnectionClassifier",
    "NominatimReverseGeocoder",
    "SnapshotAssembler",
    "DeliveryRendezvous",
    "OrderedDeliveryPipeline",
    "ConsumerChannel",

    # SDK
    "SDK_VERSION",
    "ContextSDK",
    "ConsumerRegistration",
    "get_context_sdk",
]

"""
adcontext - Sensors

Components that track asynchronously-changing runtime context:
- GeoResolver: Permission-gated location with queued, deadline-bounded lookups
- ConnectionClassifier: Current network classification
- NominatimReverseGeocoder: HTTP reverse geocoding capability
"""

from .base import (
    LocationProvider,
    ReverseGeocoder,
    PathMonitor,
    RadioTechnologySource,
    NullLocationProvider,
    NullReverseGeocoder,
)
from .location import GeoResolver, LocationCallbacks
from .network import (
    ConnectionClassifier,
    NetworkCallbacks,
    classify_radio_technology,
    payload_connection_type,
)
from .geocoding import NominatimReverseGeocoder, parse_reverse_response

__all__ = [
    "LocationProvider",
    "ReverseGeocoder",
    "PathMonitor",
    "RadioTechnologySource",
    "NullLocationProvider",
    "NullReverseGeocoder",
    "GeoResolver",
    "LocationCallbacks",
    "ConnectionClassifier",
    "NetworkCallbacks",
    "classify_radio_technology",
    "payload_connection_type",
    "NominatimReverseGeocoder",
    "parse_reverse_response",
]

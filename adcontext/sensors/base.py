"""
adcontext - Sensor Capabilities

Interfaces the sensors consume from the host platform. Implementations
wrap whatever the platform offers (location services, a geocoding API,
network path monitoring) and forward its callbacks to the sensors.
"""

from typing import Callable, Optional, Protocol

from ..constants import InterfaceKind, PathStatus
from ..models import Coordinate, ReverseGeocodeResult


class LocationProvider(Protocol):
    """
    Location hardware and permission capability.

    Results come back through GeoResolver.on_coordinate_update,
    on_authorization_changed and on_location_error.
    """

    def request_permission(self) -> None: ...

    def start_updates(self) -> None: ...

    def stop_updates(self) -> None: ...


class ReverseGeocoder(Protocol):
    """Resolves a coordinate to a place. Returns None when nothing is found."""

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[ReverseGeocodeResult]: ...


PathHandler = Callable[[PathStatus, InterfaceKind], None]


class PathMonitor(Protocol):
    """Network path change feed."""

    def start(self, handler: PathHandler) -> None: ...

    def cancel(self) -> None: ...


# Returns the current radio access technology identifier, if any
RadioTechnologySource = Callable[[], Optional[str]]


class NullLocationProvider:
    """Location capability for hosts without location services."""

    def request_permission(self) -> None:
        pass

    def start_updates(self) -> None:
        pass

    def stop_updates(self) -> None:
        pass


class NullReverseGeocoder:
    """Geocoder that never finds anything."""

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[ReverseGeocodeResult]:
        return None


def no_radio_technology() -> Optional[str]:
    return None

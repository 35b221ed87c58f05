"""
adcontext - Geo Resolver

Turns the location capability's asynchronous, permission-gated updates
into single-shot GeoSnapshot lookups.

A lookup made while no usable coordinate exists is queued with its own
deadline. Whichever of {valid coordinate update, permission denial,
deadline} reaches a queued request first resolves it; the other paths
find the request gone and do nothing.

All methods must be called on the event loop that owns the resolver.
Platform adapters receiving callbacks on other threads should forward
them through threadsafe_callbacks().
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Set

from ..constants import AuthorizationState, LOCATION_TIMEOUT, to_alpha3
from ..models import Coordinate, GeoSnapshot, accuracy_is_valid, generate_id
from .base import LocationProvider, NullLocationProvider, NullReverseGeocoder, ReverseGeocoder

logger = logging.getLogger(__name__)

GeoCallback = Callable[[GeoSnapshot], None]


@dataclass
class _PendingGeoRequest:
    """A lookup waiting for a coordinate, denial or its deadline."""
    id: str
    callback: GeoCallback
    timer: Optional[asyncio.TimerHandle] = None


class LocationCallbacks(NamedTuple):
    """Thread-safe forwarders for a platform location adapter."""
    on_coordinate_update: Callable[[Coordinate, float], None]
    on_authorization_changed: Callable[[AuthorizationState], None]
    on_location_error: Callable[[BaseException], None]


class GeoResolver:
    """
    Resolves geo lookups against the current coordinate.

    Usage:
        resolver = GeoResolver(provider, geocoder)
        resolver.start()
        geo = await resolver.request_geo()
    """

    def __init__(
        self,
        provider: LocationProvider = None,
        geocoder: ReverseGeocoder = None,
        location_timeout: float = LOCATION_TIMEOUT,
        location_enabled: bool = True,
    ):
        """
        Initialize the resolver.

        Args:
            provider: Location hardware/permission capability
            geocoder: Reverse geocoding capability
            location_timeout: Seconds a queued lookup waits before falling back
            location_enabled: When False every lookup returns the UTC offset only
        """
        self._provider = provider or NullLocationProvider()
        self._geocoder = geocoder or NullReverseGeocoder()
        self._timeout = location_timeout
        self._location_enabled = location_enabled

        # Coordinate state
        self._coordinate: Optional[Coordinate] = None
        self._accuracy: Optional[float] = None
        self._authorization = AuthorizationState.NOT_DETERMINED

        self._pending: List[_PendingGeoRequest] = []
        self._tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def coordinate(self) -> Optional[Coordinate]:
        return self._coordinate

    @property
    def horizontal_accuracy(self) -> Optional[float]:
        return self._accuracy

    @property
    def coordinates_valid(self) -> bool:
        if self._coordinate is None:
            return False
        return accuracy_is_valid(self._accuracy)

    @property
    def authorization(self) -> AuthorizationState:
        return self._authorization

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def geocoder(self) -> ReverseGeocoder:
        return self._geocoder

    @property
    def location_timeout(self) -> float:
        return self._timeout

    @property
    def location_enabled(self) -> bool:
        return self._location_enabled

    @location_enabled.setter
    def location_enabled(self, enabled: bool) -> None:
        self._location_enabled = enabled
        if not enabled:
            self._provider.stop_updates()
        elif self._authorization == AuthorizationState.GRANTED:
            # An unchanged grant is not reported again
            self._provider.start_updates()
        else:
            self._provider.request_permission()

    def start(self) -> None:
        """Ask for permission up front so a fix may be ready by the first lookup."""
        if self._location_enabled:
            self._provider.request_permission()

    def stop(self) -> None:
        """Turn off location updates. Queued lookups still end at their deadlines."""
        self._provider.stop_updates()

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def request_geo(self) -> GeoSnapshot:
        """Resolve one GeoSnapshot, waiting at most location_timeout for a fix."""
        future = asyncio.get_running_loop().create_future()

        def resolve(geo: GeoSnapshot) -> None:
            if not future.done():
                future.set_result(geo)

        self.get_geo_info(resolve)
        return await future

    def get_geo_info(self, callback: GeoCallback) -> None:
        """Callback form of request_geo(). The callback fires exactly once."""
        geo = GeoSnapshot.offset_only()

        if not self._location_enabled:
            self._invoke(callback, geo)
            return

        if self.coordinates_valid:
            self._spawn_enrichment(geo, self._coordinate, self._accuracy, callback)
            return

        request = _PendingGeoRequest(id=generate_id("geo"), callback=callback)
        request.timer = asyncio.get_running_loop().call_later(
            self._timeout, self._handle_timeout, request.id
        )
        self._pending.append(request)
        logger.debug(f"Queued geo request {request.id} ({len(self._pending)} pending)")

        self._provider.request_permission()

    # =========================================================================
    # CAPABILITY CALLBACKS
    # =========================================================================

    def on_coordinate_update(self, coordinate: Coordinate, accuracy: float) -> None:
        """Record a new fix and, if usable, fulfil every queued lookup with it."""
        self._coordinate = coordinate
        self._accuracy = accuracy

        if not self.coordinates_valid or not self._pending:
            return

        items = self._drain()
        logger.debug(f"Coordinate update fulfils {len(items)} pending geo requests")
        for item in items:
            self._spawn_enrichment(GeoSnapshot.offset_only(), coordinate, accuracy, item.callback)

    def on_authorization_changed(self, state: AuthorizationState) -> None:
        self._authorization = state

        if state == AuthorizationState.GRANTED:
            if self._location_enabled:
                self._provider.start_updates()
        elif state == AuthorizationState.DENIED:
            self._provider.stop_updates()
            self._coordinate = None
            self._accuracy = None

            items = self._drain()
            if items:
                logger.info(f"Location denied, completing {len(items)} geo requests without location")
            for item in items:
                self._invoke(item.callback, GeoSnapshot.offset_only())

    def on_location_error(self, error: BaseException) -> None:
        # The deadline covers requests that were waiting on this update
        logger.debug(f"Location update failed: {error}")

    def threadsafe_callbacks(self, loop: asyncio.AbstractEventLoop) -> LocationCallbacks:
        """Callbacks that hop onto loop before touching resolver state."""
        return LocationCallbacks(
            on_coordinate_update=lambda c, a: loop.call_soon_threadsafe(self.on_coordinate_update, c, a),
            on_authorization_changed=lambda s: loop.call_soon_threadsafe(self.on_authorization_changed, s),
            on_location_error=lambda e: loop.call_soon_threadsafe(self.on_location_error, e),
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _drain(self) -> List[_PendingGeoRequest]:
        items, self._pending = self._pending, []
        for item in items:
            if item.timer is not None:
                item.timer.cancel()
        return items

    def _handle_timeout(self, request_id: str) -> None:
        index = next(
            (i for i, item in enumerate(self._pending) if item.id == request_id),
            None,
        )
        if index is None:
            return

        item = self._pending.pop(index)
        logger.debug(f"Geo request {request_id} timed out after {self._timeout}s")

        geo = GeoSnapshot.offset_only()
        if self.coordinates_valid:
            self._spawn_enrichment(geo, self._coordinate, self._accuracy, item.callback)
        else:
            self._invoke(item.callback, geo)

    def _spawn_enrichment(
        self,
        geo: GeoSnapshot,
        coordinate: Coordinate,
        accuracy: float,
        callback: GeoCallback,
    ) -> None:
        task = asyncio.get_running_loop().create_task(
            self._deliver_enriched(geo, coordinate, accuracy, callback)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver_enriched(
        self,
        geo: GeoSnapshot,
        coordinate: Coordinate,
        accuracy: float,
        callback: GeoCallback,
    ) -> None:
        self._invoke(callback, await self.enrich(geo, coordinate, accuracy))

    async def enrich(self, geo: GeoSnapshot, coordinate: Coordinate, accuracy: float) -> GeoSnapshot:
        """
        Add coordinate fields, then place fields from reverse geocoding.

        A geocoder error or empty result leaves the coordinate-only snapshot.
        """
        updated = geo.with_coordinate(coordinate, accuracy)

        try:
            place = await self._geocoder.reverse_geocode(coordinate)
        except Exception as e:
            logger.debug(f"Reverse geocoding failed: {e}")
            return updated

        if place is None:
            return updated

        return updated.with_place(
            country=to_alpha3(place.country_code),
            city=place.locality or "",
            zip_code=place.postal_code or "",
        )

    def _invoke(self, callback: GeoCallback, geo: GeoSnapshot) -> None:
        try:
            callback(geo)
        except Exception as e:
            logger.error(f"Geo callback raised: {e}")

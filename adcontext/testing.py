"""
Test doubles for the platform capabilities.

Used by the test suite and handy for hosts that want to exercise the
delivery flow without a real location stack or script engine.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Set

from .constants import AppTrackingStatus, InterfaceKind, PathStatus
from .delivery.scripts import SLOTS, parse_slot_assignment
from .models import Coordinate, ReverseGeocodeResult, ScreenGeometry


class FakeLocationProvider:
    """Counts capability calls; coordinates are pushed by the test."""

    def __init__(self):
        self.permission_requests = 0
        self.starts = 0
        self.stops = 0

    def request_permission(self) -> None:
        self.permission_requests += 1

    def start_updates(self) -> None:
        self.starts += 1

    def stop_updates(self) -> None:
        self.stops += 1


class FakeReverseGeocoder:
    """Returns a fixed place, or raises error when set."""

    def __init__(
        self,
        result: Optional[ReverseGeocodeResult] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: List[Coordinate] = []

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[ReverseGeocodeResult]:
        self.calls.append(coordinate)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class FakePathMonitor:
    def __init__(self):
        self.handler: Optional[Callable[[PathStatus, InterfaceKind], None]] = None
        self.cancelled = False

    def start(self, handler: Callable[[PathStatus, InterfaceKind], None]) -> None:
        self.handler = handler
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        self.handler = None

    def emit(self, status: PathStatus, interface: InterfaceKind) -> None:
        if self.handler is not None:
            self.handler(status, interface)


class FakeReaders:
    """DeviceReaders with fixed values."""

    def __init__(
        self,
        app_id: Optional[str] = "com.example.app",
        ad_id: Optional[str] = "6D92078A-8246-4BA4-AE5B-76104861E7DC",
        tracking: AppTrackingStatus = AppTrackingStatus.AUTHORIZED,
        platform: str = "iOS",
        brand: Optional[str] = "Apple",
        model: str = "iPhone15,2",
        os_version: str = "17.4.1",
        screen: Optional[ScreenGeometry] = None,
        carrier: Optional[str] = "Verizon",
    ):
        self._app_id = app_id
        self._ad_id = ad_id
        self._tracking = tracking
        self._platform = platform
        self._brand = brand
        self._model = model
        self._os_version = os_version
        self._screen = screen
        self._carrier = carrier

    def app_identifier(self) -> Optional[str]:
        return self._app_id

    def ad_identifier(self) -> Optional[str]:
        return self._ad_id

    def tracking_authorization(self) -> AppTrackingStatus:
        return self._tracking

    def platform_name(self) -> str:
        return self._platform

    def brand(self) -> Optional[str]:
        return self._brand

    def device_model(self) -> str:
        return self._model

    def os_version(self) -> str:
        return self._os_version

    def screen_geometry(self) -> Optional[ScreenGeometry]:
        return self._screen

    def carrier_name(self) -> Optional[str]:
        return self._carrier


class FakeConsumer:
    """
    In-memory consumer.

    Slot assignments land in window; the completion script calls hook with
    the four slots if one is defined. Steps listed in fail_on raise.
    """

    def __init__(self, fail_on: Optional[Set[int]] = None, hook: Optional[Callable[..., Any]] = None):
        self.window: Dict[str, Any] = {}
        self.scripts: List[str] = []
        self.fail_on = fail_on or set()
        self.hook = hook
        self.hook_calls: List[tuple] = []
        self._load_listeners: List[Callable[[], None]] = []

    async def evaluate(self, script: str) -> Any:
        index = len(self.scripts)
        self.scripts.append(script)
        await asyncio.sleep(0)

        if index in self.fail_on:
            raise RuntimeError(f"evaluation failed for script {index}")

        assignment = parse_slot_assignment(script)
        if assignment is not None:
            slot, payload = assignment
            self.window[slot] = payload
            return None

        if "typeof window.onSdkDataReady !== 'function'" in script:
            if self.hook is None:
                return False
            args = tuple(self.window.get(slot) for slot in SLOTS)
            self.hook_calls.append(args)
            self.hook(*args)
            return True

        return None

    def add_load_listener(self, callback: Callable[[], None]) -> None:
        self._load_listeners.append(callback)

    def finish_loading(self) -> None:
        for callback in list(self._load_listeners):
            callback()

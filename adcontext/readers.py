"""
adcontext - Device Readers

Pure reads of ambient device state. Each call returns the current value;
nothing here caches or waits.
"""

import logging
import platform
import sys
import unicodedata
from typing import Optional, Protocol

from .constants import (
    AppTrackingStatus,
    ScreenOrientation,
    DEFAULT_SCREEN_HEIGHT,
    DEFAULT_SCREEN_SCALE,
    DEFAULT_SCREEN_WIDTH,
    UNKNOWN_CARRIER,
)
from .models import ScreenGeometry

logger = logging.getLogger(__name__)


class DeviceReaders(Protocol):
    """What the snapshot assembler needs to know about the host."""

    def app_identifier(self) -> Optional[str]: ...

    def ad_identifier(self) -> Optional[str]: ...

    def tracking_authorization(self) -> AppTrackingStatus: ...

    def platform_name(self) -> str: ...

    def brand(self) -> Optional[str]: ...

    def device_model(self) -> str: ...

    def os_version(self) -> str: ...

    def screen_geometry(self) -> Optional[ScreenGeometry]: ...

    def carrier_name(self) -> Optional[str]: ...


def normalize_carrier(name: Optional[str]) -> str:
    """
    Fold a carrier name to plain ASCII letters.

    The placeholder "--" some radios report becomes an empty string.
    """
    if not name or name == UNKNOWN_CARRIER:
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.encode("ascii", "ignore").decode("ascii")


class HostReaders:
    """
    Readers for a plain Python host.

    There is no advertising identifier or cellular carrier on a desktop or
    server host, so tracking reads as NOT_DETERMINED and the screen falls
    back to the default portrait geometry unless one is supplied.
    """

    def __init__(
        self,
        app_id: Optional[str] = None,
        screen: Optional[ScreenGeometry] = None,
        brand: Optional[str] = None,
    ):
        self._app_id = app_id
        self._screen = screen
        self._brand = brand

    def app_identifier(self) -> Optional[str]:
        if self._app_id:
            return self._app_id
        main = sys.modules.get("__main__")
        spec = getattr(main, "__spec__", None)
        if spec is not None and spec.name:
            return spec.name
        return "unknown"

    def ad_identifier(self) -> Optional[str]:
        return None

    def tracking_authorization(self) -> AppTrackingStatus:
        return AppTrackingStatus.NOT_DETERMINED

    def platform_name(self) -> str:
        return platform.system() or "unknown"

    def brand(self) -> Optional[str]:
        return self._brand

    def device_model(self) -> str:
        return platform.machine() or "unknown"

    def os_version(self) -> str:
        return platform.release()

    def screen_geometry(self) -> Optional[ScreenGeometry]:
        if self._screen is not None:
            return self._screen
        return ScreenGeometry(
            width=DEFAULT_SCREEN_WIDTH,
            height=DEFAULT_SCREEN_HEIGHT,
            scale=DEFAULT_SCREEN_SCALE,
            orientation=ScreenOrientation.PORTRAIT,
        )

    def carrier_name(self) -> Optional[str]:
        return None

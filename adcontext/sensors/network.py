"""
adcontext - Connection Classifier

Keeps the current network classification up to date from the path
monitor and the cellular radio-technology feed. Readers poll
current_connection(); nothing waits on it.
"""

import asyncio
import logging
from typing import Callable, NamedTuple, Optional

from ..constants import (
    ConnectionType,
    InterfaceKind,
    NR_TECHNOLOGIES,
    PathStatus,
    RADIO_TECHNOLOGY_GENERATIONS,
    RADIO_TECHNOLOGY_PREFIX,
)
from .base import PathMonitor, RadioTechnologySource, no_radio_technology

logger = logging.getLogger(__name__)

# Platforms disagree on identifier case ("Edge" vs "EDGE")
_GENERATIONS = {name.upper(): generation for name, generation in RADIO_TECHNOLOGY_GENERATIONS.items()}
_NR = {name.upper() for name in NR_TECHNOLOGIES}


def classify_radio_technology(identifier: Optional[str], nr_supported: bool = True) -> ConnectionType:
    """
    Bucket a radio access technology into a cellular generation.

    Identifiers may carry the platform prefix. NR identifiers map to
    CELL_5G only when the platform reports them; otherwise, and for any
    unmapped identifier, the result is CELL_UNKNOWN.
    """
    if not identifier:
        return ConnectionType.CELL_UNKNOWN

    if identifier.startswith(RADIO_TECHNOLOGY_PREFIX):
        identifier = identifier[len(RADIO_TECHNOLOGY_PREFIX):]

    identifier = identifier.upper()
    generation = _GENERATIONS.get(identifier)
    if generation is not None:
        return generation

    if nr_supported and identifier in _NR:
        return ConnectionType.CELL_5G

    return ConnectionType.CELL_UNKNOWN


def payload_connection_type(connection: ConnectionType, report_5g_as_4g: bool = True) -> ConnectionType:
    """The connection value written into the device payload."""
    if report_5g_as_4g and connection == ConnectionType.CELL_5G:
        return ConnectionType.CELL_4G
    return connection


class NetworkCallbacks(NamedTuple):
    """Thread-safe forwarders for platform network feeds."""
    on_path_change: Callable[[PathStatus, InterfaceKind], None]
    on_radio_technology_changed: Callable[[Optional[str]], None]


class ConnectionClassifier:
    """
    Current network classification.

    Usage:
        classifier = ConnectionClassifier(path_monitor, radio_technology)
        classifier.start()
        classifier.current_connection()  # ConnectionType.WIFI
    """

    def __init__(
        self,
        path_monitor: Optional[PathMonitor] = None,
        radio_technology: RadioTechnologySource = no_radio_technology,
        nr_supported: bool = True,
    ):
        self._path_monitor = path_monitor
        self._radio_technology = radio_technology
        self._nr_supported = nr_supported
        self._connection = ConnectionType.CONNECTION_UNKNOWN
        self._monitoring = False

    def current_connection(self) -> ConnectionType:
        return self._connection

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    def start(self) -> None:
        if self._monitoring or self._path_monitor is None:
            return
        self._path_monitor.start(self.on_path_change)
        self._monitoring = True
        logger.debug("Network path monitoring started")

    def stop(self) -> None:
        if not self._monitoring:
            return
        self._path_monitor.cancel()
        self._monitoring = False
        logger.debug("Network path monitoring stopped")

    def on_path_change(self, status: PathStatus, interface: InterfaceKind) -> None:
        if status != PathStatus.SATISFIED:
            connection = ConnectionType.CONNECTION_UNKNOWN
        elif interface == InterfaceKind.WIFI:
            connection = ConnectionType.WIFI
        elif interface == InterfaceKind.CELLULAR:
            connection = self._cellular_connection(self._read_radio_technology())
        elif interface == InterfaceKind.WIRED_ETHERNET:
            connection = ConnectionType.ETHERNET
        else:
            connection = ConnectionType.CONNECTION_UNKNOWN

        self._set(connection)

    def on_radio_technology_changed(self, identifier: Optional[str]) -> None:
        """Re-bucket the generation while the path is cellular."""
        if self._connection.is_cellular:
            self._set(self._cellular_connection(identifier))

    def threadsafe_callbacks(self, loop: asyncio.AbstractEventLoop) -> NetworkCallbacks:
        return NetworkCallbacks(
            on_path_change=lambda s, i: loop.call_soon_threadsafe(self.on_path_change, s, i),
            on_radio_technology_changed=lambda t: loop.call_soon_threadsafe(
                self.on_radio_technology_changed, t
            ),
        )

    def _cellular_connection(self, identifier: Optional[str]) -> ConnectionType:
        return classify_radio_technology(identifier, self._nr_supported)

    def _read_radio_technology(self) -> Optional[str]:
        try:
            return self._radio_technology()
        except Exception as e:
            logger.debug(f"Radio technology lookup failed: {e}")
            return None

    def _set(self, connection: ConnectionType) -> None:
        if connection != self._connection:
            logger.debug(f"Connection changed: {self._connection.name} -> {connection.name}")
        self._connection = connection

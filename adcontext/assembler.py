"""
adcontext - Snapshot Assembler

Builds the mobile, device and geo snapshots from the readers and sensors.
"""

import logging
from typing import Optional

from .constants import AppTrackingStatus, ScreenOrientation
from .models import (
    ContextSnapshots,
    DeviceSnapshot,
    GeoSnapshot,
    MobileSnapshot,
    OSVersion,
)
from .readers import DeviceReaders, normalize_carrier
from .sensors.location import GeoResolver
from .sensors.network import ConnectionClassifier, payload_connection_type

logger = logging.getLogger(__name__)


class SnapshotAssembler:
    """
    Produces immutable snapshots on demand.

    Usage:
        assembler = SnapshotAssembler(readers, geo_resolver, classifier)
        snapshots = await assembler.assemble()
    """

    def __init__(
        self,
        readers: DeviceReaders,
        geo_resolver: GeoResolver,
        classifier: ConnectionClassifier,
        app_id_override: Optional[str] = None,
        report_5g_as_4g: bool = True,
    ):
        self._readers = readers
        self._geo_resolver = geo_resolver
        self._classifier = classifier
        self._app_id_override = app_id_override
        self._report_5g_as_4g = report_5g_as_4g

    def app_id(self) -> Optional[str]:
        if self._app_id_override:
            return self._app_id_override
        return self._readers.app_identifier()

    def advertising_id(self) -> Optional[str]:
        """The ad identifier, only when the user authorized tracking."""
        if self._readers.tracking_authorization() != AppTrackingStatus.AUTHORIZED:
            return None
        return self._readers.ad_identifier()

    def mobile_snapshot(self) -> MobileSnapshot:
        return MobileSnapshot(
            is_app=True,
            app_id=self.app_id(),
            idfa=self.advertising_id(),
        )

    def device_snapshot(self) -> DeviceSnapshot:
        readers = self._readers
        tracking = readers.tracking_authorization()
        model = readers.device_model()
        screen = readers.screen_geometry()

        return DeviceSnapshot(
            platform=readers.platform_name(),
            brand=readers.brand(),
            model=model,
            os_version=OSVersion.parse(readers.os_version()),
            carrier=normalize_carrier(readers.carrier_name()),
            screen_width=screen.pixel_width if screen else None,
            screen_height=screen.pixel_height if screen else None,
            screen_ratio=screen.ratio_millis if screen else None,
            screen_orientation=screen.orientation if screen else ScreenOrientation.UNKNOWN,
            hardware_version=model,
            limit_ad_tracking=tracking != AppTrackingStatus.AUTHORIZED,
            app_tracking_status=tracking,
            connection=payload_connection_type(
                self._classifier.current_connection(), self._report_5g_as_4g
            ),
        )

    async def geo_snapshot(self) -> GeoSnapshot:
        return await self._geo_resolver.request_geo()

    async def assemble(self) -> ContextSnapshots:
        """
        Build all three snapshots.

        A snapshot whose readers fail is left out; the consumer then sees
        an empty slot for it rather than no delivery at all.
        """
        mobile = device = geo = None

        try:
            mobile = self.mobile_snapshot()
        except Exception as e:
            logger.error(f"Mobile snapshot failed: {e}")

        try:
            device = self.device_snapshot()
        except Exception as e:
            logger.error(f"Device snapshot failed: {e}")

        try:
            geo = await self.geo_snapshot()
        except Exception as e:
            logger.error(f"Geo snapshot failed: {e}")

        logger.debug("Snapshot assembly completed")
        return ContextSnapshots(mobile=mobile, geo=geo, device=device)

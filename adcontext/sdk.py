"""
adcontext - SDK Facade

Wires the sensors, assembler and delivery components together and
exposes the two consumer entry points:

- inject(consumer): set the basic mobile payload right away
- register_consumer(consumer): deliver the full context once both the
  consumer has loaded and the snapshots are assembled

Usage:
    sdk = get_context_sdk()
    sdk.initialize(ContextConfig(logging_enabled=True))

    registration = sdk.register_consumer(web_view)
    report = await registration.wait_delivered()
"""

import asyncio
import logging
from typing import Any, Optional

from .assembler import SnapshotAssembler
from .config import ContextConfig
from .delivery import DeliveryRendezvous, OrderedDeliveryPipeline, basic_mobile_script
from .delivery.channel import consumer_reference, is_supported_consumer
from .errors import (
    InjectionFailedError,
    InvalidConfigurationError,
    NotInitializedError,
    UnsupportedConsumerError,
)
from .logs import configure_logging
from .models import DeliveryReport, SdkMetadata, generate_id
from .readers import DeviceReaders, HostReaders
from .sensors import (
    ConnectionClassifier,
    GeoResolver,
    LocationProvider,
    NominatimReverseGeocoder,
    NullReverseGeocoder,
    ReverseGeocoder,
)

logger = logging.getLogger(__name__)

SDK_VERSION = "0.1.0"

# Nominatim rejects requests from the placeholder user agent
_PLACEHOLDER_USER_AGENT = "set your email"


class ConsumerRegistration:
    """A consumer waiting for, or having received, its context delivery."""

    def __init__(self, rendezvous: DeliveryRendezvous, assembly: asyncio.Task):
        self.id = generate_id("reg")
        self.rendezvous = rendezvous
        self.assembly = assembly

    @property
    def delivered(self) -> bool:
        delivery = self.rendezvous.delivery
        return delivery is not None and delivery.done()

    async def wait_delivered(self) -> Optional[DeliveryReport]:
        """
        Wait for assembly, then for the delivery if the consumer attached.

        Returns None when the consumer has not attached (yet).
        """
        await self.assembly
        return await self.rendezvous.wait_delivered()


class ContextSDK:
    """
    Process-wide entry point.

    Components can be injected for tests or custom platforms; anything not
    supplied is built from the config on initialize().
    """

    def __init__(
        self,
        readers: Optional[DeviceReaders] = None,
        location_provider: Optional[LocationProvider] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        geo_resolver: Optional[GeoResolver] = None,
        classifier: Optional[ConnectionClassifier] = None,
        pipeline: Optional[OrderedDeliveryPipeline] = None,
    ):
        self._readers = readers
        self._location_provider = location_provider
        self._geocoder = geocoder
        self._injected_resolver = geo_resolver
        self._injected_classifier = classifier
        self._injected_pipeline = pipeline

        self._initialized = False
        self._config: Optional[ContextConfig] = None
        self._location_enabled = True

        self._geo_resolver: Optional[GeoResolver] = None
        self._classifier: Optional[ConnectionClassifier] = None
        self._pipeline: Optional[OrderedDeliveryPipeline] = None
        self._assembler: Optional[SnapshotAssembler] = None
        self._registration: Optional[ConsumerRegistration] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def version(self) -> str:
        return SDK_VERSION

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> Optional[ContextConfig]:
        return self._config

    @property
    def geo_resolver(self) -> Optional[GeoResolver]:
        return self._geo_resolver

    @property
    def classifier(self) -> Optional[ConnectionClassifier]:
        return self._classifier

    @property
    def assembler(self) -> Optional[SnapshotAssembler]:
        return self._assembler

    @property
    def registration(self) -> Optional[ConsumerRegistration]:
        """The most recent consumer registration."""
        return self._registration

    @property
    def location_enabled(self) -> bool:
        if self._geo_resolver is not None:
            return self._geo_resolver.location_enabled
        return self._location_enabled

    @location_enabled.setter
    def location_enabled(self, enabled: bool) -> None:
        self._location_enabled = enabled
        if self._geo_resolver is not None:
            self._geo_resolver.location_enabled = enabled

    def metadata(self) -> SdkMetadata:
        return SdkMetadata(sdk_version=SDK_VERSION)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self, config: Optional[ContextConfig] = None) -> None:
        """
        Initialize the SDK. A second call is ignored.

        Raises:
            InvalidConfigurationError: config.validate() reported problems
        """
        if self._initialized:
            logger.warning("SDK already initialized")
            return

        config = config or ContextConfig()
        problems = config.validate()
        if problems:
            raise InvalidConfigurationError(problems)

        configure_logging(config.logging_enabled)
        self._config = config
        self._location_enabled = self._location_enabled and config.location_enabled

        self._geo_resolver = self._injected_resolver or GeoResolver(
            provider=self._location_provider,
            geocoder=self._build_geocoder(config),
            location_timeout=config.location_timeout,
            location_enabled=self._location_enabled,
        )
        if self._injected_resolver is not None and not self._location_enabled:
            self._injected_resolver.location_enabled = False
        self._classifier = self._injected_classifier or ConnectionClassifier()
        self._pipeline = self._injected_pipeline or OrderedDeliveryPipeline(
            completion_retry_delay=config.completion_retry_delay
        )
        self._assembler = SnapshotAssembler(
            readers=self._readers or HostReaders(),
            geo_resolver=self._geo_resolver,
            classifier=self._classifier,
            app_id_override=config.app_id_override,
            report_5g_as_4g=config.report_5g_as_4g,
        )

        self._geo_resolver.start()
        self._classifier.start()
        self._initialized = True

        logger.info(f"adcontext v{SDK_VERSION} initialized")

    def _build_geocoder(self, config: ContextConfig) -> ReverseGeocoder:
        if self._geocoder is not None:
            return self._geocoder
        if _PLACEHOLDER_USER_AGENT in config.geocoder_user_agent.lower():
            logger.info("Geocoder user agent not configured, reverse geocoding disabled")
            return NullReverseGeocoder()
        return NominatimReverseGeocoder(
            user_agent=config.geocoder_user_agent,
            base_url=config.geocoder_url,
        )

    async def close(self) -> None:
        """Stop monitoring, location updates, and release network clients."""
        if self._classifier is not None:
            self._classifier.stop()
        if self._geo_resolver is not None:
            self._geo_resolver.stop()
        geocoder = self._geo_resolver.geocoder if self._geo_resolver else None
        if isinstance(geocoder, NominatimReverseGeocoder):
            await geocoder.close()

    def reset_for_testing(self) -> None:
        """Drop all state so initialize() can run again."""
        if self._classifier is not None:
            self._classifier.stop()
        self._initialized = False
        self._config = None
        self._location_enabled = True
        self._geo_resolver = None
        self._classifier = None
        self._pipeline = None
        self._assembler = None
        self._registration = None

    # =========================================================================
    # CONSUMERS
    # =========================================================================

    async def inject(self, consumer: Any) -> bool:
        """
        Set only the basic mobile payload (app_id, idfa_adid) in the consumer.

        For the full device, geo and SDK payloads use register_consumer().

        Raises:
            NotInitializedError: initialize() was not called
            UnsupportedConsumerError: consumer has no async evaluate()
            InjectionFailedError: evaluation failed in the consumer
        """
        if not self._initialized:
            logger.error("SDK not initialized")
            raise NotInitializedError()

        if not is_supported_consumer(consumer):
            logger.error(f"Unsupported consumer type: {type(consumer).__name__}")
            raise UnsupportedConsumerError()

        script = basic_mobile_script(self._assembler.app_id(), self._assembler.advertising_id())
        logger.debug("Injecting payload into consumer")

        try:
            await consumer.evaluate(script)
        except Exception as e:
            logger.error(f"Script injection failed: {e}")
            raise InjectionFailedError(f"Script injection failed: {e}") from e

        logger.info("Script injection successful")
        return True

    def register_consumer(self, consumer: Any) -> Optional[ConsumerRegistration]:
        """
        Register a consumer for the full context delivery.

        Starts assembling snapshots immediately and delivers them once the
        consumer reports it finished loading. Must be called from a running
        event loop. Returns None if the SDK is not initialized.

        Raises:
            UnsupportedConsumerError: consumer has no async evaluate()
        """
        if not self._initialized:
            logger.error("SDK not initialized - cannot register consumer")
            return None

        if not is_supported_consumer(consumer):
            logger.error(f"Unsupported consumer type: {type(consumer).__name__}")
            raise UnsupportedConsumerError()

        logger.info("Registering consumer for context delivery")
        rendezvous = DeliveryRendezvous(self._pipeline, self.metadata())
        consumer_ref = consumer_reference(consumer)

        def on_load_finished() -> None:
            target = consumer_ref()
            if target is not None:
                rendezvous.on_consumer_attached(target)

        consumer.add_load_listener(on_load_finished)

        assembly = asyncio.get_running_loop().create_task(self._assemble(rendezvous))
        self._registration = ConsumerRegistration(rendezvous, assembly)
        return self._registration

    async def _assemble(self, rendezvous: DeliveryRendezvous) -> None:
        snapshots = await self._assembler.assemble()
        rendezvous.on_data_assembled(snapshots)


# Singleton instance
_context_sdk: Optional[ContextSDK] = None


def get_context_sdk() -> ContextSDK:
    """Get or create the process-wide SDK instance."""
    global _context_sdk
    if _context_sdk is None:
        _context_sdk = ContextSDK()
    return _context_sdk

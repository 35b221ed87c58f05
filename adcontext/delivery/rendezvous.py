"""
adcontext - Delivery Rendezvous

Joins two independently-arriving signals, "snapshots assembled" and
"consumer attached", and starts exactly one delivery pass once both have
arrived, whichever came first.
"""

import asyncio
import logging
from typing import Any, Optional, Set

from ..constants import RendezvousState
from ..models import ContextSnapshots, DeliveryReport, SdkMetadata
from .channel import consumer_reference
from .pipeline import OrderedDeliveryPipeline

logger = logging.getLogger(__name__)

# Strong references to running deliveries; the event loop only keeps weak ones
_in_flight: Set[asyncio.Task] = set()


class DeliveryRendezvous:
    """
    Two-sided join that fires one delivery.

    State moves WAITING -> CONSUMER_ATTACHED | DATA_ASSEMBLED -> FIRED.
    Only the transition into FIRED starts a delivery, and there is no way
    out of FIRED, so a rendezvous delivers at most once. If one side never
    arrives the rendezvous simply stays pending until it is dropped.

    Usage:
        rendezvous = DeliveryRendezvous(pipeline, metadata)
        consumer.add_load_listener(lambda: rendezvous.on_consumer_attached(consumer))
        rendezvous.on_data_assembled(await assembler.assemble())
    """

    def __init__(self, pipeline: OrderedDeliveryPipeline, metadata: SdkMetadata):
        self._pipeline = pipeline
        self._metadata = metadata
        self._state = RendezvousState.WAITING
        self._consumer_ref = None
        self._snapshots: Optional[ContextSnapshots] = None
        self._delivery: Optional[asyncio.Task] = None

    @property
    def state(self) -> RendezvousState:
        return self._state

    @property
    def fired(self) -> bool:
        return self._state == RendezvousState.FIRED

    @property
    def delivery(self) -> Optional[asyncio.Task]:
        """The delivery task, once both sides have arrived."""
        return self._delivery

    def on_consumer_attached(self, consumer: Any) -> None:
        if self._state in (RendezvousState.CONSUMER_ATTACHED, RendezvousState.FIRED):
            logger.warning(f"Consumer already attached (state={self._state.value}), ignoring")
            return

        self._consumer_ref = consumer_reference(consumer)
        logger.debug(f"Consumer attached, data ready: {self._state == RendezvousState.DATA_ASSEMBLED}")

        if self._state == RendezvousState.DATA_ASSEMBLED:
            self._fire()
        else:
            self._state = RendezvousState.CONSUMER_ATTACHED

    def on_data_assembled(self, snapshots: ContextSnapshots) -> None:
        if self._state in (RendezvousState.DATA_ASSEMBLED, RendezvousState.FIRED):
            logger.warning(f"Snapshots already assembled (state={self._state.value}), ignoring")
            return

        self._snapshots = snapshots
        logger.debug(f"Data assembled, consumer ready: {self._state == RendezvousState.CONSUMER_ATTACHED}")

        if self._state == RendezvousState.CONSUMER_ATTACHED:
            self._fire()
        else:
            self._state = RendezvousState.DATA_ASSEMBLED

    def _fire(self) -> None:
        self._state = RendezvousState.FIRED
        snapshots = self._snapshots or ContextSnapshots()
        logger.info("Consumer and data ready, starting delivery")

        task = asyncio.get_running_loop().create_task(
            self._pipeline.deliver(
                self._consumer_ref,
                snapshots.mobile,
                snapshots.geo,
                snapshots.device,
                self._metadata,
            )
        )
        _in_flight.add(task)
        task.add_done_callback(_in_flight.discard)
        self._delivery = task

        # Nothing below needs the snapshots again
        self._snapshots = None

    async def wait_delivered(self) -> Optional[DeliveryReport]:
        """Await the delivery report, or None if the rendezvous has not fired."""
        if self._delivery is None:
            return None
        return await self._delivery

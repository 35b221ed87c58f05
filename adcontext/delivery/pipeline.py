"""
adcontext - Ordered Delivery Pipeline

Delivers assembled snapshots to a consumer as a fixed list of scripts,
evaluated one at a time. A failed step is logged and the next step still
runs; the sequence always runs to the end.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Any, List, Optional

from ..constants import (
    COMPLETION_RETRY_DELAY,
    DEVICE_SLOT,
    GEO_SLOT,
    METADATA_SLOT,
    MOBILE_SLOT,
    STEP_NAMES,
)
from ..errors import ConsumerNotReadyError
from ..models import (
    DeliveryReport,
    DeviceSnapshot,
    GeoSnapshot,
    MobileSnapshot,
    SdkMetadata,
    StepOutcome,
)
from .channel import consumer_reference
from .scripts import assign_slot_script, completion_script, verify_script

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryStep:
    """One script in the delivery sequence."""
    name: str
    script: str
    completion: bool = False


def _json_or_none(snapshot: Any) -> Optional[str]:
    return snapshot.to_json() if snapshot is not None else None


def build_steps(
    mobile: Optional[MobileSnapshot],
    geo: Optional[GeoSnapshot],
    device: Optional[DeviceSnapshot],
    metadata: Optional[SdkMetadata],
) -> List[DeliveryStep]:
    """
    The six delivery steps in order.

    Absent snapshots still get a step that sets their slot to null, so the
    consumer finds all four slots defined afterwards.
    """
    scripts = [
        assign_slot_script(MOBILE_SLOT, _json_or_none(mobile)),
        assign_slot_script(GEO_SLOT, _json_or_none(geo)),
        assign_slot_script(DEVICE_SLOT, _json_or_none(device)),
        assign_slot_script(METADATA_SLOT, _json_or_none(metadata)),
        verify_script(),
        completion_script(),
    ]
    return [
        DeliveryStep(name=name, script=script, completion=(name == STEP_NAMES[-1]))
        for name, script in zip(STEP_NAMES, scripts)
    ]


class OrderedDeliveryPipeline:
    """
    Runs delivery steps strictly in sequence against one consumer.

    The consumer is held weakly. If it is released mid-sequence the
    remaining steps fail quietly and the sequence still completes.

    Usage:
        pipeline = OrderedDeliveryPipeline()
        report = await pipeline.deliver(consumer, mobile, geo, device, metadata)
    """

    def __init__(self, completion_retry_delay: float = COMPLETION_RETRY_DELAY):
        """
        Args:
            completion_retry_delay: Seconds to wait before the single retry
                of the completion hook when it is not yet defined
        """
        self._retry_delay = completion_retry_delay

    async def deliver(
        self,
        consumer: Any,
        mobile: Optional[MobileSnapshot],
        geo: Optional[GeoSnapshot],
        device: Optional[DeviceSnapshot],
        metadata: Optional[SdkMetadata],
    ) -> DeliveryReport:
        consumer_ref = consumer_reference(consumer)
        report = DeliveryReport()

        for index, step in enumerate(build_steps(mobile, geo, device, metadata)):
            outcome = await self._run_step(consumer_ref, index, step)
            report.steps.append(outcome)

            if step.completion:
                report.completion_invoked = await self._complete(consumer_ref, index, step, outcome, report)

        logger.info(
            f"Delivery finished: {report.evaluations} evaluations, "
            f"{len(report.failures)} failed, completion hook "
            f"{'invoked' if report.completion_invoked else 'not invoked'}"
        )
        return report

    async def _complete(
        self,
        consumer_ref: "weakref.ReferenceType",
        index: int,
        step: DeliveryStep,
        outcome: StepOutcome,
        report: DeliveryReport,
    ) -> bool:
        if outcome.success and outcome.result is not False:
            return True
        if not outcome.success:
            return False

        logger.debug(f"Completion hook not found, retrying in {self._retry_delay}s")
        await asyncio.sleep(self._retry_delay)

        retry = await self._run_step(consumer_ref, index, step)
        report.steps.append(retry)
        report.completion_retried = True

        if retry.success and retry.result is not False:
            logger.debug("Completion hook found on retry")
            return True

        logger.debug("Completion hook still not found on retry, giving up")
        return False

    async def _run_step(
        self,
        consumer_ref: "weakref.ReferenceType",
        index: int,
        step: DeliveryStep,
    ) -> StepOutcome:
        consumer = consumer_ref()
        try:
            if consumer is None:
                raise ConsumerNotReadyError("Consumer was released before delivery")
            result = await consumer.evaluate(step.script)
        except ConsumerNotReadyError as e:
            logger.debug(f"Skipping script {index} ({step.name}): {e}")
            return StepOutcome(index=index, name=step.name, success=False, error=str(e))
        except Exception as e:
            logger.error(f"Error executing script {index} ({step.name}): {e}")
            return StepOutcome(index=index, name=step.name, success=False, error=str(e))

        logger.debug(f"Script {index} ({step.name}) executed successfully")
        return StepOutcome(index=index, name=step.name, success=True, result=result)

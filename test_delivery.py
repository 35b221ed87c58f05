#!/usr/bin/env python3
"""
Test script for context delivery

Tests:
- Delivery scripts and step order
- Ordered pipeline: best-effort steps, completion hook retry
- Rendezvous: fires once, in either arrival order
"""

import asyncio
import gc
import os
import sys
import weakref

# Add adcontext to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from adcontext.constants import STEP_NAMES, ConnectionType, RendezvousState
from adcontext.delivery import (
    DeliveryRendezvous,
    OrderedDeliveryPipeline,
    assign_slot_script,
    basic_mobile_script,
    build_steps,
    parse_slot_assignment,
)
from adcontext.errors import UnsupportedConsumerError
from adcontext.models import (
    ContextSnapshots,
    DeviceSnapshot,
    GeoSnapshot,
    MobileSnapshot,
    SdkMetadata,
)
from adcontext.testing import FakeConsumer

MOBILE = MobileSnapshot(app_id="com.example.app", idfa="6D92078A-8246-4BA4-AE5B-76104861E7DC")
GEO = GeoSnapshot(utcoffset=-480, lat=37.7749, lon=-122.4194, country="USA",
                  city="San Francisco", zip="94102", accuracy=100.0)
DEVICE = DeviceSnapshot(platform="iOS", model="iPhone15,2", hardware_version="iPhone15,2",
                        limit_ad_tracking=False, connection=ConnectionType.WIFI)
METADATA = SdkMetadata(sdk_version="0.1.0")


def make_pipeline(retry_delay: float = 0.01) -> OrderedDeliveryPipeline:
    return OrderedDeliveryPipeline(completion_retry_delay=retry_delay)


# =============================================================================
# SCRIPTS
# =============================================================================

def test_build_steps_order_and_null_slots():
    steps = build_steps(MOBILE, None, DEVICE, METADATA)

    assert [s.name for s in steps] == list(STEP_NAMES)
    assert steps[1].script == "window.bwsGeo = null;"
    assert [s.completion for s in steps] == [False] * 5 + [True]
    assert "onSdkDataReady" in steps[5].script
    assert "bwsdk" in steps[4].script


def test_slot_script_keeps_hostile_payload_inside_literal():
    payload = '{"city":"\\"); alert(1); (\\"","zip":"</script>"}'
    script = assign_slot_script("bwsGeo", payload)

    slot, parsed = parse_slot_assignment(script)
    assert slot == "bwsGeo"
    assert parsed == {"city": '"); alert(1); ("', "zip": "</script>"}


def test_slot_script_round_trip_geo():
    slot, parsed = parse_slot_assignment(assign_slot_script("bwsGeo", GEO.to_json()))
    assert slot == "bwsGeo"
    assert GeoSnapshot.from_dict(parsed) == GEO

    assert parse_slot_assignment("window.bwsGeo = null;") == ("bwsGeo", None)
    assert parse_slot_assignment("console.log('hi');") is None


def test_basic_mobile_script():
    script = basic_mobile_script("com.example.app", None)
    assert script == 'window.bwsMobile = {"app_id": "com.example.app", "idfa_adid": ""};'


# =============================================================================
# PIPELINE
# =============================================================================

async def test_delivery_runs_six_steps_and_invokes_hook():
    print("\n" + "=" * 60)
    print("TESTING ORDERED DELIVERY")
    print("=" * 60)

    received = []
    consumer = FakeConsumer(hook=lambda *args: received.append(args))

    report = await make_pipeline().deliver(consumer, MOBILE, GEO, DEVICE, METADATA)

    assert report.evaluations == 6
    assert report.failures == []
    assert report.completion_invoked
    assert not report.completion_retried
    assert [s.index for s in report.steps] == list(range(6))

    mobile, geo, device, metadata = received[0]
    assert len(received) == 1
    assert mobile == {"is_app": True, "app_id": "com.example.app",
                      "idfa": "6D92078A-8246-4BA4-AE5B-76104861E7DC"}
    assert geo["country"] == "USA" and geo["utcoffset"] == -480
    assert device["connection_type"] == 2
    assert metadata == {"sdk_version": "0.1.0"}
    print(f"  {report.evaluations} evaluations, hook invoked")


async def test_failed_step_does_not_stop_the_sequence():
    consumer = FakeConsumer(fail_on={1}, hook=lambda *args: None)

    report = await make_pipeline().deliver(consumer, MOBILE, GEO, DEVICE, METADATA)

    assert report.evaluations == 6
    assert [s.index for s in report.failures] == [1]
    assert report.steps[1].name == "set_geo"
    assert "evaluation failed" in report.steps[1].error
    assert report.completion_invoked
    # The consumer never got a geo slot but the others are set
    assert "bwsGeo" not in consumer.window
    assert consumer.window["bwsdk"] == {"sdk_version": "0.1.0"}
    assert consumer.hook_calls[0][1] is None


async def test_missing_hook_is_retried_once():
    consumer = FakeConsumer()
    loop = asyncio.get_running_loop()

    started = loop.time()
    report = await make_pipeline(retry_delay=0.05).deliver(consumer, MOBILE, GEO, DEVICE, METADATA)
    elapsed = loop.time() - started

    assert report.evaluations == 7
    assert len(consumer.scripts) == 7
    assert consumer.scripts[5] == consumer.scripts[6]
    assert report.completion_retried
    assert not report.completion_invoked
    assert elapsed >= 0.04
    print(f"  Hook missing: retried once after {elapsed:.3f}s")


class LateHookConsumer(FakeConsumer):
    """Defines the completion hook only after the first completion attempt."""

    async def evaluate(self, script):
        result = await super().evaluate(script)
        if result is False and self.hook is None:
            self.hook = lambda *args: None
        return result


async def test_hook_defined_late_is_found_on_retry():
    consumer = LateHookConsumer()

    report = await make_pipeline().deliver(consumer, MOBILE, GEO, DEVICE, METADATA)

    assert report.evaluations == 7
    assert report.completion_retried
    assert report.completion_invoked
    assert len(consumer.hook_calls) == 1


async def test_completion_evaluation_error_is_not_retried():
    consumer = FakeConsumer(fail_on={5}, hook=lambda *args: None)

    report = await make_pipeline().deliver(consumer, MOBILE, GEO, DEVICE, METADATA)

    assert report.evaluations == 6
    assert not report.completion_retried
    assert not report.completion_invoked


async def test_released_consumer_fails_quietly():
    consumer = FakeConsumer(hook=lambda *args: None)
    ref = weakref.ref(consumer)
    del consumer
    gc.collect()
    assert ref() is None

    report = await make_pipeline().deliver(ref, MOBILE, GEO, DEVICE, METADATA)

    assert report.evaluations == 6
    assert len(report.failures) == 6
    assert not report.completion_retried
    assert not report.completion_invoked


async def test_unsupported_consumer_is_rejected():
    class SyncConsumer:
        def evaluate(self, script):
            return None

    with pytest.raises(UnsupportedConsumerError):
        await make_pipeline().deliver(SyncConsumer(), MOBILE, GEO, DEVICE, METADATA)

    with pytest.raises(UnsupportedConsumerError):
        await make_pipeline().deliver(object(), MOBILE, GEO, DEVICE, METADATA)


# =============================================================================
# RENDEZVOUS
# =============================================================================

def make_rendezvous():
    return DeliveryRendezvous(make_pipeline(), METADATA)


SNAPSHOTS = ContextSnapshots(mobile=MOBILE, geo=GEO, device=DEVICE)


async def test_consumer_then_data_fires_once():
    print("\n" + "=" * 60)
    print("TESTING RENDEZVOUS")
    print("=" * 60)

    consumer = FakeConsumer(hook=lambda *args: None)
    rendezvous = make_rendezvous()

    rendezvous.on_consumer_attached(consumer)
    assert rendezvous.state == RendezvousState.CONSUMER_ATTACHED
    assert rendezvous.delivery is None

    rendezvous.on_data_assembled(SNAPSHOTS)
    assert rendezvous.fired

    report = await rendezvous.wait_delivered()
    assert report.evaluations == 6
    assert len(consumer.hook_calls) == 1
    print("  consumer -> data: delivered once")


async def test_data_then_consumer_fires_once():
    consumer = FakeConsumer(hook=lambda *args: None)
    rendezvous = make_rendezvous()

    rendezvous.on_data_assembled(SNAPSHOTS)
    assert rendezvous.state == RendezvousState.DATA_ASSEMBLED
    rendezvous.on_consumer_attached(consumer)
    assert rendezvous.fired

    report = await rendezvous.wait_delivered()
    assert report.completion_invoked
    assert consumer.window["bwsGeo"]["city"] == "San Francisco"


async def test_one_side_only_never_delivers():
    consumer = FakeConsumer(hook=lambda *args: None)

    data_only = make_rendezvous()
    data_only.on_data_assembled(SNAPSHOTS)

    consumer_only = make_rendezvous()
    consumer_only.on_consumer_attached(consumer)

    await asyncio.sleep(0.05)
    assert await data_only.wait_delivered() is None
    assert await consumer_only.wait_delivered() is None
    assert consumer.scripts == []


async def test_duplicate_signals_are_ignored():
    consumer = FakeConsumer(hook=lambda *args: None)
    rendezvous = make_rendezvous()

    rendezvous.on_consumer_attached(consumer)
    rendezvous.on_consumer_attached(consumer)
    assert rendezvous.state == RendezvousState.CONSUMER_ATTACHED

    rendezvous.on_data_assembled(SNAPSHOTS)
    first = rendezvous.delivery

    rendezvous.on_data_assembled(SNAPSHOTS)
    rendezvous.on_consumer_attached(consumer)
    assert rendezvous.delivery is first

    await rendezvous.wait_delivered()
    assert len(consumer.scripts) == 6
    assert len(consumer.hook_calls) == 1


async def test_empty_snapshots_deliver_null_slots():
    consumer = FakeConsumer(hook=lambda *args: None)
    rendezvous = make_rendezvous()

    rendezvous.on_consumer_attached(consumer)
    rendezvous.on_data_assembled(ContextSnapshots())
    report = await rendezvous.wait_delivered()

    assert report.failures == []
    assert consumer.window["bwsMobile"] is None
    assert consumer.window["bwsGeo"] is None
    assert consumer.window["bwsDevice"] is None
    assert consumer.window["bwsdk"] == {"sdk_version": "0.1.0"}

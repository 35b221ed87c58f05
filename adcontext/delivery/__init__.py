"""
adcontext - Delivery

Getting assembled snapshots into the consumer:
- DeliveryRendezvous: Fires once both data and consumer are ready
- OrderedDeliveryPipeline: Evaluates the payload scripts one at a time
- ConsumerChannel: What a consumer must provide
"""

from .channel import ConsumerChannel, consumer_reference, is_supported_consumer
from .pipeline import DeliveryStep, OrderedDeliveryPipeline, build_steps
from .rendezvous import DeliveryRendezvous
from .scripts import (
    SLOTS,
    assign_slot_script,
    basic_mobile_script,
    completion_script,
    parse_slot_assignment,
    verify_script,
)

__all__ = [
    "ConsumerChannel",
    "consumer_reference",
    "is_supported_consumer",
    "DeliveryStep",
    "OrderedDeliveryPipeline",
    "build_steps",
    "DeliveryRendezvous",
    "SLOTS",
    "assign_slot_script",
    "basic_mobile_script",
    "completion_script",
    "parse_slot_assignment",
    "verify_script",
]

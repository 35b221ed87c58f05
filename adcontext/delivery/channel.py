"""
Consumer channel.

The consumer is whatever hosts the script context (an embedded web view,
a headless browser page, a test double). The core only needs to hand it
a script and learn whether evaluation succeeded, plus a signal telling
it the consumer finished loading.
"""

import inspect
import weakref
from typing import Any, Callable, Protocol

from ..errors import UnsupportedConsumerError


class ConsumerChannel(Protocol):

    async def evaluate(self, script: str) -> Any:
        """Evaluate script; raise on evaluation error."""
        ...

    def add_load_listener(self, callback: Callable[[], None]) -> None:
        """Call callback once the consumer has finished loading."""
        ...


def is_supported_consumer(consumer: Any) -> bool:
    evaluate = getattr(consumer, "evaluate", None)
    return evaluate is not None and inspect.iscoroutinefunction(evaluate)


def consumer_reference(consumer: Any) -> "weakref.ReferenceType":
    """
    Weak reference to a supported consumer.

    Raises:
        UnsupportedConsumerError: consumer has no async evaluate() or
            cannot be weakly referenced
    """
    if isinstance(consumer, weakref.ReferenceType):
        return consumer
    if not is_supported_consumer(consumer):
        raise UnsupportedConsumerError(
            f"Unsupported consumer type {type(consumer).__name__}: no async evaluate(script)"
        )
    try:
        return weakref.ref(consumer)
    except TypeError as e:
        raise UnsupportedConsumerError(
            f"Consumer type {type(consumer).__name__} cannot be weakly referenced"
        ) from e

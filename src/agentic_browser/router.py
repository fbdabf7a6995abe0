"""Router — entry point for the workflow layer.

Dispatches a resource/operation pair over a batch of input items, one item
at a time. The registry is injected; the router never creates one.
"""
import logging
from typing import Any, Iterable, Mapping

from .browser.registry import SessionRegistry
from .errors import BrowserError, UnsupportedOperationError
from .operations import OPERATIONS, OperationResult

log = logging.getLogger(__name__)


def resolve_handler(resource: str, operation: str):
    """Return the coroutine function for *resource*/*operation*."""
    handlers = OPERATIONS.get(resource)
    if handlers is None:
        raise UnsupportedOperationError(f'The resource "{resource}" is not supported')
    handler = handlers.get(operation)
    if handler is None:
        raise UnsupportedOperationError(
            f'The operation "{operation}" is not supported for resource "{resource}"'
        )
    return handler


async def run(
    registry: SessionRegistry,
    resource: str,
    operation: str,
    items: Iterable[Mapping[str, Any]],
    *,
    continue_on_fail: bool = False,
) -> list[OperationResult]:
    """Run one operation for every item, in order.

    Args:
        registry: Session registry owning the browsers.
        resource: "session", "navigation", "interaction", "extraction",
            "script" or "chat".
        operation: Operation name within the resource (e.g. "goto").
        items: Flat parameter mappings, one per input item.
        continue_on_fail: When True, a failing item yields
            ``{"error": message}`` and processing moves on to the next
            item; otherwise the first failure propagates.

    Returns:
        One OperationResult per item.
    """
    results: list[OperationResult] = []
    event_logger = registry.event_logger
    for index, params in enumerate(items):
        try:
            handler = resolve_handler(resource, operation)
            results.append(await handler(registry, params))
        except Exception as e:
            kind = e.kind.value if isinstance(e, BrowserError) else type(e).__name__
            if event_logger is not None:
                event_logger.log_operation_failed(resource, operation, index, kind, str(e), continue_on_fail)
            if not continue_on_fail:
                raise
            log.warning("%s.%s failed for item %d (%s): %s", resource, operation, index, kind, e)
            results.append(OperationResult({"error": str(e)}))
    return results

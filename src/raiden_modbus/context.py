"""Single-slot store for the context of the most recently sent request."""

import logging

from .types import RequestContext, RequestDescriptor

logger = logging.getLogger(__name__)


class RequestContextTracker:
    """
    Remembers function code, start address and quantity of the last request sent.
    Overwritten on every send and read (not consumed) on every decode. It is not a
    correlation table: callers must keep at most one request outstanding.
    """

    def __init__(self) -> None:
        self._current: RequestContext | None = None

    def record(self, descriptor: RequestDescriptor, transaction_id: int | None = None) -> RequestContext:
        """Store the context of ``descriptor``; writes record an implied quantity of 1."""
        context = RequestContext(
            function_code=descriptor.function_code,
            start_address=descriptor.start_address,
            quantity=descriptor.effective_quantity,
            transaction_id=transaction_id,
        )
        if self._current is not None:
            logger.debug("Replacing request context %s with %s", self._current, context)
        self._current = context
        return context

    @property
    def current(self) -> RequestContext | None:
        return self._current

    def clear(self) -> None:
        self._current = None

    def __bool__(self) -> bool:
        return self._current is not None

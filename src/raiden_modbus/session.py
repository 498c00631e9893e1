"""ModbusMaster: one-request-at-a-time session tying framing, request context and decoding together."""

import logging
import typing
from typing import Any

from .context import RequestContextTracker
from .decoder import DecodeResult, decode
from .errors import InvalidRequestError, ModbusExceptionError, RaidenModbusError, RequestPendingError
from .framing import TransactionCounter, build_frame, framing_for
from .normalize import normalize_protocol
from .types import ExceptionResult, Frame, Protocol, RequestContext, RequestDescriptor

logger = logging.getLogger(__name__)


class Transport(typing.Protocol):
    """Link that carries one request frame and returns one complete response buffer.

    ``exchange`` raises TransportTimeoutError or TransportDisconnectedError instead of
    returning a partial buffer.
    """

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def exchange(self, frame: Frame) -> bytes: ...


class ModbusMaster:
    """
    Modbus master session for one protocol variant.

    Owns the rolling TCP transaction id and the context of the last request, and
    refuses to build a new request while the previous one is still pending.
    A transport is only needed for ``execute``; ``build_request`` and
    ``handle_response`` work with any caller-driven link.
    """

    def __init__(
        self,
        protocol: Protocol | str = Protocol.TCP,
        transport: Transport | None = None,
        first_transaction_id: int = 1,
    ) -> None:
        self._protocol = normalize_protocol(protocol)
        self._framing = framing_for(self._protocol)
        self._transport = transport
        self._tracker = RequestContextTracker()
        self._transactions = TransactionCounter(first_transaction_id)
        self._pending = False

    @property
    def protocol(self) -> Protocol:
        return self._protocol

    @property
    def context(self) -> RequestContext | None:
        return self._tracker.current

    @property
    def pending(self) -> bool:
        return self._pending

    def build_request(self, descriptor: RequestDescriptor) -> Frame:
        """Frame ``descriptor`` and record its context. Raises RequestPendingError if a response is outstanding."""
        if self._pending:
            raise RequestPendingError("A request is already awaiting its response")
        if descriptor.protocol != self._protocol:
            raise InvalidRequestError(
                "protocol",
                f"Session speaks {self._protocol.value}, request is {descriptor.protocol.value}",
            )
        tid = self._transactions.next() if self._protocol == Protocol.TCP else None
        frame = build_frame(descriptor, tid)
        self._tracker.record(descriptor, tid)
        self._pending = True
        logger.debug("[TX] %s", frame.hex())
        return frame

    def handle_response(self, buffer: bytes) -> DecodeResult:
        """Decode a complete response against the recorded context; clears the pending flag."""
        buffer = bytes(buffer)
        logger.debug("[RX] %s", buffer.hex(" ").upper())
        if not self._pending:
            logger.debug("Response received with no request pending")
        context = self._tracker.current
        echoed = self._framing.transaction_id(buffer)
        if context is not None and echoed is not None and echoed != context.transaction_id:
            # echoed ids are logged, not verified; only one request is ever outstanding
            logger.debug("Transaction id %s echoed for request %s", echoed, context.transaction_id)
        try:
            return decode(buffer, context, self._protocol)
        finally:
            self._pending = False

    def handle_transport_failure(self, error: BaseException | None = None) -> None:
        """Accept a timeout/disconnect signal for the pending request; nothing is decoded."""
        logger.warning("No response for pending request: %s", error or "transport failure")
        self._pending = False

    def reset(self) -> None:
        self._tracker.clear()
        self._pending = False

    def execute(self, descriptor: RequestDescriptor, *, raise_on_exception: bool = False) -> DecodeResult:
        """Send one request over the attached transport and decode its response.

        Transport errors are recorded with ``handle_transport_failure`` and re-raised.
        With ``raise_on_exception`` an exception response raises ModbusExceptionError.
        """
        if self._transport is None:
            raise RaidenModbusError("No transport attached to this session")
        frame = self.build_request(descriptor)
        try:
            buffer = self._transport.exchange(frame)
        except Exception as e:
            self.handle_transport_failure(e)
            raise
        result = self.handle_response(buffer)
        if raise_on_exception and isinstance(result, ExceptionResult):
            raise ModbusExceptionError(result)
        return result

    def connect(self) -> None:
        if self._transport is not None:
            self._transport.connect()

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
        self.reset()

    def __enter__(self) -> "ModbusMaster":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

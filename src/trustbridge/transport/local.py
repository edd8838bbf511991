"""In-process ledger transport.

Implements the LedgerTransport submit/query capability on top of an
EscrowLedgerEngine living in the same process. Every call is bounded by a
timeout; a timeout surfaces as TransportFailureError with
``outcome_unknown=True`` because the engine may already have applied the
operation.

Two optional delays simulate a slow network:
    - latency: before the operation reaches the engine (a timeout here means
      nothing was applied)
    - confirmation_latency: after the engine applied it (a timeout here
      loses the confirmation of an applied operation)
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING, Any

from trustbridge.config import get_settings
from trustbridge.domain.exceptions import TransportFailureError
from trustbridge.domain.ledger_protocol import Receipt
from trustbridge.domain.models import Agreement, canonical_identity, is_null_identity
from trustbridge.domain.operations import (
    MUTATING_OPERATIONS,
    READ_OPERATIONS,
    AcceptAgreement,
    CancelReservation,
    GetAgreement,
    GetBalance,
    GetCustody,
    GetEvents,
    GetReservation,
    ListAgreements,
    Operation,
    RefundAgreement,
    RegisterAgreement,
    ReleaseAgreement,
    Reserve,
)
from trustbridge.logging_config import bind_signer, get_logger

if TYPE_CHECKING:
    from trustbridge.engine.escrow_engine import EscrowLedgerEngine

logger = get_logger(__name__)


class LocalTransport:
    """LedgerTransport bound to one signing identity.

    The identity defaults to ``Settings.identity`` (TRUSTBRIDGE_IDENTITY).
    """

    def __init__(
        self,
        engine: EscrowLedgerEngine,
        identity: str | None = None,
        timeout: float | None = None,
        latency: float = 0.0,
        confirmation_latency: float = 0.0,
    ) -> None:
        settings = get_settings()
        self.identity = canonical_identity(identity if identity is not None else settings.identity)
        if is_null_identity(self.identity):
            raise ValueError("LocalTransport needs a signing identity (set TRUSTBRIDGE_IDENTITY)")
        self._engine = engine
        self._timeout = timeout if timeout is not None else settings.transport_timeout_seconds
        self._latency = latency
        self._confirmation_latency = confirmation_latency

    async def submit(self, operation: Operation) -> Receipt:
        """Apply a mutating operation and return its receipt."""
        if not isinstance(operation, MUTATING_OPERATIONS):
            raise TypeError(f"{operation.name} is not a mutating operation")

        with bind_signer(self.identity, operation.name):
            result = await self._bounded(operation, self._apply)

            events: tuple = ()
            if isinstance(result, Agreement):
                events = tuple(
                    evt for evt in self._engine.events_for(result.id) if evt.new_status == result.status
                )
            receipt = Receipt(
                tx_hash="0x" + uuid.uuid4().hex + uuid.uuid4().hex,
                operation=operation.name,
                result=result,
                events=events,
            )
            logger.debug("transport.submitted", tx_hash=receipt.tx_hash)
        return receipt

    async def query(self, operation: Operation) -> Any:
        """Run a read-only operation."""
        if not isinstance(operation, READ_OPERATIONS):
            raise TypeError(f"{operation.name} is not a read operation")
        with bind_signer(self.identity, operation.name):
            return await self._bounded(operation, self._read)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _bounded(self, operation: Operation, handler) -> Any:
        async def _roundtrip() -> Any:
            if self._latency:
                await asyncio.sleep(self._latency)
            result = await handler(operation)
            if self._confirmation_latency:
                await asyncio.sleep(self._confirmation_latency)
            return result

        try:
            return await asyncio.wait_for(_roundtrip(), timeout=self._timeout)
        except TimeoutError as err:
            logger.warning("transport.timeout", timeout=self._timeout)
            raise TransportFailureError(
                operation.name,
                f"no confirmation within {self._timeout}s",
                outcome_unknown=True,
            ) from err

    async def _apply(self, operation: Operation) -> Any:
        engine = self._engine
        if isinstance(operation, Reserve):
            return await engine.reserve(self.identity, operation.amount)
        if isinstance(operation, CancelReservation):
            return await engine.cancel_reservation(self.identity)
        if isinstance(operation, RegisterAgreement):
            return await engine.register(
                self.identity, operation.provider, operation.amount, operation.description
            )
        if isinstance(operation, AcceptAgreement):
            return await engine.accept(operation.agreement_id, self.identity)
        if isinstance(operation, ReleaseAgreement):
            return await engine.release(operation.agreement_id, self.identity)
        if isinstance(operation, RefundAgreement):
            return await engine.refund(operation.agreement_id, self.identity)
        raise TypeError(f"Unsupported operation: {operation.name}")

    async def _read(self, operation: Operation) -> Any:
        engine = self._engine
        if isinstance(operation, GetAgreement):
            return engine.get(operation.agreement_id)
        if isinstance(operation, ListAgreements):
            return engine.list_for(operation.identity)
        if isinstance(operation, GetBalance):
            return engine.balance_of(operation.identity)
        if isinstance(operation, GetReservation):
            return engine.reservation_of(operation.identity)
        if isinstance(operation, GetCustody):
            if operation.agreement_id is None:
                return engine.custodied_total()
            return engine.custody_for(operation.agreement_id)
        if isinstance(operation, GetEvents):
            return engine.events_for(operation.agreement_id)
        raise TypeError(f"Unsupported operation: {operation.name}")

"""Agreement Client — party-centric API over the escrow ledger.

Coordinates between:
    - Amount scaling (human decimals <-> fixed-point units)
    - The two-step reserve + register creation sequence
    - LedgerTransport submit/query calls signed as the bound identity

A transport timeout means "outcome unknown", not failure. It is logged and
re-raised; retrying a transition that actually went through fails with
InvalidStateError, never applies twice. Only idempotent calls (queries and
the reservation cancel) are retried here, with tenacity backoff.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from trustbridge.config import get_settings
from trustbridge.domain.exceptions import TransportFailureError, TrustBridgeError
from trustbridge.domain.operations import (
    AcceptAgreement,
    CancelReservation,
    GetAgreement,
    GetBalance,
    GetCustody,
    GetEvents,
    ListAgreements,
    RefundAgreement,
    RegisterAgreement,
    ReleaseAgreement,
    Reserve,
)
from trustbridge.logging_config import get_logger
from trustbridge.schemas.agreement import (
    AgreementReceipt,
    AgreementView,
    CreateAgreementResult,
)
from trustbridge.services.amounts import from_fixed_point, to_fixed_point

if TYPE_CHECKING:
    from decimal import Decimal

    from trustbridge.domain.enums import AgreementStatus
    from trustbridge.domain.ledger_protocol import LedgerTransport, Receipt
    from trustbridge.domain.models import Agreement
    from trustbridge.domain.operations import Operation

logger = get_logger(__name__)

_retry_transport = retry(
    retry=retry_if_exception_type(TransportFailureError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, max=2),
    reraise=True,
)


class AgreementClient:
    """Drives agreements on behalf of the transport's signing identity."""

    def __init__(
        self,
        transport: LedgerTransport,
        decimals: int | None = None,
        explorer_url: str | None = None,
    ) -> None:
        self._transport = transport
        self._decimals = get_settings().asset_decimals if decimals is None else decimals
        self._explorer_url = explorer_url.rstrip("/") if explorer_url else None

    @property
    def identity(self) -> str:
        return self._transport.identity

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_agreement(
        self,
        provider: str,
        human_amount: Decimal | int | float | str,
        description: str,
    ) -> CreateAgreementResult:
        """Reserve the funds, then register the agreement as its client.

        If registration fails the reservation is cancelled before the
        original error is re-raised, so funds never stay earmarked without
        an agreement.
        """
        amount = to_fixed_point(human_amount, self._decimals)

        await self._transport.submit(Reserve(amount=amount))
        try:
            receipt = await self._transport.submit(
                RegisterAgreement(provider=provider, amount=amount, description=description)
            )
        except TrustBridgeError as exc:
            logger.warning(
                "agreement.create_failed",
                client=self.identity,
                provider=provider,
                error=exc.code,
                field=exc.field,
            )
            await self._cancel_reservation()
            raise

        agreement: Agreement = receipt.result
        logger.info(
            "agreement.create_confirmed",
            agreement_id=agreement.id,
            tx_hash=receipt.tx_hash,
            amount=from_fixed_point(amount, self._decimals),
        )
        return CreateAgreementResult(
            **self._receipt_fields(agreement, receipt),
            provider=agreement.provider,
            description=agreement.description,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept(self, agreement_id: str) -> AgreementReceipt:
        """Accept an agreement as its provider."""
        return await self._transition(AcceptAgreement(agreement_id=agreement_id))

    async def release(self, agreement_id: str) -> AgreementReceipt:
        """Release custody to the provider as the client."""
        return await self._transition(ReleaseAgreement(agreement_id=agreement_id))

    async def refund(self, agreement_id: str) -> AgreementReceipt:
        """Refund a not-yet-accepted agreement as the client."""
        return await self._transition(RefundAgreement(agreement_id=agreement_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_status(self, agreement_id: str) -> AgreementView:
        agreement = await self._query(GetAgreement(agreement_id=agreement_id))
        return self._view(agreement)

    async def list_agreements(
        self,
        identity: str | None = None,
        status: AgreementStatus | None = None,
    ) -> list[AgreementView]:
        """Agreements of ``identity`` (default: own) in creation order.

        The optional status filter keeps the index order.
        """
        ids = await self._query(ListAgreements(identity=identity or self.identity))
        agreements = await asyncio.gather(
            *(self._query(GetAgreement(agreement_id=i)) for i in ids)
        )
        views = [self._view(a) for a in agreements]
        if status is not None:
            views = [v for v in views if v.status == status]
        return views

    async def get_balance(self, identity: str | None = None) -> str:
        """External balance at human scale."""
        raw = await self._query(GetBalance(identity=identity or self.identity))
        return from_fixed_point(raw, self._decimals)

    async def get_custody(self, agreement_id: str | None = None) -> str:
        """Custody backing one agreement, or everything in custody, at human scale."""
        raw = await self._query(GetCustody(agreement_id=agreement_id))
        return from_fixed_point(raw, self._decimals)

    async def get_history(self, agreement_id: str) -> list[dict]:
        events = await self._query(GetEvents(agreement_id=agreement_id))
        return [evt.to_dict() for evt in events]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _transition(self, operation: Operation) -> AgreementReceipt:
        try:
            receipt = await self._transport.submit(operation)
        except TransportFailureError as exc:
            if exc.outcome_unknown:
                logger.warning(
                    "agreement.outcome_unknown",
                    operation=operation.name,
                    agreement_id=getattr(operation, "agreement_id", None),
                )
            raise
        except TrustBridgeError as exc:
            logger.warning(
                "agreement.transition_rejected",
                operation=operation.name,
                agreement_id=getattr(operation, "agreement_id", None),
                error=exc.code,
                field=exc.field,
            )
            raise

        agreement: Agreement = receipt.result
        logger.info(
            "agreement.transition_confirmed",
            operation=operation.name,
            agreement_id=agreement.id,
            status=agreement.status.value,
            tx_hash=receipt.tx_hash,
        )
        return AgreementReceipt(**self._receipt_fields(agreement, receipt))

    @_retry_transport
    async def _query(self, operation: Operation) -> Any:
        return await self._transport.query(operation)

    @_retry_transport
    async def _submit_cancel(self) -> None:
        await self._transport.submit(CancelReservation())

    async def _cancel_reservation(self) -> None:
        try:
            await self._submit_cancel()
        except TransportFailureError as exc:
            # Funds never left the client; only the earmark is left behind.
            logger.error(
                "reservation.cancel_failed",
                client=self.identity,
                error=exc.code,
                reason=exc.reason,
            )

    def _receipt_fields(self, agreement: Agreement, receipt: Receipt) -> dict:
        return {
            "id": agreement.id,
            "status": agreement.status,
            "amount": from_fixed_point(agreement.amount, self._decimals),
            "amount_raw": agreement.amount,
            "tx_hash": receipt.tx_hash,
            "explorer": f"{self._explorer_url}/tx/{receipt.tx_hash}" if self._explorer_url else None,
        }

    def _view(self, agreement: Agreement) -> AgreementView:
        return AgreementView(
            id=agreement.id,
            client=agreement.client,
            provider=agreement.provider,
            amount=from_fixed_point(agreement.amount, self._decimals),
            amount_raw=agreement.amount,
            description=agreement.description,
            status=agreement.status,
            status_code=agreement.status.code,
            created_at=agreement.created_at,
            updated_at=agreement.updated_at,
        )

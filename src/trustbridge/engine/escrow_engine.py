"""Escrow Ledger Engine — custody and the agreement state machine.

The engine is the single authority over custodied funds. It coordinates:
    - AgreementStateMachine (transition guard, via authorize_transition)
    - AssetLedger (balances and the custody account)
    - The agreement map, the party index and the audit event log

Mutating operations serialize on a per-key asyncio.Lock (agreement id for
transitions, client identity for reserve/register). Inside a lock the
check-then-update runs without awaiting, and records are immutable values
swapped in one assignment, so reads never see a partially applied change.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from trustbridge.domain.enums import AgreementStatus, EventType, Role
from trustbridge.domain.exceptions import (
    AgreementNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidProviderError,
)
from trustbridge.domain.models import (
    Agreement,
    AgreementEvent,
    canonical_identity,
    is_null_identity,
)
from trustbridge.domain.state_machine import authorize_transition
from trustbridge.engine.identifiers import derive_agreement_id
from trustbridge.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from trustbridge.domain.ledger_protocol import AssetLedger

logger = get_logger(__name__)

CUSTODY_ACCOUNT = "trustbridge:custody"


def _normalize_id(agreement_id: str) -> str:
    return agreement_id.strip().lower()


class EscrowLedgerEngine:
    """Holds custodied funds and enforces the agreement lifecycle."""

    def __init__(
        self,
        assets: AssetLedger,
        custodian: str = CUSTODY_ACCOUNT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._assets = assets
        self._custodian = custodian
        self._clock = clock or (lambda: datetime.now(UTC))
        self._last_now: datetime | None = None

        self._agreements: dict[str, Agreement] = {}
        self._party_index: dict[str, list[str]] = {}
        self._reservations: dict[str, int] = {}
        self._events: dict[str, list[AgreementEvent]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def custodian(self) -> str:
        return self._custodian

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    async def reserve(self, client: str, amount: int) -> int:
        """Earmark ``amount`` of the client's balance for the next registration.

        Funds stay with the client until register() takes custody of them.
        A new reservation replaces the previous one.
        """
        client = canonical_identity(client)
        self._check_amount(amount)

        async with self._lock_for("party", client):
            self._reservations[client] = amount

        logger.info("reservation.set", client=client, amount=amount)
        return amount

    async def cancel_reservation(self, client: str) -> None:
        """Return any earmarked funds to reservable state."""
        client = canonical_identity(client)
        async with self._lock_for("party", client):
            released = self._reservations.pop(client, 0)

        logger.info("reservation.cancelled", client=client, amount=released)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        client: str,
        provider: str,
        amount: int,
        description: str,
    ) -> Agreement:
        """Create a PENDING agreement and take custody of its funds atomically."""
        client = canonical_identity(client)
        provider = canonical_identity(provider)

        self._check_amount(amount)
        if is_null_identity(provider):
            raise InvalidProviderError(provider, "provider is the null identity")
        if provider == client:
            raise InvalidProviderError(provider, "provider cannot be the client")

        async with self._lock_for("party", client):
            reserved = self._reservations.get(client, 0)
            if reserved < amount:
                raise InsufficientFundsError(client, amount, reserved, field="reservation")
            available = self._assets.balance_of(client)
            if available < amount:
                raise InsufficientFundsError(client, amount, available)

            now = self._now()
            agreement_id = derive_agreement_id(
                client,
                provider,
                amount,
                self._assets.next_sequence(),
                int(now.timestamp() * 1_000_000_000),
            )
            self._assets.move(client, self._custodian, amount)

            remaining = reserved - amount
            if remaining:
                self._reservations[client] = remaining
            else:
                self._reservations.pop(client, None)

            agreement = Agreement(
                id=agreement_id,
                client=client,
                provider=provider,
                amount=amount,
                description=description,
                status=AgreementStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._agreements[agreement_id] = agreement
            for party in (client, provider):
                self._party_index.setdefault(party, []).append(agreement_id)
            self._record_event(agreement, EventType.AGREEMENT_CREATED, None, client, now)

        logger.info(
            "agreement.created",
            agreement_id=agreement_id,
            client=client,
            provider=provider,
            amount=amount,
        )
        return agreement

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept(self, agreement_id: str, caller: str) -> Agreement:
        """Provider accepts a PENDING agreement. PENDING -> ACTIVE."""
        return await self._transition(
            agreement_id, caller, "provider_accepts", EventType.AGREEMENT_ACCEPTED, payee=None
        )

    async def release(self, agreement_id: str, caller: str) -> Agreement:
        """Client pays out custody to the provider. ACTIVE -> COMPLETED."""
        return await self._transition(
            agreement_id, caller, "client_releases", EventType.AGREEMENT_RELEASED, payee=Role.PROVIDER
        )

    async def refund(self, agreement_id: str, caller: str) -> Agreement:
        """Client takes back custody before acceptance. PENDING -> REFUNDED."""
        return await self._transition(
            agreement_id, caller, "client_refunds", EventType.AGREEMENT_REFUNDED, payee=Role.CLIENT
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def get(self, agreement_id: str) -> Agreement:
        """Get an agreement or raise AgreementNotFoundError."""
        agreement = self._agreements.get(_normalize_id(agreement_id))
        if agreement is None:
            raise AgreementNotFoundError(agreement_id)
        return agreement

    def list_for(self, identity: str) -> list[str]:
        """Agreement ids the identity takes part in, in creation order."""
        return list(self._party_index.get(canonical_identity(identity), ()))

    def events_for(self, agreement_id: str) -> list[AgreementEvent]:
        """Audit trail of an agreement, oldest first."""
        agreement = self.get(agreement_id)
        return list(self._events.get(agreement.id, ()))

    def balance_of(self, identity: str) -> int:
        return self._assets.balance_of(canonical_identity(identity))

    def reservation_of(self, identity: str) -> int:
        return self._reservations.get(canonical_identity(identity), 0)

    def custodied_total(self) -> int:
        return self._assets.balance_of(self._custodian)

    def custody_for(self, agreement_id: str) -> int:
        """Funds currently backing one agreement."""
        agreement = self.get(agreement_id)
        return agreement.amount if agreement.status.holds_custody else 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _transition(
        self,
        agreement_id: str,
        caller: str,
        event_name: str,
        event_type: EventType,
        payee: Role | None,
    ) -> Agreement:
        caller = canonical_identity(caller)
        agreement_id = self.get(agreement_id).id

        async with self._lock_for("agreement", agreement_id):
            agreement = self._agreements[agreement_id]
            new_status = authorize_transition(agreement, caller, event_name)

            updated = agreement.with_status(new_status, self._now())
            if payee is not None:
                self._assets.move(self._custodian, agreement.party(payee), agreement.amount)
            self._agreements[agreement_id] = updated
            self._record_event(updated, event_type, agreement.status, caller, updated.updated_at)

        logger.info(
            "agreement.transitioned",
            agreement_id=agreement_id,
            transition=event_name,
            old_status=agreement.status.value,
            new_status=updated.status.value,
            actor=caller,
        )
        return updated

    def _record_event(
        self,
        agreement: Agreement,
        event_type: EventType,
        old_status: AgreementStatus | None,
        actor: str,
        at: datetime,
    ) -> None:
        self._events.setdefault(agreement.id, []).append(
            AgreementEvent(
                agreement_id=agreement.id,
                event_type=event_type,
                old_status=old_status,
                new_status=agreement.status,
                actor=actor,
                amount=agreement.amount,
                created_at=at,
            )
        )

    def _lock_for(self, scope: str, key: str) -> asyncio.Lock:
        return self._locks.setdefault(f"{scope}:{key}", asyncio.Lock())

    def _now(self) -> datetime:
        """Clock reading that never goes backwards."""
        now = self._clock()
        if self._last_now is not None and now < self._last_now:
            now = self._last_now
        self._last_now = now
        return now

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"Amount must be a fixed-point int, got {type(amount).__name__}")
        if amount <= 0:
            raise InvalidAmountError(amount)

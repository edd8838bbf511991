"""Agreement records and identity helpers.

Records are frozen dataclasses: a status change produces a new record that
replaces the old one in a single assignment, so a reader never observes a
half-updated agreement.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from trustbridge.domain.enums import AgreementStatus, EventType, Role

if TYPE_CHECKING:
    from datetime import datetime

ZERO_ADDRESS = "0x" + "00" * 20


def canonical_identity(identity: str | None) -> str:
    """Normalize an identity for equality checks.

    Hex addresses compare case-insensitively (EIP-55 checksums only differ
    in case), so they are lowered. Anything else is kept as is, minus
    surrounding whitespace.
    """
    if identity is None:
        return ""
    value = identity.strip()
    if value[:2].lower() == "0x":
        return value.lower()
    return value


def is_null_identity(identity: str | None) -> bool:
    value = canonical_identity(identity)
    return value == "" or value == ZERO_ADDRESS


@dataclass(frozen=True)
class Agreement:
    """An escrow agreement between a client and a provider.

    Attributes:
        id: 0x-prefixed 32-byte hex identifier.
        client: Funding party.
        provider: Fulfilling party.
        amount: Fixed-point (10^6 scale) amount held in custody.
        description: Free-text label.
        status: Current lifecycle status.
        created_at: Registration time (UTC).
        updated_at: Time of the last status change (UTC).
    """

    id: str
    client: str
    provider: str
    amount: int
    description: str
    status: AgreementStatus
    created_at: datetime
    updated_at: datetime

    def party(self, role: Role) -> str:
        return self.client if role is Role.CLIENT else self.provider

    def with_status(self, status: AgreementStatus, at: datetime) -> Agreement:
        """Return a copy in the new status; updated_at never moves backwards."""
        return replace(self, status=status, updated_at=max(at, self.updated_at))


@dataclass(frozen=True)
class AgreementEvent:
    """One entry of an agreement's append-only audit trail."""

    agreement_id: str
    event_type: EventType
    old_status: AgreementStatus | None
    new_status: AgreementStatus
    actor: str
    amount: int
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "agreement_id": self.agreement_id,
            "event_type": self.event_type.value,
            "old_status": self.old_status.value if self.old_status else None,
            "new_status": self.new_status.value,
            "actor": self.actor,
            "amount": self.amount,
            "created_at": self.created_at.isoformat(),
        }

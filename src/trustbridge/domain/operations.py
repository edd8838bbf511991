"""Operation envelopes that cross the ledger boundary.

Mutating operations go through ``LedgerTransport.submit``; read operations
go through ``LedgerTransport.query``. Amounts are always fixed-point
integers here: human-readable decimals never cross this boundary. The caller
identity is not part of an envelope, the transport signs as its bound
account.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Operation:
    """Base class for all envelopes."""

    @property
    def name(self) -> str:
        return type(self).__name__


# --- Mutating ---


@dataclass(frozen=True)
class Reserve(Operation):
    amount: int


@dataclass(frozen=True)
class CancelReservation(Operation):
    pass


@dataclass(frozen=True)
class RegisterAgreement(Operation):
    provider: str
    amount: int
    description: str


@dataclass(frozen=True)
class AcceptAgreement(Operation):
    agreement_id: str


@dataclass(frozen=True)
class ReleaseAgreement(Operation):
    agreement_id: str


@dataclass(frozen=True)
class RefundAgreement(Operation):
    agreement_id: str


# --- Read ---


@dataclass(frozen=True)
class GetAgreement(Operation):
    agreement_id: str


@dataclass(frozen=True)
class ListAgreements(Operation):
    identity: str


@dataclass(frozen=True)
class GetBalance(Operation):
    identity: str


@dataclass(frozen=True)
class GetReservation(Operation):
    identity: str


@dataclass(frozen=True)
class GetCustody(Operation):
    """Custody backing one agreement, or the custodied total when no id is given."""

    agreement_id: str | None = None


@dataclass(frozen=True)
class GetEvents(Operation):
    agreement_id: str


MUTATING_OPERATIONS = (
    Reserve,
    CancelReservation,
    RegisterAgreement,
    AcceptAgreement,
    ReleaseAgreement,
    RefundAgreement,
)

READ_OPERATIONS = (
    GetAgreement,
    ListAgreements,
    GetBalance,
    GetReservation,
    GetCustody,
    GetEvents,
)

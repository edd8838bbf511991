"""Ledger collaborator protocols.

Two seams separate the escrow core from the outside world:

    - AssetLedger: moves the custodied asset between identities and supplies
      the strictly increasing sequence used for identifier derivation.
    - LedgerTransport: the submit/query capability the Agreement Client talks
      to. A real deployment puts network RPC and signing behind it.

Both are Protocols (structural subtyping), so implementations don't need to
inherit from anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from trustbridge.domain.models import AgreementEvent
    from trustbridge.domain.operations import Operation


@dataclass(frozen=True)
class Receipt:
    """Confirmation of a submitted operation.

    Attributes:
        tx_hash: Confirmation handle for the submission.
        operation: Name of the operation envelope.
        result: Value produced by the operation (an Agreement for register
            and transitions, None otherwise).
        events: Audit events the operation emitted.
    """

    tx_hash: str
    operation: str
    result: Any = None
    events: tuple[AgreementEvent, ...] = field(default_factory=tuple)


@runtime_checkable
class AssetLedger(Protocol):
    """Balance book for the custodied asset (fixed-point integer units)."""

    def balance_of(self, identity: str) -> int:
        """Return the spendable balance of an identity."""
        ...

    def move(self, source: str, destination: str, amount: int) -> None:
        """Move funds, raising InsufficientFundsError with no side effect when short."""
        ...

    def next_sequence(self) -> int:
        """Return a strictly increasing logical counter value."""
        ...


@runtime_checkable
class LedgerTransport(Protocol):
    """Submit/query capability of the custodian.

    Concrete implementations:
        - transport/local.py (in-process, dispatches to EscrowLedgerEngine)
    """

    identity: str

    async def submit(self, operation: Operation) -> Receipt:
        """Submit a mutating operation signed as ``identity``."""
        ...

    async def query(self, operation: Operation) -> Any:
        """Run a read-only operation."""
        ...

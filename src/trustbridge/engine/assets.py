"""In-memory asset ledger.

Stands in for the token contract: a balance per identity plus the logical
sequence counter that replaces the block number in identifier derivation.
Identities are canonicalized on every call, so a wallet seeded under its
checksummed address is the same account the engine debits.
"""

from __future__ import annotations

import itertools

from trustbridge.domain.exceptions import InsufficientFundsError, InvalidAmountError
from trustbridge.domain.models import canonical_identity
from trustbridge.logging_config import get_logger

logger = get_logger(__name__)


class InMemoryAssetLedger:
    """Balance book satisfying the AssetLedger protocol."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = {}
        self._sequence = itertools.count(1)
        for identity, amount in (balances or {}).items():
            self.deposit(identity, amount)

    def balance_of(self, identity: str) -> int:
        return self._balances.get(canonical_identity(identity), 0)

    def deposit(self, identity: str, amount: int) -> None:
        """Credit funds from outside the system (faucet / on-ramp)."""
        if amount <= 0:
            raise InvalidAmountError(amount)
        identity = canonical_identity(identity)
        self._balances[identity] = self.balance_of(identity) + amount
        logger.debug("assets.deposit", identity=identity, amount=amount)

    def move(self, source: str, destination: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError(amount)
        source = canonical_identity(source)
        destination = canonical_identity(destination)
        available = self.balance_of(source)
        if available < amount:
            raise InsufficientFundsError(source, amount, available)
        self._balances[source] = available - amount
        self._balances[destination] = self.balance_of(destination) + amount

    def next_sequence(self) -> int:
        return next(self._sequence)

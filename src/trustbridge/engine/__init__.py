"""Escrow Ledger Engine — custody, agreement records and the transition guard."""

from trustbridge.engine.assets import InMemoryAssetLedger
from trustbridge.engine.escrow_engine import CUSTODY_ACCOUNT, EscrowLedgerEngine
from trustbridge.engine.identifiers import derive_agreement_id

__all__ = [
    "CUSTODY_ACCOUNT",
    "EscrowLedgerEngine",
    "InMemoryAssetLedger",
    "derive_agreement_id",
]

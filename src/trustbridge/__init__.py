"""TrustBridge — two-party escrow agreements held by a neutral custodian."""

from trustbridge.domain.enums import AgreementStatus
from trustbridge.engine import EscrowLedgerEngine, InMemoryAssetLedger
from trustbridge.services.agreement_client import AgreementClient
from trustbridge.transport.local import LocalTransport

__version__ = "0.1.0"
__all__ = [
    "AgreementClient",
    "AgreementStatus",
    "EscrowLedgerEngine",
    "InMemoryAssetLedger",
    "LocalTransport",
]

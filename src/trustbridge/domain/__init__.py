"""Domain layer — pure business logic with no transport or I/O dependencies."""

from trustbridge.domain.enums import AgreementStatus, EventType, Role
from trustbridge.domain.exceptions import (
    AgreementNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidProviderError,
    InvalidStateError,
    NotAuthorizedError,
    TransportFailureError,
    TrustBridgeError,
)
from trustbridge.domain.ledger_protocol import AssetLedger, LedgerTransport, Receipt
from trustbridge.domain.models import (
    ZERO_ADDRESS,
    Agreement,
    AgreementEvent,
    canonical_identity,
    is_null_identity,
)
from trustbridge.domain.state_machine import (
    AgreementStateMachine,
    authorize_transition,
    validate_transition,
)

__all__ = [
    "AgreementStatus",
    "EventType",
    "Role",
    "TrustBridgeError",
    "AgreementNotFoundError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "InvalidProviderError",
    "InvalidStateError",
    "NotAuthorizedError",
    "TransportFailureError",
    "AssetLedger",
    "LedgerTransport",
    "Receipt",
    "ZERO_ADDRESS",
    "Agreement",
    "AgreementEvent",
    "canonical_identity",
    "is_null_identity",
    "AgreementStateMachine",
    "authorize_transition",
    "validate_transition",
]

"""Domain exceptions for TrustBridge.

These exceptions are framework-agnostic and represent business rule
violations. Each carries a machine-readable ``code`` and the offending
``field`` so callers can surface exactly what was wrong with the request.
Only TransportFailureError is retryable as-is.
"""

from __future__ import annotations


class TrustBridgeError(Exception):
    """Base exception for all domain errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str = "TRUSTBRIDGE_ERROR",
        field: str | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "field": self.field, "message": self.message}


# --- Request Validation Errors ---


class InvalidAmountError(TrustBridgeError):
    """Raised when an amount is zero or negative."""

    def __init__(self, amount: object, field: str = "amount") -> None:
        super().__init__(
            message=f"Amount must be positive, got {amount}",
            code="INVALID_AMOUNT",
            field=field,
        )
        self.amount = amount


class InvalidProviderError(TrustBridgeError):
    """Raised when the provider is the null identity or the client itself."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid provider {provider!r}: {reason}",
            code="INVALID_PROVIDER",
            field="provider",
        )
        self.provider = provider
        self.reason = reason


class InsufficientFundsError(TrustBridgeError):
    """Raised when a balance or reservation does not cover the amount."""

    def __init__(self, identity: str, required: int, available: int, field: str = "balance") -> None:
        super().__init__(
            message=(
                f"Insufficient {field} for {identity}: "
                f"required {required}, available {available}"
            ),
            code="INSUFFICIENT_FUNDS",
            field=field,
        )
        self.identity = identity
        self.required = required
        self.available = available


# --- Agreement Errors ---


class AgreementNotFoundError(TrustBridgeError):
    """Raised when an agreement ID does not exist."""

    def __init__(self, agreement_id: str) -> None:
        super().__init__(
            message=f"Agreement not found: {agreement_id}",
            code="NOT_FOUND",
            field="id",
        )
        self.agreement_id = agreement_id


class NotAuthorizedError(TrustBridgeError):
    """Raised when the caller is not the party required for a transition.

    Example: a client trying to accept its own agreement.
    """

    def __init__(self, agreement_id: str, caller: str, required_role: str) -> None:
        super().__init__(
            message=f"{caller} is not the {required_role} of agreement {agreement_id}",
            code="NOT_AUTHORIZED",
            field="caller",
        )
        self.agreement_id = agreement_id
        self.caller = caller
        self.required_role = required_role


# --- State Machine Errors ---


class InvalidStateError(TrustBridgeError):
    """Raised when a transition is not allowed from the current status.

    Example: ACTIVE -> refund (refunds are only possible while PENDING).
    """

    def __init__(self, current_state: str, attempted: str, agreement_id: str | None = None) -> None:
        super().__init__(
            message=f"Invalid state transition: {attempted} not allowed from {current_state}",
            code="INVALID_STATE",
            field="status",
        )
        self.current_state = current_state
        self.attempted = attempted
        self.agreement_id = agreement_id


# --- Transport Errors ---


class TransportFailureError(TrustBridgeError):
    """Raised when the ledger transport could not complete a call.

    When ``outcome_unknown`` is set the operation may or may not have been
    applied; a retried transition then fails with InvalidStateError if the
    first attempt went through.
    """

    retryable = True

    def __init__(self, operation: str, reason: str, outcome_unknown: bool = False) -> None:
        super().__init__(
            message=f"Transport failure during {operation}: {reason}",
            code="TRANSPORT_FAILURE",
            field="operation",
        )
        self.operation = operation
        self.reason = reason
        self.outcome_unknown = outcome_unknown

"""Domain enumerations for TrustBridge.

These enums define the canonical states, roles and audit event types used
throughout the escrow core. They are framework-agnostic.
"""

import enum


class AgreementStatus(enum.StrEnum):
    """Lifecycle states of an escrow agreement.

    The member order matches the custodian's numeric status codes (0-4).
    Transitions are enforced by AgreementStateMachine, see
    domain/state_machine.py for the transition table.
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REFUNDED = "REFUNDED"
    DISPUTED = "DISPUTED"

    @property
    def code(self) -> int:
        """Numeric status code as stored by the custodian."""
        return list(AgreementStatus).index(self)

    @classmethod
    def from_code(cls, code: int) -> "AgreementStatus":
        members = list(cls)
        if not 0 <= code < len(members):
            raise ValueError(f"Unknown status code: {code}")
        return members[code]

    @property
    def holds_custody(self) -> bool:
        """Whether an agreement in this status is backed by custodied funds."""
        return self in (AgreementStatus.PENDING, AgreementStatus.ACTIVE)


class Role(enum.StrEnum):
    """Party roles that may drive a transition."""

    CLIENT = "client"
    PROVIDER = "provider"


class EventType(enum.StrEnum):
    """Types of audit events appended to an agreement's event log.

    Every state change produces exactly one event.
    """

    AGREEMENT_CREATED = "AGREEMENT_CREATED"
    AGREEMENT_ACCEPTED = "AGREEMENT_ACCEPTED"
    AGREEMENT_RELEASED = "AGREEMENT_RELEASED"
    AGREEMENT_REFUNDED = "AGREEMENT_REFUNDED"

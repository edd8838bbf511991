"""Agreement State Machine Guard.

Uses python-statemachine to enforce legal status transitions at the domain
level. No matter what the client or transport asks for, an illegal
transition (e.g. ACTIVE -> REFUNDED) raises before any custody moves.

Transition table:
    PENDING  -> ACTIVE     (provider_accepts, by provider)
    PENDING  -> REFUNDED   (client_refunds,   by client)
    ACTIVE   -> COMPLETED  (client_releases,  by client)

DISPUTED is a declared status with no producing transition and no exit, so
it is not part of the machine graph. Any event requested from DISPUTED is
rejected by authorize_transition.

Only the client can ever release or refund. Once a provider has accepted,
a client that never releases leaves the funds locked; that asymmetry is the
documented behaviour and is kept as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from trustbridge.domain.enums import AgreementStatus, Role
from trustbridge.domain.exceptions import InvalidStateError, NotAuthorizedError

if TYPE_CHECKING:
    from trustbridge.domain.models import Agreement


class AgreementStateMachine(StateMachine):
    """State machine that guards agreement lifecycle transitions.

    Usage:
        sm = AgreementStateMachine(current_status="PENDING")
        sm.provider_accepts()  # transitions to ACTIVE
        sm.status              # "ACTIVE"
    """

    # --- States ---
    PENDING = State("PENDING", initial=True)
    ACTIVE = State("ACTIVE")
    COMPLETED = State("COMPLETED", final=True)
    REFUNDED = State("REFUNDED", final=True)

    # --- Events / Transitions ---
    provider_accepts = PENDING.to(ACTIVE)
    client_refunds = PENDING.to(REFUNDED)
    client_releases = ACTIVE.to(COMPLETED)

    def __init__(self, current_status: str = "PENDING") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current AgreementStatus value (e.g. "ACTIVE").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches AgreementStatus)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.name for event in self.allowed_events]


@dataclass(frozen=True)
class TransitionRule:
    """Who may fire an event, and the audit label it is reported under."""

    role: Role
    action: str


TRANSITION_RULES: dict[str, TransitionRule] = {
    "provider_accepts": TransitionRule(role=Role.PROVIDER, action="accept"),
    "client_releases": TransitionRule(role=Role.CLIENT, action="release"),
    "client_refunds": TransitionRule(role=Role.CLIENT, action="refund"),
}

GUARDED_STATUSES = frozenset(
    {
        AgreementStatus.PENDING,
        AgreementStatus.ACTIVE,
        AgreementStatus.COMPLETED,
        AgreementStatus.REFUNDED,
    }
)


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns
    the resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = AgreementStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_name not in TRANSITION_RULES or event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status


def authorize_transition(agreement: Agreement, caller: str, event_name: str) -> AgreementStatus:
    """Map (status, caller, role) to the next status or a domain error.

    The caller is checked against the party of record first, then the
    status, so a repeated call by the right party reports InvalidStateError.

    Raises:
        NotAuthorizedError: caller is not the party the event requires.
        InvalidStateError: the event cannot fire from the current status.
        ValueError: unknown event name.
    """
    rule = TRANSITION_RULES.get(event_name)
    if rule is None:
        raise ValueError(f"Unknown event '{event_name}'")

    if agreement.party(rule.role) != caller:
        raise NotAuthorizedError(agreement.id, caller, rule.role.value)

    if agreement.status not in GUARDED_STATUSES:
        raise InvalidStateError(agreement.status.value, rule.action, agreement.id)

    try:
        new_status = validate_transition(agreement.status.value, event_name)
    except TransitionNotAllowed as err:
        raise InvalidStateError(agreement.status.value, rule.action, agreement.id) from err
    return AgreementStatus(new_status)

# backend/scheduler/lifecycle.py
"""Appointment status state machine.

Transitions live in a lookup table keyed by ``(current, requested, relation)``
instead of nested role checks, so the set of legal moves can be read (and
tested) in one place. Reschedule is modelled as a request for ``PENDING``,
which is the only way back into that state.
"""
import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import AuthorizationError, InvalidTransitionError, ValidationError


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_blocking(self) -> bool:
        return self in BLOCKING_STATUSES


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW}
)
BLOCKING_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})

# Statuses a client may request through the status endpoint.
REQUESTABLE_STATUSES = frozenset(
    {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
    }
)


class ActorRelation(str, enum.Enum):
    OWNER = "owner"
    VETERINARIAN = "veterinarian"
    NONE = "none"


def relation_of(actor_id: str, owner_id: str, veterinarian_id: str) -> ActorRelation:
    if actor_id == veterinarian_id:
        return ActorRelation.VETERINARIAN
    if actor_id == owner_id:
        return ActorRelation.OWNER
    return ActorRelation.NONE


@dataclass(frozen=True)
class TransitionRule:
    target: AppointmentStatus
    timestamp_field: Optional[str]
    notification_type: str
    message: str


_STATUS_CHANGE = "appointment_status_change"

_RULES = {
    AppointmentStatus.CONFIRMED: TransitionRule(
        AppointmentStatus.CONFIRMED, "confirmed_at", _STATUS_CHANGE,
        "Your appointment has been confirmed",
    ),
    AppointmentStatus.CANCELLED: TransitionRule(
        AppointmentStatus.CANCELLED, "cancelled_at", _STATUS_CHANGE,
        "Your appointment has been cancelled",
    ),
    AppointmentStatus.COMPLETED: TransitionRule(
        AppointmentStatus.COMPLETED, "completed_at", _STATUS_CHANGE,
        "Your appointment has been completed",
    ),
    AppointmentStatus.NO_SHOW: TransitionRule(
        AppointmentStatus.NO_SHOW, None, _STATUS_CHANGE,
        "You were marked as no-show for your appointment",
    ),
    AppointmentStatus.PENDING: TransitionRule(
        AppointmentStatus.PENDING, "rescheduled_at", "appointment_rescheduled",
        "Your appointment has been rescheduled",
    ),
}

_VET_ONLY = (ActorRelation.VETERINARIAN,)
_EITHER_PARTY = (ActorRelation.OWNER, ActorRelation.VETERINARIAN)

# requested status -> who may request it (from any non-terminal status)
_PERMISSIONS = {
    AppointmentStatus.CONFIRMED: _VET_ONLY,
    AppointmentStatus.COMPLETED: _VET_ONLY,
    AppointmentStatus.NO_SHOW: _VET_ONLY,
    AppointmentStatus.CANCELLED: _EITHER_PARTY,
    AppointmentStatus.PENDING: _EITHER_PARTY,
}

TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus, ActorRelation], TransitionRule] = {
    (current, requested, relation): _RULES[requested]
    for current in BLOCKING_STATUSES
    for requested, relations in _PERMISSIONS.items()
    for relation in relations
}


def plan_transition(
    current: AppointmentStatus,
    requested: AppointmentStatus,
    relation: ActorRelation,
) -> TransitionRule:
    """Resolve the rule for a requested move, or raise why it is refused."""
    if relation is ActorRelation.NONE:
        raise AuthorizationError()

    rule = TRANSITIONS.get((current, requested, relation))
    if rule is not None:
        return rule

    if current.is_terminal:
        raise InvalidTransitionError(
            f"Appointment is already {current.value} and can no longer change"
        )
    if any(key[:2] == (current, requested) for key in TRANSITIONS):
        raise AuthorizationError(
            "Only veterinarian can perform this action", code="VET_ONLY_ACTION"
        )
    raise InvalidTransitionError(
        f"Cannot move appointment from {current.value} to {requested.value}"
    )


def parse_requested_status(value) -> AppointmentStatus:
    """Validate a client-supplied status before it reaches the state machine."""
    try:
        status = AppointmentStatus(value)
    except ValueError:
        raise ValidationError("Invalid status", code="INVALID_STATUS") from None
    if status not in REQUESTABLE_STATUSES:
        raise ValidationError("Invalid status", code="INVALID_STATUS")
    return status

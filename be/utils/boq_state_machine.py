"""
BOQ Approval State Machine

The lifecycle is an explicit transition table; any move that is not listed
is rejected. ``admin`` may perform every listed transition, other roles only
the ones naming them.

    Pending           -> Pending Purchase   coordinator
    Pending           -> Rejected           purchase
    Pending Purchase  -> Pending Approval   purchase
    Pending Purchase  -> Rejected           purchase
    Pending Approval  -> Approved           admin
    Pending Approval  -> Rejected           admin
    Approved          -> Installed          technician
    Installed         -> Completed          admin

Rejected and Completed are absorbing.
"""

from dataclasses import dataclass
from typing import List, Optional

from utils.pricing import is_pending

PENDING = "Pending"
PENDING_PURCHASE = "Pending Purchase"
PENDING_APPROVAL = "Pending Approval"
APPROVED = "Approved"
INSTALLED = "Installed"
COMPLETED = "Completed"
REJECTED = "Rejected"

STATES = [PENDING, PENDING_PURCHASE, PENDING_APPROVAL, APPROVED, INSTALLED, COMPLETED, REJECTED]
TERMINAL_STATES = frozenset({COMPLETED, REJECTED})

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Transition:
    source: str
    target: str
    required_role: str


TRANSITIONS: List[Transition] = [
    Transition(PENDING, PENDING_PURCHASE, "coordinator"),
    Transition(PENDING, REJECTED, "purchase"),
    Transition(PENDING_PURCHASE, PENDING_APPROVAL, "purchase"),
    Transition(PENDING_PURCHASE, REJECTED, "purchase"),
    Transition(PENDING_APPROVAL, APPROVED, ADMIN_ROLE),
    Transition(PENDING_APPROVAL, REJECTED, ADMIN_ROLE),
    Transition(APPROVED, INSTALLED, "technician"),
    Transition(INSTALLED, COMPLETED, ADMIN_ROLE),
]


class TransitionError(Exception):
    """Raised for a transition that is not in the table."""


class TransitionForbidden(TransitionError):
    """Raised when the transition exists but the role may not perform it."""


def find_transition(source: str, target: str) -> Optional[Transition]:
    for transition in TRANSITIONS:
        if transition.source == source and transition.target == target:
            return transition
    return None


def role_allowed(transition: Transition, role: str) -> bool:
    return role == ADMIN_ROLE or role == transition.required_role


def validate_transition(source: str, target: str, role: str) -> Transition:
    if target not in STATES:
        raise TransitionError(f"Unknown state '{target}'")
    transition = find_transition(source, target)
    if transition is None:
        raise TransitionError(f"Cannot move a BOQ from '{source}' to '{target}'")
    if not role_allowed(transition, role):
        raise TransitionForbidden(
            f"Role '{role}' may not move a BOQ from '{source}' to '{target}'"
        )
    return transition


def available_transitions(source: str, role: str) -> List[str]:
    """Targets the given role may choose from ``source``."""
    return [
        t.target for t in TRANSITIONS
        if t.source == source and role_allowed(t, role)
    ]


def commits_prices(source: str, target: str) -> bool:
    """True when the move takes the BOQ out of the negotiable states towards approval."""
    return is_pending(source) and not is_pending(target) and target != REJECTED

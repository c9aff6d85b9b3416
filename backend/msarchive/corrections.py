"""
Correction review lifecycle.

    pending -> reviewed -> accepted | rejected
    pending -> accepted | rejected

Accepted and rejected are terminal by convention. The loose mode (the
default) accepts any recognised status so editors can fix a mis-click;
strict mode refuses moves back to pending and moves out of a terminal state.
"""
from datetime import datetime, timezone
from typing import Optional

from msarchive.models import Correction

PENDING = "pending"
REVIEWED = "reviewed"
ACCEPTED = "accepted"
REJECTED = "rejected"

CORRECTION_STATUSES = (PENDING, REVIEWED, ACCEPTED, REJECTED)
TERMINAL_STATUSES = frozenset({ACCEPTED, REJECTED})

ALLOWED_TRANSITIONS = {
    PENDING: frozenset({REVIEWED, ACCEPTED, REJECTED}),
    REVIEWED: frozenset({ACCEPTED, REJECTED}),
    ACCEPTED: frozenset(),
    REJECTED: frozenset(),
}


class InvalidStatusError(ValueError):
    """Target status is not one of the recognised values."""


class InvalidTransitionError(ValueError):
    """Move between two recognised statuses that strict mode forbids."""


def validate_transition(current: str, target: str, strict: bool = False) -> None:
    if target not in CORRECTION_STATUSES:
        raise InvalidStatusError(target)
    if not strict or current == target:
        return
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"{current} -> {target}")


def apply_review(
    correction: Correction,
    status: str,
    notes: Optional[str] = None,
    reviewed_by: Optional[str] = None,
    strict: bool = False,
) -> Correction:
    """
    Move a correction to ``status`` and stamp the review time. The correction
    is left untouched when the transition is refused.
    """
    validate_transition(correction.status, status, strict=strict)

    correction.status = status
    correction.reviewed_at = datetime.now(timezone.utc)
    if notes:
        correction.notes = notes
    if reviewed_by:
        correction.reviewed_by = reviewed_by
    return correction

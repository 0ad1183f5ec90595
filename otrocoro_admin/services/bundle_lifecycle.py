"""
Bundle lifecycle rules

Status transitions an admin may request, and the time-driven transitions
(scheduled -> active at start_date, scheduled/active -> expired at end_date).
Time-driven transitions are evaluated when a bundle is read; sync_schedules in
the service persists them.
"""
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from otrocoro_admin.core.exceptions import InvalidStatusTransitionError
from otrocoro_admin.core.utils import as_utc, utcnow
from otrocoro_admin.schemas.bundle import Bundle, BundleStatus

ALLOWED_TRANSITIONS: Dict[BundleStatus, FrozenSet[BundleStatus]] = {
    BundleStatus.DRAFT: frozenset({BundleStatus.ACTIVE, BundleStatus.SCHEDULED, BundleStatus.ARCHIVED}),
    BundleStatus.SCHEDULED: frozenset({BundleStatus.ACTIVE, BundleStatus.ARCHIVED}),
    BundleStatus.ACTIVE: frozenset({BundleStatus.EXPIRED, BundleStatus.ARCHIVED}),
    BundleStatus.EXPIRED: frozenset(),
    BundleStatus.ARCHIVED: frozenset(),
}


def effective_status(bundle: Bundle, now: Optional[datetime] = None) -> BundleStatus:
    """Status of the bundle at `now`, applying start/end dates."""
    now = as_utc(now) or utcnow()
    status = bundle.status
    start_date = as_utc(bundle.start_date)
    end_date = as_utc(bundle.end_date)

    if status in (BundleStatus.SCHEDULED, BundleStatus.ACTIVE):
        if end_date is not None and end_date <= now:
            return BundleStatus.EXPIRED
    if status == BundleStatus.SCHEDULED and start_date is not None and start_date <= now:
        return BundleStatus.ACTIVE
    return status


def stored_statuses_for(requested: BundleStatus) -> List[BundleStatus]:
    """Stored statuses that can read as `requested` once dates are applied."""
    if requested == BundleStatus.ACTIVE:
        return [BundleStatus.ACTIVE, BundleStatus.SCHEDULED]
    if requested == BundleStatus.EXPIRED:
        return [BundleStatus.EXPIRED, BundleStatus.ACTIVE, BundleStatus.SCHEDULED]
    return [requested]


def check_transition(bundle: Bundle, requested: BundleStatus, now: Optional[datetime] = None) -> None:
    """
    Raise InvalidStatusTransitionError unless `requested` is reachable.

    The transition is checked from the effective status, so a scheduled
    bundle whose start date has passed can be expired or archived like an
    active one.
    """
    current = effective_status(bundle, now)
    if requested == current:
        return

    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Cannot move bundle from {current.value} to {requested.value}",
            current_status=current.value,
            requested_status=requested.value,
        )

    if requested == BundleStatus.SCHEDULED and bundle.start_date is None:
        raise InvalidStatusTransitionError(
            "A scheduled bundle needs a start date",
            current_status=current.value,
            requested_status=requested.value,
        )

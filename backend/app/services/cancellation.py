# backend/app/services/cancellation.py
"""
Cancellation policy.

Pure decisions, no database access:
- nobody cancels a session that already started
- clients must cancel strictly more than `cutoff_hours` before the session
- only normal sessions refund, one point of the type they were paid with
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..config import settings
from .errors import PolicyRejection, ValidationError
from .points import cost_for

logger = logging.getLogger(__name__)

CLIENT = "client"
ADMIN = "admin"
SYSTEM = "system"
ACTORS = (CLIENT, ADMIN, SYSTEM)


@dataclass(frozen=True)
class CancellationDecision:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class RefundDecision:
    refund: bool
    point_type: Optional[str] = None
    amount: int = 0


def can_cancel(
    actor: str,
    session_datetime: datetime,
    now: datetime,
    cutoff_hours: int | None = None,
) -> CancellationDecision:
    if actor not in ACTORS:
        raise ValidationError(
            f"Unknown actor: {actor}",
            code="InvalidActor",
            details={"allowed": list(ACTORS)},
        )

    if session_datetime < now:
        return CancellationDecision(False, "PastSession")

    if actor == CLIENT:
        cutoff = timedelta(hours=settings.client_cancel_cutoff_hours if cutoff_hours is None else cutoff_hours)
        if session_datetime - now <= cutoff:
            return CancellationDecision(False, "WithinCutoffWindow")

    return CancellationDecision(True)


def ensure_can_cancel(
    actor: str,
    session_datetime: datetime,
    now: datetime,
    cutoff_hours: int | None = None,
) -> None:
    """Raise PolicyRejection when can_cancel refuses."""
    if cutoff_hours is None:
        cutoff_hours = settings.client_cancel_cutoff_hours
    decision = can_cancel(actor, session_datetime, now, cutoff_hours)
    if decision.allowed:
        return

    logger.warning(
        f"Cancellation by {actor} refused ({decision.reason}): "
        f"session {session_datetime:%Y-%m-%d %H:%M}, now {now:%Y-%m-%d %H:%M:%S}"
    )
    if decision.reason == "PastSession":
        message = "Cannot cancel a session that has already taken place"
    else:
        message = f"Cancellations must be made more than {cutoff_hours} hours in advance"
    raise PolicyRejection(
        message,
        code=decision.reason,
        details={"session_datetime": session_datetime.isoformat()},
    )


def refund_eligible(session_type: str, reservation_type: str = "individual") -> RefundDecision:
    point_type = cost_for(session_type, reservation_type)
    if point_type is None:
        return RefundDecision(False)
    return RefundDecision(True, point_type, 1)

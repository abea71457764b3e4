"""
Reentry Pathway
Due-date sweep.

Read-only scan of mentor-stage participants for overdue cadences (weekly update,
monthly check-in, monthly report). It never writes to the store; the result
feeds the mentor dashboard and the scheduler's periodic log line.

Jobs:
    - due_date_sweep: registered with SchedulerService
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pathway.models.participant import MENTOR_STATUSES, Participant
from pathway.services.due_dates import CADENCES, overdue_cadences
from pathway.services.scheduler_service import register_job
from pathway.utils.helpers import to_iso

logger = logging.getLogger(__name__)


def sweep(participants: list[Participant], now: datetime, mentor_id: str | None = None) -> dict[str, Any]:
    """Snapshot of overdue cadences across mentor-stage participants.

    The monthly report is due from mentor assignment, so participants still
    awaiting initial contact are scanned too.
    """
    overdue = []
    totals = {name: 0 for name in CADENCES}
    scanned = 0

    for p in participants:
        if p.status not in MENTOR_STATUSES:
            continue
        if mentor_id and p.assigned_mentor != mentor_id:
            continue
        scanned += 1
        names = overdue_cadences(p, now)
        if not names:
            continue
        for name in names:
            totals[name] += 1
        overdue.append({
            "participant_id": p.id,
            "name": p.full_name,
            "assigned_mentor": p.assigned_mentor,
            "overdue": names,
            "due": {name: to_iso(getattr(p, CADENCES[name])) for name in names},
        })

    return {
        "as_of": to_iso(now),
        "scanned": scanned,
        "overdue_count": len(overdue),
        "totals": totals,
        "participants": overdue,
    }


@register_job("due_date_sweep")
def run_due_date_sweep(app) -> dict[str, Any]:
    """Log mentor-stage participants with overdue weekly updates, check-ins or reports."""
    service = app.extensions["participant_service"]
    snapshot = sweep(service.list_participants(), service.clock.now())
    if snapshot["overdue_count"]:
        logger.info("Due-date sweep: %d of %d mentor-stage participants overdue (%s)",
                    snapshot["overdue_count"], snapshot["scanned"], snapshot["totals"])
    else:
        logger.debug("Due-date sweep: nothing overdue across %d mentor-stage participants", snapshot["scanned"])
    return {k: snapshot[k] for k in ("as_of", "scanned", "overdue_count", "totals")}

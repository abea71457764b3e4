"""
Dashboard & Bridge Team Metrics

Pure calculations over a participant snapshot:
  - status_counts: participants per lifecycle status (dashboard tiles)
  - bridge_team_metrics: monthly bridge-team report (intake volume,
    status activity, days to first outreach, busiest intake weekday)

Monthly metrics are only computed from November 2025 onward; earlier months
were reported by hand and return None. Participants whose first name is
"test" are excluded.

Usage:
    from pathway.services.metrics import bridge_team_metrics
    report = bridge_team_metrics(service.list_participants(), month=11, year=2025)
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from pathway.models.participant import Participant, ParticipantStatus

METRICS_CUTOFF = datetime(2025, 11, 1, tzinfo=timezone.utc)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Report bucket → status whose entry counts toward it.
_STATUS_BUCKETS = {
    "pendingBridge": ParticipantStatus.PENDING_BRIDGE,
    "attemptedToContact": ParticipantStatus.BRIDGE_ATTEMPTED,
    "contacted": ParticipantStatus.BRIDGE_CONTACTED,
    "unableToContact": ParticipantStatus.BRIDGE_UNABLE,
}

_OUTREACH_STATUSES = (
    ParticipantStatus.BRIDGE_ATTEMPTED.value,
    ParticipantStatus.BRIDGE_CONTACTED.value,
)


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════

def _in_month(value: datetime | None, month: int, year: int) -> bool:
    return value is not None and value.month == month and value.year == year


def _is_test_participant(participant: Participant) -> bool:
    return (participant.first_name or "").strip().lower() == "test"


def _entered_status(entry) -> str | None:
    """Status an entry moved the participant into, if it records one."""
    return (entry.metadata or {}).get("toStatus")


def _days_between(start: datetime, end: datetime) -> int:
    return math.ceil(abs((end - start).total_seconds()) / 86400)


# ═════════════════════════════════════════════════════════════════════════════
# Dashboard
# ═════════════════════════════════════════════════════════════════════════════

def status_counts(participants: list[Participant]) -> dict:
    counts = {status.value: 0 for status in ParticipantStatus}
    for p in participants:
        counts[p.status.value] += 1
    return {"total": len(participants), "by_status": counts}


# ═════════════════════════════════════════════════════════════════════════════
# Bridge team monthly report
# ═════════════════════════════════════════════════════════════════════════════

def bridge_team_metrics(participants: list[Participant], month: int, year: int) -> dict | None:
    """Monthly bridge-team report, or None for months before the cutoff."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    if datetime(year, month, 1, tzinfo=timezone.utc) < METRICS_CUTOFF:
        return None

    real = [p for p in participants if not _is_test_participant(p)]
    received = [p for p in real if _in_month(p.submitted_at, month, year)]

    # Unique participants entering each bridge status during the month
    entered: dict[str, set[str]] = {bucket: set() for bucket in _STATUS_BUCKETS}
    total_days = 0
    with_outreach = 0

    for p in real:
        month_entries = [h for h in p.history if _in_month(h.created_at, month, year)]
        for entry in month_entries:
            to_status = _entered_status(entry)
            for bucket, status in _STATUS_BUCKETS.items():
                if to_status == status.value:
                    entered[bucket].add(p.id)

        if p.moved_to_bridge_at is None:
            continue
        outreach = sorted(
            (h for h in month_entries if _entered_status(h) in _OUTREACH_STATUSES),
            key=lambda h: h.created_at,
        )
        if outreach:
            total_days += _days_between(p.moved_to_bridge_at, outreach[0].created_at)
            with_outreach += 1

    by_day = {day: 0 for day in WEEKDAYS}
    for p in received:
        by_day[WEEKDAYS[p.submitted_at.weekday()]] += 1
    top_day = max(WEEKDAYS, key=lambda day: by_day[day])

    return {
        "month": month,
        "year": year,
        "participantsReceived": len(received),
        "statusCounts": {bucket: len(ids) for bucket, ids in entered.items()},
        "averageDaysToFirstOutreach": round(total_days / with_outreach) if with_outreach else 0,
        "formsByDayOfWeek": {**by_day, "topDay": top_day.capitalize()},
    }

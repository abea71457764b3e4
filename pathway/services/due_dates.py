"""
Due-date cadences for the mentorship stage.

Cadences:
  - weekly update      now + 7 days   (set at initial contact, refreshed per update)
  - monthly check-in   now + 30 days  (set at initial contact, refreshed per check-in)
  - monthly report     now + 30 days  (set at mentor assignment, refreshed per report)

Every refresh is computed from *now*, never from the previous due date, so a
late submission does not compound the delay. Overdue is derived on read and
never persisted.

Each ``on_*`` function returns the participant attribute updates to apply.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

WEEKLY_UPDATE_DAYS = 7
MONTHLY_CHECK_IN_DAYS = 30
MONTHLY_REPORT_DAYS = 30


@dataclass(frozen=True)
class CadenceSettings:
    weekly_days: int = WEEKLY_UPDATE_DAYS
    check_in_days: int = MONTHLY_CHECK_IN_DAYS
    report_days: int = MONTHLY_REPORT_DAYS

    @classmethod
    def from_config(cls, config) -> CadenceSettings:
        return cls(
            weekly_days=config.get("WEEKLY_UPDATE_DAYS", WEEKLY_UPDATE_DAYS),
            check_in_days=config.get("MONTHLY_CHECK_IN_DAYS", MONTHLY_CHECK_IN_DAYS),
            report_days=config.get("MONTHLY_REPORT_DAYS", MONTHLY_REPORT_DAYS),
        )


DEFAULT_CADENCE = CadenceSettings()

CADENCES: dict[str, str] = {
    "weekly_update": "next_weekly_update_due",
    "monthly_check_in": "next_monthly_check_in_due",
    "monthly_report": "next_monthly_report_due",
}


def on_mentor_assigned(now: datetime, *, report_days: int = MONTHLY_REPORT_DAYS) -> dict:
    return {"next_monthly_report_due": now + timedelta(days=report_days)}


def on_initial_contact_successful(
    now: datetime,
    *,
    weekly_days: int = WEEKLY_UPDATE_DAYS,
    check_in_days: int = MONTHLY_CHECK_IN_DAYS,
) -> dict:
    return {
        "next_weekly_update_due": now + timedelta(days=weekly_days),
        "next_monthly_check_in_due": now + timedelta(days=check_in_days),
    }


def on_weekly_update_recorded(now: datetime, *, weekly_days: int = WEEKLY_UPDATE_DAYS) -> dict:
    return {
        "next_weekly_update_due": now + timedelta(days=weekly_days),
        "last_weekly_update_at": now,
    }


def on_monthly_check_in_recorded(now: datetime, *, check_in_days: int = MONTHLY_CHECK_IN_DAYS) -> dict:
    return {
        "next_monthly_check_in_due": now + timedelta(days=check_in_days),
        "last_monthly_check_in_at": now,
    }


def on_monthly_report_submitted(now: datetime, *, report_days: int = MONTHLY_REPORT_DAYS) -> dict:
    return {
        "next_monthly_report_due": now + timedelta(days=report_days),
        "last_monthly_report_at": now,
    }


def is_overdue(due: datetime | None, now: datetime) -> bool:
    """True once the due moment has arrived; an unset due date is never overdue."""
    if due is None:
        return False
    return due <= now


def overdue_cadences(participant, now: datetime) -> list[str]:
    """Names of the cadences (see ``CADENCES``) that are overdue for ``participant``."""
    return [
        name for name, attr in CADENCES.items()
        if is_overdue(getattr(participant, attr), now)
    ]


def apply_updates(participant, updates: dict) -> None:
    for attr, value in updates.items():
        setattr(participant, attr, value)

"""
Participant Lifecycle — status state machine.

Manages participant status transitions with:
  - Event table (PARTICIPANT_TRANSITIONS): the only legal status changes
  - Transition validation (validate_transition / transition)
  - Event-attached side effects (transition_effects): stage timestamps and
    due-date cadences are set by the *event*, not by the target status
  - Activity guards (ACTIVITY_RULES) for forms that keep the status unchanged

Statuses:
  pending_bridge → bridge_attempted / bridge_contacted / bridge_unable
  → pending_mentor → initial_contact_pending → mentor_attempted / mentor_unable
  → active_mentorship → graduated (terminal)

Usage:
    from pathway.services.participant_lifecycle import transition

    next_status = transition(participant.status, "mentor_assigned",
                             participant_id=participant.id)
"""

from __future__ import annotations

from datetime import datetime

from pathway.core.exceptions import InvalidTransitionError
from pathway.models.participant import BRIDGE_STATUSES, MENTOR_STATUSES, ParticipantStatus
from pathway.services import due_dates

S = ParticipantStatus

# event → {"from": [...], "to": status, "direct": allowed via plain status update}
# Events marked direct=False need data only their dedicated operation supplies
# (a mentor id, a graduation approval).
PARTICIPANT_TRANSITIONS: dict[str, dict] = {
    "bridge_contact_successful": {
        "from": [S.PENDING_BRIDGE, S.BRIDGE_ATTEMPTED, S.BRIDGE_CONTACTED],
        "to": S.PENDING_MENTOR, "direct": True,
    },
    "bridge_contact_attempted": {
        "from": [S.PENDING_BRIDGE, S.BRIDGE_ATTEMPTED],
        "to": S.BRIDGE_ATTEMPTED, "direct": True,
    },
    "bridge_contact_unable": {
        "from": [S.PENDING_BRIDGE, S.BRIDGE_ATTEMPTED],
        "to": S.BRIDGE_UNABLE, "direct": True,
    },
    "mark_bridge_contacted": {
        "from": [S.PENDING_BRIDGE, S.BRIDGE_ATTEMPTED],
        "to": S.BRIDGE_CONTACTED, "direct": True,
    },
    "move_to_mentorship": {
        "from": [S.PENDING_BRIDGE, S.BRIDGE_ATTEMPTED, S.BRIDGE_CONTACTED, S.BRIDGE_UNABLE],
        "to": S.PENDING_MENTOR, "direct": True,
    },
    "reopen_bridge": {
        "from": [S.BRIDGE_UNABLE],
        "to": S.PENDING_BRIDGE, "direct": True,
    },
    "mentor_assigned": {
        "from": [S.PENDING_MENTOR],
        "to": S.INITIAL_CONTACT_PENDING, "direct": False,
    },
    "initial_contact_successful": {
        "from": [S.INITIAL_CONTACT_PENDING, S.MENTOR_ATTEMPTED],
        "to": S.ACTIVE_MENTORSHIP, "direct": True,
    },
    "initial_contact_attempted": {
        "from": [S.INITIAL_CONTACT_PENDING, S.MENTOR_ATTEMPTED],
        "to": S.MENTOR_ATTEMPTED, "direct": True,
    },
    "initial_contact_unable": {
        "from": [S.INITIAL_CONTACT_PENDING, S.MENTOR_ATTEMPTED],
        "to": S.MENTOR_UNABLE, "direct": True,
    },
    "reopen_mentor": {
        "from": [S.MENTOR_UNABLE],
        "to": S.INITIAL_CONTACT_PENDING, "direct": True,
    },
    "graduation_approved": {
        "from": [S.ACTIVE_MENTORSHIP],
        "to": S.GRADUATED, "direct": False,
    },
}

# Form submissions that record activity without changing status.
ACTIVITY_RULES: dict[str, frozenset] = {
    "weekly_update_recorded": frozenset({S.ACTIVE_MENTORSHIP}),
    "monthly_update_recorded": frozenset({S.ACTIVE_MENTORSHIP}),
    "monthly_check_in_recorded": frozenset({S.ACTIVE_MENTORSHIP}),
    "monthly_report_submitted": MENTOR_STATUSES,
    "graduation_step_completed": MENTOR_STATUSES,
    "bridge_follow_up_recorded": BRIDGE_STATUSES | {S.PENDING_MENTOR},
}

TERMINAL_STATUSES = frozenset({S.GRADUATED})

# Reopening starts a new contact streak.
_FRESH_STREAK = {
    "number_of_contact_attempts": 0,
    "first_attempt_date": None,
    "last_attempt_date": None,
}


def validate_transition(status: ParticipantStatus, event: str) -> dict:
    """
    Validate whether an event is legal for the current status.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    current = ParticipantStatus(status).value
    rule = PARTICIPANT_TRANSITIONS.get(event)
    if not rule:
        return {"valid": False, "from": current, "to": None,
                "reason": f"Unknown event: {event}"}

    if status not in rule["from"]:
        return {"valid": False, "from": current, "to": rule["to"].value,
                "reason": f"Cannot '{event}' from status '{current}'"}

    return {"valid": True, "from": current, "to": rule["to"].value, "reason": None}


def transition(
    status: ParticipantStatus,
    event: str,
    *,
    participant_id: str | None = None,
) -> ParticipantStatus:
    """Return the status ``event`` leads to, or raise InvalidTransitionError."""
    result = validate_transition(status, event)
    if not result["valid"]:
        raise InvalidTransitionError(
            event, result["from"], participant_id=participant_id, reason=result["reason"],
        )
    return PARTICIPANT_TRANSITIONS[event]["to"]


def get_available_events(status: ParticipantStatus, *, direct_only: bool = False) -> list[str]:
    """Get list of valid events for a status."""
    events = []
    for event, rule in PARTICIPANT_TRANSITIONS.items():
        if direct_only and not rule["direct"]:
            continue
        if status in rule["from"]:
            events.append(event)
    return events


def events_reaching(status: ParticipantStatus, target: ParticipantStatus) -> list[str]:
    """Direct events that move ``status`` to ``target``, in table order."""
    return [
        event for event in get_available_events(status, direct_only=True)
        if PARTICIPANT_TRANSITIONS[event]["to"] == target
    ]


def require_activity(status: ParticipantStatus, activity: str, *, participant_id: str | None = None) -> None:
    """Raise InvalidTransitionError when a form is not accepted in ``status``."""
    status = ParticipantStatus(status)
    allowed = ACTIVITY_RULES[activity]
    if status not in allowed:
        raise InvalidTransitionError(
            activity, status.value, participant_id=participant_id,
            reason="allowed only in " + ", ".join(sorted(s.value for s in allowed)),
        )


def is_bridge_stage(status: ParticipantStatus) -> bool:
    return ParticipantStatus(status) in BRIDGE_STATUSES


def is_mentor_stage(status: ParticipantStatus) -> bool:
    return ParticipantStatus(status) in MENTOR_STATUSES


def transition_effects(
    event: str,
    now: datetime,
    cadence: due_dates.CadenceSettings = due_dates.DEFAULT_CADENCE,
) -> dict:
    """Participant attribute updates attached to ``event``."""
    if event in ("bridge_contact_successful", "move_to_mentorship"):
        return {"moved_to_mentorship_at": now}
    if event == "mentor_assigned":
        return {
            "assigned_to_mentor_at": now,
            **due_dates.on_mentor_assigned(now, report_days=cadence.report_days),
        }
    if event == "initial_contact_successful":
        return {
            "initial_contact_completed_at": now,
            **due_dates.on_initial_contact_successful(
                now, weekly_days=cadence.weekly_days, check_in_days=cadence.check_in_days,
            ),
        }
    if event in ("bridge_contact_unable", "initial_contact_unable"):
        return {"unable_to_contact_at": now}
    if event == "reopen_bridge":
        return {"moved_to_bridge_at": now, **_FRESH_STREAK}
    if event == "reopen_mentor":
        return dict(_FRESH_STREAK)
    if event == "graduation_approved":
        return {"graduated_at": now}
    return {}

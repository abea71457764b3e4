"""
Reentry Pathway
Participant domain model.

Models:
    - Participant: aggregate root, persisted as one camelCase JSON document
    - Note: immutable free-text annotation
    - HistoryEntry: immutable audit record, appended by every mutation
    - GraduationApproval: leader sign-off recorded at graduation
    - Actor: the acting user (id + display name) for attribution

Status, history type, mentee status and contact outcome are closed enums;
anything else found in a stored document is rejected on load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pathway.core.exceptions import ValidationError
from pathway.utils.helpers import parse_timestamp, to_iso


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class ParticipantStatus(str, Enum):
    PENDING_BRIDGE = "pending_bridge"
    BRIDGE_ATTEMPTED = "bridge_attempted"
    BRIDGE_CONTACTED = "bridge_contacted"
    BRIDGE_UNABLE = "bridge_unable"
    PENDING_MENTOR = "pending_mentor"
    INITIAL_CONTACT_PENDING = "initial_contact_pending"
    MENTOR_ATTEMPTED = "mentor_attempted"
    MENTOR_UNABLE = "mentor_unable"
    ACTIVE_MENTORSHIP = "active_mentorship"
    GRADUATED = "graduated"


STATUS_LABELS: dict[ParticipantStatus, str] = {
    ParticipantStatus.PENDING_BRIDGE: "Pending Bridge",
    ParticipantStatus.BRIDGE_ATTEMPTED: "Attempted to Contact",
    ParticipantStatus.BRIDGE_CONTACTED: "Contacted",
    ParticipantStatus.BRIDGE_UNABLE: "Unable to Contact",
    ParticipantStatus.PENDING_MENTOR: "Pending Mentor Assignment",
    ParticipantStatus.INITIAL_CONTACT_PENDING: "Initial Contact Pending",
    ParticipantStatus.MENTOR_ATTEMPTED: "Mentor Attempted Contact",
    ParticipantStatus.MENTOR_UNABLE: "Mentor Unable to Contact",
    ParticipantStatus.ACTIVE_MENTORSHIP: "Active Mentorship",
    ParticipantStatus.GRADUATED: "Graduated",
}

BRIDGE_STATUSES = frozenset({
    ParticipantStatus.PENDING_BRIDGE,
    ParticipantStatus.BRIDGE_ATTEMPTED,
    ParticipantStatus.BRIDGE_CONTACTED,
    ParticipantStatus.BRIDGE_UNABLE,
})

MENTOR_STATUSES = frozenset({
    ParticipantStatus.INITIAL_CONTACT_PENDING,
    ParticipantStatus.MENTOR_ATTEMPTED,
    ParticipantStatus.MENTOR_UNABLE,
    ParticipantStatus.ACTIVE_MENTORSHIP,
})


class HistoryType(str, Enum):
    STATUS_CHANGE = "status_change"
    CONTACT_ATTEMPT = "contact_attempt"
    NOTE_ADDED = "note_added"
    FORM_SUBMITTED = "form_submitted"
    ASSIGNMENT_CHANGE = "assignment_change"


class MenteeStatus(str, Enum):
    """Display status shown on the mentor dashboard."""
    NEEDS_INITIAL_CONTACT = "needs_initial_contact"
    ATTEMPT_MADE = "attempt_made"
    UNABLE_TO_CONTACT = "unable_to_contact"
    CONTACTED_INITIAL = "contacted_initial"


class ContactOutcome(str, Enum):
    SUCCESSFUL = "successful"
    ATTEMPTED = "attempted"
    UNABLE = "unable"


def parse_status(value: Any) -> ParticipantStatus:
    try:
        return ParticipantStatus(value)
    except ValueError:
        raise ValidationError(
            f"Unknown participant status: {value!r}",
            details={"status": "must be one of " + ", ".join(s.value for s in ParticipantStatus)},
        ) from None


# ═════════════════════════════════════════════════════════════════════════════
# Value objects
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Actor:
    """Acting user, supplied by the identity provider."""
    user_id: str
    user_name: str


@dataclass(frozen=True)
class Note:
    id: str
    content: str
    created_by: str
    created_by_name: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "createdBy": self.created_by,
            "createdByName": self.created_by_name,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Note:
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            created_by=data.get("createdBy", ""),
            created_by_name=data.get("createdByName", ""),
            created_at=parse_timestamp(data["createdAt"]),
        )


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    type: HistoryType
    description: str
    created_at: datetime
    details: str | None = None
    created_by: str | None = None
    created_by_name: str | None = None
    metadata: dict | None = None

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "createdAt": to_iso(self.created_at),
        }
        if self.details is not None:
            out["details"] = self.details
        if self.created_by is not None:
            out["createdBy"] = self.created_by
        if self.created_by_name is not None:
            out["createdByName"] = self.created_by_name
        if self.metadata:
            out["metadata"] = self.metadata
        return out

    @classmethod
    def from_dict(cls, data: dict) -> HistoryEntry:
        try:
            entry_type = HistoryType(data.get("type"))
        except ValueError:
            raise ValidationError(f"Unknown history entry type: {data.get('type')!r}") from None
        return cls(
            id=data["id"],
            type=entry_type,
            description=data.get("description", ""),
            created_at=parse_timestamp(data["createdAt"]),
            details=data.get("details"),
            created_by=data.get("createdBy"),
            created_by_name=data.get("createdByName"),
            metadata=data.get("metadata"),
        )


@dataclass(frozen=True)
class GraduationApproval:
    approved_by: str
    approved_by_name: str
    approval_date: datetime
    notes: str | None = None

    def to_dict(self) -> dict:
        out = {
            "approvedBy": self.approved_by,
            "approvedByName": self.approved_by_name,
            "approvalDate": to_iso(self.approval_date),
        }
        if self.notes:
            out["notes"] = self.notes
        return out

    @classmethod
    def from_dict(cls, data: dict) -> GraduationApproval:
        return cls(
            approved_by=data.get("approvedBy", ""),
            approved_by_name=data.get("approvedByName", ""),
            approval_date=parse_timestamp(data.get("approvalDate")),
            notes=data.get("notes"),
        )


# ═════════════════════════════════════════════════════════════════════════════
# Participant
# ═════════════════════════════════════════════════════════════════════════════

# (attribute, document key, kind) for every optional scalar field.
_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("participant_number", "participantNumber", "str"),
    ("date_of_birth", "dateOfBirth", "str"),
    ("gender", "gender", "str"),
    ("phone_number", "phoneNumber", "str"),
    ("email", "email", "str"),
    ("release_date", "releaseDate", "str"),
    ("released_from", "releasedFrom", "str"),
    ("referral_source", "referralSource", "str"),
    ("assigned_bridge_team_member", "assignedBridgeTeamMember", "str"),
    ("assigned_mentor_leader", "assignedMentorLeader", "str"),
    ("assigned_mentor", "assignedMentor", "str"),
    ("submitted_at", "submittedAt", "ts"),
    ("moved_to_bridge_at", "movedToBridgeAt", "ts"),
    ("moved_to_mentorship_at", "movedToMentorshipAt", "ts"),
    ("assigned_to_mentor_at", "assignedToMentorAt", "ts"),
    ("initial_contact_completed_at", "initialContactCompletedAt", "ts"),
    ("unable_to_contact_at", "unableToContactAt", "ts"),
    ("graduated_at", "graduatedAt", "ts"),
    ("next_weekly_update_due", "nextWeeklyUpdateDue", "ts"),
    ("next_monthly_check_in_due", "nextMonthlyCheckInDue", "ts"),
    ("next_monthly_report_due", "nextMonthlyReportDue", "ts"),
    ("last_weekly_update_at", "lastWeeklyUpdateAt", "ts"),
    ("last_monthly_check_in_at", "lastMonthlyCheckInAt", "ts"),
    ("last_monthly_report_at", "lastMonthlyReportAt", "ts"),
    ("number_of_contact_attempts", "numberOfContactAttempts", "int"),
    ("first_attempt_date", "firstAttemptDate", "ts"),
    ("last_attempt_date", "lastAttemptDate", "ts"),
    ("mentee_status", "menteeStatus", "mentee"),
    ("bridge_follow_up", "bridgeFollowUp", "dict"),
)

_CORE_KEYS = frozenset({
    "id", "firstName", "lastName", "status", "notes", "history",
    "completedGraduationSteps", "graduationApproval",
})


def _decode(kind: str, raw: Any) -> Any:
    if kind == "ts":
        return parse_timestamp(raw)
    if kind == "int":
        return int(raw)
    if kind == "mentee":
        try:
            return MenteeStatus(raw)
        except ValueError:
            raise ValidationError(f"Unknown mentee status: {raw!r}") from None
    return raw


def _encode(kind: str, value: Any) -> Any:
    if kind == "ts":
        return to_iso(value)
    if kind == "mentee":
        return value.value
    return value


@dataclass
class Participant:
    """Participant record; one document per id in the ``participants`` collection."""

    id: str
    first_name: str
    last_name: str
    status: ParticipantStatus = ParticipantStatus.PENDING_BRIDGE

    participant_number: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    phone_number: str | None = None
    email: str | None = None
    release_date: str | None = None
    released_from: str | None = None
    referral_source: str | None = None

    assigned_bridge_team_member: str | None = None
    assigned_mentor_leader: str | None = None
    assigned_mentor: str | None = None

    submitted_at: datetime | None = None
    moved_to_bridge_at: datetime | None = None
    moved_to_mentorship_at: datetime | None = None
    assigned_to_mentor_at: datetime | None = None
    initial_contact_completed_at: datetime | None = None
    unable_to_contact_at: datetime | None = None
    graduated_at: datetime | None = None

    next_weekly_update_due: datetime | None = None
    next_monthly_check_in_due: datetime | None = None
    next_monthly_report_due: datetime | None = None
    last_weekly_update_at: datetime | None = None
    last_monthly_check_in_at: datetime | None = None
    last_monthly_report_at: datetime | None = None

    number_of_contact_attempts: int = 0
    first_attempt_date: datetime | None = None
    last_attempt_date: datetime | None = None
    mentee_status: MenteeStatus | None = None

    completed_graduation_steps: list[str] = field(default_factory=list)
    graduation_approval: GraduationApproval | None = None
    bridge_follow_up: dict | None = None

    notes: list[Note] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)

    # Keys found on the stored document that this model does not know about.
    extra: dict = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        body = dict(self.extra)
        body.update({
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "status": self.status.value,
        })
        for attr, key, kind in _FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            body[key] = _encode(kind, value)
        body["completedGraduationSteps"] = list(self.completed_graduation_steps)
        if self.graduation_approval is not None:
            body["graduationApproval"] = self.graduation_approval.to_dict()
        body["notes"] = [n.to_dict() for n in self.notes]
        body["history"] = [h.to_dict() for h in self.history]
        return body

    @classmethod
    def from_dict(cls, data: dict) -> Participant:
        kwargs: dict[str, Any] = {}
        for attr, key, kind in _FIELDS:
            raw = data.get(key)
            if raw is None:
                continue
            kwargs[attr] = _decode(kind, raw)

        approval = data.get("graduationApproval")
        known = _CORE_KEYS | {key for _, key, _ in _FIELDS}
        return cls(
            id=data["id"],
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            status=parse_status(data.get("status")),
            completed_graduation_steps=list(data.get("completedGraduationSteps") or []),
            graduation_approval=GraduationApproval.from_dict(approval) if approval else None,
            notes=[Note.from_dict(n) for n in data.get("notes") or []],
            history=[HistoryEntry.from_dict(h) for h in data.get("history") or []],
            extra={k: v for k, v in data.items() if k not in known},
            **kwargs,
        )

    def __repr__(self):
        return f"<Participant {self.id}: {self.full_name} [{self.status.value}]>"

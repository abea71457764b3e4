"""
Reentry Pathway
Guidance task model — side-channel requests from a mentor for leadership input.

A task holds a weak reference to its participant (``participantId``); it is
never removed when the participant changes status and is only ever completed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pathway.core.exceptions import ValidationError
from pathway.utils.helpers import parse_timestamp, to_iso


class GuidanceStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class GuidanceTask:
    id: str
    participant_id: str
    participant_name: str
    mentor_id: str
    mentor_name: str
    guidance_notes: str
    created_at: datetime
    status: GuidanceStatus = GuidanceStatus.PENDING
    completed_at: datetime | None = None
    completed_by: str | None = None
    completed_by_name: str | None = None
    response: str | None = None
    follow_up_notes: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == GuidanceStatus.COMPLETED

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "participantId": self.participant_id,
            "participantName": self.participant_name,
            "mentorId": self.mentor_id,
            "mentorName": self.mentor_name,
            "guidanceNotes": self.guidance_notes,
            "status": self.status.value,
            "createdAt": to_iso(self.created_at),
        }
        for key, value in (
            ("completedAt", to_iso(self.completed_at)),
            ("completedBy", self.completed_by),
            ("completedByName", self.completed_by_name),
            ("response", self.response),
            ("followUpNotes", self.follow_up_notes),
        ):
            if value is not None:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict) -> GuidanceTask:
        try:
            status = GuidanceStatus(data.get("status", "pending"))
        except ValueError:
            raise ValidationError(f"Unknown guidance task status: {data.get('status')!r}") from None
        return cls(
            id=data["id"],
            participant_id=data["participantId"],
            participant_name=data.get("participantName", ""),
            mentor_id=data.get("mentorId", ""),
            mentor_name=data.get("mentorName", ""),
            guidance_notes=data.get("guidanceNotes", ""),
            created_at=parse_timestamp(data["createdAt"]),
            status=status,
            completed_at=parse_timestamp(data.get("completedAt")),
            completed_by=data.get("completedBy"),
            completed_by_name=data.get("completedByName"),
            response=data.get("response"),
            follow_up_notes=data.get("followUpNotes"),
        )

    def __repr__(self):
        return f"<GuidanceTask {self.id}: {self.participant_name} [{self.status.value}]>"

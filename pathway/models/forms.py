"""
Reentry Pathway
Form payloads submitted by bridge-team members, mentors and leaders.

Each form parses a snake_case JSON payload with ``from_dict`` and raises
``ValidationError`` for missing or malformed fields. ``metadata()`` renders
the camelCase dict stored on the history entry the form produces.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum

from pathway.core.exceptions import ValidationError
from pathway.models.graduation import is_known_step
from pathway.models.participant import ContactOutcome
from pathway.utils.helpers import optional_text, parse_timestamp_input, require_text, to_iso


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _outcome(data: dict, name: str) -> ContactOutcome:
    raw = data.get(name)
    try:
        return ContactOutcome(raw)
    except ValueError:
        raise ValidationError(
            f"{name} must be one of successful, attempted, unable",
            details={name: "invalid"},
        ) from None


def _flag(data: dict, name: str) -> bool:
    value = data.get(name, False)
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be a boolean", details={name: "invalid type"})
    return value


def _string_list(data: dict, name: str) -> list[str]:
    value = data.get(name) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{name} must be a list of strings", details={name: "invalid type"})
    return value


class _FormBase:
    """Shared metadata rendering; participant_id never goes into metadata."""

    def metadata(self) -> dict:
        out = {}
        for f in fields(self):
            if f.name == "participant_id":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = to_iso(value)
            elif isinstance(value, Enum):
                value = value.value
            out[_camel(f.name)] = value
        return out


# ═════════════════════════════════════════════════════════════════════════════
# Intake
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class IntakeForm(_FormBase):
    first_name: str
    last_name: str
    participant_number: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    phone_number: str | None = None
    email: str | None = None
    release_date: str | None = None
    released_from: str | None = None
    referral_source: str | None = None
    submitted_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> IntakeForm:
        return cls(
            first_name=require_text(data, "first_name"),
            last_name=require_text(data, "last_name"),
            participant_number=optional_text(data, "participant_number"),
            date_of_birth=optional_text(data, "date_of_birth"),
            gender=optional_text(data, "gender"),
            phone_number=optional_text(data, "phone_number"),
            email=optional_text(data, "email"),
            release_date=optional_text(data, "release_date"),
            released_from=optional_text(data, "released_from"),
            referral_source=optional_text(data, "referral_source"),
            submitted_at=parse_timestamp_input(data.get("submitted_at"), "submitted_at"),
        )


# ═════════════════════════════════════════════════════════════════════════════
# Bridge team
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class ContactForm(_FormBase):
    """Bridge-team contact log."""
    participant_id: str
    outcome_type: ContactOutcome
    contact_method: str
    contact_notes: str
    contact_date: datetime | None = None
    attempt_type: str | None = None
    unable_reason: str | None = None

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> ContactForm:
        return cls(
            participant_id=participant_id,
            outcome_type=_outcome(data, "outcome_type"),
            contact_method=require_text(data, "contact_method"),
            contact_notes=require_text(data, "contact_notes"),
            contact_date=parse_timestamp_input(data.get("contact_date"), "contact_date"),
            attempt_type=optional_text(data, "attempt_type"),
            unable_reason=optional_text(data, "unable_reason"),
        )


@dataclass
class BridgeFollowUpForm(_FormBase):
    participant_id: str
    participant_info_confirmed: bool = False
    on_parole: bool = False
    on_probation: bool = False
    on_sex_offender_registry: bool = False
    on_child_offender_registry: bool = False
    other_legal_restrictions: str | None = None
    needs_phone_call: bool = False
    needs_employment: bool = False
    needs_housing: bool = False
    needs_clothing: bool = False
    needs_food: bool = False
    current_housing_situation: str | None = None
    current_housing_other: str | None = None
    transitional_home_name: str | None = None
    transitional_home_name_other: str | None = None
    weekly_call_explained: bool = False
    resources_sent: bool = False
    resources_sent_list: list[str] = field(default_factory=list)
    resources_other_description: str | None = None
    resource_notes: str | None = None
    send_resources_email: bool = False

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> BridgeFollowUpForm:
        kwargs = {}
        for f in fields(cls):
            if f.name == "participant_id":
                continue
            if f.type == "bool":
                kwargs[f.name] = _flag(data, f.name)
            elif f.type == "list[str]":
                kwargs[f.name] = _string_list(data, f.name)
            else:
                kwargs[f.name] = optional_text(data, f.name)
        return cls(participant_id=participant_id, **kwargs)


# ═════════════════════════════════════════════════════════════════════════════
# Mentor
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class InitialContactForm(_FormBase):
    participant_id: str
    contact_outcome: ContactOutcome
    contact_date: datetime | None = None
    attempt_type: str | None = None
    attempt_notes: str | None = None
    unable_reason: str | None = None
    mentorship_offered: str | None = None
    living_situation: str | None = None
    living_situation_detail: str | None = None
    employment_status: str | None = None
    clothing_needs: str | None = None
    open_invitation_to_call: bool = False
    prayer_offered: bool = False
    additional_notes: str | None = None
    guidance_needed: bool = False
    guidance_notes: str | None = None

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> InitialContactForm:
        form = cls(
            participant_id=participant_id,
            contact_outcome=_outcome(data, "contact_outcome"),
            contact_date=parse_timestamp_input(data.get("contact_date"), "contact_date"),
            attempt_type=optional_text(data, "attempt_type"),
            attempt_notes=optional_text(data, "attempt_notes"),
            unable_reason=optional_text(data, "unable_reason"),
            mentorship_offered=optional_text(data, "mentorship_offered"),
            living_situation=optional_text(data, "living_situation"),
            living_situation_detail=optional_text(data, "living_situation_detail"),
            employment_status=optional_text(data, "employment_status"),
            clothing_needs=optional_text(data, "clothing_needs"),
            open_invitation_to_call=_flag(data, "open_invitation_to_call"),
            prayer_offered=_flag(data, "prayer_offered"),
            additional_notes=optional_text(data, "additional_notes"),
            guidance_needed=_flag(data, "guidance_needed"),
            guidance_notes=optional_text(data, "guidance_notes"),
        )
        if form.contact_outcome == ContactOutcome.UNABLE and not form.unable_reason:
            raise ValidationError("unable_reason is required when contact_outcome is unable",
                                  details={"unable_reason": "required"})
        if form.guidance_needed and not form.guidance_notes:
            raise ValidationError("guidance_notes is required when guidance_needed is set",
                                  details={"guidance_notes": "required"})
        return form


@dataclass
class WeeklyUpdateForm(_FormBase):
    participant_id: str
    progress_update: str
    update_date: datetime | None = None
    contact_this_week: bool = False
    contact_method: str | None = None
    challenges_this_week: str | None = None
    support_needed: str | None = None

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> WeeklyUpdateForm:
        return cls(
            participant_id=participant_id,
            progress_update=require_text(data, "progress_update"),
            update_date=parse_timestamp_input(data.get("update_date"), "update_date"),
            contact_this_week=_flag(data, "contact_this_week"),
            contact_method=optional_text(data, "contact_method"),
            challenges_this_week=optional_text(data, "challenges_this_week"),
            support_needed=optional_text(data, "support_needed"),
        )


@dataclass
class MonthlyUpdateForm(_FormBase):
    participant_id: str
    progress_notes: str
    update_date: datetime | None = None
    contact_frequency: str | None = None
    challenges_faced: str | None = None
    goals_progress: str | None = None
    next_month_goals: str | None = None

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> MonthlyUpdateForm:
        return cls(
            participant_id=participant_id,
            progress_notes=require_text(data, "progress_notes"),
            update_date=parse_timestamp_input(data.get("update_date"), "update_date"),
            contact_frequency=optional_text(data, "contact_frequency"),
            challenges_faced=optional_text(data, "challenges_faced"),
            goals_progress=optional_text(data, "goals_progress"),
            next_month_goals=optional_text(data, "next_month_goals"),
        )


@dataclass
class MonthlyCheckInForm(_FormBase):
    participant_id: str
    check_in_date: datetime | None = None
    accomplishments_since_last_check_in: str | None = None
    challenges_faced: str | None = None
    completed_steps: list[str] = field(default_factory=list)
    notable_changes: str | None = None
    additional_notes: str | None = None

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> MonthlyCheckInForm:
        steps = _string_list(data, "completed_steps")
        unknown = [s for s in steps if not is_known_step(s)]
        if unknown:
            raise ValidationError(f"Unknown graduation step(s): {', '.join(unknown)}",
                                  details={"completed_steps": unknown})
        return cls(
            participant_id=participant_id,
            check_in_date=parse_timestamp_input(data.get("check_in_date"), "check_in_date"),
            accomplishments_since_last_check_in=optional_text(data, "accomplishments_since_last_check_in"),
            challenges_faced=optional_text(data, "challenges_faced"),
            completed_steps=steps,
            notable_changes=optional_text(data, "notable_changes"),
            additional_notes=optional_text(data, "additional_notes"),
        )


@dataclass
class MonthlyReportForm(_FormBase):
    participant_id: str
    updates: str
    report_date: datetime | None = None

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> MonthlyReportForm:
        return cls(
            participant_id=participant_id,
            updates=require_text(data, "updates"),
            report_date=parse_timestamp_input(data.get("report_date"), "report_date"),
        )

"""
Model and form tests.

Participant documents round-trip without losing unknown keys, closed enums
are enforced on load, and forms reject malformed payloads.
"""

from datetime import datetime, timezone

import pytest

from pathway.core.exceptions import ValidationError
from pathway.models.forms import (
    BridgeFollowUpForm,
    ContactForm,
    InitialContactForm,
    IntakeForm,
    MonthlyCheckInForm,
    WeeklyUpdateForm,
)
from pathway.models.graduation import (
    GRADUATION_STEPS,
    get_graduation_step,
    graduation_progress,
    is_ready_for_graduation,
)
from pathway.models.guidance import GuidanceTask
from pathway.models.participant import ContactOutcome, MenteeStatus, Participant, ParticipantStatus


def _doc(**overrides):
    doc = {
        "id": "p1",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "status": "active_mentorship",
        "phoneNumber": "555-0100",
        "submittedAt": "2025-11-03T09:00:00Z",
        "numberOfContactAttempts": 2,
        "menteeStatus": "contacted_initial",
        "completedGraduationSteps": ["step_1"],
        "notes": [{
            "id": "n1", "content": "hello", "createdBy": "u1", "createdByName": "U One",
            "createdAt": "2025-11-03T10:00:00+00:00",
        }],
        "history": [{
            "id": "h1", "type": "form_submitted", "description": "Intake",
            "createdAt": "2025-11-03T09:00:00+00:00", "metadata": {"toStatus": "pending_bridge"},
        }],
    }
    doc.update(overrides)
    return doc


# ═════════════════════════════════════════════════════════════════════════════
# Participant document
# ═════════════════════════════════════════════════════════════════════════════


class TestParticipantDocument:

    def test_load(self):
        p = Participant.from_dict(_doc())
        assert p.status == ParticipantStatus.ACTIVE_MENTORSHIP
        assert p.submitted_at == datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)
        assert p.number_of_contact_attempts == 2
        assert p.mentee_status == MenteeStatus.CONTACTED_INITIAL
        assert p.notes[0].content == "hello"
        assert p.history[0].metadata == {"toStatus": "pending_bridge"}
        assert p.full_name == "Ada Lovelace"

    def test_unknown_keys_survive_round_trip(self):
        body = Participant.from_dict(_doc(legacyField={"kept": True})).to_dict()
        assert body["legacyField"] == {"kept": True}
        assert body["phoneNumber"] == "555-0100"
        assert body["submittedAt"] == "2025-11-03T09:00:00+00:00"
        assert body["status"] == "active_mentorship"

    def test_none_fields_omitted(self):
        body = Participant(id="p2", first_name="Grace", last_name="Hopper").to_dict()
        assert "email" not in body
        assert body["notes"] == [] and body["history"] == []
        assert body["status"] == "pending_bridge"

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            Participant.from_dict(_doc(status="on_hold"))

    def test_unknown_history_type_rejected(self):
        history = [{"id": "h1", "type": "teleported", "description": "", "createdAt": "2025-11-03"}]
        with pytest.raises(ValidationError):
            Participant.from_dict(_doc(history=history))

    def test_unknown_mentee_status_rejected(self):
        with pytest.raises(ValidationError):
            Participant.from_dict(_doc(menteeStatus="ghosted"))


class TestGuidanceDocument:

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            GuidanceTask.from_dict({
                "id": "g1", "participantId": "p1", "status": "archived",
                "createdAt": "2025-11-03T09:00:00Z",
            })


# ═════════════════════════════════════════════════════════════════════════════
# Graduation steps
# ═════════════════════════════════════════════════════════════════════════════


class TestGraduation:

    def test_ten_ordered_steps(self):
        assert [s.order for s in GRADUATION_STEPS] == list(range(1, 11))
        assert get_graduation_step("step_4").title == "Complete Job Readiness Training"
        assert get_graduation_step("step_11") is None

    @pytest.mark.parametrize("steps, expected", [
        ([], 0),
        (["step_1"], 10),
        (["step_1", "step_1", "bogus"], 10),
        ([f"step_{i}" for i in range(1, 11)], 100),
    ])
    def test_progress(self, steps, expected):
        assert graduation_progress(steps) == expected

    def test_ready(self):
        assert not is_ready_for_graduation(["step_1"])
        assert is_ready_for_graduation([f"step_{i}" for i in range(10, 0, -1)])


# ═════════════════════════════════════════════════════════════════════════════
# Forms
# ═════════════════════════════════════════════════════════════════════════════


class TestForms:

    def test_intake_strips_and_requires_names(self):
        form = IntakeForm.from_dict({"first_name": " Ada ", "last_name": "Lovelace", "email": "  "})
        assert form.first_name == "Ada"
        assert form.email is None
        with pytest.raises(ValidationError) as exc:
            IntakeForm.from_dict({"first_name": "Ada"})
        assert exc.value.details == {"last_name": "required"}

    def test_contact_outcome_enum(self):
        form = ContactForm.from_dict("p1", {
            "outcome_type": "attempted", "contact_method": "phone", "contact_notes": "voicemail",
            "contact_date": "2025-11-03T12:00:00Z",
        })
        assert form.outcome_type == ContactOutcome.ATTEMPTED
        assert form.metadata()["contactDate"] == "2025-11-03T12:00:00+00:00"
        assert "participantId" not in form.metadata()
        with pytest.raises(ValidationError):
            ContactForm.from_dict("p1", {"outcome_type": "maybe", "contact_method": "phone",
                                         "contact_notes": "x"})

    def test_bad_timestamp(self):
        with pytest.raises(ValidationError) as exc:
            WeeklyUpdateForm.from_dict("p1", {"progress_update": "ok", "update_date": "next tuesday"})
        assert "update_date" in exc.value.details

    def test_follow_up_flags_must_be_bool(self):
        with pytest.raises(ValidationError):
            BridgeFollowUpForm.from_dict("p1", {"needs_housing": "yes"})
        form = BridgeFollowUpForm.from_dict("p1", {
            "needs_housing": True, "resources_sent_list": ["food bank"],
        })
        assert form.needs_housing is True
        assert form.metadata()["resourcesSentList"] == ["food bank"]

    def test_follow_up_list_type(self):
        with pytest.raises(ValidationError):
            BridgeFollowUpForm.from_dict("p1", {"resources_sent_list": "food bank"})

    def test_initial_contact_rules(self):
        with pytest.raises(ValidationError):
            InitialContactForm.from_dict("p1", {"contact_outcome": "unable"})
        with pytest.raises(ValidationError):
            InitialContactForm.from_dict("p1", {"contact_outcome": "successful", "guidance_needed": True})
        form = InitialContactForm.from_dict("p1", {
            "contact_outcome": "successful", "guidance_needed": True, "guidance_notes": "help",
        })
        assert form.metadata()["guidanceNotes"] == "help"

    def test_check_in_rejects_unknown_steps(self):
        with pytest.raises(ValidationError) as exc:
            MonthlyCheckInForm.from_dict("p1", {"completed_steps": ["step_1", "step_99"]})
        assert exc.value.details == {"completed_steps": ["step_99"]}

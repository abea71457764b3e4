"""
Participant Service — orchestration of the lifecycle engine.

The only component that performs I/O. Every mutating operation:
  1. reads the current record (and its version) from the document store
  2. computes the next state with the state machine, due-date scheduler,
     contact-attempt tracker or merge engine
  3. appends exactly one history entry
  4. writes the whole record back with a compare-and-swap on the version
  5. on a version conflict, re-reads and recomputes, up to ``retry_limit``
     times, then surfaces ConcurrentModificationError
  6. after the commit, triggers side effects (guidance tasks, notifications)

Invalid lifecycle events are logged with participant id, event and current
status before they propagate.

Usage:
    service = ParticipantService(DocumentStore(), SystemClock())
    pid = service.add_participant({"first_name": "Ada", "last_name": "Lovelace"}, actor)
    service.record_contact(ContactForm.from_dict(pid, payload), actor)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable

from pathway.core.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from pathway.models.document import PARTICIPANTS
from pathway.models.forms import (
    BridgeFollowUpForm,
    ContactForm,
    InitialContactForm,
    IntakeForm,
    MonthlyCheckInForm,
    MonthlyReportForm,
    MonthlyUpdateForm,
    WeeklyUpdateForm,
)
from pathway.models.graduation import GRADUATION_STEPS, get_graduation_step, is_ready_for_graduation
from pathway.models.participant import (
    MENTOR_STATUSES,
    STATUS_LABELS,
    Actor,
    ContactOutcome,
    GraduationApproval,
    HistoryType,
    MenteeStatus,
    Participant,
    ParticipantStatus,
    parse_status,
)
from pathway.services import due_dates, history_log
from pathway.services import participant_lifecycle as lifecycle
from pathway.services.clock import SystemClock
from pathway.services.contact_attempts import (
    BRIDGE_TRACK,
    ESCALATION_ATTEMPTS,
    ESCALATION_WINDOW_DAYS,
    MENTOR_TRACK,
    ContactAttemptTracker,
)
from pathway.services.contact_attempts import reset as reset_attempts
from pathway.services.merge_engine import merge_records
from pathway.services.notification import OutboundMessage

logger = logging.getLogger(__name__)

# Transitional home that is flagged as high-priority housing on follow-up.
PRIORITY_TRANSITIONAL_HOME = "Ben Reid / Southeast Texas Transitional Center"

BRIDGE_QUEUE = (
    ParticipantStatus.PENDING_BRIDGE,
    ParticipantStatus.BRIDGE_ATTEMPTED,
    ParticipantStatus.BRIDGE_CONTACTED,
)


class ParticipantService:
    """Lifecycle operations over an injected store, clock and dispatchers."""

    def __init__(
        self,
        store,
        clock=None,
        guidance=None,
        notifier=None,
        *,
        cadence: due_dates.CadenceSettings = due_dates.DEFAULT_CADENCE,
        retry_limit: int = 3,
        escalation_attempts: int = ESCALATION_ATTEMPTS,
        escalation_window_days: int = ESCALATION_WINDOW_DAYS,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._guidance = guidance
        self._notifier = notifier
        self._cadence = cadence
        self._retry_limit = max(1, retry_limit)
        self.bridge_tracker = ContactAttemptTracker(
            BRIDGE_TRACK, max_attempts=escalation_attempts, window_days=escalation_window_days,
        )
        self.mentor_tracker = ContactAttemptTracker(
            MENTOR_TRACK, max_attempts=escalation_attempts, window_days=escalation_window_days,
        )

    @property
    def clock(self):
        return self._clock

    # ═════════════════════════════════════════════════════════════════════
    # Read-modify-write core
    # ═════════════════════════════════════════════════════════════════════

    def _load(self, participant_id: str) -> tuple[Participant, int]:
        doc = self._store.get(PARTICIPANTS, participant_id)
        if doc is None:
            raise NotFoundError("Participant", participant_id)
        return Participant.from_dict(doc.body), doc.version

    def _mutate(self, participant_id: str, mutator: Callable[[Participant, datetime], bool | None]) -> Participant:
        """Apply ``mutator`` to a fresh read and compare-and-swap the result.

        ``mutator`` edits the participant in place; returning False means
        there is nothing to write. It may run more than once, so it must
        derive everything from the record it is given.
        """
        for attempt in range(1, self._retry_limit + 1):
            participant, version = self._load(participant_id)
            now = self._clock.now()
            try:
                changed = mutator(participant, now)
            except InvalidTransitionError as exc:
                logger.warning(
                    "Rejected lifecycle event %s for participant %s (status=%s): %s",
                    exc.event, participant_id, exc.current_status, exc.reason,
                    extra={"participant_id": participant_id, "event": exc.event,
                           "current_status": exc.current_status},
                )
                raise
            if changed is False:
                return participant
            try:
                self._store.update(PARTICIPANTS, participant_id, participant.to_dict(), version)
            except ConcurrentModificationError:
                if attempt == self._retry_limit:
                    logger.warning("Giving up on participant %s after %d conflicting writes",
                                   participant_id, attempt, extra={"participant_id": participant_id})
                    raise
                logger.info("Participant %s modified concurrently, retrying (%d/%d)",
                            participant_id, attempt, self._retry_limit,
                            extra={"participant_id": participant_id})
                continue
            return participant

    def _apply_event(
        self,
        participant: Participant,
        event: str,
        now: datetime,
        actor: Actor | None,
        *,
        entry_type: HistoryType,
        description: str,
        details: str | None = None,
        metadata: dict | None = None,
    ) -> None:
        previous = participant.status
        participant.status = lifecycle.transition(previous, event, participant_id=participant.id)
        due_dates.apply_updates(participant, lifecycle.transition_effects(event, now, self._cadence))
        meta = {
            "event": event,
            "fromStatus": previous.value,
            "toStatus": participant.status.value,
            **(metadata or {}),
        }
        self._record(participant, entry_type, description, actor, now, details=details, metadata=meta)

    @staticmethod
    def _record(participant, entry_type, description, actor, now, *, details=None, metadata=None):
        entry = history_log.make_entry(entry_type, description, actor, now,
                                       details=details, metadata=metadata)
        participant.history = history_log.append(participant.history, entry)

    # ═════════════════════════════════════════════════════════════════════
    # Intake & direct status changes
    # ═════════════════════════════════════════════════════════════════════

    def add_participant(self, data: IntakeForm | dict, actor: Actor | None = None) -> str:
        form = data if isinstance(data, IntakeForm) else IntakeForm.from_dict(data)
        now = self._clock.now()
        participant = Participant(
            id=uuid.uuid4().hex,
            first_name=form.first_name,
            last_name=form.last_name,
            status=ParticipantStatus.PENDING_BRIDGE,
            participant_number=form.participant_number,
            date_of_birth=form.date_of_birth,
            gender=form.gender,
            phone_number=form.phone_number,
            email=form.email,
            release_date=form.release_date,
            released_from=form.released_from,
            referral_source=form.referral_source,
            submitted_at=form.submitted_at or now,
            moved_to_bridge_at=now,
        )
        metadata = {"toStatus": participant.status.value}
        if form.referral_source:
            metadata["referralSource"] = form.referral_source
        self._record(participant, HistoryType.FORM_SUBMITTED, "Participant submitted intake form",
                     actor, now, metadata=metadata)
        self._store.create(PARTICIPANTS, participant.id, participant.to_dict())
        logger.info("Participant %s created (%s)", participant.id, participant.full_name,
                    extra={"participant_id": participant.id})
        return participant.id

    def update_participant_status(
        self,
        participant_id: str,
        new_status: ParticipantStatus | str,
        actor: Actor,
        details: str | None = None,
    ) -> Participant:
        """Move to ``new_status`` through the direct event that reaches it.

        Asking for the status the participant already has changes nothing
        and appends no history entry.
        """
        target = parse_status(new_status)

        def mutator(p: Participant, now: datetime):
            if p.status == target:
                logger.debug("Participant %s already %s, nothing to do", p.id, target.value)
                return False
            events = lifecycle.events_reaching(p.status, target)
            if not events:
                raise InvalidTransitionError(
                    f"set_status:{target.value}", p.status.value, participant_id=p.id,
                    reason=f"no direct transition to '{target.value}'",
                )
            event = events[0]
            if event in (BRIDGE_TRACK.success_event, MENTOR_TRACK.success_event):
                reset_attempts(p)
            self._apply_event(p, event, now, actor, entry_type=HistoryType.STATUS_CHANGE,
                              description=f"Status changed to {STATUS_LABELS[target]}",
                              details=details)

        return self._mutate(participant_id, mutator)

    def available_events(self, participant_id: str) -> dict:
        participant = self.get_participant_by_id(participant_id)
        return {
            "participant_id": participant.id,
            "status": participant.status.value,
            "events": lifecycle.get_available_events(participant.status),
            "direct_statuses": sorted({
                lifecycle.PARTICIPANT_TRANSITIONS[e]["to"].value
                for e in lifecycle.get_available_events(participant.status, direct_only=True)
            }),
        }

    # ═════════════════════════════════════════════════════════════════════
    # Bridge team
    # ═════════════════════════════════════════════════════════════════════

    def record_contact(self, form: ContactForm, actor: Actor) -> Participant:
        escalated = {"value": False}

        def mutator(p: Participant, now: datetime):
            escalated["value"] = False
            metadata = form.metadata()
            metadata.pop("contactNotes", None)

            if form.outcome_type == ContactOutcome.SUCCESSFUL:
                self.bridge_tracker.record_success(p)
                event = BRIDGE_TRACK.success_event
                entry_type = HistoryType.STATUS_CHANGE
                description = "Bridge Team successfully contacted - moved to mentorship assignment queue"
            else:
                if form.outcome_type == ContactOutcome.ATTEMPTED:
                    outcome = self.bridge_tracker.record_attempt(p, now)
                else:
                    outcome = self.bridge_tracker.record_unable(p, now)
                event = outcome.event
                escalated["value"] = outcome.escalated
                entry_type = HistoryType.CONTACT_ATTEMPT
                description = f"Contact {form.outcome_type.value}: {form.contact_method}"
                if outcome.escalated:
                    description += " - escalated to unable to contact"
                metadata["attemptNumber"] = outcome.attempts

            p.assigned_bridge_team_member = actor.user_id
            self._apply_event(p, event, now, actor, entry_type=entry_type,
                              description=description, details=form.contact_notes,
                              metadata=metadata)

        participant = self._mutate(form.participant_id, mutator)
        if escalated["value"] and self._notifier is not None:
            self._notifier.contact_escalated(participant, BRIDGE_TRACK.name)
        return participant

    def record_bridge_follow_up(self, form: BridgeFollowUpForm, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            lifecycle.require_activity(p.status, "bridge_follow_up_recorded", participant_id=p.id)
            follow_up = form.metadata()
            follow_up["highPriorityHousing"] = form.transitional_home_name == PRIORITY_TRANSITIONAL_HOME
            follow_up["completedAt"] = now.isoformat()
            follow_up["completedBy"] = actor.user_id
            p.bridge_follow_up = follow_up
            self._record(p, HistoryType.FORM_SUBMITTED, "Bridge Team Follow-Up Form completed",
                         actor, now, metadata=form.metadata())

        participant = self._mutate(form.participant_id, mutator)
        if form.send_resources_email and form.resources_sent and self._notifier is not None:
            if participant.email:
                self._notifier.send(OutboundMessage(
                    recipient=participant.email,
                    subject="Resources from your bridge team",
                    body=", ".join(form.resources_sent_list) or (form.resources_other_description or ""),
                    category="resources",
                    entity_id=participant.id,
                ))
            else:
                logger.info("Participant %s has no email; resources email skipped", participant.id,
                            extra={"participant_id": participant.id})
        return participant

    def assign_to_bridge_team(self, participant_id: str, user_id: str, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            p.assigned_bridge_team_member = user_id
            self._record(p, HistoryType.ASSIGNMENT_CHANGE, "Assigned to bridge team member",
                         actor, now, metadata={"assignedBridgeTeamMember": user_id})

        return self._mutate(participant_id, mutator)

    def assign_to_mentor_leader(self, participant_id: str, user_id: str, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            p.assigned_mentor_leader = user_id
            self._record(p, HistoryType.ASSIGNMENT_CHANGE, "Assigned to mentorship leader",
                         actor, now, metadata={"assignedMentorLeader": user_id})

        return self._mutate(participant_id, mutator)

    def bulk_move_to_mentorship(self, participant_ids: list[str], actor: Actor) -> dict:
        def mutator(p: Participant, now: datetime):
            self._apply_event(p, "move_to_mentorship", now, actor,
                              entry_type=HistoryType.STATUS_CHANGE,
                              description="Moved to mentorship assignment queue")

        return self._bulk(participant_ids, mutator)

    # ═════════════════════════════════════════════════════════════════════
    # Mentorship leader
    # ═════════════════════════════════════════════════════════════════════

    def _assign_mutator(self, mentor_id: str, actor: Actor):
        if not mentor_id or not str(mentor_id).strip():
            raise ValidationError("mentor_id is required", details={"mentor_id": "required"})

        def mutator(p: Participant, now: datetime):
            self._apply_event(p, "mentor_assigned", now, actor,
                              entry_type=HistoryType.STATUS_CHANGE,
                              description=f"Assigned to mentor by {actor.user_name}",
                              metadata={"mentorId": mentor_id})
            p.assigned_mentor = mentor_id
            if p.assigned_mentor_leader is None:
                p.assigned_mentor_leader = actor.user_id
            p.mentee_status = MenteeStatus.NEEDS_INITIAL_CONTACT
            reset_attempts(p)

        return mutator

    def assign_to_mentor(self, participant_id: str, mentor_id: str, actor: Actor) -> Participant:
        return self._mutate(participant_id, self._assign_mutator(mentor_id, actor))

    def bulk_assign_to_mentor(self, participant_ids: list[str], mentor_id: str, actor: Actor) -> dict:
        return self._bulk(participant_ids, self._assign_mutator(mentor_id, actor))

    def _bulk(self, participant_ids: list[str], mutator) -> dict:
        """Apply ``mutator`` to each id independently; one failure does not stop the rest."""
        updated, skipped = [], []
        for pid in participant_ids:
            try:
                self._mutate(pid, mutator)
            except (NotFoundError, InvalidTransitionError) as exc:
                skipped.append({"id": pid, "reason": str(exc)})
                continue
            updated.append(pid)
        return {"updated": updated, "skipped": skipped}

    # ═════════════════════════════════════════════════════════════════════
    # Mentor
    # ═════════════════════════════════════════════════════════════════════

    def record_initial_contact(self, form: InitialContactForm, actor: Actor) -> Participant:
        state = {"escalated": False, "track": None, "successful": False}

        def mutator(p: Participant, now: datetime):
            tracker = self.mentor_tracker if lifecycle.is_mentor_stage(p.status) else self.bridge_tracker
            label = "Mentor" if tracker is self.mentor_tracker else "Bridge Team"
            state.update(escalated=False, track=tracker.track.name, successful=False)

            if form.contact_outcome == ContactOutcome.ATTEMPTED:
                outcome = tracker.record_attempt(p, now)
                state["escalated"] = outcome.escalated
                p.mentee_status = (MenteeStatus.UNABLE_TO_CONTACT if outcome.escalated
                                   else MenteeStatus.ATTEMPT_MADE)
                self._apply_event(
                    p, outcome.event, now, actor,
                    entry_type=HistoryType.CONTACT_ATTEMPT,
                    description=f"{label} contact attempt recorded",
                    details=form.attempt_notes,
                    metadata={**_subset(form.metadata(), "contactDate", "attemptType", "attemptNotes"),
                              "attemptNumber": outcome.attempts},
                )
            elif form.contact_outcome == ContactOutcome.UNABLE:
                outcome = tracker.record_unable(p, now)
                p.mentee_status = MenteeStatus.UNABLE_TO_CONTACT
                self._apply_event(
                    p, outcome.event, now, actor,
                    entry_type=HistoryType.CONTACT_ATTEMPT,
                    description=f"{label} unable to contact participant",
                    details=form.unable_reason,
                    metadata={**_subset(form.metadata(), "contactDate", "unableReason"),
                              "attemptNumber": outcome.attempts},
                )
            else:
                tracker.record_success(p)
                state["successful"] = True
                if tracker is self.mentor_tracker:
                    p.mentee_status = MenteeStatus.CONTACTED_INITIAL
                self._apply_event(
                    p, tracker.track.success_event, now, actor,
                    entry_type=HistoryType.STATUS_CHANGE,
                    description=("Initial contact form completed - weekly updates and "
                                 "monthly check-ins scheduled"),
                    details=form.additional_notes,
                    metadata=form.metadata(),
                )

        participant = self._mutate(form.participant_id, mutator)

        if state["escalated"] and self._notifier is not None:
            self._notifier.contact_escalated(participant, state["track"])
        if state["successful"] and form.guidance_needed and form.guidance_notes and self._guidance:
            self._guidance.create(
                participant.id, participant.full_name,
                actor.user_id, actor.user_name, form.guidance_notes,
            )
        return participant

    def record_weekly_update(self, form: WeeklyUpdateForm, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            lifecycle.require_activity(p.status, "weekly_update_recorded", participant_id=p.id)
            due_dates.apply_updates(
                p, due_dates.on_weekly_update_recorded(now, weekly_days=self._cadence.weekly_days))
            self._record(p, HistoryType.FORM_SUBMITTED, "Weekly update form completed",
                         actor, now, metadata=form.metadata())

        return self._mutate(form.participant_id, mutator)

    def record_monthly_update(self, form: MonthlyUpdateForm, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            lifecycle.require_activity(p.status, "monthly_update_recorded", participant_id=p.id)
            self._record(p, HistoryType.FORM_SUBMITTED, "Monthly update form completed",
                         actor, now, metadata=form.metadata())

        return self._mutate(form.participant_id, mutator)

    def record_monthly_check_in(self, form: MonthlyCheckInForm, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            lifecycle.require_activity(p.status, "monthly_check_in_recorded", participant_id=p.id)
            due_dates.apply_updates(
                p, due_dates.on_monthly_check_in_recorded(now, check_in_days=self._cadence.check_in_days))
            for step_id in form.completed_steps:
                if step_id not in p.completed_graduation_steps:
                    p.completed_graduation_steps.append(step_id)
            self._record(p, HistoryType.FORM_SUBMITTED, "Monthly check-in form completed",
                         actor, now, metadata=form.metadata())

        return self._mutate(form.participant_id, mutator)

    def submit_monthly_report(self, form: MonthlyReportForm, actor: Actor) -> Participant:
        def mutator(p: Participant, now: datetime):
            lifecycle.require_activity(p.status, "monthly_report_submitted", participant_id=p.id)
            due_dates.apply_updates(
                p, due_dates.on_monthly_report_submitted(now, report_days=self._cadence.report_days))
            self._record(p, HistoryType.FORM_SUBMITTED, "Monthly report submitted",
                         actor, now, details=form.updates, metadata=form.metadata())

        return self._mutate(form.participant_id, mutator)

    def add_completed_graduation_step(self, participant_id: str, step_id: str, actor: Actor) -> Participant:
        step = get_graduation_step(step_id)
        if step is None:
            raise ValidationError(f"Unknown graduation step: {step_id}", details={"step_id": "unknown"})

        def mutator(p: Participant, now: datetime):
            lifecycle.require_activity(p.status, "graduation_step_completed", participant_id=p.id)
            if step.id in p.completed_graduation_steps:
                return False
            p.completed_graduation_steps.append(step.id)
            self._record(p, HistoryType.FORM_SUBMITTED, f"Graduation step completed: {step.title}",
                         actor, now, metadata={"stepId": step.id})

        return self._mutate(participant_id, mutator)

    def approve_graduation(self, participant_id: str, actor: Actor, notes: str | None = None) -> Participant:
        def mutator(p: Participant, now: datetime):
            lifecycle.transition(p.status, "graduation_approved", participant_id=p.id)
            if not is_ready_for_graduation(p.completed_graduation_steps):
                missing = [s.id for s in GRADUATION_STEPS if s.id not in p.completed_graduation_steps]
                raise ValidationError("All graduation steps must be completed before approval",
                                      details={"missing_steps": missing})
            self._apply_event(p, "graduation_approved", now, actor,
                              entry_type=HistoryType.STATUS_CHANGE,
                              description="Graduated from mentorship program",
                              details=notes)
            p.graduation_approval = GraduationApproval(
                approved_by=actor.user_id,
                approved_by_name=actor.user_name,
                approval_date=now,
                notes=notes,
            )

        return self._mutate(participant_id, mutator)

    # ═════════════════════════════════════════════════════════════════════
    # Notes, contact info, removal
    # ═════════════════════════════════════════════════════════════════════

    def add_note(self, participant_id: str, content: str, actor: Actor) -> Participant:
        if not content or not content.strip():
            raise ValidationError("Note content is required", details={"content": "required"})
        text = content.strip()

        def mutator(p: Participant, now: datetime):
            note = history_log.make_note(text, actor, now)
            p.notes = [*p.notes, note]
            self._record(p, HistoryType.NOTE_ADDED, "Note added", actor, now,
                         details=text, metadata={"noteId": note.id})

        return self._mutate(participant_id, mutator)

    def update_contact_info(
        self,
        participant_id: str,
        actor: Actor,
        phone_number: str | None = None,
        email: str | None = None,
    ) -> Participant:
        if phone_number is None and email is None:
            raise ValidationError("phone_number or email is required")

        def mutator(p: Participant, now: datetime):
            changed = {}
            if phone_number is not None and phone_number != p.phone_number:
                p.phone_number = phone_number
                changed["phoneNumber"] = phone_number
            if email is not None and email != p.email:
                p.email = email
                changed["email"] = email
            if not changed:
                return False
            self._record(p, HistoryType.FORM_SUBMITTED, "Contact information updated",
                         actor, now, metadata=changed)

        return self._mutate(participant_id, mutator)

    def delete_participant(self, participant_id: str, actor: Actor | None = None) -> None:
        participant, _ = self._load(participant_id)
        logger.warning(
            "Deleting participant %s (%s, status=%s) by %s",
            participant.id, participant.full_name, participant.status.value,
            actor.user_id if actor else "system",
            extra={"participant_id": participant.id},
        )
        if not self._store.delete(PARTICIPANTS, participant_id):
            raise NotFoundError("Participant", participant_id)

    def merge_participants(self, source_id: str, target_id: str, actor: Actor) -> Participant:
        """Fold ``source_id`` into ``target_id`` and delete the source.

        Two writes, no cross-record transaction: if the delete fails after
        the target write, the merge is left half-done and can be re-run
        without duplicating notes, history or the audit entry.
        """
        if source_id == target_id:
            raise ValidationError("Cannot merge a participant into itself",
                                  details={"source_id": source_id, "target_id": target_id})
        source, _ = self._load(source_id)

        def mutator(target: Participant, now: datetime):
            merged = merge_records(source, target, actor, now)
            target.notes = merged.notes
            target.history = merged.history

        merged = self._mutate(target_id, mutator)
        logger.info("Merged participant %s into %s", source_id, target_id,
                    extra={"participant_id": target_id})
        try:
            self._store.delete(PARTICIPANTS, source_id)
        except Exception:
            logger.warning("Merge %s → %s wrote the target but did not delete the source; "
                           "re-run the merge to finish", source_id, target_id,
                           extra={"participant_id": source_id})
            raise
        return merged

    # ═════════════════════════════════════════════════════════════════════
    # Queries
    # ═════════════════════════════════════════════════════════════════════

    def get_participant_by_id(self, participant_id: str) -> Participant:
        participant, _ = self._load(participant_id)
        return participant

    def list_participants(self, status: ParticipantStatus | str | None = None) -> list[Participant]:
        participants = [Participant.from_dict(d.body) for d in self._store.list(PARTICIPANTS)]
        if status is not None:
            wanted = parse_status(status)
            participants = [p for p in participants if p.status == wanted]
        return participants

    def list_for_bridge_team(self) -> list[Participant]:
        return [p for p in self.list_participants() if p.status in BRIDGE_QUEUE]

    def list_for_mentor_leader(self) -> list[Participant]:
        return self.list_participants(ParticipantStatus.PENDING_MENTOR)

    def list_for_mentor(self, mentor_id: str) -> list[Participant]:
        return [p for p in self.list_participants() if p.assigned_mentor == mentor_id]

    def list_with_overdue_updates(self, mentor_id: str | None = None, now: datetime | None = None) -> list[Participant]:
        """Mentor-stage participants with any overdue cadence (weekly, check-in, report)."""
        now = now or self._clock.now()
        out = []
        for p in self.list_participants():
            if p.status not in MENTOR_STATUSES:
                continue
            if mentor_id and p.assigned_mentor != mentor_id:
                continue
            if due_dates.overdue_cadences(p, now):
                out.append(p)
        return out

    def find_duplicates_by_phone(self, phone_number: str | None) -> list[Participant]:
        return self._find_by("phone_number", phone_number)

    def find_duplicates_by_email(self, email: str | None) -> list[Participant]:
        return self._find_by("email", email)

    def _find_by(self, attr: str, value: str | None) -> list[Participant]:
        if not value or not value.strip():
            return []
        normalized = value.strip().lower()
        return [
            p for p in self.list_participants()
            if getattr(p, attr) and getattr(p, attr).strip().lower() == normalized
        ]

    # ═════════════════════════════════════════════════════════════════════
    # Subscriptions
    # ═════════════════════════════════════════════════════════════════════

    def subscribe(self, participant_id: str, callback: Callable[[Participant | None], None]):
        """Call ``callback`` with the new record after each committed write (None on delete)."""

        def _on_change(body: dict | None) -> None:
            callback(Participant.from_dict(body) if body is not None else None)

        return self._store.subscribe(PARTICIPANTS, participant_id, _on_change)


def _subset(data: dict, *keys: str) -> dict:
    return {k: data[k] for k in keys if k in data}

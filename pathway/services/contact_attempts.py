"""
Contact-attempt tracking and escalation.

Both the bridge team and mentors run the same attempt track: each attempt
increments ``numberOfContactAttempts``; once at least ``max_attempts``
attempts exist *and* ``window`` has elapsed since the first attempt of the
streak, the attempt escalates to the track's "unable" event. A successful
contact resets the streak.

One tracker class, two track definitions (BRIDGE_TRACK, MENTOR_TRACK); the
thresholds are shared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from pathway.core.exceptions import InvalidTransitionError
from pathway.models.participant import Participant, ParticipantStatus

logger = logging.getLogger(__name__)

ESCALATION_ATTEMPTS = 3
ESCALATION_WINDOW_DAYS = 30


@dataclass(frozen=True)
class AttemptTrack:
    name: str
    eligible: frozenset
    attempted_event: str
    unable_event: str
    success_event: str


BRIDGE_TRACK = AttemptTrack(
    name="bridge",
    eligible=frozenset({ParticipantStatus.PENDING_BRIDGE, ParticipantStatus.BRIDGE_ATTEMPTED}),
    attempted_event="bridge_contact_attempted",
    unable_event="bridge_contact_unable",
    success_event="bridge_contact_successful",
)

MENTOR_TRACK = AttemptTrack(
    name="mentor",
    eligible=frozenset({ParticipantStatus.INITIAL_CONTACT_PENDING, ParticipantStatus.MENTOR_ATTEMPTED}),
    attempted_event="initial_contact_attempted",
    unable_event="initial_contact_unable",
    success_event="initial_contact_successful",
)


@dataclass(frozen=True)
class AttemptOutcome:
    event: str
    attempts: int
    escalated: bool = False

    def to_dict(self) -> dict:
        return {"event": self.event, "attempts": self.attempts, "escalated": self.escalated}


class ContactAttemptTracker:
    """Counts attempts on one track and decides when to escalate."""

    def __init__(
        self,
        track: AttemptTrack,
        *,
        max_attempts: int = ESCALATION_ATTEMPTS,
        window_days: int = ESCALATION_WINDOW_DAYS,
    ):
        self.track = track
        self.max_attempts = max_attempts
        self.window = timedelta(days=window_days)

    def is_eligible(self, status: ParticipantStatus) -> bool:
        return ParticipantStatus(status) in self.track.eligible

    def _require_eligible(self, participant: Participant, event: str) -> None:
        if not self.is_eligible(participant.status):
            raise InvalidTransitionError(
                event, participant.status.value, participant_id=participant.id,
                reason=f"not on the {self.track.name} contact track",
            )

    def should_escalate(self, attempts: int, first_attempt: datetime | None, now: datetime) -> bool:
        if attempts < self.max_attempts or first_attempt is None:
            return False
        return now - first_attempt >= self.window

    def record_attempt(self, participant: Participant, now: datetime) -> AttemptOutcome:
        """Count one unsuccessful attempt; mutates the participant's counters."""
        self._require_eligible(participant, self.track.attempted_event)

        if participant.number_of_contact_attempts == 0 or participant.first_attempt_date is None:
            participant.first_attempt_date = now
        participant.number_of_contact_attempts += 1
        participant.last_attempt_date = now

        attempts = participant.number_of_contact_attempts
        if self.should_escalate(attempts, participant.first_attempt_date, now):
            logger.info(
                "Escalating participant %s on %s track after %d attempts",
                participant.id, self.track.name, attempts,
                extra={"participant_id": participant.id, "event": self.track.unable_event},
            )
            return AttemptOutcome(self.track.unable_event, attempts, escalated=True)
        return AttemptOutcome(self.track.attempted_event, attempts)

    def record_unable(self, participant: Participant, now: datetime) -> AttemptOutcome:
        """Explicit unable-to-contact outcome; no threshold applies."""
        self._require_eligible(participant, self.track.unable_event)

        if participant.number_of_contact_attempts == 0 or participant.first_attempt_date is None:
            participant.first_attempt_date = now
        participant.number_of_contact_attempts += 1
        participant.last_attempt_date = now
        return AttemptOutcome(self.track.unable_event, participant.number_of_contact_attempts)

    def record_success(self, participant: Participant) -> AttemptOutcome:
        """Clear the streak; whether success is legal is the state machine's call."""
        reset(participant)
        return AttemptOutcome(self.track.success_event, 0)


def reset(participant: Participant) -> None:
    participant.number_of_contact_attempts = 0
    participant.first_attempt_date = None
    participant.last_attempt_date = None

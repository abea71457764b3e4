"""
Optimistic-concurrency tests.

Two writers racing on one participant must not lose each other's history:
the stale writer's compare-and-swap fails, the service re-reads and
re-applies its change on top of the winner's.
"""

import pytest

from pathway import init_services
from pathway.core.exceptions import ConcurrentModificationError
from pathway.models.document import PARTICIPANTS
from pathway.models.forms import ContactForm
from pathway.models.participant import HistoryType, ParticipantStatus
from pathway.services.document_store import DocumentStore


class RacingStore(DocumentStore):
    """Runs ``racer`` once, just before the next participant update lands."""

    def __init__(self):
        super().__init__()
        self.racer = None
        self.update_calls = 0

    def update(self, collection, key, body, expected_version):
        self.update_calls += 1
        if collection == PARTICIPANTS and self.racer is not None:
            racer, self.racer = self.racer, None
            racer()
        return super().update(collection, key, body, expected_version)


class AlwaysStaleStore(DocumentStore):
    """Every participant update loses the race."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def update(self, collection, key, body, expected_version):
        if collection == PARTICIPANTS:
            self.attempts += 1
            raise ConcurrentModificationError(collection, key, expected_version)
        return super().update(collection, key, body, expected_version)


def _contact(pid, outcome):
    return ContactForm.from_dict(pid, {
        "outcome_type": outcome, "contact_method": "phone", "contact_notes": outcome,
    })


class TestConcurrentWrites:

    def test_racing_contacts_keep_both_history_entries(self, app, clock, bridge_member, leader):
        store = RacingStore()
        service = init_services(app, store=store, clock=clock)
        pid = service.add_participant({"first_name": "Ada", "last_name": "Lovelace"})

        store.racer = lambda: service.record_contact(_contact(pid, "attempted"), leader)
        p = service.record_contact(_contact(pid, "attempted"), bridge_member)

        assert p.number_of_contact_attempts == 2
        attempts = [h for h in p.history if h.type == HistoryType.CONTACT_ATTEMPT]
        assert len(attempts) == 2
        assert {h.created_by for h in attempts} == {bridge_member.user_id, leader.user_id}
        assert len(service.get_participant_by_id(pid).history) == 3

    def test_racing_note_and_status_change(self, app, clock, bridge_member, leader):
        store = RacingStore()
        service = init_services(app, store=store, clock=clock)
        pid = service.add_participant({"first_name": "Ada", "last_name": "Lovelace"})

        store.racer = lambda: service.add_note(pid, "written concurrently", leader)
        service.record_contact(_contact(pid, "successful"), bridge_member)

        stored = service.get_participant_by_id(pid)
        assert stored.status == ParticipantStatus.PENDING_MENTOR
        assert [n.content for n in stored.notes] == ["written concurrently"]
        assert [h.type for h in stored.history] == [
            HistoryType.FORM_SUBMITTED, HistoryType.NOTE_ADDED, HistoryType.STATUS_CHANGE,
        ]

    def test_retry_limit_surfaces_conflict(self, app, clock, leader):
        app.config["WRITE_RETRY_LIMIT"] = 2
        try:
            store = AlwaysStaleStore()
            service = init_services(app, store=store, clock=clock)
            pid = service.add_participant({"first_name": "Ada", "last_name": "Lovelace"})
            with pytest.raises(ConcurrentModificationError):
                service.add_note(pid, "never lands", leader)
            assert store.attempts == 2
        finally:
            app.config["WRITE_RETRY_LIMIT"] = 3

"""
Merge tests.

Pure union of notes and history plus the service-level two-write saga: a
merge interrupted after the target write can be re-run without duplicating
anything.
"""

from datetime import datetime, timedelta, timezone

import pytest

from pathway import init_services
from pathway.core.exceptions import NotFoundError, PersistenceUnavailableError, ValidationError
from pathway.models.document import PARTICIPANTS
from pathway.models.participant import Actor, HistoryType, Participant
from pathway.services.document_store import DocumentStore
from pathway.services.history_log import make_entry, make_note
from pathway.services.merge_engine import merge_audit_id, merge_records

T0 = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)
ACTOR = Actor(user_id="leader-1", user_name="Lee Leader")


def _participant(pid, notes=0, history=0, start=T0) -> Participant:
    p = Participant(id=pid, first_name="Ada", last_name="Lovelace", participant_number="TX-1")
    for i in range(notes):
        p.notes.append(make_note(f"{pid} note {i}", ACTOR, start + timedelta(hours=i)))
    for i in range(history):
        p.history.append(make_entry(HistoryType.NOTE_ADDED, f"{pid} entry {i}", ACTOR,
                                    start + timedelta(hours=i)))
    return p


class FlakyDeleteStore(DocumentStore):
    """First participant delete fails after the target has been written."""

    def __init__(self):
        super().__init__()
        self.fail_next_delete = True

    def delete(self, collection, key):
        if collection == PARTICIPANTS and self.fail_next_delete:
            self.fail_next_delete = False
            raise PersistenceUnavailableError(f"delete {collection}/{key}")
        return super().delete(collection, key)


# ═════════════════════════════════════════════════════════════════════════════
# Pure merge
# ═════════════════════════════════════════════════════════════════════════════


class TestMergeRecords:

    def test_union_plus_audit_entry(self):
        source = _participant("a", notes=2, history=3)
        target = _participant("b", notes=1, history=2, start=T0 + timedelta(days=1))

        merged = merge_records(source, target, ACTOR, T0 + timedelta(days=2))

        assert len(merged.notes) == 3
        assert len(merged.history) == 6
        audit = merged.history[-1]
        assert audit.id == merge_audit_id("a")
        assert audit.type == HistoryType.NOTE_ADDED
        assert audit.description == "Merged participant Ada Lovelace (TX-1) into this profile"
        assert audit.metadata == {"sourceId": "a"}
        assert audit.created_by == ACTOR.user_id

    def test_sorted_newest_first(self):
        source = _participant("a", notes=2, history=2)
        target = _participant("b", notes=1, history=1, start=T0 + timedelta(days=1))
        merged = merge_records(source, target, ACTOR, T0)

        note_times = [n.created_at for n in merged.notes]
        assert note_times == sorted(note_times, reverse=True)
        entry_times = [h.created_at for h in merged.history[:-1]]
        assert entry_times == sorted(entry_times, reverse=True)

    def test_remerge_is_idempotent(self):
        source = _participant("a", notes=2, history=3)
        target = _participant("b", notes=1, history=2)
        once = merge_records(source, target, ACTOR, T0)
        twice = merge_records(source, once, ACTOR, T0 + timedelta(hours=5))

        assert [n.id for n in twice.notes] == [n.id for n in once.notes]
        assert [h.id for h in twice.history] == [h.id for h in once.history]

    def test_target_identity_kept(self):
        source = _participant("a")
        target = _participant("b")
        target.phone_number = "555-0100"
        merged = merge_records(source, target, ACTOR, T0)
        assert merged.id == "b"
        assert merged.phone_number == "555-0100"
        assert target.history == []


# ═════════════════════════════════════════════════════════════════════════════
# Service saga
# ═════════════════════════════════════════════════════════════════════════════


class TestMergeSaga:

    def test_same_id_rejected(self, service, make_participant, leader):
        pid = make_participant()
        with pytest.raises(ValidationError):
            service.merge_participants(pid, pid, leader)

    def test_missing_source(self, service, make_participant, leader):
        pid = make_participant()
        with pytest.raises(NotFoundError):
            service.merge_participants("missing", pid, leader)

    def test_missing_target(self, service, make_participant, leader):
        pid = make_participant()
        with pytest.raises(NotFoundError):
            service.merge_participants(pid, "missing", leader)
        service.get_participant_by_id(pid)

    def test_interrupted_merge_can_be_rerun(self, app, clock, leader):
        service = init_services(app, store=FlakyDeleteStore(), clock=clock)
        a = service.add_participant({"first_name": "Ada", "last_name": "Lovelace"})
        b = service.add_participant({"first_name": "Ada", "last_name": "Lovelace"})
        service.add_note(a, "from a", leader)

        with pytest.raises(PersistenceUnavailableError):
            service.merge_participants(a, b, leader)

        partial = service.get_participant_by_id(b)
        assert partial.history[-1].id == merge_audit_id(a)
        assert service.get_participant_by_id(a) is not None

        clock.advance(minutes=5)
        merged = service.merge_participants(a, b, leader)

        assert [h.id for h in merged.history] == [h.id for h in partial.history]
        assert len(merged.notes) == 1
        with pytest.raises(NotFoundError):
            service.get_participant_by_id(a)

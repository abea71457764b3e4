"""
Duplicate-record merge.

``merge_records`` is pure: it unions the source's notes and history into the
target (de-duplicated by id, newest first) and appends one ``note_added``
audit entry. The audit entry id is derived from the source id, so merging
the same pair again yields the same record; a merge interrupted between
"write target" and "delete source" can simply be re-run.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime

from pathway.models.participant import Actor, HistoryType, Participant
from pathway.services.history_log import dedupe_by_id, make_entry


def merge_audit_id(source_id: str) -> str:
    return f"merge_{source_id}"


def _newest_first(items: list) -> list:
    return sorted(items, key=lambda item: item.created_at, reverse=True)


def merge_records(source: Participant, target: Participant, actor: Actor, now: datetime) -> Participant:
    """Return a copy of ``target`` holding the union of both records' notes and history."""
    audit_id = merge_audit_id(source.id)

    notes = _newest_first(dedupe_by_id([*target.notes, *source.notes]))

    combined = dedupe_by_id([*target.history, *source.history])
    existing_audit = next((h for h in combined if h.id == audit_id), None)
    history = _newest_first([h for h in combined if h.id != audit_id])

    if existing_audit is None:
        number = f" ({source.participant_number})" if source.participant_number else ""
        existing_audit = make_entry(
            HistoryType.NOTE_ADDED,
            f"Merged participant {source.full_name}{number} into this profile",
            actor,
            now,
            metadata={"sourceId": source.id},
            entry_id=audit_id,
        )
    history.append(existing_audit)

    return dataclasses.replace(target, notes=notes, history=history)

"""
Append-only participant history.

Every mutating operation appends exactly one ``HistoryEntry``; entries are
never edited or removed. Appending an entry whose id is already present is
ignored, which keeps retried merges from duplicating audit rows.

Usage:
    from pathway.services.history_log import make_entry, append

    entry = make_entry(HistoryType.NOTE_ADDED, "Note added", actor, now, details=text)
    participant.history = append(participant.history, entry)
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pathway.models.participant import Actor, HistoryEntry, HistoryType, Note


def new_history_id() -> str:
    return f"history_{uuid.uuid4().hex}"


def new_note_id() -> str:
    return f"note_{uuid.uuid4().hex}"


def make_entry(
    entry_type: HistoryType,
    description: str,
    actor: Actor | None,
    now: datetime,
    *,
    details: str | None = None,
    metadata: dict | None = None,
    entry_id: str | None = None,
) -> HistoryEntry:
    return HistoryEntry(
        id=entry_id or new_history_id(),
        type=entry_type,
        description=description,
        created_at=now,
        details=details,
        created_by=actor.user_id if actor else None,
        created_by_name=actor.user_name if actor else None,
        metadata=metadata or None,
    )


def make_note(content: str, actor: Actor, now: datetime) -> Note:
    return Note(
        id=new_note_id(),
        content=content,
        created_by=actor.user_id,
        created_by_name=actor.user_name,
        created_at=now,
    )


def append(history: list[HistoryEntry], entry: HistoryEntry) -> list[HistoryEntry]:
    """Return a new list with ``entry`` at the end (unchanged if the id exists)."""
    if any(existing.id == entry.id for existing in history):
        return list(history)
    return [*history, entry]


def dedupe_by_id(items: list) -> list:
    """Keep the first occurrence of every id, preserving order."""
    seen: set[str] = set()
    out = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out

"""
Document store over SQLAlchemy.

Key-addressed whole-record persistence with get / create / update / delete /
list / subscribe. Every document carries a version; ``update`` is a
compare-and-swap that only succeeds when the caller presents the version it
read, so concurrent read-modify-write cycles cannot silently clobber each
other.

Failures:
    - stale version            → ConcurrentModificationError
    - duplicate key on create  → ConflictError
    - store unreachable/timeout → PersistenceUnavailableError (session rolled back)

Subscribers are notified after a successful commit with the new body, or
``None`` when the document is deleted.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from pathway.core.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    PersistenceUnavailableError,
)
from pathway.models import db
from pathway.models.document import StoredDocument

logger = logging.getLogger(__name__)

_documents = StoredDocument.__table__


@dataclass(frozen=True)
class VersionedDocument:
    key: str
    body: dict
    version: int


class Subscription:
    """Handle returned by ``subscribe``; ``cancel()`` stops notifications."""

    def __init__(self, store: DocumentStore, collection: str, key: str, callback: Callable):
        self._store = store
        self.collection = collection
        self.key = key
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._store._unsubscribe(self)
            self.active = False


class DocumentStore:
    """Versioned JSON documents in the ``stored_documents`` table."""

    def __init__(self):
        self._subscribers: dict[tuple[str, str], list[Subscription]] = {}
        self._lock = threading.Lock()

    # ── Session guard ────────────────────────────────────────────────────

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except (OperationalError, PoolTimeoutError) as exc:
            db.session.rollback()
            logger.error("Store unavailable during %s: %s", operation, exc)
            raise PersistenceUnavailableError(operation, exc) from exc

    # ── Reads ────────────────────────────────────────────────────────────

    def get(self, collection: str, key: str) -> VersionedDocument | None:
        with self._guard(f"get {collection}/{key}"):
            row = db.session.execute(
                sa.select(_documents.c.body_json, _documents.c.version).where(
                    _documents.c.collection == collection,
                    _documents.c.key == key,
                )
            ).first()
        if row is None:
            return None
        return VersionedDocument(key=key, body=json.loads(row.body_json), version=row.version)

    def list(self, collection: str) -> list[VersionedDocument]:
        """Snapshot of every document in ``collection``, ordered by key."""
        with self._guard(f"list {collection}"):
            rows = db.session.execute(
                sa.select(_documents.c.key, _documents.c.body_json, _documents.c.version)
                .where(_documents.c.collection == collection)
                .order_by(_documents.c.key)
            ).all()
        return [
            VersionedDocument(key=r.key, body=json.loads(r.body_json), version=r.version)
            for r in rows
        ]

    # ── Writes ───────────────────────────────────────────────────────────

    def create(self, collection: str, key: str, body: dict) -> int:
        now = datetime.now(timezone.utc)
        with self._guard(f"create {collection}/{key}"):
            try:
                db.session.execute(
                    sa.insert(_documents).values(
                        collection=collection,
                        key=key,
                        body_json=json.dumps(body),
                        version=1,
                        created_at=now,
                        updated_at=now,
                    )
                )
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise ConflictError(collection, "key", key) from None
        self._notify(collection, key, body)
        return 1

    def update(self, collection: str, key: str, body: dict, expected_version: int) -> int:
        """Replace the document if it is still at ``expected_version``.

        Returns the new version.
        """
        with self._guard(f"update {collection}/{key}"):
            result = db.session.execute(
                sa.update(_documents)
                .where(
                    _documents.c.collection == collection,
                    _documents.c.key == key,
                    _documents.c.version == expected_version,
                )
                .values(
                    body_json=json.dumps(body),
                    version=_documents.c.version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                db.session.rollback()
                raise ConcurrentModificationError(collection, key, expected_version)
            db.session.commit()
        self._notify(collection, key, body)
        return expected_version + 1

    def delete(self, collection: str, key: str) -> bool:
        """Remove the document. Returns False when it did not exist."""
        with self._guard(f"delete {collection}/{key}"):
            result = db.session.execute(
                sa.delete(_documents).where(
                    _documents.c.collection == collection,
                    _documents.c.key == key,
                )
            )
            db.session.commit()
        deleted = result.rowcount > 0
        if deleted:
            self._notify(collection, key, None)
        return deleted

    # ── Subscriptions ────────────────────────────────────────────────────

    def subscribe(self, collection: str, key: str, callback: Callable[[dict | None], None]) -> Subscription:
        sub = Subscription(self, collection, key, callback)
        with self._lock:
            self._subscribers.setdefault((collection, key), []).append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get((sub.collection, sub.key), [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subscribers.pop((sub.collection, sub.key), None)

    def _notify(self, collection: str, key: str, body: dict | None) -> None:
        with self._lock:
            subs = list(self._subscribers.get((collection, key), []))
        for sub in subs:
            try:
                sub.callback(body)
            except Exception:
                # Subscriber errors never undo a committed write
                logger.exception("Subscriber callback failed for %s/%s", collection, key)

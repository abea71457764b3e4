"""
Reentry Pathway
Stored document model.

Models:
    - StoredDocument: one JSON document per (collection, key) with a
      version counter used for compare-and-swap writes
"""

from datetime import datetime, timezone

from pathway.models import db


# ── Collections ──────────────────────────────────────────────────────────────

PARTICIPANTS = "participants"
GUIDANCE_TASKS = "guidance_tasks"


class StoredDocument(db.Model):
    """
    Whole-record document row.

    ``version`` starts at 1 and is incremented by every successful update;
    writers must present the version they read.
    """

    __tablename__ = "stored_documents"
    __table_args__ = (
        db.UniqueConstraint("collection", "key", name="uq_stored_documents_collection_key"),
    )

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(128), nullable=False)
    body_json = db.Column(db.Text, nullable=False, default="{}")
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<StoredDocument {self.collection}/{self.key} v{self.version}>"

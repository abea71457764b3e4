"""create_stored_documents

Creates the versioned document table backing participants and guidance tasks:
  - stored_documents — one JSON body per (collection, key) plus a version
    counter used for compare-and-swap writes

Created conditionally so databases that already received the table through
db.create_all() in development can run the migration safely.

Revision ID: 3f9c1a7e2b40
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '3f9c1a7e2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    if "stored_documents" not in existing:
        op.create_table(
            "stored_documents",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("collection", sa.String(length=64), nullable=False),
            sa.Column("key", sa.String(length=128), nullable=False),
            sa.Column("body_json", sa.Text(), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("collection", "key", name="uq_stored_documents_collection_key"),
        )
        op.create_index("ix_stored_documents_collection", "stored_documents", ["collection"])


def downgrade():
    op.drop_index("ix_stored_documents_collection", table_name="stored_documents")
    op.drop_table("stored_documents")

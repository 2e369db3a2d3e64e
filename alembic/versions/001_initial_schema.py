"""Initial schema: subject catalog, users, groups and messages.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


SUBJECT_CATALOG = [
    {"id": 1, "name": "Physics"},
    {"id": 2, "name": "Chemistry"},
    {"id": 3, "name": "Maths"},
    {"id": 4, "name": "Biology"},
    {"id": 5, "name": "Computer Science"},
    {"id": 6, "name": "English"},
    {"id": 7, "name": "Commerce"},
    {"id": 8, "name": "Business Studies"},
]


def upgrade() -> None:
    # ── 1. subjects (reference table) ───────────────────────────────
    subjects = op.create_table(
        "subjects",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("name", sa.String, unique=True, nullable=False),
    )
    op.bulk_insert(subjects, SUBJECT_CATALOG)

    # ── 2. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("avatar_url", sa.String, nullable=False, server_default=""),
        sa.Column("bio", sa.Text, nullable=False, server_default=""),
        sa.Column(
            "learning_style",
            sa.String,
            nullable=False,
            comment="Visual / Auditory / Kinesthetic / Reading/Writing",
        ),
        sa.Column(
            "preferred_methods",
            postgresql.JSONB,
            nullable=True,
            comment="Array of study method labels",
        ),
        sa.Column(
            "availability",
            postgresql.JSONB,
            nullable=True,
            comment="Array of availability slot labels",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 3. user_subjects ────────────────────────────────────────────
    op.create_table(
        "user_subjects",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "subject_id",
            sa.Integer,
            sa.ForeignKey("subjects.id"),
            nullable=False,
        ),
        sa.Column("role", sa.String, nullable=False, comment="Needs Help / Can Help"),
        sa.Column(
            "position",
            sa.Integer,
            nullable=False,
            server_default="0",
            comment="Order chosen by the user",
        ),
        sa.UniqueConstraint("user_id", "subject_id", name="uq_user_subject"),
    )

    # ── 4. groups ───────────────────────────────────────────────────
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column(
            "subject_id",
            sa.Integer,
            sa.ForeignKey("subjects.id"),
            nullable=False,
        ),
        sa.Column(
            "workspace_content",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="scratchpad / whiteboard URI / studyPlan",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 5. group_members ────────────────────────────────────────────
    op.create_table(
        "group_members",
        sa.Column(
            "group_id",
            sa.Integer,
            sa.ForeignKey("groups.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 6. messages (append-only) ───────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "sender_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "receiver_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Assigned by the server at append time",
        ),
    )
    op.create_index("ix_messages_timestamp", "messages", ["timestamp"])
    op.create_index("ix_messages_pair", "messages", ["sender_id", "receiver_id"])


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_messages_pair", table_name="messages")
    op.drop_index("ix_messages_timestamp", table_name="messages")
    op.drop_table("messages")

    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("user_subjects")
    op.drop_table("users")
    op.drop_table("subjects")

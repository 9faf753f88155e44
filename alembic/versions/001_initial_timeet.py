"""Create member, meeting, participant, and agenda tables.

Revision ID: 001_initial_timeet
Revises:
Create Date: 2026-10-17

No foreign key constraints (application-level referential integrity via
repository). Meetings and agendas carry a ``version`` column used for
optimistic locking.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_initial_timeet"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── members table ────────────────────────────────────────────────────

    op.create_table(
        "members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("nickname", sa.String(100), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("image_url", sa.String(1000), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_members"),
        sa.UniqueConstraint("email", name="uq_members_email"),
    )

    # ── meetings table ───────────────────────────────────────────────────

    op.create_table(
        "meetings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actual_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.String(50),
            server_default=sa.text("'scheduled'"),
            nullable=False,
        ),
        sa.Column("host_member_id", UUID(as_uuid=True), nullable=True),
        sa.Column("total_estimated_duration", sa.Interval(), nullable=False),
        sa.Column("total_actual_duration", sa.Interval(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_meetings"),
    )
    op.create_index(
        "ix_meetings_status_start_time",
        "meetings",
        ["status", "start_time"],
    )

    # ── participants table ───────────────────────────────────────────────

    op.create_table(
        "participants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("meeting_id", UUID(as_uuid=True), nullable=False),
        sa.Column("member_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "removed",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_participants"),
        sa.UniqueConstraint(
            "meeting_id", "member_id", name="uq_participant_meeting_member"
        ),
    )
    op.create_index(
        "ix_participants_meeting_id",
        "participants",
        ["meeting_id"],
    )

    # ── agendas table ────────────────────────────────────────────────────

    op.create_table(
        "agendas",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("meeting_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column(
            "type",
            sa.String(20),
            server_default=sa.text("'agenda'"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.String(20),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("order_num", sa.Integer(), nullable=False),
        sa.Column("allocated_duration", sa.Interval(), nullable=False),
        sa.Column("current_duration", sa.Interval(), nullable=False),
        sa.Column("segment_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_agendas"),
    )
    op.create_index(
        "ix_agendas_meeting_order",
        "agendas",
        ["meeting_id", "order_num"],
    )


def downgrade() -> None:
    op.drop_index("ix_agendas_meeting_order", table_name="agendas")
    op.drop_table("agendas")
    op.drop_index("ix_participants_meeting_id", table_name="participants")
    op.drop_table("participants")
    op.drop_index("ix_meetings_status_start_time", table_name="meetings")
    op.drop_table("meetings")
    op.drop_table("members")

"""Meeting persistence models.

Two SQLAlchemy models:
- MeetingModel: Meeting aggregate root with duration bookkeeping
- ParticipantModel: Member membership in a meeting (soft-removable)

No foreign key constraints (application-level referential integrity via
repository). Meeting rows carry a version counter so concurrent writers are
detected at flush time.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    Interval,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.timeet.core.database import Base


class MeetingModel(Base):
    """A scheduled meeting and its running duration totals."""

    __tablename__ = "meetings"
    __table_args__ = (
        Index("ix_meetings_status_start_time", "status", "start_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    actual_start_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(50),
        default="scheduled",
        server_default=text("'scheduled'"),
    )
    host_member_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    total_estimated_duration: Mapped[timedelta] = mapped_column(
        Interval, nullable=False, default=timedelta(0)
    )
    total_actual_duration: Mapped[timedelta] = mapped_column(
        Interval, nullable=False, default=timedelta(0)
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )

    __mapper_args__ = {"version_id_col": version}


class ParticipantModel(Base):
    """A member's membership in a meeting.

    Leaving sets ``removed``; rejoining flips it back on the same row, so
    (meeting_id, member_id) is unique.
    """

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("meeting_id", "member_id", name="uq_participant_meeting_member"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    meeting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    member_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    removed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
    )
    removed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

"""Agenda persistence model.

One row per agenda item. ``order_num`` is kept contiguous per meeting by the
service layer; it is not a unique constraint because reordering rewrites
every row of a meeting within one flush.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from sqlalchemy import DateTime, Index, Integer, Interval, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.timeet.core.database import Base


class AgendaModel(Base):
    """A timed agenda item belonging to a meeting."""

    __tablename__ = "agendas"
    __table_args__ = (
        Index("ix_agendas_meeting_order", "meeting_id", "order_num"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    meeting_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(
        String(20),
        default="agenda",
        server_default=text("'agenda'"),
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        server_default=text("'pending'"),
    )
    order_num: Mapped[int] = mapped_column(Integer, nullable=False)
    allocated_duration: Mapped[timedelta] = mapped_column(Interval, nullable=False)
    current_duration: Mapped[timedelta] = mapped_column(
        Interval, nullable=False, default=timedelta(0)
    )
    segment_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
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

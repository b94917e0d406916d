"""Event ORM — a scheduled event owned by one organizer.

Invariants:
    - end_at strictly after start_at (checked at the API boundary and by a CHECK constraint)
    - min_team_size / max_team_size only meaningful when team_event is true
    - Deleting an event deletes its teams (and through them, their members)

Design Decisions:
    - (organizer_id, start_at) index: the conflict scan reads one organizer's calendar
    - organizer_id is a plain integer: user accounts live outside this service
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, Index, Integer, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventkeeper.db.base import Base


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="events_window_check"),
        CheckConstraint(
            "min_team_size >= 1 AND max_team_size >= min_team_size",
            name="events_team_size_check",
        ),
        Index("events_organizer_start_idx", "organizer_id", "start_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organizer_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    team_event: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_team_size: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_team_size: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    teams: Mapped[list["Team"]] = relationship(
        "Team", back_populates="event",
        cascade="all, delete-orphan", lazy="selectin",
    )

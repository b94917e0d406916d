"""TeamMember ORM — one user's standing in one team.

Invariants:
    - (team_id, user_id) unique: re-adding a user revives the same row
    - status is one of MemberStatus values
    - joined_at is set while joined (and kept after removal), null for invitations
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventkeeper.core.domain_types import MemberStatus
from eventkeeper.db.base import Base


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="team_members_team_user_key"),
        Index("team_members_team_status_idx", "team_id", "status"),
        CheckConstraint(
            "status IN ('invited', 'joined', 'declined', 'removed')",
            name="team_members_status_check",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MemberStatus.JOINED.value,
    )
    joined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    team: Mapped["Team"] = relationship("Team", back_populates="members")

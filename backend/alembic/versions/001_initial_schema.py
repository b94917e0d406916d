"""Initial schema — events, teams, team_members.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("organizer_id", sa.Integer, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("team_event", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("min_team_size", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_team_size", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("end_at > start_at", name="events_window_check"),
        sa.CheckConstraint(
            "min_team_size >= 1 AND max_team_size >= min_team_size",
            name="events_team_size_check",
        ),
    )
    op.create_index(
        "events_organizer_start_idx", "events", ["organizer_id", "start_at"],
    )

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("leader_id", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("name", "event_id", name="teams_name_event_key"),
    )

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="joined"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("team_id", "user_id", name="team_members_team_user_key"),
        sa.CheckConstraint(
            "status IN ('invited', 'joined', 'declined', 'removed')",
            name="team_members_status_check",
        ),
    )
    op.create_index(
        "team_members_team_status_idx", "team_members", ["team_id", "status"],
    )


def downgrade() -> None:
    op.drop_index("team_members_team_status_idx", table_name="team_members")
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_index("events_organizer_start_idx", table_name="events")
    op.drop_table("events")

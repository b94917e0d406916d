"""API Dependencies — wires the store and core services into FastAPI handlers.

Design Decisions:
    - Handlers depend on get_store, never on db_manager directly: tests override
      one dependency to swap in SQLite or the in-memory fake
"""

from fastapi import Depends

from eventkeeper.core.repository_protocols import Store
from eventkeeper.infrastructure.database import (
    DatabaseSessionManager, get_db_manager,
)
from eventkeeper.infrastructure.sql_store import SqlStore
from eventkeeper.services.schedule_guard import ScheduleGuard
from eventkeeper.services.team_membership import TeamMembershipEngine


def get_store(
    manager: DatabaseSessionManager = Depends(get_db_manager),
) -> Store:
    return SqlStore(manager)


def get_schedule_guard(store: Store = Depends(get_store)) -> ScheduleGuard:
    return ScheduleGuard(store)


def get_team_engine(store: Store = Depends(get_store)) -> TeamMembershipEngine:
    return TeamMembershipEngine(store)

"""ORM Models — SQLAlchemy declarative models for events, teams and members.

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from eventkeeper.models.event import Event  # noqa: F401
from eventkeeper.models.team import Team  # noqa: F401
from eventkeeper.models.team_member import TeamMember  # noqa: F401

"""Schedule Conflict Detection — pure half-open interval overlap rules.

Invariants:
    - [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1
    - Touching windows (e1 == s2) never conflict
    - The excluded event never appears in the result
    - Result ordered ascending by start (id breaks ties)

Design Decisions:
    - Overlap decided in Python, not SQL: one rule shared by every store
      implementation. Inclusive BETWEEN-style range queries would flag
      touching windows
    - Ordering of proposed start/end is the caller's responsibility
"""

from datetime import datetime

from eventkeeper.core.domain_types import EventId, EventWindow, as_utc


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime,
) -> bool:
    return as_utc(start_a) < as_utc(end_b) and as_utc(start_b) < as_utc(end_a)


def find_overlapping(
    windows: list[EventWindow],
    proposed_start: datetime,
    proposed_end: datetime,
    exclude_event_id: EventId | None = None,
) -> list[EventWindow]:
    """Return windows overlapping [proposed_start, proposed_end), sorted by start."""
    conflicts = [
        w for w in windows
        if w.id != exclude_event_id
        and intervals_overlap(w.start, w.end, proposed_start, proposed_end)
    ]
    return sorted(conflicts, key=lambda w: (as_utc(w.start), w.id))

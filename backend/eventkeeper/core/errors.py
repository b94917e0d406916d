"""Error Hierarchy — typed, categorized exceptions for every invariant the core protects.

Invariants:
    - Every error has a kind (ErrorKind), code (str), category, severity
    - Callers branch on type or .kind, never on message text
    - Domain errors (400-level) are recoverable; store failures (503) are critical
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with EventKeeperError base: one FastAPI handler renders
      every error in the same envelope
    - ErrorKind is transport-agnostic; http_status is only a hint for the HTTP shell
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from eventkeeper.core.domain_types import EventWindow


class ErrorKind(str, Enum):
    """Tagged error kinds surfaced by the invariant core."""
    NOT_FOUND = "not_found"
    NOT_SUPPORTED = "not_supported"
    SCHEDULE_CONFLICT = "schedule_conflict"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    INVALID_STATE = "invalid_state"
    INVALID_MEMBER = "invalid_member"
    DUPLICATE_NAME = "duplicate_name"
    STORE_FAILURE = "store_failure"


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: int | None = None
    team_id: int | None = None
    user_id: int | None = None
    organizer_id: int | None = None
    debug_info: dict[str, Any] | None = None


class EventKeeperError(Exception):
    """Base exception for all EventKeeper errors."""

    def __init__(
        self,
        message: str,
        code: str,
        kind: ErrorKind,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.kind = kind
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def details(self) -> dict:
        """Kind-specific payload merged into the response. Empty by default."""
        return {}

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "event_id": self.context.event_id,
                "team_id": self.context.team_id,
                "user_id": self.context.user_id,
                "organizer_id": self.context.organizer_id,
            },
        }
        details = self.details()
        if details:
            body["details"] = details
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class ResourceNotFoundError(EventKeeperError):
    """Referenced event, team or member does not exist."""
    def __init__(
        self, resource_type: str, resource_id: object, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorKind.NOT_FOUND,
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class NotSupportedError(EventKeeperError):
    """Team operation attempted against an event that is not a team event."""
    def __init__(self, event_id: int, context: ErrorContext | None = None):
        super().__init__(
            f"Event '{event_id}' does not support team participation",
            "TEAMS_NOT_SUPPORTED", ErrorKind.NOT_SUPPORTED,
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.ERROR, context, 400,
        )
        self.event_id = event_id


class ScheduleConflictError(EventKeeperError):
    """Organizer already runs events overlapping the proposed window."""
    def __init__(
        self, conflicts: list[EventWindow], context: ErrorContext | None = None,
    ):
        ids = ", ".join(str(c.id) for c in conflicts)
        super().__init__(
            f"Proposed schedule overlaps {len(conflicts)} event(s): {ids}",
            "SCHEDULE_CONFLICT", ErrorKind.SCHEDULE_CONFLICT,
            ErrorCategory.CONFLICT, ErrorSeverity.WARNING, context, 409,
        )
        self.conflicts = conflicts

    def details(self) -> dict:
        return {
            "conflicts": [
                {
                    "id": c.id,
                    "title": c.title,
                    "start": c.start.isoformat(),
                    "end": c.end.isoformat(),
                }
                for c in self.conflicts
            ],
        }


class CapacityExceededError(EventKeeperError):
    """Adding a joined member would exceed the event's max_team_size."""
    def __init__(self, limit: int, context: ErrorContext | None = None):
        super().__init__(
            f"Team is already at maximum capacity ({limit} members)",
            "CAPACITY_EXCEEDED", ErrorKind.CAPACITY_EXCEEDED,
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.ERROR, context, 400,
        )
        self.limit = limit

    def details(self) -> dict:
        return {"limit": self.limit}


class InvalidStateError(EventKeeperError):
    """State violation: member state machine or event settings its teams can no longer satisfy."""
    LEADER_SELF_REMOVAL = "leader_self_removal"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_WINDOW = "invalid_window"
    INVALID_TEAM_SIZE = "invalid_team_size"
    TEAMS_EXIST = "teams_exist"

    def __init__(
        self, reason: str, message: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "INVALID_STATE", ErrorKind.INVALID_STATE,
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.ERROR, context, 400,
        )
        self.reason = reason

    def details(self) -> dict:
        return {"reason": self.reason}


class InvalidMemberError(EventKeeperError):
    """Leadership transfer target is not a joined member of the team."""
    def __init__(
        self, team_id: int, user_id: int, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"User '{user_id}' is not a joined member of team '{team_id}'",
            "INVALID_MEMBER", ErrorKind.INVALID_MEMBER,
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.ERROR, context, 400,
        )
        self.team_id = team_id
        self.user_id = user_id


class DuplicateNameError(EventKeeperError):
    """Another team of the same event already uses this name."""
    def __init__(
        self, name: str, event_id: int, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Team name '{name}' is already taken for event '{event_id}'",
            "DUPLICATE_TEAM_NAME", ErrorKind.DUPLICATE_NAME,
            ErrorCategory.CONFLICT, ErrorSeverity.WARNING, context, 409,
        )
        self.name = name
        self.event_id = event_id

    def details(self) -> dict:
        return {"name": self.name}


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StoreFailureError(EventKeeperError):
    """Persistence operation failed. Propagated unchanged, never retried by the core."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Store {operation} failed: {message}",
            "STORE_FAILURE", ErrorKind.STORE_FAILURE,
            ErrorCategory.DATABASE, ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation

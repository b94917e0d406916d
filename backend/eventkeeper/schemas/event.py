"""Event Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - end strictly after start, both timezone-aware
    - 1 <= min_team_size <= max_team_size
    - team_event is a real boolean ("true"/"false" strings rejected)
    - EventUpdate moves start and end together or not at all
"""

from datetime import datetime

from pydantic import (
    AwareDatetime, BaseModel, Field, StrictBool, field_validator, model_validator,
)

from eventkeeper.core.domain_types import EventRecord, EventWindow


class ScheduleWindow(BaseModel):
    start: AwareDatetime
    end: AwareDatetime

    @model_validator(mode="after")
    def check_window(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class ScheduleCheckRequest(ScheduleWindow):
    organizer_id: int = Field(ge=1)
    exclude_event_id: int | None = Field(None, ge=1)


class EventCreate(ScheduleWindow):
    organizer_id: int = Field(ge=1)
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=10_000)
    location: str | None = Field(None, max_length=200)
    team_event: StrictBool = False
    min_team_size: int = Field(1, ge=1)
    max_team_size: int = Field(1, ge=1)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v

    @model_validator(mode="after")
    def check_team_sizes(self):
        if self.min_team_size > self.max_team_size:
            raise ValueError("min_team_size cannot exceed max_team_size")
        return self


class EventUpdate(BaseModel):
    organizer_id: int | None = Field(None, ge=1)
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=10_000)
    location: str | None = Field(None, max_length=200)
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    team_event: StrictBool | None = None
    min_team_size: int | None = Field(None, ge=1)
    max_team_size: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def check_consistency(self):
        if (self.start is None) != (self.end is None):
            raise ValueError("start and end must be updated together")
        if self.start is not None and self.end <= self.start:
            raise ValueError("end must be after start")
        if (
            self.min_team_size is not None
            and self.max_team_size is not None
            and self.min_team_size > self.max_team_size
        ):
            raise ValueError("min_team_size cannot exceed max_team_size")
        return self


class ConflictResponse(BaseModel):
    id: int
    title: str
    start: datetime
    end: datetime

    @classmethod
    def from_window(cls, window: EventWindow) -> "ConflictResponse":
        return cls(
            id=window.id, title=window.title, start=window.start, end=window.end,
        )


class ScheduleCheckResponse(BaseModel):
    ok: bool
    conflicts: list[ConflictResponse] = []


class EventResponse(BaseModel):
    id: int
    organizer_id: int
    title: str
    start: datetime
    end: datetime
    team_event: bool
    min_team_size: int
    max_team_size: int

    @classmethod
    def from_record(cls, event: EventRecord) -> "EventResponse":
        return cls(
            id=event.id,
            organizer_id=event.organizer_id,
            title=event.title,
            start=event.start,
            end=event.end,
            team_event=event.team_event,
            min_team_size=event.min_team_size,
            max_team_size=event.max_team_size,
        )

"""Pydantic schemas for the project timeline."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from arqflow.domain.timeline import Timeline


class TimelineItem(BaseModel):
    """A single stage change or time entry in the project timeline."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    type: Literal["stage_change", "time_entry"]
    timestamp: datetime
    from_stage: str | None = None
    to_stage: str | None = None
    stage_id: str | None = None
    hours: Decimal | None = None
    description: str | None = None
    actor_name: str | None = None


class TimelineResponse(BaseModel):
    """Timeline response for a project.

    entries defaults to empty array, never null.
    """

    project_id: str
    entries: list[TimelineItem] = Field(default_factory=list, description="Timeline items, oldest first")
    hours_by_stage: dict[str, Decimal] = Field(default_factory=dict)
    total_hours: Decimal = Decimal("0")

    @classmethod
    def from_timeline(cls, project_id: str, timeline: Timeline) -> "TimelineResponse":
        return cls(
            project_id=project_id,
            entries=[TimelineItem.model_validate(e) for e in timeline.entries],
            hours_by_stage=timeline.hours_by_stage,
            total_hours=timeline.total_hours,
        )

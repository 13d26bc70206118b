"""Pydantic schemas for project, stage and time-entry endpoints."""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from arqflow.db.models.project import Project
from arqflow.db.models.time_entry import TimeEntry
from arqflow.domain.catalog import Stage, StageColor
from arqflow.domain.workflow import Workflow

SettableStatus = Literal["aguardando", "em_andamento", "cancelado"]


class ProjectCreate(BaseModel):
    # Plain str so unknown types reach the catalog and fail as unknown_service_type
    service_type: str = Field(min_length=1)
    modality: Literal["presencial", "online"] | None = None
    notes: str | None = Field(default=None, max_length=2000)
    estimated_hours: Decimal | None = Field(default=None, gt=0)


class StageSchema(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1)
    color: StageColor
    description: str | None = None

    def to_domain(self) -> Stage:
        return Stage(id=self.id, name=self.name, color=self.color, description=self.description)

    @classmethod
    def from_domain(cls, stage: Stage) -> "StageSchema":
        return cls(id=stage.id, name=stage.name, color=stage.color, description=stage.description)


class WorkflowSchema(BaseModel):
    type: str
    modality: str | None = None
    stages: list[StageSchema]
    current_stage_index: int

    @classmethod
    def from_domain(cls, workflow: Workflow) -> "WorkflowSchema":
        return cls(
            type=workflow.service_type,
            modality=workflow.modality,
            stages=[StageSchema.from_domain(s) for s in workflow.stages],
            current_stage_index=workflow.current_stage_index,
        )


class ProjectResponse(BaseModel):
    id: str
    service_type: str
    modality: str | None
    status: str
    stage: str | None
    workflow: WorkflowSchema | None
    hours_used: Decimal
    estimated_hours: Decimal | None
    notes: str | None
    completed_at: datetime | None
    created_at: datetime

    @classmethod
    def from_model(cls, project: Project) -> "ProjectResponse":
        """Raises MalformedWorkflowError if the stored workflow document is invalid."""
        workflow = Workflow.from_dict(project.workflow) if project.workflow else None
        return cls(
            id=str(project.id),
            service_type=project.service_type,
            modality=project.modality,
            status=project.status,
            stage=project.stage,
            workflow=WorkflowSchema.from_domain(workflow) if workflow else None,
            hours_used=project.hours_used,
            estimated_hours=project.estimated_hours,
            notes=project.notes,
            completed_at=project.completed_at,
            created_at=project.created_at,
        )


class StatusUpdate(BaseModel):
    status: SettableStatus


class MoveStageRequest(BaseModel):
    stage: str = Field(min_length=1)


class MoveStageResponse(BaseModel):
    project_id: str
    stage: str
    status: str
    current_stage_index: int
    completed_at: datetime | None = None


class AddStageRequest(BaseModel):
    stage: StageSchema
    position: int | None = Field(default=None, ge=0)


class StagesResponse(BaseModel):
    stages: list[StageSchema] = Field(default_factory=list)
    current_stage: str | None = None
    current_stage_index: int | None = None


class TimeEntryCreate(BaseModel):
    # Range checks live in the domain so they surface as invalid_hours / future_date
    stage: str = Field(min_length=1)
    hours: Decimal
    date: dt.date
    description: str | None = None


class TimeEntryResponse(BaseModel):
    id: str
    project_id: str
    stage: str | None
    hours: Decimal
    date: dt.date
    description: str | None
    author_id: str
    created_at: datetime

    @classmethod
    def from_model(cls, entry: TimeEntry) -> "TimeEntryResponse":
        return cls(
            id=str(entry.id),
            project_id=str(entry.project_id),
            stage=entry.stage,
            hours=entry.hours,
            date=entry.date,
            description=entry.description,
            author_id=entry.profile_id,
            created_at=entry.created_at,
        )

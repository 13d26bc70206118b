"""Project workflow API routes.

POST  /api/projects                         - Create a project with its catalog workflow
GET   /api/projects                         - List the organization's projects
GET   /api/projects/{id}                    - Project detail
PATCH /api/projects/{id}/status             - Start, hold or cancel a project
POST  /api/projects/{id}/stage              - Move to a stage
GET   /api/projects/{id}/stages             - Workflow stages and current stage
POST  /api/projects/{id}/stages             - Insert a custom stage
POST  /api/projects/{id}/time-entries       - Record hours on a stage

Workflow errors are raised by the services and rendered by the WorkflowError
handler registered in main.py.
"""

import uuid

from fastapi import APIRouter, Depends, Query

from arqflow.core.auth import ClerkUser, require_org_member
from arqflow.db.base import get_session_factory
from arqflow.schemas.projects import (
    AddStageRequest,
    MoveStageRequest,
    MoveStageResponse,
    ProjectCreate,
    ProjectResponse,
    StageSchema,
    StagesResponse,
    StatusUpdate,
    TimeEntryCreate,
    TimeEntryResponse,
)
from arqflow.services.time_entry_service import TimeEntryService
from arqflow.services.workflow_service import WorkflowService

router = APIRouter()


def get_workflow_service() -> WorkflowService:
    return WorkflowService(get_session_factory())


def get_time_entry_service() -> TimeEntryService:
    return TimeEntryService(get_session_factory())


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    request: ProjectCreate,
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
) -> ProjectResponse:
    project = await service.create_project(
        organization_id=user.organization_id,
        service_type=request.service_type,
        modality=request.modality,
        created_by=user.user_id,
        notes=request.notes,
        estimated_hours=request.estimated_hours,
    )
    return ProjectResponse.from_model(project)


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
    status: str | None = None,
    service_type: str | None = None,
    stage: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[ProjectResponse]:
    projects = await service.list_projects(
        user.organization_id,
        status=status,
        service_type=service_type,
        stage=stage,
        limit=limit,
        offset=offset,
    )
    return [ProjectResponse.from_model(p) for p in projects]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: uuid.UUID,
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
) -> ProjectResponse:
    project = await service.get_project(user.organization_id, project_id)
    return ProjectResponse.from_model(project)


@router.patch("/{project_id}/status", response_model=ProjectResponse)
async def update_status(
    project_id: uuid.UUID,
    request: StatusUpdate,
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
) -> ProjectResponse:
    project = await service.set_status(user.organization_id, project_id, request.status, actor_id=user.user_id)
    return ProjectResponse.from_model(project)


@router.post("/{project_id}/stage", response_model=MoveStageResponse)
async def move_stage(
    project_id: uuid.UUID,
    request: MoveStageRequest,
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
) -> MoveStageResponse:
    result = await service.move_to_stage(user.organization_id, project_id, request.stage, actor_id=user.user_id)
    return MoveStageResponse(
        project_id=str(result.project_id),
        stage=result.stage,
        status=result.status.value,
        current_stage_index=result.current_stage_index,
        completed_at=result.completed_at,
    )


@router.get("/{project_id}/stages", response_model=StagesResponse)
async def get_stages(
    project_id: uuid.UUID,
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
) -> StagesResponse:
    stages, current_stage, current_index = await service.get_stages(user.organization_id, project_id)
    return StagesResponse(
        stages=[StageSchema.from_domain(s) for s in stages],
        current_stage=current_stage,
        current_stage_index=current_index,
    )


@router.post("/{project_id}/stages", response_model=StagesResponse)
async def add_stage(
    project_id: uuid.UUID,
    request: AddStageRequest,
    user: ClerkUser = Depends(require_org_member),
    service: WorkflowService = Depends(get_workflow_service),
) -> StagesResponse:
    stages = await service.insert_stage(
        user.organization_id,
        project_id,
        request.stage.to_domain(),
        position=request.position,
        actor_id=user.user_id,
    )
    return StagesResponse(stages=[StageSchema.from_domain(s) for s in stages])


@router.post("/{project_id}/time-entries", response_model=TimeEntryResponse, status_code=201)
async def record_time(
    project_id: uuid.UUID,
    request: TimeEntryCreate,
    user: ClerkUser = Depends(require_org_member),
    service: TimeEntryService = Depends(get_time_entry_service),
) -> TimeEntryResponse:
    entry = await service.record_time(
        user.organization_id,
        project_id,
        stage_id=request.stage,
        hours=request.hours,
        entry_date=request.date,
        author_id=user.user_id,
        description=request.description,
    )
    return TimeEntryResponse.from_model(entry)

"""WorkflowService: project intake, stage transitions and custom stages.

This is the integration point where the pure workflow functions meet the
SQLAlchemy models. Every workflow or status write is a single conditional
UPDATE guarded by ``projects.workflow_version`` (compare-and-swap), and the
matching activity-log row is written in the same transaction.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arqflow.core.exceptions import InvalidStateError, MissingWorkflowError, NotFoundError, WorkflowConflictError
from arqflow.db.models.activity_log import ActivityLog
from arqflow.db.models.project import Project
from arqflow.domain.catalog import Stage
from arqflow.domain.workflow import (
    TERMINAL_STATUSES,
    ProjectStatus,
    Workflow,
    build_workflow,
    insert_stage,
    move_to_stage,
)

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class StageMoveResult:
    project_id: uuid.UUID
    stage: str
    status: ProjectStatus
    current_stage_index: int
    completed_at: datetime | None


def _parse_project_id(project_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(project_id, uuid.UUID):
        return project_id
    try:
        return uuid.UUID(str(project_id))
    except (ValueError, AttributeError):
        raise NotFoundError() from None


async def get_scoped_project(
    session: AsyncSession, organization_id: str, project_id: uuid.UUID | str
) -> Project:
    """Load a project inside the caller's organization.

    Raises:
        NotFoundError: project missing or owned by another organization
            (the two cases are deliberately indistinguishable)
    """
    result = await session.execute(
        select(Project).where(
            Project.id == _parse_project_id(project_id),
            Project.organization_id == organization_id,
        )
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError()
    return project


def load_workflow(project: Project) -> Workflow | None:
    """Deserialize ``project.workflow``; raises MalformedWorkflowError on bad state."""
    if project.workflow is None:
        return None
    return Workflow.from_dict(project.workflow)


def _stage_log(project: Project, actor_id: str | None, action: str, changes: dict) -> ActivityLog:
    return ActivityLog(
        organization_id=project.organization_id,
        entity_type="project",
        entity_id=project.id,
        action=action,
        changes=changes,
        actor_id=actor_id,
    )


class WorkflowService:
    """Service layer for the project workflow state machine.

    Uses dependency injection (takes session_factory); each public method is
    one unit of work with its own session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _compare_and_swap(
        self,
        session: AsyncSession,
        project: Project,
        *,
        forbid_terminal: bool,
        **values,
    ) -> None:
        """Write ``values`` only if the project is unchanged since it was read.

        The status precondition is re-checked in the same statement, so a
        concurrent delivery or cancellation makes the write fail instead of
        being overwritten.

        Raises:
            WorkflowConflictError: no row matched (stale version or status)
        """
        stmt = (
            update(Project)
            .where(
                Project.id == project.id,
                Project.organization_id == project.organization_id,
                Project.workflow_version == project.workflow_version,
            )
            .values(
                workflow_version=project.workflow_version + 1,
                updated_at=datetime.now(timezone.utc),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if forbid_terminal:
            stmt = stmt.where(Project.status.not_in([s.value for s in TERMINAL_STATUSES]))

        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            logger.warning(
                "workflow_conflict",
                project_id=str(project.id),
                expected_version=project.workflow_version,
            )
            raise WorkflowConflictError(project.id)

    async def create_project(
        self,
        organization_id: str,
        service_type: str,
        modality: str | None = None,
        created_by: str | None = None,
        notes: str | None = None,
        estimated_hours: Decimal | None = None,
    ) -> Project:
        """Create a project with the catalog workflow for its service type.

        Raises:
            UnknownServiceTypeError: no catalog for (service_type, modality)
        """
        workflow = build_workflow(service_type, modality)

        async with self.session_factory() as session:
            project = Project(
                organization_id=organization_id,
                service_type=service_type,
                modality=workflow.modality,
                notes=notes,
                status=ProjectStatus.AGUARDANDO.value,
                stage=workflow.current_stage.id,
                workflow=workflow.to_dict(),
                workflow_version=0,
                estimated_hours=estimated_hours,
                hours_used=Decimal("0"),
                created_by=created_by,
            )
            session.add(project)
            await session.flush()

            session.add(_stage_log(project, created_by, "created", {
                "service_type": workflow.service_type,
                "stage": workflow.current_stage.id,
            }))
            await session.commit()
            await session.refresh(project)

        logger.info(
            "project_created",
            project_id=str(project.id),
            service_type=workflow.service_type,
            modality=workflow.modality,
            stage_count=len(workflow.stages),
        )
        return project

    async def get_project(self, organization_id: str, project_id: uuid.UUID | str) -> Project:
        async with self.session_factory() as session:
            return await get_scoped_project(session, organization_id, project_id)

    async def list_projects(
        self,
        organization_id: str,
        status: str | None = None,
        service_type: str | None = None,
        stage: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Project]:
        """List the organization's projects, newest first."""
        limit = min(max(1, limit), MAX_PAGE_SIZE)
        offset = max(0, offset)

        query = select(Project).where(Project.organization_id == organization_id)
        if status is not None:
            query = query.where(Project.status == status)
        if service_type is not None:
            query = query.where(Project.service_type == service_type)
        if stage is not None:
            query = query.where(Project.stage == stage)
        query = query.order_by(Project.created_at.desc()).limit(limit).offset(offset)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_stages(
        self, organization_id: str, project_id: uuid.UUID | str
    ) -> tuple[tuple[Stage, ...], str | None, int]:
        """Return (stages, current stage id, current stage index).

        Raises:
            NotFoundError, MissingWorkflowError, MalformedWorkflowError
        """
        project = await self.get_project(organization_id, project_id)
        workflow = load_workflow(project)
        if workflow is None:
            raise MissingWorkflowError()
        return workflow.stages, project.stage, workflow.current_stage_index

    async def move_to_stage(
        self,
        organization_id: str,
        project_id: uuid.UUID | str,
        stage_id: str,
        actor_id: str | None = None,
    ) -> StageMoveResult:
        """Move a project to ``stage_id``; reaching the final stage delivers it.

        Raises:
            NotFoundError, InvalidStateError, MissingWorkflowError,
            InvalidStageError, MalformedWorkflowError, WorkflowConflictError
        """
        async with self.session_factory() as session:
            project = await get_scoped_project(session, organization_id, project_id)
            current_status = ProjectStatus(project.status)
            workflow = load_workflow(project)
            move = move_to_stage(workflow, current_status, stage_id)

            old_stage = project.stage
            unchanged = move.workflow == workflow and old_stage == move.stage_id
            if unchanged and move.status == current_status:
                return StageMoveResult(
                    project_id=project.id,
                    stage=move.stage_id,
                    status=move.status,
                    current_stage_index=move.workflow.current_stage_index,
                    completed_at=project.completed_at,
                )

            completed_at = datetime.now(timezone.utc) if move.completed else project.completed_at
            await self._compare_and_swap(
                session,
                project,
                forbid_terminal=True,
                stage=move.stage_id,
                status=move.status.value,
                workflow=move.workflow.to_dict(),
                completed_at=completed_at,
            )

            changes = {"old_stage": old_stage, "new_stage": move.stage_id}
            if move.status != current_status:
                changes["old_status"] = current_status.value
                changes["new_status"] = move.status.value
            session.add(_stage_log(project, actor_id, "stage_changed", changes))
            await session.commit()

        logger.info(
            "stage_moved",
            project_id=str(project.id),
            from_stage=old_stage,
            to_stage=move.stage_id,
            status=move.status.value,
            completed=move.completed,
        )
        return StageMoveResult(
            project_id=project.id,
            stage=move.stage_id,
            status=move.status,
            current_stage_index=move.workflow.current_stage_index,
            completed_at=completed_at,
        )

    async def insert_stage(
        self,
        organization_id: str,
        project_id: uuid.UUID | str,
        stage: Stage,
        position: int | None = None,
        actor_id: str | None = None,
    ) -> tuple[Stage, ...]:
        """Insert a custom stage into this project's workflow only.

        Raises:
            NotFoundError, MissingWorkflowError, DuplicateStageError,
            MalformedWorkflowError, WorkflowConflictError
        """
        async with self.session_factory() as session:
            project = await get_scoped_project(session, organization_id, project_id)
            workflow = insert_stage(load_workflow(project), stage, position)

            await self._compare_and_swap(
                session,
                project,
                forbid_terminal=False,
                workflow=workflow.to_dict(),
                stage=workflow.current_stage.id,
            )
            session.add(_stage_log(project, actor_id, "stage_added", {
                "stage_id": stage.id,
                "position": workflow.stages.index(stage),
            }))
            await session.commit()

        logger.info(
            "custom_stage_inserted",
            project_id=str(project.id),
            stage_id=stage.id,
            position=workflow.stages.index(stage),
            current_stage_index=workflow.current_stage_index,
        )
        return workflow.stages

    async def set_status(
        self,
        organization_id: str,
        project_id: uuid.UUID | str,
        status: str,
        actor_id: str | None = None,
    ) -> Project:
        """Change a project's status by hand (start, pause back, cancel).

        ``entregue`` is derived from the stage workflow and cannot be set here;
        delivered and cancelled projects are frozen.

        Raises:
            NotFoundError, InvalidStateError, WorkflowConflictError
        """
        try:
            target = ProjectStatus(status)
        except ValueError:
            raise InvalidStateError(f"Unknown status: {status}") from None
        if target == ProjectStatus.ENTREGUE:
            raise InvalidStateError("Delivered status is reached by moving to the final stage")

        async with self.session_factory() as session:
            project = await get_scoped_project(session, organization_id, project_id)
            current = ProjectStatus(project.status)
            if current in TERMINAL_STATUSES:
                raise InvalidStateError(f"Cannot change status of a {current.value} project", status=current.value)
            if current == target:
                return project

            await self._compare_and_swap(session, project, forbid_terminal=True, status=target.value)
            session.add(_stage_log(project, actor_id, "status_changed", {
                "old_status": current.value,
                "new_status": target.value,
            }))
            await session.commit()
            await session.refresh(project)

        logger.info("project_status_changed", project_id=str(project.id), old=current.value, new=target.value)
        return project

"""TimeEntryService: records labor hours against project stages."""

import uuid
from collections.abc import Callable
from datetime import date

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arqflow.core.config import get_settings
from arqflow.db.models.project import Project
from arqflow.db.models.time_entry import TimeEntry
from arqflow.domain.time_entries import studio_today, validate_time_entry
from arqflow.services.workflow_service import get_scoped_project, load_workflow

logger = structlog.get_logger(__name__)


def _default_today() -> date:
    return studio_today(get_settings().studio_timezone)


class TimeEntryService:
    """Appends immutable time entries and keeps ``projects.hours_used`` in step.

    The insert and the aggregate increment share one transaction, and the
    increment is a single ``hours_used = hours_used + :hours`` statement, so
    every successful ``record_time`` raises the total by exactly ``hours``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        today: Callable[[], date] = _default_today,
    ):
        """Initialize with an injected session factory.

        Args:
            session_factory: SQLAlchemy async session factory
            today: Returns the studio's current date (injectable for tests)
        """
        self.session_factory = session_factory
        self.today = today

    async def record_time(
        self,
        organization_id: str,
        project_id: uuid.UUID | str,
        stage_id: str,
        hours,
        entry_date: date,
        author_id: str,
        description: str | None = None,
    ) -> TimeEntry:
        """Record hours worked on a project stage.

        Raises:
            InvalidHoursError: hours <= 0 or > 24
            FutureDateError: entry_date after the studio's today
            NotFoundError: project missing or in another organization
            InvalidStageError: stage not in the project's workflow
        """
        async with self.session_factory() as session:
            project = await get_scoped_project(session, organization_id, project_id)
            value = validate_time_entry(
                load_workflow(project),
                stage_id,
                hours,
                entry_date,
                self.today(),
            )

            entry = TimeEntry(
                organization_id=project.organization_id,
                project_id=project.id,
                profile_id=author_id,
                stage=stage_id,
                hours=value,
                date=entry_date,
                description=description or None,
            )
            session.add(entry)
            await session.execute(
                update(Project)
                .where(Project.id == project.id)
                .values(hours_used=Project.hours_used + value)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            await session.refresh(entry)

        logger.info(
            "time_recorded",
            project_id=str(project.id),
            time_entry_id=str(entry.id),
            stage=stage_id,
            hours=str(value),
        )
        return entry

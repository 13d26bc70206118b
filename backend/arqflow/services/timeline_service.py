"""TimelineService: fetches stage changes and time entries for the timeline merge.

Read-only. Queries the activity log and the time-entry ledger independently,
resolves actor names in one batch, and hands the rows to the pure
``build_timeline`` function. Items are sorted oldest-first.
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arqflow.db.models.activity_log import ActivityLog
from arqflow.db.models.time_entry import TimeEntry
from arqflow.domain.timeline import (
    StageChangeRecord,
    Timeline,
    TimeEntryRecord,
    build_timeline,
    collect_actor_ids,
    stage_change_from_changes,
)
from arqflow.services.profile_directory import display_names
from arqflow.services.workflow_service import get_scoped_project

logger = structlog.get_logger(__name__)


class TimelineService:
    """Aggregates a project's timeline from ActivityLog and TimeEntry tables.

    Uses dependency injection (takes session_factory) for testability, matching
    WorkflowService.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_timeline(self, organization_id: str, project_id: uuid.UUID | str) -> Timeline:
        """Build the merged stage-change / time-entry timeline for a project.

        Raises:
            NotFoundError: project missing or in another organization
        """
        async with self.session_factory() as session:
            project = await get_scoped_project(session, organization_id, project_id)

            stage_changes = await self._fetch_stage_changes(session, project.organization_id, project.id)
            time_entries = await self._fetch_time_entries(session, project.organization_id, project.id)
            names = await display_names(
                session, project.organization_id, collect_actor_ids(stage_changes, time_entries)
            )

        timeline = build_timeline(stage_changes, time_entries, names)
        logger.debug(
            "timeline_built",
            project_id=str(project.id),
            stage_changes=len(stage_changes),
            time_entries=len(time_entries),
        )
        return timeline

    async def _fetch_stage_changes(
        self, session: AsyncSession, organization_id: str, project_id: uuid.UUID
    ) -> list[StageChangeRecord]:
        result = await session.execute(
            select(ActivityLog)
            .where(
                ActivityLog.organization_id == organization_id,
                ActivityLog.entity_type == "project",
                ActivityLog.entity_id == project_id,
                ActivityLog.action == "stage_changed",
            )
            .order_by(ActivityLog.created_at.asc())
        )
        return [
            stage_change_from_changes(log.id, log.created_at, log.changes, log.actor_id)
            for log in result.scalars().all()
        ]

    async def _fetch_time_entries(
        self, session: AsyncSession, organization_id: str, project_id: uuid.UUID
    ) -> list[TimeEntryRecord]:
        result = await session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.organization_id == organization_id,
                TimeEntry.project_id == project_id,
            )
            .order_by(TimeEntry.date.asc(), TimeEntry.created_at.asc())
        )
        return [
            TimeEntryRecord(
                id=entry.id,
                stage_id=entry.stage,
                hours=entry.hours,
                entry_date=entry.date,
                created_at=entry.created_at,
                description=entry.description,
                author_id=entry.profile_id,
            )
            for entry in result.scalars().all()
        ]

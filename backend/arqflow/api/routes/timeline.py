"""Timeline API endpoints.

GET /api/timeline/{project_id} - Stage changes and time entries, oldest first, with hours per stage
"""

import uuid

from fastapi import APIRouter, Depends

from arqflow.core.auth import ClerkUser, require_org_member
from arqflow.db.base import get_session_factory
from arqflow.schemas.timeline import TimelineResponse
from arqflow.services.timeline_service import TimelineService

router = APIRouter()


def get_timeline_service() -> TimelineService:
    return TimelineService(get_session_factory())


@router.get("/{project_id}", response_model=TimelineResponse)
async def get_timeline(
    project_id: uuid.UUID,
    user: ClerkUser = Depends(require_org_member),
    service: TimelineService = Depends(get_timeline_service),
) -> TimelineResponse:
    """Get the merged timeline for a project.

    Projects of other organizations answer 404, same as missing ones.
    """
    timeline = await service.get_timeline(user.organization_id, project_id)
    return TimelineResponse.from_timeline(str(project_id), timeline)

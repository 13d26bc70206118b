"""Actor display-name lookup."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arqflow.db.models.profile import Profile


async def display_names(
    session: AsyncSession, organization_id: str, actor_ids: Iterable[str]
) -> dict[str, str]:
    """Resolve many actor ids with one ``IN`` query.

    Unknown ids are simply absent from the result.
    """
    ids = sorted(set(actor_ids))
    if not ids:
        return {}

    result = await session.execute(
        select(Profile.id, Profile.full_name).where(
            Profile.organization_id == organization_id,
            Profile.id.in_(ids),
        )
    )
    return {row.id: row.full_name for row in result.all()}

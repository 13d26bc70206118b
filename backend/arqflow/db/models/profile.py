"""Profile model: display names of studio members."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from arqflow.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(255), primary_key=True)  # Clerk user id
    organization_id = Column(String(255), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

"""TimeEntry model: immutable labor-hour records tagged to a stage."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid

from arqflow.db.base import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(String(255), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    profile_id = Column(String(255), nullable=False)  # author

    stage = Column(String(100), nullable=True)
    hours = Column(Numeric(5, 2), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    # NO updated_at -- entries are immutable

"""ActivityLog model: append-only field-level change history."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from arqflow.db.base import Base, JSONDocument


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(String(255), nullable=False, index=True)

    entity_type = Column(String(50), nullable=False)  # "project"
    entity_id = Column(Uuid, nullable=False, index=True)
    action = Column(String(50), nullable=False)  # stage_changed, status_changed, stage_added, created
    changes = Column(JSONDocument, nullable=False, default=dict)  # e.g. {"old_stage": ..., "new_stage": ...}
    actor_id = Column(String(255), nullable=True)  # null for system writes

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    # NO updated_at -- log rows are immutable (append-only)

"""Project model: studio projects with their embedded workflow document."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, Uuid

from arqflow.db.base import Base, JSONDocument


class Project(Base):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(String(255), nullable=False, index=True)

    service_type = Column(String(50), nullable=False)
    modality = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(50), nullable=False, default="aguardando")
    stage = Column(String(100), nullable=True, index=True)  # mirrors workflow current stage id

    # Serialized arqflow.domain.workflow.Workflow; null for legacy projects
    workflow = Column(JSONDocument, nullable=True)
    # Compare-and-swap token, bumped on every workflow/status write
    workflow_version = Column(Integer, nullable=False, default=0)

    estimated_hours = Column(Numeric(10, 2), nullable=True)
    hours_used = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    created_by = Column(String(255), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

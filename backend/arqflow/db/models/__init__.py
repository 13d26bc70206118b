"""Re-export all models so Base.metadata sees them."""

from arqflow.db.models.activity_log import ActivityLog
from arqflow.db.models.profile import Profile
from arqflow.db.models.project import Project
from arqflow.db.models.time_entry import TimeEntry

__all__ = [
    "ActivityLog",
    "Profile",
    "Project",
    "TimeEntry",
]

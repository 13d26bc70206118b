"""Constants shared by the test modules."""

from datetime import date

ORG_ID = "org_studio_a"
OTHER_ORG_ID = "org_studio_b"

# Fixed "today" injected into TimeEntryService
TODAY = date(2026, 10, 17)

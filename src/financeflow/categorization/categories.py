"""Category names referenced from code; the full table lives in rules.json."""

UTILITIES = "Utilities"
BANKING = "Banking"
OTHER = "Other"

"""Activity capture models and loading."""

from fsprocessor.capture.models import Activity
from fsprocessor.capture.store import ActivityStore, load_activities

__all__ = [
    "Activity",
    "ActivityStore",
    "load_activities",
]

"""
Weekly schedule templates.

Contains the template and timeslot models and the conflict validator.
"""

from .models import (
    ScheduleTemplate,
    Timeslot,
    enforce_single_default,
    is_valid_time,
)
from .conflicts import validate_timeslot_conflicts

__all__ = [
    "ScheduleTemplate",
    "Timeslot",
    "enforce_single_default",
    "is_valid_time",
    "validate_timeslot_conflicts",
]

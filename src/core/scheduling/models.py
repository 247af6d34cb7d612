"""
Domain models for weekly schedule templates.

A schedule template is a reusable week of classes for one gym. Each
timeslot binds a recurring window (day of week + start/end time) to a
location and a coach. Templates are stored as a single document, so the
timeslots live inside the template rather than in their own table.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4


TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def is_valid_time(value: str) -> bool:
    """True for 24-hour HH:MM strings (a single-digit hour is accepted)."""
    return bool(value) and TIME_PATTERN.match(value) is not None


@dataclass
class Timeslot:
    """
    A recurring weekly time window inside a schedule template.

    Days run 1-7, Monday to Sunday. Location and coach are opaque
    identifiers; whether they belong to the gym is checked by the caller.
    """
    day_of_week: int
    start_time: str
    end_time: str
    location_id: Optional[str] = None
    coach_id: Optional[str] = None
    program_id: Optional[str] = None
    max_capacity: int = 20
    class_name: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    timeslot_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not 1 <= self.day_of_week <= 7:
            raise ValueError("Day of week must be an integer between 1 and 7")
        if not is_valid_time(self.start_time):
            raise ValueError("Start time must be in HH:MM format (24-hour)")
        if not is_valid_time(self.end_time):
            raise ValueError("End time must be in HH:MM format (24-hour)")
        if not 1 <= self.max_capacity <= 100:
            raise ValueError("Max capacity must be between 1 and 100")
        if self.class_name and len(self.class_name) > 100:
            raise ValueError("Class name cannot exceed 100 characters")
        if self.notes and len(self.notes) > 500:
            raise ValueError("Notes cannot exceed 500 characters")


@dataclass
class ScheduleTemplate:
    """
    A named weekly schedule for a gym.

    At most one active template per gym is the default. The flag is kept
    consistent by enforce_single_default when a template is saved.
    """
    gym_id: str
    name: str
    created_by: str
    id: UUID = field(default_factory=uuid4)
    description: Optional[str] = None
    is_default: bool = False
    timeslots: list[Timeslot] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("Template name is required")
        if len(self.name) > 100:
            raise ValueError("Template name cannot exceed 100 characters")
        if self.description is not None:
            self.description = self.description.strip()
            if len(self.description) > 500:
                raise ValueError("Description cannot exceed 500 characters")

    @property
    def total_timeslots(self) -> int:
        """Number of active timeslots."""
        return sum(1 for slot in self.timeslots if slot.is_active)

    @property
    def total_coaches(self) -> int:
        """Distinct coaches across active timeslots."""
        return len({
            slot.coach_id for slot in self.timeslots
            if slot.is_active and slot.coach_id
        })

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def soft_delete(self) -> None:
        """Deactivate the template. A deleted template is never the default."""
        self.is_active = False
        self.is_default = False
        self.touch()


def enforce_single_default(
    template: ScheduleTemplate,
    others: Iterable[ScheduleTemplate],
) -> list[ScheduleTemplate]:
    """
    Clear the default flag on every other active template of the same gym.

    Called when `template` is about to be saved as the default. Returns
    the templates that were modified so the caller can persist them.
    """
    if not template.is_default:
        return []

    changed = []
    for other in others:
        if (
            other.id != template.id
            and other.gym_id == template.gym_id
            and other.is_active
            and other.is_default
        ):
            other.is_default = False
            other.touch()
            changed.append(other)
    return changed

"""
Domain models for workout programs and activity templates.

A program is a tree: blocks contain weeks, weeks contain days, days
contain activities. Each activity points at an activity template from
the gym's catalog, and the template carries the activity group used for
volume analysis.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class ActivityType(Enum):
    """How an activity is prescribed inside a program day."""
    STRENGTH = "strength"
    CONDITIONING = "conditioning"
    DIAGNOSTIC = "diagnostic"


class TemplateType(Enum):
    """Catalog classification of an activity template."""
    PRIMARY_LIFT = "primary lift"
    ACCESSORY_LIFT = "accessory lift"
    CONDITIONING = "conditioning"
    DIAGNOSTIC = "diagnostic"


@dataclass
class ProgramActivity:
    """
    One prescribed activity within a day.

    Strength activities carry sets and reps; conditioning activities carry
    a duration and optionally a distance. Positive sets/reps for strength
    are enforced at the API boundary, not here, so stored programs with
    partial prescriptions still load.
    """
    template_id: str
    type: ActivityType = ActivityType.STRENGTH
    order_index: int = 0
    sets: Optional[int] = None
    reps: Optional[int] = None
    rest_period: int = 60  # seconds
    intensity_percentage: Optional[float] = None  # of 1RM
    duration: Optional[int] = None  # seconds
    distance: Optional[float] = None  # meters
    notes: Optional[str] = None
    activity_id: UUID = field(default_factory=uuid4)

    @property
    def volume(self) -> int:
        """Sets x reps for strength work, zero otherwise."""
        if self.type is ActivityType.STRENGTH and self.sets and self.reps:
            return self.sets * self.reps
        return 0


@dataclass
class ProgramDay:
    day_of_week: int
    name: Optional[str] = None
    activities: list[ProgramActivity] = field(default_factory=list)
    day_id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class VolumeTarget:
    """Declared share of total volume for an activity group."""
    activity_group: str
    target_percentage: float

    def __post_init__(self) -> None:
        if not self.activity_group.strip():
            raise ValueError("Activity group is required")
        if not 0 <= self.target_percentage <= 100:
            raise ValueError("Target percentage must be between 0 and 100")


@dataclass
class ProgramWeek:
    """A week of training. Week-level targets override the block's."""
    week_number: int
    description: Optional[str] = None
    volume_targets: list[VolumeTarget] = field(default_factory=list)
    days: list[ProgramDay] = field(default_factory=list)
    week_id: UUID = field(default_factory=uuid4)


@dataclass
class ProgramBlock:
    name: str
    order_index: int = 0
    description: Optional[str] = None
    volume_targets: list[VolumeTarget] = field(default_factory=list)
    weeks: list[ProgramWeek] = field(default_factory=list)
    block_id: UUID = field(default_factory=uuid4)

    def iter_activities(self):
        """Every activity in the block, in program order."""
        for week in self.weeks:
            for day in week.days:
                yield from day.activities


@dataclass
class WorkoutProgram:
    """
    A gym's workout program.

    Programs are versioned: every update bumps `version`. Copies record
    the program they were made from in `parent_program_id`.
    """
    gym_id: str
    name: str
    id: UUID = field(default_factory=uuid4)
    description: Optional[str] = None
    blocks: list[ProgramBlock] = field(default_factory=list)
    is_active: bool = True
    is_template: bool = False
    version: int = 1
    parent_program_id: Optional[UUID] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("Program name is required")
        if len(self.name) > 100:
            raise ValueError("Program name cannot exceed 100 characters")
        if self.version < 1:
            raise ValueError("Version must be at least 1")

    @property
    def duration_weeks(self) -> int:
        """Total weeks across all blocks (at least 1)."""
        return max(1, sum(len(block.weeks) for block in self.blocks))

    @property
    def total_activities(self) -> int:
        return sum(1 for block in self.blocks for _ in block.iter_activities())

    @property
    def template_ids(self) -> set[str]:
        """Every activity template referenced anywhere in the program."""
        return {
            activity.template_id
            for block in self.blocks
            for activity in block.iter_activities()
            if activity.template_id
        }

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


@dataclass
class ActivityTemplate:
    """
    A reusable exercise definition.

    Templates without a gym are global and visible to every gym.
    """
    name: str
    activity_group: str
    type: TemplateType
    gym_id: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    description: Optional[str] = None
    instructions: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("Activity name is required")
        if len(self.name) > 100:
            raise ValueError("Activity name cannot exceed 100 characters")

    @property
    def is_global(self) -> bool:
        return self.gym_id is None


def validate_program_structure(blocks: list[ProgramBlock]) -> list[str]:
    """
    Check the shape of a program tree.

    Returns human-readable errors with 1-based positions; an empty list
    means the structure is valid.
    """
    errors: list[str] = []

    if not blocks:
        errors.append("Program must have at least one block")
        return errors

    for block_index, block in enumerate(blocks, start=1):
        if not block.weeks:
            errors.append(f"Block {block_index} must have at least one week")
            continue

        for week_index, week in enumerate(block.weeks, start=1):
            if not week.days:
                errors.append(f"Block {block_index}, Week {week_index} must have at least one day")
                continue

            days_of_week = [day.day_of_week for day in week.days]
            if len(days_of_week) != len(set(days_of_week)):
                errors.append(f"Block {block_index}, Week {week_index} has duplicate days of week")

            for day_index, day in enumerate(week.days, start=1):
                for activity_index, activity in enumerate(day.activities, start=1):
                    if not activity.template_id:
                        errors.append(
                            f"Block {block_index}, Week {week_index}, Day {day_index}, "
                            f"Activity {activity_index} must have a template"
                        )

    return errors

"""
Workout programs and the activity catalog.

Contains the program tree models, structure validation, and the volume
distribution calculator.
"""

from .models import (
    ActivityTemplate,
    ActivityType,
    ProgramActivity,
    ProgramBlock,
    ProgramDay,
    ProgramWeek,
    TemplateType,
    VolumeTarget,
    WorkoutProgram,
    validate_program_structure,
)
from .volume import (
    BlockVolume,
    build_activity_group_map,
    calculate_program_volume,
    calculate_volume_percentages,
)

__all__ = [
    "ActivityTemplate",
    "ActivityType",
    "ProgramActivity",
    "ProgramBlock",
    "ProgramDay",
    "ProgramWeek",
    "TemplateType",
    "VolumeTarget",
    "WorkoutProgram",
    "validate_program_structure",
    "BlockVolume",
    "build_activity_group_map",
    "calculate_program_volume",
    "calculate_volume_percentages",
]

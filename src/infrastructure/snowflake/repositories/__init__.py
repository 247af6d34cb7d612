"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .activity_templates import ActivityTemplateNotFoundError, ActivityTemplateRepository
from .benchmark_templates import BenchmarkTemplateNotFoundError, BenchmarkTemplateRepository
from .common import NotFoundError, SnowflakeConfig, SnowflakeConnection
from .schedule_templates import ScheduleTemplateNotFoundError, ScheduleTemplateRepository
from .workout_programs import WorkoutProgramNotFoundError, WorkoutProgramRepository

__all__ = [
    "ActivityTemplateNotFoundError",
    "ActivityTemplateRepository",
    "BenchmarkTemplateNotFoundError",
    "BenchmarkTemplateRepository",
    "NotFoundError",
    "ScheduleTemplateNotFoundError",
    "ScheduleTemplateRepository",
    "SnowflakeConfig",
    "SnowflakeConnection",
    "WorkoutProgramNotFoundError",
    "WorkoutProgramRepository",
]

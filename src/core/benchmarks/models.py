"""
Domain models for benchmark templates.

A benchmark is a repeatable test a gym uses to track its members: a 1RM
lift, a timed row, max push-ups. Its type decides which units make sense.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID, uuid4


class BenchmarkType(Enum):
    WEIGHT = "weight"
    TIME = "time"
    REPS = "reps"


class BenchmarkUnit(Enum):
    LBS = "lbs"
    KG = "kg"
    SECONDS = "seconds"
    REPS = "reps"


VALID_UNITS: dict[BenchmarkType, tuple[BenchmarkUnit, ...]] = {
    BenchmarkType.WEIGHT: (BenchmarkUnit.LBS, BenchmarkUnit.KG),
    BenchmarkType.TIME: (BenchmarkUnit.SECONDS,),
    BenchmarkType.REPS: (BenchmarkUnit.REPS,),
}


def clean_tags(tags: Iterable[str]) -> list[str]:
    """Strip tags and drop the empty ones, keeping order."""
    cleaned = [tag.strip() for tag in tags]
    return [tag for tag in cleaned if tag]


@dataclass
class BenchmarkTemplate:
    """
    A benchmark definition owned by a gym.

    Rows with no gym are global; the API never creates them but still
    serves them read-only to every gym.
    """
    name: str
    type: BenchmarkType
    unit: BenchmarkUnit
    gym_id: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    description: Optional[str] = None
    instructions: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    created_by: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("Benchmark name is required")
        if len(self.name) > 100:
            raise ValueError("Benchmark name cannot exceed 100 characters")

        self.set_tags(self.tags)
        self.check_unit()

    def set_tags(self, tags: Iterable[str]) -> None:
        cleaned = clean_tags(tags)
        if any(len(tag) > 50 for tag in cleaned):
            raise ValueError("Tag cannot exceed 50 characters")
        self.tags = cleaned

    def check_unit(self) -> None:
        """Raise if the unit does not fit the benchmark type."""
        if self.unit not in VALID_UNITS[self.type]:
            raise ValueError(
                f"Unit '{self.unit.value}' is not valid for type '{self.type.value}'"
            )

    @property
    def is_global(self) -> bool:
        return self.gym_id is None

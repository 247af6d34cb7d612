"""
Training volume distribution for workout programs.

Volume is approximated as sets x reps. For each block we report what
share of the block's strength volume went to each activity group, so
coaches can compare it against the block's declared volume targets.

Percentages are rounded per group, half up. They are not normalized, so
a block split three ways evenly reports 33/33/33.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Mapping
from uuid import UUID

from .models import ActivityTemplate, ProgramBlock, VolumeTarget, WorkoutProgram


logger = logging.getLogger(__name__)


@dataclass
class BlockVolume:
    """Volume breakdown for one block of a program."""
    block_id: UUID
    block_name: str
    volume_targets: list[VolumeTarget] = field(default_factory=list)
    actual_percentages: dict[str, int] = field(default_factory=dict)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_activity_group_map(templates: Iterable[ActivityTemplate]) -> dict[str, str]:
    """Map template id to activity group, skipping templates with no group."""
    return {
        str(template.id): template.activity_group
        for template in templates
        if template.activity_group
    }


def calculate_volume_percentages(
    block: ProgramBlock,
    activity_group_map: Mapping[str, str],
) -> dict[str, int]:
    """
    Share of the block's strength volume per activity group, 0-100.

    Only strength activities with sets and reps whose template resolves
    to a group count. A block with no such activity returns an empty
    mapping.
    """
    group_totals: dict[str, int] = defaultdict(int)
    total = 0

    for activity in block.iter_activities():
        volume = activity.volume
        if not volume:
            continue

        group = activity_group_map.get(str(activity.template_id))
        if not group:
            continue

        group_totals[group] += volume
        total += volume

    return {
        group: _round_half_up(group_total / total * 100) if total > 0 else 0
        for group, group_total in group_totals.items()
    }


def calculate_program_volume(
    program: WorkoutProgram,
    activity_group_map: Mapping[str, str],
) -> list[BlockVolume]:
    """Run the volume calculation for every block of a program."""
    results = [
        BlockVolume(
            block_id=block.block_id,
            block_name=block.name,
            volume_targets=list(block.volume_targets),
            actual_percentages=calculate_volume_percentages(block, activity_group_map),
        )
        for block in program.blocks
    ]

    logger.debug(
        "Calculated program volume",
        extra={"program_id": str(program.id), "block_count": len(results)}
    )

    return results

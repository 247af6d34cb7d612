"""
Unit tests for program volume distribution.
"""

from uuid import uuid4

from src.core.programs import (
    ActivityTemplate,
    ActivityType,
    ProgramActivity,
    ProgramBlock,
    ProgramDay,
    ProgramWeek,
    TemplateType,
    VolumeTarget,
    WorkoutProgram,
    build_activity_group_map,
    calculate_program_volume,
    calculate_volume_percentages,
)


def strength(template_id, sets, reps):
    return ProgramActivity(template_id=template_id, type=ActivityType.STRENGTH, sets=sets, reps=reps)


def block_of(*activities, weeks=1):
    """A block repeating one day of the given activities for `weeks` weeks."""
    return ProgramBlock(
        name="Block",
        weeks=[
            ProgramWeek(week_number=n, days=[ProgramDay(day_of_week=1, activities=list(activities))])
            for n in range(1, weeks + 1)
        ],
    )


class TestCalculateVolumePercentages:

    def test_single_strength_activity_is_all_volume(self):
        block = block_of(strength("back-squat", 5, 5))

        assert calculate_volume_percentages(block, {"back-squat": "squat"}) == {"squat": 100}

    def test_equal_volume_splits_evenly(self):
        block = block_of(strength("squat-t", 5, 5), strength("bench-t", 5, 5))

        result = calculate_volume_percentages(block, {"squat-t": "squat", "bench-t": "bench"})

        assert result == {"squat": 50, "bench": 50}

    def test_only_conditioning_and_diagnostic_gives_empty_result(self):
        """No strength volume means nothing to divide, and no division by zero."""
        block = block_of(
            ProgramActivity(template_id="row", type=ActivityType.CONDITIONING, duration=600),
            ProgramActivity(template_id="test", type=ActivityType.DIAGNOSTIC),
        )

        assert calculate_volume_percentages(block, {"row": "engine", "test": "testing"}) == {}

    def test_empty_block_gives_empty_result(self):
        assert calculate_volume_percentages(ProgramBlock(name="Empty"), {}) == {}

    def test_unmapped_templates_are_excluded_from_total(self):
        """An activity with no group contributes to neither numerator nor denominator."""
        block = block_of(strength("squat-t", 5, 5), strength("mystery", 10, 10))

        assert calculate_volume_percentages(block, {"squat-t": "squat"}) == {"squat": 100}

    def test_empty_group_in_caller_map_is_excluded(self):
        block = block_of(strength("squat-t", 5, 5), strength("blank-t", 10, 10))

        assert calculate_volume_percentages(block, {"squat-t": "squat", "blank-t": ""}) == {"squat": 100}

    def test_strength_without_sets_or_reps_is_excluded(self):
        block = block_of(
            strength("squat-t", 5, 5),
            ProgramActivity(template_id="bench-t", type=ActivityType.STRENGTH, sets=3),
        )

        assert calculate_volume_percentages(block, {"squat-t": "squat", "bench-t": "bench"}) == {"squat": 100}

    def test_activities_sharing_a_group_are_summed(self):
        block = block_of(
            strength("back-squat", 5, 5),   # 25
            strength("front-squat", 3, 5),  # 15
            strength("bench", 4, 10),       # 40
        )
        group_map = {"back-squat": "squat", "front-squat": "squat", "bench": "press"}

        assert calculate_volume_percentages(block, group_map) == {"squat": 50, "press": 50}

    def test_volume_accumulates_across_weeks(self):
        block = block_of(strength("a", 3, 10), strength("b", 1, 10), weeks=4)

        assert calculate_volume_percentages(block, {"a": "x", "b": "y"}) == {"x": 75, "y": 25}

    def test_three_way_split_is_rounded_per_group(self):
        """Each third rounds to 33 independently, so the total is 99."""
        block = block_of(strength("a", 1, 1), strength("b", 1, 1), strength("c", 1, 1))

        result = calculate_volume_percentages(block, {"a": "x", "b": "y", "c": "z"})

        assert result == {"x": 33, "y": 33, "z": 33}
        assert sum(result.values()) == 99

    def test_halves_round_up(self):
        """1/8 is 12.5% and 7/8 is 87.5%: both round up, giving 101 total."""
        block = block_of(strength("a", 1, 1), strength("b", 7, 1))

        assert calculate_volume_percentages(block, {"a": "x", "b": "y"}) == {"x": 13, "y": 88}


class TestBuildActivityGroupMap:

    def test_maps_template_id_to_group(self):
        template = ActivityTemplate(name="Back Squat", activity_group="squat", type=TemplateType.PRIMARY_LIFT)

        assert build_activity_group_map([template]) == {str(template.id): "squat"}

    def test_skips_templates_without_group(self):
        template = ActivityTemplate(name="Mobility", activity_group="", type=TemplateType.DIAGNOSTIC)

        assert build_activity_group_map([template]) == {}


class TestCalculateProgramVolume:

    def test_reports_every_block_with_its_targets(self):
        squat_id, bench_id = str(uuid4()), str(uuid4())
        hypertrophy = block_of(strength(squat_id, 4, 10), strength(bench_id, 4, 10))
        hypertrophy.name = "Hypertrophy"
        hypertrophy.volume_targets = [
            VolumeTarget(activity_group="squat", target_percentage=60),
            VolumeTarget(activity_group="bench", target_percentage=40),
        ]
        deload = ProgramBlock(name="Deload")
        program = WorkoutProgram(gym_id="gym-1", name="Offseason", blocks=[hypertrophy, deload])

        result = calculate_program_volume(program, {squat_id: "squat", bench_id: "bench"})

        assert [b.block_name for b in result] == ["Hypertrophy", "Deload"]
        assert result[0].block_id == hypertrophy.block_id
        assert result[0].actual_percentages == {"squat": 50, "bench": 50}
        assert [t.activity_group for t in result[0].volume_targets] == ["squat", "bench"]
        assert result[1].actual_percentages == {}

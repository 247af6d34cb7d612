"""
Workout program API endpoints.

Programs are block -> week -> day -> activity trees. Besides CRUD this
router exposes the volume breakdown: for each block, the share of
strength volume (sets x reps) each activity group received, alongside
the block's declared volume targets.
"""

import copy
import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ...core.access import Principal, resolve_gym_id
from ...core.programs import (
    ActivityType,
    ProgramActivity,
    ProgramBlock,
    ProgramDay,
    ProgramWeek,
    VolumeTarget,
    WorkoutProgram,
    build_activity_group_map,
    calculate_program_volume,
    validate_program_structure,
)
from ...infrastructure.snowflake.repositories import ActivityTemplateRepository
from ..dependencies import (
    ActivityTemplateRepositoryDep,
    CurrentPrincipal,
    WorkoutProgramRepositoryDep,
)
from ..pagination import PageParamsDep, PaginationInfo

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class VolumeTargetModel(BaseModel):
    activity_group: str = Field(min_length=1, max_length=50)
    target_percentage: float = Field(ge=0, le=100)


class ActivityModel(BaseModel):
    activity_id: Optional[UUID] = None
    template_id: str = Field(description="Activity template reference")
    type: ActivityType = ActivityType.STRENGTH
    order_index: int = 0
    sets: Optional[int] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    rest_period: int = Field(60, ge=0, description="Seconds")
    intensity_percentage: Optional[float] = Field(None, ge=0, le=200, description="Percentage of 1RM")
    duration: Optional[int] = Field(None, ge=0, description="Seconds")
    distance: Optional[float] = Field(None, ge=0, description="Meters")
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_prescription(self) -> "ActivityModel":
        if self.type is ActivityType.STRENGTH:
            if self.sets is not None and self.sets <= 0:
                raise ValueError("Sets must be greater than 0 for strength activities")
            if self.reps is not None and self.reps <= 0:
                raise ValueError("Reps must be greater than 0 for strength activities")
            if self.intensity_percentage is not None and self.intensity_percentage <= 0:
                raise ValueError("Intensity percentage must be greater than 0 for strength activities")
        if self.type is ActivityType.CONDITIONING and self.duration is not None and self.duration <= 0:
            raise ValueError("Duration must be greater than 0 for conditioning activities")
        return self


class DayModel(BaseModel):
    day_id: Optional[UUID] = None
    day_of_week: int = Field(ge=1, le=7)
    name: Optional[str] = Field(None, max_length=100)
    activities: list[ActivityModel] = Field(default_factory=list)


class WeekModel(BaseModel):
    week_id: Optional[UUID] = None
    week_number: int = Field(ge=1)
    description: Optional[str] = Field(None, max_length=500)
    volume_targets: list[VolumeTargetModel] = Field(default_factory=list)
    days: list[DayModel] = Field(default_factory=list)


class BlockModel(BaseModel):
    block_id: Optional[UUID] = None
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    order_index: int = 0
    volume_targets: list[VolumeTargetModel] = Field(default_factory=list)
    weeks: list[WeekModel] = Field(default_factory=list)


class WorkoutProgramCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    gym_id: Optional[str] = Field(None, description="Required for admins, ignored otherwise")
    description: Optional[str] = Field(None, max_length=1000)
    blocks: list[BlockModel] = Field(default_factory=list)
    is_template: bool = False


class WorkoutProgramUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    blocks: Optional[list[BlockModel]] = None
    is_template: Optional[bool] = None


class WorkoutProgramCopy(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100, description="Name of the new program")
    is_template: bool = False


class WorkoutProgramResponse(BaseModel):
    id: UUID
    gym_id: str
    name: str
    description: Optional[str]
    blocks: list[BlockModel]
    is_template: bool
    version: int
    parent_program_id: Optional[UUID]
    duration_weeks: int
    total_activities: int
    created_at: datetime
    updated_at: datetime


class WorkoutProgramListResponse(BaseModel):
    programs: list[WorkoutProgramResponse]
    pagination: PaginationInfo


class GroupPercentage(BaseModel):
    activity_group: str
    actual_percentage: int


class BlockVolumeResponse(BaseModel):
    block_id: UUID
    block_name: str
    volume_targets: list[VolumeTargetModel]
    actual_percentages: list[GroupPercentage]


class ProgramVolumeResponse(BaseModel):
    program_id: UUID
    program_name: str
    block_calculations: list[BlockVolumeResponse]


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def _targets_to_domain(targets: list[VolumeTargetModel]) -> list[VolumeTarget]:
    return [
        VolumeTarget(activity_group=t.activity_group.strip(), target_percentage=t.target_percentage)
        for t in targets
    ]


def _targets_to_model(targets: list[VolumeTarget]) -> list[VolumeTargetModel]:
    return [
        VolumeTargetModel(activity_group=t.activity_group, target_percentage=t.target_percentage)
        for t in targets
    ]


def _activity_to_domain(a: ActivityModel) -> ProgramActivity:
    activity = ProgramActivity(
        template_id=a.template_id,
        type=a.type,
        order_index=a.order_index,
        sets=a.sets,
        reps=a.reps,
        rest_period=a.rest_period,
        intensity_percentage=a.intensity_percentage,
        duration=a.duration,
        distance=a.distance,
        notes=a.notes,
    )
    if a.activity_id:
        activity.activity_id = a.activity_id
    return activity


def _blocks_to_domain(blocks: list[BlockModel]) -> list[ProgramBlock]:
    result = []
    for b in blocks:
        weeks = []
        for w in b.weeks:
            days = []
            for d in w.days:
                day = ProgramDay(
                    day_of_week=d.day_of_week,
                    name=d.name,
                    activities=[_activity_to_domain(a) for a in d.activities],
                )
                if d.day_id:
                    day.day_id = d.day_id
                days.append(day)

            week = ProgramWeek(
                week_number=w.week_number,
                description=w.description,
                volume_targets=_targets_to_domain(w.volume_targets),
                days=days,
            )
            if w.week_id:
                week.week_id = w.week_id
            weeks.append(week)

        block = ProgramBlock(
            name=b.name.strip(),
            description=b.description,
            order_index=b.order_index,
            volume_targets=_targets_to_domain(b.volume_targets),
            weeks=weeks,
        )
        if b.block_id:
            block.block_id = b.block_id
        result.append(block)
    return result


def _blocks_to_model(blocks: list[ProgramBlock]) -> list[BlockModel]:
    return [
        BlockModel(
            block_id=b.block_id,
            name=b.name,
            description=b.description,
            order_index=b.order_index,
            volume_targets=_targets_to_model(b.volume_targets),
            weeks=[
                WeekModel(
                    week_id=w.week_id,
                    week_number=w.week_number,
                    description=w.description,
                    volume_targets=_targets_to_model(w.volume_targets),
                    days=[
                        DayModel(
                            day_id=d.day_id,
                            day_of_week=d.day_of_week,
                            name=d.name,
                            activities=[
                                ActivityModel(
                                    activity_id=a.activity_id,
                                    template_id=a.template_id,
                                    type=a.type,
                                    order_index=a.order_index,
                                    sets=a.sets,
                                    reps=a.reps,
                                    rest_period=a.rest_period,
                                    intensity_percentage=a.intensity_percentage,
                                    duration=a.duration,
                                    distance=a.distance,
                                    notes=a.notes,
                                )
                                for a in d.activities
                            ],
                        )
                        for d in w.days
                    ],
                )
                for w in b.weeks
            ],
        )
        for b in blocks
    ]


def _to_response(program: WorkoutProgram) -> WorkoutProgramResponse:
    return WorkoutProgramResponse(
        id=program.id,
        gym_id=program.gym_id,
        name=program.name,
        description=program.description,
        blocks=_blocks_to_model(program.blocks),
        is_template=program.is_template,
        version=program.version,
        parent_program_id=program.parent_program_id,
        duration_weeks=program.duration_weeks,
        total_activities=program.total_activities,
        created_at=program.created_at,
        updated_at=program.updated_at,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _scope(principal: Principal) -> Optional[str]:
    """Gym filter for reads: None for admins, the caller's own gym otherwise."""
    if principal.is_admin:
        return None
    return resolve_gym_id(principal)


def _validate_blocks(
    blocks: list[ProgramBlock],
    gym_id: str,
    activities: ActivityTemplateRepository,
) -> Optional[JSONResponse]:
    """Structure check, then every referenced template must exist and be visible to the gym."""
    errors = validate_program_structure(blocks)
    if errors:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid program structure", "errors": errors},
        )

    referenced = {
        activity.template_id
        for block in blocks
        for activity in block.iter_activities()
    }
    if not referenced:
        return None

    valid = {
        str(template.id)
        for template in activities.get_many(referenced)
        if template.gym_id is None or template.gym_id == gym_id
    }
    invalid = sorted(referenced - valid)
    if invalid:
        logger.info(
            "Rejected program with unknown activity templates",
            extra={"gym_id": gym_id, "invalid_template_ids": invalid}
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid activity template references", "invalid_template_ids": invalid},
        )

    return None


def _clone_blocks(blocks: list[ProgramBlock]) -> list[ProgramBlock]:
    """Deep copy a program tree with fresh ids at every level."""
    clones = copy.deepcopy(blocks)
    for block in clones:
        block.block_id = uuid4()
        for week in block.weeks:
            week.week_id = uuid4()
            for day in week.days:
                day.day_id = uuid4()
                for activity in day.activities:
                    activity.activity_id = uuid4()
    return clones


def _duplicate_name() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="A program with this name already exists in this gym",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=WorkoutProgramListResponse,
    summary="List workout programs",
)
async def list_workout_programs(
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
    paging: PageParamsDep,
    gym_id: Annotated[Optional[str], Query(description="Filter by gym (admins only)")] = None,
    search: Annotated[Optional[str], Query(description="Filter by name")] = None,
    is_template: Annotated[Optional[bool], Query(description="Only templates / only non-templates")] = None,
) -> WorkoutProgramListResponse:
    scoped_gym_id = _scope(principal)
    if principal.is_admin and gym_id and gym_id != "all":
        scoped_gym_id = gym_id

    programs = repository.list_programs(
        gym_id=scoped_gym_id,
        is_template=is_template,
        search=search,
        page=paging.page,
        limit=paging.limit,
    )
    total = repository.count(gym_id=scoped_gym_id, is_template=is_template, search=search)

    return WorkoutProgramListResponse(
        programs=[_to_response(p) for p in programs],
        pagination=paging.info(total),
    )


@router.get(
    "/{program_id}",
    response_model=WorkoutProgramResponse,
    summary="Get workout program",
)
async def get_workout_program(
    program_id: UUID,
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
) -> WorkoutProgramResponse:
    program = repository.get(program_id, gym_id=_scope(principal))
    return _to_response(program)


@router.post(
    "",
    response_model=WorkoutProgramResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create workout program",
    responses={400: {"description": "Invalid structure, duplicate name, or unknown activity templates"}},
)
async def create_workout_program(
    request: WorkoutProgramCreate,
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
    activities: ActivityTemplateRepositoryDep,
):
    gym_id = resolve_gym_id(principal, request.gym_id)
    blocks = _blocks_to_domain(request.blocks)

    rejection = _validate_blocks(blocks, gym_id, activities)
    if rejection is not None:
        return rejection

    if repository.find_by_name(gym_id, request.name):
        raise _duplicate_name()

    program = WorkoutProgram(
        gym_id=gym_id,
        name=request.name,
        description=request.description,
        blocks=blocks,
        is_template=request.is_template,
    )
    repository.save(program)

    logger.info(
        "Created workout program",
        extra={
            "program_id": str(program.id),
            "gym_id": gym_id,
            "duration_weeks": program.duration_weeks,
            "total_activities": program.total_activities,
        }
    )

    return _to_response(program)


@router.put(
    "/{program_id}",
    response_model=WorkoutProgramResponse,
    summary="Update workout program",
    description="Every update increments the program version.",
)
async def update_workout_program(
    program_id: UUID,
    request: WorkoutProgramUpdate,
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
    activities: ActivityTemplateRepositoryDep,
):
    program = repository.get(program_id, gym_id=_scope(principal))

    if request.name is not None:
        if repository.find_by_name(program.gym_id, request.name, exclude_id=program.id):
            raise _duplicate_name()
        program.name = request.name

    if request.description is not None:
        program.description = request.description

    if request.is_template is not None:
        program.is_template = request.is_template

    if request.blocks is not None:
        blocks = _blocks_to_domain(request.blocks)
        rejection = _validate_blocks(blocks, program.gym_id, activities)
        if rejection is not None:
            return rejection
        program.blocks = blocks

    program.version += 1
    program.touch()
    repository.save(program)

    logger.info(
        "Updated workout program",
        extra={"program_id": str(program.id), "version": program.version}
    )

    return _to_response(program)


@router.delete(
    "/{program_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete workout program",
    description="Soft delete. The program disappears from lists and lookups.",
)
async def delete_workout_program(
    program_id: UUID,
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
) -> None:
    program = repository.get(program_id, gym_id=_scope(principal))

    program.is_active = False
    program.touch()
    repository.save(program)

    logger.info("Deleted workout program", extra={"program_id": str(program.id)})


@router.post(
    "/{program_id}/copy",
    response_model=WorkoutProgramResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Copy workout program",
    description="Duplicate a program (or turn it into a template) under a new name.",
)
async def copy_workout_program(
    program_id: UUID,
    request: WorkoutProgramCopy,
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
) -> WorkoutProgramResponse:
    source = repository.get(program_id, gym_id=_scope(principal))

    if repository.find_by_name(source.gym_id, request.name):
        raise _duplicate_name()

    duplicate = WorkoutProgram(
        gym_id=source.gym_id,
        name=request.name,
        description=source.description,
        blocks=_clone_blocks(source.blocks),
        is_template=request.is_template,
        parent_program_id=source.id,
        version=1,
    )
    repository.save(duplicate)

    logger.info(
        "Copied workout program",
        extra={"source_id": str(source.id), "program_id": str(duplicate.id)}
    )

    return _to_response(duplicate)


@router.get(
    "/{program_id}/volume",
    response_model=ProgramVolumeResponse,
    summary="Volume distribution per block",
    description=(
        "For each block, the percentage of strength volume (sets x reps) per activity group. "
        "Percentages are rounded per group and may not sum to exactly 100."
    ),
)
async def get_program_volume(
    program_id: UUID,
    principal: CurrentPrincipal,
    repository: WorkoutProgramRepositoryDep,
    activities: ActivityTemplateRepositoryDep,
) -> ProgramVolumeResponse:
    program = repository.get(program_id, gym_id=_scope(principal))

    group_map = build_activity_group_map(
        activities.get_many(program.template_ids, include_inactive=True)
    )
    blocks = calculate_program_volume(program, group_map)

    return ProgramVolumeResponse(
        program_id=program.id,
        program_name=program.name,
        block_calculations=[
            BlockVolumeResponse(
                block_id=block.block_id,
                block_name=block.block_name,
                volume_targets=_targets_to_model(block.volume_targets),
                actual_percentages=[
                    GroupPercentage(activity_group=group, actual_percentage=percentage)
                    for group, percentage in block.actual_percentages.items()
                ],
            )
            for block in blocks
        ],
    )

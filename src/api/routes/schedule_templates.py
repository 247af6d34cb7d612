"""
Schedule template API endpoints.

A schedule template is a gym's reusable week of classes. Before any
template is stored, its timeslots are checked for double-booked
locations and coaches; a template with conflicts is rejected with the
full list so the client can show every problem at once.

Only one template per gym is the default. Saving a template as default
takes the flag away from the gym's previous default.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...core.access import (
    MANAGER_ROLES,
    STAFF_ROLES,
    require_gym_access,
    require_role,
    resolve_gym_id,
)
from ...core.scheduling import (
    ScheduleTemplate,
    Timeslot,
    enforce_single_default,
    validate_timeslot_conflicts,
)
from ...infrastructure.snowflake.repositories import (
    NotFoundError,
    ScheduleTemplateRepository,
    WorkoutProgramRepository,
)
from ..dependencies import (
    CurrentPrincipal,
    ScheduleTemplateRepositoryDep,
    WorkoutProgramRepositoryDep,
)
from ..pagination import PageParamsDep, PaginationInfo

logger = logging.getLogger(__name__)

router = APIRouter()

TIME_REGEX = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class TimeslotPayload(BaseModel):
    """A timeslot as sent by the client."""
    day_of_week: int = Field(ge=1, le=7, description="1 = Monday ... 7 = Sunday")
    start_time: str = Field(pattern=TIME_REGEX, description="HH:MM, 24-hour")
    end_time: str = Field(pattern=TIME_REGEX, description="HH:MM, 24-hour")
    location_id: str = Field(min_length=1, description="Gym location identifier")
    coach_id: str = Field(min_length=1, description="Coach user identifier")
    program_id: Optional[str] = Field(None, description="Workout program run in this class")
    max_capacity: int = Field(20, ge=1, le=100)
    class_name: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)
    is_active: bool = True

    def to_domain(self) -> Timeslot:
        return Timeslot(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            location_id=self.location_id,
            coach_id=self.coach_id,
            program_id=self.program_id,
            max_capacity=self.max_capacity,
            class_name=self.class_name.strip() if self.class_name else None,
            notes=self.notes.strip() if self.notes else None,
            is_active=self.is_active,
        )


class ScheduleTemplateCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    gym_id: Optional[str] = Field(None, description="Required for admins, ignored otherwise")
    is_default: bool = False
    timeslots: list[TimeslotPayload] = Field(default_factory=list)


class ScheduleTemplateUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_default: Optional[bool] = None
    timeslots: Optional[list[TimeslotPayload]] = None


class TimeslotResponse(BaseModel):
    timeslot_id: UUID
    day_of_week: int
    start_time: str
    end_time: str
    location_id: Optional[str]
    coach_id: Optional[str]
    program_id: Optional[str]
    max_capacity: int
    class_name: Optional[str]
    notes: Optional[str]
    is_active: bool


class ScheduleTemplateResponse(BaseModel):
    id: UUID
    gym_id: str
    name: str
    description: Optional[str]
    is_default: bool
    created_by: str
    timeslots: list[TimeslotResponse]
    total_timeslots: int = Field(description="Active timeslots")
    total_coaches: int = Field(description="Distinct coaches across active timeslots")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, template: ScheduleTemplate) -> "ScheduleTemplateResponse":
        return cls(
            id=template.id,
            gym_id=template.gym_id,
            name=template.name,
            description=template.description,
            is_default=template.is_default,
            created_by=template.created_by,
            timeslots=[
                TimeslotResponse(
                    timeslot_id=slot.timeslot_id,
                    day_of_week=slot.day_of_week,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    location_id=slot.location_id,
                    coach_id=slot.coach_id,
                    program_id=slot.program_id,
                    max_capacity=slot.max_capacity,
                    class_name=slot.class_name,
                    notes=slot.notes,
                    is_active=slot.is_active,
                )
                for slot in template.timeslots
            ],
            total_timeslots=template.total_timeslots,
            total_coaches=template.total_coaches,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


class ScheduleTemplateListResponse(BaseModel):
    templates: list[ScheduleTemplateResponse]
    pagination: PaginationInfo


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_timeslots(
    timeslots: list[Timeslot],
    gym_id: str,
    programs: WorkoutProgramRepository,
) -> Optional[JSONResponse]:
    """
    Validate program references, then run the conflict check.

    Returns the 400 response to send, or None when the timeslots are fine.
    """
    for slot in timeslots:
        if not slot.program_id:
            continue
        try:
            programs.get(UUID(slot.program_id), gym_id=gym_id)
        except (ValueError, NotFoundError):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Workout program {slot.program_id} does not belong to this gym or is not active",
            )

    conflicts = validate_timeslot_conflicts(timeslots)
    if conflicts:
        logger.info(
            "Rejected schedule template with conflicts",
            extra={"gym_id": gym_id, "conflict_count": len(conflicts)}
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Timeslot conflicts detected", "conflicts": conflicts},
        )

    return None


def _ensure_unique_name(
    repository: ScheduleTemplateRepository,
    gym_id: str,
    name: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    if repository.find_by_name(gym_id, name, exclude_id=exclude_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A schedule template with this name already exists",
        )


def _save(repository: ScheduleTemplateRepository, template: ScheduleTemplate) -> None:
    """Persist a template, first taking the default flag from any other template."""
    for previous in enforce_single_default(template, repository.list_defaults(template.gym_id)):
        repository.save(previous)
        logger.info(
            "Cleared previous default schedule template",
            extra={"gym_id": template.gym_id, "template_id": str(previous.id)}
        )
    repository.save(template)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ScheduleTemplateListResponse,
    summary="List schedule templates",
    description="Active templates for a gym, default first, then most recently updated",
)
async def list_schedule_templates(
    principal: CurrentPrincipal,
    repository: ScheduleTemplateRepositoryDep,
    paging: PageParamsDep,
    gym_id: Annotated[Optional[str], Query(description="Gym to list (admins only)")] = None,
    search: Annotated[Optional[str], Query(description="Filter by name")] = None,
) -> ScheduleTemplateListResponse:
    scoped_gym_id = resolve_gym_id(principal, gym_id)

    templates = repository.list_for_gym(
        scoped_gym_id,
        page=paging.page,
        limit=paging.limit,
        search=search,
    )
    total = repository.count_for_gym(scoped_gym_id, search=search)

    return ScheduleTemplateListResponse(
        templates=[ScheduleTemplateResponse.from_domain(t) for t in templates],
        pagination=paging.info(total),
    )


@router.get(
    "/{template_id}",
    response_model=ScheduleTemplateResponse,
    summary="Get schedule template",
)
async def get_schedule_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: ScheduleTemplateRepositoryDep,
) -> ScheduleTemplateResponse:
    template = repository.get(template_id)
    require_gym_access(principal, template.gym_id, "this schedule template")
    return ScheduleTemplateResponse.from_domain(template)


@router.post(
    "",
    response_model=ScheduleTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create schedule template",
    responses={400: {"description": "Invalid timeslots or timeslot conflicts"}, 409: {"description": "Duplicate name"}},
)
async def create_schedule_template(
    request: ScheduleTemplateCreate,
    principal: CurrentPrincipal,
    repository: ScheduleTemplateRepositoryDep,
    programs: WorkoutProgramRepositoryDep,
):
    gym_id = resolve_gym_id(principal, request.gym_id)
    require_role(principal, STAFF_ROLES, "create schedule templates")
    _ensure_unique_name(repository, gym_id, request.name)

    timeslots = [slot.to_domain() for slot in request.timeslots]
    rejection = _check_timeslots(timeslots, gym_id, programs)
    if rejection is not None:
        return rejection

    template = ScheduleTemplate(
        gym_id=gym_id,
        name=request.name,
        description=request.description,
        is_default=request.is_default,
        timeslots=timeslots,
        created_by=principal.user_id,
    )
    _save(repository, template)

    logger.info(
        "Created schedule template",
        extra={
            "template_id": str(template.id),
            "gym_id": gym_id,
            "timeslot_count": len(timeslots),
            "is_default": template.is_default,
        }
    )

    return ScheduleTemplateResponse.from_domain(template)


@router.put(
    "/{template_id}",
    response_model=ScheduleTemplateResponse,
    summary="Update schedule template",
    responses={400: {"description": "Invalid timeslots or timeslot conflicts"}, 409: {"description": "Duplicate name"}},
)
async def update_schedule_template(
    template_id: UUID,
    request: ScheduleTemplateUpdate,
    principal: CurrentPrincipal,
    repository: ScheduleTemplateRepositoryDep,
    programs: WorkoutProgramRepositoryDep,
):
    template = repository.get(template_id)
    require_gym_access(principal, template.gym_id, "update this schedule template")
    require_role(principal, STAFF_ROLES, "update schedule templates")

    if request.name is not None and request.name.strip() != template.name:
        _ensure_unique_name(repository, template.gym_id, request.name, exclude_id=template.id)

    if request.timeslots is not None:
        timeslots = [slot.to_domain() for slot in request.timeslots]
        rejection = _check_timeslots(timeslots, template.gym_id, programs)
        if rejection is not None:
            return rejection
        template.timeslots = timeslots

    if request.name is not None:
        template.name = request.name.strip()
    if request.description is not None:
        template.description = request.description.strip()
    if request.is_default is not None:
        template.is_default = request.is_default

    template.touch()
    _save(repository, template)

    logger.info(
        "Updated schedule template",
        extra={"template_id": str(template.id), "gym_id": template.gym_id}
    )

    return ScheduleTemplateResponse.from_domain(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete schedule template",
    description="Soft delete. A deleted template is no longer the gym default.",
)
async def delete_schedule_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: ScheduleTemplateRepositoryDep,
) -> None:
    template = repository.get(template_id)
    require_gym_access(principal, template.gym_id, "delete this schedule template")
    require_role(principal, MANAGER_ROLES, "delete schedule templates")

    template.soft_delete()
    repository.save(template)

    logger.info(
        "Deleted schedule template",
        extra={"template_id": str(template.id), "gym_id": template.gym_id}
    )


@router.post(
    "/{template_id}/set-default",
    response_model=ScheduleTemplateResponse,
    summary="Make this the gym's default template",
)
async def set_default_schedule_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: ScheduleTemplateRepositoryDep,
) -> ScheduleTemplateResponse:
    template = repository.get(template_id)
    require_gym_access(principal, template.gym_id, "modify this schedule template")
    require_role(principal, MANAGER_ROLES, "set default template")

    template.is_default = True
    template.touch()
    _save(repository, template)

    return ScheduleTemplateResponse.from_domain(template)

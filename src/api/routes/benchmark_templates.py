"""
Benchmark template API endpoints.

Benchmarks are the tests a gym measures its members with. Each gym
manages its own; rows without a gym are global and read-only for
everyone but admins.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.access import (
    STAFF_ROLES,
    PermissionDenied,
    Principal,
    require_gym_access,
    require_role,
    resolve_gym_id,
)
from ...core.benchmarks import BenchmarkTemplate, BenchmarkType, BenchmarkUnit, clean_tags
from ..dependencies import BenchmarkTemplateRepositoryDep, CurrentPrincipal
from ..pagination import PageParamsDep, PaginationInfo

logger = logging.getLogger(__name__)

router = APIRouter()

GLOBAL_SCOPE = "global"


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class BenchmarkTemplateCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    type: BenchmarkType
    unit: BenchmarkUnit
    description: Optional[str] = Field(None, max_length=500)
    instructions: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)
    tags: list[str] = Field(default_factory=list)
    gym_id: Optional[str] = Field(None, description="Required for admins, ignored for everyone else")


class BenchmarkTemplateUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[BenchmarkType] = None
    unit: Optional[BenchmarkUnit] = None
    description: Optional[str] = Field(None, max_length=500)
    instructions: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)
    tags: Optional[list[str]] = None


class BenchmarkTemplateResponse(BaseModel):
    id: UUID
    gym_id: Optional[str]
    name: str
    type: BenchmarkType
    unit: BenchmarkUnit
    description: Optional[str]
    instructions: Optional[str]
    notes: Optional[str]
    tags: list[str]
    is_global: bool
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, template: BenchmarkTemplate) -> "BenchmarkTemplateResponse":
        return cls(
            id=template.id,
            gym_id=template.gym_id,
            name=template.name,
            type=template.type,
            unit=template.unit,
            description=template.description,
            instructions=template.instructions,
            notes=template.notes,
            tags=template.tags,
            is_global=template.is_global,
            created_by=template.created_by,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


class BenchmarkTemplateListResponse(BaseModel):
    templates: list[BenchmarkTemplateResponse]
    pagination: PaginationInfo


class TagCount(BaseModel):
    tag: str
    count: int


class TagListResponse(BaseModel):
    tags: list[TagCount]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_readable(principal: Principal, template: BenchmarkTemplate) -> None:
    if not template.is_global:
        require_gym_access(principal, template.gym_id, "this benchmark template")


def _check_writable(principal: Principal, template: BenchmarkTemplate, action: str) -> None:
    require_role(principal, STAFF_ROLES, f"{action} benchmark templates")
    if template.is_global:
        if not principal.is_admin:
            raise PermissionDenied(f"Only admins can {action} global benchmark templates")
    else:
        require_gym_access(principal, template.gym_id, f"{action} this benchmark template")


def _duplicate_name() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="A benchmark template with this name already exists in this gym",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=BenchmarkTemplateListResponse,
    summary="List benchmark templates",
    description="The caller's gym benchmarks plus global ones, by name. Tags match any of those given.",
)
async def list_benchmark_templates(
    principal: CurrentPrincipal,
    repository: BenchmarkTemplateRepositoryDep,
    paging: PageParamsDep,
    gym_id: Annotated[Optional[str], Query(description="Gym to list for (admins only)")] = None,
    type: Annotated[Optional[BenchmarkType], Query(description="Filter by benchmark type")] = None,
    unit: Annotated[Optional[BenchmarkUnit], Query(description="Filter by unit")] = None,
    tags: Annotated[Optional[list[str]], Query(description="Repeat to match any of several tags")] = None,
    search: Annotated[Optional[str], Query(description="Filter by name")] = None,
) -> BenchmarkTemplateListResponse:
    scoped_gym_id = resolve_gym_id(principal, gym_id) if (gym_id or not principal.is_admin) else None
    wanted_tags = clean_tags(tags or [])

    filters = {"type": type, "unit": unit, "tags": wanted_tags, "search": search}
    templates = repository.list_visible(
        gym_id=scoped_gym_id,
        page=paging.page,
        limit=paging.limit,
        **filters,
    )
    total = repository.count_visible(gym_id=scoped_gym_id, **filters)

    return BenchmarkTemplateListResponse(
        templates=[BenchmarkTemplateResponse.from_domain(t) for t in templates],
        pagination=paging.info(total),
    )


@router.get(
    "/tags",
    response_model=TagListResponse,
    summary="List benchmark tags",
    description=(
        "Tags in use with how many benchmarks carry each. Admins may pass a gym id, "
        "'global' for global benchmarks only, or nothing for all gyms."
    ),
)
async def list_benchmark_tags(
    principal: CurrentPrincipal,
    repository: BenchmarkTemplateRepositoryDep,
    gym_id: Annotated[Optional[str], Query(description="Gym, or 'global' (admins only)")] = None,
) -> TagListResponse:
    if principal.is_admin:
        global_only = gym_id == GLOBAL_SCOPE
        scoped_gym_id = None if global_only else gym_id
    else:
        global_only = False
        scoped_gym_id = resolve_gym_id(principal)

    counts = repository.tag_counts(gym_id=scoped_gym_id, global_only=global_only)

    return TagListResponse(tags=[TagCount(tag=tag, count=count) for tag, count in counts])


@router.get(
    "/{template_id}",
    response_model=BenchmarkTemplateResponse,
    summary="Get benchmark template",
)
async def get_benchmark_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: BenchmarkTemplateRepositoryDep,
) -> BenchmarkTemplateResponse:
    template = repository.get(template_id)
    _check_readable(principal, template)
    return BenchmarkTemplateResponse.from_domain(template)


@router.post(
    "",
    response_model=BenchmarkTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create benchmark template",
)
async def create_benchmark_template(
    request: BenchmarkTemplateCreate,
    principal: CurrentPrincipal,
    repository: BenchmarkTemplateRepositoryDep,
) -> BenchmarkTemplateResponse:
    require_role(principal, STAFF_ROLES, "create benchmark templates")
    gym_id = resolve_gym_id(principal, request.gym_id)

    if repository.find_by_name(gym_id, request.name):
        raise _duplicate_name()

    template = BenchmarkTemplate(
        name=request.name,
        type=request.type,
        unit=request.unit,
        gym_id=gym_id,
        description=request.description,
        instructions=request.instructions,
        notes=request.notes,
        tags=request.tags,
        created_by=principal.user_id,
    )
    repository.save(template)

    logger.info(
        "Created benchmark template",
        extra={
            "template_id": str(template.id),
            "gym_id": gym_id,
            "benchmark_type": template.type.value,
        }
    )

    return BenchmarkTemplateResponse.from_domain(template)


@router.put(
    "/{template_id}",
    response_model=BenchmarkTemplateResponse,
    summary="Update benchmark template",
    description="Type and unit are checked together after the update is applied.",
)
async def update_benchmark_template(
    template_id: UUID,
    request: BenchmarkTemplateUpdate,
    principal: CurrentPrincipal,
    repository: BenchmarkTemplateRepositoryDep,
) -> BenchmarkTemplateResponse:
    template = repository.get(template_id)
    _check_writable(principal, template, "update")

    if request.name is not None:
        if repository.find_by_name(template.gym_id, request.name, exclude_id=template.id):
            raise _duplicate_name()
        template.name = request.name

    for attr in ("type", "unit", "description", "instructions", "notes"):
        value = getattr(request, attr)
        if value is not None:
            setattr(template, attr, value)
    if request.tags is not None:
        template.set_tags(request.tags)

    template.check_unit()
    template.updated_at = datetime.utcnow()
    repository.save(template)

    logger.info("Updated benchmark template", extra={"template_id": str(template.id)})

    return BenchmarkTemplateResponse.from_domain(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete benchmark template",
    description="Permanent delete.",
)
async def delete_benchmark_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: BenchmarkTemplateRepositoryDep,
) -> None:
    template = repository.get(template_id)
    _check_writable(principal, template, "delete")

    repository.delete(template.id)

    logger.info("Deleted benchmark template", extra={"template_id": str(template.id)})

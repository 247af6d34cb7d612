"""
Activity template API endpoints.

The exercise catalog programs draw from. Gym templates are private to
their gym; templates with no gym are global, visible everywhere and
writable only by admins.
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
from ...core.programs import ActivityTemplate, TemplateType
from ..dependencies import ActivityTemplateRepositoryDep, CurrentPrincipal
from ..pagination import PageParamsDep, PaginationInfo

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ActivityTemplateCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    activity_group: str = Field(min_length=1, max_length=50, description="Used for volume analysis")
    type: TemplateType
    description: Optional[str] = Field(None, max_length=1000)
    instructions: Optional[str] = Field(None, max_length=2000)
    gym_id: Optional[str] = Field(None, description="Admins only; omit with is_global for a global template")
    is_global: bool = False


class ActivityTemplateUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    activity_group: Optional[str] = Field(None, min_length=1, max_length=50)
    type: Optional[TemplateType] = None
    description: Optional[str] = Field(None, max_length=1000)
    instructions: Optional[str] = Field(None, max_length=2000)


class ActivityTemplateResponse(BaseModel):
    id: UUID
    gym_id: Optional[str]
    name: str
    activity_group: str
    type: TemplateType
    description: Optional[str]
    instructions: Optional[str]
    is_global: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, template: ActivityTemplate) -> "ActivityTemplateResponse":
        return cls(
            id=template.id,
            gym_id=template.gym_id,
            name=template.name,
            activity_group=template.activity_group,
            type=template.type,
            description=template.description,
            instructions=template.instructions,
            is_global=template.is_global,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


class ActivityTemplateListResponse(BaseModel):
    templates: list[ActivityTemplateResponse]
    pagination: PaginationInfo


class ActivityGroupSummary(BaseModel):
    activity_group: str
    count: int = Field(description="Active templates in this group")


class ActivityGroupListResponse(BaseModel):
    groups: list[ActivityGroupSummary]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_readable(principal: Principal, template: ActivityTemplate) -> None:
    if not template.is_global:
        require_gym_access(principal, template.gym_id, "this activity template")


def _check_writable(principal: Principal, template: ActivityTemplate, action: str) -> None:
    require_role(principal, STAFF_ROLES, f"{action} activity templates")
    if template.is_global:
        if not principal.is_admin:
            raise PermissionDenied(f"Only admins can {action} global activity templates")
    else:
        require_gym_access(principal, template.gym_id, f"{action} this activity template")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ActivityTemplateListResponse,
    summary="List activity templates",
    description="The caller's gym templates plus all global templates, by name.",
)
async def list_activity_templates(
    principal: CurrentPrincipal,
    repository: ActivityTemplateRepositoryDep,
    paging: PageParamsDep,
    gym_id: Annotated[Optional[str], Query(description="Gym to list for (admins only)")] = None,
    search: Annotated[Optional[str], Query(description="Filter by name")] = None,
) -> ActivityTemplateListResponse:
    scoped_gym_id = resolve_gym_id(principal, gym_id) if (gym_id or not principal.is_admin) else None

    templates = repository.list_visible(
        gym_id=scoped_gym_id,
        search=search,
        page=paging.page,
        limit=paging.limit,
    )
    total = repository.count_visible(gym_id=scoped_gym_id, search=search)

    return ActivityTemplateListResponse(
        templates=[ActivityTemplateResponse.from_domain(t) for t in templates],
        pagination=paging.info(total),
    )


@router.get(
    "/groups",
    response_model=ActivityGroupListResponse,
    summary="List activity groups",
    description="Distinct groups used by the templates the caller can see. Volume targets refer to these.",
)
async def list_activity_groups(
    principal: CurrentPrincipal,
    repository: ActivityTemplateRepositoryDep,
    gym_id: Annotated[Optional[str], Query(description="Gym to list for (admins only)")] = None,
) -> ActivityGroupListResponse:
    scoped_gym_id = resolve_gym_id(principal, gym_id) if (gym_id or not principal.is_admin) else None

    groups = repository.list_groups(gym_id=scoped_gym_id)

    return ActivityGroupListResponse(
        groups=[ActivityGroupSummary(activity_group=group, count=count) for group, count in groups],
    )


@router.get(
    "/{template_id}",
    response_model=ActivityTemplateResponse,
    summary="Get activity template",
)
async def get_activity_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: ActivityTemplateRepositoryDep,
) -> ActivityTemplateResponse:
    template = repository.get(template_id)
    _check_readable(principal, template)
    return ActivityTemplateResponse.from_domain(template)


@router.post(
    "",
    response_model=ActivityTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create activity template",
)
async def create_activity_template(
    request: ActivityTemplateCreate,
    principal: CurrentPrincipal,
    repository: ActivityTemplateRepositoryDep,
) -> ActivityTemplateResponse:
    require_role(principal, STAFF_ROLES, "create activity templates")

    if request.is_global:
        if not principal.is_admin:
            raise PermissionDenied("Only admins can create global activity templates")
        gym_id = None
    else:
        gym_id = resolve_gym_id(principal, request.gym_id)

    if repository.find_by_name(gym_id, request.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An activity template with this name already exists",
        )

    template = ActivityTemplate(
        name=request.name,
        activity_group=request.activity_group,
        type=request.type,
        gym_id=gym_id,
        description=request.description,
        instructions=request.instructions,
    )
    repository.save(template)

    logger.info(
        "Created activity template",
        extra={
            "template_id": str(template.id),
            "gym_id": gym_id,
            "activity_group": template.activity_group,
        }
    )

    return ActivityTemplateResponse.from_domain(template)


@router.put(
    "/{template_id}",
    response_model=ActivityTemplateResponse,
    summary="Update activity template",
)
async def update_activity_template(
    template_id: UUID,
    request: ActivityTemplateUpdate,
    principal: CurrentPrincipal,
    repository: ActivityTemplateRepositoryDep,
) -> ActivityTemplateResponse:
    template = repository.get(template_id)
    _check_writable(principal, template, "update")

    if request.name is not None:
        if repository.find_by_name(template.gym_id, request.name, exclude_id=template.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An activity template with this name already exists",
            )
        template.name = request.name

    for attr in ("activity_group", "type", "description", "instructions"):
        value = getattr(request, attr)
        if value is not None:
            setattr(template, attr, value)

    template.updated_at = datetime.utcnow()
    repository.save(template)

    logger.info("Updated activity template", extra={"template_id": str(template.id)})

    return ActivityTemplateResponse.from_domain(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete activity template",
    description="Soft delete. Programs that still reference it keep their activities.",
)
async def delete_activity_template(
    template_id: UUID,
    principal: CurrentPrincipal,
    repository: ActivityTemplateRepositoryDep,
) -> None:
    template = repository.get(template_id)
    _check_writable(principal, template, "delete")

    template.is_active = False
    template.updated_at = datetime.utcnow()
    repository.save(template)

    logger.info("Deleted activity template", extra={"template_id": str(template.id)})

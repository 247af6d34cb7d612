"""
Page/limit query parameters shared by the list endpoints.
"""

import math
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Query
from pydantic import BaseModel, Field

from ..config.settings import Settings, get_settings


class PaginationInfo(BaseModel):
    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Page size")
    total: int = Field(description="Total matching items")
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


@dataclass
class PageParams:
    page: int
    limit: int

    def info(self, total: int) -> PaginationInfo:
        total_pages = math.ceil(total / self.limit) if self.limit else 0
        return PaginationInfo(
            page=self.page,
            limit=self.limit,
            total=total,
            total_pages=total_pages,
            has_next_page=self.page < total_pages,
            has_prev_page=self.page > 1,
        )


def get_page_params(
    settings: Annotated[Settings, Depends(get_settings)],
    page: Annotated[int, Query(description="Page number, starting at 1")] = 1,
    limit: Annotated[Optional[int], Query(description="Items per page")] = None,
) -> PageParams:
    """Clamp page to >= 1 and limit to [1, max_page_size]."""
    size = limit if limit is not None else settings.default_page_size
    return PageParams(
        page=max(1, page),
        limit=min(settings.max_page_size, max(1, size)),
    )


PageParamsDep = Annotated[PageParams, Depends(get_page_params)]

"""
Stats Router

Endpoints:
- GET /stats/school - Director's school head counts
- GET /stats/engagement - Submissions and scores (director: school, teacher: classroom)
- GET /stats/parent - The parent's own results
- GET /activity/recent - Latest submissions (director: school, teacher: classroom)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims, require_roles
from classquiz.core.database import get_db
from classquiz.modules.stats import service
from classquiz.modules.stats.schemas import (
    ActivityListResponse,
    EngagementStats,
    ParentStats,
    SchoolStats,
)
from classquiz.modules.users.models import UserRole

router = APIRouter()
activity_router = APIRouter()


@router.get("/school", response_model=SchoolStats)
async def get_school_stats(
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> SchoolStats:
    return await service.school_stats(db, claims)


@router.get("/engagement", response_model=EngagementStats)
async def get_engagement_stats(
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR, UserRole.TEACHER)),
    db: AsyncSession = Depends(get_db),
) -> EngagementStats:
    return await service.engagement_stats(db, claims)


@router.get("/parent", response_model=ParentStats)
async def get_parent_stats(
    claims: Claims = Depends(require_roles(UserRole.PARENT)),
    db: AsyncSession = Depends(get_db),
) -> ParentStats:
    return await service.parent_stats(db, claims)


@activity_router.get("/recent", response_model=ActivityListResponse)
async def get_recent_activity(
    limit: int = Query(10, ge=1, le=50),
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR, UserRole.TEACHER)),
    db: AsyncSession = Depends(get_db),
) -> ActivityListResponse:
    items = await service.recent_activity(db, claims, limit)
    return ActivityListResponse(items=items, total=len(items))

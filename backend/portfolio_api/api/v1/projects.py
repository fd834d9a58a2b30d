from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_api.db.session import get_session
from portfolio_api.models.project import ProjectStatus
from portfolio_api.schemas.project import (
    ProjectCreate,
    ProjectRead,
    SlugAvailabilityRead,
    SlugChangeRead,
    SlugRegenerateRequest,
)
from portfolio_api.services import projects as project_service
from portfolio_api.services import redirects as redirect_service

router = APIRouter(prefix="/projects", tags=["projects"])
admin_router = APIRouter(prefix="/admin/projects", tags=["projects"])


@router.get("/{slug}", response_model=ProjectRead)
async def get_published_project(slug: str, request: Request, session: AsyncSession = Depends(get_session)):
    project = await project_service.get_project_by_slug(session, slug)
    if project is not None and project.status == ProjectStatus.published:
        return project
    if project is None:
        target = await redirect_service.resolve_redirect(session, slug)
        if target is not None:
            return RedirectResponse(
                url=str(request.url_for("get_published_project", slug=target)),
                status_code=status.HTTP_301_MOVED_PERMANENTLY,
            )
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")


@admin_router.get("", response_model=list[ProjectRead])
async def admin_list_projects(
    session: AsyncSession = Depends(get_session),
    status_filter: ProjectStatus | None = Query(default=None, alias="status"),
) -> list[ProjectRead]:
    return await project_service.list_projects(session, status=status_filter)


@admin_router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def admin_create_project(payload: ProjectCreate, session: AsyncSession = Depends(get_session)) -> ProjectRead:
    return await project_service.create_project(session, payload)


@admin_router.get("/check-slug", response_model=SlugAvailabilityRead)
async def admin_check_slug(
    slug: str = Query(min_length=1, max_length=300),
    exclude_id: UUID | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
) -> SlugAvailabilityRead:
    availability = await project_service.check_slug_availability(session, slug, exclude_id=exclude_id)
    return SlugAvailabilityRead.model_validate(availability)


@admin_router.get("/{project_id}", response_model=ProjectRead)
async def admin_get_project(project_id: UUID, session: AsyncSession = Depends(get_session)) -> ProjectRead:
    return await project_service.get_project(session, project_id)


@admin_router.post("/{project_id}/regenerate-slug", response_model=SlugChangeRead)
async def admin_regenerate_slug(
    project_id: UUID,
    payload: SlugRegenerateRequest,
    session: AsyncSession = Depends(get_session),
) -> SlugChangeRead:
    change = await project_service.regenerate_slug(
        session, project_id, title=payload.title, manual_slug=payload.manual_slug
    )
    return SlugChangeRead.model_validate(change)


@admin_router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_project(project_id: UUID, session: AsyncSession = Depends(get_session)) -> Response:
    await project_service.delete_project(session, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

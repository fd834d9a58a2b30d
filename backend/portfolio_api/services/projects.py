from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_api.core import metrics
from portfolio_api.core.errors import NotFoundError, SlugExistsError, SlugValidationError
from portfolio_api.models.project import Project, ProjectStatus
from portfolio_api.models.redirect import SlugRedirect
from portfolio_api.schemas.project import ProjectCreate
from portfolio_api.services import redirects as redirect_service
from portfolio_api.services.slugs import (
    SLUG_PROBLEM_MESSAGES,
    SlugProblem,
    find_available_slug,
    prepare_slug,
)

logger = logging.getLogger(__name__)


@dataclass
class SlugAvailability:
    normalized_slug: str
    available: bool
    conflict: Project | None = None
    reserved_by_redirect: bool = False


@dataclass
class SlugChange:
    old_slug: str
    new_slug: str
    changed: bool
    reverted: bool = False


def _raise_invalid(problem: SlugProblem) -> None:
    raise SlugValidationError(SLUG_PROBLEM_MESSAGES[problem], problem=problem.value)


async def get_project(session: AsyncSession, project_id: uuid.UUID) -> Project:
    project = await session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def get_project_by_slug(session: AsyncSession, slug: str) -> Project | None:
    result = await session.execute(select(Project).where(Project.slug == slug))
    return result.scalar_one_or_none()


async def list_projects(session: AsyncSession, status: ProjectStatus | None = None) -> list[Project]:
    query = select(Project).order_by(Project.created_at.desc(), Project.slug)
    if status is not None:
        query = query.where(Project.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


async def create_project(session: AsyncSession, payload: ProjectCreate) -> Project:
    base, problem = prepare_slug(payload.title)
    if problem is not None:
        _raise_invalid(problem)
    slug = await find_available_slug(session, base)
    now = datetime.now(timezone.utc)
    project = Project(
        slug=slug,
        title=payload.title,
        summary=payload.summary,
        status=payload.status,
        published_at=now if payload.status == ProjectStatus.published else None,
    )
    session.add(project)
    await session.commit()
    await session.refresh(project)
    logger.info("project_created", extra={"project_id": str(project.id), "slug": slug})
    return project


async def delete_project(session: AsyncSession, project_id: uuid.UUID) -> None:
    project = await get_project(session, project_id)
    # Vacated slugs of a deleted project have nothing left to point at.
    await session.execute(delete(SlugRedirect).where(SlugRedirect.project_id == project.id))
    await session.delete(project)
    await session.commit()
    logger.info("project_deleted", extra={"project_id": str(project_id), "slug": project.slug})


async def check_slug_availability(
    session: AsyncSession, candidate: str, exclude_id: uuid.UUID | None = None
) -> SlugAvailability:
    normalized, problem = prepare_slug(candidate)
    if problem is not None:
        _raise_invalid(problem)

    query = select(Project).where(Project.slug == normalized)
    if exclude_id:
        query = query.where(Project.id != exclude_id)
    conflict = (await session.execute(query)).scalar_one_or_none()
    if conflict is not None:
        return SlugAvailability(normalized_slug=normalized, available=False, conflict=conflict)

    edge = await redirect_service.get_redirect(session, normalized)
    if edge is not None and (exclude_id is None or edge.project_id != exclude_id):
        return SlugAvailability(normalized_slug=normalized, available=False, reserved_by_redirect=True)
    return SlugAvailability(normalized_slug=normalized, available=True)


async def _resolve_manual_slug(session: AsyncSession, project: Project, manual_slug: str) -> str:
    candidate, problem = prepare_slug(manual_slug)
    if problem is not None:
        _raise_invalid(problem)
    owner = await get_project_by_slug(session, candidate)
    if owner is not None and owner.id != project.id:
        raise SlugExistsError("Slug already used by another project", slug=candidate)
    return candidate


async def regenerate_slug(
    session: AsyncSession,
    project_id: uuid.UUID,
    *,
    title: str | None = None,
    manual_slug: str | None = None,
) -> SlugChange:
    """Give a project a new slug while keeping every old URL resolvable.

    With ``manual_slug`` the value is normalized and must be free; otherwise the
    slug is derived from ``title`` (or the stored title) and suffixed until free.
    A rename then runs cycle detection, flattens inbound redirects, records the
    vacated slug and removes self-references before the project row is updated.
    Cycle rejection happens before any write.
    """
    project = await get_project(session, project_id)
    project_id = project.id
    old_slug = project.slug

    if manual_slug is not None:
        new_slug = await _resolve_manual_slug(session, project, manual_slug)
    else:
        base, problem = prepare_slug(title or project.title)
        if problem is not None:
            _raise_invalid(problem)
        new_slug = await find_available_slug(session, base, exclude_id=project.id)

    if new_slug == old_slug:
        return SlugChange(old_slug=old_slug, new_slug=new_slug, changed=False)

    reverted = await redirect_service.check_redirect_cycle(session, project_id, old_slug, new_slug)
    if not reverted:
        await redirect_service.ensure_slug_not_redirected(session, new_slug)
        await redirect_service.update_redirect_chain(session, project_id, old_slug, new_slug)
    else:
        await redirect_service.flatten_inbound_redirects(session, old_slug, new_slug)
    await redirect_service.cleanup_redundant_redirects(session, project_id, new_slug)

    # A rolled-back duplicate insert expires every loaded instance.
    await session.refresh(project)
    project.slug = new_slug
    session.add(project)
    await session.commit()
    await session.refresh(project)

    metrics.record_slug_renamed()
    logger.info(
        "slug_regenerated",
        extra={"project_id": str(project_id), "old_slug": old_slug, "new_slug": new_slug, "reverted": reverted},
    )
    return SlugChange(old_slug=old_slug, new_slug=new_slug, changed=True, reverted=reverted)

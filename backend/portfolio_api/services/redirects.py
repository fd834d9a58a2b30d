from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import NoReturn

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_api.core import metrics
from portfolio_api.core.config import settings
from portfolio_api.core.errors import (
    ChainTooDeepError,
    NotFoundError,
    RedirectCycleError,
    SlugExistsError,
    SlugValidationError,
)
from portfolio_api.models.project import Project
from portfolio_api.models.redirect import SlugRedirect
from portfolio_api.services.slugs import SLUG_PROBLEM_MESSAGES, prepare_slug

logger = logging.getLogger(__name__)


async def get_redirect(session: AsyncSession, old_slug: str) -> SlugRedirect | None:
    result = await session.execute(select(SlugRedirect).where(SlugRedirect.old_slug == old_slug))
    return result.scalar_one_or_none()


async def resolve_redirect(session: AsyncSession, old_slug: str) -> str | None:
    """Single lookup; flattening keeps every stored edge one hop from a live slug."""
    result = await session.execute(select(SlugRedirect.new_slug).where(SlugRedirect.old_slug == old_slug))
    return result.scalar_one_or_none()


async def check_redirect_cycle(
    session: AsyncSession, project_id: uuid.UUID | None, old_slug: str, new_slug: str
) -> bool:
    """Reject a rename ``old_slug -> new_slug`` that would make redirects loop.

    Returns ``True`` when the rename undoes an earlier one: the inverse edge owned
    by the same project is deleted and no new edge is needed. Returns ``False``
    when the rename may proceed normally. Raises ``RedirectCycleError`` (or
    ``ChainTooDeepError`` once the walk passes ``redirect_max_depth``).
    """
    if project_id is not None:
        inverse = await session.execute(
            select(SlugRedirect).where(
                SlugRedirect.project_id == project_id,
                SlugRedirect.old_slug == new_slug,
                SlugRedirect.new_slug == old_slug,
            )
        )
        inverse_edge = inverse.scalar_one_or_none()
        if inverse_edge is not None:
            await session.delete(inverse_edge)
            await session.commit()
            logger.info(
                "redirect_reverted",
                extra={"project_id": str(project_id), "old_slug": new_slug, "new_slug": old_slug},
            )
            metrics.record_slug_reverted()
            return True

    max_depth = settings.redirect_max_depth
    visited: set[str] = set()
    current = new_slug
    hops = 0
    while True:
        if current == old_slug:
            _reject_cycle(project_id, old_slug, new_slug, hops)
        if current in visited:
            _reject_cycle(project_id, old_slug, new_slug, hops)
        visited.add(current)
        next_slug = await resolve_redirect(session, current)
        if next_slug is None:
            return False
        hops += 1
        if hops > max_depth:
            _reject_too_deep(project_id, old_slug, new_slug, hops)
        current = next_slug


def _reject_too_deep(project_id: uuid.UUID | None, old_slug: str, new_slug: str, hops: int) -> NoReturn:
    metrics.record_redirect_cycle_rejected()
    logger.warning(
        "redirect_chain_too_deep",
        extra={"project_id": str(project_id), "old_slug": old_slug, "new_slug": new_slug, "chain_length": hops},
    )
    raise ChainTooDeepError(
        f"Redirect chain from '{new_slug}' exceeds {settings.redirect_max_depth} hops", chain_length=hops
    )


def _reject_cycle(project_id: uuid.UUID | None, old_slug: str, new_slug: str, hops: int) -> NoReturn:
    metrics.record_redirect_cycle_rejected()
    logger.warning(
        "redirect_cycle_rejected",
        extra={"project_id": str(project_id), "old_slug": old_slug, "new_slug": new_slug, "chain_length": hops + 1},
    )
    raise RedirectCycleError(
        f"Renaming '{old_slug}' to '{new_slug}' would create a redirect loop", chain_length=hops + 1
    )


async def flatten_inbound_redirects(session: AsyncSession, old_slug: str, new_slug: str) -> int:
    """Point every edge that targets ``old_slug`` at ``new_slug``, one batch per commit."""
    batch_size = settings.redirect_batch_size
    total = 0
    while True:
        ids = (
            (
                await session.execute(
                    select(SlugRedirect.id).where(SlugRedirect.new_slug == old_slug).limit(batch_size)
                )
            )
            .scalars()
            .all()
        )
        if ids:
            await session.execute(
                update(SlugRedirect)
                .where(SlugRedirect.id.in_(ids))
                .values(new_slug=new_slug)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            total += len(ids)
        if len(ids) < batch_size:
            break
    if total:
        metrics.record_redirects_flattened(total)
        logger.info("redirect_chain_flattened", extra={"count": total, "from": old_slug, "to": new_slug})
    return total


async def update_redirect_chain(
    session: AsyncSession,
    project_id: uuid.UUID | None,
    old_slug: str,
    new_slug: str,
    *,
    note: str | None = None,
) -> SlugRedirect | None:
    """Flatten inbound edges then record ``old_slug -> new_slug``.

    Returns the new edge, or ``None`` when a concurrent writer already inserted
    an edge for ``old_slug``.
    """
    await flatten_inbound_redirects(session, old_slug, new_slug)

    edge = SlugRedirect(project_id=project_id, old_slug=old_slug, new_slug=new_slug, note=note)
    session.add(edge)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        # Only a concurrent edge for the same old_slug is tolerated.
        if await get_redirect(session, old_slug) is None:
            raise
        metrics.record_redirect_duplicate()
        logger.warning(
            "redirect_duplicate_ignored",
            extra={"project_id": str(project_id), "old_slug": old_slug, "new_slug": new_slug},
        )
        return None
    await session.refresh(edge)
    logger.info(
        "redirect_created",
        extra={"project_id": str(project_id), "old_slug": old_slug, "new_slug": new_slug},
    )
    return edge


async def cleanup_redundant_redirects(session: AsyncSession, project_id: uuid.UUID, current_slug: str) -> int:
    """Drop the project's self-referencing edges (``current -> current``) only."""
    result = await session.execute(
        delete(SlugRedirect).where(
            SlugRedirect.project_id == project_id,
            SlugRedirect.old_slug == current_slug,
            SlugRedirect.new_slug == current_slug,
        )
    )
    await session.commit()
    count = result.rowcount or 0
    if count:
        logger.info("redirect_self_references_cleaned", extra={"project_id": str(project_id), "count": count})
    return count


async def ensure_slug_not_redirected(session: AsyncSession, slug: str) -> None:
    """A live slug cannot also be a vacated slug that still redirects elsewhere."""
    edge = await get_redirect(session, slug)
    if edge is None:
        return
    raise SlugExistsError("Slug is reserved by an existing redirect", slug=slug)


@dataclass
class RedirectGroup:
    project_id: uuid.UUID | None
    project_title: str | None
    project_slug: str | None
    redirects: list[SlugRedirect] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.redirects)


async def list_redirects(session: AsyncSession) -> list[SlugRedirect]:
    result = await session.execute(select(SlugRedirect).order_by(SlugRedirect.old_slug))
    return list(result.scalars().all())


async def list_redirects_grouped(session: AsyncSession) -> list[RedirectGroup]:
    result = await session.execute(
        select(SlugRedirect, Project.title, Project.slug)
        .outerjoin(Project, Project.id == SlugRedirect.project_id)
        .order_by(SlugRedirect.created_at.desc(), SlugRedirect.old_slug)
    )
    groups: dict[uuid.UUID | None, RedirectGroup] = {}
    for redirect, title, slug in result.all():
        group = groups.get(redirect.project_id)
        if group is None:
            group = RedirectGroup(project_id=redirect.project_id, project_title=title, project_slug=slug)
            groups[redirect.project_id] = group
        group.redirects.append(redirect)
    return sorted(groups.values(), key=lambda g: g.count, reverse=True)


async def count_redirects(session: AsyncSession) -> int:
    return int((await session.execute(select(func.count()).select_from(SlugRedirect))).scalar_one())


async def delete_redirect(session: AsyncSession, redirect_id: uuid.UUID) -> SlugRedirect:
    redirect = await session.get(SlugRedirect, redirect_id)
    if redirect is None:
        raise NotFoundError("Redirect not found")
    await session.delete(redirect)
    await session.commit()
    logger.info("redirect_deleted", extra={"redirect_id": str(redirect_id), "old_slug": redirect.old_slug})
    return redirect


def _require_slug(raw: str, label: str) -> str:
    candidate, problem = prepare_slug(raw)
    if problem is not None:
        raise SlugValidationError(f"{label}: {SLUG_PROBLEM_MESSAGES[problem]}", problem=problem.value)
    return candidate


async def upsert_manual_redirect(
    session: AsyncSession, old_slug: str, new_slug: str, note: str | None = None
) -> SlugRedirect:
    """Create or retarget an unowned redirect, keeping chains one hop long."""
    source = _require_slug(old_slug, "Old slug")
    target = _require_slug(new_slug, "New slug")
    if source == target:
        raise SlugValidationError("A redirect cannot point at itself", problem="SELF_REDIRECT")

    live = await session.execute(select(Project.id).where(Project.slug == source))
    if live.scalar_one_or_none() is not None:
        raise SlugExistsError("Old slug belongs to a live project", slug=source)

    target = await _chain_end(session, source, target)
    await check_redirect_cycle(session, None, source, target)

    existing = await get_redirect(session, source)
    if existing is None:
        edge = await update_redirect_chain(session, None, source, target, note=note)
        if edge is not None:
            return edge
        existing = await get_redirect(session, source)
        if existing is None:
            raise NotFoundError("Redirect not found")
        return existing

    await flatten_inbound_redirects(session, source, target)
    existing.new_slug = target
    if note is not None:
        existing.note = note
    session.add(existing)
    await session.commit()
    await session.refresh(existing)
    logger.info("redirect_updated", extra={"old_slug": source, "new_slug": target})
    return existing


async def _chain_end(session: AsyncSession, source: str, target: str) -> str:
    # Chains are already flat, so at most one hop is expected here.
    current = target
    for _ in range(settings.redirect_max_depth):
        next_slug = await resolve_redirect(session, current)
        if next_slug is None or next_slug == source:
            return current
        current = next_slug
    _reject_too_deep(None, source, target, settings.redirect_max_depth + 1)


@dataclass
class ChainReport:
    self_loops: list[str] = field(default_factory=list)
    multi_hop: list[tuple[str, str, str]] = field(default_factory=list)
    shadowed: list[str] = field(default_factory=list)
    dangling: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.self_loops or self.multi_hop or self.shadowed)


async def audit_redirects(session: AsyncSession) -> ChainReport:
    """Scan the edge table for invariant violations."""
    report = ChainReport()
    edges = await list_redirects(session)
    by_old = {edge.old_slug: edge.new_slug for edge in edges}
    live = set((await session.execute(select(Project.slug))).scalars().all())
    for edge in edges:
        if edge.old_slug == edge.new_slug:
            report.self_loops.append(edge.old_slug)
            continue
        if edge.new_slug in by_old:
            report.multi_hop.append((edge.old_slug, edge.new_slug, by_old[edge.new_slug]))
        elif edge.new_slug not in live:
            report.dangling.append((edge.old_slug, edge.new_slug))
        if edge.old_slug in live:
            report.shadowed.append(edge.old_slug)
    return report


from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_api.db.session import get_session
from portfolio_api.schemas.redirect import (
    RedirectGroupRead,
    RedirectListResponse,
    RedirectPair,
    RedirectRead,
    RedirectTarget,
    RedirectUpsert,
)
from portfolio_api.services import redirects as redirect_service

router = APIRouter(prefix="/redirects", tags=["redirects"])
admin_router = APIRouter(prefix="/admin/redirects", tags=["redirects"])


@router.get("", response_model=list[RedirectPair])
async def list_redirect_pairs(session: AsyncSession = Depends(get_session)) -> list[RedirectPair]:
    return await redirect_service.list_redirects(session)


@router.get("/{old_slug}", response_model=RedirectTarget)
async def resolve_redirect(old_slug: str, session: AsyncSession = Depends(get_session)) -> RedirectTarget:
    new_slug = await redirect_service.resolve_redirect(session, old_slug)
    if new_slug is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No redirect found")
    return RedirectTarget(new_slug=new_slug)


@admin_router.get("", response_model=RedirectListResponse)
async def admin_list_redirects(session: AsyncSession = Depends(get_session)) -> RedirectListResponse:
    groups = await redirect_service.list_redirects_grouped(session)
    return RedirectListResponse(
        grouped=[RedirectGroupRead.model_validate(group) for group in groups],
        total=sum(group.count for group in groups),
        projects_affected=sum(1 for group in groups if group.project_id is not None),
    )


@admin_router.post("", response_model=RedirectRead)
async def admin_upsert_redirect(payload: RedirectUpsert, session: AsyncSession = Depends(get_session)) -> RedirectRead:
    return await redirect_service.upsert_manual_redirect(session, payload.old_slug, payload.new_slug, note=payload.note)


@admin_router.delete("/{redirect_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_redirect(redirect_id: UUID, session: AsyncSession = Depends(get_session)) -> Response:
    await redirect_service.delete_redirect(session, redirect_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

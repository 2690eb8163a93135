import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.auth.db import User
from src.auth.users import current_user
from src.dependencies import get_link_service
from src.shortener.schemas import LinkCreate, LinkList, LinkResponse
from src.shortener.service import LinkService, to_response

router = APIRouter(
    prefix="/api",
    tags=["urls"]
)


@router.post("/shorten", response_model=LinkResponse, status_code=201)
async def shorten_link(
    link: LinkCreate,
    service: LinkService = Depends(get_link_service),
    user: User = Depends(current_user),
):
    created = await service.create_link(user.id, link)
    return to_response(created)


@router.get("/urls", response_model=LinkList)
async def list_links(
    topic: Optional[str] = None,
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
    service: LinkService = Depends(get_link_service),
    user: User = Depends(current_user),
):
    limit = min(limit, 100)
    rows, total = await service.list_links(user.id, topic=topic, limit=limit, offset=offset)
    return LinkList(urls=[to_response(row) for row in rows], total=total, limit=limit, offset=offset)


@router.delete("/urls/{link_id}")
async def delete_link(
    link_id: uuid.UUID,
    service: LinkService = Depends(get_link_service),
    user: User = Depends(current_user),
):
    await service.delete_link(link_id, user.id)
    return {"success": True, "message": "URL deleted successfully"}


@router.post("/urls/{link_id}/deactivate", response_model=LinkResponse)
async def deactivate_link(
    link_id: uuid.UUID,
    service: LinkService = Depends(get_link_service),
    user: User = Depends(current_user),
):
    link = await service.deactivate_link(link_id, user.id)
    return to_response(link)

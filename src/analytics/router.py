from fastapi import APIRouter, Depends, Path

from src.analytics.service import AnalyticsService
from src.auth.db import User
from src.auth.users import current_user
from src.dependencies import get_analytics_service
from src.shortener.validators import MAX_TOPIC_LENGTH

router = APIRouter(
    prefix="/api/analytics",
    tags=["analytics"]
)


@router.get("/urls/overall")
async def overall_analytics(
    service: AnalyticsService = Depends(get_analytics_service),
    user: User = Depends(current_user),
):
    return await service.overall_analytics(user.id)


@router.get("/topic/{topic}")
async def topic_analytics(
    topic: str = Path(min_length=1, max_length=MAX_TOPIC_LENGTH),
    service: AnalyticsService = Depends(get_analytics_service),
    user: User = Depends(current_user),
):
    return await service.topic_analytics(user.id, topic)


@router.get("/{alias}")
async def link_analytics(
    alias: str,
    service: AnalyticsService = Depends(get_analytics_service),
    user: User = Depends(current_user),
):
    return await service.link_analytics(user.id, alias)

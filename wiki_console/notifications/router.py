from fastapi import APIRouter

from wiki_console.dependencies import APIKey, NotificationCenterDep
from wiki_console.notifications.schemas import Notification

router = APIRouter()


@router.get("/", response_model=list[Notification])
async def drain_notifications(center: NotificationCenterDep, claims: APIKey) -> list[Notification]:
    return center.drain(claims["sub"])

from uuid import UUID

from fastapi import APIRouter, Body, Depends

from app.core.roles import get_current_profile
from app.models.notification import NotificationCreate
from app.services.notification_service import NotificationService

router = APIRouter(tags=["Notifications"])


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("/notifications")
async def list_notifications(
    profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    """
    获取当前用户的通知列表（按时间倒序）
    """
    rows = service.list_for_user(user_id=profile["id"])
    return {"success": True, "data": [n.model_dump(mode="json") for n in rows]}


@router.post("/notifications", status_code=201)
async def create_notification(
    request: NotificationCreate = Body(...),
    _profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    """
    手动发送通知（工作流 fan-out 之外的入口，任意已登录用户可用）
    """
    created = service.create_notification(
        user_id=str(request.user_id),
        message=request.message,
        paper_id=str(request.paper_id) if request.paper_id else None,
    )
    return {"success": True, "data": created.model_dump(mode="json")}


@router.put("/notifications/{id}/read")
async def mark_notification_read(
    id: UUID,
    profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    """
    将通知标记为已读（仅允许更新自己的记录）
    """
    # 中文注释: 不存在或不属于当前用户时统一返回 404
    updated = service.mark_read(notification_id=str(id), user_id=profile["id"])
    return {"success": True, "data": updated.model_dump(mode="json")}

from __future__ import annotations

import logging
from typing import Any, List, Optional

from postgrest.exceptions import APIError

from app.core.exceptions import NotFoundError, PersistenceError
from app.lib.api_client import supabase_admin
from app.models.notification import Notification

logger = logging.getLogger("rpms.notifications")


def _extract_rows(resp: Any) -> list[dict[str, Any]]:
    return getattr(resp, "data", None) or []


class NotificationService:
    """
    通知服务：封装 notifications 表的读写

    中文注释:
    1) 写入使用 supabase_admin（service_role），避免 RLS 导致写入失败。
    2) insert_notification 失败时直接抛异常，由 fan-out 统一吞掉并记录；
       create_notification 是手动入口，失败需要反馈给调用方。
    """

    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    def insert_notification(
        self,
        *,
        user_id: str,
        message: str,
        paper_id: Optional[str] = None,
    ) -> Notification:
        payload = {
            "user_id": user_id,
            "message": message,
            "paper_id": paper_id,
            "is_read": False,
        }
        res = self.client.table("notifications").insert(payload).execute()
        rows = _extract_rows(res)
        if not rows:
            raise PersistenceError("Notification insert returned no row", user_id=user_id)
        return Notification.model_validate(rows[0])

    def create_notification(
        self,
        *,
        user_id: str,
        message: str,
        paper_id: Optional[str] = None,
    ) -> Notification:
        try:
            return self.insert_notification(user_id=user_id, message=message, paper_id=paper_id)
        except PersistenceError:
            raise
        except APIError as e:
            # 中文注释: 外键失败（用户/论文不存在）属于调用方输入问题
            text = str(e).lower()
            code = str(getattr(e, "code", "") or "").lower()
            if "23503" in code or "23503" in text:
                raise NotFoundError("Referenced user or paper not found") from e
            logger.error(f"[Notifications] create failed: {e}")
            raise PersistenceError("Failed to create notification") from e
        except Exception as e:
            logger.error(f"[Notifications] create failed: {e}")
            raise PersistenceError("Failed to create notification") from e

    def list_for_user(self, *, user_id: str) -> List[Notification]:
        try:
            res = (
                self.client.table("notifications")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"[Notifications] list failed: {e}")
            raise PersistenceError("Failed to fetch notifications") from e
        return [Notification.model_validate(row) for row in _extract_rows(res)]

    def mark_read(self, *, notification_id: str, user_id: Optional[str] = None) -> Notification:
        """
        标记已读。传入 user_id 时只允许更新自己的通知（否则视为不存在）。
        """
        try:
            query = self.client.table("notifications").update({"is_read": True}).eq("id", notification_id)
            if user_id:
                query = query.eq("user_id", user_id)
            res = query.execute()
        except Exception as e:
            logger.error(f"[Notifications] mark_read failed: {e}")
            raise PersistenceError("Failed to mark notification as read") from e
        rows = _extract_rows(res)
        if not rows:
            raise NotFoundError("Notification not found", notification_id=notification_id)
        return Notification.model_validate(rows[0])

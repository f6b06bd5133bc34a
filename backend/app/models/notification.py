from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Notification(BaseModel):
    """
    站内通知实体

    中文注释:
    - 除 is_read 外不可修改，也不会过期。
    """

    id: UUID
    user_id: UUID
    message: str
    paper_id: Optional[UUID] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationCreate(BaseModel):
    """
    手动创建通知（任意已登录用户可用的旁路入口，不经过 fan-out）
    """

    user_id: UUID
    message: str = Field(..., min_length=1, max_length=2000)
    paper_id: Optional[UUID] = None

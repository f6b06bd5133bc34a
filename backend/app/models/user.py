from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    AUTHOR = "author"
    EDITOR = "editor"
    ADMIN = "admin"
    COORDINATOR = "coordinator"


@dataclass(frozen=True)
class Actor:
    """
    发起工作流操作的用户（id + 唯一角色），由访问控制层提供，核心逻辑信任该输入。
    """

    id: str
    role: str

    @staticmethod
    def from_profile(profile: dict) -> "Actor":
        return Actor(id=str(profile.get("id") or ""), role=str(profile.get("role") or "").strip().lower())


class UserContact(BaseModel):
    """
    users 表的公开字段（不含密码哈希）
    """

    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    role: UserRole

    model_config = ConfigDict(from_attributes=True)

import logging
from typing import Callable, Iterable

from fastapi import Depends, HTTPException

from app.core.auth_utils import get_current_user
from app.core.role_matrix import AUTHOR_ROLE, KNOWN_ROLES, normalize_roles
from app.lib.api_client import supabase_admin

logger = logging.getLogger("rpms.auth")


def _normalize_single_role(raw: object) -> str:
    role = str(raw or "").strip().lower()
    return role if role in KNOWN_ROLES else AUTHOR_ROLE


async def get_current_profile(current_user: dict = Depends(get_current_user)) -> dict:
    """
    获取当前用户的 profile（含唯一角色）。

    中文注释:
    1) 每个用户注册时确定唯一角色（author/editor/admin/coordinator），此后不可变更。
    2) 未找到 users 记录或角色非法时按 author 处理（最小权限）。
    3) 返回结构同时提供 role 与 roles=[role]，便于复用 role_matrix 的集合判断。
    """
    user_id = str(current_user["id"])
    email = current_user.get("email")

    try:
        resp = (
            supabase_admin.table("users")
            .select("id,email,name,role")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        existing = (getattr(resp, "data", None) or [None])[0]
    except Exception as e:
        logger.warning(f"[Auth] failed to load user profile {user_id}: {e}")
        existing = None

    if not existing:
        return {"id": user_id, "email": email, "name": None, "role": AUTHOR_ROLE, "roles": [AUTHOR_ROLE]}

    role = _normalize_single_role(existing.get("role"))
    return {
        "id": user_id,
        "email": existing.get("email") or email,
        "name": existing.get("name"),
        "role": role,
        "roles": [role],
    }


def require_any_role(required: Iterable[str]) -> Callable[[dict], dict]:
    required_set = normalize_roles(required)

    async def _dep(profile: dict = Depends(get_current_profile)) -> dict:
        roles = normalize_roles(profile.get("roles") or [profile.get("role")])
        if not roles.intersection(required_set):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return profile

    return _dep

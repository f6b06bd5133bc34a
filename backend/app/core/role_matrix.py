from __future__ import annotations

from typing import Iterable

# 中文注释：
# - 这里集中定义“角色 -> 动作”权限矩阵，避免权限逻辑散落在各路由。
# - 每个用户只有一个角色（注册后不可变），这里仍接受集合输入以兼容 profile.roles。

AUTHOR_ROLE = "author"
EDITOR_ROLE = "editor"
ADMIN_ROLE = "admin"
COORDINATOR_ROLE = "coordinator"

KNOWN_ROLES = frozenset({AUTHOR_ROLE, EDITOR_ROLE, ADMIN_ROLE, COORDINATOR_ROLE})

ROLE_ACTIONS: dict[str, set[str]] = {
    AUTHOR_ROLE: {
        "paper:create",
        "paper:update",
        "paper:delete",
        "notification:create",
    },
    EDITOR_ROLE: {
        "paper:update",
        "paper:recommend",
        "paper:update_details",
        "review:create",
        "notification:create",
    },
    COORDINATOR_ROLE: {
        "paper:update_details",
        "notification:create",
    },
    ADMIN_ROLE: {
        "*",
    },
}


def normalize_roles(roles: Iterable[str] | None) -> set[str]:
    """
    将输入角色归一化（小写、去空）。
    """
    out: set[str] = set()
    for raw in roles or []:
        role = str(raw or "").strip().lower()
        if not role:
            continue
        out.add(role)
    return out


def can_perform_action(*, action: str, roles: Iterable[str] | None) -> bool:
    """
    判定角色集合是否可执行某动作。

    中文注释：
    - admin 拥有全局通配权限；
    - 其余角色按 ROLE_ACTIONS 显式授权。
    """
    normalized = normalize_roles(roles)
    if ADMIN_ROLE in normalized:
        return True

    for role in normalized:
        allowed = ROLE_ACTIONS.get(role) or set()
        if "*" in allowed or action in allowed:
            return True
    return False


def roles_for_action(action: str) -> set[str]:
    """
    反查可执行某动作的角色集合（用于路由层 require_any_role）。
    """
    return {
        role
        for role, actions in ROLE_ACTIONS.items()
        if "*" in actions or action in actions
    }

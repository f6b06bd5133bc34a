from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from app.core.exceptions import RoleNotPermittedError, TransitionNotAllowedError, ValidationError
from app.core.role_matrix import (
    ADMIN_ROLE,
    AUTHOR_ROLE,
    COORDINATOR_ROLE,
    EDITOR_ROLE,
    can_perform_action,
)
from app.models.paper import PaperStatus, normalize_status

logger = logging.getLogger("rpms.workflow")


class PaperOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    RECOMMEND = "recommend"
    UPDATE_DETAILS = "update_details"
    DELETE = "delete"
    REVIEW = "review"


OPERATION_ACTIONS: dict[PaperOperation, str] = {
    PaperOperation.CREATE: "paper:create",
    PaperOperation.UPDATE: "paper:update",
    PaperOperation.RECOMMEND: "paper:recommend",
    PaperOperation.UPDATE_DETAILS: "paper:update_details",
    PaperOperation.DELETE: "paper:delete",
    PaperOperation.REVIEW: "review:create",
}

# 目标状态固定的操作（调用方不能指定其它状态）
FIXED_TARGETS: dict[PaperOperation, str] = {
    PaperOperation.CREATE: PaperStatus.SUBMITTED.value,
    PaperOperation.RECOMMEND: PaperStatus.RECOMMENDED_FOR_PUBLICATION.value,
}

# 加固模式下各角色可写入的目标状态
ROLE_STATUS_TARGETS: dict[str, frozenset[str]] = {
    AUTHOR_ROLE: frozenset({PaperStatus.DRAFT.value, PaperStatus.SUBMITTED.value}),
    EDITOR_ROLE: frozenset(
        {
            PaperStatus.UNDER_REVIEW.value,
            PaperStatus.APPROVED.value,
            PaperStatus.REJECTED.value,
            PaperStatus.RECOMMENDED_FOR_PUBLICATION.value,
        }
    ),
    ADMIN_ROLE: frozenset(PaperStatus.values()),
    COORDINATOR_ROLE: frozenset(),
}


@dataclass(frozen=True)
class TransitionCheck:
    """
    一次状态校验的结果。

    guarded=False 表示兼容模式放行了一个不在状态图/角色表内的变更。
    """

    operation: PaperOperation
    role: str
    from_status: str | None
    to_status: str | None
    guarded: bool = True

    @property
    def changes_status(self) -> bool:
        return self.to_status is not None and self.to_status != self.from_status


def can_transition(current: str | None, target: str) -> bool:
    return target in PaperStatus.allowed_next(current or "")


def validate_transition(current: str | None, target: str) -> None:
    """
    严格校验状态图，非法迁移抛 TransitionNotAllowedError。
    """
    if normalize_status(target) is None:
        raise ValidationError(f"Invalid status: {target}")
    if not can_transition(current, target):
        raise TransitionNotAllowedError(
            current,
            target,
            detail=(
                f"Invalid transition: {current} -> {target}. "
                f"Allowed: {sorted(PaperStatus.allowed_next(current or ''))}"
            ),
        )


def role_can_target(role: str, target: str) -> bool:
    return target in ROLE_STATUS_TARGETS.get(role, frozenset())


class PaperStateMachine:
    """
    论文状态机：按 (角色, 操作, 当前状态, 目标状态) 判定是否允许执行。

    中文注释:
    - 角色动作矩阵始终校验（防御性检查，即使路由层已做 require_any_role）。
    - strict=False（默认）与旧系统一致：通用更新可写入任意合法状态，recommend 不校验前置状态；
      这类“未受状态图保护”的变更会被放行并记录 warning。
    - strict=True 时状态图与角色目标状态表都强制执行。
    """

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

    def check(
        self,
        *,
        role: str,
        operation: PaperOperation,
        current: str | None = None,
        requested: str | None = None,
    ) -> TransitionCheck:
        action = OPERATION_ACTIONS[operation]
        if not can_perform_action(action=action, roles=[role]):
            raise RoleNotPermittedError(f"Role '{role}' may not perform {action}", role=role, action=action)

        target = self._resolve_target(operation, requested)
        if target is None:
            return TransitionCheck(operation=operation, role=role, from_status=current, to_status=None)

        if operation == PaperOperation.CREATE or target == current:
            return TransitionCheck(operation=operation, role=role, from_status=current, to_status=target)

        role_ok = operation in FIXED_TARGETS or role_can_target(role, target)

        if self.strict:
            if not role_ok:
                raise RoleNotPermittedError(
                    f"Role '{role}' may not move a paper to '{target}'", role=role, to_status=target
                )
            validate_transition(current, target)
            return TransitionCheck(operation=operation, role=role, from_status=current, to_status=target)

        guarded = can_transition(current, target) and role_ok
        if not guarded:
            logger.warning(
                f"[Workflow] unguarded transition permitted for compatibility: "
                f"{current} -> {target} (role={role}, operation={operation.value})"
            )
        return TransitionCheck(
            operation=operation, role=role, from_status=current, to_status=target, guarded=guarded
        )

    @staticmethod
    def _resolve_target(operation: PaperOperation, requested: str | None) -> str | None:
        fixed = FIXED_TARGETS.get(operation)
        if fixed is not None:
            if requested is not None and normalize_status(requested) != fixed:
                raise ValidationError(
                    f"Operation '{operation.value}' always targets '{fixed}'", requested=requested
                )
            return fixed

        if operation != PaperOperation.UPDATE:
            return None

        target = normalize_status(requested)
        if target is None:
            raise ValidationError(f"Invalid status: {requested}", requested=requested)
        return target

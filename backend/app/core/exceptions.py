from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """
    论文工作流的领域异常基类。

    中文注释:
    - 服务层只抛出领域异常，HTTP 状态码映射由中间件统一处理。
    - status_code/code 随异常携带，传输层无需了解具体业务分支。
    """

    status_code = 500
    code = "workflow_error"

    def __init__(self, detail: str, **context: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def to_payload(self) -> dict[str, Any]:
        return {"detail": self.detail, "type": "workflow_error", "code": self.code}


class ValidationError(WorkflowError):
    status_code = 422
    code = "validation_error"


class TransitionNotAllowedError(ValidationError):
    status_code = 409
    code = "transition_not_allowed"

    def __init__(self, from_status: str | None, to_status: str, *, detail: str | None = None) -> None:
        super().__init__(
            detail or f"Invalid transition: {from_status} -> {to_status}",
            from_status=from_status,
            to_status=to_status,
        )
        self.from_status = from_status
        self.to_status = to_status


class RoleNotPermittedError(ValidationError):
    status_code = 403
    code = "role_not_permitted"


class NotFoundError(WorkflowError):
    status_code = 404
    code = "not_found"


class PersistenceError(WorkflowError):
    status_code = 500
    code = "persistence_error"


class PublicationIdCollisionError(PersistenceError):
    """唯一出版编号冲突：调用方应重新分配编号后重试，而不是直接失败。"""

    status_code = 409
    code = "publication_id_collision"

    def __init__(self, publication_id: str | None, *, detail: str | None = None) -> None:
        super().__init__(
            detail or f"Publication ID already assigned: {publication_id}",
            publication_id=publication_id,
        )
        self.publication_id = publication_id


class NotificationDeliveryError(WorkflowError):
    """通知投递失败：只记录日志，永远不向调用方暴露。"""

    code = "notification_delivery_error"

    def __init__(self, recipient_id: str, event: str) -> None:
        super().__init__(
            f"Failed to deliver '{event}' notification to {recipient_id}",
            recipient_id=recipient_id,
            event=event,
        )
        self.recipient_id = recipient_id
        self.event = event

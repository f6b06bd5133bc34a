from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

import sentry_sdk

from app.core.exceptions import NotificationDeliveryError
from app.core.role_matrix import ADMIN_ROLE, COORDINATOR_ROLE, EDITOR_ROLE
from app.models.paper import DECISION_STATUSES, Paper
from app.models.review import Review
from app.models.user import Actor

logger = logging.getLogger("rpms.notifications")


class WorkflowEvent(str, Enum):
    PAPER_CREATED = "paper_created"
    PAPER_RECOMMENDED = "paper_recommended"
    PAPER_DETAILS_UPDATED = "paper_details_updated"
    PAPER_DECIDED = "paper_decided"
    REVIEW_SUBMITTED = "review_submitted"


@dataclass(frozen=True)
class NotificationDraft:
    recipient_id: str
    message: str
    paper_id: Optional[str] = None


class RecipientResolver(Protocol):
    """按能力解析收件人，fan-out 不直接访问存储。"""

    def list_user_ids_by_role(self, role: str) -> list[str]: ...

    def get_reviewer_of_record(self, paper_id: str) -> str | None: ...


class NotificationSink(Protocol):
    def insert_notification(self, *, user_id: str, message: str, paper_id: Optional[str] = None) -> Any: ...


# 角色广播规则：事件 -> [(角色, 消息模板)]
ROLE_BROADCASTS: dict[WorkflowEvent, list[tuple[str, str]]] = {
    WorkflowEvent.PAPER_CREATED: [
        (EDITOR_ROLE, "New paper submitted: {title}"),
    ],
    WorkflowEvent.PAPER_RECOMMENDED: [
        (ADMIN_ROLE, "Paper '{title}' has been recommended for publication by an editor"),
    ],
    WorkflowEvent.PAPER_DETAILS_UPDATED: [
        (ADMIN_ROLE, "Paper details updated for '{title}' by Editor"),
        (COORDINATOR_ROLE, "Paper details updated for '{title}' by Editor. Please validate."),
    ],
}

DECISION_MESSAGE = "Admin decision: Paper '{title}' has been {status}"
REVIEW_MESSAGE = "Your paper '{title}' has been reviewed. Rating: {rating}/5, Recommendation: {recommendation}"


class NotificationFanout:
    """
    工作流事件 -> 收件人集合 + 消息内容，并负责投递。

    中文注释:
    - on_event 只计算“要发给谁、发什么”，不写库，便于单测。
    - dispatch 在状态变更提交之后执行（BackgroundTasks），任何失败只记录日志/上报 Sentry，
      不重试、不回滚、不影响已经返回给调用方的结果。
    """

    def __init__(self, *, resolver: RecipientResolver, sink: NotificationSink) -> None:
        self.resolver = resolver
        self.sink = sink

    def on_event(
        self,
        event: WorkflowEvent,
        paper: Paper,
        actor: Actor | None = None,
        *,
        review: Review | None = None,
    ) -> list[NotificationDraft]:
        paper_id = str(paper.id)

        if event in ROLE_BROADCASTS:
            drafts: list[NotificationDraft] = []
            for role, template in ROLE_BROADCASTS[event]:
                message = template.format(title=paper.title)
                for user_id in self.resolver.list_user_ids_by_role(role):
                    drafts.append(NotificationDraft(recipient_id=user_id, message=message, paper_id=paper_id))
            return drafts

        if event == WorkflowEvent.PAPER_DECIDED:
            status = paper.status.value
            if status not in DECISION_STATUSES:
                return []
            reviewer_id = self.resolver.get_reviewer_of_record(paper_id)
            if not reviewer_id:
                # 没有评审记录：不通知，也不是错误
                return []
            return [
                NotificationDraft(
                    recipient_id=reviewer_id,
                    message=DECISION_MESSAGE.format(title=paper.title, status=status),
                    paper_id=paper_id,
                )
            ]

        if event == WorkflowEvent.REVIEW_SUBMITTED:
            if review is None:
                raise ValueError("review_submitted requires the submitted review")
            return [
                NotificationDraft(
                    recipient_id=str(paper.author_id),
                    message=REVIEW_MESSAGE.format(
                        title=paper.title,
                        rating=review.rating,
                        recommendation=review.recommendation,
                    ),
                    paper_id=paper_id,
                )
            ]

        return []

    def deliver(self, event: WorkflowEvent, drafts: list[NotificationDraft]) -> int:
        delivered = 0
        for draft in drafts:
            try:
                self.sink.insert_notification(
                    user_id=draft.recipient_id,
                    message=draft.message,
                    paper_id=draft.paper_id,
                )
                delivered += 1
            except Exception as exc:
                failure = NotificationDeliveryError(draft.recipient_id, event.value)
                failure.__cause__ = exc
                _report_failure(failure)
        return delivered

    def dispatch(
        self,
        event: WorkflowEvent,
        paper: Paper,
        actor: Actor | None = None,
        *,
        review: Review | None = None,
    ) -> int:
        """
        计算收件人并投递，返回成功条数。永不抛异常。
        """
        try:
            drafts = self.on_event(event, paper, actor, review=review)
        except Exception as exc:
            _report_failure(exc, event=event, paper_id=str(paper.id))
            return 0
        return self.deliver(event, drafts)


def _report_failure(exc: Exception, **context: Any) -> None:
    logger.error(f"[Notifications] fan-out failed (ignored): {exc} {context or ''}".rstrip(), exc_info=exc)
    # Sentry 未初始化时为 no-op
    sentry_sdk.capture_exception(exc)

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks

from app.core.config import WorkflowConfig
from app.core.exceptions import ValidationError
from app.core.publication_id import is_publication_id
from app.models.paper import (
    DECISION_STATUSES,
    DEFAULT_PAPER_TYPE,
    Paper,
    PaperCreate,
    PaperDetailsUpdate,
    PaperUpdate,
    PaperWithAuthor,
)
from app.models.review import Review, ReviewCreate, ReviewWithReviewer
from app.models.user import Actor
from app.services.notification_fanout import NotificationFanout, WorkflowEvent
from app.services.notification_service import NotificationService
from app.services.paper_repository import PaperRepository, SupabasePaperRepository
from app.services.paper_state_machine import PaperOperation, PaperStateMachine
from app.services.publication_id_service import PublicationIdAllocator

logger = logging.getLogger("rpms.workflow")


class PaperWorkflowService:
    """
    论文工作流编排：状态机校验 -> 单行持久化（提交点）-> 出版编号分配（按需）-> 通知 fan-out。

    中文注释:
    - 状态机拒绝时不写库、不发通知。
    - 通知在提交之后调度：有 BackgroundTasks 时在响应返回后执行，否则同步执行；
      两种方式下 fan-out 的失败都只记录日志，不影响返回结果。
    - 同一论文的并发更新不加锁，非编号字段以最后一次写入为准。
    """

    def __init__(
        self,
        *,
        repository: Optional[PaperRepository] = None,
        notifications: Any = None,
        config: Optional[WorkflowConfig] = None,
        state_machine: Optional[PaperStateMachine] = None,
        allocator: Optional[PublicationIdAllocator] = None,
        fanout: Optional[NotificationFanout] = None,
    ) -> None:
        self.config = config or WorkflowConfig.from_env()
        self.repository = repository or SupabasePaperRepository()
        self.notifications = notifications or NotificationService()
        self.state_machine = state_machine or PaperStateMachine(strict=self.config.strict_transitions)
        self.allocator = allocator or PublicationIdAllocator(
            self.repository,
            strategy=self.config.publication_id_strategy,
            max_attempts=self.config.publication_id_max_attempts,
        )
        self.fanout = fanout or NotificationFanout(resolver=self.repository, sink=self.notifications)

    # === 读取 ===

    def get_paper(self, paper_id: str) -> Paper:
        return self.repository.get_paper(paper_id)

    def list_papers(self) -> list[PaperWithAuthor]:
        return self.repository.list_papers()

    def list_reviews(self, paper_id: str | None = None) -> list[ReviewWithReviewer]:
        return self.repository.list_reviews(paper_id)

    # === 状态变更 ===

    def create_paper(
        self,
        actor: Actor,
        request: PaperCreate,
        *,
        background_tasks: BackgroundTasks | None = None,
    ) -> Paper:
        check = self.state_machine.check(role=actor.role, operation=PaperOperation.CREATE)
        paper = self.repository.insert_paper(
            {
                "title": request.title,
                "abstract": request.abstract,
                "content": request.content,
                "file_url": request.file_url,
                "author_id": actor.id,
                "status": check.to_status,
                "type": (request.type or "").strip() or DEFAULT_PAPER_TYPE,
            }
        )
        self._schedule(background_tasks, WorkflowEvent.PAPER_CREATED, paper, actor)
        return paper

    def update_paper(
        self,
        actor: Actor,
        paper_id: str,
        request: PaperUpdate,
        *,
        background_tasks: BackgroundTasks | None = None,
    ) -> Paper:
        current = self.repository.get_paper(paper_id)
        check = self.state_machine.check(
            role=actor.role,
            operation=PaperOperation.UPDATE,
            current=current.status.value,
            requested=request.status.value,
        )
        paper = self.repository.update_paper(
            paper_id,
            {
                "title": request.title,
                "abstract": request.abstract,
                "content": request.content,
                "file_url": request.file_url,
                "status": check.to_status,
            },
        )
        if check.changes_status:
            logger.info(f"[Workflow] paper {paper_id}: {check.from_status} -> {check.to_status} (role={actor.role})")
        # 发布/拒稿决定：通知评审记录中的第一位 reviewer（若有）
        if check.to_status in DECISION_STATUSES:
            self._schedule(background_tasks, WorkflowEvent.PAPER_DECIDED, paper, actor)
        return paper

    def recommend_paper(
        self,
        actor: Actor,
        paper_id: str,
        *,
        background_tasks: BackgroundTasks | None = None,
    ) -> Paper:
        current = self.repository.get_paper(paper_id)
        check = self.state_machine.check(
            role=actor.role,
            operation=PaperOperation.RECOMMEND,
            current=current.status.value,
        )
        paper = self.repository.update_paper(paper_id, {"status": check.to_status})
        logger.info(f"[Workflow] paper {paper_id}: {check.from_status} -> {check.to_status} (role={actor.role})")
        self._schedule(background_tasks, WorkflowEvent.PAPER_RECOMMENDED, paper, actor)
        return paper

    def update_paper_details(
        self,
        actor: Actor,
        paper_id: str,
        request: PaperDetailsUpdate,
        *,
        background_tasks: BackgroundTasks | None = None,
    ) -> Paper:
        self.state_machine.check(role=actor.role, operation=PaperOperation.UPDATE_DETAILS)
        current = self.repository.get_paper(paper_id)

        fields: dict[str, Any] = {
            "institution_code": request.institution_code,
            "publication_isced_band": request.publication_isced_band,
            "publication_title_amharic": request.publication_title_amharic,
            "publication_date": request.publication_date.isoformat() if request.publication_date else None,
            "publication_type": request.publication_type,
            "journal_type": request.journal_type,
            "journal_name": request.journal_name,
            "indigenous_knowledge": request.indigenous_knowledge,
        }

        requested_id = request.publication_id.strip()
        if requested_id and not is_publication_id(requested_id):
            raise ValidationError(f"Invalid publication ID: {requested_id}", publication_id=requested_id)

        # 中文注释: 已有编号的论文不重新分配，避免同一论文“吃掉”多个编号
        publication_id = requested_id or (current.publication_id or "")
        if publication_id:
            paper = self.repository.update_paper(paper_id, {**fields, "publication_id": publication_id})
        else:
            paper = self.allocator.assign(
                lambda allocated: self.repository.update_paper(
                    paper_id, {**fields, "publication_id": allocated}
                )
            )

        self._schedule(background_tasks, WorkflowEvent.PAPER_DETAILS_UPDATED, paper, actor)
        return paper

    def delete_paper(self, actor: Actor, paper_id: str) -> None:
        self.state_machine.check(role=actor.role, operation=PaperOperation.DELETE)
        self.repository.delete_paper(paper_id)

    # === 评审 ===

    def create_review(
        self,
        actor: Actor,
        request: ReviewCreate,
        *,
        background_tasks: BackgroundTasks | None = None,
    ) -> Review:
        self.state_machine.check(role=actor.role, operation=PaperOperation.REVIEW)
        paper = self.repository.get_paper(str(request.paper_id))
        review = self.repository.insert_review(
            {
                "paper_id": str(request.paper_id),
                "reviewer_id": actor.id,
                "rating": request.rating,
                "comments": request.comments,
                "recommendation": request.recommendation,
            }
        )
        self._schedule(background_tasks, WorkflowEvent.REVIEW_SUBMITTED, paper, actor, review=review)
        return review

    def _schedule(
        self,
        background_tasks: BackgroundTasks | None,
        event: WorkflowEvent,
        paper: Paper,
        actor: Actor,
        *,
        review: Review | None = None,
    ) -> None:
        if background_tasks is not None:
            background_tasks.add_task(self.fanout.dispatch, event, paper, actor, review=review)
            return
        self.fanout.dispatch(event, paper, actor, review=review)

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class PaperStatus(str, Enum):
    """
    论文生命周期状态枚举（持久化兼容面：只允许这 7 个字符串）。

    中文注释:
    - draft 为初始状态；published / rejected 为终态（不定义任何出边）。
    - 作者直接创建论文时跳过 draft，直接进入 submitted。
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECOMMENDED_FOR_PUBLICATION = "recommended_for_publication"
    PUBLISHED = "published"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        """
        显式状态图（加固模式使用）。

        - draft -> submitted
        - submitted -> under_review / recommended_for_publication / rejected
        - under_review -> approved / recommended_for_publication / rejected
        - approved -> recommended_for_publication / published
        - recommended_for_publication -> published / rejected
        - published / rejected: 终态
        """
        c = (current or "").strip().lower()
        return set(_STATUS_GRAPH.get(c, frozenset()))


_STATUS_GRAPH: dict[str, frozenset[str]] = {
    PaperStatus.DRAFT.value: frozenset({PaperStatus.SUBMITTED.value}),
    PaperStatus.SUBMITTED.value: frozenset(
        {
            PaperStatus.UNDER_REVIEW.value,
            PaperStatus.RECOMMENDED_FOR_PUBLICATION.value,
            PaperStatus.REJECTED.value,
        }
    ),
    PaperStatus.UNDER_REVIEW.value: frozenset(
        {
            PaperStatus.APPROVED.value,
            PaperStatus.RECOMMENDED_FOR_PUBLICATION.value,
            PaperStatus.REJECTED.value,
        }
    ),
    PaperStatus.APPROVED.value: frozenset(
        {
            PaperStatus.RECOMMENDED_FOR_PUBLICATION.value,
            PaperStatus.PUBLISHED.value,
        }
    ),
    PaperStatus.RECOMMENDED_FOR_PUBLICATION.value: frozenset(
        {
            PaperStatus.PUBLISHED.value,
            PaperStatus.REJECTED.value,
        }
    ),
    PaperStatus.PUBLISHED.value: frozenset(),
    PaperStatus.REJECTED.value: frozenset(),
}

DECISION_STATUSES = frozenset({PaperStatus.PUBLISHED.value, PaperStatus.REJECTED.value})

DEFAULT_PAPER_TYPE = "research"


def normalize_status(value: str | None) -> str | None:
    if value is None:
        return None
    v = str(value).strip().lower()
    if not v:
        return None
    try:
        return PaperStatus(v).value
    except ValueError:
        return None


class Paper(BaseModel):
    """
    论文实体（papers 表一行）

    中文注释: 出版元数据块仅由 editor 通过 details 接口写入，创建时均为空。
    """

    id: UUID
    title: str
    abstract: str = ""
    content: str = ""
    file_url: str = ""
    author_id: UUID
    status: PaperStatus
    type: str = DEFAULT_PAPER_TYPE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Editor metadata
    institution_code: Optional[str] = None
    publication_id: Optional[str] = None
    publication_isced_band: Optional[str] = None
    publication_title_amharic: Optional[str] = None
    publication_date: Optional[datetime] = None
    publication_type: Optional[str] = None
    journal_type: Optional[str] = None
    journal_name: Optional[str] = None
    indigenous_knowledge: bool = False

    model_config = ConfigDict(from_attributes=True)

    def is_draft(self) -> bool:
        return self.status == PaperStatus.DRAFT

    def is_submitted(self) -> bool:
        return self.status == PaperStatus.SUBMITTED

    def is_under_review(self) -> bool:
        return self.status == PaperStatus.UNDER_REVIEW

    def is_approved(self) -> bool:
        return self.status == PaperStatus.APPROVED

    def is_rejected(self) -> bool:
        return self.status == PaperStatus.REJECTED

    def is_published(self) -> bool:
        return self.status == PaperStatus.PUBLISHED

    def can_edit(self) -> bool:
        return self.is_draft()

    def can_submit(self) -> bool:
        return self.is_draft()

    def can_review(self) -> bool:
        return self.is_submitted() or self.is_under_review()


class PaperWithAuthor(Paper):
    author_name: Optional[str] = None
    author_email: Optional[str] = None


class PaperCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    abstract: str = ""
    content: str = ""
    file_url: str = ""
    type: Optional[str] = None


class PaperUpdate(BaseModel):
    """
    通用更新：覆盖基础字段 + status（必须是 7 个合法状态之一）。
    """

    title: str = Field(..., min_length=1, max_length=500)
    abstract: str = ""
    content: str = ""
    file_url: str = ""
    status: PaperStatus


class PaperDetailsUpdate(BaseModel):
    """
    出版元数据更新（editor / coordinator / admin）。

    publication_id 为空时由后端分配。
    """

    institution_code: str = ""
    publication_id: str = ""
    publication_isced_band: str = ""
    publication_title_amharic: str = ""
    publication_date: Optional[datetime] = None
    publication_type: str = ""
    journal_type: str = ""
    journal_name: str = ""
    indigenous_knowledge: bool = False

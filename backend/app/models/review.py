from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Review(BaseModel):
    """评审记录（创建后不可修改）"""

    id: UUID
    paper_id: UUID
    reviewer_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comments: str = ""
    recommendation: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReviewWithReviewer(Review):
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[str] = None
    paper_title: Optional[str] = None


class ReviewCreate(BaseModel):
    # 中文注释: 同一 reviewer 对同一论文可重复提交（未加唯一约束，待产品确认）
    paper_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comments: str = ""
    recommendation: str = Field("", max_length=255)

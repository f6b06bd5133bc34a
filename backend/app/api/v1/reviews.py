from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query

from app.api.v1.papers import get_workflow_service
from app.core.role_matrix import roles_for_action
from app.core.roles import get_current_profile, require_any_role
from app.models.review import ReviewCreate
from app.models.user import Actor
from app.services.paper_workflow_service import PaperWorkflowService

router = APIRouter(prefix="/reviews", tags=["Reviews"])

review_roles = require_any_role(roles_for_action("review:create"))


@router.get("")
async def list_reviews(
    paper_id: Optional[str] = Query(default=None),
    _profile: dict = Depends(get_current_profile),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    """
    评审列表（可按 paper_id 过滤），附带评审人与论文标题
    """
    reviews = service.list_reviews(paper_id)
    return {"success": True, "data": [r.model_dump(mode="json") for r in reviews]}


@router.post("", status_code=201)
async def create_review(
    background_tasks: BackgroundTasks,
    request: ReviewCreate = Body(...),
    profile: dict = Depends(review_roles),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    """
    提交评审；成功后通知论文作者（评分与建议原样写入消息）
    """
    review = service.create_review(Actor.from_profile(profile), request, background_tasks=background_tasks)
    return {"success": True, "data": review.model_dump(mode="json")}

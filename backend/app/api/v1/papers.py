from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends

from app.core.role_matrix import roles_for_action
from app.core.roles import get_current_profile, require_any_role
from app.models.paper import PaperCreate, PaperDetailsUpdate, PaperUpdate
from app.models.user import Actor
from app.services.paper_workflow_service import PaperWorkflowService

router = APIRouter(prefix="/papers", tags=["Papers"])

# 路由层角色门禁直接由 role_matrix 推导
create_roles = require_any_role(roles_for_action("paper:create"))
update_roles = require_any_role(roles_for_action("paper:update"))
delete_roles = require_any_role(roles_for_action("paper:delete"))
recommend_roles = require_any_role(roles_for_action("paper:recommend"))
details_roles = require_any_role(roles_for_action("paper:update_details"))


def get_workflow_service() -> PaperWorkflowService:
    # 中文注释: 测试中通过 app.dependency_overrides 注入内存实现
    return PaperWorkflowService()


@router.get("")
async def list_papers(
    _profile: dict = Depends(get_current_profile),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    """
    论文列表（含作者姓名/邮箱），按创建时间倒序
    """
    papers = service.list_papers()
    return {"success": True, "data": [p.model_dump(mode="json") for p in papers]}


@router.get("/{paper_id}")
async def get_paper(
    paper_id: UUID,
    _profile: dict = Depends(get_current_profile),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    paper = service.get_paper(str(paper_id))
    return {"success": True, "data": paper.model_dump(mode="json")}


@router.post("", status_code=201)
async def create_paper(
    background_tasks: BackgroundTasks,
    request: PaperCreate = Body(...),
    profile: dict = Depends(create_roles),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    """
    作者投稿：状态固定为 submitted，提交后通知所有 editor
    """
    paper = service.create_paper(Actor.from_profile(profile), request, background_tasks=background_tasks)
    return {"success": True, "data": paper.model_dump(mode="json")}


@router.put("/{paper_id}")
async def update_paper(
    paper_id: UUID,
    background_tasks: BackgroundTasks,
    request: PaperUpdate = Body(...),
    profile: dict = Depends(update_roles),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    """
    更新论文内容与状态

    中文注释: 发布/拒稿决定会通知该论文的评审人（若有评审记录）。
    """
    paper = service.update_paper(
        Actor.from_profile(profile), str(paper_id), request, background_tasks=background_tasks
    )
    return {"success": True, "data": paper.model_dump(mode="json")}


@router.post("/{paper_id}/recommend")
async def recommend_paper(
    paper_id: UUID,
    background_tasks: BackgroundTasks,
    profile: dict = Depends(recommend_roles),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    paper = service.recommend_paper(Actor.from_profile(profile), str(paper_id), background_tasks=background_tasks)
    return {"success": True, "data": paper.model_dump(mode="json")}


@router.put("/{paper_id}/details")
async def update_paper_details(
    paper_id: UUID,
    background_tasks: BackgroundTasks,
    request: PaperDetailsUpdate = Body(...),
    profile: dict = Depends(details_roles),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    """
    出版元数据更新；未提供出版编号时自动分配 SMU_P 编号
    """
    paper = service.update_paper_details(
        Actor.from_profile(profile), str(paper_id), request, background_tasks=background_tasks
    )
    return {"success": True, "data": paper.model_dump(mode="json")}


@router.delete("/{paper_id}")
async def delete_paper(
    paper_id: UUID,
    profile: dict = Depends(delete_roles),
    service: PaperWorkflowService = Depends(get_workflow_service),
):
    service.delete_paper(Actor.from_profile(profile), str(paper_id))
    return {"success": True, "message": "Paper deleted successfully"}

from fastapi import APIRouter, Depends

from app.core.exceptions import NotFoundError
from app.core.role_matrix import ADMIN_ROLE
from app.core.roles import get_current_profile
from app.models.user import UserContact
from app.services.paper_repository import PaperRepository, SupabasePaperRepository

router = APIRouter(prefix="/users", tags=["Users"])


def get_paper_repository() -> PaperRepository:
    return SupabasePaperRepository()


@router.get("/admin")
async def get_admin_contact(
    _profile: dict = Depends(get_current_profile),
    repository: PaperRepository = Depends(get_paper_repository),
):
    """
    获取一位管理员的联系方式（editor 需要联系 admin 时使用）
    """
    row = repository.get_first_user_by_role(ADMIN_ROLE)
    if not row:
        raise NotFoundError("Admin user not found")
    contact = UserContact.model_validate(row)
    return {"success": True, "data": contact.model_dump(mode="json")}

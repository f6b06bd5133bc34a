from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from postgrest.exceptions import APIError
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import NotFoundError, PersistenceError, PublicationIdCollisionError
from app.lib.api_client import supabase_admin
from app.models.paper import Paper, PaperWithAuthor
from app.models.review import Review, ReviewWithReviewer

logger = logging.getLogger("rpms.workflow")

_UNIQUE_VIOLATION = "23505"


class PaperRepository(Protocol):
    """
    工作流核心依赖的持久化契约（papers / reviews / users 的窄接口）。
    """

    def get_paper(self, paper_id: str) -> Paper: ...

    def list_papers(self) -> list[PaperWithAuthor]: ...

    def insert_paper(self, fields: dict[str, Any]) -> Paper: ...

    def update_paper(self, paper_id: str, fields: dict[str, Any]) -> Paper: ...

    def delete_paper(self, paper_id: str) -> None: ...

    def list_user_ids_by_role(self, role: str) -> list[str]: ...

    def get_first_user_by_role(self, role: str) -> dict[str, Any] | None: ...

    def get_reviewer_of_record(self, paper_id: str) -> str | None: ...

    def get_max_publication_id(self, prefix: str) -> str | None: ...

    def reserve_publication_number(self, prefix: str, seed: int) -> int: ...

    def insert_review(self, fields: dict[str, Any]) -> Review: ...

    def list_reviews(self, paper_id: str | None = None) -> list[ReviewWithReviewer]: ...


def _extract_rows(resp: Any) -> list[dict[str, Any]]:
    return getattr(resp, "data", None) or []


def _is_publication_id_collision(error: APIError) -> bool:
    code = str(getattr(error, "code", "") or "")
    # 不同版本的 APIError 字段不完全一致，拼接可用字段后再判断
    parts = [str(error), getattr(error, "message", None), getattr(error, "details", None)]
    text = " ".join(str(p) for p in parts if p).lower()
    if code != _UNIQUE_VIOLATION and _UNIQUE_VIOLATION not in text:
        return False
    return "publication_id" in text


def _scalar(data: Any) -> Any:
    # PostgREST RPC 返回标量时 data 直接是值；部分版本会包一层 list/dict
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = next(iter(data.values()), None)
    return data


class SupabasePaperRepository:
    """
    基于 Supabase PostgREST 的论文持久化实现。

    中文注释:
    1) 统一使用 service_role（supabase_admin）读写，避免 RLS 影响服务端写入。
    2) 所有存储异常在这里转换为领域异常：唯一出版编号冲突 -> PublicationIdCollisionError，
       其它 -> PersistenceError；上层不直接接触 APIError。
    """

    def __init__(self, *, client: Any = None) -> None:
        self.client = client or supabase_admin

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _paper(self, row: dict[str, Any]) -> Paper:
        try:
            return Paper.model_validate(row)
        except PydanticValidationError as e:
            raise PersistenceError(f"Stored paper row is invalid: {e}") from e

    def get_paper(self, paper_id: str) -> Paper:
        try:
            resp = self.client.table("papers").select("*").eq("id", paper_id).limit(1).execute()
        except Exception as e:
            logger.error(f"[Workflow] get_paper failed: {e}")
            raise PersistenceError("Failed to fetch paper") from e
        rows = _extract_rows(resp)
        if not rows:
            raise NotFoundError("Paper not found", paper_id=paper_id)
        return self._paper(rows[0])

    def list_papers(self) -> list[PaperWithAuthor]:
        try:
            resp = (
                self.client.table("papers")
                .select("*, author:users(name, email)")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"[Workflow] list_papers failed: {e}")
            raise PersistenceError("Failed to fetch papers") from e

        out: list[PaperWithAuthor] = []
        for row in _extract_rows(resp):
            author = row.pop("author", None) or {}
            row["author_name"] = author.get("name")
            row["author_email"] = author.get("email")
            try:
                out.append(PaperWithAuthor.model_validate(row))
            except PydanticValidationError as e:
                raise PersistenceError(f"Stored paper row is invalid: {e}") from e
        return out

    def insert_paper(self, fields: dict[str, Any]) -> Paper:
        try:
            resp = self.client.table("papers").insert(fields).execute()
        except Exception as e:
            logger.error(f"[Workflow] insert_paper failed: {e}")
            raise PersistenceError("Failed to create paper") from e
        rows = _extract_rows(resp)
        if not rows:
            raise PersistenceError("Failed to create paper")
        return self._paper(rows[0])

    def update_paper(self, paper_id: str, fields: dict[str, Any]) -> Paper:
        payload = {**fields, "updated_at": self._now()}
        try:
            resp = self.client.table("papers").update(payload).eq("id", paper_id).execute()
        except APIError as e:
            if _is_publication_id_collision(e):
                raise PublicationIdCollisionError(fields.get("publication_id")) from e
            logger.error(f"[Workflow] update_paper failed: {e}")
            raise PersistenceError("Failed to update paper") from e
        except Exception as e:
            logger.error(f"[Workflow] update_paper failed: {e}")
            raise PersistenceError("Failed to update paper") from e
        rows = _extract_rows(resp)
        if not rows:
            raise NotFoundError("Paper not found", paper_id=paper_id)
        return self._paper(rows[0])

    def delete_paper(self, paper_id: str) -> None:
        try:
            resp = self.client.table("papers").delete().eq("id", paper_id).execute()
        except Exception as e:
            logger.error(f"[Workflow] delete_paper failed: {e}")
            raise PersistenceError("Failed to delete paper") from e
        if not _extract_rows(resp):
            raise NotFoundError("Paper not found", paper_id=paper_id)

    def list_user_ids_by_role(self, role: str) -> list[str]:
        resp = self.client.table("users").select("id").eq("role", role).execute()
        return [str(row["id"]) for row in _extract_rows(resp) if row.get("id")]

    def get_first_user_by_role(self, role: str) -> dict[str, Any] | None:
        try:
            resp = (
                self.client.table("users")
                .select("id, email, name, role")
                .eq("role", role)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise PersistenceError("Failed to fetch users") from e
        rows = _extract_rows(resp)
        return rows[0] if rows else None

    def get_reviewer_of_record(self, paper_id: str) -> str | None:
        # 中文注释: 取第一条评审记录（不排序），与历史行为保持一致
        resp = (
            self.client.table("reviews")
            .select("reviewer_id")
            .eq("paper_id", paper_id)
            .limit(1)
            .execute()
        )
        rows = _extract_rows(resp)
        if not rows or not rows[0].get("reviewer_id"):
            return None
        return str(rows[0]["reviewer_id"])

    def get_max_publication_id(self, prefix: str) -> str | None:
        """
        legacy 策略使用：按字典序取当前最大编号。

        中文注释: 查询失败时视为“从未分配过”（返回 None，上层回退到种子值），
        重复编号由 publication_id 唯一约束 + 分配重试兜底。
        """
        try:
            resp = (
                self.client.table("papers")
                .select("publication_id")
                .like("publication_id", f"{prefix}%")
                .order("publication_id", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(
                f"[PublicationID] max lookup failed, falling back to seed (duplicate risk): {e}"
            )
            return None
        rows = _extract_rows(resp)
        if not rows:
            return None
        return rows[0].get("publication_id") or None

    def reserve_publication_number(self, prefix: str, seed: int) -> int:
        """
        通过数据库函数原子地预留下一个编号（计数器行 FOR UPDATE + 自增）。
        """
        try:
            resp = self.client.rpc(
                "allocate_publication_number", {"p_prefix": prefix, "p_seed": seed}
            ).execute()
            value = _scalar(getattr(resp, "data", None))
            return int(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError("Publication number sequence returned no value") from e
        except Exception as e:
            logger.error(f"[PublicationID] sequence rpc failed: {e}")
            raise PersistenceError("Failed to allocate publication number") from e

    def insert_review(self, fields: dict[str, Any]) -> Review:
        try:
            resp = self.client.table("reviews").insert(fields).execute()
        except Exception as e:
            logger.error(f"[Workflow] insert_review failed: {e}")
            raise PersistenceError("Failed to create review") from e
        rows = _extract_rows(resp)
        if not rows:
            raise PersistenceError("Failed to create review")
        return Review.model_validate(rows[0])

    def list_reviews(self, paper_id: str | None = None) -> list[ReviewWithReviewer]:
        try:
            query = self.client.table("reviews").select(
                "*, reviewer:users(name, email), paper:papers(title)"
            )
            if paper_id:
                query = query.eq("paper_id", paper_id)
            resp = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.error(f"[Workflow] list_reviews failed: {e}")
            raise PersistenceError("Failed to fetch reviews") from e

        out: list[ReviewWithReviewer] = []
        for row in _extract_rows(resp):
            reviewer = row.pop("reviewer", None) or {}
            paper = row.pop("paper", None) or {}
            row["reviewer_name"] = reviewer.get("name")
            row["reviewer_email"] = reviewer.get("email")
            row["paper_title"] = paper.get("title")
            out.append(ReviewWithReviewer.model_validate(row))
        return out

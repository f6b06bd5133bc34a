import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from main import app

from app.core.config import WorkflowConfig
from app.models.user import Actor
from app.services.paper_workflow_service import PaperWorkflowService
from tests.utils.memory_repository import InMemoryWorkflowStore

# === 全局测试配置 ===
# 中文注释:
# 1. 显式使用 pytest_asyncio.fixture 解决 STRICT 模式下的生成器问题。
# 2. JWT 令牌生成用于测试认证（与 get_current_user 使用同一个 secret / audience）。
# 3. 工作流相关测试默认使用内存存储，不访问 Supabase。


@pytest_asyncio.fixture
async def client() -> AsyncGenerator:
    """
    提供一个模拟的异步测试客户端
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


def generate_test_token(user_id: str = "00000000-0000-0000-0000-000000000000", *, expires_in: timedelta = timedelta(hours=1)):
    """
    生成用于测试的JWT令牌
    """
    secret = os.environ.get("SUPABASE_JWT_SECRET", "mock-secret-replace-later")
    now = datetime.now(timezone.utc)

    payload = {
        "sub": user_id,
        "email": "test@example.com",
        "aud": "authenticated",
        "exp": now + expires_in,
        "iat": now,
        "role": "authenticated",
    }

    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_token():
    return generate_test_token()


@pytest.fixture
def expired_token():
    """
    提供过期的认证令牌用于测试
    """
    return generate_test_token(expires_in=timedelta(hours=-1))


@pytest.fixture
def invalid_token():
    return "invalid.jwt.token"


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def make_service(store: InMemoryWorkflowStore):
    """
    构造使用内存存储的工作流服务；strict / strategy 可按用例覆盖。
    """

    def _make(*, strict: bool = False, strategy: str = "sequence", max_attempts: int = 3) -> PaperWorkflowService:
        config = WorkflowConfig(
            strict_transitions=strict,
            publication_id_strategy=strategy,
            publication_id_max_attempts=max_attempts,
        )
        return PaperWorkflowService(repository=store, notifications=store, config=config)

    return _make


@pytest.fixture
def actors(store: InMemoryWorkflowStore) -> dict[str, Actor]:
    """
    每个角色各一位用户（另含第二位 editor，用于验证广播）。
    """
    return {
        "author": Actor(id=store.add_user("author", name="Author A"), role="author"),
        "editor": Actor(id=store.add_user("editor", name="Editor One"), role="editor"),
        "editor2": Actor(id=store.add_user("editor", name="Editor Two"), role="editor"),
        "admin": Actor(id=store.add_user("admin", name="Admin"), role="admin"),
        "coordinator": Actor(id=store.add_user("coordinator", name="Coordinator"), role="coordinator"),
    }

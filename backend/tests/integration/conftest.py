import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator
from uuid import uuid4

import jwt
import pytest
from supabase import Client, create_client


@dataclass(frozen=True)
class TestUser:
    """
    集成测试用的用户封装（users 表记录 + 后端可解码的 JWT）

    中文注释:
    - 这里不创建 Supabase Auth 用户，只写 public.users 并生成 HS256 token。
    - 角色由 get_current_profile 从 users.role 读取。
    """

    id: str
    email: str
    role: str
    token: str


@pytest.fixture(scope="session")
def supabase_admin_client() -> Client:
    url = (os.environ.get("SUPABASE_URL") or "").strip()
    key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or os.environ.get("SUPABASE_KEY") or "").strip()
    if not url or not key:
        pytest.skip("SUPABASE_URL and (SUPABASE_SERVICE_ROLE_KEY or SUPABASE_KEY) must be set for integration tests")

    client = create_client(url, key)
    try:
        # 中文注释：session 级探测，网络不可达或未迁移时统一 skip
        client.table("papers").select("id").limit(1).execute()
    except Exception as e:
        pytest.skip(f"Supabase is not reachable in integration tests: {e}")
    return client


@pytest.fixture(scope="session")
def jwt_secret() -> str:
    return os.environ.get("SUPABASE_JWT_SECRET", "mock-secret-replace-later")


@pytest.fixture
def make_test_user(supabase_admin_client: Client, jwt_secret: str) -> Iterator[Callable[[str], TestUser]]:
    created: list[str] = []

    def _make(role: str) -> TestUser:
        user_id = str(uuid4())
        email = f"test_{role}_{user_id[:8]}@example.com"
        supabase_admin_client.table("users").insert(
            {"id": user_id, "email": email, "name": f"Test {role}", "role": role}
        ).execute()
        created.append(user_id)

        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "aud": "authenticated",
            "exp": now + timedelta(hours=1),
            "iat": now,
            "role": "authenticated",
        }
        return TestUser(id=user_id, email=email, role=role, token=jwt.encode(payload, jwt_secret, algorithm="HS256"))

    yield _make

    # papers / reviews / notifications 通过外键级联删除
    for user_id in created:
        supabase_admin_client.table("users").delete().eq("id", user_id).execute()

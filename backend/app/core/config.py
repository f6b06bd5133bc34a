import os
from dataclasses import dataclass
from typing import Optional


PUBLICATION_ID_STRATEGIES = {"sequence", "legacy"}


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int) -> int:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """
    Application environment config.
    """
    env: str  # 'development', 'staging', 'production'
    supabase_url: str
    supabase_key: str

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()

        return AppConfig(
            env=env,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
        )


# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class WorkflowConfig:
    """
    论文工作流（状态机 + 出版编号分配）配置

    中文注释:
    1) strict_transitions=False 时与旧系统行为一致：通用更新接口接受 7 个状态中的任意一个，
       不校验来源状态；recommend 在任意状态下都可执行。
    2) strict_transitions=True 时启用显式状态图 + 角色目标状态表（加固模式）。
    3) publication_id_strategy:
       - sequence: 通过数据库计数器行原子自增（推荐，解决并发重复编号）
       - legacy: 读取当前最大值 +1，依赖唯一约束 + 冲突重试
    """

    strict_transitions: bool
    publication_id_strategy: str
    publication_id_max_attempts: int

    @staticmethod
    def from_env() -> "WorkflowConfig":
        strategy = (os.environ.get("PUBLICATION_ID_STRATEGY") or "sequence").strip().lower()
        if strategy not in PUBLICATION_ID_STRATEGIES:
            strategy = "sequence"

        max_attempts = _env_int("PUBLICATION_ID_MAX_ATTEMPTS", 3)
        if max_attempts < 1:
            max_attempts = 1

        return WorkflowConfig(
            strict_transitions=_env_bool("PAPER_WORKFLOW_STRICT_TRANSITIONS", False),
            publication_id_strategy=strategy,
            publication_id_max_attempts=max_attempts,
        )


@dataclass(frozen=True)
class SentryConfig:
    """
    Sentry 配置（可选）

    中文注释:
    - 未配置 DSN 或显式关闭时不启用；启动流程不得因 Sentry 失败而中断。
    """

    enabled: bool
    dsn: Optional[str]
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip() or None
        environment = (
            os.environ.get("SENTRY_ENVIRONMENT") or os.environ.get("APP_ENV") or "development"
        ).strip()
        rate = _env_float("SENTRY_TRACES_SAMPLE_RATE", 0.0)
        if rate < 0 or rate > 1:
            rate = 0.0

        return SentryConfig(
            enabled=_env_bool("SENTRY_ENABLED", dsn is not None),
            dsn=dsn,
            environment=environment,
            traces_sample_rate=rate,
        )


def get_jwt_secret() -> str:
    """
    Bearer token 校验密钥（HS256）。

    中文注释: 本地/测试环境未设置时使用占位值，与测试用例保持一致。
    """

    return (os.environ.get("SUPABASE_JWT_SECRET") or "mock-secret-replace-later").strip()

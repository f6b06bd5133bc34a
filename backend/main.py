import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# 在应用启动前加载环境变量
load_dotenv()

logger = logging.getLogger("rpms.http")

_SENTRY_ENABLED = False
try:
    from app.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        logger.info("[sentry] enabled")
except Exception as e:
    # 中文注释: Sentry 任何异常不得阻塞启动
    logger.warning(f"[sentry] init failed (ignored): {e}")

from app.api.v1 import notifications, papers, reviews, users
from app.api.v1.endpoints import system
from app.core.exceptions import WorkflowError
from app.core.middleware import ExceptionHandlerMiddleware, workflow_error_handler

app = FastAPI(
    title="RPMS API",
    description="Research paper management: submission, review and publication workflow",
    version="1.0.0",
)


def _parse_frontend_origins() -> list[str]:
    """
    解析允许跨域的前端 Origins。

    中文注释:
    - 本地默认: http://localhost:3000
    - 生产/预发: 通过 FRONTEND_ORIGIN 或 FRONTEND_ORIGINS 注入（逗号分隔）
    """
    origins: list[str] = []

    single = (os.environ.get("FRONTEND_ORIGIN") or "").strip()
    if single:
        origins.append(single.rstrip("/"))

    many = (os.environ.get("FRONTEND_ORIGINS") or "").strip()
    if many:
        for part in many.split(","):
            o = (part or "").strip().rstrip("/")
            if o:
                origins.append(o)

    if not origins:
        origins = ["http://localhost:3000"]

    # 去重保持顺序
    deduped: list[str] = []
    seen: set[str] = set()
    for o in origins:
        if o not in seen:
            seen.add(o)
            deduped.append(o)
    return deduped


# === 中间件配置 ===
# 1. 跨域资源共享 (CORS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_parse_frontend_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 统一异常处理
app.add_middleware(ExceptionHandlerMiddleware)
app.add_exception_handler(WorkflowError, workflow_error_handler)

# === 路由注册 ===
app.include_router(papers.router, prefix="/api/v1")
app.include_router(reviews.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(system.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "RPMS API is running", "docs": "/docs"}

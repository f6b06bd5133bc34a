import time
import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.exceptions import WorkflowError

# === 结构化日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("rpms.http")


def _workflow_error_response(exc: WorkflowError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """
    领域异常 -> HTTP 响应

    中文注释: 通过 app.add_exception_handler 注册，路由层无需逐个 try/except。
    """
    if exc.status_code >= 500:
        logger.error(f"[Workflow] {request.method} {request.url.path} failed: {exc.detail}")
    return _workflow_error_response(exc)


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    统一异常捕获中间件
    所有请求记录耗时日志；未处理异常统一返回 500，不泄露内部细节。
    """
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.info(f"Method: {request.method} Path: {request.url.path} Status: {response.status_code} Time: {process_time:.4f}s")
            return response
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "type": "http_exception"}
            )
        except WorkflowError as exc:
            return _workflow_error_response(exc)
        except Exception as e:
            logger.error(f"Unhandled Exception: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error, please contact the administrator", "type": "server_error"}
            )

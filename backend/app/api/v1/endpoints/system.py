from fastapi import APIRouter

from app.core.config import WorkflowConfig, app_config

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    """
    健康检查（不访问数据库）
    """
    workflow = WorkflowConfig.from_env()
    return {
        "status": "ok",
        "env": app_config.env,
        "workflow": {
            "strict_transitions": workflow.strict_transitions,
            "publication_id_strategy": workflow.publication_id_strategy,
        },
    }

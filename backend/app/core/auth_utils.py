import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import get_jwt_secret
from app.lib.api_client import supabase

# === Auth 核心配置 ===
# 中文注释:
# 1. token 的签发不在本服务范围内，这里只负责校验并取出用户身份。
# 2. 我们使用 HTTPBearer 作为验证头。
ALGORITHM = "HS256"
logger = logging.getLogger("rpms.auth")

security = HTTPBearer()


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """
    解码并验证 Bearer Token
    返回 {"id", "email"}
    """
    token = credentials.credentials
    try:
        # 中文注释:
        # 1. HS256 token 使用本地密钥校验，减少外部请求。
        # 2. 其它算法的 token 走 Supabase Auth API 获取用户。
        header = jwt.get_unverified_header(token)
        if header.get("alg") == ALGORITHM:
            payload = jwt.decode(token, get_jwt_secret(), algorithms=[ALGORITHM], audience="authenticated")
            user_id = payload.get("sub")
            if user_id is None:
                raise HTTPException(status_code=401, detail="Invalid token payload")
            return {"id": str(user_id), "email": payload.get("email")}

        try:
            response = supabase.auth.get_user(token)
            user = response.user if response else None
        except Exception as e:
            # 中文注释: Supabase 配置缺失/网络异常统一视为鉴权失败，不返回 500
            logger.warning(f"[Auth] token fallback verification failed: {e}")
            raise HTTPException(status_code=401, detail="Token invalid or expired")

        if not user:
            raise HTTPException(status_code=401, detail="Invalid token payload")
        return {"id": str(user.id), "email": user.email}
    except JWTError as e:
        logger.info(f"[Auth] JWT verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Token invalid or expired")

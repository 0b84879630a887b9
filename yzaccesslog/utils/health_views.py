import re

from fastapi import APIRouter
from fastapi.responses import JSONResponse

HEALTH_PATH = '/health'
# 探活请求很频繁，ACCESS_LOG_IGNORE_HEALTH 打开时不写访问日志
HEALTH_IGNORE_PATTERN = '^%s$' % re.escape(HEALTH_PATH)

router = APIRouter()


@router.get(HEALTH_PATH, include_in_schema=False)
async def health():
    """用于服务健康检测"""
    return JSONResponse(content="OK")

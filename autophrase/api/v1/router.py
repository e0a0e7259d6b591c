# 路由汇总
from fastapi import APIRouter

from autophrase.api.v1.endpoints import autophrase

api_router = APIRouter()

# 挂载短语合并模块 (访问地址: /api/v1/autophrase/...)
api_router.include_router(autophrase.router, prefix="/autophrase", tags=["短语合并模块"])

"""
API路由模块
"""

from fastapi import APIRouter
from .campaign_routes import router as campaign_router
from .milestone_routes import router as milestone_router
from .investment_routes import router as investment_router

# 创建主路由器
api_router = APIRouter()

# 注册各个功能模块的路由
api_router.include_router(campaign_router, prefix="/campaigns", tags=["众筹活动"])
api_router.include_router(milestone_router, prefix="/milestones", tags=["里程碑投票"])
api_router.include_router(investment_router, prefix="/investments", tags=["投资管理"])

#!/usr/bin/env python3
"""
FundFlow 众筹平台 - 后端主入口
"""

import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fundflow.core.config import settings
from fundflow.core.utils import format_timestamp_with_timezone, utcnow
from fundflow.api import api_router
from fundflow.core.database import init_db
from fundflow.services.status_scheduler import StatusScheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger("fundflow")

app = FastAPI(
    title=settings.APP_NAME,
    description="FundFlow 众筹平台后端API：众筹活动、投资与里程碑投票",
    version=settings.VERSION
)

# CORS设置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(api_router, prefix="/api")

status_scheduler = StatusScheduler()


def error_body(status_code: int, message: str, details=None) -> dict:
    """统一的错误响应格式"""
    error = {"code": status_code}
    if details is not None:
        error["details"] = details
    return {
        "success": False,
        "message": message,
        "error": error,
        "timestamp": format_timestamp_with_timezone(utcnow())
    }


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, str(exc.detail)))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=error_body(400, "请求参数校验失败", jsonable_encoder(exc.errors()))
    )


@app.on_event("startup")
async def startup_event():
    """应用启动时的初始化"""
    logger.info("启动 FundFlow 后端服务...")
    await init_db()

    if settings.STATUS_SWEEP_ENABLED:
        status_scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    await status_scheduler.stop()


@app.get("/")
async def root():
    """根路径健康检查"""
    return {"message": "FundFlow 后端运行中", "status": "healthy"}

@app.get("/health")
async def health_check():
    """健康检查端点"""
    return {"status": "healthy", "service": "fundflow-backend", "version": settings.VERSION}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )

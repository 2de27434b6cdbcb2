"""
服务层异常到HTTP错误的映射
"""

import logging
from fastapi import HTTPException
from fundflow.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


def service_error(e: Exception, action: str) -> HTTPException:
    """把服务层抛出的异常转换为HTTPException"""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    logger.exception("%s失败", action)
    return HTTPException(status_code=500, detail=f"{action}失败: {str(e)}")

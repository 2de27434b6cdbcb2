"""
通用响应模式
"""

from pydantic import BaseModel, Field
from typing import Generic, List, Optional, TypeVar
from fundflow.core.utils import utcnow, format_timestamp_with_timezone, total_pages

T = TypeVar("T")

# 钱包地址长度限制（STX / Hedera 地址）
WALLET_MIN_LENGTH = 34
WALLET_MAX_LENGTH = 50


def _now_str() -> str:
    return format_timestamp_with_timezone(utcnow())


class Pagination(BaseModel):
    """分页信息"""
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class ApiResponse(BaseModel, Generic[T]):
    """统一的成功响应"""
    success: bool = True
    message: str = ""
    data: Optional[T] = None
    timestamp: str = Field(default_factory=_now_str)


class PaginatedResponse(BaseModel, Generic[T]):
    """带分页的成功响应"""
    success: bool = True
    message: str = ""
    data: List[T] = Field(default_factory=list)
    pagination: Pagination
    timestamp: str = Field(default_factory=_now_str)

    @classmethod
    def build(cls, items: List[T], total: int, page: int, limit: int, message: str = ""):
        return cls(
            message=message,
            data=items,
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages(total, limit),
                total_items=total,
                items_per_page=limit
            )
        )

"""
工具函数模块
"""

import math
from typing import Optional
from datetime import datetime, timezone


def utcnow() -> datetime:
    """当前UTC时间（不带时区信息，与数据库中保存的格式一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """把带时区的时间转换为不带时区的UTC时间"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_timestamp_with_timezone(timestamp: Optional[datetime]) -> str:
    """格式化时间戳，确保包含UTC时区标识符"""
    if not timestamp:
        return ""
    # 确保发送给前端的时间戳包含'Z'后缀，表示这是UTC时间
    return timestamp.isoformat() + 'Z'


def normalize_address(address: str) -> str:
    """钱包地址统一使用小写保存和比较"""
    return address.strip().lower()


def total_pages(total_items: int, limit: int) -> int:
    """计算分页总页数"""
    return math.ceil(total_items / limit) if limit > 0 else 0

"""
应用配置模块
"""

from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """应用设置"""

    # 基础设置
    APP_NAME: str = "FundFlow"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # 服务器设置
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]  # 前端开发服务器

    # 数据库设置
    DATABASE_URL: str = "sqlite:///./fundflow.db"

    # 投资设置
    PLATFORM_FEE_PERCENT: int = 250  # 平台手续费（基点，250 = 2.5%）

    # 里程碑投票设置
    DEFAULT_VOTING_DURATION_DAYS: int = 7
    DEFAULT_APPROVAL_PERCENTAGE: float = 50.0

    # 模拟区块链确认
    BLOCKCHAIN_CONFIRMATION_DELAY: float = 2.0  # 秒

    # 状态定时扫描
    STATUS_SWEEP_ENABLED: bool = True
    STATUS_SWEEP_INTERVAL: int = 300  # 秒

    class Config:
        env_file = ".env"
        case_sensitive = True

# 全局设置实例
settings = Settings()

# 业务逻辑服务包
from .blockchain_service import BlockchainService
from .investment_service import InvestmentService
from .campaign_service import CampaignService
from .milestone_service import MilestoneService
from .status_scheduler import StatusScheduler

__all__ = ["BlockchainService", "InvestmentService", "CampaignService", "MilestoneService", "StatusScheduler"]

"""
投资相关的数据模式
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List, Literal
from datetime import datetime
from fundflow.schemas.common import WALLET_MIN_LENGTH, WALLET_MAX_LENGTH

InvestmentStatusValue = Literal["pending", "confirmed", "failed", "refunded"]
TrendTimeframe = Literal["daily", "weekly", "monthly"]

class InvestmentCreate(BaseModel):
    """记录投资的请求模式"""
    investor_address: str = Field(..., min_length=WALLET_MIN_LENGTH, max_length=WALLET_MAX_LENGTH)
    amount: float = Field(..., gt=0, description="投资总额（含平台手续费）")
    transaction_id: Optional[str] = Field(default=None, max_length=100, description="链上交易ID，为空时由模拟确认生成")
    block_height: Optional[int] = Field(default=None, ge=0)
    source: Literal["web", "mobile", "api"] = "web"

class InvestmentStatusUpdate(BaseModel):
    """管理员修改投资状态"""
    status: InvestmentStatusValue
    confirmations: Optional[int] = Field(default=None, ge=0)

class PayoutCreate(BaseModel):
    """发放投资回报"""
    amount: float = Field(..., gt=0)
    payout_type: Literal["milestone", "dividend", "exit"]
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    milestone_id: Optional[int] = None

class InvestmentVoteInfo(BaseModel):
    milestone_id: int
    vote: str
    transaction_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_serializer('timestamp')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return dt.isoformat() + 'Z'

    class Config:
        from_attributes = True

class PayoutInfo(BaseModel):
    amount: float
    transaction_id: str
    milestone_id: Optional[int] = None
    payout_type: str
    timestamp: Optional[datetime] = None

    @field_serializer('timestamp')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return dt.isoformat() + 'Z'

    class Config:
        from_attributes = True

class CampaignBrief(BaseModel):
    """投资组合中展示的活动信息"""
    id: int
    title: str
    description: str
    status: str
    target_amount: float
    raised_amount: float
    deadline: datetime

    @field_serializer('deadline')
    def serialize_dt(self, dt: datetime) -> str:
        return dt.isoformat() + 'Z'

    class Config:
        from_attributes = True

class InvestmentResponse(BaseModel):
    """投资响应模式"""
    id: int
    campaign_id: int
    investor_address: str
    creator_address: str
    amount: float
    net_amount: float
    platform_fee: float
    transaction_id: str
    block_height: int
    timestamp: datetime
    status: str
    confirmations: int
    voting_power: float
    votes: List[InvestmentVoteInfo] = []
    expected_returns: float
    actual_returns: float
    roi_percentage: float
    payouts: List[PayoutInfo] = []
    source: str

    @field_serializer('timestamp')
    def serialize_dt(self, dt: datetime) -> str:
        return dt.isoformat() + 'Z'

    class Config:
        from_attributes = True

class PortfolioItem(InvestmentResponse):
    """投资组合条目"""
    campaign: CampaignBrief

class PortfolioStats(BaseModel):
    """投资者组合统计"""
    total_invested: float = 0.0
    total_returns: float = 0.0
    total_payouts: float = 0.0
    investment_count: int = 0
    average_investment: float = 0.0
    roi_percentage: float = 0.0

class PlatformInvestmentStats(BaseModel):
    """平台整体投资统计（只统计已确认的投资）"""
    total_investments: int = 0
    total_investors: int = 0
    total_amount: float = 0.0
    total_net_amount: float = 0.0
    average_investment: float = 0.0
    platform_fees: float = 0.0

class InvestmentTrendPoint(BaseModel):
    """某个时间段内的投资汇总"""
    period: str
    investment_count: int
    total_amount: float
    total_net_amount: float

class TopInvestor(BaseModel):
    investor_address: str
    total_invested: float
    investment_count: int
    campaign_count: int

class CategoryDistribution(BaseModel):
    """按活动分类的投资分布"""
    category: str
    investment_count: int
    total_amount: float
    percentage: float

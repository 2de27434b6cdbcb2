"""
众筹活动相关的数据模式
"""

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from typing import Optional, List, Literal
from datetime import datetime
from fundflow.core.utils import to_naive_utc
from fundflow.schemas.common import WALLET_MIN_LENGTH, WALLET_MAX_LENGTH
from fundflow.schemas.milestone_schemas import MilestoneSummary

CampaignStage = Literal["idea", "mvp", "early-revenue", "growth", "scale"]
CampaignStatusValue = Literal["active", "completed", "cancelled", "failed"]
SortField = Literal["created_at", "raised_amount", "deadline", "views"]

class CampaignCreate(BaseModel):
    """创建众筹活动的请求模式"""
    chain_id: int = Field(..., ge=0, description="链上活动ID")
    creator_address: str = Field(..., min_length=WALLET_MIN_LENGTH, max_length=WALLET_MAX_LENGTH)
    contract_address: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=500)
    long_description: Optional[str] = Field(default=None, max_length=5000)
    target_amount: float = Field(..., gt=0, description="募资目标")
    deadline: datetime = Field(..., description="募资截止时间")
    category: str = Field(..., min_length=1, max_length=100)
    industry: str = Field(..., min_length=1, max_length=100)
    stage: CampaignStage
    tags: List[str] = Field(default_factory=list)
    minimum_investment: float = Field(default=0.0, ge=0)
    maximum_investment: Optional[float] = Field(default=None, gt=0)

    @field_validator("deadline")
    @classmethod
    def normalize_deadline(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, value: List[str]) -> List[str]:
        return [tag.strip() for tag in value if tag.strip()]

    @model_validator(mode="after")
    def check_investment_limits(self):
        if self.maximum_investment is not None and self.maximum_investment < self.minimum_investment:
            raise ValueError("最大投资额不能小于最小投资额")
        return self

class CampaignUpdate(BaseModel):
    """更新众筹活动的请求模式"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    long_description: Optional[str] = Field(default=None, max_length=5000)
    deadline: Optional[datetime] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    industry: Optional[str] = Field(default=None, min_length=1, max_length=100)
    stage: Optional[CampaignStage] = None
    tags: Optional[List[str]] = None
    minimum_investment: Optional[float] = Field(default=None, ge=0)
    maximum_investment: Optional[float] = Field(default=None, gt=0)
    featured: Optional[bool] = None
    verified: Optional[bool] = None
    status: Optional[CampaignStatusValue] = None

    @field_validator("deadline")
    @classmethod
    def normalize_deadline(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)

class LikeRequest(BaseModel):
    """点赞/取消点赞"""
    liked: bool = True

class CampaignResponse(BaseModel):
    """众筹活动响应模式"""
    id: int
    chain_id: int
    creator_address: str
    contract_address: str
    title: str
    description: str
    long_description: Optional[str] = None
    target_amount: float
    raised_amount: float
    funding_progress: float
    deadline: datetime
    status: str
    current_milestone: int
    investor_count: int
    milestones: List[MilestoneSummary] = Field(default_factory=list, validation_alias="milestone_summaries")
    category: str
    industry: str
    stage: str
    tags: List[str] = []
    minimum_investment: float
    maximum_investment: Optional[float] = None
    views: int
    likes: int
    shares: int
    featured: bool
    verified: bool
    launched_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_serializer('deadline', 'launched_at', 'completed_at', 'created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return dt.isoformat() + 'Z'

    class Config:
        from_attributes = True

class IndustryCount(BaseModel):
    name: str
    count: int

class CampaignStats(BaseModel):
    """平台众筹统计"""
    total_campaigns: int
    active_campaigns: int
    completed_campaigns: int
    total_raised: float
    total_investors: int
    average_campaign_size: float
    success_rate: float
    top_industries: List[IndustryCount]

class StatusSweepResult(BaseModel):
    """状态扫描结果"""
    campaigns_updated: int
    milestones_resolved: int

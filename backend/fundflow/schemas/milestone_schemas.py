"""
里程碑相关的数据模式
"""

from pydantic import BaseModel, Field, field_serializer, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from fundflow.core.utils import to_naive_utc
from fundflow.schemas.common import WALLET_MIN_LENGTH, WALLET_MAX_LENGTH

class MilestoneCreate(BaseModel):
    """创建里程碑的请求模式"""
    title: str = Field(..., min_length=1, max_length=200, description="里程碑标题")
    description: str = Field(..., min_length=1, max_length=2000, description="里程碑描述")
    target_amount: float = Field(..., ge=0, description="本阶段需要释放的资金")
    deliverables: List[str] = Field(default_factory=list, description="交付物列表")
    expected_completion_date: datetime = Field(..., description="预计完成时间")
    voting_duration_days: Optional[int] = Field(default=None, ge=1, le=365, description="投票持续天数")
    required_approval_percentage: Optional[float] = Field(default=None, ge=0, le=100, description="通过所需赞成比例")
    minimum_voting_power: float = Field(default=0.0, ge=0, description="法定投票权")

    @field_validator("expected_completion_date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("deliverables")
    @classmethod
    def check_deliverables(cls, value: List[str]) -> List[str]:
        for item in value:
            if len(item) > 500:
                raise ValueError("单个交付物描述不能超过500个字符")
        return value

class EvidenceItem(BaseModel):
    """证明材料"""
    type: Literal["document", "image", "video", "link"]
    url: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    uploaded_at: Optional[str] = None

class MilestoneSubmit(BaseModel):
    """提交里程碑进入投票"""
    evidence: List[EvidenceItem] = Field(default_factory=list)
    submission_notes: Optional[str] = Field(default=None, max_length=2000)

class VoteCreate(BaseModel):
    """投票请求"""
    investor_address: str = Field(..., min_length=WALLET_MIN_LENGTH, max_length=WALLET_MAX_LENGTH)
    vote: Literal["for", "against"]
    transaction_id: Optional[str] = Field(default=None, max_length=100)

class FundReleaseRequest(BaseModel):
    """释放资金请求"""
    amount: Optional[float] = Field(default=None, gt=0, description="释放金额，默认为里程碑目标金额")
    transaction_id: Optional[str] = Field(default=None, max_length=100)

class MilestoneVoteInfo(BaseModel):
    """投票记录"""
    investor_address: str
    investment_amount: float
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

class MilestoneSummary(BaseModel):
    """众筹活动中的里程碑摘要"""
    id: int
    milestone_id: int
    title: str
    target_amount: float
    status: str
    is_completed: bool
    votes_for: int
    votes_against: int
    voting_deadline: datetime

    @field_serializer('voting_deadline')
    def serialize_dt(self, dt: datetime) -> str:
        return dt.isoformat() + 'Z'

class MilestoneResponse(BaseModel):
    """里程碑响应模式"""
    id: int
    campaign_id: int
    milestone_index: int
    title: str
    description: str
    target_amount: float
    deliverables: List[str] = []
    start_date: datetime
    expected_completion_date: datetime
    actual_completion_date: Optional[datetime] = None
    voting_deadline: datetime
    status: str
    is_completed: bool
    evidence: List[dict] = []
    submission_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    votes: List[MilestoneVoteInfo] = []
    votes_for: int
    votes_against: int
    total_voting_power: float
    voting_power_for: float
    voting_power_against: float
    approval_percentage: float
    voting_progress: int
    funds_released: bool
    released_amount: float
    release_transaction_id: Optional[str] = None
    released_at: Optional[datetime] = None
    required_approval_percentage: float
    minimum_voting_power: float
    voting_duration_days: int

    @field_serializer('start_date', 'expected_completion_date', 'actual_completion_date',
                      'voting_deadline', 'submitted_at', 'released_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return dt.isoformat() + 'Z'

    class Config:
        from_attributes = True

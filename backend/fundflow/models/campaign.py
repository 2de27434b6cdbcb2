"""
众筹活动数据模型
"""

import math
from datetime import datetime
from typing import List, Optional
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Float, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from fundflow.core.database import Base
from fundflow.core.utils import utcnow

TERMINAL_STATUSES = ("completed", "cancelled", "failed")

# 计入募资总额的投资状态
COUNTED_INVESTMENT_STATUSES = ("pending", "confirmed")


class Campaign(Base):
    """众筹活动表"""
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)

    # 链上信息
    chain_id = Column(Integer, nullable=False, index=True)
    creator_address = Column(String(100), nullable=False, index=True)
    contract_address = Column(String(100), nullable=False)

    # 活动详情
    title = Column(String(200), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    long_description = Column(Text, nullable=True)
    target_amount = Column(Float, nullable=False)
    raised_amount = Column(Float, default=0.0)
    deadline = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(20), default="active", index=True)  # active, completed, cancelled, failed

    # 里程碑与投资统计
    current_milestone = Column(Integer, default=0)
    investor_count = Column(Integer, default=0)

    # 分类信息
    category = Column(String(100), nullable=False, index=True)
    industry = Column(String(100), nullable=False, index=True)
    stage = Column(String(20), nullable=False, index=True)  # idea, mvp, early-revenue, growth, scale
    tags = Column(JSON, default=list)

    # 投资限额
    minimum_investment = Column(Float, default=0.0)
    maximum_investment = Column(Float, nullable=True)

    # 平台数据
    views = Column(Integer, default=0)
    likes = Column(Integer, default=0)
    shares = Column(Integer, default=0)
    featured = Column(Boolean, default=False, index=True)
    verified = Column(Boolean, default=False, index=True)

    version = Column(Integer, nullable=False, default=1)
    launched_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # 关系
    milestones = relationship("Milestone", back_populates="campaign", cascade="all, delete-orphan",
                              order_by="Milestone.milestone_index")
    investments = relationship("Investment", back_populates="campaign", cascade="all, delete-orphan",
                               order_by="Investment.id")

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs):
        kwargs.setdefault("status", "active")
        kwargs.setdefault("raised_amount", 0.0)
        kwargs.setdefault("investor_count", 0)
        kwargs.setdefault("current_milestone", 0)
        kwargs.setdefault("tags", [])
        kwargs.setdefault("minimum_investment", 0.0)
        kwargs.setdefault("views", 0)
        kwargs.setdefault("likes", 0)
        kwargs.setdefault("shares", 0)
        kwargs.setdefault("featured", False)
        kwargs.setdefault("verified", False)
        super().__init__(**kwargs)

    @property
    def funding_progress(self) -> float:
        """募资进度（百分比）"""
        return self.raised_amount / self.target_amount * 100 if self.target_amount else 0.0

    def days_remaining(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return math.ceil((self.deadline - now).total_seconds() / 86400)

    @property
    def counted_investments(self) -> List:
        return [inv for inv in self.investments if inv.status in COUNTED_INVESTMENT_STATUSES]

    def voting_power_of(self, investor_address: str) -> float:
        """投资者在本活动中已确认投资的投票权之和"""
        return sum(inv.voting_power for inv in self.investments
                   if inv.investor_address == investor_address and inv.status == "confirmed")

    @property
    def milestone_summaries(self) -> List[dict]:
        """里程碑摘要，由里程碑表实时生成，不单独保存"""
        return [
            {
                "id": milestone.milestone_index,
                "milestone_id": milestone.id,
                "title": milestone.title,
                "target_amount": milestone.target_amount,
                "status": milestone.status,
                "is_completed": milestone.is_completed,
                "votes_for": milestone.votes_for,
                "votes_against": milestone.votes_against,
                "voting_deadline": milestone.voting_deadline,
            }
            for milestone in self.milestones
        ]

    def refresh_totals(self) -> None:
        """根据投资记录重新计算募资总额和投资人数"""
        counted = self.counted_investments
        self.raised_amount = sum(inv.net_amount for inv in counted)
        self.investor_count = len({inv.investor_address for inv in counted})

    def add_investment(self, investment) -> None:
        """添加投资记录并更新统计"""
        self.investments.append(investment)
        self.refresh_totals()

    def update_status(self, now: Optional[datetime] = None) -> bool:
        """截止后根据募资结果结束活动，返回状态是否发生变化"""
        now = now or utcnow()
        if self.status != "active" or now <= self.deadline:
            return False

        if self.raised_amount >= self.target_amount:
            self.status = "completed"
            self.completed_at = now
        else:
            self.status = "failed"
        return True

"""
投资数据模型
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Float, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from fundflow.core.database import Base
from fundflow.core.utils import utcnow

INVESTMENT_STATUSES = ("pending", "confirmed", "failed", "refunded")
PAYOUT_TYPES = ("milestone", "dividend", "exit")


class InvestmentVote(Base):
    """投资的里程碑投票记录"""
    __tablename__ = "investment_votes"
    __table_args__ = (
        UniqueConstraint("investment_id", "milestone_id", name="uq_investment_vote_milestone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    investment_id = Column(Integer, ForeignKey("investments.id"), nullable=False, index=True)
    milestone_id = Column(Integer, ForeignKey("milestones.id"), nullable=False)
    vote = Column(String(10), nullable=False)  # for, against
    transaction_id = Column(String(100), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())

    # 关系
    investment = relationship("Investment", back_populates="votes")


class InvestmentPayout(Base):
    """投资回报发放记录"""
    __tablename__ = "investment_payouts"

    id = Column(Integer, primary_key=True, index=True)
    investment_id = Column(Integer, ForeignKey("investments.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    transaction_id = Column(String(100), nullable=False)
    milestone_id = Column(Integer, ForeignKey("milestones.id"), nullable=True)
    payout_type = Column(String(20), nullable=False)  # milestone, dividend, exit
    timestamp = Column(DateTime(timezone=True), server_default=func.now())

    # 关系
    investment = relationship("Investment", back_populates="payouts")


class Investment(Base):
    """投资表"""
    __tablename__ = "investments"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    investor_address = Column(String(100), nullable=False, index=True)
    creator_address = Column(String(100), nullable=False, index=True)

    # 金额
    amount = Column(Float, nullable=False)        # 投资总额
    net_amount = Column(Float, nullable=False)    # 扣除平台手续费后的金额
    platform_fee = Column(Float, nullable=False)  # 平台手续费

    # 交易信息
    transaction_id = Column(String(100), nullable=False, unique=True, index=True)
    block_height = Column(Integer, nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    # 状态
    status = Column(String(20), default="pending", index=True)  # pending, confirmed, failed, refunded
    confirmations = Column(Integer, default=0)

    # 治理
    voting_power = Column(Float, nullable=False)  # 等于净投资额

    # 回报
    expected_returns = Column(Float, default=0.0)
    actual_returns = Column(Float, default=0.0)

    source = Column(String(20), default="web")  # web, mobile, api
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # 关系
    campaign = relationship("Campaign", back_populates="investments")
    votes = relationship("InvestmentVote", back_populates="investment", cascade="all, delete-orphan",
                         order_by="InvestmentVote.id")
    payouts = relationship("InvestmentPayout", back_populates="investment", cascade="all, delete-orphan",
                           order_by="InvestmentPayout.id")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", "pending")
        kwargs.setdefault("confirmations", 0)
        kwargs.setdefault("expected_returns", 0.0)
        kwargs.setdefault("actual_returns", 0.0)
        kwargs.setdefault("source", "web")
        if "voting_power" not in kwargs and "net_amount" in kwargs:
            kwargs["voting_power"] = kwargs["net_amount"]
        super().__init__(**kwargs)

    @property
    def roi_percentage(self) -> float:
        if not self.net_amount:
            return 0.0
        return (self.actual_returns - self.net_amount) / self.net_amount * 100

    def record_vote(self, milestone_id: int, vote: str, transaction_id: Optional[str] = None,
                    now: Optional[datetime] = None) -> InvestmentVote:
        """记录对某个里程碑的投票，重复投票时覆盖旧记录"""
        now = now or utcnow()
        for record in self.votes:
            if record.milestone_id == milestone_id:
                record.vote = vote
                record.transaction_id = transaction_id
                record.timestamp = now
                return record

        record = InvestmentVote(milestone_id=milestone_id, vote=vote,
                                transaction_id=transaction_id, timestamp=now)
        self.votes.append(record)
        return record

    def clear_vote(self, milestone_id: int) -> None:
        for record in list(self.votes):
            if record.milestone_id == milestone_id:
                self.votes.remove(record)

    def add_payout(self, amount: float, transaction_id: str, payout_type: str,
                   milestone_id: Optional[int] = None, now: Optional[datetime] = None) -> InvestmentPayout:
        if payout_type not in PAYOUT_TYPES:
            raise ValueError(f"无效的回报类型: {payout_type}")
        payout = InvestmentPayout(
            amount=amount,
            transaction_id=transaction_id,
            payout_type=payout_type,
            milestone_id=milestone_id,
            timestamp=now or utcnow()
        )
        self.payouts.append(payout)
        self.actual_returns += amount
        return payout

    def update_status(self, status: str, confirmations: Optional[int] = None) -> None:
        if status not in INVESTMENT_STATUSES:
            raise ValueError(f"无效的投资状态: {status}")
        self.status = status
        if confirmations is not None:
            self.confirmations = confirmations

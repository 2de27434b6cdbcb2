"""
里程碑数据模型

里程碑的投票状态机：
pending -> in-progress -> submitted -> voting -> approved / rejected -> completed
"""

from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Boolean, Float, JSON, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from fundflow.core.database import Base
from fundflow.core.exceptions import ConflictError
from fundflow.core.utils import utcnow

VOTE_CHOICES = ("for", "against")


class MilestoneVote(Base):
    """里程碑投票表（每个投资者每个里程碑只保留最新的一票）"""
    __tablename__ = "milestone_votes"
    __table_args__ = (
        UniqueConstraint("milestone_id", "investor_address", name="uq_milestone_vote_investor"),
    )

    id = Column(Integer, primary_key=True, index=True)
    milestone_id = Column(Integer, ForeignKey("milestones.id"), nullable=False, index=True)
    investor_address = Column(String(100), nullable=False, index=True)
    investment_amount = Column(Float, nullable=False)  # 加权投票使用的投票权
    vote = Column(String(10), nullable=False)          # for, against
    transaction_id = Column(String(100), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())

    # 关系
    milestone = relationship("Milestone", back_populates="votes")


class Milestone(Base):
    """里程碑表"""
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    milestone_index = Column(Integer, nullable=False)  # 在众筹活动中的序号

    # 里程碑详情
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    target_amount = Column(Float, nullable=False)
    deliverables = Column(JSON, default=list)

    # 时间线
    start_date = Column(DateTime(timezone=True), nullable=False)
    expected_completion_date = Column(DateTime(timezone=True), nullable=False)
    actual_completion_date = Column(DateTime(timezone=True), nullable=True)
    voting_deadline = Column(DateTime(timezone=True), nullable=False, index=True)
    voting_duration_days = Column(Integer, nullable=False, default=7)  # 每次提交后开放投票的天数

    # 状态
    status = Column(String(20), default="pending", index=True)
    is_completed = Column(Boolean, default=False, index=True)

    # 提交的证明材料
    evidence = Column(JSON, default=list)
    submission_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    # 投票统计
    votes_for = Column(Integer, default=0)
    votes_against = Column(Integer, default=0)
    total_voting_power = Column(Float, default=0.0)
    voting_power_for = Column(Float, default=0.0)
    voting_power_against = Column(Float, default=0.0)

    # 资金释放
    funds_released = Column(Boolean, default=False)
    released_amount = Column(Float, default=0.0)
    release_transaction_id = Column(String(100), nullable=True)
    released_at = Column(DateTime(timezone=True), nullable=True)

    # 通过条件
    required_approval_percentage = Column(Float, default=50.0)
    minimum_voting_power = Column(Float, default=0.0)  # 法定投票权

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # 关系
    campaign = relationship("Campaign", back_populates="milestones")
    votes = relationship("MilestoneVote", back_populates="milestone", cascade="all, delete-orphan",
                         order_by="MilestoneVote.id")

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs):
        # 列默认值只在flush时生效，这里保证新建对象在内存中也能直接参与计票
        kwargs.setdefault("status", "pending")
        kwargs.setdefault("is_completed", False)
        kwargs.setdefault("deliverables", [])
        kwargs.setdefault("evidence", [])
        kwargs.setdefault("votes_for", 0)
        kwargs.setdefault("votes_against", 0)
        kwargs.setdefault("total_voting_power", 0.0)
        kwargs.setdefault("voting_power_for", 0.0)
        kwargs.setdefault("voting_power_against", 0.0)
        kwargs.setdefault("funds_released", False)
        kwargs.setdefault("released_amount", 0.0)
        kwargs.setdefault("required_approval_percentage", 50.0)
        kwargs.setdefault("minimum_voting_power", 0.0)
        kwargs.setdefault("voting_duration_days", 7)
        super().__init__(**kwargs)

    @property
    def approval_percentage(self) -> float:
        """赞成票的投票权占比（百分比）"""
        if not self.total_voting_power:
            return 0.0
        return self.voting_power_for / self.total_voting_power * 100

    @property
    def voting_progress(self) -> int:
        return self.votes_for + self.votes_against

    def voting_time_remaining(self, now: Optional[datetime] = None) -> int:
        """投票剩余天数（向下取整，不小于0）"""
        now = now or utcnow()
        return max(0, (self.voting_deadline - now).days)

    def find_vote(self, investor_address: str) -> Optional[MilestoneVote]:
        for vote in self.votes:
            if vote.investor_address == investor_address:
                return vote
        return None

    def submit_for_voting(self, evidence: List[dict], submission_notes: Optional[str] = None,
                          now: Optional[datetime] = None) -> None:
        """提交证明材料并开放投票；投票期从提交时开始计算，重新提交时清空上一轮投票"""
        if self.funds_released:
            raise ConflictError("资金已释放的里程碑不能重新提交")
        if self.status in ("voting", "approved"):
            raise ConflictError(f"里程碑当前状态为 {self.status}，不能重新提交")
        now = now or utcnow()
        self.reset_votes()
        self.status = "voting"
        self.evidence = [dict(item, uploaded_at=item.get("uploaded_at") or now.isoformat()) for item in evidence]
        self.submission_notes = submission_notes
        self.submitted_at = now
        self.voting_deadline = now + timedelta(days=self.voting_duration_days)

    def reset_votes(self) -> None:
        self.votes.clear()
        self.votes_for = 0
        self.votes_against = 0
        self.total_voting_power = 0.0
        self.voting_power_for = 0.0
        self.voting_power_against = 0.0

    def _count(self, vote: str, power: float, sign: int) -> None:
        if vote == "for":
            self.votes_for += sign
            self.voting_power_for += sign * power
        else:
            self.votes_against += sign
            self.voting_power_against += sign * power
        self.total_voting_power += sign * power

    def add_vote(self, investor_address: str, investment_amount: float, vote: str,
                 transaction_id: Optional[str] = None, now: Optional[datetime] = None) -> MilestoneVote:
        """记录投票；同一投资者再次投票时先扣除旧票再计入新票"""
        if vote not in VOTE_CHOICES:
            raise ValueError(f"无效的投票选项: {vote}")
        if investment_amount < 0:
            raise ValueError("投票权不能为负数")
        now = now or utcnow()
        if self.status != "voting":
            raise ConflictError(f"里程碑当前状态为 {self.status}，不在投票阶段")
        if now > self.voting_deadline:
            raise ConflictError("投票已截止")

        existing = self.find_vote(investor_address)
        if existing is not None:
            self._count(existing.vote, existing.investment_amount, -1)
            existing.investment_amount = investment_amount
            existing.vote = vote
            existing.transaction_id = transaction_id
            existing.timestamp = now
            record = existing
        else:
            record = MilestoneVote(
                investor_address=investor_address,
                investment_amount=investment_amount,
                vote=vote,
                transaction_id=transaction_id,
                timestamp=now
            )
            self.votes.append(record)

        self._count(vote, investment_amount, 1)
        return record

    def adjust_voting_power(self, investor_address: str, voting_power: float) -> bool:
        """投资者的投票权变化后修正已投的票；投票权为0时撤回该票。返回计票是否变化"""
        existing = self.find_vote(investor_address)
        if existing is None or existing.investment_amount == voting_power:
            return False

        self._count(existing.vote, existing.investment_amount, -1)
        if voting_power > 0:
            existing.investment_amount = voting_power
            self._count(existing.vote, voting_power, 1)
        else:
            self.votes.remove(existing)
        return True

    def check_approval_status(self, now: Optional[datetime] = None) -> bool:
        """投票截止且达到法定投票权后按加权比例决定通过或否决，返回状态是否发生变化"""
        now = now or utcnow()
        if self.status != "voting":
            return False
        voting_ended = now > self.voting_deadline
        has_quorum = self.total_voting_power >= self.minimum_voting_power
        if not (voting_ended and has_quorum):
            return False

        if self.approval_percentage >= self.required_approval_percentage:
            self.status = "approved"
        else:
            self.status = "rejected"
        return True

    def release_funds(self, amount: float, transaction_id: str, now: Optional[datetime] = None) -> None:
        """释放资金（调用方负责确认里程碑已通过）"""
        now = now or utcnow()
        self.funds_released = True
        self.released_amount = amount
        self.release_transaction_id = transaction_id
        self.released_at = now
        self.status = "completed"
        self.is_completed = True
        self.actual_completion_date = now

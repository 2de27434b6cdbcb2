"""
里程碑投票与资金释放服务
"""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from fundflow.core.database import commit_session
from fundflow.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from fundflow.core.utils import normalize_address, utcnow
from fundflow.models.campaign import Campaign
from fundflow.models.investment import Investment
from fundflow.models.milestone import Milestone
from fundflow.schemas.milestone_schemas import (
    FundReleaseRequest,
    MilestoneResponse,
    MilestoneSubmit,
    VoteCreate
)
from fundflow.services.blockchain_service import BlockchainService

logger = logging.getLogger(__name__)

class MilestoneService:
    """里程碑投票与资金释放服务"""

    def __init__(self, db: Session, blockchain: Optional[BlockchainService] = None):
        self.db = db
        self.blockchain = blockchain or BlockchainService()

    def _get_milestone(self, milestone_id: int) -> Milestone:
        milestone = self.db.query(Milestone).filter(Milestone.id == milestone_id).first()
        if not milestone:
            raise NotFoundError("里程碑不存在")
        return milestone

    def _voting_investments(self, campaign_id: int, investor_address: str) -> List[Investment]:
        """投资者在该活动中已确认的投资"""
        return self.db.query(Investment).filter(
            Investment.campaign_id == campaign_id,
            Investment.investor_address == investor_address,
            Investment.status == "confirmed"
        ).all()

    async def list_campaign_milestones(self, campaign_id: int) -> List[MilestoneResponse]:
        """按序号列出活动的里程碑"""
        if not self.db.query(Campaign.id).filter(Campaign.id == campaign_id).first():
            raise NotFoundError("众筹活动不存在")
        milestones = self.db.query(Milestone).filter(Milestone.campaign_id == campaign_id) \
            .order_by(Milestone.milestone_index).all()
        return [MilestoneResponse.model_validate(m) for m in milestones]

    async def get_milestone(self, milestone_id: int) -> MilestoneResponse:
        return MilestoneResponse.model_validate(self._get_milestone(milestone_id))

    async def list_open_voting(self, campaign_id: Optional[int] = None,
                               now: Optional[datetime] = None) -> List[MilestoneResponse]:
        """当前正在投票、尚未截止的里程碑，按截止时间排序"""
        now = now or utcnow()
        query = self.db.query(Milestone).filter(
            Milestone.status == "voting",
            Milestone.voting_deadline > now
        )
        if campaign_id is not None:
            query = query.filter(Milestone.campaign_id == campaign_id)
        milestones = query.order_by(Milestone.voting_deadline, Milestone.id).all()
        return [MilestoneResponse.model_validate(m) for m in milestones]

    async def submit_for_voting(self, milestone_id: int, submission: MilestoneSubmit,
                                now: Optional[datetime] = None) -> MilestoneResponse:
        """提交证明材料，开始新一轮投票"""
        milestone = self._get_milestone(milestone_id)
        milestone.submit_for_voting(
            [item.model_dump(mode="json", exclude_none=True) for item in submission.evidence],
            submission.submission_notes,
            now=now
        )
        for investment in milestone.campaign.investments:
            investment.clear_vote(milestone.id)
        commit_session(self.db)
        self.db.refresh(milestone)
        logger.info("里程碑 %s 已提交投票，证明材料 %d 份，截止 %s",
                    milestone_id, len(submission.evidence), milestone.voting_deadline)
        return MilestoneResponse.model_validate(milestone)

    async def cast_vote(self, milestone_id: int, vote_data: VoteCreate,
                        now: Optional[datetime] = None) -> MilestoneResponse:
        """按投资者的投票权加权投票"""
        milestone = self._get_milestone(milestone_id)
        address = normalize_address(vote_data.investor_address)
        investments = self._voting_investments(milestone.campaign_id, address)
        voting_power = sum(inv.voting_power for inv in investments)
        if voting_power <= 0:
            raise PermissionDeniedError("只有已确认投资的投资者可以投票")

        now = now or utcnow()
        milestone.add_vote(address, voting_power, vote_data.vote, vote_data.transaction_id, now=now)
        for investment in investments:
            investment.record_vote(milestone.id, vote_data.vote, vote_data.transaction_id, now=now)
        commit_session(self.db)
        self.db.refresh(milestone)

        logger.info("里程碑 %s 收到投票: %s %s (投票权 %.2f)", milestone_id, address, vote_data.vote, voting_power)
        return MilestoneResponse.model_validate(milestone)

    async def check_approval(self, milestone_id: int, now: Optional[datetime] = None) -> MilestoneResponse:
        """检查投票结果（未截止或未达法定投票权时不变）"""
        milestone = self._get_milestone(milestone_id)
        if milestone.check_approval_status(now):
            commit_session(self.db)
            self.db.refresh(milestone)
            logger.info("里程碑 %s 投票结束: %s (%.1f%%)", milestone_id, milestone.status, milestone.approval_percentage)
        return MilestoneResponse.model_validate(milestone)

    async def release_funds(self, milestone_id: int, release: FundReleaseRequest) -> MilestoneResponse:
        """释放已通过里程碑的资金"""
        milestone = self._get_milestone(milestone_id)
        if milestone.funds_released:
            raise ConflictError("该里程碑的资金已经释放")
        if milestone.status != "approved":
            raise ConflictError(f"里程碑当前状态为 {milestone.status}，只有已通过的里程碑可以释放资金")

        amount = release.amount if release.amount is not None else milestone.target_amount
        confirmation = await self.blockchain.confirm_transaction(release.transaction_id)
        milestone.release_funds(amount, confirmation.transaction_id)

        campaign = milestone.campaign
        campaign.current_milestone = max(campaign.current_milestone, milestone.milestone_index + 1)
        commit_session(self.db)
        self.db.refresh(milestone)

        logger.info("里程碑 %s 已释放资金 %.2f (%s)", milestone_id, amount, confirmation.transaction_id)
        return MilestoneResponse.model_validate(milestone)

    async def resolve_expired_votes(self, now: Optional[datetime] = None) -> int:
        """处理所有已过投票截止时间的里程碑，返回状态发生变化的数量"""
        now = now or utcnow()
        milestones = self.db.query(Milestone).filter(
            Milestone.status == "voting",
            Milestone.voting_deadline < now
        ).all()
        resolved = 0
        for milestone in milestones:
            if milestone.check_approval_status(now):
                resolved += 1
                logger.info("里程碑 %s 投票结束: %s", milestone.id, milestone.status)
        commit_session(self.db)
        return resolved

"""
众筹活动管理服务
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session
from fundflow.core.config import settings
from fundflow.core.database import commit_session
from fundflow.core.exceptions import ConflictError, NotFoundError
from fundflow.core.utils import normalize_address, utcnow
from fundflow.models.campaign import Campaign, TERMINAL_STATUSES
from fundflow.models.investment import Investment
from fundflow.models.milestone import Milestone
from fundflow.schemas.campaign_schemas import (
    CampaignCreate,
    CampaignResponse,
    CampaignStats,
    CampaignUpdate,
    IndustryCount
)
from fundflow.schemas.investment_schemas import InvestmentCreate, InvestmentResponse
from fundflow.schemas.milestone_schemas import MilestoneCreate, MilestoneResponse
from fundflow.services.blockchain_service import BlockchainService
from fundflow.services.investment_service import InvestmentService

logger = logging.getLogger(__name__)

class CampaignService:
    """众筹活动管理服务"""

    # 支持的排序方式
    SORT_OPTIONS = {
        "created_at": Campaign.created_at.desc(),
        "raised_amount": Campaign.raised_amount.desc(),
        "deadline": Campaign.deadline.asc(),
        "views": Campaign.views.desc(),
    }

    def __init__(self, db: Session, blockchain: Optional[BlockchainService] = None):
        self.db = db
        self.blockchain = blockchain or BlockchainService()

    def _get_campaign(self, campaign_id: int) -> Campaign:
        campaign = self.db.query(Campaign).filter(Campaign.id == campaign_id).first()
        if not campaign:
            raise NotFoundError("众筹活动不存在")
        return campaign

    def _paginate(self, query, page: int, limit: int, sort_by: str = "created_at") -> Tuple[List[CampaignResponse], int]:
        total = query.count()
        order = self.SORT_OPTIONS.get(sort_by, self.SORT_OPTIONS["created_at"])
        campaigns = query.order_by(order, Campaign.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return [CampaignResponse.model_validate(c) for c in campaigns], total

    async def create_campaign(self, campaign_data: CampaignCreate) -> CampaignResponse:
        """创建众筹活动"""
        now = utcnow()
        if campaign_data.deadline <= now:
            raise ValueError("截止时间必须晚于当前时间")

        campaign = Campaign(
            **campaign_data.model_dump(exclude={"creator_address"}),
            creator_address=normalize_address(campaign_data.creator_address),
            status="active",
            launched_at=now
        )
        self.db.add(campaign)
        commit_session(self.db)
        self.db.refresh(campaign)

        logger.info("众筹活动已创建: %s by %s", campaign.id, campaign.creator_address)
        return CampaignResponse.model_validate(campaign)

    async def get_campaign(self, campaign_id: int, count_view: bool = True) -> CampaignResponse:
        """获取众筹活动详情，并增加浏览次数"""
        campaign = self._get_campaign(campaign_id)
        if count_view:
            campaign.views += 1
            commit_session(self.db)
            self.db.refresh(campaign)
        return CampaignResponse.model_validate(campaign)

    async def list_campaigns(self, status: Optional[str] = None, industry: Optional[str] = None,
                             category: Optional[str] = None, stage: Optional[str] = None,
                             featured: Optional[bool] = None, verified: Optional[bool] = None,
                             creator_address: Optional[str] = None, page: int = 1, limit: int = 20,
                             sort_by: str = "created_at") -> Tuple[List[CampaignResponse], int]:
        """按条件分页查询众筹活动"""
        query = self.db.query(Campaign)
        if status:
            query = query.filter(Campaign.status == status)
        if industry:
            query = query.filter(Campaign.industry.ilike(f"%{industry}%"))
        if category:
            query = query.filter(Campaign.category.ilike(f"%{category}%"))
        if stage:
            query = query.filter(Campaign.stage == stage)
        if featured is not None:
            query = query.filter(Campaign.featured == featured)
        if verified is not None:
            query = query.filter(Campaign.verified == verified)
        if creator_address:
            query = query.filter(Campaign.creator_address == normalize_address(creator_address))
        return self._paginate(query, page, limit, sort_by)

    async def search_campaigns(self, keyword: str, status: Optional[str] = None,
                               page: int = 1, limit: int = 20) -> Tuple[List[CampaignResponse], int]:
        """按关键字搜索标题、描述、分类、行业和标签"""
        pattern = f"%{keyword}%"
        query = self.db.query(Campaign).filter(or_(
            Campaign.title.ilike(pattern),
            Campaign.description.ilike(pattern),
            Campaign.category.ilike(pattern),
            Campaign.industry.ilike(pattern),
            cast(Campaign.tags, String).ilike(pattern)
        ))
        if status:
            query = query.filter(Campaign.status == status)
        return self._paginate(query, page, limit)

    async def get_campaigns_by_creator(self, creator_address: str, page: int = 1,
                                       limit: int = 20) -> Tuple[List[CampaignResponse], int]:
        return await self.list_campaigns(creator_address=creator_address, page=page, limit=limit)

    async def get_campaigns_by_investor(self, investor_address: str, page: int = 1,
                                        limit: int = 20) -> Tuple[List[CampaignResponse], int]:
        """获取投资者参与过的众筹活动"""
        address = normalize_address(investor_address)
        invested = self.db.query(Investment.campaign_id).filter(Investment.investor_address == address)
        query = self.db.query(Campaign).filter(Campaign.id.in_(invested))
        return self._paginate(query, page, limit)

    async def update_campaign(self, campaign_id: int, update_data: CampaignUpdate) -> CampaignResponse:
        """更新众筹活动"""
        campaign = self._get_campaign(campaign_id)
        changes = update_data.model_dump(exclude_unset=True)

        new_status = changes.get("status")
        if new_status and new_status != campaign.status and campaign.status in TERMINAL_STATUSES:
            raise ConflictError(f"众筹活动已结束（{campaign.status}），不能再修改状态")

        minimum = changes.get("minimum_investment", campaign.minimum_investment)
        maximum = changes.get("maximum_investment", campaign.maximum_investment)
        if maximum is not None and minimum is not None and maximum < minimum:
            raise ValueError("最大投资额不能小于最小投资额")

        for field, value in changes.items():
            setattr(campaign, field, value)
        if new_status == "completed" and campaign.completed_at is None:
            campaign.completed_at = utcnow()

        commit_session(self.db)
        self.db.refresh(campaign)
        logger.info("众筹活动已更新: %s (%s)", campaign_id, ", ".join(changes))
        return CampaignResponse.model_validate(campaign)

    async def toggle_like(self, campaign_id: int, liked: bool) -> int:
        campaign = self._get_campaign(campaign_id)
        campaign.likes = max(0, campaign.likes + (1 if liked else -1))
        commit_session(self.db)
        return campaign.likes

    async def increment_share(self, campaign_id: int) -> int:
        campaign = self._get_campaign(campaign_id)
        campaign.shares += 1
        commit_session(self.db)
        return campaign.shares

    async def add_investment(self, campaign_id: int, investment_data: InvestmentCreate) -> InvestmentResponse:
        """记录一笔投资：模拟链上确认、扣除手续费、更新活动统计"""
        campaign = self._get_campaign(campaign_id)
        now = utcnow()
        if campaign.status != "active":
            raise ConflictError(f"众筹活动当前状态为 {campaign.status}，不接受投资")
        if now > campaign.deadline:
            raise ConflictError("众筹活动已过截止时间")
        if investment_data.amount < (campaign.minimum_investment or 0):
            raise ValueError(f"投资额不能低于最小投资额 {campaign.minimum_investment}")
        if campaign.maximum_investment is not None and investment_data.amount > campaign.maximum_investment:
            raise ValueError(f"投资额不能超过最大投资额 {campaign.maximum_investment}")
        if investment_data.transaction_id and self.db.query(Investment).filter(
                Investment.transaction_id == investment_data.transaction_id).first():
            raise ConflictError("该交易已被记录")

        confirmation = await self.blockchain.confirm_transaction(
            investment_data.transaction_id, investment_data.block_height
        )

        platform_fee = InvestmentService.calculate_platform_fee(investment_data.amount)
        net_amount = InvestmentService.calculate_net_amount(investment_data.amount, platform_fee)
        investment = Investment(
            investor_address=normalize_address(investment_data.investor_address),
            creator_address=campaign.creator_address,
            amount=investment_data.amount,
            platform_fee=platform_fee,
            net_amount=net_amount,
            voting_power=net_amount,
            transaction_id=confirmation.transaction_id,
            block_height=confirmation.block_height,
            confirmations=confirmation.confirmations,
            timestamp=now,
            status="confirmed",
            source=investment_data.source
        )
        campaign.add_investment(investment)
        commit_session(self.db)
        self.db.refresh(investment)

        logger.info("众筹活动 %s 新增投资: %.2f 来自 %s", campaign_id, investment.amount, investment.investor_address)
        return InvestmentResponse.model_validate(investment)

    async def add_milestone(self, campaign_id: int, milestone_data: MilestoneCreate) -> MilestoneResponse:
        """为众筹活动添加里程碑"""
        campaign = self._get_campaign(campaign_id)
        if campaign.status in ("cancelled", "failed"):
            raise ConflictError(f"众筹活动当前状态为 {campaign.status}，不能添加里程碑")

        now = utcnow()
        voting_days = milestone_data.voting_duration_days or settings.DEFAULT_VOTING_DURATION_DAYS
        approval = milestone_data.required_approval_percentage
        milestone = Milestone(
            milestone_index=len(campaign.milestones),
            title=milestone_data.title,
            description=milestone_data.description,
            target_amount=milestone_data.target_amount,
            deliverables=list(milestone_data.deliverables),
            start_date=now,
            expected_completion_date=milestone_data.expected_completion_date,
            voting_deadline=now + timedelta(days=voting_days),
            status="pending",
            required_approval_percentage=settings.DEFAULT_APPROVAL_PERCENTAGE if approval is None else approval,
            minimum_voting_power=milestone_data.minimum_voting_power,
            voting_duration_days=voting_days
        )
        campaign.milestones.append(milestone)
        commit_session(self.db)
        self.db.refresh(milestone)

        logger.info("众筹活动 %s 新增里程碑: %s", campaign_id, milestone.title)
        return MilestoneResponse.model_validate(milestone)

    async def get_campaign_stats(self) -> CampaignStats:
        """平台整体众筹统计"""
        total_campaigns = self.db.query(func.count(Campaign.id)).scalar() or 0
        active_campaigns = self.db.query(func.count(Campaign.id)).filter(Campaign.status == "active").scalar() or 0
        completed_campaigns = self.db.query(func.count(Campaign.id)).filter(Campaign.status == "completed").scalar() or 0
        total_raised = self.db.query(func.sum(Campaign.raised_amount)).scalar() or 0.0
        total_investors = self.db.query(func.sum(Campaign.investor_count)).scalar() or 0
        average_size = self.db.query(func.avg(Campaign.raised_amount)).filter(Campaign.raised_amount > 0).scalar() or 0.0

        industry_rows = self.db.query(Campaign.industry, func.count(Campaign.id).label("count")) \
            .group_by(Campaign.industry).order_by(func.count(Campaign.id).desc(), Campaign.industry).limit(5).all()

        return CampaignStats(
            total_campaigns=total_campaigns,
            active_campaigns=active_campaigns,
            completed_campaigns=completed_campaigns,
            total_raised=total_raised,
            total_investors=total_investors,
            average_campaign_size=average_size,
            success_rate=completed_campaigns / total_campaigns * 100 if total_campaigns else 0.0,
            top_industries=[IndustryCount(name=name, count=count) for name, count in industry_rows]
        )

    async def update_campaign_statuses(self, now: Optional[datetime] = None) -> int:
        """结束所有已过截止时间的进行中活动，返回发生变化的活动数量"""
        now = now or utcnow()
        campaigns = self.db.query(Campaign).filter(Campaign.status == "active").all()
        updated = 0
        for campaign in campaigns:
            if campaign.update_status(now):
                updated += 1
                logger.info("众筹活动 %s 已结束: %s", campaign.id, campaign.status)
        commit_session(self.db)
        return updated

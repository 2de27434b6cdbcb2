"""
投资管理服务
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from fundflow.core.config import settings
from fundflow.core.database import commit_session
from fundflow.core.exceptions import NotFoundError
from fundflow.core.utils import normalize_address, utcnow
from fundflow.models.campaign import Campaign
from fundflow.models.investment import Investment
from fundflow.schemas.investment_schemas import (
    CategoryDistribution,
    InvestmentResponse,
    InvestmentStatusUpdate,
    InvestmentTrendPoint,
    PayoutCreate,
    PlatformInvestmentStats,
    PortfolioItem,
    PortfolioStats,
    TopInvestor
)
from fundflow.services.blockchain_service import BlockchainService

logger = logging.getLogger(__name__)

class InvestmentService:
    """投资管理服务"""

    # 趋势统计的时间段格式和每段天数
    TREND_FORMATS = {"daily": "%Y-%m-%d", "weekly": "%G-W%V", "monthly": "%Y-%m"}
    TREND_SPAN_DAYS = {"daily": 1, "weekly": 7, "monthly": 31}

    def __init__(self, db: Session, blockchain: Optional[BlockchainService] = None):
        self.db = db
        self.blockchain = blockchain or BlockchainService()

    @staticmethod
    def calculate_platform_fee(amount: float, fee_basis_points: Optional[int] = None) -> float:
        """按基点计算平台手续费"""
        if fee_basis_points is None:
            fee_basis_points = settings.PLATFORM_FEE_PERCENT
        return amount * fee_basis_points / 10000

    @staticmethod
    def calculate_net_amount(amount: float, platform_fee: float) -> float:
        return amount - platform_fee

    def _get_investment(self, investment_id: int) -> Investment:
        investment = self.db.query(Investment).filter(Investment.id == investment_id).first()
        if not investment:
            raise NotFoundError("投资记录不存在")
        return investment

    async def get_investment(self, investment_id: int) -> InvestmentResponse:
        """根据ID获取投资"""
        return InvestmentResponse.model_validate(self._get_investment(investment_id))

    async def get_portfolio(self, investor_address: str, page: int = 1,
                            limit: int = 20) -> Tuple[List[PortfolioItem], int]:
        """获取投资者的投资组合（按时间倒序分页），返回条目和总数"""
        address = normalize_address(investor_address)
        query = self.db.query(Investment).filter(Investment.investor_address == address)
        total = query.count()
        investments = query.order_by(Investment.timestamp.desc(), Investment.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return [PortfolioItem.model_validate(inv) for inv in investments], total

    async def get_portfolio_stats(self, investor_address: str) -> PortfolioStats:
        """统计投资者已确认的投资"""
        address = normalize_address(investor_address)
        investments = self.db.query(Investment).filter(
            Investment.investor_address == address,
            Investment.status == "confirmed"
        ).all()
        if not investments:
            return PortfolioStats()

        total_invested = sum(inv.net_amount for inv in investments)
        total_returns = sum(inv.actual_returns for inv in investments)
        total_payouts = sum(payout.amount for inv in investments for payout in inv.payouts)
        return PortfolioStats(
            total_invested=total_invested,
            total_returns=total_returns,
            total_payouts=total_payouts,
            investment_count=len(investments),
            average_investment=total_invested / len(investments),
            roi_percentage=total_returns / total_invested * 100 if total_invested else 0.0
        )

    async def update_status(self, investment_id: int, update: InvestmentStatusUpdate) -> InvestmentResponse:
        """管理员修改投资状态，并重新计算活动统计和该投资者在进行中投票里的投票权"""
        investment = self._get_investment(investment_id)
        investment.update_status(update.status, update.confirmations)
        campaign = investment.campaign
        if campaign:
            campaign.refresh_totals()
            self._sync_voting_power(campaign, investment)
        commit_session(self.db)
        self.db.refresh(investment)
        logger.info("投资 %s 状态已更新为 %s", investment_id, update.status)
        return InvestmentResponse.model_validate(investment)

    def _sync_voting_power(self, campaign: Campaign, investment: Investment) -> None:
        voting_power = campaign.voting_power_of(investment.investor_address)
        for milestone in campaign.milestones:
            if milestone.status != "voting":
                continue
            if investment.status != "confirmed":
                investment.clear_vote(milestone.id)
            if milestone.adjust_voting_power(investment.investor_address, voting_power):
                logger.info("里程碑 %s 中 %s 的投票权调整为 %.2f",
                            milestone.id, investment.investor_address, voting_power)

    async def add_payout(self, investment_id: int, payout_data: PayoutCreate) -> InvestmentResponse:
        """发放投资回报"""
        investment = self._get_investment(investment_id)
        confirmation = await self.blockchain.confirm_transaction(payout_data.transaction_id)
        investment.add_payout(
            amount=payout_data.amount,
            transaction_id=confirmation.transaction_id,
            payout_type=payout_data.payout_type,
            milestone_id=payout_data.milestone_id
        )
        commit_session(self.db)
        self.db.refresh(investment)
        logger.info("投资 %s 发放回报 %.2f (%s)", investment_id, payout_data.amount, payout_data.payout_type)
        return InvestmentResponse.model_validate(investment)

    async def get_platform_stats(self) -> PlatformInvestmentStats:
        """平台整体投资统计"""
        count, investors, amount, net_amount, fees = self.db.query(
            func.count(Investment.id),
            func.count(func.distinct(Investment.investor_address)),
            func.sum(Investment.amount),
            func.sum(Investment.net_amount),
            func.sum(Investment.platform_fee)
        ).filter(Investment.status == "confirmed").one()
        return PlatformInvestmentStats(
            total_investments=count or 0,
            total_investors=investors or 0,
            total_amount=amount or 0.0,
            total_net_amount=net_amount or 0.0,
            average_investment=(amount or 0.0) / count if count else 0.0,
            platform_fees=fees or 0.0
        )

    async def get_investment_trends(self, timeframe: str = "daily", periods: int = 30,
                                    now: Optional[datetime] = None) -> List[InvestmentTrendPoint]:
        """按日/周/月汇总最近若干个时间段的投资"""
        if timeframe not in self.TREND_FORMATS:
            raise ValueError(f"无效的时间粒度: {timeframe}")
        now = now or utcnow()
        since = now - timedelta(days=self.TREND_SPAN_DAYS[timeframe] * periods)
        rows = self.db.query(Investment.timestamp, Investment.amount, Investment.net_amount).filter(
            Investment.status == "confirmed",
            Investment.timestamp >= since,
            Investment.timestamp <= now
        ).all()

        buckets = {}
        for timestamp, amount, net_amount in rows:
            period = timestamp.strftime(self.TREND_FORMATS[timeframe])
            count, total, total_net = buckets.get(period, (0, 0.0, 0.0))
            buckets[period] = (count + 1, total + amount, total_net + net_amount)

        points = [
            InvestmentTrendPoint(period=period, investment_count=count, total_amount=total, total_net_amount=total_net)
            for period, (count, total, total_net) in sorted(buckets.items())
        ]
        return points[-periods:]

    async def get_top_investors(self, limit: int = 10) -> List[TopInvestor]:
        """按已确认投资净额排名的投资者"""
        total_invested = func.sum(Investment.net_amount).label("total_invested")
        rows = self.db.query(
            Investment.investor_address,
            total_invested,
            func.count(Investment.id),
            func.count(func.distinct(Investment.campaign_id))
        ).filter(Investment.status == "confirmed") \
            .group_by(Investment.investor_address) \
            .order_by(total_invested.desc(), Investment.investor_address) \
            .limit(limit).all()
        return [
            TopInvestor(investor_address=address, total_invested=total, investment_count=count, campaign_count=campaigns)
            for address, total, count, campaigns in rows
        ]

    async def get_distribution_by_category(self) -> List[CategoryDistribution]:
        """已确认投资在各活动分类中的分布"""
        total_amount = func.sum(Investment.net_amount).label("total_amount")
        rows = self.db.query(Campaign.category, func.count(Investment.id), total_amount) \
            .join(Campaign, Investment.campaign_id == Campaign.id) \
            .filter(Investment.status == "confirmed") \
            .group_by(Campaign.category) \
            .order_by(total_amount.desc(), Campaign.category).all()
        grand_total = sum(total for _, _, total in rows)
        return [
            CategoryDistribution(
                category=category,
                investment_count=count,
                total_amount=total,
                percentage=total / grand_total * 100 if grand_total else 0.0
            )
            for category, count, total in rows
        ]

"""
投资API路由
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import List
from fundflow.api.errors import service_error
from fundflow.core.database import get_db
from fundflow.schemas.common import ApiResponse, PaginatedResponse, WALLET_MIN_LENGTH, WALLET_MAX_LENGTH
from fundflow.schemas.investment_schemas import (
    CategoryDistribution,
    InvestmentResponse,
    InvestmentStatusUpdate,
    InvestmentTrendPoint,
    PayoutCreate,
    PlatformInvestmentStats,
    PortfolioItem,
    PortfolioStats,
    TopInvestor,
    TrendTimeframe
)
from fundflow.services.investment_service import InvestmentService

router = APIRouter()

@router.get("/portfolio/{wallet_address}", response_model=PaginatedResponse[PortfolioItem])
async def get_portfolio(
    wallet_address: str = Path(..., min_length=WALLET_MIN_LENGTH, max_length=WALLET_MAX_LENGTH),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """获取投资者的投资组合"""
    service = InvestmentService(db)
    try:
        items, total = await service.get_portfolio(wallet_address, page=page, limit=limit)
    except Exception as e:
        raise service_error(e, "获取投资组合")
    return PaginatedResponse[PortfolioItem].build(items, total, page, limit)

@router.get("/stats/{wallet_address}", response_model=ApiResponse[PortfolioStats])
async def get_portfolio_stats(
    wallet_address: str = Path(..., min_length=WALLET_MIN_LENGTH, max_length=WALLET_MAX_LENGTH),
    db: Session = Depends(get_db)
):
    """获取投资者的组合统计"""
    service = InvestmentService(db)
    try:
        stats = await service.get_portfolio_stats(wallet_address)
    except Exception as e:
        raise service_error(e, "获取投资统计")
    return ApiResponse[PortfolioStats](data=stats)

@router.get("/platform-stats", response_model=ApiResponse[PlatformInvestmentStats])
async def get_platform_stats(db: Session = Depends(get_db)):
    """平台整体投资统计"""
    service = InvestmentService(db)
    try:
        stats = await service.get_platform_stats()
    except Exception as e:
        raise service_error(e, "获取平台投资统计")
    return ApiResponse[PlatformInvestmentStats](data=stats)

@router.get("/trends", response_model=ApiResponse[List[InvestmentTrendPoint]])
async def get_investment_trends(
    timeframe: TrendTimeframe = "daily",
    periods: int = Query(30, ge=1, le=366),
    db: Session = Depends(get_db)
):
    """按日/周/月的投资趋势"""
    service = InvestmentService(db)
    try:
        points = await service.get_investment_trends(timeframe, periods=periods)
    except Exception as e:
        raise service_error(e, "获取投资趋势")
    return ApiResponse[List[InvestmentTrendPoint]](data=points)

@router.get("/top-investors", response_model=ApiResponse[List[TopInvestor]])
async def get_top_investors(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """投资额最高的投资者"""
    service = InvestmentService(db)
    try:
        investors = await service.get_top_investors(limit)
    except Exception as e:
        raise service_error(e, "获取投资者排名")
    return ApiResponse[List[TopInvestor]](data=investors)

@router.get("/distribution/category", response_model=ApiResponse[List[CategoryDistribution]])
async def get_distribution_by_category(db: Session = Depends(get_db)):
    """按活动分类的投资分布"""
    service = InvestmentService(db)
    try:
        distribution = await service.get_distribution_by_category()
    except Exception as e:
        raise service_error(e, "获取投资分布")
    return ApiResponse[List[CategoryDistribution]](data=distribution)

@router.get("/{investment_id}", response_model=ApiResponse[InvestmentResponse])
async def get_investment(
    investment_id: int,
    db: Session = Depends(get_db)
):
    """获取投资详情"""
    service = InvestmentService(db)
    try:
        investment = await service.get_investment(investment_id)
    except Exception as e:
        raise service_error(e, "获取投资")
    return ApiResponse[InvestmentResponse](data=investment)

@router.put("/{investment_id}/status", response_model=ApiResponse[InvestmentResponse])
async def update_investment_status(
    investment_id: int,
    update: InvestmentStatusUpdate,
    db: Session = Depends(get_db)
):
    """管理员修改投资状态"""
    service = InvestmentService(db)
    try:
        investment = await service.update_status(investment_id, update)
    except Exception as e:
        raise service_error(e, "修改投资状态")
    return ApiResponse[InvestmentResponse](message="投资状态已更新", data=investment)

@router.post("/{investment_id}/payouts", response_model=ApiResponse[InvestmentResponse], status_code=201)
async def add_payout(
    investment_id: int,
    payout_data: PayoutCreate,
    db: Session = Depends(get_db)
):
    """发放投资回报"""
    service = InvestmentService(db)
    try:
        investment = await service.add_payout(investment_id, payout_data)
    except Exception as e:
        raise service_error(e, "发放投资回报")
    return ApiResponse[InvestmentResponse](message="回报已发放", data=investment)

"""
众筹活动API路由
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from fundflow.api.errors import service_error
from fundflow.core.database import get_db
from fundflow.schemas.common import ApiResponse, PaginatedResponse
from fundflow.schemas.campaign_schemas import (
    CampaignCreate,
    CampaignResponse,
    CampaignStage,
    CampaignStats,
    CampaignStatusValue,
    CampaignUpdate,
    LikeRequest,
    SortField,
    StatusSweepResult
)
from fundflow.schemas.investment_schemas import InvestmentCreate, InvestmentResponse
from fundflow.schemas.milestone_schemas import MilestoneCreate, MilestoneResponse
from fundflow.services.campaign_service import CampaignService
from fundflow.services.milestone_service import MilestoneService

router = APIRouter()

@router.get("/", response_model=PaginatedResponse[CampaignResponse])
async def list_campaigns(
    status: Optional[CampaignStatusValue] = None,
    industry: Optional[str] = None,
    category: Optional[str] = None,
    stage: Optional[CampaignStage] = None,
    featured: Optional[bool] = None,
    verified: Optional[bool] = None,
    creator_address: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: SortField = "created_at",
    db: Session = Depends(get_db)
):
    """按条件分页获取众筹活动"""
    service = CampaignService(db)
    try:
        items, total = await service.list_campaigns(
            status=status, industry=industry, category=category, stage=stage,
            featured=featured, verified=verified, creator_address=creator_address,
            page=page, limit=limit, sort_by=sort_by
        )
    except Exception as e:
        raise service_error(e, "获取众筹活动列表")
    return PaginatedResponse[CampaignResponse].build(items, total, page, limit)

@router.post("/", response_model=ApiResponse[CampaignResponse], status_code=201)
async def create_campaign(
    campaign_data: CampaignCreate,
    db: Session = Depends(get_db)
):
    """创建众筹活动"""
    service = CampaignService(db)
    try:
        campaign = await service.create_campaign(campaign_data)
    except Exception as e:
        raise service_error(e, "创建众筹活动")
    return ApiResponse[CampaignResponse](message="众筹活动已创建", data=campaign)

@router.get("/search", response_model=PaginatedResponse[CampaignResponse])
async def search_campaigns(
    q: str = Query(..., min_length=1),
    status: Optional[CampaignStatusValue] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """搜索众筹活动"""
    service = CampaignService(db)
    try:
        items, total = await service.search_campaigns(q, status=status, page=page, limit=limit)
    except Exception as e:
        raise service_error(e, "搜索众筹活动")
    return PaginatedResponse[CampaignResponse].build(items, total, page, limit)

@router.get("/featured", response_model=PaginatedResponse[CampaignResponse])
async def get_featured_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """获取精选的进行中活动"""
    service = CampaignService(db)
    try:
        items, total = await service.list_campaigns(status="active", featured=True, page=page, limit=limit)
    except Exception as e:
        raise service_error(e, "获取精选众筹活动")
    return PaginatedResponse[CampaignResponse].build(items, total, page, limit)

@router.get("/trending", response_model=PaginatedResponse[CampaignResponse])
async def get_trending_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """按浏览量获取热门的进行中活动"""
    service = CampaignService(db)
    try:
        items, total = await service.list_campaigns(status="active", sort_by="views", page=page, limit=limit)
    except Exception as e:
        raise service_error(e, "获取热门众筹活动")
    return PaginatedResponse[CampaignResponse].build(items, total, page, limit)

@router.get("/stats", response_model=ApiResponse[CampaignStats])
async def get_campaign_stats(db: Session = Depends(get_db)):
    """获取平台众筹统计"""
    service = CampaignService(db)
    try:
        stats = await service.get_campaign_stats()
    except Exception as e:
        raise service_error(e, "获取众筹统计")
    return ApiResponse[CampaignStats](data=stats)

@router.post("/update-statuses", response_model=ApiResponse[StatusSweepResult])
async def update_statuses(db: Session = Depends(get_db)):
    """立即执行一次状态扫描"""
    try:
        campaigns_updated = await CampaignService(db).update_campaign_statuses()
        milestones_resolved = await MilestoneService(db).resolve_expired_votes()
    except Exception as e:
        raise service_error(e, "更新状态")
    return ApiResponse[StatusSweepResult](
        message="状态已更新",
        data=StatusSweepResult(campaigns_updated=campaigns_updated, milestones_resolved=milestones_resolved)
    )

@router.get("/creator/{wallet_address}", response_model=PaginatedResponse[CampaignResponse])
async def get_campaigns_by_creator(
    wallet_address: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """获取创建者的众筹活动"""
    service = CampaignService(db)
    try:
        items, total = await service.get_campaigns_by_creator(wallet_address, page=page, limit=limit)
    except Exception as e:
        raise service_error(e, "获取创建者的众筹活动")
    return PaginatedResponse[CampaignResponse].build(items, total, page, limit)

@router.get("/investor/{wallet_address}", response_model=PaginatedResponse[CampaignResponse])
async def get_campaigns_by_investor(
    wallet_address: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """获取投资者参与的众筹活动"""
    service = CampaignService(db)
    try:
        items, total = await service.get_campaigns_by_investor(wallet_address, page=page, limit=limit)
    except Exception as e:
        raise service_error(e, "获取投资者参与的众筹活动")
    return PaginatedResponse[CampaignResponse].build(items, total, page, limit)

@router.get("/{campaign_id}", response_model=ApiResponse[CampaignResponse])
async def get_campaign(
    campaign_id: int,
    db: Session = Depends(get_db)
):
    """获取众筹活动详情"""
    service = CampaignService(db)
    try:
        campaign = await service.get_campaign(campaign_id)
    except Exception as e:
        raise service_error(e, "获取众筹活动")
    return ApiResponse[CampaignResponse](data=campaign)

@router.put("/{campaign_id}", response_model=ApiResponse[CampaignResponse])
async def update_campaign(
    campaign_id: int,
    update_data: CampaignUpdate,
    db: Session = Depends(get_db)
):
    """更新众筹活动"""
    service = CampaignService(db)
    try:
        campaign = await service.update_campaign(campaign_id, update_data)
    except Exception as e:
        raise service_error(e, "更新众筹活动")
    return ApiResponse[CampaignResponse](message="众筹活动已更新", data=campaign)

@router.put("/{campaign_id}/like", response_model=ApiResponse[dict])
async def toggle_like(
    campaign_id: int,
    like: LikeRequest,
    db: Session = Depends(get_db)
):
    """点赞或取消点赞"""
    service = CampaignService(db)
    try:
        likes = await service.toggle_like(campaign_id, like.liked)
    except Exception as e:
        raise service_error(e, "点赞")
    return ApiResponse[dict](message="已点赞" if like.liked else "已取消点赞", data={"likes": likes})

@router.put("/{campaign_id}/share", response_model=ApiResponse[dict])
async def increment_share(
    campaign_id: int,
    db: Session = Depends(get_db)
):
    """增加分享次数"""
    service = CampaignService(db)
    try:
        shares = await service.increment_share(campaign_id)
    except Exception as e:
        raise service_error(e, "分享")
    return ApiResponse[dict](message="分享次数已更新", data={"shares": shares})

@router.post("/{campaign_id}/investments", response_model=ApiResponse[InvestmentResponse], status_code=201)
async def add_investment(
    campaign_id: int,
    investment_data: InvestmentCreate,
    db: Session = Depends(get_db)
):
    """记录投资"""
    service = CampaignService(db)
    try:
        investment = await service.add_investment(campaign_id, investment_data)
    except Exception as e:
        raise service_error(e, "记录投资")
    return ApiResponse[InvestmentResponse](message="投资已记录", data=investment)

@router.post("/{campaign_id}/milestones", response_model=ApiResponse[MilestoneResponse], status_code=201)
async def add_milestone(
    campaign_id: int,
    milestone_data: MilestoneCreate,
    db: Session = Depends(get_db)
):
    """创建里程碑"""
    service = CampaignService(db)
    try:
        milestone = await service.add_milestone(campaign_id, milestone_data)
    except Exception as e:
        raise service_error(e, "创建里程碑")
    return ApiResponse[MilestoneResponse](message="里程碑已创建", data=milestone)

@router.get("/{campaign_id}/milestones", response_model=ApiResponse[List[MilestoneResponse]])
async def list_milestones(
    campaign_id: int,
    db: Session = Depends(get_db)
):
    """获取活动的里程碑"""
    service = MilestoneService(db)
    try:
        milestones = await service.list_campaign_milestones(campaign_id)
    except Exception as e:
        raise service_error(e, "获取里程碑列表")
    return ApiResponse[List[MilestoneResponse]](data=milestones)

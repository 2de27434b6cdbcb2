"""
里程碑投票API路由
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from fundflow.api.errors import service_error
from fundflow.core.database import get_db
from fundflow.schemas.common import ApiResponse
from fundflow.schemas.milestone_schemas import (
    FundReleaseRequest,
    MilestoneResponse,
    MilestoneSubmit,
    VoteCreate
)
from fundflow.services.milestone_service import MilestoneService

router = APIRouter()

@router.get("/voting", response_model=ApiResponse[List[MilestoneResponse]])
async def list_open_voting(
    campaign_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """获取当前开放投票的里程碑"""
    service = MilestoneService(db)
    try:
        milestones = await service.list_open_voting(campaign_id)
    except Exception as e:
        raise service_error(e, "获取投票中的里程碑")
    return ApiResponse[List[MilestoneResponse]](data=milestones)

@router.get("/{milestone_id}", response_model=ApiResponse[MilestoneResponse])
async def get_milestone(
    milestone_id: int,
    db: Session = Depends(get_db)
):
    """获取里程碑详情"""
    service = MilestoneService(db)
    try:
        milestone = await service.get_milestone(milestone_id)
    except Exception as e:
        raise service_error(e, "获取里程碑")
    return ApiResponse[MilestoneResponse](data=milestone)

@router.post("/{milestone_id}/submit", response_model=ApiResponse[MilestoneResponse])
async def submit_milestone(
    milestone_id: int,
    submission: MilestoneSubmit,
    db: Session = Depends(get_db)
):
    """提交证明材料，进入投票"""
    service = MilestoneService(db)
    try:
        milestone = await service.submit_for_voting(milestone_id, submission)
    except Exception as e:
        raise service_error(e, "提交里程碑")
    return ApiResponse[MilestoneResponse](message="里程碑已进入投票", data=milestone)

@router.post("/{milestone_id}/votes", response_model=ApiResponse[MilestoneResponse])
async def cast_vote(
    milestone_id: int,
    vote_data: VoteCreate,
    db: Session = Depends(get_db)
):
    """投资者投票"""
    service = MilestoneService(db)
    try:
        milestone = await service.cast_vote(milestone_id, vote_data)
    except Exception as e:
        raise service_error(e, "投票")
    return ApiResponse[MilestoneResponse](message="投票已记录", data=milestone)

@router.post("/{milestone_id}/check-approval", response_model=ApiResponse[MilestoneResponse])
async def check_approval(
    milestone_id: int,
    db: Session = Depends(get_db)
):
    """检查投票结果"""
    service = MilestoneService(db)
    try:
        milestone = await service.check_approval(milestone_id)
    except Exception as e:
        raise service_error(e, "检查投票结果")
    return ApiResponse[MilestoneResponse](message=f"里程碑状态: {milestone.status}", data=milestone)

@router.post("/{milestone_id}/release", response_model=ApiResponse[MilestoneResponse])
async def release_funds(
    milestone_id: int,
    release: FundReleaseRequest,
    db: Session = Depends(get_db)
):
    """释放已通过里程碑的资金"""
    service = MilestoneService(db)
    try:
        milestone = await service.release_funds(milestone_id, release)
    except Exception as e:
        raise service_error(e, "释放资金")
    return ApiResponse[MilestoneResponse](message="资金已释放", data=milestone)

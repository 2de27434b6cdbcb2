"""
状态定时扫描

后台周期性结束已过截止时间的众筹活动，并处理投票已截止的里程碑。
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Tuple
from sqlalchemy.orm import Session
from fundflow.core.config import settings
from fundflow.core.database import SessionLocal
from fundflow.services.campaign_service import CampaignService
from fundflow.services.milestone_service import MilestoneService

logger = logging.getLogger(__name__)


class StatusScheduler:
    """众筹活动与里程碑状态的后台扫描任务"""

    def __init__(self, interval: Optional[float] = None,
                 session_factory: Callable[[], Session] = SessionLocal):
        self.interval = settings.STATUS_SWEEP_INTERVAL if interval is None else interval
        self.session_factory = session_factory
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: Optional[datetime] = None) -> Tuple[int, int]:
        """执行一次扫描，返回（结束的活动数，结束投票的里程碑数）"""
        db = self.session_factory()
        try:
            campaigns_updated = await CampaignService(db).update_campaign_statuses(now)
            milestones_resolved = await MilestoneService(db).resolve_expired_votes(now)
        finally:
            db.close()
        if campaigns_updated or milestones_resolved:
            logger.info("状态扫描完成: %d 个活动结束, %d 个里程碑投票结束", campaigns_updated, milestones_resolved)
        return campaigns_updated, milestones_resolved

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                # 单次扫描失败不影响下一次
                logger.exception("状态扫描失败")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("状态扫描任务已启动，间隔 %s 秒", self.interval)

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("状态扫描任务已停止")

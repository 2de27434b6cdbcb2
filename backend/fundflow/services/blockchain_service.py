"""
模拟区块链确认服务

没有接入真实链，只用延时和随机交易ID模拟链上确认过程。
"""

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass
from typing import Optional
from fundflow.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class TransactionConfirmation:
    """交易确认结果"""
    transaction_id: str
    block_height: int
    confirmations: int


class BlockchainService:
    """模拟链上交易确认"""

    def __init__(self, confirmation_delay: Optional[float] = None):
        self.confirmation_delay = settings.BLOCKCHAIN_CONFIRMATION_DELAY if confirmation_delay is None else confirmation_delay

    @staticmethod
    def generate_transaction_id() -> str:
        return "0x" + uuid.uuid4().hex + uuid.uuid4().hex

    async def confirm_transaction(self, transaction_id: Optional[str] = None,
                                  block_height: Optional[int] = None) -> TransactionConfirmation:
        """等待模拟确认，返回交易ID和区块高度"""
        if self.confirmation_delay > 0:
            await asyncio.sleep(self.confirmation_delay)

        confirmation = TransactionConfirmation(
            transaction_id=transaction_id or self.generate_transaction_id(),
            block_height=block_height if block_height is not None else random.randint(100000, 999999),
            confirmations=1
        )
        logger.info("交易已确认: %s (区块 %d)", confirmation.transaction_id, confirmation.block_height)
        return confirmation

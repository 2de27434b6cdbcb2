"""
数据模型包
"""

from .campaign import Campaign
from .investment import Investment, InvestmentVote, InvestmentPayout
from .milestone import Milestone, MilestoneVote

__all__ = [
    "Campaign",
    "Investment",
    "InvestmentVote",
    "InvestmentPayout",
    "Milestone",
    "MilestoneVote",
]

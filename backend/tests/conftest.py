"""
测试公共夹具
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import fundflow.models  # noqa: F401  注册所有模型
from fundflow.core.config import settings
from fundflow.core.database import Base, get_db
from fundflow.core.utils import utcnow
from fundflow.models.campaign import Campaign
from fundflow.models.investment import Investment
from fundflow.models.milestone import Milestone
from main import app

CREATOR = "SP3FBR2AGK5H9QBDH3EEN6DF8EK8JY7RX8QJ5SVTE"
INVESTOR_A = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
INVESTOR_B = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
INVESTOR_C = "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"


@pytest.fixture(autouse=True)
def instant_confirmation(monkeypatch):
    """测试中不等待模拟的链上确认"""
    monkeypatch.setattr(settings, "BLOCKCHAIN_CONFIRMATION_DELAY", 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_campaign(db):
    """在数据库中创建一个进行中的众筹活动"""
    def _make(**overrides):
        now = utcnow()
        values = dict(
            chain_id=1,
            creator_address=CREATOR.lower(),
            contract_address="SP3FBR2AGK5H9QBDH3EEN6DF8EK8JY7RX8QJ5SVTE.fundflow-core",
            title="Solar Microgrid",
            description="Community-owned solar microgrids",
            target_amount=1000.0,
            deadline=now + timedelta(days=30),
            category="energy",
            industry="cleantech",
            stage="mvp",
            launched_at=now
        )
        values.update(overrides)
        campaign = Campaign(**values)
        db.add(campaign)
        db.commit()
        db.refresh(campaign)
        return campaign
    return _make


@pytest.fixture
def make_investment(db):
    """直接写入一笔投资并更新活动统计"""
    counter = {"n": 0}

    def _make(campaign, investor, amount, status="confirmed"):
        counter["n"] += 1
        fee = amount * 0.025
        investment = Investment(
            investor_address=investor.lower(),
            creator_address=campaign.creator_address,
            amount=amount,
            platform_fee=fee,
            net_amount=amount - fee,
            transaction_id=f"0xfixture{counter['n']:04d}",
            block_height=1000 + counter["n"],
            timestamp=utcnow(),
            status=status
        )
        campaign.add_investment(investment)
        db.commit()
        db.refresh(investment)
        return investment
    return _make


@pytest.fixture
def make_milestone(db):
    """为活动添加一个里程碑"""
    def _make(campaign, **overrides):
        now = utcnow()
        values = dict(
            milestone_index=len(campaign.milestones),
            title="Pilot installation",
            description="Install the first pilot microgrid",
            target_amount=400.0,
            start_date=now,
            expected_completion_date=now + timedelta(days=60),
            voting_deadline=now + timedelta(days=7)
        )
        values.update(overrides)
        milestone = Milestone(**values)
        campaign.milestones.append(milestone)
        db.commit()
        db.refresh(milestone)
        return milestone
    return _make


def future_iso(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()

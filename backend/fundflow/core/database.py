"""
数据库配置
"""
import logging
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from fundflow.core.config import settings
from fundflow.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

# SQLite需要允许跨线程使用连接
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=False  # 设置为True可以看到SQL查询日志
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def commit_session(db: Session) -> None:
    """提交事务；失败时回滚，并发修改和唯一约束冲突转换为ConflictError"""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConflictError("数据已被其他请求修改，请重试")
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"数据冲突: {e.orig}")
    except Exception:
        db.rollback()
        raise

async def init_db():
    """初始化数据库"""
    # 导入所有模型
    from fundflow.models.campaign import Campaign
    from fundflow.models.investment import Investment, InvestmentVote, InvestmentPayout
    from fundflow.models.milestone import Milestone, MilestoneVote

    # 创建所有表
    Base.metadata.create_all(bind=engine)

    logger.info("数据库初始化完成: %s", settings.DATABASE_URL)

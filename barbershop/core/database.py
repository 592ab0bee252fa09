"""
数据库连接管理

一个请求（或一个脚本步骤）对应一个 AsyncSession 工作单元：
正常结束时提交，抛出异常时整体回滚。折扣兑换和预约写入依赖这一点。
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from barbershop.core.config import settings

logger = logging.getLogger(__name__)

# 所有ORM表的基类
Base = declarative_base()

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    """按运行环境创建引擎，测试环境不使用连接池"""
    options = {"echo": settings.debug, "pool_pre_ping": True}
    if settings.is_testing:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
        )
    return create_async_engine(url or settings.database_url_computed, **options)


async def init_database() -> None:
    global engine, async_session_maker

    try:
        engine = build_engine()
        async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        logger.info(f"数据库连接初始化成功 ({settings.environment.value})")
    except Exception as e:
        logger.error(f"数据库连接初始化失败: {e}")
        raise


async def close_database() -> None:
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("数据库连接已关闭")


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """工作单元：提交或整体回滚"""
    if not async_session_maker:
        raise RuntimeError("数据库未初始化，请先调用 init_database()")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI 依赖注入：一个请求一个工作单元"""
    async with session_scope() as session:
        yield session


class DatabaseService:
    """数据库状态检查"""

    async def health_check(self) -> dict:
        if not engine:
            return {"status": "error", "message": "数据库引擎未初始化"}

        try:
            async with engine.connect() as conn:
                value = await conn.scalar(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"数据库健康检查失败: {e}")
            return {"status": "error", "message": f"数据库连接失败: {e}"}

        return {"status": "healthy", "message": "数据库连接正常", "test_query_result": value}


# 全局数据库服务实例
database_service = DatabaseService()

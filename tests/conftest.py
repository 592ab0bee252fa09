"""
测试配置文件 - pytest fixtures和共用配置
"""

import pytest
import pytest_asyncio
from datetime import time
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from barbershop.core.database import Base
from barbershop.models.database import BarberScheduleDB, BarberServiceDB, ServiceDB  # 同时注册所有表
from barbershop.models.actor import Actor, UserRole
from barbershop.models.discount import BookingTarget

from factories import ADMIN_ID, BARBER_ID, CATEGORY_ID, CUSTOMER_ID, SERVICE_ID


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """测试数据库引擎 - SQLite内存库，所有会话共享同一连接"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db_engine) -> AsyncSession:
    """测试数据库会话"""
    async_session_maker = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest_asyncio.fixture
async def seeded_catalog(db_session):
    """示例服务：理发师10提供服务1（50000，30分钟），周一 09:00-17:00 上班"""
    db_session.add(ServiceDB(
        id=SERVICE_ID,
        category_id=CATEGORY_ID,
        name="男士剪发",
        base_price=Decimal("50000.00"),
        duration=30,
        is_active=True
    ))
    db_session.add(BarberServiceDB(
        barber_id=BARBER_ID,
        service_id=SERVICE_ID,
        is_available=True
    ))
    db_session.add(BarberScheduleDB(
        barber_id=BARBER_ID,
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(17, 0),
        is_available=True
    ))
    await db_session.flush()
    return db_session


@pytest.fixture
def booking_target():
    return BookingTarget(service_id=SERVICE_ID, category_id=CATEGORY_ID, barber_id=BARBER_ID)


@pytest.fixture
def admin():
    return Actor(user_id=ADMIN_ID, role=UserRole.ADMIN)


@pytest.fixture
def barber():
    return Actor(user_id=BARBER_ID, role=UserRole.BARBER)


@pytest.fixture
def customer():
    return Actor(user_id=CUSTOMER_ID, role=UserRole.CUSTOMER)

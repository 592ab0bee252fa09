"""
理发店预约数据库初始化脚本

创建数据库和全部数据表，并写入示例服务、理发师服务和每周排班。
"""

import asyncio
import sys
from datetime import time
from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import create_async_engine

from barbershop.core import database
from barbershop.core.config import settings
from barbershop.models.schedule import ScheduleEntry
from barbershop.repositories.booking_repository import BookingRepository
from barbershop.repositories.schedule_repository import ScheduleRepository
from barbershop.services.schedule_service import ScheduleService

# 导入所有数据库模型以确保表被注册
from barbershop.models.database import (  # noqa: F401
    DiscountDB,
    DiscountApplicableDB,
    CustomerDiscountDB,
    DiscountUsageDB,
    BookingDB,
    BarberScheduleDB,
    BarberTimeOffDB,
    ServiceDB,
    BarberServiceDB,
)

SAMPLE_BARBER_ID = 1

SAMPLE_SERVICES = [
    {"id": 1, "category_id": 1, "name": "男士剪发", "base_price": Decimal("50000.00"), "duration": 30},
    {"id": 2, "category_id": 1, "name": "剪发+洗发", "base_price": Decimal("75000.00"), "duration": 45},
    {"id": 3, "category_id": 2, "name": "修胡须", "base_price": Decimal("30000.00"), "duration": 20},
]


async def create_database_if_not_exists():
    """连接 postgres 库，目标数据库不存在时创建"""
    server_url = settings.database_url_computed.replace(f"/{settings.db_name}", "/postgres")
    engine = create_async_engine(server_url, isolation_level="AUTOCOMMIT")

    try:
        async with engine.connect() as conn:
            exists = await conn.scalar(
                text("SELECT 1 FROM pg_database WHERE datname = :db_name"),
                {"db_name": settings.db_name}
            )
            if exists:
                print(f"数据库 '{settings.db_name}' 已存在")
            else:
                await conn.execute(text(f'CREATE DATABASE "{settings.db_name}"'))
                print(f"数据库 '{settings.db_name}' 创建成功")
    finally:
        await engine.dispose()


async def create_tables():
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    print(f"数据表已创建: {', '.join(sorted(database.Base.metadata.tables))}")


async def insert_sample_catalog():
    """示例数据：理发师1提供全部服务，周一至周六 09:00-17:00 上班"""
    async with database.session_scope() as session:
        existing = set((await session.execute(select(ServiceDB.id))).scalars().all())

        for service in SAMPLE_SERVICES:
            if service["id"] in existing:
                print(f"服务已存在: {service['name']}")
                continue
            session.add(ServiceDB(is_active=True, **service))
            session.add(BarberServiceDB(barber_id=SAMPLE_BARBER_ID, service_id=service["id"], is_available=True))
            print(f"插入服务: {service['name']}")

        schedule_service = ScheduleService(ScheduleRepository(session), BookingRepository(session))
        entries = [
            ScheduleEntry(day_of_week=day, is_available=True, start_time=time(9, 0), end_time=time(17, 0))
            for day in range(1, 7)
        ]
        await schedule_service.update_weekly_schedule(SAMPLE_BARBER_ID, entries)
        print("示例排班已就绪")


async def main():
    print("开始初始化理发店预约数据库...")

    try:
        await create_database_if_not_exists()
        await database.init_database()
        await create_tables()
        await insert_sample_catalog()
        print("数据库初始化完成！")
    except Exception as e:
        print(f"数据库初始化失败: {e}")
        sys.exit(1)
    finally:
        await database.close_database()


if __name__ == "__main__":
    asyncio.run(main())

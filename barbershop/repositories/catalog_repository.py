"""
服务项目数据库操作层
"""

from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from barbershop.models.database.catalog_db import ServiceDB, BarberServiceDB


class CatalogRepository:
    """服务项目与理发师服务查询"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_service(self, service_id: int) -> Optional[ServiceDB]:
        result = await self.db.execute(
            select(ServiceDB).where(ServiceDB.id == service_id)
        )
        return result.scalar_one_or_none()

    async def get_barber_service(self, barber_id: int, service_id: int) -> Optional[BarberServiceDB]:
        """获取理发师提供的某项服务（仅可用的）"""
        result = await self.db.execute(
            select(BarberServiceDB).where(
                and_(
                    BarberServiceDB.barber_id == barber_id,
                    BarberServiceDB.service_id == service_id,
                    BarberServiceDB.is_available == True
                )
            )
        )
        return result.scalar_one_or_none()

"""
理发师排班与请假数据库操作层
"""

from typing import List, Optional
from datetime import date

from sqlalchemy import select, delete, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from barbershop.models.schedule import BarberSchedule, BarberTimeOff, ScheduleEntry
from barbershop.models.database.schedule_db import BarberScheduleDB, BarberTimeOffDB

# 咨询锁命名空间，与理发师ID组成双键
TIME_OFF_LOCK_NAMESPACE = 7201


class ScheduleRepository:
    """排班数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_schedule(self, barber_id: int, day_of_week: int, for_update: bool = False) -> Optional[BarberScheduleDB]:
        """获取理发师某个星期几的排班，for_update时加行锁"""
        query = select(BarberScheduleDB).where(
            and_(
                BarberScheduleDB.barber_id == barber_id,
                BarberScheduleDB.day_of_week == day_of_week
            )
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_schedules(self, barber_id: int) -> List[BarberScheduleDB]:
        result = await self.db.execute(
            select(BarberScheduleDB)
            .where(BarberScheduleDB.barber_id == barber_id)
            .order_by(BarberScheduleDB.day_of_week)
        )
        return result.scalars().all()

    async def replace_schedules(self, barber_id: int, entries: List[ScheduleEntry]) -> List[BarberScheduleDB]:
        """删除理发师全部排班后重新插入上班日"""
        await self.db.execute(
            delete(BarberScheduleDB).where(BarberScheduleDB.barber_id == barber_id)
        )

        db_schedules = [
            BarberScheduleDB(
                barber_id=barber_id,
                day_of_week=entry.day_of_week,
                start_time=entry.start_time,
                end_time=entry.end_time,
                is_available=True
            )
            for entry in entries
            if entry.is_available
        ]
        self.db.add_all(db_schedules)
        await self.db.flush()
        return db_schedules

    async def list_time_offs(self, barber_id: int, from_date: Optional[date] = None) -> List[BarberTimeOffDB]:
        """获取理发师请假记录，from_date 为空时返回全部"""
        conditions = [BarberTimeOffDB.barber_id == barber_id]
        if from_date is not None:
            conditions.append(BarberTimeOffDB.end_date >= from_date)

        result = await self.db.execute(
            select(BarberTimeOffDB)
            .where(and_(*conditions))
            .order_by(BarberTimeOffDB.start_date)
        )
        return result.scalars().all()

    async def get_time_offs_covering(self, barber_id: int, day: date) -> List[BarberTimeOffDB]:
        """获取覆盖指定日期的请假记录"""
        result = await self.db.execute(
            select(BarberTimeOffDB).where(
                and_(
                    BarberTimeOffDB.barber_id == barber_id,
                    BarberTimeOffDB.start_date <= day,
                    BarberTimeOffDB.end_date >= day
                )
            )
        )
        return result.scalars().all()

    async def lock_barber_time_offs(self, barber_id: int) -> None:
        """
        串行化同一理发师的请假写入

        PostgreSQL 上取事务级咨询锁，提交或回滚时自动释放。
        SQLite 写事务本身串行，无需额外加锁。
        """
        if self.db.get_bind().dialect.name != "postgresql":
            return
        await self.db.execute(
            select(func.pg_advisory_xact_lock(TIME_OFF_LOCK_NAMESPACE, barber_id))
        )

    async def get_overlapping_time_offs(self, barber_id: int, start_date: date, end_date: date) -> List[BarberTimeOffDB]:
        """获取与 [start_date, end_date] 闭区间重叠的请假记录"""
        result = await self.db.execute(
            select(BarberTimeOffDB).where(
                and_(
                    BarberTimeOffDB.barber_id == barber_id,
                    BarberTimeOffDB.start_date <= end_date,
                    BarberTimeOffDB.end_date >= start_date
                )
            )
        )
        return result.scalars().all()

    async def create_time_off(
        self,
        barber_id: int,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None
    ) -> BarberTimeOffDB:
        db_time_off = BarberTimeOffDB(
            barber_id=barber_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason
        )
        self.db.add(db_time_off)
        await self.db.flush()
        await self.db.refresh(db_time_off)
        return db_time_off

    async def delete_time_off(self, barber_id: int, time_off_id: int) -> bool:
        """只能删除自己的请假记录"""
        result = await self.db.execute(
            delete(BarberTimeOffDB).where(
                and_(
                    BarberTimeOffDB.id == time_off_id,
                    BarberTimeOffDB.barber_id == barber_id
                )
            )
        )
        return result.rowcount > 0

    def schedule_to_model(self, db_schedule: BarberScheduleDB) -> BarberSchedule:
        return BarberSchedule(
            id=db_schedule.id,
            barber_id=db_schedule.barber_id,
            day_of_week=db_schedule.day_of_week,
            start_time=db_schedule.start_time,
            end_time=db_schedule.end_time,
            is_available=db_schedule.is_available
        )

    def time_off_to_model(self, db_time_off: BarberTimeOffDB) -> BarberTimeOff:
        return BarberTimeOff(
            id=db_time_off.id,
            barber_id=db_time_off.barber_id,
            start_date=db_time_off.start_date,
            end_date=db_time_off.end_date,
            reason=db_time_off.reason,
            created_at=db_time_off.created_at
        )

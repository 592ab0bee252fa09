"""
理发师排班服务
管理每周排班和请假，并提供预约时间可用性查询
"""

import logging
from typing import List, Optional
from datetime import date, time, datetime

from barbershop.core.config import settings
from barbershop.core.exceptions import ConflictError, NotFoundError, ValidationError
from barbershop.models.schedule import BarberSchedule, BarberTimeOff, ScheduleEntry
from barbershop.repositories.booking_repository import BookingRepository
from barbershop.repositories.schedule_repository import ScheduleRepository
from barbershop.services import availability

logger = logging.getLogger(__name__)


class ScheduleService:
    """排班与请假业务服务"""

    def __init__(self, schedule_repo: ScheduleRepository, booking_repo: BookingRepository):
        self.schedule_repo = schedule_repo
        self.booking_repo = booking_repo

    async def get_weekly_schedule(self, barber_id: int) -> List[BarberSchedule]:
        db_schedules = await self.schedule_repo.list_schedules(barber_id)
        return [self.schedule_repo.schedule_to_model(db_schedule) for db_schedule in db_schedules]

    async def update_weekly_schedule(self, barber_id: int, entries: List[ScheduleEntry]) -> List[BarberSchedule]:
        """整体替换理发师每周排班，不上班的日期不保存"""
        days = [entry.day_of_week for entry in entries]
        if len(days) != len(set(days)):
            raise ValidationError("同一天只能有一条排班", field="schedules")

        db_schedules = await self.schedule_repo.replace_schedules(barber_id, entries)
        logger.info(f"理发师 {barber_id} 排班已更新，共 {len(db_schedules)} 个上班日")
        return [self.schedule_repo.schedule_to_model(db_schedule) for db_schedule in db_schedules]

    async def _load_gate_inputs(self, barber_id: int, day: date, for_update: bool = False):
        db_schedule = await self.schedule_repo.get_schedule(
            barber_id, availability.day_of_week(day), for_update=for_update
        )
        schedule = self.schedule_repo.schedule_to_model(db_schedule) if db_schedule else None

        time_offs = [
            self.schedule_repo.time_off_to_model(db_time_off)
            for db_time_off in await self.schedule_repo.get_time_offs_covering(barber_id, day)
        ]
        bookings = [
            self.booking_repo.to_model(db_booking)
            for db_booking in await self.booking_repo.get_active_bookings_for_barber_on(barber_id, day)
        ]
        return schedule, time_offs, bookings

    async def is_bookable(
        self,
        barber_id: int,
        day: date,
        start_time: time,
        end_time: time,
        for_update: bool = False
    ) -> bool:
        """理发师在该时间段是否可预约；for_update 时锁定当天排班行"""
        if start_time >= end_time:
            raise ValidationError("开始时间必须早于结束时间", field="start_time")

        schedule, time_offs, bookings = await self._load_gate_inputs(barber_id, day, for_update=for_update)
        return availability.is_bookable(schedule, time_offs, bookings, day, start_time, end_time)

    async def get_available_slots(
        self,
        barber_id: int,
        day: date,
        duration_minutes: int,
        now: Optional[datetime] = None,
        step_minutes: Optional[int] = None
    ) -> List[time]:
        """列出当天可预约的开始时间；当天只返回 now 之后的时间"""
        if duration_minutes <= 0:
            raise ValidationError("服务时长必须大于0", field="duration")

        if now is not None and day < now.date():
            return []

        not_before = now.time() if now is not None and day == now.date() else None
        schedule, time_offs, bookings = await self._load_gate_inputs(barber_id, day)
        return availability.candidate_slots(
            schedule,
            time_offs,
            bookings,
            day,
            duration_minutes=duration_minutes,
            step_minutes=step_minutes or settings.slot_step_minutes,
            not_before=not_before
        )

    async def list_time_offs(self, barber_id: int, from_date: Optional[date] = None) -> List[BarberTimeOff]:
        """请假列表，from_date 给出时只返回未结束的请假"""
        db_time_offs = await self.schedule_repo.list_time_offs(barber_id, from_date=from_date)
        return [self.schedule_repo.time_off_to_model(db_time_off) for db_time_off in db_time_offs]

    async def create_time_off(
        self,
        barber_id: int,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None
    ) -> BarberTimeOff:
        """创建请假，与已有请假重叠时拒绝"""
        if end_date < start_date:
            raise ValidationError("结束日期不能早于开始日期", field="end_date")

        # 加锁后再查重叠
        await self.schedule_repo.lock_barber_time_offs(barber_id)
        overlapping = await self.schedule_repo.get_overlapping_time_offs(barber_id, start_date, end_date)
        if overlapping:
            raise ConflictError("该时间段与已有请假重叠", field="start_date")

        db_time_off = await self.schedule_repo.create_time_off(
            barber_id=barber_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason.strip() if reason and reason.strip() else None
        )
        logger.info(f"理发师 {barber_id} 请假已创建: {start_date} ~ {end_date}")
        return self.schedule_repo.time_off_to_model(db_time_off)

    async def delete_time_off(self, barber_id: int, time_off_id: int) -> bool:
        deleted = await self.schedule_repo.delete_time_off(barber_id, time_off_id)
        if not deleted:
            raise NotFoundError(f"请假记录不存在: {time_off_id}", field="time_off_id")
        return deleted

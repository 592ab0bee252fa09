"""
预约时间可用性判断（纯函数）
"""

from datetime import date, time, datetime, timedelta
from typing import Iterable, List, Optional

from barbershop.core.exceptions import ValidationError
from barbershop.models.booking import Booking, BookingStatus
from barbershop.models.schedule import BarberSchedule, BarberTimeOff


def day_of_week(day: date) -> int:
    """0=周日, 1=周一 ... 6=周六"""
    return (day.weekday() + 1) % 7


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """半开区间 [start, end) 是否重叠"""
    return start_a < end_b and end_a > start_b


def date_ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """闭区间日期是否重叠"""
    return start_a <= end_b and end_a >= start_b


def within_schedule(schedule: Optional[BarberSchedule], day: date, start: time, end: time) -> bool:
    if schedule is None or not schedule.is_available:
        return False
    if schedule.day_of_week != day_of_week(day):
        return False
    return schedule.start_time <= start and end <= schedule.end_time


def on_time_off(time_offs: Iterable[BarberTimeOff], day: date) -> bool:
    return any(time_off.covers(day) for time_off in time_offs)


def has_booking_conflict(bookings: Iterable[Booking], day: date, start: time, end: time) -> bool:
    """与当天任一未取消的预约重叠即冲突"""
    for booking in bookings:
        if booking.status == BookingStatus.CANCELLED or booking.booking_date != day:
            continue
        if intervals_overlap(booking.start_time, booking.end_time, start, end):
            return True
    return False


def is_bookable(
    schedule: Optional[BarberSchedule],
    time_offs: Iterable[BarberTimeOff],
    bookings: Iterable[Booking],
    day: date,
    start: time,
    end: time
) -> bool:
    """判断 [start, end) 在该日期是否可预约"""
    if start >= end:
        raise ValidationError("开始时间必须早于结束时间", field="start_time")

    if not within_schedule(schedule, day, start, end):
        return False
    if on_time_off(time_offs, day):
        return False
    return not has_booking_conflict(bookings, day, start, end)


def add_minutes(value: time, minutes: int) -> Optional[time]:
    """时间加分钟，跨天时返回None"""
    moved = datetime.combine(date.min, value) + timedelta(minutes=minutes)
    if moved.date() != date.min:
        return None
    return moved.time()


def candidate_slots(
    schedule: Optional[BarberSchedule],
    time_offs: Iterable[BarberTimeOff],
    bookings: Iterable[Booking],
    day: date,
    duration_minutes: int,
    step_minutes: int,
    not_before: Optional[time] = None
) -> List[time]:
    """按固定步长列出当天所有可预约的开始时间"""
    if schedule is None or duration_minutes <= 0 or step_minutes <= 0:
        return []

    time_offs = list(time_offs)
    bookings = list(bookings)
    slots = []
    start = schedule.start_time
    while start is not None and start < schedule.end_time:
        end = add_minutes(start, duration_minutes)
        if end is None or end > schedule.end_time:
            break
        if (not_before is None or start >= not_before) and is_bookable(schedule, time_offs, bookings, day, start, end):
            slots.append(start)
        start = add_minutes(start, step_minutes)
    return slots

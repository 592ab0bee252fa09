"""
ScheduleService测试 - 排班、请假和可预约时间
"""

import pytest
from datetime import date, datetime, time
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from barbershop.core.exceptions import ConflictError, NotFoundError, ValidationError
from barbershop.models.booking import BookingStatus
from barbershop.models.schedule import ScheduleEntry
from barbershop.repositories.booking_repository import BookingRepository
from barbershop.repositories.schedule_repository import ScheduleRepository
from barbershop.services.schedule_service import ScheduleService

from factories import BARBER_ID, MONDAY, OTHER_BARBER_ID, TUESDAY, make_booking


@pytest.fixture
def schedule_service(db_session):
    return ScheduleService(ScheduleRepository(db_session), BookingRepository(db_session))


@pytest.mark.asyncio
class TestTimeOff:
    """请假管理"""

    async def test_overlapping_time_off_rejected(self, schedule_service):
        """已有 06-10~06-12 的请假，再申请 06-11~06-13 时冲突"""
        await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 12), "休假")

        with pytest.raises(ConflictError):
            await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 11), date(2025, 6, 13))

        time_offs = await schedule_service.list_time_offs(BARBER_ID)
        assert len(time_offs) == 1

    async def test_touching_time_off_rejected(self, schedule_service):
        """闭区间：首尾同一天也算重叠"""
        await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 12))

        with pytest.raises(ConflictError):
            await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 12), date(2025, 6, 14))

        created = await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 13), date(2025, 6, 14))
        assert created.start_date == date(2025, 6, 13)

    async def test_other_barber_time_off_does_not_conflict(self, schedule_service):
        await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 12))
        created = await schedule_service.create_time_off(OTHER_BARBER_ID, date(2025, 6, 10), date(2025, 6, 12))

        assert created.barber_id == OTHER_BARBER_ID

    async def test_end_before_start(self, schedule_service):
        with pytest.raises(ValidationError):
            await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 12), date(2025, 6, 10))

    async def test_single_day_and_blank_reason(self, schedule_service):
        created = await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 10), "   ")

        assert created.id is not None
        assert created.reason is None
        assert created.covers(date(2025, 6, 10))

    async def test_list_time_offs_from_date(self, schedule_service):
        await schedule_service.create_time_off(BARBER_ID, date(2025, 5, 1), date(2025, 5, 3))
        await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 12))

        upcoming = await schedule_service.list_time_offs(BARBER_ID, from_date=date(2025, 6, 1))

        assert [time_off.start_date for time_off in upcoming] == [date(2025, 6, 10)]

    async def test_delete_time_off(self, schedule_service):
        created = await schedule_service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 12))

        with pytest.raises(NotFoundError):
            await schedule_service.delete_time_off(OTHER_BARBER_ID, created.id)

        assert await schedule_service.delete_time_off(BARBER_ID, created.id)
        assert await schedule_service.list_time_offs(BARBER_ID) == []

    async def test_time_off_lock_is_noop_on_sqlite(self, db_session):
        repo = ScheduleRepository(db_session)
        await repo.lock_barber_time_offs(BARBER_ID)

        assert await repo.list_time_offs(BARBER_ID) == []


@pytest.mark.asyncio
class TestTimeOffConcurrency:
    """模拟并发请假：重叠检查必须在加锁之后"""

    @pytest.fixture
    def mock_schedule_repo(self):
        repo = AsyncMock(spec=ScheduleRepository)
        calls = []
        repo.lock_barber_time_offs.side_effect = lambda barber_id: calls.append("lock")
        repo.get_overlapping_time_offs.side_effect = lambda *args: calls.append("overlap") or []
        repo.calls = calls
        return repo

    async def test_lock_taken_before_overlap_check(self, mock_schedule_repo):
        service = ScheduleService(mock_schedule_repo, AsyncMock(spec=BookingRepository))

        await service.create_time_off(BARBER_ID, date(2025, 6, 10), date(2025, 6, 12))

        assert mock_schedule_repo.calls == ["lock", "overlap"]
        mock_schedule_repo.lock_barber_time_offs.assert_awaited_once_with(BARBER_ID)
        mock_schedule_repo.create_time_off.assert_awaited_once()

    async def test_overlap_committed_while_waiting_for_lock(self, mock_schedule_repo):
        """等锁期间另一请求已写入重叠请假，本次拒绝且不写入"""
        mock_schedule_repo.get_overlapping_time_offs.side_effect = None
        mock_schedule_repo.get_overlapping_time_offs.return_value = [MagicMock()]
        service = ScheduleService(mock_schedule_repo, AsyncMock(spec=BookingRepository))

        with pytest.raises(ConflictError):
            await service.create_time_off(BARBER_ID, date(2025, 6, 11), date(2025, 6, 13))

        mock_schedule_repo.lock_barber_time_offs.assert_awaited_once_with(BARBER_ID)
        mock_schedule_repo.create_time_off.assert_not_called()


@pytest.mark.asyncio
class TestWeeklySchedule:
    """每周排班"""

    async def test_update_weekly_schedule_replaces_days(self, schedule_service, seeded_catalog):
        entries = [
            ScheduleEntry(day_of_week=2, is_available=True, start_time=time(10, 0), end_time=time(18, 0)),
            ScheduleEntry(day_of_week=3, is_available=False),
        ]

        updated = await schedule_service.update_weekly_schedule(BARBER_ID, entries)

        assert [schedule.day_of_week for schedule in updated] == [2]
        schedules = await schedule_service.get_weekly_schedule(BARBER_ID)
        assert [schedule.day_of_week for schedule in schedules] == [2]

    async def test_duplicate_days_rejected(self, schedule_service):
        entries = [
            ScheduleEntry(day_of_week=1, is_available=True, start_time=time(9, 0), end_time=time(12, 0)),
            ScheduleEntry(day_of_week=1, is_available=True, start_time=time(13, 0), end_time=time(17, 0)),
        ]

        with pytest.raises(ValidationError):
            await schedule_service.update_weekly_schedule(BARBER_ID, entries)


@pytest.mark.asyncio
class TestBookableGate:
    """可预约判断（真实数据库）"""

    async def test_only_scheduled_day_is_bookable(self, schedule_service, seeded_catalog):
        """只在周一排班：周一可约，周二不可约"""
        assert await schedule_service.is_bookable(BARBER_ID, MONDAY, time(10, 0), time(10, 30))
        assert not await schedule_service.is_bookable(BARBER_ID, TUESDAY, time(10, 0), time(10, 30))

    async def test_outside_working_hours(self, schedule_service, seeded_catalog):
        assert not await schedule_service.is_bookable(BARBER_ID, MONDAY, time(8, 30), time(9, 30))
        assert not await schedule_service.is_bookable(BARBER_ID, MONDAY, time(16, 45), time(17, 15))
        assert await schedule_service.is_bookable(BARBER_ID, MONDAY, time(16, 30), time(17, 0))

    async def test_time_off_blocks_day(self, schedule_service, seeded_catalog):
        await schedule_service.create_time_off(BARBER_ID, MONDAY, MONDAY)

        assert not await schedule_service.is_bookable(BARBER_ID, MONDAY, time(10, 0), time(10, 30))

    async def test_existing_booking_blocks_overlap(self, schedule_service, seeded_catalog):
        booking_repo = BookingRepository(seeded_catalog)
        await booking_repo.create(make_booking(start_time=time(14, 0), end_time=time(14, 30)))

        assert not await schedule_service.is_bookable(BARBER_ID, MONDAY, time(14, 15), time(14, 45))
        assert await schedule_service.is_bookable(BARBER_ID, MONDAY, time(14, 30), time(15, 0))

    async def test_cancelled_booking_frees_slot(self, schedule_service, seeded_catalog):
        booking_repo = BookingRepository(seeded_catalog)
        await booking_repo.create(make_booking(status=BookingStatus.CANCELLED))

        assert await schedule_service.is_bookable(BARBER_ID, MONDAY, time(14, 0), time(14, 30))

    async def test_for_update_gives_same_answer(self, schedule_service, seeded_catalog):
        assert await schedule_service.is_bookable(BARBER_ID, MONDAY, time(10, 0), time(10, 30), for_update=True)

    async def test_empty_range_rejected(self, schedule_service, seeded_catalog):
        with pytest.raises(ValidationError):
            await schedule_service.is_bookable(BARBER_ID, MONDAY, time(10, 0), time(10, 0))


@pytest.mark.asyncio
class TestAvailableSlots:
    """可预约时间列表"""

    async def test_slots_skip_booked_time(self, schedule_service, seeded_catalog):
        booking_repo = BookingRepository(seeded_catalog)
        await booking_repo.create(make_booking(
            start_time=time(9, 30),
            end_time=time(10, 0),
            original_price=Decimal("50000"),
            total_price=Decimal("50000")
        ))

        slots = await schedule_service.get_available_slots(BARBER_ID, MONDAY, duration_minutes=30)

        assert slots[:3] == [time(9, 0), time(10, 0), time(10, 30)]
        assert time(9, 30) not in slots
        assert slots[-1] == time(16, 30)

    async def test_slots_today_start_after_now(self, schedule_service, seeded_catalog):
        now = datetime.combine(MONDAY, time(15, 10))

        slots = await schedule_service.get_available_slots(BARBER_ID, MONDAY, duration_minutes=30, now=now)

        assert slots == [time(15, 30), time(16, 0), time(16, 30)]

    async def test_slots_for_past_day_empty(self, schedule_service, seeded_catalog):
        now = datetime.combine(TUESDAY, time(8, 0))

        assert await schedule_service.get_available_slots(BARBER_ID, MONDAY, 30, now=now) == []

    async def test_slots_for_unscheduled_day_empty(self, schedule_service, seeded_catalog):
        assert await schedule_service.get_available_slots(BARBER_ID, TUESDAY, 30) == []

    async def test_invalid_duration(self, schedule_service):
        with pytest.raises(ValidationError):
            await schedule_service.get_available_slots(BARBER_ID, MONDAY, 0)

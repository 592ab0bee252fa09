"""
预约状态机测试
"""

import pytest
from datetime import datetime, time, timedelta

from barbershop.core.exceptions import InvalidTransitionError, PermissionDeniedError, ValidationError
from barbershop.models.actor import Actor, UserRole
from barbershop.models.booking import BookingStatus
from barbershop.services.booking_state_machine import ALLOWED_TRANSITIONS, transition

from factories import ADMIN_ID, BARBER_ID, CUSTOMER_ID, MONDAY, NOW, OTHER_BARBER_ID, OTHER_CUSTOMER_ID, make_booking


ALL_STATUSES = list(BookingStatus)


class TestTransitionTable:
    """状态流转表"""

    def test_pending_cannot_jump_to_completed(self, admin):
        """待确认的预约不能直接完成"""
        booking = make_booking(status=BookingStatus.PENDING)

        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(booking, BookingStatus.COMPLETED, admin, now=NOW)

        assert exc_info.value.current_status == "pending"
        assert exc_info.value.requested_status == "completed"

    def test_full_happy_path(self, barber):
        booking = make_booking()
        for status in (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
            booking = transition(booking, status, barber, now=NOW)
            assert booking.status == status

    @pytest.mark.parametrize("current", ALL_STATUSES)
    @pytest.mark.parametrize("requested", ALL_STATUSES)
    def test_admin_follows_table_exactly(self, admin, current, requested):
        booking = make_booking(
            status=current,
            cancelled_by=ADMIN_ID if current == BookingStatus.CANCELLED else None
        )

        if requested in ALLOWED_TRANSITIONS[current]:
            result = transition(booking, requested, admin, "管理员操作", now=NOW)
            assert result.status == requested
        else:
            with pytest.raises(InvalidTransitionError):
                transition(booking, requested, admin, "管理员操作", now=NOW)

    def test_completed_is_terminal(self, admin):
        booking = make_booking(status=BookingStatus.COMPLETED)
        for status in ALL_STATUSES:
            with pytest.raises(InvalidTransitionError):
                transition(booking, status, admin, "原因", now=NOW)

    def test_input_not_mutated(self, admin):
        booking = make_booking()
        result = transition(booking, BookingStatus.CONFIRMED, admin, now=NOW)

        assert booking.status == BookingStatus.PENDING
        assert result is not booking
        assert result.id == booking.id


class TestCancellation:
    """取消与恢复"""

    def test_admin_cancel_requires_reason(self, admin):
        booking = make_booking(status=BookingStatus.CONFIRMED)

        with pytest.raises(ValidationError):
            transition(booking, BookingStatus.CANCELLED, admin, now=NOW)
        with pytest.raises(ValidationError):
            transition(booking, BookingStatus.CANCELLED, admin, "   ", now=NOW)

    def test_admin_cancel_records_reason_and_actor(self, admin):
        booking = make_booking(status=BookingStatus.CONFIRMED)

        result = transition(booking, BookingStatus.CANCELLED, admin, "  理发师生病  ", now=NOW)

        assert result.status == BookingStatus.CANCELLED
        assert result.cancellation_reason == "理发师生病"
        assert result.cancelled_by == ADMIN_ID

    def test_barber_cancel_reason_optional(self, barber):
        booking = make_booking(status=BookingStatus.IN_PROGRESS)

        result = transition(booking, BookingStatus.CANCELLED, barber, now=NOW)

        assert result.cancelled_by == BARBER_ID
        assert result.cancellation_reason is None

    def test_reinstate_clears_cancellation(self, admin):
        booking = make_booking(status=BookingStatus.CANCELLED, cancellation_reason="误操作", cancelled_by=ADMIN_ID)

        result = transition(booking, BookingStatus.CONFIRMED, admin, now=NOW)

        assert result.status == BookingStatus.CONFIRMED
        assert result.cancellation_reason is None
        assert result.cancelled_by is None

    def test_cancelled_cannot_go_back_to_pending(self, admin):
        booking = make_booking(status=BookingStatus.CANCELLED, cancelled_by=ADMIN_ID)
        with pytest.raises(InvalidTransitionError):
            transition(booking, BookingStatus.PENDING, admin, now=NOW)


class TestRoles:
    """角色权限"""

    def test_barber_cannot_touch_other_barbers_booking(self):
        other_barber = Actor(user_id=OTHER_BARBER_ID, role=UserRole.BARBER)
        with pytest.raises(PermissionDeniedError):
            transition(make_booking(), BookingStatus.CONFIRMED, other_barber, now=NOW)

    def test_customer_can_cancel_own_booking(self, customer):
        result = transition(make_booking(), BookingStatus.CANCELLED, customer, "临时有事", now=NOW)

        assert result.status == BookingStatus.CANCELLED
        assert result.cancelled_by == CUSTOMER_ID
        assert result.cancellation_reason == "临时有事"

    def test_customer_cannot_confirm(self, customer):
        with pytest.raises(PermissionDeniedError):
            transition(make_booking(), BookingStatus.CONFIRMED, customer, now=NOW)

    def test_customer_cannot_cancel_others_booking(self):
        other = Actor(user_id=OTHER_CUSTOMER_ID, role=UserRole.CUSTOMER)
        with pytest.raises(PermissionDeniedError):
            transition(make_booking(), BookingStatus.CANCELLED, other, now=NOW)

    def test_customer_cannot_cancel_in_progress(self, customer):
        booking = make_booking(status=BookingStatus.IN_PROGRESS)
        with pytest.raises(InvalidTransitionError):
            transition(booking, BookingStatus.CANCELLED, customer, now=NOW)

    def test_customer_cancel_window(self, customer):
        """开始前30分钟内客户不能取消"""
        booking = make_booking(booking_date=MONDAY, start_time=time(14, 0), end_time=time(14, 30))
        starts_at = datetime.combine(MONDAY, time(14, 0))

        result = transition(booking, BookingStatus.CANCELLED, customer, now=starts_at - timedelta(minutes=30))
        assert result.status == BookingStatus.CANCELLED

        with pytest.raises(InvalidTransitionError):
            transition(booking, BookingStatus.CANCELLED, customer, now=starts_at - timedelta(minutes=29))

    def test_admin_can_cancel_inside_window(self, admin):
        booking = make_booking(booking_date=MONDAY, start_time=time(14, 0), end_time=time(14, 30))
        now = datetime.combine(MONDAY, time(13, 50))

        result = transition(booking, BookingStatus.CANCELLED, admin, "店铺停电", now=now)

        assert result.status == BookingStatus.CANCELLED

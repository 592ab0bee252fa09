"""
预约状态机

只负责判断状态流转是否合法并返回新的预约副本，不做持久化。
"""

from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from barbershop.core.config import settings
from barbershop.core.exceptions import InvalidTransitionError, PermissionDeniedError, ValidationError
from barbershop.models.actor import Actor
from barbershop.models.booking import Booking, BookingStatus


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset({BookingStatus.CONFIRMED}),
}

# 客户只能取消这两种状态的预约
CUSTOMER_CANCELLABLE = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def can_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def customer_can_cancel(booking: Booking, now: datetime) -> bool:
    """客户取消需要在开始前至少 cutoff 分钟"""
    if booking.status not in CUSTOMER_CANCELLABLE:
        return False
    cutoff = timedelta(minutes=settings.customer_cancellation_cutoff_minutes)
    return booking.starts_at - now >= cutoff


def _check_actor(booking: Booking, requested: BookingStatus, actor: Actor, now: datetime) -> None:
    if actor.is_admin:
        return

    if actor.is_barber:
        if booking.barber_id != actor.user_id:
            raise PermissionDeniedError("只能操作自己的预约")
        return

    if booking.customer_id != actor.user_id:
        raise PermissionDeniedError("只能操作自己的预约")
    if requested != BookingStatus.CANCELLED:
        raise PermissionDeniedError("客户只能取消预约")
    if not customer_can_cancel(booking, now):
        raise InvalidTransitionError(
            f"预约开始前{settings.customer_cancellation_cutoff_minutes}分钟内或当前状态下不能取消",
            current_status=booking.status.value,
            requested_status=requested.value
        )


def transition(
    booking: Booking,
    requested_status: BookingStatus,
    actor: Actor,
    cancellation_reason: Optional[str] = None,
    *,
    now: datetime
) -> Booking:
    """校验并执行状态流转，返回更新后的预约副本"""
    requested_status = BookingStatus(requested_status)
    current = booking.status

    if not can_transition(current, requested_status):
        raise InvalidTransitionError(
            f"预约状态不能从 {current.value} 变更为 {requested_status.value}",
            current_status=current.value,
            requested_status=requested_status.value
        )

    _check_actor(booking, requested_status, actor, now)

    reason = cancellation_reason.strip() if cancellation_reason else None

    if requested_status == BookingStatus.CANCELLED:
        if actor.is_admin and not reason:
            raise ValidationError("管理员取消预约必须填写取消原因", field="cancellation_reason")
        updates = {
            "status": requested_status,
            "cancellation_reason": reason,
            "cancelled_by": actor.user_id,
        }
    elif current == BookingStatus.CANCELLED:
        # 恢复预约时清除取消信息
        updates = {
            "status": requested_status,
            "cancellation_reason": None,
            "cancelled_by": None,
        }
    else:
        updates = {"status": requested_status}

    return booking.model_copy(update=updates)

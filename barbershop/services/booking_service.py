"""
预约业务服务层
负责预约创建（价格、时间、折扣）和状态变更
"""

import logging
from typing import List, Optional, Dict, Tuple
from datetime import datetime

from barbershop.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from barbershop.core.money import ZERO, quantize_money
from barbershop.models.actor import Actor
from barbershop.models.booking import Booking, BookingCreate, BookingStatus, BookingStatusUpdate, PaymentStatus
from barbershop.models.discount import BookingTarget, Discount, DiscountEligibility
from barbershop.repositories.booking_repository import BookingRepository
from barbershop.repositories.catalog_repository import CatalogRepository
from barbershop.repositories.discount_repository import DiscountRepository
from barbershop.services import availability
from barbershop.services.booking_state_machine import transition
from barbershop.services.discount_evaluator import evaluate_discount
from barbershop.services.discount_ledger import DiscountLedger
from barbershop.services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)


class BookingService:
    """预约业务服务"""

    def __init__(
        self,
        booking_repo: BookingRepository,
        discount_repo: DiscountRepository,
        catalog_repo: CatalogRepository,
        schedule_service: ScheduleService,
        ledger: Optional[DiscountLedger] = None
    ):
        self.booking_repo = booking_repo
        self.discount_repo = discount_repo
        self.catalog_repo = catalog_repo
        self.schedule_service = schedule_service
        self.ledger = ledger or DiscountLedger(discount_repo)

    async def _evaluate_code(
        self,
        code: str,
        target: BookingTarget,
        customer_id: int,
        order_amount,
        now: datetime
    ) -> Tuple[Discount, DiscountEligibility]:
        db_discount = await self.discount_repo.get_by_code(code)
        if not db_discount:
            raise ValidationError("折扣码不存在", field="discount_code")

        discount = self.discount_repo.to_model(db_discount)
        customer = await self.discount_repo.get_customer_usage_context(discount.id, customer_id)
        eligibility = evaluate_discount(discount, target, customer, order_amount, now)
        if not eligibility.is_eligible:
            raise ValidationError(eligibility.message, field="discount_code")
        return discount, eligibility

    async def create_booking(self, customer_id: int, booking_data: BookingCreate, now: datetime) -> Booking:
        """创建预约：校验服务和时间，应用折扣，并在同一事务中记录折扣使用"""
        barber_service = await self.catalog_repo.get_barber_service(booking_data.barber_id, booking_data.service_id)
        if not barber_service:
            raise ValidationError("该理发师不提供此服务", field="service_id")

        service = await self.catalog_repo.get_service(booking_data.service_id)
        if not service or not service.is_active:
            raise NotFoundError(f"服务不存在: {booking_data.service_id}", field="service_id")

        price = quantize_money(
            barber_service.custom_price if barber_service.custom_price is not None else service.base_price
        )
        duration = barber_service.custom_duration or service.duration

        starts_at = datetime.combine(booking_data.booking_date, booking_data.start_time)
        if starts_at < now:
            raise ValidationError("不能预约过去的时间", field="booking_date")

        end_time = availability.add_minutes(booking_data.start_time, duration)
        if end_time is None:
            raise ValidationError("预约不能跨天", field="start_time")

        # 锁定当天排班后再检查，防止重复预约
        bookable = await self.schedule_service.is_bookable(
            booking_data.barber_id,
            booking_data.booking_date,
            booking_data.start_time,
            end_time,
            for_update=True
        )
        if not bookable:
            raise ConflictError("该时间段不可预约", field="start_time")

        target = BookingTarget(
            service_id=service.id,
            category_id=service.category_id,
            barber_id=booking_data.barber_id
        )

        discount = None
        discount_amount = ZERO
        total_price = price
        if booking_data.discount_code:
            discount, eligibility = await self._evaluate_code(
                booking_data.discount_code, target, customer_id, price, now
            )
            discount_amount = eligibility.discount_amount
            total_price = eligibility.final_amount

        booking = Booking(
            customer_id=customer_id,
            barber_id=booking_data.barber_id,
            service_id=service.id,
            booking_date=booking_data.booking_date,
            start_time=booking_data.start_time,
            end_time=end_time,
            original_price=price,
            discount_id=discount.id if discount else None,
            discount_amount=discount_amount,
            total_price=total_price,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            notes=booking_data.notes
        )
        db_booking = await self.booking_repo.create(booking)

        if discount:
            await self.ledger.redeem(
                discount_id=discount.id,
                customer_id=customer_id,
                booking_id=db_booking.id,
                target=target,
                original_amount=price,
                discount_amount=discount_amount,
                now=now
            )

        logger.info(f"预约创建成功: booking={db_booking.id} customer={customer_id} barber={booking_data.barber_id}")
        return self.booking_repo.to_model(db_booking)

    async def update_status(
        self,
        booking_id: int,
        status_update: BookingStatusUpdate,
        actor: Actor,
        now: datetime
    ) -> Booking:
        """变更预约状态，数据库中的状态已被他人修改时抛出 ConflictError"""
        db_booking = await self.booking_repo.get_by_id(booking_id)
        if not db_booking:
            raise NotFoundError(f"预约不存在: {booking_id}", field="booking_id")

        booking = self.booking_repo.to_model(db_booking)
        updated = transition(
            booking,
            status_update.status,
            actor,
            status_update.cancellation_reason,
            now=now
        )

        if booking.status == BookingStatus.CANCELLED and updated.status != BookingStatus.CANCELLED:
            # 取消期间时段可能已被他人预约，恢复前重新检查
            bookable = await self.schedule_service.is_bookable(
                booking.barber_id,
                booking.booking_date,
                booking.start_time,
                booking.end_time,
                for_update=True
            )
            if not bookable:
                raise ConflictError("该时间段不可预约", field="start_time")

        if not await self.booking_repo.update_status_if_current(updated, expected_status=booking.status):
            raise ConflictError("预约状态已被修改，请刷新后重试", field="status")

        logger.info(
            f"预约状态变更: booking={booking_id} {booking.status.value} -> {updated.status.value} "
            f"by {actor.role.value}:{actor.user_id}"
        )
        db_booking = await self.booking_repo.get_by_id(booking_id, populate_existing=True)
        return self.booking_repo.to_model(db_booking)

    async def get_booking(self, booking_id: int, actor: Actor) -> Booking:
        """获取预约详情（管理员、预约客户、对应理发师可见）"""
        db_booking = await self.booking_repo.get_by_id(booking_id)
        if not db_booking:
            raise NotFoundError(f"预约不存在: {booking_id}", field="booking_id")

        booking = self.booking_repo.to_model(db_booking)
        if actor.is_admin:
            return booking
        if actor.is_barber and booking.barber_id == actor.user_id:
            return booking
        if actor.is_customer and booking.customer_id == actor.user_id:
            return booking
        raise PermissionDeniedError("无权查看该预约")

    async def get_customer_bookings(
        self,
        customer_id: int,
        status_filter: Optional[BookingStatus] = None,
        page: int = 1,
        page_size: int = 20
    ) -> List[Booking]:
        offset = (page - 1) * page_size
        db_bookings = await self.booking_repo.get_customer_bookings(
            customer_id, status_filter=status_filter, limit=page_size, offset=offset
        )
        return [self.booking_repo.to_model(db_booking) for db_booking in db_bookings]

    async def count_by_status(self, customer_id: Optional[int] = None, barber_id: Optional[int] = None) -> Dict[str, int]:
        return await self.booking_repo.count_by_status(customer_id=customer_id, barber_id=barber_id)

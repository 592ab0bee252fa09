"""
预约数据库操作层
"""

from typing import List, Optional, Dict
from datetime import date

from sqlalchemy import select, update, and_, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from barbershop.models.booking import Booking, BookingStatus
from barbershop.models.database.booking_db import BookingDB


class BookingRepository:
    """预约数据库操作层"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, booking_id: int, populate_existing: bool = False) -> Optional[BookingDB]:
        """根据ID获取预约"""
        query = select(BookingDB).where(BookingDB.id == booking_id)
        if populate_existing:
            query = query.execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, booking: Booking) -> BookingDB:
        """创建预约"""
        db_booking = BookingDB(
            customer_id=booking.customer_id,
            barber_id=booking.barber_id,
            service_id=booking.service_id,
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            original_price=booking.original_price,
            discount_id=booking.discount_id,
            discount_amount=booking.discount_amount,
            total_price=booking.total_price,
            status=booking.status.value,
            payment_status=booking.payment_status.value,
            notes=booking.notes
        )

        self.db.add(db_booking)
        await self.db.flush()  # 获取生成的ID
        await self.db.refresh(db_booking)
        return db_booking

    async def get_active_bookings_for_barber_on(self, barber_id: int, booking_date: date) -> List[BookingDB]:
        """获取理发师某天所有未取消的预约"""
        result = await self.db.execute(
            select(BookingDB).where(
                and_(
                    BookingDB.barber_id == barber_id,
                    BookingDB.booking_date == booking_date,
                    BookingDB.status != BookingStatus.CANCELLED.value
                )
            ).order_by(BookingDB.start_time)
        )
        return result.scalars().all()

    async def update_status_if_current(self, booking: Booking, expected_status: BookingStatus) -> bool:
        """仅当数据库中的状态仍为 expected_status 时才写入新状态"""
        result = await self.db.execute(
            update(BookingDB)
            .where(
                and_(
                    BookingDB.id == booking.id,
                    BookingDB.status == expected_status.value
                )
            )
            .values(
                status=booking.status.value,
                cancellation_reason=booking.cancellation_reason,
                cancelled_by=booking.cancelled_by
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def get_customer_bookings(
        self,
        customer_id: int,
        status_filter: Optional[BookingStatus] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[BookingDB]:
        """获取客户预约列表"""
        conditions = [BookingDB.customer_id == customer_id]

        if status_filter:
            conditions.append(BookingDB.status == status_filter.value)

        query = select(BookingDB).where(
            and_(*conditions)
        ).order_by(desc(BookingDB.booking_date), desc(BookingDB.start_time)).limit(limit).offset(offset)

        result = await self.db.execute(query)
        return result.scalars().all()

    async def count_by_status(
        self,
        customer_id: Optional[int] = None,
        barber_id: Optional[int] = None
    ) -> Dict[str, int]:
        """按状态统计预约数量"""
        conditions = []
        if customer_id is not None:
            conditions.append(BookingDB.customer_id == customer_id)
        if barber_id is not None:
            conditions.append(BookingDB.barber_id == barber_id)

        result = await self.db.execute(
            select(BookingDB.status, func.count(BookingDB.id))
            .where(*conditions)
            .group_by(BookingDB.status)
        )

        counts = {status.value: 0 for status in BookingStatus}
        for status, count in result.fetchall():
            counts[status] = count
        return counts

    def to_model(self, db_booking: BookingDB) -> Booking:
        """转换为Pydantic模型"""
        return Booking(
            id=db_booking.id,
            customer_id=db_booking.customer_id,
            barber_id=db_booking.barber_id,
            service_id=db_booking.service_id,
            booking_date=db_booking.booking_date,
            start_time=db_booking.start_time,
            end_time=db_booking.end_time,
            original_price=db_booking.original_price,
            discount_id=db_booking.discount_id,
            discount_amount=db_booking.discount_amount,
            total_price=db_booking.total_price,
            status=db_booking.status,
            payment_status=db_booking.payment_status,
            notes=db_booking.notes,
            cancellation_reason=db_booking.cancellation_reason,
            cancelled_by=db_booking.cancelled_by,
            created_at=db_booking.created_at,
            updated_at=db_booking.updated_at
        )

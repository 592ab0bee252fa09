"""
预约数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, Date, Time, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from barbershop.core.database import Base


class BookingDB(Base):
    """预约表"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="预约ID")
    customer_id = Column(Integer, nullable=False, index=True, comment="客户ID")
    barber_id = Column(Integer, nullable=False, comment="理发师ID")
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, comment="服务ID")

    # 时间
    booking_date = Column(Date, nullable=False, comment="预约日期")
    start_time = Column(Time, nullable=False, comment="开始时间")
    end_time = Column(Time, nullable=False, comment="结束时间")

    # 金额
    original_price = Column(Numeric(10, 2), nullable=False, comment="原价")
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="SET NULL"), comment="使用的折扣ID")
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0, comment="折扣金额")
    total_price = Column(Numeric(10, 2), nullable=False, comment="应付金额")

    # 状态
    status = Column(String(20), nullable=False, default="pending", index=True, comment="预约状态")
    payment_status = Column(String(20), nullable=False, default="unpaid", comment="支付状态")

    # 备注与取消信息
    notes = Column(Text, comment="备注")
    cancellation_reason = Column(String(500), comment="取消原因")
    cancelled_by = Column(Integer, comment="取消人ID")

    created_at = Column(DateTime, server_default=func.now(), comment="创建时间")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="更新时间")

    __table_args__ = (
        Index("ix_bookings_barber_date", "barber_id", "booking_date"),
        {'comment': '预约表'}
    )

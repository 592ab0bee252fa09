"""
预约相关数据模型
"""

from decimal import Decimal
from datetime import datetime, date, time
from typing import Optional
from pydantic import BaseModel, Field, validator
from enum import Enum


class BookingStatus(str, Enum):
    """预约状态枚举"""
    PENDING = "pending"  # 待确认
    CONFIRMED = "confirmed"  # 已确认
    IN_PROGRESS = "in_progress"  # 服务中
    COMPLETED = "completed"  # 已完成
    CANCELLED = "cancelled"  # 已取消


class PaymentStatus(str, Enum):
    """支付状态枚举"""
    UNPAID = "unpaid"  # 待支付
    PAID = "paid"  # 已支付
    REFUNDED = "refunded"  # 已退款


class Booking(BaseModel):
    """预约模型"""

    id: Optional[int] = Field(None, description="预约ID")
    customer_id: int = Field(..., description="客户ID")
    barber_id: int = Field(..., description="理发师ID")
    service_id: int = Field(..., description="服务ID")
    booking_date: date = Field(..., description="预约日期")
    start_time: time = Field(..., description="开始时间")
    end_time: time = Field(..., description="结束时间")
    original_price: Decimal = Field(..., ge=0, description="原价")
    discount_id: Optional[int] = Field(None, description="使用的折扣ID")
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, description="折扣金额")
    total_price: Decimal = Field(..., ge=0, description="应付金额")
    status: BookingStatus = Field(default=BookingStatus.PENDING, description="预约状态")
    payment_status: PaymentStatus = Field(default=PaymentStatus.UNPAID, description="支付状态")
    notes: Optional[str] = Field(None, max_length=500, description="备注")
    cancellation_reason: Optional[str] = Field(None, max_length=500, description="取消原因")
    cancelled_by: Optional[int] = Field(None, description="取消人ID")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @validator('end_time')
    def validate_time_range(cls, v, values):
        """结束时间必须晚于开始时间"""
        if 'start_time' in values and v <= values['start_time']:
            raise ValueError('结束时间必须晚于开始时间')
        return v

    @validator('cancelled_by')
    def validate_cancellation_fields(cls, v, values):
        """只有已取消的预约才能带取消信息"""
        if values.get('status') != BookingStatus.CANCELLED:
            if v is not None or values.get('cancellation_reason'):
                raise ValueError('只有已取消的预约才能记录取消信息')
        return v

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.booking_date, self.start_time)


class BookingCreate(BaseModel):
    """客户创建预约请求"""

    barber_id: int = Field(..., ge=1, description="理发师ID")
    service_id: int = Field(..., ge=1, description="服务ID")
    booking_date: date = Field(..., description="预约日期")
    start_time: time = Field(..., description="开始时间")
    notes: Optional[str] = Field(None, max_length=500, description="备注")
    discount_code: Optional[str] = Field(None, max_length=50, description="折扣码")

    @validator('discount_code')
    def normalize_discount_code(cls, v):
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class BookingStatusUpdate(BaseModel):
    """预约状态变更请求"""

    status: BookingStatus = Field(..., description="目标状态")
    cancellation_reason: Optional[str] = Field(None, max_length=500, description="取消原因")

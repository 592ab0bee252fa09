"""
数据模型包初始化文件
"""

from .actor import Actor, UserRole
from .discount import (
    Discount,
    DiscountCreate,
    DiscountUpdate,
    DiscountType,
    AppliesTo,
    ApplicableType,
    DiscountApplicable,
    DiscountStatus,
    DiscountEligibility,
    EligibilityFailure,
    BookingTarget,
    CustomerDiscount,
    CustomerDiscountAssign,
    CustomerUsageContext,
    DiscountUsage,
    DiscountRecommendation,
)
from .booking import Booking, BookingCreate, BookingStatus, BookingStatusUpdate, PaymentStatus
from .schedule import BarberSchedule, ScheduleEntry, BarberTimeOff

__all__ = [
    "Actor",
    "UserRole",
    "Discount",
    "DiscountCreate",
    "DiscountUpdate",
    "DiscountType",
    "AppliesTo",
    "ApplicableType",
    "DiscountApplicable",
    "DiscountStatus",
    "DiscountEligibility",
    "EligibilityFailure",
    "BookingTarget",
    "CustomerDiscount",
    "CustomerDiscountAssign",
    "CustomerUsageContext",
    "DiscountUsage",
    "DiscountRecommendation",
    "Booking",
    "BookingCreate",
    "BookingStatus",
    "BookingStatusUpdate",
    "PaymentStatus",
    "BarberSchedule",
    "ScheduleEntry",
    "BarberTimeOff",
]

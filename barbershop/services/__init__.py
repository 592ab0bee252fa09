"""
服务包初始化文件
"""

from .discount_service import DiscountService
from .discount_ledger import DiscountLedger
from .booking_service import BookingService
from .schedule_service import ScheduleService

__all__ = [
    "DiscountService",
    "DiscountLedger",
    "BookingService",
    "ScheduleService"
]

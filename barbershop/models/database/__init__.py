"""
数据库模型包初始化文件
"""

from .discount_db import DiscountDB, DiscountApplicableDB, CustomerDiscountDB, DiscountUsageDB
from .booking_db import BookingDB
from .schedule_db import BarberScheduleDB, BarberTimeOffDB
from .catalog_db import ServiceDB, BarberServiceDB

__all__ = [
    "DiscountDB",
    "DiscountApplicableDB",
    "CustomerDiscountDB",
    "DiscountUsageDB",
    "BookingDB",
    "BarberScheduleDB",
    "BarberTimeOffDB",
    "ServiceDB",
    "BarberServiceDB",
]

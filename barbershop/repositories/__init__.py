"""
仓库包初始化文件 - 数据库访问层
"""

from .discount_repository import DiscountRepository
from .booking_repository import BookingRepository
from .schedule_repository import ScheduleRepository
from .catalog_repository import CatalogRepository

__all__ = [
    "DiscountRepository",
    "BookingRepository",
    "ScheduleRepository",
    "CatalogRepository"
]

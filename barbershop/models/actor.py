"""
当前操作者（由认证层提供）
"""

from enum import Enum
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """用户角色枚举"""
    CUSTOMER = "customer"
    BARBER = "barber"
    ADMIN = "admin"


class Actor(BaseModel):
    """当前登录用户的ID和角色"""

    user_id: int = Field(..., ge=1, description="用户ID")
    role: UserRole = Field(..., description="用户角色")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_barber(self) -> bool:
        return self.role == UserRole.BARBER

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

"""
业务异常定义

所有核心模块抛出的异常都继承自 BusinessException，
由 api.exceptions 中的处理器统一转换为HTTP响应。
折扣不适用不是异常，而是 DiscountEligibility.is_eligible=False。
"""

from typing import Optional


class BusinessException(Exception):
    """业务异常基类"""

    code = "business_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "field": self.field,
        }


class ValidationError(BusinessException):
    """输入不合法（缺少取消原因、非法枚举值、非正金额等）"""

    code = "validation_error"
    status_code = 422


class NotFoundError(BusinessException):
    code = "not_found"
    status_code = 404


class PermissionDeniedError(BusinessException):
    """当前角色无权执行该操作"""

    code = "permission_denied"
    status_code = 403


class InvalidTransitionError(BusinessException):
    """预约状态流转不被允许"""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, message: str, current_status: Optional[str] = None, requested_status: Optional[str] = None):
        super().__init__(message, field="status")
        self.current_status = current_status
        self.requested_status = requested_status


class ConflictError(BusinessException):
    """提交时检测到冲突（重复预约、请假时间重叠、并发修改）"""

    code = "conflict"
    status_code = 409


class QuotaExceededError(ConflictError):
    """提交时折扣额度已用完（全局或单个客户）"""

    code = "quota_exceeded"


class DiscountInUseError(ConflictError):
    """已被使用过的折扣不能删除"""

    code = "discount_in_use"

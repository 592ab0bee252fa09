"""
折扣相关数据模型
"""

import re
from decimal import Decimal
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, validator
from enum import Enum

from barbershop.core.money import is_valid_percentage


CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


class DiscountType(str, Enum):
    """折扣类型枚举"""
    PERCENTAGE = "percentage"  # 百分比折扣
    FIXED_AMOUNT = "fixed_amount"  # 固定金额折扣


class AppliesTo(str, Enum):
    """适用范围枚举"""
    ALL = "all"  # 全部服务
    SPECIFIC = "specific"  # 指定服务/分类/理发师


class ApplicableType(str, Enum):
    """适用对象类型"""
    SERVICE = "service"
    CATEGORY = "category"
    BARBER = "barber"


class DiscountStatus(str, Enum):
    """折扣展示状态（由当前时间推导）"""
    ACTIVE = "active"
    UPCOMING = "upcoming"
    EXPIRED = "expired"
    INACTIVE = "inactive"


class EligibilityFailure(str, Enum):
    """折扣不适用的原因，按检查顺序排列"""
    NOT_YET_ACTIVE = "not_yet_active"
    EXPIRED = "expired"
    INACTIVE = "inactive"
    NOT_APPLICABLE = "not_applicable"
    MIN_ORDER_NOT_MET = "min_order_not_met"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    GRANT_EXPIRED = "grant_expired"
    CUSTOMER_LIMIT_REACHED = "customer_limit_reached"
    NOT_FOUND = "not_found"


QUOTA_FAILURES = frozenset({
    EligibilityFailure.USAGE_LIMIT_REACHED,
    EligibilityFailure.CUSTOMER_LIMIT_REACHED,
})


class DiscountApplicable(BaseModel):
    """折扣适用对象 {kind, id}"""

    applicable_type: ApplicableType = Field(..., description="适用对象类型")
    applicable_id: int = Field(..., ge=1, description="适用对象ID")


class DiscountBase(BaseModel):
    """折扣公共字段及校验"""

    code: Optional[str] = Field(None, max_length=50, description="折扣码，为空时自动生成")
    name: str = Field(..., min_length=1, max_length=255, description="折扣名称")
    description: Optional[str] = Field(None, max_length=500, description="折扣描述")
    discount_type: DiscountType = Field(..., description="折扣类型")
    discount_value: Decimal = Field(..., gt=0, description="折扣值（百分比或固定金额）")
    max_discount_amount: Optional[Decimal] = Field(None, ge=0, description="最大折扣金额（仅百分比有效）")
    min_order_amount: Optional[Decimal] = Field(None, ge=0, description="最低订单金额")
    start_date: datetime = Field(..., description="开始时间")
    end_date: datetime = Field(..., description="结束时间")
    usage_limit: Optional[int] = Field(None, ge=1, description="总使用次数限制")
    customer_usage_limit: Optional[int] = Field(None, ge=1, description="单客户使用次数限制")
    is_active: bool = Field(default=True, description="是否启用")
    applies_to: AppliesTo = Field(default=AppliesTo.ALL, description="适用范围")
    applicables: List[DiscountApplicable] = Field(default_factory=list, description="适用对象列表")

    @validator('code', pre=True)
    def normalize_code(cls, v):
        """折扣码统一去空格并转大写"""
        if v is None:
            return None
        v = str(v).strip().upper()
        if not v:
            return None
        if not CODE_PATTERN.match(v):
            raise ValueError('折扣码只能包含字母和数字')
        return v

    @validator('discount_value')
    def validate_discount_value(cls, v, values):
        """百分比折扣不能超过100"""
        if values.get('discount_type') == DiscountType.PERCENTAGE and not is_valid_percentage(v):
            raise ValueError('百分比折扣值必须在0到100之间')
        return v

    @validator('end_date')
    def validate_validity_period(cls, v, values):
        """验证有效期"""
        if 'start_date' in values and v <= values['start_date']:
            raise ValueError('结束时间必须晚于开始时间')
        return v

    @validator('applicables', always=True)
    def validate_applicables(cls, v, values):
        """指定范围的折扣至少需要一个适用对象"""
        if values.get('applies_to') == AppliesTo.SPECIFIC and not v:
            raise ValueError('指定范围的折扣至少需要一个适用对象')
        if values.get('applies_to') == AppliesTo.ALL:
            return []
        return v


class DiscountCreate(DiscountBase):
    """创建折扣模型"""


class DiscountUpdate(DiscountBase):
    """更新折扣模型 - 整体替换，适用对象同样整体替换"""

    is_active: Optional[bool] = Field(None, description="为空时保持原状态")


class Discount(DiscountBase):
    """折扣完整模型"""

    id: Optional[int] = Field(None, description="折扣ID")
    code: str = Field(..., min_length=1, max_length=50, description="折扣码")
    used_count: int = Field(default=0, ge=0, description="已使用次数")
    created_by: Optional[int] = Field(None, description="创建者ID")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @validator('used_count')
    def validate_used_count(cls, v, values):
        """已使用次数不能超过总次数"""
        limit = values.get('usage_limit')
        if limit is not None and v > limit:
            raise ValueError('已使用次数不能超过总使用次数限制')
        return v

    @property
    def remaining_quota(self) -> Optional[int]:
        """剩余可用次数，无限制时为None"""
        if self.usage_limit is None:
            return None
        return self.usage_limit - self.used_count

    def status_at(self, now: datetime) -> DiscountStatus:
        """根据当前时间推导展示状态"""
        if self.end_date < now:
            return DiscountStatus.EXPIRED
        if self.start_date > now:
            return DiscountStatus.UPCOMING
        return DiscountStatus.ACTIVE if self.is_active else DiscountStatus.INACTIVE


class BookingTarget(BaseModel):
    """折扣作用目标：服务、服务分类、理发师"""

    service_id: int = Field(..., ge=1, description="服务ID")
    category_id: Optional[int] = Field(None, description="服务分类ID")
    barber_id: int = Field(..., ge=1, description="理发师ID")


class CustomerDiscount(BaseModel):
    """客户专属折扣授权（覆盖单客户使用次数和有效期）"""

    id: Optional[int] = None
    discount_id: int = Field(..., description="折扣ID")
    customer_id: int = Field(..., description="客户ID")
    used_count: int = Field(default=0, ge=0, description="已使用次数")
    max_usage: Optional[int] = Field(None, ge=1, description="最大使用次数")
    expires_at: Optional[datetime] = Field(None, description="过期时间")


class CustomerDiscountAssign(BaseModel):
    """为客户分配折扣"""

    customer_id: int = Field(..., ge=1, description="客户ID")
    max_usage: Optional[int] = Field(None, ge=1, description="最大使用次数")
    expires_at: Optional[datetime] = Field(None, description="过期时间")


class CustomerUsageContext(BaseModel):
    """评估时的客户使用情况"""

    customer_id: int = Field(..., description="客户ID")
    usage_count: int = Field(default=0, ge=0, description="该客户对此折扣的历史使用次数")
    grant: Optional[CustomerDiscount] = Field(None, description="客户专属授权")


class DiscountEligibility(BaseModel):
    """折扣评估结果"""

    is_eligible: bool = Field(..., description="是否适用")
    message: Optional[str] = Field(None, description="不适用原因")
    failure_reason: Optional[EligibilityFailure] = Field(None, description="不适用原因代码")
    discount_id: Optional[int] = None
    discount_code: Optional[str] = None
    original_amount: Decimal = Field(..., description="原始金额")
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, description="折扣金额")
    final_amount: Decimal = Field(..., ge=0, description="最终金额")

    @property
    def is_quota_failure(self) -> bool:
        return self.failure_reason in QUOTA_FAILURES


class DiscountUsage(BaseModel):
    """折扣使用记录（审计用，创建后不可修改）"""

    id: Optional[int] = None
    discount_id: int = Field(..., description="折扣ID")
    customer_id: int = Field(..., description="客户ID")
    booking_id: int = Field(..., description="预约ID")
    original_amount: Decimal = Field(..., ge=0, description="原始金额")
    discount_amount: Decimal = Field(..., ge=0, description="折扣金额")
    final_amount: Decimal = Field(..., ge=0, description="最终金额")
    used_at: datetime = Field(default_factory=datetime.now, description="使用时间")

    @validator('final_amount')
    def validate_final_amount(cls, v, values):
        """验证最终金额 = 原始金额 - 折扣金额"""
        if 'original_amount' in values and 'discount_amount' in values:
            if values['discount_amount'] > values['original_amount']:
                raise ValueError('折扣金额不能超过原始金额')
            if v != values['original_amount'] - values['discount_amount']:
                raise ValueError('最终金额计算错误')
        return v


class DiscountRecommendation(BaseModel):
    """推荐给客户的可用折扣"""

    id: int
    code: str
    name: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal
    min_order_amount: Optional[Decimal] = None
    discount_amount: Decimal
    final_amount: Decimal

"""
折扣资格评估

纯函数：不访问数据库、不修改入参，所有时间由调用方传入。
检查按固定顺序进行，第一个不满足的条件决定结果：
有效期 -> 启用状态 -> 适用范围 -> 最低订单金额 -> 总次数 -> 客户授权/次数 -> 计算金额
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Optional

from barbershop.core.exceptions import ValidationError
from barbershop.core.money import ZERO, percent_of, quantize_money, to_decimal
from barbershop.models.discount import (
    Discount,
    DiscountType,
    AppliesTo,
    ApplicableType,
    BookingTarget,
    CustomerUsageContext,
    DiscountEligibility,
    EligibilityFailure,
)


# 每种适用对象类型对应的目标字段
APPLICABLE_RESOLVERS: Dict[ApplicableType, Callable[[BookingTarget], Optional[int]]] = {
    ApplicableType.SERVICE: lambda target: target.service_id,
    ApplicableType.CATEGORY: lambda target: target.category_id,
    ApplicableType.BARBER: lambda target: target.barber_id,
}


def applies_to_target(discount: Discount, target: BookingTarget) -> bool:
    """折扣是否适用于该预约目标（任一适用对象匹配即可）"""
    if discount.applies_to == AppliesTo.ALL:
        return True

    for applicable in discount.applicables:
        resolved = APPLICABLE_RESOLVERS[applicable.applicable_type](target)
        if resolved is not None and resolved == applicable.applicable_id:
            return True
    return False


def calculate_discount_amount(discount: Discount, order_amount: Decimal) -> Decimal:
    """计算折扣金额：百分比先按上限封顶，再不超过订单金额"""
    if discount.discount_type == DiscountType.PERCENTAGE:
        amount = percent_of(order_amount, discount.discount_value)
        if discount.max_discount_amount is not None:
            amount = min(amount, discount.max_discount_amount)
    else:
        amount = discount.discount_value

    amount = min(amount, order_amount)
    return quantize_money(amount)


def effective_customer_limit(discount: Discount, customer: CustomerUsageContext) -> Optional[int]:
    """客户授权设置了次数时以授权为准，否则沿用折扣的单客户限制"""
    grant = customer.grant
    if grant is not None and grant.max_usage is not None:
        return grant.max_usage
    return discount.customer_usage_limit


def _ineligible(
    discount: Discount,
    order_amount: Decimal,
    reason: EligibilityFailure,
    message: str
) -> DiscountEligibility:
    return DiscountEligibility(
        is_eligible=False,
        message=message,
        failure_reason=reason,
        discount_id=discount.id,
        discount_code=discount.code,
        original_amount=order_amount,
        discount_amount=ZERO,
        final_amount=order_amount
    )


def evaluate_discount(
    discount: Discount,
    target: BookingTarget,
    customer: CustomerUsageContext,
    order_amount: Decimal,
    now: datetime
) -> DiscountEligibility:
    """评估折扣是否可用于本次预约，并计算折扣金额"""
    order_amount = to_decimal(order_amount)
    if order_amount <= ZERO:
        raise ValidationError("订单金额必须大于0", field="order_amount")

    if now < discount.start_date:
        return _ineligible(discount, order_amount, EligibilityFailure.NOT_YET_ACTIVE, "折扣尚未开始")
    if now > discount.end_date:
        return _ineligible(discount, order_amount, EligibilityFailure.EXPIRED, "折扣已过期")

    if not discount.is_active:
        return _ineligible(discount, order_amount, EligibilityFailure.INACTIVE, "折扣已停用")

    if not applies_to_target(discount, target):
        return _ineligible(discount, order_amount, EligibilityFailure.NOT_APPLICABLE, "折扣不适用于该服务或理发师")

    if discount.min_order_amount is not None and order_amount < discount.min_order_amount:
        return _ineligible(
            discount,
            order_amount,
            EligibilityFailure.MIN_ORDER_NOT_MET,
            f"订单金额不满足最低要求 {discount.min_order_amount}"
        )

    if discount.usage_limit is not None and discount.used_count >= discount.usage_limit:
        return _ineligible(discount, order_amount, EligibilityFailure.USAGE_LIMIT_REACHED, "折扣使用次数已达上限")

    grant = customer.grant
    if grant is not None and grant.expires_at is not None and grant.expires_at < now:
        return _ineligible(discount, order_amount, EligibilityFailure.GRANT_EXPIRED, "您的专属折扣已过期")

    limit = effective_customer_limit(discount, customer)
    if limit is not None and customer.usage_count >= limit:
        return _ineligible(discount, order_amount, EligibilityFailure.CUSTOMER_LIMIT_REACHED, "您已达到该折扣的使用上限")

    discount_amount = calculate_discount_amount(discount, order_amount)

    return DiscountEligibility(
        is_eligible=True,
        message=None,
        failure_reason=None,
        discount_id=discount.id,
        discount_code=discount.code,
        original_amount=order_amount,
        discount_amount=discount_amount,
        final_amount=order_amount - discount_amount
    )

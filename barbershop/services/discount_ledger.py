"""
折扣使用台账

在调用方的事务中完成一次折扣兑换：加锁重新评估、条件自增计数、写入使用记录。
任何异常都由调用方回滚整个工作单元。
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from barbershop.core.exceptions import ConflictError, NotFoundError, QuotaExceededError
from barbershop.core.money import quantize_money, to_decimal
from barbershop.models.discount import BookingTarget, DiscountUsage
from barbershop.repositories.discount_repository import DiscountRepository
from barbershop.services.common_cache import SimpleCache, discount_cache, discount_code_key
from barbershop.services.discount_evaluator import evaluate_discount, effective_customer_limit

logger = logging.getLogger(__name__)


class DiscountLedger:
    """折扣兑换"""

    def __init__(self, discount_repo: DiscountRepository, cache: Optional[SimpleCache] = None):
        self.discount_repo = discount_repo
        self.cache = cache or discount_cache

    async def redeem(
        self,
        discount_id: int,
        customer_id: int,
        booking_id: int,
        target: BookingTarget,
        original_amount: Decimal,
        discount_amount: Decimal,
        now: datetime
    ) -> DiscountUsage:
        """兑换折扣并记录使用，额度不足抛出 QuotaExceededError"""
        original_amount = to_decimal(original_amount)
        discount_amount = quantize_money(discount_amount)

        db_discount = await self.discount_repo.get_for_update(discount_id)
        if not db_discount:
            raise NotFoundError(f"折扣不存在: {discount_id}", field="discount_id")

        discount = self.discount_repo.to_model(db_discount)
        customer = await self.discount_repo.get_customer_usage_context(discount_id, customer_id)

        # 提交前按最新数据重新评估
        eligibility = evaluate_discount(discount, target, customer, original_amount, now)
        if not eligibility.is_eligible:
            logger.info(f"折扣兑换失败 discount={discount.code} customer={customer_id}: {eligibility.failure_reason.value}")
            if eligibility.is_quota_failure:
                raise QuotaExceededError(eligibility.message, field="discount_code")
            raise ConflictError(eligibility.message, field="discount_code")

        if eligibility.discount_amount != discount_amount:
            raise ConflictError(
                f"折扣金额已变化（{discount_amount} -> {eligibility.discount_amount}），请重新确认",
                field="discount_amount"
            )

        if not await self.discount_repo.try_increment_used_count(discount_id):
            raise QuotaExceededError("折扣使用次数已达上限", field="discount_code")

        db_grant = await self.discount_repo.get_or_create_customer_discount(discount_id, customer_id)
        limit = effective_customer_limit(discount, customer)
        if not await self.discount_repo.try_increment_customer_used_count(db_grant.id, limit):
            raise QuotaExceededError("您已达到该折扣的使用上限", field="discount_code")

        db_usage = await self.discount_repo.create_usage(
            discount_id=discount_id,
            customer_id=customer_id,
            booking_id=booking_id,
            original_amount=original_amount,
            discount_amount=eligibility.discount_amount,
            final_amount=eligibility.final_amount,
            used_at=now
        )

        # 已用次数变化，缓存失效
        await self.cache.delete(discount_code_key(discount.code))

        logger.info(
            f"折扣兑换成功 discount={discount.code} customer={customer_id} "
            f"booking={booking_id} amount={eligibility.discount_amount}"
        )
        return self.discount_repo.usage_to_model(db_usage)

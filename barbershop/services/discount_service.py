"""
折扣业务服务层
提供折扣管理（管理员）和折扣查询/校验（客户）相关的业务逻辑
"""

import logging
import secrets
import string
from typing import List, Optional, Dict, Any
from decimal import Decimal
from datetime import datetime

from barbershop.core.config import settings
from barbershop.core.exceptions import ConflictError, DiscountInUseError, NotFoundError, ValidationError
from barbershop.core.money import ZERO, HUNDRED, quantize_money, to_decimal
from barbershop.models.discount import (
    Discount,
    DiscountCreate,
    DiscountUpdate,
    DiscountEligibility,
    EligibilityFailure,
    BookingTarget,
    CustomerDiscount,
    CustomerDiscountAssign,
    DiscountUsage,
    DiscountRecommendation,
)
from barbershop.repositories.discount_repository import DiscountRepository
from barbershop.services.common_cache import SimpleCache, discount_cache, discount_code_key
from barbershop.services.discount_evaluator import evaluate_discount

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


class DiscountService:
    """折扣业务服务"""

    def __init__(self, discount_repo: DiscountRepository, cache: Optional[SimpleCache] = None):
        self.discount_repo = discount_repo
        self.cache = cache or discount_cache
        self.cache_ttl = settings.discount_cache_ttl

    # ---------- 缓存 ----------

    async def invalidate_cache(self, *codes: str) -> None:
        """折扣变更后清除对应缓存"""
        keys = [discount_code_key(code) for code in codes if code]
        if keys:
            await self.cache.delete(*keys)

    async def get_discount_by_code(self, code: str, use_cache: bool = True) -> Optional[Discount]:
        """根据折扣码获取折扣（展示用，可能读缓存）"""
        code = code.strip().upper()
        cache_key = discount_code_key(code)

        if use_cache:
            cached_discount = await self.cache.get(cache_key)
            if cached_discount:
                return Discount(**cached_discount)

        db_discount = await self.discount_repo.get_by_code(code)
        if not db_discount:
            return None

        discount = self.discount_repo.to_model(db_discount)

        if use_cache:
            await self.cache.set(cache_key, discount.model_dump(mode="json"), ttl=self.cache_ttl)

        return discount

    async def get_discount(self, discount_id: int) -> Discount:
        db_discount = await self.discount_repo.get_by_id(discount_id)
        if not db_discount:
            raise NotFoundError(f"折扣不存在: {discount_id}", field="discount_id")
        return self.discount_repo.to_model(db_discount)

    # ---------- 管理端 ----------

    async def generate_code(self) -> str:
        """生成唯一的大写字母数字折扣码"""
        while True:
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(settings.discount_code_length))
            if not await self.discount_repo.code_exists(code):
                return code

    async def create_discount(self, discount_data: DiscountCreate, created_by: Optional[int] = None) -> Discount:
        """创建折扣，未提供折扣码时自动生成"""
        if discount_data.code:
            code = discount_data.code
            if await self.discount_repo.code_exists(code):
                raise ConflictError(f"折扣码已存在: {code}", field="code")
        else:
            code = await self.generate_code()

        db_discount = await self.discount_repo.create(discount_data, code=code, created_by=created_by)
        logger.info(f"折扣创建成功: {code}")
        return self.discount_repo.to_model(db_discount)

    async def update_discount(self, discount_id: int, discount_data: DiscountUpdate) -> Discount:
        """更新折扣，适用对象整体替换"""
        db_discount = await self.discount_repo.get_by_id(discount_id)
        if not db_discount:
            raise NotFoundError(f"折扣不存在: {discount_id}", field="discount_id")

        old_code = db_discount.code
        code = discount_data.code or old_code
        if code != old_code and await self.discount_repo.code_exists(code):
            raise ConflictError(f"折扣码已存在: {code}", field="code")

        if discount_data.usage_limit is not None and discount_data.usage_limit < db_discount.used_count:
            raise ValidationError(
                f"总使用次数限制不能小于已使用次数 {db_discount.used_count}",
                field="usage_limit"
            )

        db_discount = await self.discount_repo.update(db_discount, discount_data, code=code)
        await self.invalidate_cache(old_code, code)

        logger.info(f"折扣更新成功: {code}")
        return self.discount_repo.to_model(db_discount)

    async def delete_discount(self, discount_id: int) -> bool:
        """删除折扣，已被使用过的折扣不能删除"""
        db_discount = await self.discount_repo.get_by_id(discount_id)
        if not db_discount:
            raise NotFoundError(f"折扣不存在: {discount_id}", field="discount_id")

        if db_discount.used_count > 0:
            raise DiscountInUseError("折扣已被使用，不能删除，请改为停用")

        code = db_discount.code
        deleted = await self.discount_repo.delete(discount_id)
        await self.invalidate_cache(code)

        logger.info(f"折扣已删除: {code}")
        return deleted

    async def toggle_status(self, discount_id: int) -> Discount:
        """切换启用/停用状态"""
        db_discount = await self.discount_repo.get_by_id(discount_id)
        if not db_discount:
            raise NotFoundError(f"折扣不存在: {discount_id}", field="discount_id")

        db_discount = await self.discount_repo.set_active(db_discount, not db_discount.is_active)
        await self.invalidate_cache(db_discount.code)
        return self.discount_repo.to_model(db_discount)

    async def list_discounts(
        self,
        now: datetime,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20
    ) -> List[Dict[str, Any]]:
        """管理端折扣列表，附带展示状态"""
        offset = (page - 1) * page_size
        db_discounts = await self.discount_repo.list_discounts(is_active=is_active, limit=page_size, offset=offset)
        discounts = [self.discount_repo.to_model(db_discount) for db_discount in db_discounts]
        return [
            {"discount": discount, "status": discount.status_at(now)}
            for discount in discounts
        ]

    async def assign_to_customer(self, discount_id: int, assign_data: CustomerDiscountAssign) -> CustomerDiscount:
        """为客户分配折扣，已分配时更新次数和过期时间"""
        discount = await self.get_discount(discount_id)

        db_grant = await self.discount_repo.upsert_customer_discount(
            discount_id=discount_id,
            customer_id=assign_data.customer_id,
            max_usage=assign_data.max_usage,
            expires_at=assign_data.expires_at
        )
        await self.invalidate_cache(discount.code)

        logger.info(f"折扣 {discount.code} 已分配给客户 {assign_data.customer_id}")
        return self.discount_repo.customer_discount_to_model(db_grant)

    async def remove_from_customer(self, discount_id: int, customer_id: int) -> bool:
        discount = await self.get_discount(discount_id)

        removed = await self.discount_repo.delete_customer_discount(discount_id, customer_id)
        if not removed:
            raise NotFoundError("该客户没有此折扣", field="customer_id")

        await self.invalidate_cache(discount.code)
        return removed

    async def get_usage_history(
        self,
        discount_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Dict[str, Any]:
        """折扣使用记录（分页）"""
        if date_from and date_to and date_from > date_to:
            raise ValidationError("开始日期不能晚于结束日期", field="date_from")

        offset = (page - 1) * page_size
        db_usages, total = await self.discount_repo.get_usage_history(
            discount_id=discount_id,
            customer_id=customer_id,
            date_from=date_from,
            date_to=date_to,
            limit=page_size,
            offset=offset
        )

        items: List[DiscountUsage] = [self.discount_repo.usage_to_model(db_usage) for db_usage in db_usages]
        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    async def get_discount_stats(self, discount_id: int) -> Dict[str, Any]:
        """折扣统计：使用次数、剩余额度、使用率、优惠总额、收入"""
        discount = await self.get_discount(discount_id)
        usage_stats = await self.discount_repo.get_usage_stats(discount_id)

        usage_percentage = None
        if discount.usage_limit:
            usage_percentage = quantize_money(to_decimal(discount.used_count) * HUNDRED / discount.usage_limit)

        return {
            "discount_id": discount.id,
            "code": discount.code,
            "used_count": discount.used_count,
            "usage_limit": discount.usage_limit,
            "remaining_quota": discount.remaining_quota,
            "usage_percentage": usage_percentage,
            "total_usage": usage_stats["total_usage"],
            "unique_customers": usage_stats["unique_customers"],
            "total_discount_given": quantize_money(usage_stats["total_discount"]),
            "total_revenue": quantize_money(usage_stats["total_revenue"]),
        }

    # ---------- 客户端 ----------

    async def validate_code(
        self,
        code: str,
        target: BookingTarget,
        customer_id: int,
        order_amount: Decimal,
        now: datetime
    ) -> DiscountEligibility:
        """预览折扣码是否可用，始终读取数据库"""
        order_amount = to_decimal(order_amount)
        if order_amount <= ZERO:
            raise ValidationError("订单金额必须大于0", field="order_amount")

        db_discount = await self.discount_repo.get_by_code(code) if code and code.strip() else None
        if not db_discount:
            return DiscountEligibility(
                is_eligible=False,
                message="折扣码不存在",
                failure_reason=EligibilityFailure.NOT_FOUND,
                discount_code=code.strip().upper() if code else None,
                original_amount=order_amount,
                discount_amount=ZERO,
                final_amount=order_amount
            )

        discount = self.discount_repo.to_model(db_discount)
        customer = await self.discount_repo.get_customer_usage_context(discount.id, customer_id)
        return evaluate_discount(discount, target, customer, order_amount, now)

    async def get_recommendations(
        self,
        target: BookingTarget,
        customer_id: int,
        order_amount: Decimal,
        now: datetime
    ) -> List[DiscountRecommendation]:
        """当前可用于该预约的折扣，按折扣金额从高到低排序"""
        order_amount = to_decimal(order_amount)
        if order_amount <= ZERO:
            raise ValidationError("订单金额必须大于0", field="order_amount")

        recommendations = []
        for db_discount in await self.discount_repo.list_active(now):
            discount = self.discount_repo.to_model(db_discount)
            customer = await self.discount_repo.get_customer_usage_context(discount.id, customer_id)
            eligibility = evaluate_discount(discount, target, customer, order_amount, now)
            if not eligibility.is_eligible:
                continue

            recommendations.append(DiscountRecommendation(
                id=discount.id,
                code=discount.code,
                name=discount.name,
                description=discount.description,
                discount_type=discount.discount_type,
                discount_value=discount.discount_value,
                min_order_amount=discount.min_order_amount,
                discount_amount=eligibility.discount_amount,
                final_amount=eligibility.final_amount
            ))

        recommendations.sort(key=lambda item: item.discount_amount, reverse=True)
        return recommendations

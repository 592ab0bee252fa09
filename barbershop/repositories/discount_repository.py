"""
折扣数据库操作层
"""

from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update, delete, and_, or_, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from barbershop.models.discount import (
    Discount,
    DiscountApplicable,
    DiscountCreate,
    DiscountUpdate,
    CustomerDiscount,
    CustomerUsageContext,
    DiscountUsage,
)
from barbershop.models.database.discount_db import (
    DiscountDB,
    DiscountApplicableDB,
    CustomerDiscountDB,
    DiscountUsageDB,
)


class DiscountRepository:
    """折扣数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------- 折扣 ----------

    async def get_by_id(self, discount_id: int) -> Optional[DiscountDB]:
        """根据ID获取折扣"""
        result = await self.db.execute(
            select(DiscountDB).where(DiscountDB.id == discount_id)
        )
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[DiscountDB]:
        """根据折扣码获取折扣"""
        result = await self.db.execute(
            select(DiscountDB).where(DiscountDB.code == code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, discount_id: int) -> Optional[DiscountDB]:
        """加行锁重新读取折扣，覆盖会话中的旧数据"""
        result = await self.db.execute(
            select(DiscountDB)
            .where(DiscountDB.id == discount_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        result = await self.db.execute(
            select(func.count(DiscountDB.id)).where(DiscountDB.code == code)
        )
        return (result.scalar() or 0) > 0

    async def create(self, discount_data: DiscountCreate, code: str, created_by: Optional[int] = None) -> DiscountDB:
        """创建折扣及其适用对象"""
        db_discount = DiscountDB(
            code=code,
            name=discount_data.name,
            description=discount_data.description,
            discount_type=discount_data.discount_type.value,
            discount_value=discount_data.discount_value,
            max_discount_amount=discount_data.max_discount_amount,
            min_order_amount=discount_data.min_order_amount,
            start_date=discount_data.start_date,
            end_date=discount_data.end_date,
            usage_limit=discount_data.usage_limit,
            used_count=0,
            customer_usage_limit=discount_data.customer_usage_limit,
            is_active=discount_data.is_active,
            applies_to=discount_data.applies_to.value,
            created_by=created_by,
            applicables=self._build_applicables(discount_data.applicables),
        )

        self.db.add(db_discount)
        await self.db.flush()  # 获取生成的ID
        await self.db.refresh(db_discount)
        return db_discount

    async def update(self, db_discount: DiscountDB, discount_data: DiscountUpdate, code: str) -> DiscountDB:
        """整体更新折扣，适用对象先清空再重建"""
        db_discount.code = code
        db_discount.name = discount_data.name
        db_discount.description = discount_data.description
        db_discount.discount_type = discount_data.discount_type.value
        db_discount.discount_value = discount_data.discount_value
        db_discount.max_discount_amount = discount_data.max_discount_amount
        db_discount.min_order_amount = discount_data.min_order_amount
        db_discount.start_date = discount_data.start_date
        db_discount.end_date = discount_data.end_date
        db_discount.usage_limit = discount_data.usage_limit
        db_discount.customer_usage_limit = discount_data.customer_usage_limit
        db_discount.applies_to = discount_data.applies_to.value
        if discount_data.is_active is not None:
            db_discount.is_active = discount_data.is_active

        # 先删除旧的适用对象，避免唯一约束冲突
        db_discount.applicables.clear()
        await self.db.flush()
        db_discount.applicables.extend(self._build_applicables(discount_data.applicables))
        await self.db.flush()
        await self.db.refresh(db_discount)
        return db_discount

    async def set_active(self, db_discount: DiscountDB, is_active: bool) -> DiscountDB:
        """只修改启用状态，不影响使用次数"""
        db_discount.is_active = is_active
        await self.db.flush()
        await self.db.refresh(db_discount)
        return db_discount

    async def delete(self, discount_id: int) -> bool:
        """删除折扣，同时删除适用对象和客户授权"""
        await self.db.execute(
            delete(DiscountApplicableDB).where(DiscountApplicableDB.discount_id == discount_id)
        )
        await self.db.execute(
            delete(CustomerDiscountDB).where(CustomerDiscountDB.discount_id == discount_id)
        )
        result = await self.db.execute(
            delete(DiscountDB)
            .where(DiscountDB.id == discount_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def list_discounts(
        self,
        is_active: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[DiscountDB]:
        """管理端折扣列表"""
        conditions = []
        if is_active is not None:
            conditions.append(DiscountDB.is_active == is_active)

        query = select(DiscountDB).where(*conditions).order_by(desc(DiscountDB.created_at), desc(DiscountDB.id)).limit(limit).offset(offset)

        result = await self.db.execute(query)
        return result.scalars().all()

    async def list_active(self, current_time: datetime) -> List[DiscountDB]:
        """获取当前有效且仍有额度的折扣"""
        query = select(DiscountDB).where(
            and_(
                DiscountDB.is_active == True,
                DiscountDB.start_date <= current_time,
                DiscountDB.end_date >= current_time,
                or_(
                    DiscountDB.usage_limit.is_(None),
                    DiscountDB.used_count < DiscountDB.usage_limit
                )
            )
        ).order_by(DiscountDB.id)

        result = await self.db.execute(query)
        return result.scalars().all()

    async def try_increment_used_count(self, discount_id: int) -> bool:
        """条件自增全局使用次数，额度已满时不更新并返回False"""
        result = await self.db.execute(
            update(DiscountDB)
            .where(
                and_(
                    DiscountDB.id == discount_id,
                    or_(
                        DiscountDB.usage_limit.is_(None),
                        DiscountDB.used_count < DiscountDB.usage_limit
                    )
                )
            )
            .values(used_count=DiscountDB.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    # ---------- 客户授权 ----------

    async def get_customer_discount(self, discount_id: int, customer_id: int) -> Optional[CustomerDiscountDB]:
        result = await self.db.execute(
            select(CustomerDiscountDB).where(
                and_(
                    CustomerDiscountDB.discount_id == discount_id,
                    CustomerDiscountDB.customer_id == customer_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def upsert_customer_discount(
        self,
        discount_id: int,
        customer_id: int,
        max_usage: Optional[int] = None,
        expires_at: Optional[datetime] = None
    ) -> CustomerDiscountDB:
        """为客户分配折扣：存在则更新，不存在则新建"""
        db_grant = await self.get_customer_discount(discount_id, customer_id)

        if db_grant:
            db_grant.max_usage = max_usage
            db_grant.expires_at = expires_at
        else:
            db_grant = CustomerDiscountDB(
                discount_id=discount_id,
                customer_id=customer_id,
                used_count=0,
                max_usage=max_usage,
                expires_at=expires_at
            )
            self.db.add(db_grant)

        await self.db.flush()
        await self.db.refresh(db_grant)
        return db_grant

    async def get_or_create_customer_discount(self, discount_id: int, customer_id: int) -> CustomerDiscountDB:
        """兑换时确保客户授权记录存在（新建时使用次数为0）"""
        db_grant = await self.get_customer_discount(discount_id, customer_id)
        if db_grant:
            return db_grant

        db_grant = CustomerDiscountDB(discount_id=discount_id, customer_id=customer_id, used_count=0)
        self.db.add(db_grant)
        await self.db.flush()
        await self.db.refresh(db_grant)
        return db_grant

    async def try_increment_customer_used_count(self, grant_id: int, limit: Optional[int]) -> bool:
        """条件自增客户使用次数，limit为None时不限制"""
        conditions = [CustomerDiscountDB.id == grant_id]
        if limit is not None:
            conditions.append(CustomerDiscountDB.used_count < limit)

        result = await self.db.execute(
            update(CustomerDiscountDB)
            .where(and_(*conditions))
            .values(used_count=CustomerDiscountDB.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete_customer_discount(self, discount_id: int, customer_id: int) -> bool:
        result = await self.db.execute(
            delete(CustomerDiscountDB).where(
                and_(
                    CustomerDiscountDB.discount_id == discount_id,
                    CustomerDiscountDB.customer_id == customer_id
                )
            )
        )
        return result.rowcount > 0

    # ---------- 使用记录 ----------

    async def count_customer_usages(self, discount_id: int, customer_id: int) -> int:
        """获取客户对特定折扣的使用次数"""
        result = await self.db.execute(
            select(func.count(DiscountUsageDB.id)).where(
                and_(
                    DiscountUsageDB.discount_id == discount_id,
                    DiscountUsageDB.customer_id == customer_id
                )
            )
        )
        return result.scalar() or 0

    async def get_customer_usage_context(self, discount_id: int, customer_id: int) -> CustomerUsageContext:
        """评估所需的客户使用情况：历史使用次数 + 专属授权"""
        usage_count = await self.count_customer_usages(discount_id, customer_id)
        db_grant = await self.get_customer_discount(discount_id, customer_id)
        return CustomerUsageContext(
            customer_id=customer_id,
            usage_count=usage_count,
            grant=self.customer_discount_to_model(db_grant) if db_grant else None
        )

    async def create_usage(
        self,
        discount_id: int,
        customer_id: int,
        booking_id: int,
        original_amount: Decimal,
        discount_amount: Decimal,
        final_amount: Decimal,
        used_at: datetime
    ) -> DiscountUsageDB:
        """记录一次折扣使用"""
        db_usage = DiscountUsageDB(
            discount_id=discount_id,
            customer_id=customer_id,
            booking_id=booking_id,
            original_amount=original_amount,
            discount_amount=discount_amount,
            final_amount=final_amount,
            used_at=used_at
        )
        self.db.add(db_usage)
        await self.db.flush()
        return db_usage

    async def get_usage_history(
        self,
        discount_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[DiscountUsageDB], int]:
        """按条件查询使用记录，返回 (当前页记录, 总数)"""
        conditions = []
        if discount_id is not None:
            conditions.append(DiscountUsageDB.discount_id == discount_id)
        if customer_id is not None:
            conditions.append(DiscountUsageDB.customer_id == customer_id)
        if date_from is not None:
            conditions.append(DiscountUsageDB.used_at >= date_from)
        if date_to is not None:
            conditions.append(DiscountUsageDB.used_at <= date_to)

        total_result = await self.db.execute(
            select(func.count(DiscountUsageDB.id)).where(*conditions)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(DiscountUsageDB)
            .where(*conditions)
            .order_by(desc(DiscountUsageDB.used_at), desc(DiscountUsageDB.id))
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all(), total

    async def get_usage_stats(self, discount_id: int) -> Dict[str, Any]:
        """折扣使用统计"""
        result = await self.db.execute(
            select(
                func.count(DiscountUsageDB.id).label("total_usage"),
                func.sum(DiscountUsageDB.discount_amount).label("total_discount"),
                func.sum(DiscountUsageDB.final_amount).label("total_revenue"),
                func.count(func.distinct(DiscountUsageDB.customer_id)).label("unique_customers")
            ).where(DiscountUsageDB.discount_id == discount_id)
        )
        row = result.fetchone()

        return {
            "total_usage": row.total_usage or 0,
            "total_discount": Decimal(str(row.total_discount or 0)),
            "total_revenue": Decimal(str(row.total_revenue or 0)),
            "unique_customers": row.unique_customers or 0,
        }

    # ---------- 模型转换 ----------

    def _build_applicables(self, applicables: List[DiscountApplicable]) -> List[DiscountApplicableDB]:
        return [
            DiscountApplicableDB(
                applicable_type=item.applicable_type.value,
                applicable_id=item.applicable_id
            )
            for item in applicables
        ]

    def to_model(self, db_discount: DiscountDB) -> Discount:
        """转换为Pydantic模型"""
        return Discount(
            id=db_discount.id,
            code=db_discount.code,
            name=db_discount.name,
            description=db_discount.description,
            discount_type=db_discount.discount_type,
            discount_value=db_discount.discount_value,
            max_discount_amount=db_discount.max_discount_amount,
            min_order_amount=db_discount.min_order_amount,
            start_date=db_discount.start_date,
            end_date=db_discount.end_date,
            usage_limit=db_discount.usage_limit,
            used_count=db_discount.used_count,
            customer_usage_limit=db_discount.customer_usage_limit,
            is_active=db_discount.is_active,
            applies_to=db_discount.applies_to,
            applicables=[
                DiscountApplicable(applicable_type=item.applicable_type, applicable_id=item.applicable_id)
                for item in db_discount.applicables
            ],
            created_by=db_discount.created_by,
            created_at=db_discount.created_at,
            updated_at=db_discount.updated_at
        )

    def customer_discount_to_model(self, db_grant: CustomerDiscountDB) -> CustomerDiscount:
        return CustomerDiscount(
            id=db_grant.id,
            discount_id=db_grant.discount_id,
            customer_id=db_grant.customer_id,
            used_count=db_grant.used_count,
            max_usage=db_grant.max_usage,
            expires_at=db_grant.expires_at
        )

    def usage_to_model(self, db_usage: DiscountUsageDB) -> DiscountUsage:
        return DiscountUsage(
            id=db_usage.id,
            discount_id=db_usage.discount_id,
            customer_id=db_usage.customer_id,
            booking_id=db_usage.booking_id,
            original_amount=db_usage.original_amount,
            discount_amount=db_usage.discount_amount,
            final_amount=db_usage.final_amount,
            used_at=db_usage.used_at
        )

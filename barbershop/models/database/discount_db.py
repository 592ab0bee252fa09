"""
折扣相关数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from barbershop.core.database import Base


class DiscountDB(Base):
    """折扣信息表"""

    __tablename__ = "discounts"

    # 主键和基本信息
    id = Column(Integer, primary_key=True, autoincrement=True, comment="折扣ID")
    code = Column(String(50), nullable=False, unique=True, index=True, comment="折扣码")
    name = Column(String(255), nullable=False, comment="折扣名称")
    description = Column(Text, comment="折扣描述")

    # 折扣信息
    discount_type = Column(String(20), nullable=False, comment="折扣类型")
    discount_value = Column(Numeric(10, 2), nullable=False, comment="折扣值")
    max_discount_amount = Column(Numeric(10, 2), comment="最大折扣金额")
    min_order_amount = Column(Numeric(10, 2), comment="最低订单金额")

    # 有效期
    start_date = Column(DateTime, nullable=False, index=True, comment="开始时间")
    end_date = Column(DateTime, nullable=False, index=True, comment="结束时间")

    # 使用限制
    usage_limit = Column(Integer, comment="总使用次数限制")
    used_count = Column(Integer, nullable=False, default=0, comment="已使用次数")
    customer_usage_limit = Column(Integer, comment="单客户使用次数限制")

    # 状态与范围
    is_active = Column(Boolean, nullable=False, default=True, index=True, comment="是否启用")
    applies_to = Column(String(20), nullable=False, default="all", comment="适用范围")
    created_by = Column(Integer, comment="创建者ID")

    # 时间戳
    created_at = Column(DateTime, server_default=func.now(), comment="创建时间")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="更新时间")

    # 关系映射
    applicables = relationship(
        "DiscountApplicableDB",
        back_populates="discount",
        cascade="all, delete-orphan",
        lazy="selectin",
        passive_deletes=True
    )

    __table_args__ = (
        {'comment': '折扣信息表'}
    )


class DiscountApplicableDB(Base):
    """折扣适用对象表"""

    __tablename__ = "discount_applicables"

    id = Column(Integer, primary_key=True, autoincrement=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True, comment="折扣ID")
    applicable_type = Column(String(20), nullable=False, comment="适用对象类型")
    applicable_id = Column(Integer, nullable=False, comment="适用对象ID")

    discount = relationship("DiscountDB", back_populates="applicables")

    __table_args__ = (
        UniqueConstraint("discount_id", "applicable_type", "applicable_id", name="uq_discount_applicable"),
        {'comment': '折扣适用对象表'}
    )


class CustomerDiscountDB(Base):
    """客户专属折扣表"""

    __tablename__ = "customer_discounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, nullable=False, index=True, comment="客户ID")
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, comment="折扣ID")
    used_count = Column(Integer, nullable=False, default=0, comment="已使用次数")
    max_usage = Column(Integer, comment="最大使用次数")
    expires_at = Column(DateTime, comment="过期时间")

    created_at = Column(DateTime, server_default=func.now(), comment="创建时间")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), comment="更新时间")

    __table_args__ = (
        UniqueConstraint("customer_id", "discount_id", name="uq_customer_discount"),
        {'comment': '客户专属折扣表'}
    )


class DiscountUsageDB(Base):
    """折扣使用记录表"""

    __tablename__ = "discount_usages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, comment="折扣ID")
    customer_id = Column(Integer, nullable=False, comment="客户ID")
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True, comment="预约ID")

    # 金额信息
    original_amount = Column(Numeric(10, 2), nullable=False, comment="原始金额")
    discount_amount = Column(Numeric(10, 2), nullable=False, comment="折扣金额")
    final_amount = Column(Numeric(10, 2), nullable=False, comment="最终金额")

    used_at = Column(DateTime, nullable=False, server_default=func.now(), comment="使用时间")

    __table_args__ = (
        Index("ix_discount_usages_discount_customer", "discount_id", "customer_id"),
        {'comment': '折扣使用记录表'}
    )

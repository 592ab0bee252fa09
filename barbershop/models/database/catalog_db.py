"""
服务项目数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Boolean, ForeignKey, UniqueConstraint
from barbershop.core.database import Base


class ServiceDB(Base):
    """服务项目表"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, index=True, comment="服务分类ID")
    name = Column(String(255), nullable=False, comment="服务名称")
    base_price = Column(Numeric(10, 2), nullable=False, comment="基础价格")
    duration = Column(Integer, nullable=False, comment="时长（分钟）")
    is_active = Column(Boolean, nullable=False, default=True, comment="是否上架")

    __table_args__ = (
        {'comment': '服务项目表'}
    )


class BarberServiceDB(Base):
    """理发师提供的服务表"""

    __tablename__ = "barber_services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    barber_id = Column(Integer, nullable=False, index=True, comment="理发师ID")
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, comment="服务ID")
    custom_price = Column(Numeric(10, 2), comment="自定义价格")
    custom_duration = Column(Integer, comment="自定义时长（分钟）")
    is_available = Column(Boolean, nullable=False, default=True, comment="是否提供")

    __table_args__ = (
        UniqueConstraint("barber_id", "service_id", name="uq_barber_service"),
        {'comment': '理发师服务表'}
    )

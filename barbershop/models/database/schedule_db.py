"""
理发师排班数据库模型
"""

from sqlalchemy import Column, String, Integer, Boolean, Date, Time, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from barbershop.core.database import Base


class BarberScheduleDB(Base):
    """理发师每周排班表"""

    __tablename__ = "barber_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    barber_id = Column(Integer, nullable=False, index=True, comment="理发师ID")
    day_of_week = Column(Integer, nullable=False, comment="星期几 0=周日")
    start_time = Column(Time, nullable=False, comment="上班时间")
    end_time = Column(Time, nullable=False, comment="下班时间")
    is_available = Column(Boolean, nullable=False, default=True, comment="是否可预约")

    created_at = Column(DateTime, server_default=func.now(), comment="创建时间")

    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="uq_barber_schedule_day"),
        {'comment': '理发师每周排班表'}
    )


class BarberTimeOffDB(Base):
    """理发师请假表"""

    __tablename__ = "barber_time_off"

    id = Column(Integer, primary_key=True, autoincrement=True)
    barber_id = Column(Integer, nullable=False, index=True, comment="理发师ID")
    start_date = Column(Date, nullable=False, comment="开始日期")
    end_date = Column(Date, nullable=False, comment="结束日期")
    reason = Column(String(500), comment="请假原因")

    created_at = Column(DateTime, server_default=func.now(), comment="创建时间")

    __table_args__ = (
        {'comment': '理发师请假表'}
    )

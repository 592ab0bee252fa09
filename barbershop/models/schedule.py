"""
理发师排班与请假数据模型
"""

from datetime import datetime, date, time
from typing import Optional
from pydantic import BaseModel, Field, validator


class BarberSchedule(BaseModel):
    """每周固定排班，day_of_week: 0=周日 ... 6=周六"""

    id: Optional[int] = None
    barber_id: int = Field(..., description="理发师ID")
    day_of_week: int = Field(..., ge=0, le=6, description="星期几")
    start_time: time = Field(..., description="上班时间")
    end_time: time = Field(..., description="下班时间")
    is_available: bool = Field(default=True, description="是否可预约")

    @validator('end_time')
    def validate_time_range(cls, v, values):
        if 'start_time' in values and v <= values['start_time']:
            raise ValueError('下班时间必须晚于上班时间')
        return v


class ScheduleEntry(BaseModel):
    """排班更新时的单日配置"""

    day_of_week: int = Field(..., ge=0, le=6, description="星期几")
    is_available: bool = Field(..., description="当天是否上班")
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @validator('end_time', always=True)
    def validate_available_day(cls, v, values):
        """上班日必须同时给出上下班时间"""
        if values.get('is_available'):
            start = values.get('start_time')
            if start is None or v is None:
                raise ValueError('上班日必须填写上下班时间')
            if v <= start:
                raise ValueError('下班时间必须晚于上班时间')
        return v


class BarberTimeOff(BaseModel):
    """理发师请假（闭区间日期）"""

    id: Optional[int] = None
    barber_id: int = Field(..., description="理发师ID")
    start_date: date = Field(..., description="开始日期")
    end_date: date = Field(..., description="结束日期")
    reason: Optional[str] = Field(None, max_length=500, description="请假原因")
    created_at: Optional[datetime] = None

    def covers(self, day: date) -> bool:
        """日期是否落在请假区间内（含首尾）"""
        return self.start_date <= day <= self.end_date

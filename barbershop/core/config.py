from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import List, Optional
from enum import Enum


class Environment(str, Enum):
    """运行环境枚举"""
    TESTING = "testing"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """应用配置，从环境变量或 .env 读取（不区分大小写）"""

    # 应用
    app_name: str = "Barbershop Booking"
    app_version: str = "1.0.0"
    environment: Environment = Environment.TESTING
    debug: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # PostgreSQL，database_url 优先
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "barbershop_db"
    db_user: str = "barbershop_user"
    db_password: str = "barbershop_password"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_recycle: int = 3600

    # Redis（折扣查询缓存），redis_url 优先
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    redis_max_connections: int = 20

    # 折扣
    currency_decimal_places: int = Field(2, ge=0, le=4, description="金额保留的小数位")
    discount_code_length: int = Field(8, ge=4, le=50, description="自动生成折扣码的长度")
    discount_cache_ttl: int = Field(1800, ge=1, description="折扣码查询缓存秒数")

    # 预约
    customer_cancellation_cutoff_minutes: int = Field(30, ge=0, description="客户最晚在开始前多少分钟取消")
    slot_step_minutes: int = Field(30, ge=5, description="可预约时间列表的步长")

    @validator('log_level')
    def normalize_log_level(cls, v):
        return v.upper()

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def database_url_computed(self) -> str:
        """PostgreSQL 异步连接串"""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def redis_url_computed(self) -> str:
        if self.redis_url:
            return self.redis_url
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    class Config:
        env_file = ".env"
        case_sensitive = False


# 全局配置实例
settings = Settings()

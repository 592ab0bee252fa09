"""
Redis连接管理

应用启动时创建连接池，折扣缓存复用同一个客户端。
Redis 只用于缓存，不可用时业务照常读数据库。
"""

from typing import Optional

import redis.asyncio as aioredis
import structlog

from barbershop.core.config import settings

logger = structlog.get_logger()


class RedisManager:
    """Redis连接管理器"""

    def __init__(self):
        self.redis_pool: Optional[aioredis.Redis] = None

    async def init_redis(self) -> None:
        self.redis_pool = aioredis.from_url(
            settings.redis_url_computed,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.redis_max_connections,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True
        )
        try:
            await self.redis_pool.ping()
        except Exception as e:
            logger.error("Redis连接初始化失败", error=str(e), url=settings.redis_url_computed)
            await self.close_redis()
            raise
        logger.info("Redis连接初始化成功", max_connections=settings.redis_max_connections)

    async def close_redis(self) -> None:
        if self.redis_pool:
            await self.redis_pool.aclose()
            self.redis_pool = None
            logger.info("Redis连接已关闭")

    async def ping(self) -> bool:
        """健康检查用，失败时返回False而不抛异常"""
        if not self.redis_pool:
            return False
        try:
            return bool(await self.redis_pool.ping())
        except Exception as e:
            logger.warning("Redis ping失败", error=str(e))
            return False


# 全局Redis管理器实例
redis_manager = RedisManager()


def get_redis_client() -> Optional[aioredis.Redis]:
    return redis_manager.redis_pool

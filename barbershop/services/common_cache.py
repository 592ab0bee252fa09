"""
通用缓存工具
为折扣查询提供简单的Redis缓存，缓存不可用时直接回源数据库
"""

import json
import logging
from typing import Optional, Any
import redis.asyncio as redis

logger = logging.getLogger(__name__)


class SimpleCache:
    """简单缓存管理器，连接由 redis_manager 在应用启动时注入"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, key_prefix: str = ""):
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def _get_key(self, key: str) -> str:
        """获取完整的缓存key"""
        return f"{self.key_prefix}{key}" if self.key_prefix else key

    async def get(self, key: str) -> Optional[Any]:
        """获取缓存值，未命中或缓存异常时返回None"""
        if not self.redis_client:
            return None
        try:
            data = await self.redis_client.get(self._get_key(key))
            return json.loads(data) if data else None
        except Exception as e:
            logger.warning(f"获取缓存失败 {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """写入缓存，Decimal/datetime 按字符串序列化"""
        if not self.redis_client:
            return False
        try:
            data = json.dumps(value, default=str, ensure_ascii=False)
            await self.redis_client.setex(self._get_key(key), ttl, data)
            return True
        except Exception as e:
            logger.warning(f"设置缓存失败 {key}: {e}")
            return False

    async def delete(self, *keys: str) -> int:
        """删除一个或多个key，返回删除数量"""
        if not self.redis_client or not keys:
            return 0
        try:
            return await self.redis_client.delete(*[self._get_key(key) for key in keys])
        except Exception as e:
            logger.warning(f"删除缓存失败 {keys}: {e}")
            return 0


# 折扣模块缓存实例
discount_cache = SimpleCache(key_prefix="discount:")


def discount_code_key(code: str) -> str:
    """折扣码查询的缓存key"""
    return f"code:{code}"

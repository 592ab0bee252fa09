from fastapi import APIRouter
from fastapi.responses import JSONResponse
import logging

from barbershop.core.config import settings
from barbershop.core.redis import redis_manager
from barbershop.core.database import database_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["健康检查"])


@router.get("")
async def health_check():
    """基础健康检查接口"""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }


@router.get("/database")
async def database_health():
    """PostgreSQL 和 Redis 连接检查"""
    health_status = {
        "postgresql": False,
        "redis": False,
        "overall": False,
        "details": {}
    }

    pg_status = await database_service.health_check()
    health_status["postgresql"] = pg_status["status"] == "healthy"
    health_status["details"]["postgresql"] = pg_status["message"]

    health_status["redis"] = await redis_manager.ping()
    health_status["details"]["redis"] = "连接正常" if health_status["redis"] else "连接不可用"

    health_status["overall"] = health_status["postgresql"] and health_status["redis"]

    if not health_status["overall"]:
        logger.warning(f"数据库连接检查部分失败: {health_status['details']}")
        return JSONResponse(status_code=503, content=health_status)

    return health_status

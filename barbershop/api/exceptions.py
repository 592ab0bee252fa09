"""
异常处理器 - 将业务异常和框架异常统一转换为JSON响应
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from barbershop.core.config import settings
from barbershop.core.exceptions import BusinessException

logger = logging.getLogger(__name__)


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    """业务异常：按异常自带的状态码返回"""
    logger.info(f"业务异常 {exc.code} {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验失败"""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", []) if loc != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": {"code": "validation_error", "message": "请求参数校验失败", "field": None},
            "details": errors
        }
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """数据库异常"""
    logger.error(f"数据库异常 {request.method} {request.url.path}: {exc}")
    message = str(exc) if settings.debug else "数据库操作失败"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {"code": "database_error", "message": message, "field": None}
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未捕获的异常"""
    logger.exception(f"未处理异常 {request.method} {request.url.path}: {exc}")
    message = str(exc) if settings.debug else "服务器内部错误"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {"code": "internal_error", "message": message, "field": None, "type": type(exc).__name__}
        }
    )

"""全局异常处理器

提供 FastAPI 全局异常处理器，将异常转换为 OAuth2 标准错误响应。
故障类异常一律以 server_error 返回，不向调用方泄露内部细节。
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from yoauth.log import get_logger
from .exceptions import (
    BusinessException,
    OAuth2Exception,
    OAuth2ErrorCode,
    ERROR_DESCRIPTIONS,
)

logger = get_logger()


def server_error_content() -> dict:
    """生成 server_error 响应体"""
    return {
        "error": OAuth2ErrorCode.SERVER_ERROR.value,
        "error_description": ERROR_DESCRIPTIONS[OAuth2ErrorCode.SERVER_ERROR],
    }


async def oauth2_exception_handler(request: Request, exc: OAuth2Exception) -> JSONResponse:
    """OAuth2 协议异常处理器"""
    logger.warning(
        f"OAuth2 error: {exc.error.value} - {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.error.value,
            "status_code": exc.status_code,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    """业务异常处理器（包括 StorageException）"""
    logger.error(
        f"Business exception occurred: {exc.code} - {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
            "details": exc.details,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=server_error_content())


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理器（兜底）"""
    logger.exception(
        f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=server_error_content(),
    )


def register_exception_handlers(app) -> None:
    """注册所有异常处理器到 FastAPI 应用

    使用示例:
        from fastapi import FastAPI
        from yoauth.exceptions import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(OAuth2Exception, oauth2_exception_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered successfully")

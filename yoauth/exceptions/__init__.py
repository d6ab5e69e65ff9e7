"""异常模块

使用示例:
    from yoauth.exceptions import OAuth2ErrorCode, OAuth2Exception, register_exception_handlers

    raise OAuth2Exception(OAuth2ErrorCode.INVALID_GRANT)
"""

from .exceptions import (
    OAuth2ErrorCode,
    CredentialError,
    ERROR_DESCRIPTIONS,
    ErrorCodeType,
    BusinessException,
    OAuth2Exception,
    InvalidRequestException,
    InvalidClientException,
    StorageException,
)

from .handlers import (
    oauth2_exception_handler,
    business_exception_handler,
    general_exception_handler,
    register_exception_handlers,
    server_error_content,
)

__all__ = [
    # 错误代码
    "OAuth2ErrorCode",
    "CredentialError",
    "ERROR_DESCRIPTIONS",
    "ErrorCodeType",

    # 异常类
    "BusinessException",
    "OAuth2Exception",
    "InvalidRequestException",
    "InvalidClientException",
    "StorageException",

    # 处理器
    "oauth2_exception_handler",
    "business_exception_handler",
    "general_exception_handler",
    "register_exception_handlers",
    "server_error_content",
]

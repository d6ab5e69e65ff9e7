"""异常与错误代码定义

定义授权服务使用的错误代码与异常类体系：

- OAuth2ErrorCode: 对外（线上协议）错误代码，HTTP 层直接写入响应
- CredentialError: 凭证生命周期内部的失败原因，由编排层映射为 OAuth2ErrorCode
- BusinessException 及其子类: 领域异常；StorageException 表示故障而非领域结果
"""

import copy
from enum import Enum
from typing import Optional, List, Any, Dict, Union

from fastapi import status


class OAuth2ErrorCode(str, Enum):
    """OAuth2 线上错误代码

    继承自 str，可以直接作为字符串写入响应。
    """

    # ==================== 授权请求 ====================
    MISSING_CLIENT_ID = "missing_client_id"
    MISSING_REDIRECT_URI = "missing_redirect_uri"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_REDIRECT_URI = "invalid_redirect_uri"
    INVALID_REQUEST = "invalid_request"
    ACCESS_DENIED = "access_denied"

    # ==================== 客户端认证 ====================
    INVALID_CLIENT = "invalid_client"
    MISSING_CLIENT_SECRET = "missing_client_secret"

    # ==================== Token 请求 ====================
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    MISSING_CODE = "missing_code"
    INVALID_GRANT = "invalid_grant"
    EXPIRED_CODE = "expired_code"
    MISSING_CODE_VERIFIER = "missing_code_verifier"
    INVALID_CODE_VERIFIER = "invalid_code_verifier"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"

    # ==================== 故障 ====================
    SERVER_ERROR = "server_error"


# 默认错误描述
ERROR_DESCRIPTIONS: Dict[OAuth2ErrorCode, str] = {
    OAuth2ErrorCode.MISSING_CLIENT_ID: "The client_id parameter is required",
    OAuth2ErrorCode.MISSING_REDIRECT_URI: "The redirect_uri parameter is required",
    OAuth2ErrorCode.UNSUPPORTED_RESPONSE_TYPE: "Only the 'code' response type is supported",
    OAuth2ErrorCode.INVALID_REDIRECT_URI: "The redirect_uri is not registered for this client",
    OAuth2ErrorCode.INVALID_REQUEST: "The request is malformed",
    OAuth2ErrorCode.ACCESS_DENIED: "The resource owner denied the request",
    OAuth2ErrorCode.INVALID_CLIENT: "Client authentication failed",
    OAuth2ErrorCode.MISSING_CLIENT_SECRET: "Confidential clients must provide client_secret",
    OAuth2ErrorCode.UNSUPPORTED_GRANT_TYPE: "The grant type is not supported",
    OAuth2ErrorCode.MISSING_CODE: "The code parameter is required",
    OAuth2ErrorCode.INVALID_GRANT: "The provided authorization grant is invalid",
    OAuth2ErrorCode.EXPIRED_CODE: "The authorization code has expired",
    OAuth2ErrorCode.MISSING_CODE_VERIFIER: "The code_verifier parameter is required",
    OAuth2ErrorCode.INVALID_CODE_VERIFIER: "The code_verifier does not match the code_challenge",
    OAuth2ErrorCode.MISSING_REFRESH_TOKEN: "The refresh_token parameter is required",
    OAuth2ErrorCode.SERVER_ERROR: "An internal server error occurred",
}


class CredentialError(str, Enum):
    """凭证校验失败原因

    授权码与 Token 生命周期返回的领域结果，供诊断与错误映射使用。
    MISSING_CODE_VERIFIER 与 INVALID_CODE_VERIFIER 是两个独立的失败点。
    """
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    CLIENT_MISMATCH = "client_mismatch"
    REDIRECT_URI_MISMATCH = "redirect_uri_mismatch"
    MISSING_CODE_VERIFIER = "missing_code_verifier"
    INVALID_CODE_VERIFIER = "invalid_code_verifier"
    PASSWORD_CHANGED = "password_changed"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, OAuth2ErrorCode]


class BusinessException(Exception):
    """业务异常基类

    属性:
        message: 错误消息
        code: 错误代码
        status_code: HTTP 状态码
        details: 详细错误信息列表
        extra: 额外的上下文信息
    """

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = OAuth2ErrorCode.INVALID_REQUEST,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra)
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )


class OAuth2Exception(BusinessException):
    """OAuth2 协议异常

    携带 OAuth2ErrorCode，可以直接转换为 `{error, error_description}` 响应。

    使用示例:
        raise OAuth2Exception(OAuth2ErrorCode.INVALID_GRANT)
    """

    def __init__(
        self,
        error: OAuth2ErrorCode,
        description: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        **extra: Any
    ):
        self.error = OAuth2ErrorCode(error)
        super().__init__(
            message=description or ERROR_DESCRIPTIONS.get(self.error, self.error.value),
            code=self.error,
            status_code=status_code,
            **extra
        )

    def to_response(self) -> Dict[str, str]:
        """转换为 OAuth2 标准错误响应"""
        return {"error": self.error.value, "error_description": self.message}


class InvalidRequestException(OAuth2Exception):
    """请求参数不合法（如不支持的 code_challenge_method）"""

    def __init__(self, description: Optional[str] = None, **extra: Any):
        super().__init__(OAuth2ErrorCode.INVALID_REQUEST, description, **extra)


class InvalidClientException(OAuth2Exception):
    """客户端认证失败"""

    def __init__(self, description: Optional[str] = None, **extra: Any):
        super().__init__(
            OAuth2ErrorCode.INVALID_CLIENT,
            description,
            status_code=status.HTTP_401_UNAUTHORIZED,
            **extra
        )


class StorageException(BusinessException):
    """存储故障

    存储后端不可用或执行失败时抛出。属于故障而非领域结果，
    生命周期与编排层不会吞掉它，由 HTTP 层统一转换为 server_error。
    """

    def __init__(
        self,
        message: str = "存储服务不可用",
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=OAuth2ErrorCode.SERVER_ERROR,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            **extra
        )

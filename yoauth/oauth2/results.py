"""授权请求与 Token 请求的结果结构

编排层的领域结果统一用这两个结构返回，HTTP 层只负责把它们写到线上。
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from yoauth.exceptions import ERROR_DESCRIPTIONS, OAuth2ErrorCode
from .models import AccessToken, Client, RefreshToken, TokenType


@dataclass
class AuthorizationValidationResult:
    """授权请求校验结果"""
    valid: bool
    error: Optional[OAuth2ErrorCode] = None
    client: Optional[Client] = None

    @classmethod
    def ok(cls, client: Client) -> "AuthorizationValidationResult":
        return cls(valid=True, client=client)

    @classmethod
    def fail(cls, error: OAuth2ErrorCode) -> "AuthorizationValidationResult":
        return cls(valid=False, error=OAuth2ErrorCode(error))

    def to_dict(self) -> Dict[str, Any]:
        if self.valid:
            return {"valid": True}
        return {"valid": False, "error": self.error.value}


@dataclass
class TokenGrantResult:
    """Token 请求结果

    成功时携带访问令牌与刷新令牌记录，失败时携带错误代码。
    """
    success: bool
    access_token: Optional[AccessToken] = None
    refresh_token: Optional[RefreshToken] = None
    error: Optional[OAuth2ErrorCode] = None
    error_description: Optional[str] = None

    @classmethod
    def ok(cls, access_token: AccessToken, refresh_token: RefreshToken) -> "TokenGrantResult":
        return cls(success=True, access_token=access_token, refresh_token=refresh_token)

    @classmethod
    def fail(cls, error: OAuth2ErrorCode, description: Optional[str] = None) -> "TokenGrantResult":
        error = OAuth2ErrorCode(error)
        return cls(
            success=False,
            error=error,
            error_description=description or ERROR_DESCRIPTIONS.get(error, error.value),
        )

    def to_response(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """转换为 OAuth 2.0 标准响应格式

        expires_in 为访问令牌剩余有效期（秒，向下取整）。
        """
        if not self.success:
            return {"error": self.error.value, "error_description": self.error_description}

        return {
            "access_token": self.access_token.token,
            "refresh_token": self.refresh_token.token,
            "expires_in": self.access_token.expires_in(now),
            "token_type": TokenType.BEARER.value,
        }

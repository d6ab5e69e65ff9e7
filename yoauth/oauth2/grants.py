"""OAuth 2.0 授权类型实现

实现 authorization_code 与 refresh_token 两种授权流程：
校验 -> 消费 / 轮换 -> 签发。

领域失败以 TokenGrantResult 返回；存储故障（StorageException）向上抛出，不在此吞掉。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from yoauth.exceptions import CredentialError, OAuth2ErrorCode
from yoauth.log import get_logger, mask_credential
from .codes import AuthorizationCodeService
from .models import AccessToken, Client, RefreshToken
from .results import TokenGrantResult
from .tokens import TokenService

logger = get_logger()


class GrantType(str, Enum):
    """授权类型"""
    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


# 授权码流程的错误映射
CODE_GRANT_ERRORS: Dict[CredentialError, OAuth2ErrorCode] = {
    CredentialError.NOT_FOUND: OAuth2ErrorCode.INVALID_GRANT,
    CredentialError.EXPIRED: OAuth2ErrorCode.EXPIRED_CODE,
    CredentialError.CLIENT_MISMATCH: OAuth2ErrorCode.INVALID_GRANT,
    CredentialError.REDIRECT_URI_MISMATCH: OAuth2ErrorCode.INVALID_GRANT,
    CredentialError.MISSING_CODE_VERIFIER: OAuth2ErrorCode.MISSING_CODE_VERIFIER,
    CredentialError.INVALID_CODE_VERIFIER: OAuth2ErrorCode.INVALID_CODE_VERIFIER,
    CredentialError.PASSWORD_CHANGED: OAuth2ErrorCode.INVALID_GRANT,
}


@dataclass
class GrantContext:
    """授权上下文

    包含授权过程中需要的所有信息。client 为已通过认证的客户端。
    """
    client: Client
    grant_type: GrantType

    # Authorization Code 相关
    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    code_verifier: Optional[str] = None  # PKCE

    # Refresh Token 相关
    refresh_token: Optional[str] = None

    # 额外参数
    extra: Dict[str, Any] = field(default_factory=dict)


class BaseGrant(ABC):
    """授权基类"""

    def __init__(
        self,
        access_tokens: TokenService,
        refresh_tokens: TokenService,
        check_password_change: bool = True,
    ):
        self.access_tokens = access_tokens
        self.refresh_tokens = refresh_tokens
        self.check_password_change = check_password_change

    @property
    @abstractmethod
    def grant_type(self) -> GrantType:
        """返回授权类型"""
        pass

    @abstractmethod
    def validate(self, context: GrantContext) -> Tuple[bool, Any]:
        """验证授权请求

        Returns:
            tuple: (True, 凭证记录) 或 (False, OAuth2ErrorCode)
        """
        pass

    @abstractmethod
    def create_token(self, context: GrantContext, record: Any) -> TokenGrantResult:
        """根据已验证的凭证签发 Token"""
        pass

    def handle(self, context: GrantContext) -> TokenGrantResult:
        """处理授权请求"""
        is_valid, result = self.validate(context)
        if not is_valid:
            return TokenGrantResult.fail(result)
        return self.create_token(context, result)

    def _issue_pair(self, user_id: Any, client_id: str, scope: Optional[str]) -> Tuple[AccessToken, RefreshToken]:
        """签发访问令牌与刷新令牌

        刷新令牌签发失败时撤销已签发的访问令牌后再抛出。
        """
        access_token = self.access_tokens.issue(user_id, client_id, scope)
        try:
            refresh_token = self.refresh_tokens.issue(user_id, client_id, scope)
        except Exception:
            self.access_tokens.revoke(access_token.token)
            raise
        return access_token, refresh_token


class AuthorizationCodeGrant(BaseGrant):
    """授权码授权

    使用示例:
        grant = AuthorizationCodeGrant(codes, access_tokens, refresh_tokens)

        context = GrantContext(
            client=client,
            grant_type=GrantType.AUTHORIZATION_CODE,
            code="auth_code_xxx",
            redirect_uri="https://app.example.com/callback",
            code_verifier=verifier,
        )
        result = grant.handle(context)
    """

    def __init__(
        self,
        codes: AuthorizationCodeService,
        access_tokens: TokenService,
        refresh_tokens: TokenService,
        check_password_change: bool = True,
    ):
        super().__init__(access_tokens, refresh_tokens, check_password_change)
        self.codes = codes

    @property
    def grant_type(self) -> GrantType:
        return GrantType.AUTHORIZATION_CODE

    def validate(self, context: GrantContext) -> Tuple[bool, Any]:
        """验证并消费授权码"""
        if not context.code:
            return False, OAuth2ErrorCode.MISSING_CODE

        if not context.redirect_uri:
            return False, OAuth2ErrorCode.MISSING_REDIRECT_URI

        is_valid, result = self.codes.validate_and_consume(
            context.code,
            redirect_uri=context.redirect_uri,
            code_verifier=context.code_verifier,
            client_id=context.client.id,
            check_password_change=self.check_password_change,
        )
        if not is_valid:
            logger.info(
                f"Authorization code rejected: {result.value}, client={context.client.client_id}"
            )
            return False, CODE_GRANT_ERRORS[result]

        return True, result

    def create_token(self, context: GrantContext, record: Any) -> TokenGrantResult:
        access_token, refresh_token = self._issue_pair(record.user_id, context.client.id, record.scope)
        logger.info(f"Tokens issued for authorization code: client={context.client.client_id}, user={record.user_id}")
        return TokenGrantResult.ok(access_token, refresh_token)


class RefreshTokenGrant(BaseGrant):
    """刷新令牌授权（轮换）

    流程: 校验 R1 -> 签发 A2 与 R2 -> 原子地取走 R1。

    R1 在最后一步才被取走：签发失败时 R1 仍然有效。若取走时发现 R1 已不存在
    （并发轮换已经成功），撤销 A2 与 R2 并返回 invalid_grant，
    因此同一条刷新令牌链上至多交付一个后继刷新令牌。
    """

    @property
    def grant_type(self) -> GrantType:
        return GrantType.REFRESH_TOKEN

    def validate(self, context: GrantContext) -> Tuple[bool, Any]:
        """验证刷新令牌"""
        if not context.refresh_token:
            return False, OAuth2ErrorCode.MISSING_REFRESH_TOKEN

        is_valid, result = self.refresh_tokens.validate(
            context.refresh_token,
            check_password_change=False,
        )
        if not is_valid:
            logger.info(
                f"Refresh token rejected: {result.value}, "
                f"token={mask_credential(context.refresh_token)}"
            )
            return False, OAuth2ErrorCode.INVALID_GRANT

        if result.client_id != context.client.id:
            logger.warning(
                f"Refresh token client mismatch: token={mask_credential(context.refresh_token)}, "
                f"presented_by={context.client.client_id}"
            )
            return False, OAuth2ErrorCode.INVALID_GRANT

        if self.check_password_change and self.refresh_tokens.password_changed_since(result):
            logger.info(f"Refresh token rejected after password change: user={result.user_id}")
            return False, OAuth2ErrorCode.INVALID_GRANT

        return True, result

    def create_token(self, context: GrantContext, record: Any) -> TokenGrantResult:
        access_token, refresh_token = self._issue_pair(record.user_id, context.client.id, record.scope)

        try:
            consumed = self.refresh_tokens.consume(record.token)
        except Exception:
            self._rollback(access_token, refresh_token)
            raise

        if consumed is None:
            self._rollback(access_token, refresh_token)
            logger.warning(
                f"Refresh token already rotated by a concurrent request: "
                f"{mask_credential(record.token)}, client={context.client.client_id}"
            )
            return TokenGrantResult.fail(OAuth2ErrorCode.INVALID_GRANT)

        logger.info(
            f"Refresh token rotated: {mask_credential(record.token)} -> "
            f"{mask_credential(refresh_token.token)}, user={record.user_id}"
        )
        return TokenGrantResult.ok(access_token, refresh_token)

    def _rollback(self, access_token: AccessToken, refresh_token: RefreshToken) -> None:
        self.access_tokens.revoke(access_token.token)
        self.refresh_tokens.revoke(refresh_token.token)

"""OAuth 2.0 管理器

统一编排授权请求校验、授权码签发、Token 请求、撤销与校验。
管理器本身无状态，全部状态都在注入的存储中，可以在多线程间共享。
"""

from typing import Any, Dict, Optional, Tuple, Union, TYPE_CHECKING

from yoauth.config import AppSettings, OAuth2Settings
from yoauth.exceptions import (
    CredentialError,
    InvalidClientException,
    OAuth2ErrorCode,
    OAuth2Exception,
)
from yoauth.log import get_logger, mask_credential
from .codes import AuthorizationCodeService
from .grants import (
    AuthorizationCodeGrant,
    BaseGrant,
    GrantContext,
    GrantType,
    RefreshTokenGrant,
)
from .models import AccessToken, Client, TokenKind
from .results import AuthorizationValidationResult, TokenGrantResult
from .tokens import TokenService

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from yoauth.stores.base import ClientDirectory, CredentialStore, UserDirectory

logger = get_logger()


class OAuth2Manager:
    """OAuth 2.0 管理器

    使用示例:
        from yoauth.oauth2 import OAuth2Manager
        from yoauth.stores import create_memory_stores

        manager = OAuth2Manager(**create_memory_stores())

        # 校验授权请求
        result = manager.validate_authorization_request(
            client_id="client_xxx",
            redirect_uri="https://app.example.com/callback",
            response_type="code",
        )

        # 用户同意后签发授权码
        code = manager.create_authorization_code(
            client_id="client_xxx",
            user_id=1,
            redirect_uri="https://app.example.com/callback",
            code_challenge=challenge,
            code_challenge_method="S256",
        )

        # 交换 Token
        result = manager.handle_token_request(
            grant_type="authorization_code",
            client_id="client_xxx",
            code=code,
            redirect_uri="https://app.example.com/callback",
            code_verifier=verifier,
        )
        response = result.to_response()
    """

    def __init__(
        self,
        clients: "ClientDirectory",
        users: "UserDirectory",
        code_store: "CredentialStore",
        access_token_store: "CredentialStore",
        refresh_token_store: "CredentialStore",
        settings: Optional[OAuth2Settings] = None,
    ):
        """
        Args:
            clients: 客户端目录
            users: 用户目录
            code_store: 授权码存储
            access_token_store: 访问令牌存储
            refresh_token_store: 刷新令牌存储
            settings: OAuth2 配置，缺省使用默认配置
        """
        self.settings = settings or OAuth2Settings()
        self.clients = clients
        self.users = users
        self.check_password_change = self.settings.check_password_change

        self.codes = AuthorizationCodeService(
            code_store,
            users=users,
            expire_seconds=self.settings.authorization_code_expire_seconds,
            code_bytes=self.settings.authorization_code_bytes,
        )
        self.access_tokens = TokenService(
            access_token_store,
            TokenKind.ACCESS,
            users=users,
            expire_seconds=self.settings.access_token_expire_seconds,
            token_bytes=self.settings.access_token_bytes,
        )
        self.refresh_tokens = TokenService(
            refresh_token_store,
            TokenKind.REFRESH,
            users=users,
            expire_seconds=self.settings.refresh_token_expire_seconds,
            token_bytes=self.settings.refresh_token_bytes,
        )

        # 授权类型处理器
        self._grants: Dict[GrantType, BaseGrant] = {}
        self._setup_grants()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AppSettings] = None,
        engine: Optional["Engine"] = None,
    ) -> "OAuth2Manager":
        """根据应用配置创建管理器

        提供 engine 时使用 SQLAlchemy 存储，否则使用内存存储。
        """
        from yoauth.stores import create_memory_stores, create_sql_stores

        settings = settings or AppSettings()
        stores = create_sql_stores(engine) if engine is not None else create_memory_stores()
        return cls(settings=settings.oauth2, **stores)

    def _setup_grants(self):
        """初始化授权类型处理器"""
        self._grants[GrantType.AUTHORIZATION_CODE] = AuthorizationCodeGrant(
            self.codes,
            self.access_tokens,
            self.refresh_tokens,
            check_password_change=self.check_password_change,
        )
        self._grants[GrantType.REFRESH_TOKEN] = RefreshTokenGrant(
            self.access_tokens,
            self.refresh_tokens,
            check_password_change=self.check_password_change,
        )

    # ========== 客户端认证 ==========

    def authenticate_client(
        self,
        client_id: Optional[str],
        client_secret: Optional[str] = None,
    ) -> Tuple[bool, Union[Client, OAuth2ErrorCode]]:
        """认证客户端

        客户端不存在与密钥错误返回同一个错误代码 invalid_client。

        Returns:
            tuple: (True, Client) 或 (False, OAuth2ErrorCode)
        """
        client = self.clients.find_by_external_id(client_id) if client_id else None
        if client is None:
            return False, OAuth2ErrorCode.INVALID_CLIENT

        if client.requires_secret():
            if not client_secret:
                return False, OAuth2ErrorCode.MISSING_CLIENT_SECRET
            if not self.clients.verify_secret(client_id, client_secret):
                logger.warning(f"Client authentication failed: {client_id}")
                return False, OAuth2ErrorCode.INVALID_CLIENT

        return True, client

    # ========== 授权请求 ==========

    def validate_authorization_request(
        self,
        client_id: Optional[str],
        redirect_uri: Optional[str],
        response_type: Optional[str],
    ) -> AuthorizationValidationResult:
        """校验授权请求

        检查顺序: client_id -> redirect_uri -> response_type -> 客户端存在 -> 重定向 URI 已注册
        """
        if not client_id:
            return AuthorizationValidationResult.fail(OAuth2ErrorCode.MISSING_CLIENT_ID)
        if not redirect_uri:
            return AuthorizationValidationResult.fail(OAuth2ErrorCode.MISSING_REDIRECT_URI)
        if response_type != "code":
            return AuthorizationValidationResult.fail(OAuth2ErrorCode.UNSUPPORTED_RESPONSE_TYPE)

        client = self.clients.find_by_external_id(client_id)
        if client is None:
            return AuthorizationValidationResult.fail(OAuth2ErrorCode.INVALID_CLIENT)

        if not self.clients.redirect_uri_registered(client, redirect_uri):
            logger.warning(f"Unregistered redirect_uri for client {client_id}: {redirect_uri}")
            return AuthorizationValidationResult.fail(OAuth2ErrorCode.INVALID_REDIRECT_URI)

        return AuthorizationValidationResult.ok(client)

    def create_authorization_code(
        self,
        client_id: str,
        user_id: Any,
        redirect_uri: str,
        scope: Optional[str] = None,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
    ) -> str:
        """为已认证并同意授权的用户签发授权码

        Args:
            client_id: 外部客户端 ID
            user_id: 用户 ID
            redirect_uri: 重定向 URI（必须已注册）
            scope: 权限范围
            code_challenge: PKCE code_challenge
            code_challenge_method: PKCE 方法（plain / S256，缺省 plain）

        Returns:
            str: 授权码

        Raises:
            InvalidClientException: 客户端不存在
            OAuth2Exception: 重定向 URI 未注册
            InvalidRequestException: 不支持的 code_challenge_method
        """
        client = self.clients.find_by_external_id(client_id)
        if client is None:
            raise InvalidClientException()
        if not self.clients.redirect_uri_registered(client, redirect_uri):
            raise OAuth2Exception(OAuth2ErrorCode.INVALID_REDIRECT_URI)

        return self.codes.issue(
            client_id=client.id,
            user_id=user_id,
            redirect_uri=redirect_uri,
            scope=scope,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )

    # ========== Token 请求 ==========

    def handle_token_request(
        self,
        grant_type: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str] = None,
        code: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        code_verifier: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> TokenGrantResult:
        """处理 Token 请求

        先检查授权类型，再认证客户端，然后分派到对应的授权处理器。

        Returns:
            TokenGrantResult: 领域结果（成功或错误代码）

        Raises:
            StorageException: 存储故障，记录日志后原样抛出
        """
        try:
            parsed_grant_type = GrantType(grant_type)
        except ValueError:
            return TokenGrantResult.fail(OAuth2ErrorCode.UNSUPPORTED_GRANT_TYPE)

        try:
            is_valid, result = self.authenticate_client(client_id, client_secret)
            if not is_valid:
                return TokenGrantResult.fail(result)

            context = GrantContext(
                client=result,
                grant_type=parsed_grant_type,
                code=code,
                redirect_uri=redirect_uri,
                code_verifier=code_verifier,
                refresh_token=refresh_token,
            )
            return self._grants[parsed_grant_type].handle(context)
        except Exception:
            logger.exception(f"Token request failed: grant_type={grant_type}, client={client_id}")
            raise

    # ========== 撤销 ==========

    def revoke_token(
        self,
        token: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str] = None,
    ) -> Tuple[bool, Union[bool, OAuth2ErrorCode]]:
        """撤销 Token

        先认证客户端，再依次尝试按访问令牌、刷新令牌撤销。
        Token 不存在同样视为成功。

        Returns:
            tuple: (True, 是否实际撤销了记录) 或 (False, OAuth2ErrorCode)
        """
        if not token or not client_id:
            return False, OAuth2ErrorCode.INVALID_REQUEST

        is_valid, result = self.authenticate_client(client_id, client_secret)
        if not is_valid:
            return False, OAuth2ErrorCode.INVALID_CLIENT

        revoked = self.access_tokens.revoke(token) or self.refresh_tokens.revoke(token)
        logger.info(f"Token revocation by {client_id}: {mask_credential(token)}, revoked={revoked}")
        return True, revoked

    def revoke_all_user_tokens(self, user_id: Any) -> int:
        """撤销用户的全部访问令牌与刷新令牌（如用户修改密码、注销账号）"""
        count = self.access_tokens.revoke_all_for_user(user_id)
        count += self.refresh_tokens.revoke_all_for_user(user_id)
        return count

    # ========== 校验 ==========

    def validate_access_token(
        self,
        token: str,
        check_password_change: bool = True,
    ) -> Tuple[bool, Union[AccessToken, CredentialError]]:
        """校验访问令牌（资源服务器使用）

        改密检查使用 Token 自身所属的用户。

        Returns:
            tuple: (True, AccessToken) 或 (False, CredentialError)
        """
        is_valid, result = self.access_tokens.validate(token, check_password_change=False)
        if not is_valid:
            return False, result

        if check_password_change and self.check_password_change:
            if self.access_tokens.password_changed_since(result):
                return False, CredentialError.PASSWORD_CHANGED

        return True, result

    def cleanup_expired(self) -> Dict[str, int]:
        """清理过期的授权码与 Token

        校验本身不依赖清理，这里只用于控制存储增长，可由定时任务调用。
        """
        counts = {
            "authorization_codes": self.codes.purge_expired(),
            "access_tokens": self.access_tokens.purge_expired(),
            "refresh_tokens": self.refresh_tokens.purge_expired(),
        }
        logger.info(f"Expired credentials purged: {counts}")
        return counts

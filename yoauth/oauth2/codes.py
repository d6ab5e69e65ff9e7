"""授权码生命周期

状态机: issued -> (consumed | expired | invalid)，终态不可重入。

兑换时先通过存储的 atomic_consume 取走记录，再执行各项检查，
因此同一个授权码至多只有一个调用者能拿到记录；任何检查失败后授权码同样作废。
"""

from datetime import timedelta
from typing import Any, Optional, Tuple, Union, TYPE_CHECKING

from yoauth.exceptions import CredentialError, InvalidRequestException
from yoauth.log import get_logger, mask_credential
from .credentials import AUTHORIZATION_CODE_BYTES, generate_authorization_code
from .models import AuthorizationCode, ensure_utc, utcnow
from .pkce import PKCEMethod, verify as verify_pkce

if TYPE_CHECKING:
    from yoauth.stores.base import CredentialStore, UserDirectory

logger = get_logger()

CodeResult = Tuple[bool, Union[AuthorizationCode, CredentialError]]


class AuthorizationCodeService:
    """授权码服务

    使用示例:
        codes = AuthorizationCodeService(store=code_store, users=user_directory)

        code = codes.issue(
            client_id=client.id,
            user_id=1,
            redirect_uri="https://app.example.com/callback",
            code_challenge=challenge,
            code_challenge_method="S256",
        )

        ok, result = codes.validate_and_consume(
            code,
            redirect_uri="https://app.example.com/callback",
            code_verifier=verifier,
            client_id=client.id,
        )
    """

    def __init__(
        self,
        store: "CredentialStore[AuthorizationCode]",
        users: Optional["UserDirectory"] = None,
        expire_seconds: int = 600,
        code_bytes: int = AUTHORIZATION_CODE_BYTES,
    ):
        """
        Args:
            store: 授权码存储
            users: 用户目录，用于改密检查；为 None 时跳过改密检查
            expire_seconds: 授权码有效期（秒）
            code_bytes: 授权码随机字节数
        """
        self.store = store
        self.users = users
        self.expire_seconds = expire_seconds
        self.code_bytes = code_bytes

    def issue(
        self,
        client_id: str,
        user_id: Any,
        redirect_uri: str,
        scope: Optional[str] = None,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
    ) -> str:
        """签发授权码

        Args:
            client_id: 客户端内部 ID
            user_id: 授权用户 ID
            redirect_uri: 重定向 URI（兑换时必须完全一致）
            scope: 权限范围（不透明字符串）
            code_challenge: PKCE code_challenge
            code_challenge_method: PKCE 方法，缺省为 plain

        Returns:
            str: 授权码

        Raises:
            InvalidRequestException: 不支持的 code_challenge_method
        """
        method = None
        if code_challenge:
            parsed = PKCEMethod.parse(code_challenge_method)
            if parsed is None:
                raise InvalidRequestException(
                    f"Unsupported code_challenge_method: {code_challenge_method}"
                )
            method = parsed.value

        now = utcnow()
        auth_code = AuthorizationCode(
            code=generate_authorization_code(self.code_bytes),
            user_id=user_id,
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            code_challenge=code_challenge or None,
            code_challenge_method=method,
            expires_at=now + timedelta(seconds=self.expire_seconds),
            created_at=now,
        )
        self.store.create(auth_code)

        logger.debug(
            f"Authorization code issued: code={mask_credential(auth_code.code)}, "
            f"client={client_id}, user={user_id}, pkce={method or 'none'}"
        )
        return auth_code.code

    def validate_and_consume(
        self,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
        client_id: Optional[str] = None,
        check_password_change: bool = True,
    ) -> CodeResult:
        """校验并消费授权码

        检查顺序（首个失败即返回）：
        存在 -> 未过期 -> 客户端匹配（提供时）-> 重定向 URI 完全一致
        -> PKCE（存在 challenge 时必须提供并通过 verifier）-> 用户未在签发后改密

        Returns:
            tuple: (True, AuthorizationCode) 或 (False, CredentialError)

        Raises:
            StorageException: 存储故障
        """
        auth_code = self.store.atomic_consume(code) if code else None
        if auth_code is None:
            logger.warning(f"Authorization code not found or already used: {mask_credential(code)}")
            return False, CredentialError.NOT_FOUND

        now = utcnow()
        if auth_code.is_expired(now):
            logger.debug(f"Authorization code expired: {mask_credential(code)}")
            return False, CredentialError.EXPIRED

        if client_id is not None and auth_code.client_id != client_id:
            logger.warning(
                f"Authorization code client mismatch: {mask_credential(code)}, "
                f"issued_to={auth_code.client_id}, presented_by={client_id}"
            )
            return False, CredentialError.CLIENT_MISMATCH

        if auth_code.redirect_uri != redirect_uri:
            return False, CredentialError.REDIRECT_URI_MISMATCH

        if auth_code.code_challenge:
            if not code_verifier:
                return False, CredentialError.MISSING_CODE_VERIFIER
            method = PKCEMethod.parse(auth_code.code_challenge_method)
            if method is None:
                logger.warning(
                    f"Unsupported stored code_challenge_method: {auth_code.code_challenge_method!r}, "
                    f"code={mask_credential(code)}"
                )
                return False, CredentialError.INVALID_CODE_VERIFIER
            if not verify_pkce(code_verifier, auth_code.code_challenge, method):
                return False, CredentialError.INVALID_CODE_VERIFIER

        if check_password_change and self._password_changed_since(auth_code):
            logger.info(f"Authorization code rejected after password change: user={auth_code.user_id}")
            return False, CredentialError.PASSWORD_CHANGED

        logger.debug(f"Authorization code consumed: {mask_credential(code)}")
        return True, auth_code

    def purge_expired(self) -> int:
        """删除已过期的授权码"""
        return self.store.purge_expired(utcnow())

    def _password_changed_since(self, auth_code: AuthorizationCode) -> bool:
        if self.users is None:
            return False
        changed_at = self.users.password_changed_at(auth_code.user_id)
        if changed_at is None:
            return False
        return ensure_utc(changed_at) > ensure_utc(auth_code.created_at)

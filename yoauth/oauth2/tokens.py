"""Token 生命周期

访问令牌与刷新令牌共用同一个服务实现，按种类区分有效期和随机字节数。
校验是惰性的：过期与改密失效都在校验时通过时间比较判断，不需要主动清理。
"""

from datetime import timedelta
from typing import Any, Dict, Optional, Tuple, Type, Union, TYPE_CHECKING

from yoauth.exceptions import CredentialError
from yoauth.log import get_logger, mask_credential
from .credentials import ACCESS_TOKEN_BYTES, REFRESH_TOKEN_BYTES, generate
from .models import AccessToken, RefreshToken, TokenKind, ensure_utc, utcnow

if TYPE_CHECKING:
    from yoauth.stores.base import CredentialStore, UserDirectory

logger = get_logger()

TokenResult = Tuple[bool, Union[AccessToken, CredentialError]]

# 各种类的默认值: (记录类型, 有效期秒数, 随机字节数)
TOKEN_DEFAULTS: Dict[TokenKind, Tuple[Type[AccessToken], int, int]] = {
    TokenKind.ACCESS: (AccessToken, 3600, ACCESS_TOKEN_BYTES),
    TokenKind.REFRESH: (RefreshToken, 86400 * 30, REFRESH_TOKEN_BYTES),
}


class TokenService:
    """Token 服务

    使用示例:
        access_tokens = TokenService(access_store, TokenKind.ACCESS, users=users)
        refresh_tokens = TokenService(refresh_store, TokenKind.REFRESH, users=users)

        token = access_tokens.issue(user_id=1, client_id=client.id)
        ok, result = access_tokens.validate(token.token, user_id=1)
    """

    def __init__(
        self,
        store: "CredentialStore[AccessToken]",
        kind: TokenKind = TokenKind.ACCESS,
        users: Optional["UserDirectory"] = None,
        expire_seconds: Optional[int] = None,
        token_bytes: Optional[int] = None,
    ):
        self.kind = TokenKind(kind)
        record_class, default_expire, default_bytes = TOKEN_DEFAULTS[self.kind]
        self.record_class = record_class
        self.store = store
        self.users = users
        self.expire_seconds = default_expire if expire_seconds is None else expire_seconds
        self.token_bytes = default_bytes if token_bytes is None else token_bytes

    def issue(
        self,
        user_id: Any,
        client_id: str,
        scope: Optional[str] = None,
        lifetime_seconds: Optional[int] = None,
    ) -> AccessToken:
        """签发 Token

        Args:
            user_id: 用户 ID
            client_id: 客户端内部 ID
            scope: 权限范围
            lifetime_seconds: 有效期，缺省使用服务配置

        Returns:
            AccessToken 或 RefreshToken 记录
        """
        if lifetime_seconds is None:
            lifetime_seconds = self.expire_seconds
        now = utcnow()
        record = self.record_class(
            token=generate(self.token_bytes),
            user_id=user_id,
            client_id=client_id,
            scope=scope,
            expires_at=now + timedelta(seconds=lifetime_seconds),
            created_at=now,
        )
        self.store.create(record)
        logger.debug(
            f"{self.kind.value} issued: {mask_credential(record.token)}, "
            f"client={client_id}, user={user_id}"
        )
        return record

    def validate(
        self,
        token: str,
        user_id: Any = None,
        check_password_change: bool = True,
    ) -> TokenResult:
        """校验 Token

        Args:
            token: Token 字符串
            user_id: 用户 ID，提供时才进行改密检查
            check_password_change: 是否进行改密检查

        Returns:
            tuple: (True, Token) 或 (False, CredentialError)
        """
        record = self.store.find(token) if token else None
        if record is None:
            return False, CredentialError.NOT_FOUND

        if record.is_expired():
            return False, CredentialError.EXPIRED

        if check_password_change and user_id is not None:
            if self._password_changed_after(user_id, record):
                return False, CredentialError.PASSWORD_CHANGED

        return True, record

    def password_changed_since(self, record: AccessToken) -> bool:
        """记录所属用户是否在签发之后修改过密码"""
        return self._password_changed_after(record.user_id, record)

    def revoke(self, token: str) -> bool:
        """撤销 Token（幂等，不存在时返回 False）"""
        if not token:
            return False
        revoked = self.store.delete(token)
        if revoked:
            logger.debug(f"{self.kind.value} revoked: {mask_credential(token)}")
        return revoked

    def revoke_all_for_user(self, user_id: Any) -> int:
        """撤销用户的全部 Token"""
        count = self.store.delete_all_for_user(user_id)
        logger.info(f"Revoked {count} {self.kind.value}(s) for user {user_id}")
        return count

    def consume(self, token: str) -> Optional[AccessToken]:
        """原子地取走 Token（刷新轮换使用）"""
        if not token:
            return None
        return self.store.atomic_consume(token)

    def purge_expired(self) -> int:
        """删除已过期的 Token"""
        return self.store.purge_expired(utcnow())

    def _password_changed_after(self, user_id: Any, record: AccessToken) -> bool:
        if self.users is None:
            return False
        changed_at = self.users.password_changed_at(user_id)
        if changed_at is None:
            return False
        return ensure_utc(changed_at) > ensure_utc(record.created_at)

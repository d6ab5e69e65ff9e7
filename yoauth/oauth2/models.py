"""OAuth 2.0 数据结构

定义客户端、授权码、访问令牌与刷新令牌的记录结构。
授权码和 Token 中的 client_id 均为客户端的内部 ID，外部 client_id 只在请求边界使用。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Any, Dict
from uuid import uuid4

from .credentials import generate_client_id, generate_client_secret


def utcnow() -> datetime:
    """当前 UTC 时间（带时区）"""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """为不带时区的时间补上 UTC（SQLite 等后端读出时会丢失时区）"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ClientType(str, Enum):
    """客户端类型"""
    CONFIDENTIAL = "confidential"  # 机密客户端（可安全存储密钥）
    PUBLIC = "public"  # 公开客户端（如 SPA、移动应用）


class TokenType(str, Enum):
    """Token 类型"""
    BEARER = "Bearer"


class TokenKind(str, Enum):
    """Token 种类"""
    ACCESS = "access_token"
    REFRESH = "refresh_token"


@dataclass
class Client:
    """OAuth 2.0 客户端

    Attributes:
        id: 内部 ID
        client_id: 外部客户端 ID
        client_type: 客户端类型
        client_secret: 客户端密钥（仅机密客户端）
        redirect_uris: 已注册的重定向 URI（精确匹配）
        client_name: 客户端名称
        created_at: 创建时间
    """
    id: str
    client_id: str
    client_type: ClientType = ClientType.CONFIDENTIAL
    client_secret: Optional[str] = None
    redirect_uris: List[str] = field(default_factory=list)
    client_name: str = ""
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.client_type = ClientType(self.client_type)
        if self.client_type == ClientType.CONFIDENTIAL and not self.client_secret:
            raise ValueError("Client secret is required for confidential clients")
        if self.client_type == ClientType.PUBLIC:
            self.client_secret = None

    @classmethod
    def create(
        cls,
        redirect_uris: List[str],
        client_type: str = "confidential",
        client_name: str = "",
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> "Client":
        """创建客户端，机密客户端未提供密钥时自动生成"""
        client_type = ClientType(client_type)
        if client_type == ClientType.CONFIDENTIAL and not client_secret:
            client_secret = generate_client_secret()

        return cls(
            id=str(uuid4()),
            client_id=client_id or generate_client_id(),
            client_type=client_type,
            client_secret=client_secret,
            redirect_uris=list(redirect_uris),
            client_name=client_name,
        )

    def is_public(self) -> bool:
        """是否是公开客户端"""
        return self.client_type == ClientType.PUBLIC

    def requires_secret(self) -> bool:
        """是否需要客户端密钥"""
        return self.client_type == ClientType.CONFIDENTIAL

    def validate_redirect_uri(self, redirect_uri: str) -> bool:
        """验证重定向 URI（只做精确匹配）"""
        return bool(redirect_uri) and redirect_uri in self.redirect_uris

    def to_dict(self, include_secret: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "client_type": self.client_type.value,
            "redirect_uris": list(self.redirect_uris),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_secret and self.client_secret:
            data["client_secret"] = self.client_secret
        return data


@dataclass
class AuthorizationCode:
    """授权码

    一次性凭证：被兑换后即从存储中删除，不会再次通过校验。
    """
    code: str
    user_id: Any
    client_id: str
    redirect_uri: str
    expires_at: datetime
    scope: Optional[str] = None
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None  # plain, S256
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return self.code

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """检查是否过期（到达 expires_at 即视为过期）"""
        return (now or utcnow()) >= ensure_utc(self.expires_at)


@dataclass
class AccessToken:
    """访问令牌"""
    token: str
    user_id: Any
    client_id: str
    expires_at: datetime
    scope: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return self.token

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= ensure_utc(self.expires_at)

    def expires_in(self, now: Optional[datetime] = None) -> int:
        """剩余有效期（秒，向下取整，不小于 0）"""
        remaining = (ensure_utc(self.expires_at) - (now or utcnow())).total_seconds()
        return max(int(remaining // 1), 0)


@dataclass
class RefreshToken(AccessToken):
    """刷新令牌

    校验规则与访问令牌相同；兑换时总是撤销自身并签发替代令牌（轮换）。
    """
    pass

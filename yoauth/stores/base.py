"""存储抽象基类

授权核心依赖的外部协作者：

- ClientDirectory: 客户端目录（只读）
- UserDirectory: 用户目录（只读，改密时间与密码校验）
- CredentialStore: 授权码 / 访问令牌 / 刷新令牌的持久化存储

单次使用语义依赖 CredentialStore.atomic_consume：它必须是存储层的一步
"删除并返回"操作，两个并发调用者中只有一个能拿到记录。
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from yoauth.oauth2.models import Client

R = TypeVar("R")


class ClientDirectory(ABC):
    """客户端目录"""

    @abstractmethod
    def find_by_external_id(self, client_id: str) -> Optional[Client]:
        """根据外部 client_id 查找客户端"""
        pass

    @abstractmethod
    def verify_secret(self, client_id: str, client_secret: str) -> bool:
        """校验客户端密钥

        客户端不存在与密钥错误均返回 False，调用方无法区分两者。
        """
        pass

    def redirect_uri_registered(self, client: Client, redirect_uri: str) -> bool:
        """重定向 URI 是否在客户端的注册集合中（精确匹配）"""
        return client.validate_redirect_uri(redirect_uri)


class UserDirectory(ABC):
    """用户目录"""

    @abstractmethod
    def password_changed_at(self, user_id: Any) -> Optional[datetime]:
        """用户最近一次修改密码的时间，用户不存在时返回 None"""
        pass

    @abstractmethod
    def verify_password(self, user_id: Any, plaintext: str) -> bool:
        """校验用户密码（仅登录流程使用，授权核心不调用）"""
        pass


class CredentialStore(ABC, Generic[R]):
    """凭证存储

    记录通过 `record.key`（授权码或 Token 字符串）寻址。
    所有方法在后端不可用时抛出 StorageException，不会返回伪造的"不存在"。
    """

    @abstractmethod
    def create(self, record: R) -> R:
        """持久化一条新记录"""
        pass

    @abstractmethod
    def find(self, value: str) -> Optional[R]:
        """按值查找记录"""
        pass

    @abstractmethod
    def atomic_consume(self, value: str) -> Optional[R]:
        """原子地删除并返回记录

        记录不存在（或已被其他调用者取走）时返回 None。
        """
        pass

    @abstractmethod
    def delete(self, value: str) -> bool:
        """删除记录，返回删除前是否存在（幂等）"""
        pass

    @abstractmethod
    def delete_all_for_user(self, user_id: Any) -> int:
        """删除用户的所有记录，返回删除数量"""
        pass

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        """删除 now 时已过期的记录，返回删除数量"""
        pass

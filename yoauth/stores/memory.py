"""内存存储

适用于单进程部署和测试，重启后数据丢失。

所有读写都在同一把锁内完成；atomic_consume 是锁内的一次 dict.pop，
不存在"先检查再删除"的窗口。多进程共享存储时请使用 yoauth.stores.orm。
"""

import hmac
import threading
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Set, TypeVar

from yoauth.exceptions import StorageException
from yoauth.log import mask_credential
from yoauth.oauth2.models import Client, ensure_utc, utcnow
from yoauth.password import PasswordHelper
from .base import ClientDirectory, CredentialStore, UserDirectory

R = TypeVar("R")


class InMemoryCredentialStore(CredentialStore[R], Generic[R]):
    """内存凭证存储

    使用示例:
        store = InMemoryCredentialStore()
        store.create(auth_code)
        record = store.atomic_consume(auth_code.code)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, R] = {}
        self._user_index: Dict[Any, Set[str]] = {}

    def create(self, record: R) -> R:
        with self._lock:
            if record.key in self._records:
                raise StorageException(details=[f"duplicate credential: {mask_credential(record.key)}"])
            self._records[record.key] = record
            self._user_index.setdefault(record.user_id, set()).add(record.key)
        return record

    def find(self, value: str) -> Optional[R]:
        with self._lock:
            return self._records.get(value)

    def atomic_consume(self, value: str) -> Optional[R]:
        with self._lock:
            return self._remove_locked(value)

    def delete(self, value: str) -> bool:
        with self._lock:
            return self._remove_locked(value) is not None

    def delete_all_for_user(self, user_id: Any) -> int:
        with self._lock:
            keys = self._user_index.pop(user_id, set())
            count = 0
            for key in keys:
                if self._records.pop(key, None) is not None:
                    count += 1
            return count

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [
                key for key, record in self._records.items()
                if ensure_utc(record.expires_at) <= now
            ]
            for key in expired:
                self._remove_locked(key)
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _remove_locked(self, value: str) -> Optional[R]:
        record = self._records.pop(value, None)
        if record is not None:
            keys = self._user_index.get(record.user_id)
            if keys is not None:
                keys.discard(value)
                if not keys:
                    del self._user_index[record.user_id]
        return record


class InMemoryClientDirectory(ClientDirectory):
    """内存客户端目录

    使用示例:
        clients = InMemoryClientDirectory()
        client = clients.create_client(
            redirect_uris=["https://app.example.com/callback"],
            client_type="public",
        )
    """

    def __init__(self, clients: Optional[List[Client]] = None):
        self._lock = threading.Lock()
        self._clients: Dict[str, Client] = {}
        for client in clients or []:
            self.register(client)

    def register(self, client: Client) -> Client:
        """注册客户端"""
        with self._lock:
            self._clients[client.client_id] = client
        return client

    def create_client(
        self,
        redirect_uris: List[str],
        client_type: str = "confidential",
        client_name: str = "",
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> Client:
        """创建并注册客户端，机密客户端未提供密钥时自动生成"""
        client = Client.create(
            redirect_uris,
            client_type=client_type,
            client_name=client_name,
            client_id=client_id,
            client_secret=client_secret,
        )
        return self.register(client)

    def find_by_external_id(self, client_id: str) -> Optional[Client]:
        with self._lock:
            return self._clients.get(client_id)

    def verify_secret(self, client_id: str, client_secret: str) -> bool:
        client = self.find_by_external_id(client_id)
        if client is None or not client.client_secret or client_secret is None:
            return False
        return hmac.compare_digest(client.client_secret.encode(), client_secret.encode())


class InMemoryUserDirectory(UserDirectory):
    """内存用户目录

    使用示例:
        users = InMemoryUserDirectory()
        users.add_user("u1", password="secret123")
        users.change_password("u1", "new-secret")
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._password_hashes: Dict[Any, Optional[str]] = {}
        self._password_changed_at: Dict[Any, datetime] = {}

    def add_user(
        self,
        user_id: Any,
        password: Optional[str] = None,
        password_changed_at: Optional[datetime] = None,
    ) -> None:
        """添加用户"""
        password_hash = PasswordHelper.hash(password) if password else None
        with self._lock:
            self._password_hashes[user_id] = password_hash
            self._password_changed_at[user_id] = password_changed_at or utcnow()

    def change_password(self, user_id: Any, new_password: str) -> datetime:
        """修改密码并推进 password_changed_at

        Raises:
            KeyError: 用户不存在
        """
        password_hash = PasswordHelper.hash(new_password)
        changed_at = utcnow()
        with self._lock:
            if user_id not in self._password_hashes:
                raise KeyError(f"User not found: {user_id}")
            self._password_hashes[user_id] = password_hash
            self._password_changed_at[user_id] = changed_at
        return changed_at

    def set_password_changed_at(self, user_id: Any, changed_at: datetime) -> None:
        """直接设置改密时间（数据迁移与测试使用）"""
        with self._lock:
            self._password_hashes.setdefault(user_id, None)
            self._password_changed_at[user_id] = ensure_utc(changed_at)

    def password_changed_at(self, user_id: Any) -> Optional[datetime]:
        with self._lock:
            return self._password_changed_at.get(user_id)

    def verify_password(self, user_id: Any, plaintext: str) -> bool:
        with self._lock:
            password_hash = self._password_hashes.get(user_id)
        return PasswordHelper.verify(plaintext, password_hash)


def create_memory_stores() -> Dict[str, Any]:
    """创建一组内存存储

    返回值可以直接解包传给 OAuth2Manager:
        manager = OAuth2Manager(**create_memory_stores())
    """
    return {
        "clients": InMemoryClientDirectory(),
        "users": InMemoryUserDirectory(),
        "code_store": InMemoryCredentialStore(),
        "access_token_store": InMemoryCredentialStore(),
        "refresh_token_store": InMemoryCredentialStore(),
    }

"""存储模块

- base: 存储抽象（客户端目录、用户目录、凭证存储）
- memory: 内存实现（单进程、测试）
- orm: SQLAlchemy 实现（多进程、多实例）

使用示例:
    from yoauth.stores import create_memory_stores, create_sql_stores

    manager = OAuth2Manager(**create_memory_stores())
"""

from .base import ClientDirectory, UserDirectory, CredentialStore
from .memory import (
    InMemoryClientDirectory,
    InMemoryUserDirectory,
    InMemoryCredentialStore,
    create_memory_stores,
)
from .orm import (
    SQLClientDirectory,
    SQLUserDirectory,
    SQLCredentialStore,
    create_tables,
    create_engine_from_settings,
    create_sql_stores,
)

__all__ = [
    # 抽象
    "ClientDirectory",
    "UserDirectory",
    "CredentialStore",

    # 内存实现
    "InMemoryClientDirectory",
    "InMemoryUserDirectory",
    "InMemoryCredentialStore",
    "create_memory_stores",

    # 数据库实现
    "SQLClientDirectory",
    "SQLUserDirectory",
    "SQLCredentialStore",
    "create_tables",
    "create_engine_from_settings",
    "create_sql_stores",
]

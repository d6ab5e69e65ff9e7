"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 内存存储与管理器
- SQLite 内存数据库与数据库存储
- 测试客户端与用户
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from yoauth.oauth2 import OAuth2Manager
from yoauth.stores import create_memory_stores, create_sql_stores, create_tables

from tests.helpers import CLIENT_SECRET, REDIRECT_URI, USER_ID, USER_PASSWORD


# ==================== 内存存储 ====================

@pytest.fixture
def stores():
    """一组独立的内存存储"""
    return create_memory_stores()


@pytest.fixture
def manager(stores):
    """基于内存存储的 OAuth2 管理器"""
    return OAuth2Manager(**stores)


@pytest.fixture
def public_client(manager):
    """公开客户端（如 SPA）"""
    return manager.clients.create_client(
        redirect_uris=[REDIRECT_URI],
        client_type="public",
        client_name="Test SPA",
    )


@pytest.fixture
def confidential_client(manager):
    """机密客户端"""
    return manager.clients.create_client(
        redirect_uris=[REDIRECT_URI, "https://app.example.com/other"],
        client_type="confidential",
        client_name="Test Backend",
        client_secret=CLIENT_SECRET,
    )


@pytest.fixture
def user_id(manager):
    """已注册的用户"""
    manager.users.add_user(USER_ID, password=USER_PASSWORD)
    return USER_ID


# ==================== 数据库存储 ====================

@pytest.fixture
def sql_engine():
    """SQLite 内存数据库引擎"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_stores(sql_engine):
    """一组数据库存储"""
    return create_sql_stores(sql_engine)


@pytest.fixture
def sql_manager(sql_stores):
    """基于数据库存储的 OAuth2 管理器"""
    return OAuth2Manager(**sql_stores)

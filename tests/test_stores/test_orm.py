"""SQLAlchemy 存储测试

使用 SQLite 内存数据库，并发测试使用文件数据库
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta, timezone
import threading

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.pool import StaticPool

from yoauth.config import DatabaseSettings
from yoauth.exceptions import StorageException
from yoauth.oauth2 import AccessToken, AuthorizationCode, ClientType, OAuth2Manager, RefreshToken
from yoauth.oauth2.models import utcnow
from yoauth.stores import create_engine_from_settings, create_sql_stores, create_tables
from yoauth.stores.orm import AccessTokenModel, RefreshTokenModel

from tests.helpers import CLIENT_SECRET, REDIRECT_URI, issue_code, make_pkce_pair


def _code(value="code-1", user_id="u1", expires_in=600):
    now = utcnow()
    return AuthorizationCode(
        code=value,
        user_id=user_id,
        client_id="c1",
        redirect_uri=REDIRECT_URI,
        scope="profile",
        code_challenge="challenge",
        code_challenge_method="S256",
        expires_at=now + timedelta(seconds=expires_in),
        created_at=now,
    )


def _token(value, user_id="u1", expires_in=3600, record_class=AccessToken):
    now = utcnow()
    return record_class(
        token=value,
        user_id=user_id,
        client_id="c1",
        expires_at=now + timedelta(seconds=expires_in),
        created_at=now,
    )


class TestSQLCredentialStore:
    """数据库凭证存储测试"""

    def test_code_round_trip(self, sql_stores):
        """测试授权码读回后字段完整且时间带 UTC 时区"""
        store = sql_stores["code_store"]
        original = _code()
        store.create(original)

        record = store.find("code-1")
        assert isinstance(record, AuthorizationCode)
        assert record.code_challenge == "challenge"
        assert record.code_challenge_method == "S256"
        assert record.redirect_uri == REDIRECT_URI
        assert record.expires_at.tzinfo == timezone.utc
        assert record.expires_at == original.expires_at

    def test_user_id_stored_as_string(self, sql_stores):
        store = sql_stores["access_token_store"]
        store.create(_token("t1", user_id=42))
        assert store.find("t1").user_id == "42"

    def test_refresh_record_class(self, sql_stores):
        store = sql_stores["refresh_token_store"]
        store.create(_token("r1", record_class=RefreshToken))
        assert isinstance(store.find("r1"), RefreshToken)

    def test_atomic_consume(self, sql_stores):
        """测试 DELETE RETURNING 只能取走一次"""
        store = sql_stores["code_store"]
        store.create(_code())

        assert store.atomic_consume("code-1").code == "code-1"
        assert store.atomic_consume("code-1") is None
        assert store.find("code-1") is None

    def test_delete(self, sql_stores):
        store = sql_stores["access_token_store"]
        store.create(_token("t1"))

        assert store.delete("t1") is True
        assert store.delete("t1") is False

    def test_delete_all_for_user(self, sql_stores):
        store = sql_stores["access_token_store"]
        store.create(_token("t1", user_id="u1"))
        store.create(_token("t2", user_id="u1"))
        store.create(_token("t3", user_id="u2"))

        assert store.delete_all_for_user("u1") == 2
        assert store.find("t3") is not None

    def test_purge_expired(self, sql_stores):
        store = sql_stores["access_token_store"]
        store.create(_token("old", expires_in=-10))
        store.create(_token("live"))

        assert store.purge_expired(utcnow()) == 1
        assert store.find("old") is None
        assert store.find("live") is not None

    def test_missing_table_raises_storage_exception(self):
        """测试数据库错误转换为 StorageException"""
        engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
        store = create_sql_stores(engine)["access_token_store"]

        with pytest.raises(StorageException) as exc_info:
            store.find("t1")
        assert exc_info.value.status_code == 503
        engine.dispose()

    def test_duplicate_value_raises_storage_exception(self, sql_stores):
        store = sql_stores["access_token_store"]
        store.create(_token("t1"))
        with pytest.raises(StorageException):
            store.create(_token("t1"))


class TestSQLClientDirectory:
    """数据库客户端目录测试"""

    def test_create_and_find(self, sql_stores):
        clients = sql_stores["clients"]
        created = clients.create_client(
            redirect_uris=[REDIRECT_URI, "https://app.example.com/other"],
            client_name="Backend",
        )

        client = clients.find_by_external_id(created.client_id)
        assert client.id == created.id
        assert client.client_type == ClientType.CONFIDENTIAL
        assert client.redirect_uris == [REDIRECT_URI, "https://app.example.com/other"]
        assert client.client_name == "Backend"
        assert clients.find_by_external_id("unknown") is None

    def test_verify_secret(self, sql_stores):
        clients = sql_stores["clients"]
        client = clients.create_client([REDIRECT_URI], client_secret=CLIENT_SECRET)

        assert clients.verify_secret(client.client_id, CLIENT_SECRET) is True
        assert clients.verify_secret(client.client_id, "wrong") is False
        assert clients.verify_secret("unknown", CLIENT_SECRET) is False

    def test_public_client(self, sql_stores):
        clients = sql_stores["clients"]
        created = clients.create_client([REDIRECT_URI], client_type="public")

        client = clients.find_by_external_id(created.client_id)
        assert client.is_public() is True
        assert client.client_secret is None


class TestSQLUserDirectory:
    """数据库用户目录测试"""

    def test_add_user_and_verify_password(self, sql_stores):
        users = sql_stores["users"]
        users.add_user("u1", password="secret123")

        assert users.verify_password("u1", "secret123") is True
        assert users.verify_password("u1", "wrong-pass") is False
        assert users.verify_password("nobody", "secret123") is False

    def test_password_changed_at_is_utc(self, sql_stores):
        users = sql_stores["users"]
        changed_at = utcnow() - timedelta(days=1)
        users.add_user("u1", password_changed_at=changed_at)

        value = users.password_changed_at("u1")
        assert value.tzinfo == timezone.utc
        assert value == changed_at
        assert users.password_changed_at("nobody") is None

    def test_change_password(self, sql_stores):
        users = sql_stores["users"]
        users.add_user("u1", password="secret123", password_changed_at=utcnow() - timedelta(days=1))

        changed_at = users.change_password("u1", "new-secret")

        assert users.password_changed_at("u1") == changed_at
        assert users.verify_password("u1", "new-secret") is True

    def test_change_password_unknown_user(self, sql_stores):
        with pytest.raises(KeyError):
            sql_stores["users"].change_password("nobody", "new-secret")

    def test_set_password_changed_at_creates_user(self, sql_stores):
        users = sql_stores["users"]
        changed_at = utcnow()
        users.set_password_changed_at("u2", changed_at)
        assert users.password_changed_at("u2") == changed_at


class TestSQLManager:
    """基于数据库存储的完整流程测试"""

    def test_code_exchange_and_rotation(self, sql_manager):
        """测试授权码兑换、重放与刷新轮换"""
        client = sql_manager.clients.create_client([REDIRECT_URI], client_type="public")
        sql_manager.users.add_user("u1", password="secret123")
        verifier, code_challenge = make_pkce_pair()
        code = issue_code(sql_manager, client, "u1", code_challenge=code_challenge, code_challenge_method="S256")

        params = dict(
            grant_type="authorization_code",
            client_id=client.client_id,
            code=code,
            redirect_uri=REDIRECT_URI,
            code_verifier=verifier,
        )
        result = sql_manager.handle_token_request(**params)
        assert result.success is True
        assert sql_manager.handle_token_request(**params).error.value == "invalid_grant"

        ok, token = sql_manager.validate_access_token(result.access_token.token)
        assert ok is True
        assert token.user_id == "u1"

        rotated = sql_manager.handle_token_request(
            grant_type="refresh_token",
            client_id=client.client_id,
            refresh_token=result.refresh_token.token,
        )
        assert rotated.success is True
        replay = sql_manager.handle_token_request(
            grant_type="refresh_token",
            client_id=client.client_id,
            refresh_token=result.refresh_token.token,
        )
        assert replay.error.value == "invalid_grant"

    def test_password_change_invalidates_tokens(self, sql_manager):
        client = sql_manager.clients.create_client([REDIRECT_URI], client_type="public")
        sql_manager.users.add_user("u1", password_changed_at=utcnow() - timedelta(days=1))
        code = issue_code(sql_manager, client, "u1")
        result = sql_manager.handle_token_request(
            grant_type="authorization_code",
            client_id=client.client_id,
            code=code,
            redirect_uri=REDIRECT_URI,
        )

        sql_manager.users.set_password_changed_at("u1", result.access_token.created_at + timedelta(seconds=1))

        assert sql_manager.validate_access_token(result.access_token.token)[0] is False
        rotated = sql_manager.handle_token_request(
            grant_type="refresh_token",
            client_id=client.client_id,
            refresh_token=result.refresh_token.token,
        )
        assert rotated.success is False


THREADS = 4
ROUNDS = 5


def _run_concurrently(func, threads=THREADS):
    barrier = threading.Barrier(threads)

    def worker():
        barrier.wait()
        return func()

    with ThreadPoolExecutor(max_workers=threads) as executor:
        futures = [executor.submit(worker) for _ in range(threads)]
        return [f.result() for f in futures]


def _count(engine, model):
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(model)).scalar_one()


class TestSQLConcurrency:
    """数据库存储的并发单次使用测试

    使用文件 SQLite，每个线程独立连接
    """

    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'oauth.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        create_tables(engine)
        yield engine
        engine.dispose()

    @pytest.fixture
    def file_manager(self, file_engine):
        return OAuth2Manager(**create_sql_stores(file_engine))

    @pytest.fixture
    def client(self, file_manager):
        file_manager.users.add_user("u1")
        return file_manager.clients.create_client([REDIRECT_URI], client_type="public")

    def test_concurrent_consume(self, file_engine):
        """测试 DELETE RETURNING 并发时只有一个调用者拿到记录"""
        store = create_sql_stores(file_engine)["code_store"]
        for i in range(ROUNDS):
            store.create(_code(f"code-{i}"))
            results = _run_concurrently(lambda: store.atomic_consume(f"code-{i}"))
            assert sum(1 for r in results if r is not None) == 1

    def test_concurrent_code_redemption(self, file_manager, client):
        """测试并发兑换同一授权码：恰好一个成功，其余 invalid_grant"""
        for _ in range(ROUNDS):
            code = issue_code(file_manager, client, "u1")
            results = _run_concurrently(lambda: file_manager.handle_token_request(
                grant_type="authorization_code",
                client_id=client.client_id,
                code=code,
                redirect_uri=REDIRECT_URI,
            ))

            assert sum(1 for r in results if r.success) == 1
            assert {r.error.value for r in results if not r.success} == {"invalid_grant"}

    def test_concurrent_refresh_rotation(self, file_engine, file_manager, client):
        """测试并发轮换同一刷新令牌：恰好一个成功，只留下一个后继刷新令牌"""
        code = issue_code(file_manager, client, "u1")
        refresh_token = file_manager.handle_token_request(
            grant_type="authorization_code",
            client_id=client.client_id,
            code=code,
            redirect_uri=REDIRECT_URI,
        ).refresh_token.token

        for i in range(ROUNDS):
            results = _run_concurrently(lambda: file_manager.handle_token_request(
                grant_type="refresh_token",
                client_id=client.client_id,
                refresh_token=refresh_token,
            ))

            winners = [r for r in results if r.success]
            assert len(winners) == 1
            assert {r.error.value for r in results if not r.success} == {"invalid_grant"}

            refresh_token = winners[0].refresh_token.token
            # 失败方签发的令牌已回滚
            assert _count(file_engine, RefreshTokenModel) == 1
            assert _count(file_engine, AccessTokenModel) == i + 2


class TestCreateEngineFromSettings:
    """引擎创建测试"""

    def test_sqlite_url(self):
        engine = create_engine_from_settings(DatabaseSettings(url="sqlite://"))
        assert engine.url.drivername == "sqlite"
        engine.dispose()

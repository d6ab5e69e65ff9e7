"""异常与全局异常处理器测试"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from yoauth.exceptions import (
    ERROR_DESCRIPTIONS,
    BusinessException,
    InvalidClientException,
    InvalidRequestException,
    OAuth2ErrorCode,
    OAuth2Exception,
    StorageException,
    register_exception_handlers,
)


class TestOAuth2ErrorCode:
    """错误代码测试"""

    def test_every_code_has_description(self):
        for code in OAuth2ErrorCode:
            assert code in ERROR_DESCRIPTIONS

    def test_is_str(self):
        assert OAuth2ErrorCode.INVALID_GRANT == "invalid_grant"


class TestExceptions:
    """异常类测试"""

    def test_oauth2_exception_default_description(self):
        exc = OAuth2Exception(OAuth2ErrorCode.INVALID_GRANT)
        assert exc.status_code == 400
        assert exc.to_response() == {
            "error": "invalid_grant",
            "error_description": ERROR_DESCRIPTIONS[OAuth2ErrorCode.INVALID_GRANT],
        }

    def test_oauth2_exception_accepts_string(self):
        exc = OAuth2Exception("expired_code", "custom")
        assert exc.error is OAuth2ErrorCode.EXPIRED_CODE
        assert exc.to_response()["error_description"] == "custom"

    def test_invalid_client_is_401(self):
        assert InvalidClientException().status_code == 401

    def test_invalid_request(self):
        exc = InvalidRequestException("Unsupported code_challenge_method: md5")
        assert exc.error == OAuth2ErrorCode.INVALID_REQUEST
        assert exc.message == "Unsupported code_challenge_method: md5"

    def test_storage_exception(self):
        """测试存储故障为 503 server_error"""
        exc = StorageException(details=["find: OperationalError"])
        assert isinstance(exc, BusinessException)
        assert exc.status_code == 503
        assert exc.code == OAuth2ErrorCode.SERVER_ERROR
        data = exc.to_dict()
        assert data["details"] == ["find: OperationalError"]

    def test_to_dict_copies_details(self):
        exc = BusinessException("failed", details=["a"])
        exc.to_dict()["details"].append("b")
        assert exc.details == ["a"]


def _build_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/oauth2-error")
    def oauth2_error():
        raise InvalidClientException()

    @app.get("/storage-error")
    def storage_error():
        raise StorageException(details=["consume: OperationalError"])

    @app.get("/unexpected")
    def unexpected():
        raise RuntimeError("boom")

    return app


class TestExceptionHandlers:
    """全局异常处理器测试"""

    def test_oauth2_exception(self):
        client = TestClient(_build_app())
        response = client.get("/oauth2-error")
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"

    def test_storage_exception_hides_details(self):
        """测试存储故障不向调用方泄露内部细节"""
        client = TestClient(_build_app())
        response = client.get("/storage-error")
        assert response.status_code == 503
        assert response.json() == {
            "error": "server_error",
            "error_description": ERROR_DESCRIPTIONS[OAuth2ErrorCode.SERVER_ERROR],
        }

    def test_unexpected_exception(self):
        client = TestClient(_build_app(), raise_server_exceptions=False)
        response = client.get("/unexpected")
        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert "boom" not in response.text

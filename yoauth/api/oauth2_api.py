"""OAuth 2.0 端点路由

把 OAuth2Manager 的领域结果映射到 HTTP 响应，本身不包含会话、Cookie、登录或页面渲染逻辑。

端点列表：
    GET  /authorize   - 校验授权请求，返回授权页面需要的信息
    POST /authorize   - 用户同意后签发授权码并重定向（需要提供 get_current_user）
    POST /token       - Token 端点（authorization_code / refresh_token）
    POST /revoke      - Token 撤销

使用示例::

    from yoauth.api import create_oauth2_router
    from yoauth.exceptions import register_exception_handlers

    router = create_oauth2_router(oauth2_manager, get_current_user=get_current_user)
    app.include_router(router, prefix="/oauth")
    register_exception_handlers(app)
"""

from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel

from yoauth.exceptions import ERROR_DESCRIPTIONS, OAuth2ErrorCode
from yoauth.log import get_logger, log_filter_hook_manager
from yoauth.oauth2.manager import OAuth2Manager

logger = get_logger()

# Token 端点响应头（RFC 6749 5.1）
NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


class AuthorizationInfo(BaseModel):
    """授权页面信息"""
    client_id: str
    client_name: str
    redirect_uri: str
    scope: Optional[str] = None
    state: Optional[str] = None
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None


class TokenResponse(BaseModel):
    """Token 响应"""
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str


class ErrorResponse(BaseModel):
    """错误响应"""
    error: str
    error_description: Optional[str] = None


def error_response(
    error: OAuth2ErrorCode,
    status_code: Optional[int] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """构造 OAuth2 错误响应

    invalid_client 默认使用 401，其余错误使用 400。
    """
    error = OAuth2ErrorCode(error)
    if status_code is None:
        status_code = 401 if error == OAuth2ErrorCode.INVALID_CLIENT else 400
    return JSONResponse(
        status_code=status_code,
        content={"error": error.value, "error_description": ERROR_DESCRIPTIONS.get(error)},
        headers=headers,
    )


def build_redirect_url(redirect_uri: str, params: Dict[str, Any]) -> str:
    """在重定向 URI 上追加查询参数（忽略值为空的参数）"""
    query = urlencode({k: v for k, v in params.items() if v})
    separator = "&" if "?" in redirect_uri else "?"
    return f"{redirect_uri}{separator}{query}"


def default_user_id_getter(user: Any) -> Any:
    """从当前用户对象中取用户 ID"""
    if isinstance(user, dict):
        return user.get("id")
    return getattr(user, "id", user)


def create_oauth2_router(
    oauth2_manager: OAuth2Manager,
    get_current_user: Optional[Callable] = None,
    user_id_getter: Callable[[Any], Any] = default_user_id_getter,
    prefix: str = "",
    tags: list = None,
) -> APIRouter:
    """创建 OAuth 2.0 路由

    Args:
        oauth2_manager: OAuth 2.0 管理器
        get_current_user: 获取当前已登录用户的依赖函数；未提供时不注册 POST /authorize
        user_id_getter: 从用户对象中取用户 ID 的函数
        prefix: 路由前缀
        tags: OpenAPI 标签

    Returns:
        APIRouter: FastAPI 路由
    """
    router = APIRouter(prefix=prefix, tags=tags or ["OAuth2"])
    basic_auth = HTTPBasic(auto_error=False)

    @router.get("/authorize", response_model=AuthorizationInfo, responses={400: {"model": ErrorResponse}})
    def authorize(
        response_type: str = Query(None),
        client_id: str = Query(None),
        redirect_uri: str = Query(None),
        scope: str = Query(None),
        state: str = Query(None),
        code_challenge: str = Query(None),
        code_challenge_method: str = Query(None),
    ):
        """授权端点

        校验通过后返回授权页面需要的信息，由前端完成登录与同意。
        """
        result = oauth2_manager.validate_authorization_request(client_id, redirect_uri, response_type)
        if not result.valid:
            return error_response(result.error, status_code=400)

        return AuthorizationInfo(
            client_id=client_id,
            client_name=result.client.client_name,
            redirect_uri=redirect_uri,
            scope=scope,
            state=state,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )

    if get_current_user is not None:

        @router.post("/authorize")
        def authorize_submit(
            response_type: str = Form("code"),
            client_id: str = Form(None),
            redirect_uri: str = Form(None),
            scope: str = Form(None),
            state: str = Form(None),
            code_challenge: str = Form(None),
            code_challenge_method: str = Form(None),
            approve: bool = Form(True),
            current_user: Any = Depends(get_current_user),
        ):
            """处理用户的授权决定"""
            result = oauth2_manager.validate_authorization_request(client_id, redirect_uri, response_type)
            if not result.valid:
                # redirect_uri 未经验证，不能重定向
                return error_response(result.error, status_code=400)

            if not approve:
                return RedirectResponse(
                    build_redirect_url(redirect_uri, {
                        "error": OAuth2ErrorCode.ACCESS_DENIED.value,
                        "error_description": ERROR_DESCRIPTIONS[OAuth2ErrorCode.ACCESS_DENIED],
                        "state": state,
                    }),
                    status_code=302,
                )

            code = oauth2_manager.create_authorization_code(
                client_id=client_id,
                user_id=user_id_getter(current_user),
                redirect_uri=redirect_uri,
                scope=scope,
                code_challenge=code_challenge,
                code_challenge_method=code_challenge_method,
            )
            return RedirectResponse(
                build_redirect_url(redirect_uri, {"code": code, "state": state}),
                status_code=302,
            )

    @router.post("/token", response_model=TokenResponse, responses={400: {"model": ErrorResponse}})
    def token(
        grant_type: str = Form(None),
        code: str = Form(None),
        redirect_uri: str = Form(None),
        client_id: str = Form(None),
        client_secret: str = Form(None),
        refresh_token: str = Form(None),
        code_verifier: str = Form(None),
        credentials: HTTPBasicCredentials = Depends(basic_auth),
    ):
        """Token 端点

        客户端凭证支持 HTTP Basic Auth 和表单提交两种方式，Basic Auth 优先。
        """
        if credentials and credentials.username:
            client_id = credentials.username
            client_secret = credentials.password

        payload = {
            "grant_type": grant_type,
            "client_id": client_id,
            "client_secret": client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            "refresh_token": refresh_token,
        }
        logger.debug(f"Token request: {log_filter_hook_manager.apply_filters(payload)}")

        result = oauth2_manager.handle_token_request(
            grant_type=grant_type,
            client_id=client_id,
            client_secret=client_secret,
            code=code,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
            refresh_token=refresh_token,
        )
        if not result.success:
            return error_response(result.error, headers=NO_STORE_HEADERS)

        return JSONResponse(content=result.to_response(), headers=NO_STORE_HEADERS)

    @router.post("/revoke")
    def revoke(
        token: str = Form(None),
        client_id: str = Form(None),
        client_secret: str = Form(None),
        credentials: HTTPBasicCredentials = Depends(basic_auth),
    ):
        """Token 撤销端点

        客户端认证通过后始终返回 200，即使 Token 不存在。
        """
        if credentials and credentials.username:
            client_id = credentials.username
            client_secret = credentials.password

        success, result = oauth2_manager.revoke_token(token, client_id, client_secret)
        if not success:
            return error_response(result)

        return JSONResponse(status_code=200, content={})

    return router

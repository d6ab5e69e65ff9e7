"""HTTP 接入层

使用示例:
    from yoauth.api import create_oauth2_router

    app.include_router(create_oauth2_router(manager), prefix="/oauth")
"""

from .oauth2_api import (
    create_oauth2_router,
    error_response,
    build_redirect_url,
    default_user_id_getter,
    AuthorizationInfo,
    TokenResponse,
    ErrorResponse,
)

__all__ = [
    "create_oauth2_router",
    "error_response",
    "build_redirect_url",
    "default_user_id_getter",
    "AuthorizationInfo",
    "TokenResponse",
    "ErrorResponse",
]

"""OAuth 2.0 授权服务核心

提供授权码流程（含 PKCE）与刷新令牌轮换：

- credentials: 不透明凭证生成
- pkce: PKCE 校验
- codes: 授权码生命周期
- tokens: Token 生命周期
- grants / manager: 授权编排

使用示例:
    from yoauth.oauth2 import OAuth2Manager
    from yoauth.stores import create_memory_stores

    manager = OAuth2Manager(**create_memory_stores())
    result = manager.handle_token_request(
        grant_type="refresh_token",
        client_id="client_xxx",
        refresh_token=refresh_token,
    )
"""

from .credentials import (
    generate,
    generate_authorization_code,
    generate_access_token,
    generate_refresh_token,
    generate_client_id,
    generate_client_secret,
)
from .pkce import PKCEMethod
from .models import (
    ClientType,
    TokenType,
    TokenKind,
    Client,
    AuthorizationCode,
    AccessToken,
    RefreshToken,
)
from .results import AuthorizationValidationResult, TokenGrantResult
from .codes import AuthorizationCodeService
from .tokens import TokenService
from .grants import (
    GrantType,
    GrantContext,
    BaseGrant,
    AuthorizationCodeGrant,
    RefreshTokenGrant,
)
from .manager import OAuth2Manager

__all__ = [
    # 凭证
    "generate",
    "generate_authorization_code",
    "generate_access_token",
    "generate_refresh_token",
    "generate_client_id",
    "generate_client_secret",
    "PKCEMethod",

    # 数据结构
    "ClientType",
    "TokenType",
    "TokenKind",
    "Client",
    "AuthorizationCode",
    "AccessToken",
    "RefreshToken",
    "AuthorizationValidationResult",
    "TokenGrantResult",

    # 生命周期
    "AuthorizationCodeService",
    "TokenService",

    # 授权
    "GrantType",
    "GrantContext",
    "BaseGrant",
    "AuthorizationCodeGrant",
    "RefreshTokenGrant",
    "OAuth2Manager",
]

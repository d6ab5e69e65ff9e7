"""
yoauth - OAuth2 授权服务核心

提供授权请求校验、授权码签发与兑换（含 PKCE）、访问令牌 / 刷新令牌签发、
刷新令牌轮换、撤销以及改密失效等功能
"""

from .version import __version__, __author__, __description__

# 导出授权核心
from .oauth2 import (
    OAuth2Manager,
    PKCEMethod,
    GrantType,
    Client,
    ClientType,
    AuthorizationCode,
    AccessToken,
    RefreshToken,
    AuthorizationValidationResult,
    TokenGrantResult,
)

# 导出异常
from .exceptions import (
    OAuth2ErrorCode,
    CredentialError,
    OAuth2Exception,
    StorageException,
    register_exception_handlers,
)

# 导出配置
from .config import AppSettings, OAuth2Settings, load_yaml_config

# 导出日志
from .log import get_logger, setup_root_logger

__all__ = [
    # 版本信息
    "__version__",
    "__author__",
    "__description__",

    # 授权核心
    "OAuth2Manager",
    "PKCEMethod",
    "GrantType",
    "Client",
    "ClientType",
    "AuthorizationCode",
    "AccessToken",
    "RefreshToken",
    "AuthorizationValidationResult",
    "TokenGrantResult",

    # 异常
    "OAuth2ErrorCode",
    "CredentialError",
    "OAuth2Exception",
    "StorageException",
    "register_exception_handlers",

    # 配置
    "AppSettings",
    "OAuth2Settings",
    "load_yaml_config",

    # 日志
    "get_logger",
    "setup_root_logger",
]

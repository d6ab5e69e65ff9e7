"""版本信息"""

__version__ = "0.1.0"
__author__ = "yoauth"
__description__ = "OAuth2 授权服务核心：授权码（含 PKCE）、Token 签发、刷新令牌轮换与撤销"

"""测试辅助工具"""

from .oauth2_helpers import (
    REDIRECT_URI,
    CLIENT_SECRET,
    USER_ID,
    USER_PASSWORD,
    make_pkce_pair,
    issue_code,
    expired_code,
    expired_token,
)

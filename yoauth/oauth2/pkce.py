"""PKCE (RFC 7636) 校验

code_challenge_method 是封闭集合（plain / S256），用枚举表示而不是开放的字符串分派。

使用示例:
    from yoauth.oauth2.pkce import PKCEMethod, challenge, verify, generate_verifier

    verifier = generate_verifier()
    code_challenge = challenge(verifier, PKCEMethod.S256)
    assert verify(verifier, code_challenge, PKCEMethod.S256)
"""

import base64
import hashlib
import hmac
import secrets
from enum import Enum
from typing import Optional, Union


class PKCEMethod(str, Enum):
    """code_challenge_method"""
    PLAIN = "plain"
    S256 = "S256"

    @classmethod
    def parse(cls, value: Union[str, "PKCEMethod", None]) -> Optional["PKCEMethod"]:
        """解析方法名

        None 或空字符串视为 plain（存储了 challenge 却未声明方法时的默认值），
        未知方法返回 None。
        """
        if isinstance(value, cls):
            return value
        if not value:
            return cls.PLAIN
        try:
            return cls(value)
        except ValueError:
            return None


def _s256(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def challenge(verifier: str, method: Union[str, PKCEMethod] = PKCEMethod.S256) -> str:
    """根据 code_verifier 计算 code_challenge

    Raises:
        ValueError: 不支持的方法
    """
    parsed = PKCEMethod.parse(method)
    if parsed is None:
        raise ValueError(f"Unsupported code_challenge_method: {method!r}")
    if parsed is PKCEMethod.PLAIN:
        return verifier
    return _s256(verifier)


def verify(
    verifier: Optional[str],
    code_challenge: Optional[str],
    method: Union[str, PKCEMethod, None] = PKCEMethod.S256,
) -> bool:
    """校验 code_verifier

    重新计算 challenge 并与存储值比较。任何不匹配或异常输入都返回 False，不抛出异常。
    method 必须显式给出，缺省 plain 只在签发授权码时确定。
    """
    if not verifier or not code_challenge or method is None:
        return False
    try:
        computed = challenge(verifier, method)
        return hmac.compare_digest(computed.encode("utf-8"), code_challenge.encode("utf-8"))
    except ValueError:
        return False


def generate_verifier(length: int = 64) -> str:
    """生成 code_verifier（43-128 个 unreserved 字符）"""
    if not 43 <= length <= 128:
        raise ValueError("code_verifier length must be between 43 and 128")
    return secrets.token_urlsafe(96)[:length]

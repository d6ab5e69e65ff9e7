"""不透明凭证生成

授权码、访问令牌、刷新令牌均为密码学安全随机字节的十六进制编码，
不携带任何自描述信息。
"""

import secrets

# 默认随机字节数
AUTHORIZATION_CODE_BYTES = 24
ACCESS_TOKEN_BYTES = 32
REFRESH_TOKEN_BYTES = 48


def generate(byte_length: int) -> str:
    """生成不透明凭证

    Args:
        byte_length: 随机字节数，结果长度为其两倍

    Returns:
        str: 十六进制字符串

    Raises:
        ValueError: byte_length 不是正整数
    """
    if byte_length <= 0:
        raise ValueError(f"byte_length must be positive, got {byte_length}")
    return secrets.token_hex(byte_length)


def generate_authorization_code(byte_length: int = AUTHORIZATION_CODE_BYTES) -> str:
    """生成授权码"""
    return generate(byte_length)


def generate_access_token(byte_length: int = ACCESS_TOKEN_BYTES) -> str:
    """生成访问令牌"""
    return generate(byte_length)


def generate_refresh_token(byte_length: int = REFRESH_TOKEN_BYTES) -> str:
    """生成刷新令牌"""
    return generate(byte_length)


def generate_client_id(prefix: str = "client") -> str:
    """生成客户端 ID"""
    return f"{prefix}_{secrets.token_hex(16)}"


def generate_client_secret(length: int = 32) -> str:
    """生成客户端密钥"""
    return secrets.token_urlsafe(length)

"""密码工具模块

授权核心只把密码哈希当作不透明能力 `verify(password, hash) -> bool` 使用，
本模块为用户目录提供该能力的默认实现。

使用示例:
    from yoauth.password import PasswordHelper

    hashed = PasswordHelper.hash("my_password")
    if PasswordHelper.verify("my_password", hashed):
        print("密码正确")
"""

from typing import Optional

from passlib.context import CryptContext

# 密码哈希上下文
_pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto"
)


class PasswordTooShortError(ValueError):
    """密码太短"""
    pass


class PasswordTooLongError(ValueError):
    """密码太长"""
    pass


class PasswordHelper:
    """密码工具类

    默认使用 pbkdf2_sha256 算法，自带随机盐值，线程安全。
    """

    _min_length: int = 6
    _max_length: int = 128

    @classmethod
    def configure(
        cls,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
    ) -> None:
        """配置密码长度限制"""
        if min_length is not None:
            cls._min_length = min_length
        if max_length is not None:
            cls._max_length = max_length

    @classmethod
    def validate_length(cls, password: str) -> None:
        """验证密码长度

        Raises:
            PasswordTooShortError: 密码太短
            PasswordTooLongError: 密码太长
        """
        if len(password) < cls._min_length:
            raise PasswordTooShortError(
                f"密码长度不能少于 {cls._min_length} 个字符，当前 {len(password)} 个字符"
            )
        if len(password) > cls._max_length:
            raise PasswordTooLongError(
                f"密码长度不能超过 {cls._max_length} 个字符，当前 {len(password)} 个字符"
            )

    @classmethod
    def hash(cls, password: str, validate: bool = True) -> str:
        """对密码进行哈希处理

        Returns:
            哈希后的密码字符串（格式：$pbkdf2-sha256$...）
        """
        if validate:
            cls.validate_length(password)
        return _pwd_context.hash(password)

    @classmethod
    def verify(cls, password: str, hash: Optional[str]) -> bool:
        """验证密码，哈希为空或格式无法识别时返回 False"""
        if not hash or password is None:
            return False
        try:
            return _pwd_context.verify(password, hash)
        except (ValueError, TypeError):
            return False


def hash_password(password: str) -> str:
    """对密码进行哈希处理（便捷函数）"""
    return PasswordHelper.hash(password)


def verify_password(password: str, hash: Optional[str]) -> bool:
    """验证密码（便捷函数）"""
    return PasswordHelper.verify(password, hash)

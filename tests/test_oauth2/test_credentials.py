"""凭证生成测试"""

import string

import pytest

from yoauth.oauth2.credentials import (
    generate,
    generate_authorization_code,
    generate_access_token,
    generate_refresh_token,
    generate_client_id,
    generate_client_secret,
)


class TestGenerate:
    """不透明凭证生成测试"""

    def test_hex_encoded(self):
        """测试输出为十六进制，长度为字节数两倍"""
        value = generate(16)
        assert len(value) == 32
        assert set(value) <= set(string.hexdigits.lower())

    def test_default_lengths(self):
        """测试默认长度：授权码 24 字节、访问令牌 32 字节、刷新令牌 48 字节"""
        assert len(generate_authorization_code()) == 48
        assert len(generate_access_token()) == 64
        assert len(generate_refresh_token()) == 96

    def test_configurable_length(self):
        """测试自定义长度"""
        assert len(generate_access_token(8)) == 16

    @pytest.mark.parametrize("byte_length", [0, -1])
    def test_rejects_non_positive_length(self, byte_length):
        """测试拒绝非正数长度"""
        with pytest.raises(ValueError):
            generate(byte_length)

    def test_no_collisions(self):
        """测试大量生成不重复"""
        values = {generate_authorization_code() for _ in range(2000)}
        assert len(values) == 2000


class TestClientCredentials:
    """客户端 ID / 密钥生成测试"""

    def test_client_id_prefix(self):
        """测试客户端 ID 前缀"""
        assert generate_client_id().startswith("client_")
        assert generate_client_id("app").startswith("app_")

    def test_client_secret_unique(self):
        """测试客户端密钥不重复"""
        assert generate_client_secret() != generate_client_secret()

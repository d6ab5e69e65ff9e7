"""配置测试

测试默认值、环境变量覆盖与 YAML 加载
"""

import pytest

from yoauth.config import AppSettings, ConfigLoader, DatabaseSettings, OAuth2Settings, load_yaml_config


@pytest.fixture(autouse=True)
def clear_config_cache():
    ConfigLoader.clear_cache()
    yield
    ConfigLoader.clear_cache()


class TestOAuth2Settings:
    """OAuth2 配置测试"""

    def test_defaults(self):
        settings = OAuth2Settings()
        assert settings.authorization_code_expire_seconds == 600
        assert settings.access_token_expire_seconds == 3600
        assert settings.refresh_token_expire_seconds == 2592000
        assert settings.authorization_code_bytes == 24
        assert settings.access_token_bytes == 32
        assert settings.refresh_token_bytes == 48
        assert settings.check_password_change is True

    def test_env_override(self, monkeypatch):
        """测试环境变量覆盖"""
        monkeypatch.setenv("YOAUTH_OAUTH2_ACCESS_TOKEN_EXPIRE_SECONDS", "900")
        monkeypatch.setenv("YOAUTH_OAUTH2_CHECK_PASSWORD_CHANGE", "false")

        settings = OAuth2Settings()
        assert settings.access_token_expire_seconds == 900
        assert settings.check_password_change is False

    def test_database_env(self, monkeypatch):
        monkeypatch.setenv("YOAUTH_DB_URL", "sqlite:///./other.db")
        assert DatabaseSettings().url == "sqlite:///./other.db"


class TestConfigLoader:
    """YAML 配置加载测试"""

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "oauth2:\n"
            "  access_token_expire_seconds: 1800\n"
            "  refresh_token_bytes: 64\n"
            "logging:\n"
            "  level: DEBUG\n",
            encoding="utf-8",
        )
        return path

    def test_load(self, config_file):
        config = ConfigLoader.load(str(config_file))
        assert config["oauth2"]["access_token_expire_seconds"] == 1800

    def test_cache_and_reload(self, config_file):
        """测试缓存与重新加载"""
        ConfigLoader.load(str(config_file))
        assert str(config_file) in ConfigLoader.get_cached_paths()

        config_file.write_text("oauth2:\n  access_token_expire_seconds: 60\n", encoding="utf-8")
        assert ConfigLoader.load(str(config_file))["oauth2"]["access_token_expire_seconds"] == 1800
        assert ConfigLoader.reload(str(config_file))["oauth2"]["access_token_expire_seconds"] == 60

    def test_relative_path_with_base_dir(self, config_file, tmp_path):
        config = ConfigLoader.load("settings.yaml", base_dir=str(tmp_path))
        assert config["logging"]["level"] == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert ConfigLoader.load(str(path)) == {}

    def test_load_yaml_config(self, config_file):
        """测试 YAML 生成嵌套配置对象，未配置的项使用默认值"""
        settings = load_yaml_config(str(config_file), AppSettings)

        assert settings.oauth2.access_token_expire_seconds == 1800
        assert settings.oauth2.refresh_token_bytes == 64
        assert settings.oauth2.authorization_code_expire_seconds == 600
        assert settings.logging.level == "DEBUG"
        assert settings.database.url == "sqlite:///./yoauth.db"

    def test_load_yaml_config_overrides(self, config_file):
        settings = load_yaml_config(str(config_file), AppSettings, logging={"level": "ERROR"})
        assert settings.logging.level == "ERROR"

"""
Тесты для настроек
"""
import pytest
from pydantic import ValidationError

from config.settings import Settings


class TestSettings:
    """Тесты загрузки настроек"""

    def test_database_url_defaults_to_sqlite(self):
        settings = Settings(_env_file=None, sqlite_path="data/certs.db")

        assert settings.database_url == "sqlite:///data/certs.db"

    def test_database_url_postgres(self):
        settings = Settings(_env_file=None, db_name="certs", db_user="u", db_password="p", db_host="db")

        assert settings.database_url == "postgresql://u:p@db:5432/certs"

    def test_database_url_explicit(self):
        settings = Settings(_env_file=None, db_url="sqlite:///:memory:", db_name="ignored")

        assert settings.database_url == "sqlite:///:memory:"

    def test_admin_tokens_map(self):
        settings = Settings(_env_file=None, admin_tokens="abc:alice, def:bob")

        assert settings.admin_tokens_map == {"abc": "alice", "def": "bob"}

    def test_invalid_admin_tokens(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, admin_tokens="no-separator")

    def test_public_origin_normalized(self):
        settings = Settings(_env_file=None, public_origin="https://certs.example.com/")

        assert settings.public_origin == "https://certs.example.com"

        with pytest.raises(ValidationError):
            Settings(_env_file=None, public_origin="certs.example.com")

    def test_log_level(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    def test_create_env_example(self, tmp_path, monkeypatch):
        from config.settings import create_env_example

        monkeypatch.chdir(tmp_path)
        create_env_example()

        content = (tmp_path / ".env.example").read_text(encoding="utf-8")
        assert "ADMIN_TOKENS=" in content
        assert "PUBLIC_ORIGIN=" in content

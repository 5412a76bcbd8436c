"""Tests for configuration module."""

from __future__ import annotations

from unittest.mock import patch

from kutter.config import DEFAULT_CORS_ORIGINS, Config, _parse_bool, _parse_origins


class TestParsers:
    def test_bool_truthy(self):
        for raw in ("1", "true", "TRUE", "yes", "on"):
            assert _parse_bool(raw) is True

    def test_bool_falsy(self):
        for raw in (None, "", "0", "false", "off"):
            assert _parse_bool(raw) is False

    def test_origins_default(self):
        assert _parse_origins(None) == list(DEFAULT_CORS_ORIGINS)

    def test_origins_split(self):
        assert _parse_origins("http://a, http://b ,") == ["http://a", "http://b"]


class TestConfig:
    def test_defaults(self):
        cfg = Config(jwt_secret="s")
        assert cfg.port == 8080
        assert cfg.bus_capacity == 20
        assert cfg.maintenance_mode is False
        assert "https://kutter.onrender.com" in cfg.cors_origins

    def test_validate_no_secret(self):
        errors = Config().validate()
        assert any("JWT_SECRET" in e for e in errors)

    def test_validate_bad_capacity(self):
        errors = Config(jwt_secret="s", bus_capacity=0).validate()
        assert any("BUS_CAPACITY" in e for e in errors)

    def test_validate_ok(self):
        assert Config(jwt_secret="s").validate() == []

    @patch("kutter.config.load_dotenv")
    def test_from_env(self, _mock_dotenv, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "env-secret")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///tmp/x.db")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("BUS_CAPACITY", "5")
        monkeypatch.setenv("MAINTENANCE_MODE", "1")
        monkeypatch.setenv("CORS_ORIGINS", "http://only.example")
        cfg = Config.from_env()
        assert cfg.jwt_secret == "env-secret"
        assert cfg.database_url == "sqlite+aiosqlite:///tmp/x.db"
        assert cfg.port == 9000
        assert cfg.bus_capacity == 5
        assert cfg.maintenance_mode is True
        assert cfg.cors_origins == ["http://only.example"]

    @patch("kutter.config.load_dotenv")
    def test_from_args_overrides_env(self, _mock_dotenv, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "env-secret")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.delenv("MAINTENANCE_MODE", raising=False)
        cfg = Config.from_args(port=7000, maintenance=True)
        assert cfg.port == 7000
        assert cfg.maintenance_mode is True
        assert cfg.jwt_secret == "env-secret"

    @patch("kutter.config.load_dotenv")
    def test_from_args_keeps_env_when_unset(self, _mock_dotenv, monkeypatch):
        monkeypatch.setenv("HOST", "0.0.0.0")
        cfg = Config.from_args()
        assert cfg.host == "0.0.0.0"

"""Tests for DatabaseConfig and TLS material resolution."""

import json
from typing import Any, Dict

import pytest
from pydantic import ValidationError

from sqlrecord import config as config_module
from sqlrecord.config import (
    AMAZON_RDS,
    DatabaseConfig,
    TlsMaterial,
    resolve_tls_material,
)
from sqlrecord.exceptions import DBConnectionError


class TestDatabaseConfig:
    def test_defaults(self) -> None:
        cfg = DatabaseConfig()
        assert cfg.host == "localhost"
        assert cfg.port == 3306
        assert cfg.connect_timeout_ms == 10000
        assert cfg.tls_enabled is False
        assert cfg.charset == "utf8mb4"

    def test_blank_port_and_timeout_use_defaults(self) -> None:
        cfg = DatabaseConfig(port="", connect_timeout_ms=None)  # type: ignore[arg-type]
        assert cfg.port == 3306
        assert cfg.connect_timeout_ms == 10000

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseConfig(connect_timeout_ms=0)

    def test_frozen(self) -> None:
        cfg = DatabaseConfig()
        with pytest.raises(ValidationError):
            cfg.host = "other"  # type: ignore[misc]

    @pytest.mark.parametrize("ms, seconds", [(10000, 10), (1500, 2), (1, 1)])
    def test_connect_timeout_seconds(self, ms: int, seconds: int) -> None:
        assert DatabaseConfig(connect_timeout_ms=ms).connect_timeout_seconds == seconds

    def test_from_env(self) -> None:
        cfg = DatabaseConfig.from_env(
            {
                "DB_ENDPOINT": "mysql.internal",
                "DB_PORT": "3307",
                "DB_USER": "app",
                "DB_PASSWORD": "pw",
                "DB_NAME": "shop",
                "DB_CONNECT_TIMEOUT": "5000",
                "DB_TLS": "true",
                "DB_TLS_MATERIAL": AMAZON_RDS,
            }
        )
        assert cfg.host == "mysql.internal"
        assert cfg.port == 3307
        assert cfg.user == "app"
        assert cfg.database == "shop"
        assert cfg.connect_timeout_ms == 5000
        assert cfg.tls_enabled is True
        assert cfg.tls_material == AMAZON_RDS

    def test_from_env_blank_values(self) -> None:
        cfg = DatabaseConfig.from_env({"DB_PORT": "", "DB_CONNECT_TIMEOUT": ""})
        assert cfg.port == 3306
        assert cfg.connect_timeout_ms == 10000
        assert cfg.tls_enabled is False


class _FakeSecretsClient:
    def __init__(self, payload: Dict[str, Any]) -> None:
        self.payload = payload

    def get_secret_value(self, SecretId: str) -> Dict[str, Any]:
        return {"SecretString": json.dumps(self.payload)}


class TestSecretsManager:
    def test_from_secrets_manager(self, monkeypatch: pytest.MonkeyPatch) -> None:
        payload = {"host": "rds.example.com", "port": 3306, "username": "admin", "password": "pw", "dbname": "prod"}
        monkeypatch.setattr(config_module.boto3, "client", lambda *a, **kw: _FakeSecretsClient(payload))
        cfg = DatabaseConfig.from_secrets_manager("prod/db", region="eu-west-1", tls_enabled=True)
        assert cfg.host == "rds.example.com"
        assert cfg.user == "admin"
        assert cfg.database == "prod"
        assert cfg.aws_region == "eu-west-1"
        assert cfg.tls_enabled is True

    def test_secret_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(*args: Any, **kwargs: Any) -> Any:
            raise RuntimeError("no credentials")

        monkeypatch.setattr(config_module.boto3, "client", broken)
        with pytest.raises(DBConnectionError, match="no credentials"):
            DatabaseConfig.from_secrets_manager("prod/db")


class TestTlsMaterial:
    def test_from_directory(self, tmp_path) -> None:
        material = TlsMaterial.from_directory(tmp_path)
        assert material.ca == str(tmp_path / "ca.pem")
        assert material.cert == str(tmp_path / "client-cert.pem")
        assert material.key == str(tmp_path / "client-key.pem")

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            TlsMaterial.from_directory(tmp_path).to_ssl_options()

    def test_amazon_rds_preset(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        bundle = tmp_path / "rds-combined-ca-bundle.pem"
        bundle.write_text("pem")
        monkeypatch.setenv("RDS_CA_BUNDLE", str(bundle))
        assert resolve_tls_material(AMAZON_RDS).to_ssl_options() == {"ca": str(bundle)}

    def test_amazon_rds_preset_without_bundle(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RDS_CA_BUNDLE", raising=False)
        assert resolve_tls_material(AMAZON_RDS).to_ssl_options() == {"check_hostname": False}

    def test_passthrough(self) -> None:
        material = TlsMaterial(ca="/x")
        assert resolve_tls_material(material) is material
        assert resolve_tls_material(None) == TlsMaterial()

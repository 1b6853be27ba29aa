"""Connection configuration models.

`DatabaseConfig` is an immutable pydantic model holding everything needed to
open a session. It can be built directly, from environment variables, or from
an AWS Secrets Manager secret.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union, cast

import boto3
from pydantic import BaseModel, Field, field_validator

from .exceptions import DBConnectionError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306
DEFAULT_CONNECT_TIMEOUT_MS = 10000

AMAZON_RDS = "Amazon RDS"
TLS_PRESETS = (AMAZON_RDS,)

_TRUE_TOKENS = {"1", "true", "yes", "y", "on"}


class TlsMaterial(BaseModel):
    """Certificate and key file paths used for a TLS session.

    Attributes:
        ca: Path to the CA bundle used to verify the server.
        cert: Path to the client certificate, if the server wants one.
        key: Path to the client private key.
    """

    ca: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "TlsMaterial":
        """Load ``ca.pem``, ``client-cert.pem`` and ``client-key.pem`` from a directory."""
        base = Path(path)
        return cls(
            ca=str(base / "ca.pem"),
            cert=str(base / "client-cert.pem"),
            key=str(base / "client-key.pem"),
        )

    def to_ssl_options(self) -> Dict[str, object]:
        """Return the mapping PyMySQL expects for its ``ssl`` argument.

        Without a CA the session is encrypted but hostname checking is off.
        """
        options: Dict[str, object] = {}
        for name in ("ca", "cert", "key"):
            value = getattr(self, name)
            if value:
                if not Path(value).is_file():
                    raise FileNotFoundError(f"TLS {name} file not found: {value}")
                options[name] = value
        if "ca" not in options:
            options["check_hostname"] = False
        return options


def resolve_tls_material(material: Union[str, TlsMaterial, None]) -> TlsMaterial:
    """Turn a preset name, a directory path or a TlsMaterial into TlsMaterial.

    The ``"Amazon RDS"`` preset verifies against the bundle named by the
    ``RDS_CA_BUNDLE`` environment variable. Without it the session is still
    encrypted but the server certificate is not verified.
    """
    if isinstance(material, TlsMaterial):
        return material
    if material is None:
        return TlsMaterial()
    if material == AMAZON_RDS:
        bundle = os.environ.get("RDS_CA_BUNDLE")
        if not bundle:
            logger.warning("RDS_CA_BUNDLE is not set; server certificate will not be verified")
        return TlsMaterial(ca=bundle)
    return TlsMaterial.from_directory(material)


class DatabaseConfig(BaseModel):
    """Immutable connection settings for a `DatabaseManager`."""

    host: str = "localhost"
    port: int = DEFAULT_PORT
    user: str = ""
    password: str = ""
    database: str = ""
    connect_timeout_ms: int = Field(DEFAULT_CONNECT_TIMEOUT_MS, gt=0)
    tls_enabled: bool = False
    tls_material: Optional[Union[str, TlsMaterial]] = None
    charset: str = "utf8mb4"
    iam_auth: bool = False
    aws_region: str = "us-east-1"

    model_config = {"frozen": True}

    @field_validator("port", mode="before")
    @classmethod
    def default_port(cls, v: Any) -> Any:
        """Fall back to 3306 when the port is blank."""
        if v in (None, ""):
            return DEFAULT_PORT
        return v

    @field_validator("connect_timeout_ms", mode="before")
    @classmethod
    def default_timeout(cls, v: Any) -> Any:
        """Fall back to the default timeout when it is blank."""
        if v in (None, ""):
            return DEFAULT_CONNECT_TIMEOUT_MS
        return v

    @property
    def connect_timeout_seconds(self) -> int:
        """Connect timeout rounded up to whole seconds, as PyMySQL wants it."""
        return max(1, -(-self.connect_timeout_ms // 1000))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DatabaseConfig":
        """Build a config from ``DB_*`` environment variables.

        Recognized: DB_ENDPOINT, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME,
        DB_CONNECT_TIMEOUT, DB_TLS, DB_TLS_MATERIAL.
        """
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("DB_ENDPOINT", "localhost"),
            port=env.get("DB_PORT") or DEFAULT_PORT,
            user=env.get("DB_USER", ""),
            password=env.get("DB_PASSWORD", ""),
            database=env.get("DB_NAME", ""),
            connect_timeout_ms=env.get("DB_CONNECT_TIMEOUT") or DEFAULT_CONNECT_TIMEOUT_MS,
            tls_enabled=env.get("DB_TLS", "").strip().lower() in _TRUE_TOKENS,
            tls_material=env.get("DB_TLS_MATERIAL") or None,
        )

    @classmethod
    def from_secrets_manager(
        cls, secret_id: str, region: str = "us-east-1", **overrides: Any
    ) -> "DatabaseConfig":
        """Build a config from an AWS Secrets Manager JSON secret.

        The secret uses the RDS layout: host, port, username, password, dbname.

        Raises:
            DBConnectionError: If the secret cannot be read or parsed.
        """
        try:
            sm_client = boto3.client("secretsmanager", region_name=region)
            secret = sm_client.get_secret_value(SecretId=secret_id)
            data = cast(Dict[str, Any], json.loads(cast(str, secret["SecretString"])))
        except Exception as e:
            logger.error("Failed to load database secret %s: %s", secret_id, e)
            raise DBConnectionError(f"Failed to load database secret {secret_id}: {e}") from e

        values: Dict[str, Any] = {
            "host": data["host"],
            "port": data.get("port") or DEFAULT_PORT,
            "user": data.get("username", ""),
            "password": data.get("password", ""),
            "database": data.get("dbname", ""),
            "aws_region": region,
        }
        values.update(overrides)
        return cls(**values)

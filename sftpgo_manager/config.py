"""
Configuration module for SFTPGo Manager
"""

import os
from typing import NamedTuple, Optional


def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


# SFTPGo admin API
SFTPGO_URL = os.getenv("SFTPGO_URL", "http://localhost:8080")
SFTPGO_ADMIN_USER = os.getenv("SFTPGO_ADMIN_USER", "admin")
SFTPGO_ADMIN_PASS = os.getenv("SFTPGO_ADMIN_PASS", "admin")
SFTPGO_TIMEOUT_SEC = float(os.getenv("SFTPGO_TIMEOUT_SEC", "10"))

# HTTP server
LISTEN_HOST = os.getenv("LISTEN_HOST", "0.0.0.0")
LISTEN_PORT = int(os.getenv("LISTEN_PORT", "9090"))
API_PREFIX = "/api"

# Tenant home directories are DATA_DIR/<tenant_id>
DATA_DIR = os.getenv("DATA_DIR", "/srv/sftpgo/data")

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sftpgo.db")
AUTO_MIGRATE = env_bool("AUTO_MIGRATE", False)

# S3 / MinIO storage (integration enabled iff S3_ENDPOINT is set)
S3_BUCKET = os.getenv("S3_BUCKET", "sftpgo")
S3_REGION = os.getenv("S3_REGION", "us-east-1")
S3_ENDPOINT = os.getenv("S3_ENDPOINT", "")
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY", "")
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY", "")
S3_USE_SSL = env_bool("S3_USE_SSL", False)
S3_SKIP_TLS_VERIFY = env_bool("S3_SKIP_TLS_VERIFY", False)

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")


class S3Settings(NamedTuple):
    bucket: str
    region: str
    endpoint: str
    access_key: str
    secret_key: str


def s3_settings() -> Optional[S3Settings]:
    """Current S3 settings, or None when S3 integration is disabled.

    Rebuilt from the current module values on every call. Those values are
    read from the environment once at import, so new credentials need a restart.
    """
    if not S3_ENDPOINT:
        return None
    return S3Settings(
        bucket=S3_BUCKET,
        region=S3_REGION,
        endpoint=S3_ENDPOINT,
        access_key=S3_ACCESS_KEY,
        secret_key=S3_SECRET_KEY,
    )

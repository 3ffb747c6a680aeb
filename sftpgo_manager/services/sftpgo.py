"""
SFTPGo admin REST API client.

The bearer token returned by /api/v2/token is cached and reused until 30
seconds before its reported expiry. A single lock guards the token and its
expiry, and the refresh happens while the lock is held, so concurrent callers
trigger at most one token request per refresh.

No retries: every non-success response surfaces as an UpstreamError.
"""
import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from .. import config
from ..config import S3Settings
from ..errors import UpstreamError, UpstreamNotFound

logger = logging.getLogger("sftpgo_manager.sftpgo")

TOKEN_EXPIRY_MARGIN = timedelta(seconds=30)

# SFTPGo user status / filesystem provider codes
STATUS_ENABLED = 1
PROVIDER_S3 = 1
FULL_ACCESS = {"/": ["*"]}

_FRACTION_RE = re.compile(r"\.(\d+)")


def _parse_expiry(value: str) -> datetime:
    """Parse SFTPGo's RFC 3339 expiry (may carry nanoseconds and a Z suffix)"""
    value = value.strip().replace("Z", "+00:00")
    value = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_filesystem(s3: S3Settings, tenant_id: str) -> Dict[str, Any]:
    """S3 filesystem descriptor isolating the tenant under <tenant_id>/"""
    return {
        "provider": PROVIDER_S3,
        "s3config": {
            "bucket": s3.bucket,
            "region": s3.region,
            "endpoint": s3.endpoint,
            "access_key": s3.access_key,
            "access_secret": {"status": "Plain", "payload": s3.secret_key},
            "key_prefix": f"{tenant_id}/",
            "force_path_style": True,
            "skip_tls_verify": True,
        },
    }


class SFTPGoClient:

    def __init__(
        self,
        base_url: str,
        admin_user: str,
        admin_pass: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = (admin_user, admin_pass)
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._token_exp: Optional[datetime] = None

    def close(self):
        self._http.close()

    # ----- token -----

    def get_token(self) -> str:
        with self._lock:
            if self._token and self._clock() < self._token_exp:
                return self._token

            try:
                resp = self._http.get("/api/v2/token", auth=self._auth)
            except httpx.HTTPError as e:
                raise UpstreamError(f"token request: {e}", cause=e)

            if resp.status_code != 200:
                raise UpstreamError(
                    f"token request failed ({resp.status_code}): {resp.text}",
                    status=resp.status_code,
                )

            try:
                data = resp.json()
                token = data["access_token"]
                expires_at = _parse_expiry(data["expires_at"])
            except (ValueError, KeyError, TypeError) as e:
                raise UpstreamError(f"decode token: {e}", cause=e)

            self._token = token
            self._token_exp = expires_at - TOKEN_EXPIRY_MARGIN
            logger.info("sftpgo token refreshed", extra={
                "component": "sftpgo",
                "expires_at": expires_at.isoformat(),
            })
            return self._token

    def _request(self, action: str, method: str, path: str, **kwargs) -> httpx.Response:
        token = self.get_token()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        try:
            return self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"sftpgo {action}: {e}", cause=e)

    @staticmethod
    def _user_path(username: str) -> str:
        return f"/api/v2/users/{quote(username, safe='')}"

    # ----- users -----

    def create_user(
        self,
        username: str,
        password: str,
        home_dir: str,
        public_keys: Optional[List[str]] = None,
        s3: Optional[S3Settings] = None,
        tenant_id: str = "",
    ) -> None:
        payload: Dict[str, Any] = {
            "username": username,
            "password": password,
            "status": STATUS_ENABLED,
            "home_dir": home_dir,
            "permissions": FULL_ACCESS,
        }
        if public_keys:
            payload["public_keys"] = list(public_keys)
        if s3 is not None:
            payload["filesystem"] = build_filesystem(s3, tenant_id)

        resp = self._request("create user", "POST", "/api/v2/users", json=payload)
        if resp.status_code != 201:
            raise UpstreamError(
                f"sftpgo create user ({resp.status_code}): {resp.text}",
                status=resp.status_code,
            )
        logger.info("sftpgo user created", extra={"component": "sftpgo", "username": username})

    def get_user(self, username: str) -> Dict[str, Any]:
        resp = self._request("get user", "GET", self._user_path(username))
        if resp.status_code == 404:
            raise UpstreamNotFound("user not found in sftpgo", status=404)
        if resp.status_code != 200:
            raise UpstreamError(
                f"sftpgo get user ({resp.status_code}): {resp.text}",
                status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"decode sftpgo user: {e}", cause=e)

    def update_user_public_keys(self, username: str, keys: List[str]) -> None:
        # PUT expects the complete user object, so read-modify-write
        user = self.get_user(username)
        user["public_keys"] = list(keys)

        resp = self._request("update user keys", "PUT", self._user_path(username), json=user)
        if resp.status_code != 200:
            raise UpstreamError(
                f"sftpgo update user keys ({resp.status_code}): {resp.text}",
                status=resp.status_code,
            )

    def delete_user(self, username: str) -> None:
        resp = self._request("delete user", "DELETE", self._user_path(username))
        if not resp.is_success:
            raise UpstreamError(
                f"sftpgo delete user ({resp.status_code}): {resp.text}",
                status=resp.status_code,
            )
        logger.info("sftpgo user deleted", extra={"component": "sftpgo", "username": username})


_client: Optional[SFTPGoClient] = None
_client_lock = threading.Lock()


def get_sftpgo_client() -> SFTPGoClient:
    """Process-wide client built from config (FastAPI dependency)"""
    global _client
    with _client_lock:
        if _client is None:
            _client = SFTPGoClient(
                config.SFTPGO_URL,
                config.SFTPGO_ADMIN_USER,
                config.SFTPGO_ADMIN_PASS,
                timeout=config.SFTPGO_TIMEOUT_SEC,
            )
        return _client


def close_sftpgo_client():
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None

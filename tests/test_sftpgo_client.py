"""
SFTPGo admin client: token cache and user CRUD against a fake SFTPGo
"""
import threading
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from sftpgo_manager.config import S3Settings
from sftpgo_manager.errors import UpstreamError, UpstreamNotFound
from sftpgo_manager.services.sftpgo import SFTPGoClient, _parse_expiry, build_filesystem

SFTPGO_URL = "http://sftpgo.test"

S3 = S3Settings(bucket="bkt", region="us-east-1", endpoint="minio:9000", access_key="AK", secret_key="SK")


def test_token_is_cached(sftpgo, sftpgo_client):
    first = sftpgo_client.get_token()
    second = sftpgo_client.get_token()
    assert first == second == "token-1"
    assert sftpgo.token_requests == 1


def test_concurrent_callers_refresh_once(sftpgo, sftpgo_client):
    tokens = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        tokens.append(sftpgo_client.get_token())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sftpgo.token_requests == 1
    assert set(tokens) == {"token-1"}


def test_token_refreshed_near_expiry(sftpgo):
    now = [datetime.now(timezone.utc)]
    c = SFTPGoClient(SFTPGO_URL, "admin", "admin",
                     transport=httpx.MockTransport(sftpgo.handler), clock=lambda: now[0])
    assert c.get_token() == "token-1"

    # inside the 30s safety margin before the 1h expiry
    now[0] += timedelta(minutes=59, seconds=45)
    assert c.get_token() == "token-2"
    assert sftpgo.token_requests == 2
    c.close()


def test_token_failure_is_upstream_error(sftpgo):
    c = SFTPGoClient(SFTPGO_URL, "admin", "wrong", transport=httpx.MockTransport(sftpgo.handler))
    with pytest.raises(UpstreamError) as exc:
        c.get_token()
    assert exc.value.status == 401
    assert "token request failed (401)" in str(exc.value)
    c.close()


def test_parse_expiry_handles_nanoseconds():
    parsed = _parse_expiry("2026-10-18T12:00:00.123456789Z")
    assert parsed == datetime(2026, 10, 18, 12, 0, 0, 123456, tzinfo=timezone.utc)


def test_create_user_payload(sftpgo, sftpgo_client):
    sftpgo_client.create_user("acme", "pw", "/data/t1", public_keys=["ssh-ed25519 AAAA"], s3=S3, tenant_id="t1")
    user = sftpgo.users["acme"]
    assert user["status"] == 1
    assert user["permissions"] == {"/": ["*"]}
    assert user["public_keys"] == ["ssh-ed25519 AAAA"]
    s3config = user["filesystem"]["s3config"]
    assert user["filesystem"]["provider"] == 1
    assert s3config["key_prefix"] == "t1/"
    assert s3config["access_secret"] == {"status": "Plain", "payload": "SK"}
    assert s3config["force_path_style"] is True


def test_create_user_without_s3_has_no_filesystem(sftpgo, sftpgo_client):
    sftpgo_client.create_user("acme", "pw", "/data/t1")
    assert "filesystem" not in sftpgo.users["acme"]
    assert "public_keys" not in sftpgo.users["acme"]


def test_create_user_conflict(sftpgo, sftpgo_client):
    sftpgo_client.create_user("acme", "pw", "/data/t1")
    with pytest.raises(UpstreamError) as exc:
        sftpgo_client.create_user("acme", "pw", "/data/t1")
    assert exc.value.status == 409


def test_get_missing_user(sftpgo_client):
    with pytest.raises(UpstreamNotFound):
        sftpgo_client.get_user("ghost")


def test_update_public_keys_keeps_other_fields(sftpgo, sftpgo_client):
    sftpgo_client.create_user("acme", "pw", "/data/t1", public_keys=["ssh-rsa OLD"])
    sftpgo_client.update_user_public_keys("acme", ["ssh-ed25519 NEW"])
    user = sftpgo.users["acme"]
    assert user["public_keys"] == ["ssh-ed25519 NEW"]
    assert user["home_dir"] == "/data/t1"
    assert ("PUT", "/api/v2/users/acme") in sftpgo.requests


def test_delete_user(sftpgo, sftpgo_client):
    sftpgo_client.create_user("acme", "pw", "/data/t1")
    sftpgo_client.delete_user("acme")
    assert "acme" not in sftpgo.users
    with pytest.raises(UpstreamError):
        sftpgo_client.delete_user("acme")


def test_transport_error_is_upstream_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    c = SFTPGoClient(SFTPGO_URL, "admin", "admin", transport=httpx.MockTransport(boom))
    with pytest.raises(UpstreamError):
        c.get_token()
    c.close()


def test_build_filesystem_prefix():
    fs = build_filesystem(S3, "abc")
    assert fs["s3config"]["key_prefix"] == "abc/"
    assert fs["s3config"]["bucket"] == "bkt"

# tests/conftest.py
import base64
import io
import json
import os
import tempfile
from datetime import datetime, timedelta, timezone
from urllib.parse import unquote

# Point the app at a throwaway database before anything imports sftpgo_manager
_DB_DIR = tempfile.mkdtemp(prefix="sftpgo-manager-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["S3_ENDPOINT"] = ""
os.environ["DATA_DIR"] = "/srv/sftpgo/data"

import httpx
import pytest
from fastapi.testclient import TestClient

from sftpgo_manager.db import Base, SessionLocal, engine, init_db
from sftpgo_manager.errors import ObjectStoreError
from sftpgo_manager.main import app
from sftpgo_manager.services.ingest import get_ingest_worker
from sftpgo_manager.services.sftpgo import SFTPGoClient, get_sftpgo_client

SFTPGO_URL = "http://sftpgo.test"
USERS_PREFIX = "/api/v2/users/"
ADMIN_BASIC = "Basic " + base64.b64encode(b"admin:admin").decode()


class FakeSFTPGo:
    """In-memory SFTPGo admin API served through httpx.MockTransport"""

    def __init__(self):
        self.users = {}
        self.token_requests = 0
        self.requests = []
        self.token_ttl = timedelta(hours=1)
        # method -> status code forced for /api/v2/users* calls
        self.fail = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))

        if path == "/api/v2/token":
            if request.headers.get("Authorization", "") != ADMIN_BASIC:
                return httpx.Response(401, text="bad credentials")
            self.token_requests += 1
            expires = datetime.now(timezone.utc) + self.token_ttl
            return httpx.Response(200, json={
                "access_token": f"token-{self.token_requests}",
                "expires_at": expires.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            })

        if not request.headers.get("Authorization", "").startswith("Bearer token-"):
            return httpx.Response(401, text="missing token")

        if request.method in self.fail:
            return httpx.Response(self.fail[request.method], text="forced failure")

        if path == "/api/v2/users" and request.method == "POST":
            user = json.loads(request.content)
            if user["username"] in self.users:
                return httpx.Response(409, text="user exists")
            self.users[user["username"]] = user
            return httpx.Response(201, json=user)

        if path.startswith(USERS_PREFIX):
            username = unquote(path[len(USERS_PREFIX):])
            if username not in self.users:
                return httpx.Response(404, json={"error": "not found"})
            if request.method == "GET":
                return httpx.Response(200, json=self.users[username])
            if request.method == "PUT":
                self.users[username] = json.loads(request.content)
                return httpx.Response(200, json={"message": "User updated"})
            if request.method == "DELETE":
                del self.users[username]
                return httpx.Response(200, json={"message": "User deleted"})

        return httpx.Response(405)


class StubStore:
    """Object store double exposing ObjectStore.open"""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.opened = []

    def put(self, key: str, data):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.objects[key] = data

    def open(self, key: str):
        self.opened.append(key)
        if key not in self.objects:
            raise ObjectStoreError(f"get object {key}: NoSuchKey")
        return io.BytesIO(self.objects[key])


@pytest.fixture(autouse=True)
def reset_db():
    init_db()
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def sftpgo():
    return FakeSFTPGo()


@pytest.fixture
def sftpgo_client(sftpgo):
    c = SFTPGoClient(SFTPGO_URL, "admin", "admin", transport=httpx.MockTransport(sftpgo.handler))
    yield c
    c.close()


@pytest.fixture
def store():
    return StubStore()


@pytest.fixture
def client(sftpgo_client):
    app.dependency_overrides[get_sftpgo_client] = lambda: sftpgo_client
    app.dependency_overrides[get_ingest_worker] = lambda: None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def api_key(client):
    response = client.post("/api/keys", json={"label": "tests"})
    assert response.status_code == 201
    return response.json()["key"]


@pytest.fixture
def auth_headers(api_key):
    return {"Authorization": f"Bearer {api_key}"}

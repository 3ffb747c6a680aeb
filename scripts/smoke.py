#!/usr/bin/env python3
"""
End-to-end smoke test against a running SFTPGo Manager + SFTPGo deployment.

Creates a throwaway tenant, checks the auth hook both ways, validates the
tenant against SFTPGo and deletes it again.
"""
import os
import sys
import uuid

import requests

BASE_URL = os.getenv("MANAGER_URL", "http://127.0.0.1:9090")
TIMEOUT = 10


def check(name, ok, detail=""):
    if ok:
        print(f"✅ {name}")
    else:
        print(f"❌ {name} {detail}")
    return ok


def main():
    print("🚀 Running smoke tests against", BASE_URL)
    failed = 0

    r = requests.get(f"{BASE_URL}/healthz", timeout=TIMEOUT)
    failed += not check("healthz", r.status_code == 200, r.text)

    r = requests.post(f"{BASE_URL}/api/keys", json={"label": "smoke"}, timeout=TIMEOUT)
    if not check("create api key", r.status_code == 201, r.text):
        sys.exit(1)
    headers = {"Authorization": f"Bearer {r.json()['key']}"}

    username = f"smoke-{uuid.uuid4().hex[:8]}"
    r = requests.post(f"{BASE_URL}/api/tenants", json={"username": username}, headers=headers, timeout=TIMEOUT)
    if not check("create tenant", r.status_code == 201, r.text):
        sys.exit(1)
    created = r.json()
    tid = created["tenant"]["id"]

    r = requests.post(
        f"{BASE_URL}/api/auth/hook",
        json={"username": username, "password": created["password"], "protocol": "SSH", "ip": "127.0.0.1"},
        timeout=TIMEOUT,
    )
    failed += not check("auth hook accepts password", r.status_code == 200 and r.json().get("status") == 1, r.text)

    r = requests.post(
        f"{BASE_URL}/api/auth/hook",
        json={"username": username, "password": "wrong", "protocol": "SSH", "ip": "127.0.0.1"},
        timeout=TIMEOUT,
    )
    failed += not check("auth hook rejects wrong password", r.status_code == 403, r.text)

    r = requests.post(f"{BASE_URL}/api/tenants/{tid}/validate", headers=headers, timeout=TIMEOUT)
    failed += not check("validate tenant", r.status_code == 200 and r.json().get("valid") is True, r.text)

    r = requests.delete(f"{BASE_URL}/api/tenants/{tid}", headers=headers, timeout=TIMEOUT)
    failed += not check("delete tenant", r.status_code == 200, r.text)

    if failed > 0:
        print(f"\n❌ {failed} check(s) failed")
        sys.exit(1)
    print("\n✅ All smoke tests passed")


if __name__ == "__main__":
    main()

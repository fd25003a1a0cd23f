#!/usr/bin/env python3
"""
chatgate quickstart: the whole auth + chat flow in one script.

Register → duplicate register → bad login → good login → /auth/me →
route guard with and without the session cookie → one chat message.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: chatgate serve  (http://localhost:8000)
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000"


def main():
    run_id = uuid.uuid4().hex[:6]
    email = f"demo-{run_id}@example.com"
    password = "secret123"
    client = httpx.Client(base_url=BASE, timeout=60, follow_redirects=False)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}. Start it with: chatgate serve")
        sys.exit(1)
    health = resp.json()
    print(f"  Status:     {health['status']}")
    print(f"  User store: {'✓' if health['user_store'] == 'ok' else '✗'}")

    # ── Register ──────────────────────────────────────────────────
    print("\n1. Registering...")
    creds = {"email": email, "password": password, "name": f"Demo {run_id}"}
    resp = client.post("/auth/register", json=creds)
    assert resp.status_code == 201, f"Failed: {resp.text}"
    user = resp.json()["user"]
    print(f"   User: {user['name']} <{user['email']}> ({user['id'][:8]}...)")

    resp = client.post("/auth/register", json=creds)
    print(f"   Same email again → {resp.status_code} {resp.json()['error']}")

    # ── Login ─────────────────────────────────────────────────────
    print("\n2. Logging in...")
    resp = client.post("/auth/login", json={"email": email, "password": "wrong"})
    print(f"   Wrong password → {resp.status_code} {resp.json()['error']}")

    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    token = resp.json()["token"]
    print(f"   Token: {token[:24]}...")

    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    print(f"   /auth/me → {resp.json()}")

    # ── Route guard ───────────────────────────────────────────────
    print("\n3. Route guard...")
    resp = client.get("/")
    print(f"   /      without cookie → {resp.status_code} {resp.headers.get('location')}")
    resp = client.get("/login", headers={"Cookie": f"token={token}"})
    print(f"   /login with cookie    → {resp.status_code} {resp.headers.get('location')}")
    resp = client.get("/", headers={"Cookie": f"token={token}"})
    print(f"   /      with cookie    → {resp.status_code}")

    # ── Chat ──────────────────────────────────────────────────────
    print("\n4. Chatting...")
    resp = client.post(
        "/chat",
        json={"message": "Say hello in five words."},
        headers={"Authorization": f"Bearer {token}"},
    )
    if resp.status_code == 200:
        print(f"   Assistant: {resp.json()['response']}")
    else:
        print(f"   {resp.status_code}: {resp.json()['error']} (is CHATGATE_LLM_API_KEY set?)")

    print("\nDone.")


if __name__ == "__main__":
    main()

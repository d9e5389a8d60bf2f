from __future__ import annotations

import sys
from pathlib import Path

# Allow running as: python scripts/users_smoketest.py
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from fastapi.testclient import TestClient

from usersvc.main import create_app
from usersvc.service import UserService


def main() -> int:
    c = TestClient(create_app(service=UserService()))

    steps = [
        ("POST", "/users", {"username": "alice", "email": "a@x.com"}, 200),
        ("GET", "/users/alice", None, 200),
        ("PATCH", "/users/alice", {"role": "admin"}, 200),
        ("GET", "/users/alice", None, 200),
        ("DELETE", "/users/alice", None, 200),
        ("GET", "/users/alice", None, 404),
    ]
    for method, path, body, expected in steps:
        r = c.request(method, path, json=body)
        print(method, path, r.status_code, r.json())
        if r.status_code != expected:
            print(f"expected HTTP {expected}")
            return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

import os
import sys

import requests

BASE_URL = os.getenv("RENTCAR_API_BASE_URL", "http://127.0.0.1:8000/api")
EMAIL = os.getenv("RENTCAR_SANITY_EMAIL", "admin@rentcar.com")
PASSWORD = os.getenv("RENTCAR_SANITY_PASSWORD", "admin123")


def check(endpoint: str, headers: dict | None = None) -> bool:
    url = f"{BASE_URL}{endpoint}"
    try:
        res = requests.get(url, headers=headers, timeout=10)
    except requests.RequestException:
        print(f"FAIL {endpoint}: request error")
        return False
    if res.status_code != 200:
        print(f"FAIL {endpoint}: HTTP {res.status_code}")
        return False
    print(f"OK   {endpoint}")
    return True


def login() -> str | None:
    try:
        res = requests.post(f"{BASE_URL}/auth/login", json={"email": EMAIL, "password": PASSWORD}, timeout=10)
    except requests.RequestException:
        print("FAIL /auth/login: request error")
        return None
    if res.status_code != 200:
        print(f"FAIL /auth/login: HTTP {res.status_code}")
        return None
    print("OK   /auth/login")
    return res.json().get("access_token")


ok = check("/health")
token = login()
if token:
    headers = {"Authorization": f"Bearer {token}"}
    for endpoint in ("/me", "/limits", "/dashboard/summary", "/vehiculos", "/rentas"):
        ok = check(endpoint, headers) and ok
else:
    ok = False

sys.exit(0 if ok else 1)

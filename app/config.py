# /app/config.py

import os
from dotenv import load_dotenv

# --- CONFIGURATION ---
# Loads a local .env for development; real environment variables always win.
load_dotenv(override=False)


def _getenv(name: str, default=None):
    value = os.getenv(name, default)
    if value is None:
        return None
    value = value.strip()
    return value if value else None


# Upstream (third-party) API that the proxy gateway forwards to.
BLUESHIFT_API_URL = (_getenv("BLUESHIFT_API_URL", "https://index.blueshift.gg") or "").rstrip("/")
BLUESHIFT_API_NAME = _getenv("BLUESHIFT_API_NAME", "Blueshift API")
UPSTREAM_TIMEOUT_SECONDS = float(_getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

# Mount point of the proxy gateway inside this application.
PROXY_PREFIX = "/api/blueshift"

# Data acquisition (dashboard view-controller) settings.
FETCH_TIMEOUT_SECONDS = float(_getenv("FETCH_TIMEOUT_SECONDS", "15"))
# When unset, the controller talks to the gateway in-process via ASGI.
DASHBOARD_GATEWAY_URL = _getenv("DASHBOARD_GATEWAY_URL")
FETCH_ON_STARTUP = (_getenv("FETCH_ON_STARTUP", "true") or "true").lower() == "true"

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in (_getenv("CORS_ALLOW_ORIGINS", "*") or "*").split(",")
    if origin.strip()
]

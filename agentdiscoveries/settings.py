import os

APP_TITLE = "Agent Discoveries API"
APP_VERSION = "1.0.0"
API_PREFIX = "/v1/api"

CORS_ORIGINS = [
    origin.strip()
    for origin in (os.environ.get("CORS_ORIGINS") or "*").split(",")
    if origin.strip()
]

BOOTSTRAP_ADMIN_USERNAME = (os.environ.get("BOOTSTRAP_ADMIN_USERNAME") or "").strip()
BOOTSTRAP_ADMIN_PASSWORD = os.environ.get("BOOTSTRAP_ADMIN_PASSWORD")

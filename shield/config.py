"""Runtime configuration read from environment variables (``.env`` supported)."""
import os

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(BASE_DIR)
load_dotenv(os.path.join(PROJECT_DIR, ".env"))


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from None


DATABASE_URL = os.environ.get("DATABASE_URL", "")
DATA_DIR = os.environ.get("SHIELD_DATA_DIR") or os.path.join(BASE_DIR, "data")

# Per-IP throttle (ip_throttles table)
IP_THROTTLE_MAX_ATTEMPTS = _int_env("IP_THROTTLE_MAX_ATTEMPTS", 5)
IP_THROTTLE_BLOCK_MINUTES = _int_env("IP_THROTTLE_BLOCK_MINUTES", 15)

# Typed spam prevention (spam_prevention table)
SPAM_MAX_ATTEMPTS = _int_env("SPAM_MAX_ATTEMPTS", 5)
SPAM_BLOCK_MINUTES = _int_env("SPAM_BLOCK_MINUTES", 60)


def allowed_origins() -> list[str]:
    """CORS origins from ALLOWED_ORIGINS (comma-separated). Wildcard when unset."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]

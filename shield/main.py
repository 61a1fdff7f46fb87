"""Entry point. Wires throttle stores into services, guards and routes.

Persistence strategy:
  - If DATABASE_URL is set  -> PostgreSQL (ip_throttles, spam_prevention).
  - Otherwise               -> JSON files under SHIELD_DATA_DIR (development only).
"""
import logging
import os

from shield import config

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shield.api.guards import init_guards
from shield.api.routes.admin_routes import router as admin_router, init_admin_routes
from shield.api.routes.attempt_routes import router as attempt_router, init_attempt_routes
from shield.application.ip_throttle_service import IpThrottleService
from shield.application.login_protection import LoginProtectionService
from shield.application.spam_prevention_service import SpamPreventionService

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Shield - abuse throttle",
    description="Per-IP and per-identifier throttling for login and signup.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Persistence wiring
# ---------------------------------------------------------------------------

if config.DATABASE_URL:
    from shield.infrastructure.database.connection import (
        init_engine, create_tables, managed_session_factory,
    )
    from shield.infrastructure.repositories.pg_throttle_repository import (
        PgIpThrottleRepository, PgSpamPreventionRepository,
    )

    init_engine()
    create_tables()
    ip_store = PgIpThrottleRepository(managed_session_factory)
    spam_store = PgSpamPreventionRepository(managed_session_factory)
    _persistence = "postgresql"
else:
    from shield.infrastructure.repositories.throttle_repository import ThrottleRepository

    ip_store = ThrottleRepository(os.path.join(config.DATA_DIR, "ip_throttles.json"))
    spam_store = ThrottleRepository(os.path.join(config.DATA_DIR, "spam_prevention.json"))
    _persistence = "json"
    print(f"[SHIELD] DATABASE_URL not set -- JSON stores in {config.DATA_DIR}")

ip_throttle = IpThrottleService(ip_store)
spam_prevention = SpamPreventionService(spam_store)
login_protection = LoginProtectionService(ip_throttle, spam_prevention)

init_guards(ip_throttle, spam_prevention)
init_attempt_routes(login_protection)
init_admin_routes(ip_throttle, spam_prevention)

app.include_router(attempt_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    result = {
        "status": "online",
        "system": "Shield v1.0.0",
        "persistence": _persistence,
        "policies": {
            "ip_throttle": repr(ip_throttle.default_policy),
            "spam_prevention": repr(spam_prevention.default_policy),
        },
    }
    if config.DATABASE_URL:
        from shield.infrastructure.database.connection import check_health
        result["database"] = "connected" if check_health() else "disconnected"
    return result


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("shield.main:app", host="0.0.0.0", port=8000, proxy_headers=True)

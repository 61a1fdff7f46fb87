"""Admin API routes -- inspect throttled identifiers, impose or lift blocks."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from shield.domain.enums import IdentifierType
from shield.infrastructure.auth.dependencies import require_admin

router = APIRouter(prefix="/api/admin/throttle", tags=["admin"])

_ip_throttle = None
_spam_prevention = None


def init_admin_routes(ip_throttle, spam_prevention):
    global _ip_throttle, _spam_prevention
    _ip_throttle = ip_throttle
    _spam_prevention = spam_prevention


class BlockRequest(BaseModel):
    # Omitted -> blocked until an operator unblocks.
    duration_minutes: int | None = Field(None, ge=1, le=60 * 24 * 365)


# ---------------------------------------------------------------------------
# Per-IP throttle
# ---------------------------------------------------------------------------

@router.get("/ip")
def api_ip_list(blocked_only: bool = False, admin: dict = Depends(require_admin)):
    return {"records": _ip_throttle.list_statuses(blocked_only)}


@router.get("/ip/{ip_address}")
def api_ip_status(ip_address: str, admin: dict = Depends(require_admin)):
    return _ip_throttle.get_status(ip_address)


@router.post("/ip/{ip_address}/block")
def api_ip_block(ip_address: str, req: BlockRequest, admin: dict = Depends(require_admin)):
    _ip_throttle.block(ip_address, req.duration_minutes)
    return _ip_throttle.get_status(ip_address)


@router.delete("/ip/{ip_address}")
def api_ip_unblock(ip_address: str, admin: dict = Depends(require_admin)):
    _ip_throttle.unblock(ip_address)
    return _ip_throttle.get_status(ip_address)


# ---------------------------------------------------------------------------
# Typed spam prevention
# ---------------------------------------------------------------------------

@router.get("/spam")
def api_spam_list(
    identifier_type: IdentifierType | None = None,
    blocked_only: bool = False,
    admin: dict = Depends(require_admin),
):
    return {"records": _spam_prevention.list_statuses(identifier_type, blocked_only)}


@router.get("/spam/{identifier_type}/{identifier}")
def api_spam_status(identifier_type: IdentifierType, identifier: str, admin: dict = Depends(require_admin)):
    return _spam_prevention.get_status(identifier, identifier_type)


@router.post("/spam/{identifier_type}/{identifier}/block")
def api_spam_block(
    identifier_type: IdentifierType,
    identifier: str,
    req: BlockRequest,
    admin: dict = Depends(require_admin),
):
    _spam_prevention.block(identifier, identifier_type, req.duration_minutes)
    return _spam_prevention.get_status(identifier, identifier_type)


@router.delete("/spam/{identifier_type}/{identifier}")
def api_spam_unblock(identifier_type: IdentifierType, identifier: str, admin: dict = Depends(require_admin)):
    _spam_prevention.unblock(identifier, identifier_type)
    return _spam_prevention.get_status(identifier, identifier_type)

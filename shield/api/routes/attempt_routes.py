"""Auth-outcome API routes -- pre-handler gate and failure / success reporting.

The auth service calls ``/gate`` before processing a login or signup, then
reports the outcome to ``/attempts``. Both routes take a service token: the
body names the end user's IP and e-mail, so only a trusted caller may send it.
Reporting is not guarded: failures during an active block keep extending it.
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from shield.api.guards import ip_throttle_guard, reported_client_ip, spam_prevention_guard
from shield.domain.enums import ThrottledAction
from shield.infrastructure.auth.dependencies import require_service
from shield.infrastructure.http.client_ip import from_starlette, resolve_client_ip

router = APIRouter(prefix="/api/auth", tags=["throttle"])

_login_protection = None


def init_attempt_routes(login_protection):
    global _login_protection
    _login_protection = login_protection


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class GateRequest(BaseModel):
    email: str | None = Field(None, max_length=255)
    # End user's address; defaults to this request's client.
    ip_address: str | None = Field(None, max_length=64)


class AttemptReport(BaseModel):
    action: ThrottledAction
    outcome: str = Field(..., pattern="^(failure|success)$")
    email: str | None = Field(None, max_length=255)
    # End user's address; defaults to this request's client.
    ip_address: str | None = Field(None, max_length=64)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/gate",
    dependencies=[
        Depends(require_service),
        Depends(reported_client_ip),
        Depends(spam_prevention_guard),
        Depends(ip_throttle_guard),
    ],
)
def api_gate(req: GateRequest, request: Request):
    """200 when the caller may proceed; the guards answer 429 otherwise."""
    return {"allowed": True, "ip_address": resolve_client_ip(from_starlette(request))}


@router.post("/attempts", dependencies=[Depends(require_service)])
def api_report_attempt(req: AttemptReport, request: Request):
    """Record a failed attempt or clear the streak after a success."""
    ip_address = (req.ip_address or "").strip() or resolve_client_ip(from_starlette(request))

    if req.outcome == "failure":
        _login_protection.record_failure(req.action, ip_address, req.email)
    else:
        _login_protection.reset(ip_address, req.email)

    return {
        "success": True,
        "action": req.action.value,
        "outcome": req.outcome,
        "ip_address": ip_address,
    }

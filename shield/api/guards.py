"""Throttle guards -- FastAPI dependencies that answer 429 for blocked callers.

Fail-open only when the client IP cannot be determined. A store error is
not caught: it reaches the app's exception handler (HTTP 500).
"""
from fastapi import HTTPException, Request
from starlette.concurrency import run_in_threadpool

from shield.application.login_protection import normalize_email
from shield.domain.enums import IdentifierType
from shield.infrastructure.http.client_ip import from_starlette, resolve_client_ip

_ip_throttle = None
_spam_prevention = None


def init_guards(ip_throttle, spam_prevention):
    global _ip_throttle, _spam_prevention
    _ip_throttle = ip_throttle
    _spam_prevention = spam_prevention


def _too_many(detail: str) -> HTTPException:
    return HTTPException(status_code=429, detail=detail)


async def _json_object(request: Request) -> dict:
    """The JSON object body, or {} for anything else."""
    if "json" not in request.headers.get("content-type", ""):
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


async def body_email(request: Request) -> str | None:
    """``email`` from a JSON object body, normalised. None for anything else."""
    email = (await _json_object(request)).get("email")
    return normalize_email(email) if isinstance(email, str) else None


async def reported_client_ip(request: Request) -> None:
    """Key the guards on ``ip_address`` from the body when a trusted caller sends one.

    Mount after ``require_service``: the value lands in ``request.state.client_ip``,
    which outranks the peer address.
    """
    ip_address = (await _json_object(request)).get("ip_address")
    if isinstance(ip_address, str) and ip_address.strip():
        request.state.client_ip = ip_address.strip()


async def ip_throttle_guard(request: Request) -> None:
    ip_address = resolve_client_ip(from_starlette(request))
    if not ip_address:
        return
    if await run_in_threadpool(_ip_throttle.is_blocked, ip_address):
        raise _too_many("Too many failed attempts. Please try again later.")


async def spam_prevention_guard(request: Request) -> None:
    inbound = from_starlette(request, email=await body_email(request))
    ip_address = resolve_client_ip(inbound)

    if ip_address and await run_in_threadpool(
        _spam_prevention.is_blocked, ip_address, IdentifierType.IP
    ):
        raise _too_many("Too many attempts from this IP. Please try again later.")

    if inbound.email and await run_in_threadpool(
        _spam_prevention.is_blocked, inbound.email, IdentifierType.EMAIL
    ):
        raise _too_many("Too many attempts with this email. Please try again later.")

"""Client identity extraction for throttle guards."""
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from starlette.requests import Request


@dataclass(frozen=True)
class InboundRequest:
    """The request fields a throttle guard may key on. Every field is optional."""

    ip: Optional[str] = None
    connection_remote_address: Optional[str] = None
    socket_remote_address: Optional[str] = None
    forwarded_for: Union[str, Sequence[str], None] = None
    email: Optional[str] = None


def _first_forwarded(value) -> Optional[str]:
    if not value:
        return None
    if not isinstance(value, str):
        value = value[0] if len(value) else ""
    first = value.split(",")[0].strip()
    return first or None


def resolve_client_ip(inbound: InboundRequest) -> Optional[str]:
    """Pick the client address, first match wins:

    parsed client ip -> connection peer -> socket peer ->
    first X-Forwarded-For entry -> None ("cannot determine").
    """
    return (
        inbound.ip
        or inbound.connection_remote_address
        or inbound.socket_remote_address
        or _first_forwarded(inbound.forwarded_for)
        or None
    )


def from_starlette(request: Request, email: Optional[str] = None) -> InboundRequest:
    """Adapt a Starlette request.

    ``request.client`` is the ASGI peer (already proxy-resolved when uvicorn
    runs with ``--proxy-headers``). ``request.state.client_ip`` lets an
    upstream middleware override it.
    """
    peer = request.client.host if request.client else None
    forwarded = request.headers.getlist("x-forwarded-for")
    return InboundRequest(
        ip=getattr(request.state, "client_ip", None),
        connection_remote_address=peer,
        socket_remote_address=peer,
        forwarded_for=forwarded or None,
        email=email,
    )

"""
Natours Backend: Request Context
==================================

What:  Per-request mutable record shared by every guard in the pipeline.
How:   Built from the ASGI scope when the request enters the pipeline,
       mutated by guards, written back into the scope before dispatch and
       exposed to route handlers as ``request.state.context``.
When:  Created at pipeline entry; discarded together with the scope once the
       response has been sent.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from starlette.datastructures import Headers
from starlette.requests import Request

QueryValue = Union[str, List[str]]


@dataclass
class RequestContext:
    """
    Everything a guard or handler needs to know about the current request.

    Attributes:
        client_ip:         Identity key used by the rate limiter
        method / path:     Request line
        headers:           Raw (name, value) header pairs, lower-cased names
        query_pairs:       Query string as received, in order (repeats kept)
        query:             Query after the pollution guard (key → str | list)
        content_type:      Media type of the body without parameters
        raw_body:          Body bytes as received (bounded by the size cap)
        body:              Parsed JSON value / form dict, or None
        body_parsed:       True when ``body`` was decoded from ``raw_body``
        cookies:           Parsed Cookie header
        request_time:      ISO-8601 UTC timestamp stamped at the end of the chain
        response_headers:  Headers guards want attached to the response
        response_hooks:    Callbacks receiving the final status code
        receive:           ASGI receive channel (the body parser drains it)
    """

    client_ip: str
    method: str
    path: str
    headers: List[Tuple[bytes, bytes]] = field(default_factory=list)
    query_pairs: List[Tuple[str, str]] = field(default_factory=list)
    query: Dict[str, QueryValue] = field(default_factory=dict)
    content_type: str = ""
    raw_body: bytes = b""
    body: Any = None
    body_parsed: bool = False
    cookies: Dict[str, str] = field(default_factory=dict)
    request_time: Optional[str] = None
    response_headers: Dict[str, str] = field(default_factory=dict)
    response_hooks: List[Callable[[int], None]] = field(default_factory=list)
    receive: Optional[Callable[[], Awaitable[dict]]] = field(default=None, repr=False)

    def header(self, name: str, default: str = "") -> str:
        return Headers(raw=self.headers).get(name, default)


def client_identity(scope: dict, trust_proxy: bool = False) -> str:
    """
    Resolve the client address used as the rate-limit key.

    With ``trust_proxy`` the first X-Forwarded-For hop wins; otherwise the
    socket peer address. Falls back to "unknown" (ASGI test transports may
    not provide a client).
    """
    if trust_proxy:
        forwarded = Headers(scope=scope).get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    client = scope.get("client")
    if client:
        return client[0]
    return "unknown"


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the context the pipeline attached."""
    return request.state.context

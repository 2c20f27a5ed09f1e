"""
Natours Backend: Security Header Guard
========================================

Adds the cross-origin resource policy header to every response, error
responses included. Only this policy is set.
"""

from natours.middleware.context import RequestContext

SECURITY_HEADERS = {
    "Cross-Origin-Resource-Policy": "cross-origin",
}


async def security_headers_guard(ctx: RequestContext) -> None:
    ctx.response_headers.update(SECURITY_HEADERS)

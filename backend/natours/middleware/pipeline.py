"""
Natours Backend: Guard Pipeline Orchestrator
==============================================

What:  Runs the fixed, ordered list of request guards in front of the routers
       and routes every failure to the error normalization layer.
How:   Pure ASGI middleware. A guard is ``async def guard(ctx) -> None``: it
       mutates the RequestContext to continue, or raises to short-circuit.
       One loop runs the guards; the first exception stops the loop and
       becomes the response. Sanitized input is then written back into the
       ASGI scope and receive channel, so handlers only ever see it.
Who:   Outermost application middleware (inside CORS), added by create_app().

Guard order (build_guards):
    1. security headers
    2. request logging            (development only)
    3. rate limiting
    4. body parsing, size capped
    5. cookie parsing
    6. injection sanitization
    7. markup sanitization
    8. parameter pollution guard
    9. request timestamp
    → compression (GZipMiddleware, wraps the response path)
    → routers → not-found sentinel
    → error normalization (any exception above, from any stage)

Exactly one response leaves the pipeline per request: an error raised after
the inner application started its response is re-raised, never answered twice.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Sequence
from urllib.parse import urlencode

from starlette.datastructures import MutableHeaders
from starlette.requests import ClientDisconnect, Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from natours.middleware.body_parser import JSON_TYPE, BodyParserGuard, cookie_guard
from natours.middleware.context import RequestContext, client_identity
from natours.middleware.hpp import ParameterPollutionGuard, flatten_parameters
from natours.middleware.logging import RequestLoggingGuard
from natours.middleware.rate_limit import FixedWindowRateLimiter, RateLimitGuard
from natours.middleware.sanitize import injection_guard, markup_guard
from natours.middleware.security import security_headers_guard

logger = logging.getLogger(__name__)

Guard = Callable[[RequestContext], Awaitable[None]]


async def request_time_guard(ctx: RequestContext) -> None:
    now = datetime.now(timezone.utc)
    ctx.request_time = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_guards(settings, limiter: FixedWindowRateLimiter) -> List[Guard]:
    """Assemble the guard chain in its fixed order."""
    guards: List[Guard] = [security_headers_guard]
    if settings.is_development:
        guards.append(RequestLoggingGuard())
    guards.extend(
        [
            RateLimitGuard(limiter),
            BodyParserGuard(settings.body_limit_bytes),
            cookie_guard,
            injection_guard,
            markup_guard,
            ParameterPollutionGuard(settings.hpp_whitelist),
            request_time_guard,
        ]
    )
    return guards


def encode_body(ctx: RequestContext) -> bytes:
    """Serialize the sanitized body back to the wire format it arrived in."""
    if ctx.content_type == JSON_TYPE:
        return json.dumps(ctx.body).encode("utf-8")
    return urlencode(flatten_parameters(ctx.body)).encode("latin-1")


class GuardPipelineMiddleware:
    """
    ASGI middleware executing ``guards`` then the wrapped application.

    Args:
        app:            Inner ASGI application (compression → routers)
        guards:         Ordered guard callables
        error_handler:  Async ``(request, exc) -> Response`` (ErrorNormalizer.handle)
        trust_proxy:    Use X-Forwarded-For for the client identity
    """

    def __init__(
        self,
        app: ASGIApp,
        guards: Sequence[Guard],
        error_handler: Callable,
        trust_proxy: bool = False,
    ):
        self.app = app
        self.guards = list(guards)
        self.error_handler = error_handler
        self.trust_proxy = trust_proxy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = self.build_context(scope, receive)
        scope.setdefault("state", {})["context"] = ctx
        response_started = False

        async def send_with_headers(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                for name, value in ctx.response_headers.items():
                    headers[name] = value
                for hook in ctx.response_hooks:
                    hook(message["status"])
            await send(message)

        # ── Guard chain ───────────────────────────────────────────────────
        try:
            for guard in self.guards:
                await guard(ctx)
        except ClientDisconnect:
            logger.debug("Client %s disconnected while sending the body", ctx.client_ip)
            return
        except Exception as exc:
            await self.send_error(scope, receive, send_with_headers, exc)
            return

        # ── Dispatch ──────────────────────────────────────────────────────
        inner_scope = self.rewrite_scope(scope, ctx)
        inner_receive = self.replay_body(ctx, receive)
        try:
            await self.app(inner_scope, inner_receive, send_with_headers)
        except Exception as exc:
            if response_started:
                raise
            await self.send_error(inner_scope, receive, send_with_headers, exc)

    def build_context(self, scope: Scope, receive: Receive) -> RequestContext:
        ctx = RequestContext(
            client_ip=client_identity(scope, self.trust_proxy),
            method=scope["method"],
            path=scope["path"],
            headers=list(scope.get("headers", [])),
            receive=receive,
        )
        ctx.query_pairs = Request(scope).query_params.multi_items()
        ctx.content_type = ctx.header("content-type").split(";")[0].strip().lower()
        return ctx

    def rewrite_scope(self, scope: Scope, ctx: RequestContext) -> Scope:
        """Copy of ``scope`` carrying the sanitized query string and headers."""
        headers = list(ctx.headers)
        if ctx.body_parsed:
            body = encode_body(ctx)
            headers = [
                (name, value)
                for name, value in headers
                if name not in (b"content-length", b"transfer-encoding")
            ]
            headers.append((b"content-length", str(len(body)).encode("latin-1")))
            ctx.raw_body = body
        return {
            **scope,
            "query_string": urlencode(ctx.query_pairs).encode("latin-1"),
            "headers": headers,
        }

    def replay_body(self, ctx: RequestContext, receive: Receive) -> Receive:
        """Receive channel that yields the sanitized body once, then defers."""
        if not ctx.body_parsed:
            return receive

        body_sent = False

        async def replay() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": ctx.raw_body, "more_body": False}
            return await receive()

        return replay

    async def send_error(
        self, scope: Scope, receive: Receive, send: Send, exc: Exception
    ) -> None:
        response = await self.error_handler(Request(scope, receive), exc)
        await response(scope, receive, send)

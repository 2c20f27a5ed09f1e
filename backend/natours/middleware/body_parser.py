"""
Natours Backend: Size-Bounded Body and Cookie Parsers
=======================================================

What:  Reads JSON and form-encoded bodies into the request context, refusing
       anything over the byte ceiling (10kb by default). Also parses the
       Cookie header.
How:   Drains the ASGI receive channel chunk by chunk and stops as soon as
       the running total passes the limit, so an oversized body is never
       fully buffered. A declared Content-Length above the limit is rejected
       before reading anything.
Who:   Fourth and fifth guards, after rate limiting and before sanitization.

Other content types (multipart uploads, binary) are left in the receive
channel untouched for the route handler to consume.
"""

import json
import logging
from typing import Any, Dict, List, Union

from starlette.datastructures import QueryParams
from starlette.requests import ClientDisconnect, cookie_parser

from natours.exceptions import PayloadTooLargeError, ValidationError
from natours.middleware.context import RequestContext

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"


def parse_form(raw: bytes) -> Dict[str, Union[str, List[str]]]:
    """Decode a UTF-8 urlencoded body; repeated keys become lists."""
    form: Dict[str, Union[str, List[str]]] = {}
    for key, value in QueryParams(raw.decode("utf-8", errors="replace")).multi_items():
        if key in form:
            existing = form[key]
            form[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            form[key] = value
    return form


def parse_json(raw: bytes) -> Any:
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(
            message="Invalid JSON in request body.",
            context={"error": str(exc)},
        ) from exc


class BodyParserGuard:
    """
    Parses structured request bodies up to ``limit`` bytes.

    Raises:
        PayloadTooLargeError: declared or streamed size exceeds the limit (413)
        ValidationError:      body is not valid JSON (400)
    """

    PARSED_TYPES = {JSON_TYPE, FORM_TYPE}

    def __init__(self, limit: int):
        self.limit = limit

    async def __call__(self, ctx: RequestContext) -> None:
        if ctx.content_type not in self.PARSED_TYPES or ctx.receive is None:
            return

        declared = ctx.header("content-length")
        if declared.isdigit() and int(declared) > self.limit:
            raise PayloadTooLargeError(self.limit, context={"declared": int(declared)})

        chunks: List[bytes] = []
        size = 0
        more_body = True
        while more_body:
            message = await ctx.receive()
            if message["type"] == "http.disconnect":
                raise ClientDisconnect()
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                raise PayloadTooLargeError(self.limit, context={"received": size})
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        ctx.raw_body = b"".join(chunks)
        if ctx.content_type == JSON_TYPE:
            ctx.body = parse_json(ctx.raw_body)
        else:
            ctx.body = parse_form(ctx.raw_body)
        ctx.body_parsed = True


async def cookie_guard(ctx: RequestContext) -> None:
    cookie_header = ctx.header("cookie")
    ctx.cookies = cookie_parser(cookie_header) if cookie_header else {}

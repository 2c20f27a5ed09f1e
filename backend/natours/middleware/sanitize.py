"""
Natours Backend: Injection and Markup Sanitization Guards
===========================================================

What:  Remove input that downstream systems could reinterpret as code.
How:   Two recursive walkers over parsed input:
         sanitize_injection: drops mapping keys that look like document-query
                             operators ("$gt") or dotted paths ("a.b")
         sanitize_markup:    strips every HTML tag (script tags, event-handler
                             attributes, ...) from string values with bleach;
                             only a stray "<" is escaped
Who:   Sixth and seventh guards in the pipeline, after body/cookie parsing.

Guarantees:
    - No field is ever added; keys are only dropped.
    - Non-string, non-container values pass through unchanged.
    - Running either walker on its own output changes nothing.
"""

import logging
from typing import Any, List, Tuple

import bleach

from natours.middleware.context import RequestContext

logger = logging.getLogger(__name__)

OPERATOR_PREFIX = "$"
PATH_SEPARATOR = "."


def is_unsafe_key(key: Any) -> bool:
    """
    True for keys a document store would treat as an operator or a nested path.

    Bracketed query keys count segment by segment: ``price[$gt]`` is unsafe.
    """
    if not isinstance(key, str):
        return False
    if PATH_SEPARATOR in key:
        return True
    segments = key.replace("]", "").split("[")
    return any(segment.startswith(OPERATOR_PREFIX) for segment in segments)


def sanitize_injection(value: Any) -> Any:
    """
    Recursively drop operator-like keys from dicts (also inside lists).

    >>> sanitize_injection({"email": {"$gt": ""}, "name": "x"})
    {'email': {}, 'name': 'x'}
    """
    if isinstance(value, dict):
        return {
            key: sanitize_injection(item)
            for key, item in value.items()
            if not is_unsafe_key(key)
        }
    if isinstance(value, list):
        return [sanitize_injection(item) for item in value]
    return value


def clean_markup(text: str) -> str:
    """
    Strip every tag from ``text`` and escape any remaining ``<``.

    Ampersands and ``>`` survive as typed: input ampersands are turned into
    ``&amp;`` before bleach runs so bleach keeps them as entities, then both
    are restored. A stray ``<`` stays escaped as ``&lt;``.

    >>> clean_markup("<b>Sea & Sky</b> > 3 < 4")
    'Sea & Sky > 3 &lt; 4'
    """
    protected = text.replace("&", "&amp;")
    # strip=True removes disallowed tags instead of escaping them
    cleaned = bleach.clean(protected, tags=[], attributes={}, strip=True, strip_comments=True)
    return cleaned.replace("&gt;", ">").replace("&amp;", "&")


def sanitize_markup(value: Any) -> Any:
    """Recursively strip markup from every string value; keys are left as-is."""
    if isinstance(value, str):
        return clean_markup(value)
    if isinstance(value, dict):
        return {key: sanitize_markup(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_markup(item) for item in value]
    return value


def _filter_pairs(pairs: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
    return [(key, value) for key, value in pairs if not is_unsafe_key(key)]


async def injection_guard(ctx: RequestContext) -> None:
    """Drop operator-like keys from body, query and header names."""
    before = len(ctx.query_pairs)
    ctx.query_pairs = _filter_pairs(ctx.query_pairs)
    if ctx.body_parsed:
        ctx.body = sanitize_injection(ctx.body)
    ctx.headers = [
        (name, value)
        for name, value in ctx.headers
        if not is_unsafe_key(name.decode("latin-1"))
    ]
    if len(ctx.query_pairs) != before:
        logger.warning(
            "Dropped %d operator-like query keys from %s",
            before - len(ctx.query_pairs),
            ctx.client_ip,
        )


async def markup_guard(ctx: RequestContext) -> None:
    """Strip markup from string values in body and query."""
    if ctx.body_parsed:
        ctx.body = sanitize_markup(ctx.body)
    ctx.query_pairs = [(key, clean_markup(value)) for key, value in ctx.query_pairs]

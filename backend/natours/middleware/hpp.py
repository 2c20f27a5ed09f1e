"""
Natours Backend: HTTP Parameter Pollution Guard
=================================================

What:  Collapses repeated query keys to a single value.
How:   Non-whitelisted keys keep the LAST value supplied; whitelisted keys
       (tour filter fields) keep every value, in order.
Who:   Eighth guard in the pipeline, after sanitization.

Example:
    ?difficulty=easy&difficulty=hard&name=a&name=b
    → {"difficulty": ["easy", "hard"], "name": "b"}
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from natours.middleware.context import QueryValue, RequestContext


def collapse_parameters(
    pairs: Iterable[Tuple[str, str]],
    whitelist: Sequence[str] = (),
) -> Dict[str, QueryValue]:
    """
    Build the query mapping handlers see from raw (key, value) pairs.

    A whitelisted key that appears once stays a plain string; repeated it
    becomes a list. Any other key always ends up as its last value.
    """
    allowed = set(whitelist)
    grouped: Dict[str, List[str]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)

    collapsed: Dict[str, QueryValue] = {}
    for key, values in grouped.items():
        if key in allowed and len(values) > 1:
            collapsed[key] = values
        else:
            collapsed[key] = values[-1]
    return collapsed


def flatten_parameters(query: Dict[str, QueryValue]) -> List[Tuple[str, str]]:
    """Inverse of collapse_parameters, used to rewrite the query string."""
    pairs: List[Tuple[str, str]] = []
    for key, value in query.items():
        if isinstance(value, list):
            pairs.extend((key, item) for item in value)
        else:
            pairs.append((key, value))
    return pairs


class ParameterPollutionGuard:
    def __init__(self, whitelist: Sequence[str]):
        self.whitelist = tuple(whitelist)

    async def __call__(self, ctx: RequestContext) -> None:
        ctx.query = collapse_parameters(ctx.query_pairs, self.whitelist)
        ctx.query_pairs = flatten_parameters(ctx.query)

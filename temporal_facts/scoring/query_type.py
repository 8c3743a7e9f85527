# temporal_facts/scoring/query_type.py

from __future__ import annotations

import re

from ..models import QueryType

_PATTERNS: dict[QueryType, list[re.Pattern[str]]] = {
    QueryType.STATEFUL: [
        re.compile(p, re.IGNORECASE)
        for p in (
            r"\bcurrently?\b",
            r"\bright now\b",
            r"\bwhat('?s| is)? (the )?(current|latest)\b",
            r"\bworking on\b",
            r"\bdoing\b",
            r"\berror\b",
            r"\bfailed?\b",
            r"\bbug\b",
            r"\bissue\b",
            r"\bstatus\b",
            r"\bblocked\b",
            r"\btrying to\b",
            r"\bproblem\b",
        )
    ],
    QueryType.PREFERENCE: [
        re.compile(p, re.IGNORECASE)
        for p in (
            r"\bprefer(s|red|ring|ences?)?\b",
            r"\bfavou?rites?\b",
            r"\blikes?\b",
            r"\bhates?\b",
            r"\bdislikes?\b",
            r"\bwants?\b",
            r"\bloves?\b",
            r"\buses?\b",
            r"\bchoose\b",
            r"\bbetter\b",
            r"\bworse\b",
            r"\bshould (I|we)\b",
            r"\brecommend\b",
        )
    ],
    QueryType.IDENTITY: [
        re.compile(p, re.IGNORECASE)
        for p in (
            r"\bwho am I\b",
            r"\bwhat (do|did) I (do|work)\b",
            r"\bmy (name|job|role|team)\b",
            r"\bI('?m| am)\b",
            r"\babout (me|myself)\b",
            r"\bwhere (do|did) I\b",
            r"\bremember me\b",
            r"\bmy (background|history)\b",
        )
    ],
}

# first match wins
_PRIORITY = (QueryType.STATEFUL, QueryType.PREFERENCE, QueryType.IDENTITY)


def detect_query_type(query: str) -> QueryType:
    for query_type in _PRIORITY:
        if any(p.search(query) for p in _PATTERNS[query_type]):
            return query_type
    return QueryType.GENERAL


def resolve_query_type(query_or_type: str | QueryType) -> QueryType:
    """Accept either an already-classified QueryType or raw query text."""
    if isinstance(query_or_type, QueryType):
        return query_or_type
    try:
        return QueryType(query_or_type)
    except ValueError:
        return detect_query_type(query_or_type)

"""Typed JSON tree and dot-path resolution over loosely-typed working memory."""

import json
from typing import Final

type JSONValue = (
    str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
)


class _Missing:
    """Sentinel for a path that does not resolve. Distinct from JSON null."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()

type Resolved = JSONValue | _Missing


def resolve_path(tree: JSONValue | _Missing, path: str) -> Resolved:
    """Resolve ``a.b.c`` by sequential key lookup.

    List segments must be decimal indices. Any missing segment yields MISSING;
    an empty path yields MISSING.
    """
    segments = [s.strip() for s in path.strip().split(".") if s.strip()]
    if not segments:
        return MISSING
    current: Resolved = tree
    for segment in segments:
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or int(segment) >= len(current):
                return MISSING
            current = current[int(segment)]
        else:
            return MISSING
    return current


def render(value: Resolved) -> str:
    """Compact JSON rendering for issue messages."""
    if value is MISSING:
        return "<missing>"
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)

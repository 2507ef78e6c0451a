"""Per-route guard configuration for the URL-pattern variant.

Patterns use shell-glob syntax over path segments:

- ``?`` matches one character other than ``/``
- ``*`` matches within a single segment (``/api/orders/*`` matches
  ``/api/orders/123`` but not ``/api/orders/123/cancel``)
- ``**`` as a whole segment matches zero or more segments (``/api/**``
  matches ``/api``, ``/api/orders`` and ``/api/orders/123/cancel``)

The route table is ordered. When several patterns match a path, the first
one in declaration order wins.
"""

import re
from collections.abc import Iterable
from functools import lru_cache

from debounce_guard.config import GuardConfig, RouteRule

MULTI_SEGMENT = "**"


@lru_cache(maxsize=512)
def _segment_regex(segment: str) -> re.Pattern[str]:
    """Compile one pattern segment to an anchored regex."""
    parts: list[str] = []
    for char in segment:
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts))


def _match_segments(pattern: list[str], path: list[str]) -> bool:
    if not pattern:
        return not path

    head = pattern[0]
    if head == MULTI_SEGMENT:
        # Collapse consecutive ** segments
        rest = pattern[1:]
        while rest and rest[0] == MULTI_SEGMENT:
            rest = rest[1:]
        return any(_match_segments(rest, path[i:]) for i in range(len(path) + 1))

    if not path:
        return False

    return _segment_regex(head).fullmatch(path[0]) is not None and _match_segments(
        pattern[1:], path[1:]
    )


def match_path(pattern: str, path: str) -> bool:
    """Return True if ``path`` matches the glob ``pattern``.

    Examples:
        >>> match_path("/api/orders/*", "/api/orders/123")
        True
        >>> match_path("/api/orders/*", "/api/orders/123/cancel")
        False
        >>> match_path("/api/**", "/api/orders/123/cancel")
        True
    """
    return _match_segments(pattern.split("/"), path.split("/"))


class RouteConfigResolver:
    """Select per-route guard settings for a request path.

    Attributes:
        rules: Route rules in resolution order.
    """

    def __init__(self, rules: Iterable[RouteRule]) -> None:
        self.rules: tuple[RouteRule, ...] = tuple(rules)

    def match(self, path: str) -> RouteRule | None:
        """Return the first rule whose pattern matches ``path``, enabled or not."""
        for rule in self.rules:
            if match_path(rule.pattern, path):
                return rule
        return None

    def resolve(self, path: str) -> GuardConfig | None:
        """Return the guard config for ``path``.

        Returns:
            The matching rule's GuardConfig, or None when no rule matches
            or the matching rule is disabled. None means unguarded.
        """
        rule = self.match(path)
        if rule is None or not rule.enabled:
            return None
        return rule.to_guard_config()

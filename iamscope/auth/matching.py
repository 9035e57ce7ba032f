"""
Glob-style wildcard matching for action and resource patterns.

``*`` matches any run of characters, ``?`` exactly one. Every other
character is literal. Matching is anchored and case-insensitive.
"""

import re
from functools import lru_cache


def wildcard_to_regex(pattern: str) -> str:
    """Translate a wildcard pattern into an anchored regular expression."""
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(wildcard_to_regex(pattern), re.IGNORECASE | re.DOTALL)


def match_pattern(pattern: str, target: str) -> bool:
    """
    Check whether ``target`` matches the wildcard ``pattern``.

    Examples:
        match_pattern("chat:*", "chat:Delete")      # True
        match_pattern("chat:Get?", "chat:Gets")     # True
        match_pattern("CHAT:LIST", "chat:list")     # True
        match_pattern("chat:List", "chat:ListAll")  # False
    """
    if pattern == "*":
        return True
    if not isinstance(pattern, str) or not isinstance(target, str):
        return False
    return _compile(pattern).fullmatch(target) is not None


def match_any(patterns: "list[str] | tuple[str, ...]", target: str) -> bool:
    """True if any pattern matches target."""
    return any(match_pattern(pattern, target) for pattern in patterns)

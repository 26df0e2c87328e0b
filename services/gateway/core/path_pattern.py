"""
Path pattern matching for routing rules.

Patterns are case-sensitive and must match the whole path:
    *  matches zero or more characters, including "/"
    ?  matches exactly one character

Example: "/api/*" matches "/api/", "/api/users" and "/api/users/1".
"""

import re
from functools import lru_cache
from typing import Iterable, Pattern


@lru_cache(maxsize=1024)
def compile_path_pattern(path_pattern: str) -> Pattern[str]:
    """
    Convert a path pattern to a compiled regular expression.

    Example: "/img/*.png" → "^/img/.*\\.png$"
    """
    parts = []
    for char in path_pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


def path_matches(path_pattern: str, path: str) -> bool:
    return compile_path_pattern(path_pattern).match(path) is not None


def any_path_matches(path_patterns: Iterable[str], path: str) -> bool:
    """True when at least one pattern of the set accepts the path."""
    return any(path_matches(pattern, path) for pattern in path_patterns)

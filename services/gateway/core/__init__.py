"""
Core logic package.

Provides shared logic such as path matching, event building and response parsing.
"""

from .event_builder import ALBEventBuilder
from .path_pattern import any_path_matches, compile_path_pattern, path_matches
from .utils import parse_function_response, strip_hop_by_hop

__all__ = [
    "ALBEventBuilder",
    "any_path_matches",
    "compile_path_pattern",
    "path_matches",
    "parse_function_response",
    "strip_hop_by_hop",
]

"""
Patterns package: the reference-extraction pattern catalogue and the default registry.

The default registry is populated once at import and treated as read-only afterwards.
Build a private PatternRegistry(default_patterns()) when isolation is needed.
"""

from typing import List

from .registry import (
    CONFIDENCE_LEVELS,
    PatternExample,
    PatternRegistry,
    PatternValidationError,
    RefPattern,
    validate_pattern,
)
from . import confluence, figma, github, google, jira, slack


def default_patterns() -> List[RefPattern]:
    """Every built-in pattern, superseded versions included."""
    return [*jira.PATTERNS, *github.PATTERNS, *confluence.PATTERNS, *slack.PATTERNS, *figma.PATTERNS, *google.PATTERNS]


pattern_registry = PatternRegistry(default_patterns())

__all__ = [
    "CONFIDENCE_LEVELS",
    "PatternExample",
    "PatternRegistry",
    "PatternValidationError",
    "RefPattern",
    "default_patterns",
    "pattern_registry",
    "validate_pattern",
]

"""
Self-validating registry of reference-extraction patterns.

register() is the only way a pattern enters a registry. Every pattern carries examples that
must match (with the ref they must produce) and examples that must not match; both are
re-checked at registration time so a broken regex fails at import, not in production.
"""
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Pattern

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = {'high': 3, 'medium': 2, 'low': 1}


class PatternValidationError(ValueError):
    """Raised when a pattern fails its own examples or is otherwise malformed."""

    def __init__(self, pattern_id: str, message: str):
        super().__init__(f"Pattern '{pattern_id}' failed validation: {message}")
        self.pattern_id = pattern_id
        self.reason = message


class PatternExample:
    """
    Input text that must match, and the normalized ref it must produce.
    """
    def __init__(self, input: str, expected_ref: str, source: Optional[str] = None):
        self.input = input
        self.expected_ref = expected_ref
        self.source = source  # where text like this is seen in practice, informational


class RefPattern:
    """
    A regex plus the metadata needed to turn its matches into refs.

    find_all must stay True: a pattern is always applied with finditer over the whole text.
    """
    def __init__(
        self,
        id: str,
        regex,
        tool_type: str,
        normalize: Callable[[re.Match], str],
        confidence: str = 'high',
        examples: Optional[List[PatternExample]] = None,
        negative_examples: Optional[List[str]] = None,
        name: str = '',
        description: str = '',
        version: int = 1,
        supersedes: Optional[str] = None,
        find_all: bool = True,
    ):
        self.id = id
        self.regex: Pattern = re.compile(regex) if isinstance(regex, str) else regex
        self.tool_type = tool_type
        self.normalize = normalize
        self.confidence = confidence
        self.examples = list(examples or [])
        self.negative_examples = list(negative_examples or [])
        self.name = name or id
        self.description = description
        self.version = version
        self.supersedes = supersedes
        self.find_all = find_all

    def iter_refs(self, text: str) -> Iterable[str]:
        for match in self.regex.finditer(text):
            yield self.normalize(match)

    def __repr__(self):
        return f"RefPattern(id={self.id!r}, tool_type={self.tool_type!r}, confidence={self.confidence!r})"


def validate_pattern(pattern: RefPattern) -> None:
    """Re-run a pattern against its own examples; raise PatternValidationError on the first failure."""
    if not pattern.id:
        raise PatternValidationError('<unnamed>', 'pattern id is required')
    if not pattern.find_all:
        raise PatternValidationError(pattern.id, 'regex must run in find-all mode (find_all=True), not first-match-only')
    if pattern.confidence not in CONFIDENCE_LEVELS:
        raise PatternValidationError(pattern.id, f"unknown confidence tier '{pattern.confidence}'")
    if not pattern.examples:
        raise PatternValidationError(pattern.id, 'at least one positive example is required')

    for example in pattern.examples:
        try:
            refs = set(pattern.iter_refs(example.input))
        except Exception as exc:
            raise PatternValidationError(pattern.id, f"normalizer raised on example '{example.input}': {exc}") from exc
        if example.expected_ref not in refs:
            found = ', '.join(sorted(refs)) or 'nothing'
            raise PatternValidationError(
                pattern.id,
                f"example '{example.input}' should produce '{example.expected_ref}' but produced {found}",
            )

    for negative in pattern.negative_examples:
        hit = pattern.regex.search(negative)
        if hit is not None:
            raise PatternValidationError(pattern.id, f"negative example '{negative}' matched '{hit.group(0)}'")


class PatternRegistry:
    """
    Holds RefPatterns keyed by id. Create a private instance for isolation; the
    process-wide default lives in patterns.pattern_registry.
    """

    def __init__(self, patterns: Optional[Iterable[RefPattern]] = None):
        self._patterns: Dict[str, RefPattern] = {}
        for p in patterns or []:
            self.register(p)

    def register(self, pattern: RefPattern) -> RefPattern:
        if pattern.id in self._patterns:
            raise PatternValidationError(pattern.id, 'a pattern with this id is already registered')
        validate_pattern(pattern)
        self._patterns[pattern.id] = pattern
        logger.debug("registered pattern %s (%s, %s)", pattern.id, pattern.tool_type, pattern.confidence)
        return pattern

    def get_pattern(self, pattern_id: str) -> Optional[RefPattern]:
        return self._patterns.get(pattern_id)

    def get_all_patterns(self) -> List[RefPattern]:
        return list(self._patterns.values())

    def get_active_patterns(self) -> List[RefPattern]:
        """All patterns except those superseded by another registered pattern."""
        superseded = {p.supersedes for p in self._patterns.values() if p.supersedes}
        return [p for p in self._patterns.values() if p.id not in superseded]

    def get_validation_errors(self) -> List[PatternValidationError]:
        """Re-validate every registered pattern; returns the failures instead of raising."""
        errors = []
        for p in self._patterns.values():
            try:
                validate_pattern(p)
            except PatternValidationError as exc:
                errors.append(exc)
        return errors

    def __len__(self):
        return len(self._patterns)

    def __contains__(self, pattern_id):
        return pattern_id in self._patterns

"""
Reference extraction: find cross-tool refs (ticket keys, PR coordinates, page/doc ids) in activity text.

All active patterns of a PatternRegistry run over the newline-joined text fragments of an
activity (title, description, serialized raw data, optionally the source URL).
"""
import json
import logging
import re
import time
from typing import Any, Dict, Iterable, List, Optional

from correlate.models import (
    ErrorCodes,
    PipelineFailure,
    ProcessorDiagnostics,
    ProcessorError,
    ProcessorResult,
    ProcessorWarning,
    Result,
    WarningCodes,
)
from patterns import CONFIDENCE_LEVELS, PatternRegistry, RefPattern, pattern_registry

logger = logging.getLogger(__name__)

CONTEXT_RADIUS = 40

_LOWER_TICKET_RE = re.compile(r'\b[a-z][a-z0-9]{1,9}-\d+\b', re.IGNORECASE)
_BARE_NUMBER_RE = re.compile(r'#?\b\d{1,5}\b')


class PatternMatch:
    """
    One regex hit with provenance.
    """
    def __init__(self, ref: str, pattern_id: str, confidence: str, start: int, end: int, context: str, raw_match: str):
        self.ref = ref
        self.pattern_id = pattern_id
        self.confidence = confidence
        self.start = start
        self.end = end
        self.context = context  # surrounding text, newlines flattened
        self.raw_match = raw_match


class PatternAnalysis:
    def __init__(self, pattern_id: str, match_count: int, no_match_reason: Optional[str] = None, near_misses: Optional[List[str]] = None):
        self.pattern_id = pattern_id
        self.match_count = match_count
        self.no_match_reason = no_match_reason
        self.near_misses = near_misses


class RefExtractionOutput:
    def __init__(self, refs: List[str], matches: List[PatternMatch], pattern_analysis: List[PatternAnalysis]):
        self.refs = refs  # deduplicated, first-seen order
        self.matches = matches
        self.pattern_analysis = pattern_analysis

    def match_counts(self) -> Dict[str, int]:
        return {a.pattern_id: a.match_count for a in self.pattern_analysis}


def _extract_context(text: str, index: int, radius: int = CONTEXT_RADIUS) -> str:
    start = max(0, index - radius)
    end = min(len(text), index + radius)
    context = text[start:end]
    if start > 0:
        context = '...' + context
    if end < len(text):
        context = context + '...'
    return context.replace('\n', ' ')


def _find_near_misses(text: str, pattern: RefPattern) -> List[str]:
    """Developer hints for a pattern that matched nothing. Never turned into refs."""
    near: List[str] = []
    if pattern.tool_type == 'jira':
        lower = [m.group(0) for m in _LOWER_TICKET_RE.finditer(text)]
        near.extend([m for m in lower if m != m.upper()][:3])
    elif pattern.tool_type == 'github':
        numbers = [m.group(0) for m in _BARE_NUMBER_RE.finditer(text)]
        if 0 < len(numbers) < 10:
            near.append(f"Possible PR numbers without owner/repo: {', '.join(numbers[:3])}")
    return near


def serialize_raw_data(raw_data: Any) -> Optional[str]:
    """Serialize a raw payload to JSON text so patterns can see nested fields."""
    if not raw_data:
        return None
    return json.dumps(raw_data, default=str, ensure_ascii=False)


def activity_fragments(activity: Any) -> List[Optional[str]]:
    """Text fragments of an activity-like object (attributes or dict keys)."""
    def _get(name, alt):
        if isinstance(activity, dict):
            return activity.get(name, activity.get(alt))
        return getattr(activity, name, None)

    return [_get('title', 'title'), _get('description', 'description'), serialize_raw_data(_get('raw_data', 'rawData'))]


class RefExtractor:
    """
    Pipeline processor: text fragments -> refs + matches + per-pattern analysis.
    """
    name = 'RefExtractor'
    version = '2.0.0'

    def __init__(self, registry: Optional[PatternRegistry] = None):
        self.registry = registry if registry is not None else pattern_registry

    def validate(self) -> None:
        errors = self.registry.get_validation_errors()
        if errors:
            details = '\n'.join(f"  - [{e.pattern_id}] {e.reason}" for e in errors)
            raise ValueError(f"RefExtractor validation failed:\n{details}")
        if not self.registry.get_active_patterns():
            raise ValueError('RefExtractor has no registered patterns')

    def select_patterns(self, pattern_ids: Optional[Iterable[str]] = None, tool_types: Optional[Iterable[str]] = None, min_confidence: Optional[str] = None) -> List[RefPattern]:
        patterns = self.registry.get_active_patterns()
        if pattern_ids is not None:
            allowed = set(pattern_ids)
            patterns = [p for p in patterns if p.id in allowed]
        if tool_types is not None:
            allowed_tools = set(tool_types)
            patterns = [p for p in patterns if p.tool_type in allowed_tools]
        if min_confidence:
            floor = CONFIDENCE_LEVELS[min_confidence]
            patterns = [p for p in patterns if CONFIDENCE_LEVELS[p.confidence] >= floor]
        return patterns

    def process(
        self,
        texts: Iterable[Optional[str]],
        source_url: Optional[str] = None,
        include_source_url: bool = False,
        pattern_ids: Optional[Iterable[str]] = None,
        tool_types: Optional[Iterable[str]] = None,
        min_confidence: Optional[str] = None,
        debug: bool = False,
    ) -> ProcessorResult:
        started = time.perf_counter()
        fragments = list(texts or [])
        if include_source_url and source_url:
            fragments.append(source_url)
        combined = '\n'.join(t for t in fragments if t)

        if not combined:
            return self._empty_result(started, debug)

        patterns = self.select_patterns(pattern_ids, tool_types, min_confidence)
        if not patterns:
            warning = ProcessorWarning(
                WarningCodes.NO_PATTERNS,
                'No patterns match the specified filters',
                {'pattern_ids': list(pattern_ids or []), 'tool_types': list(tool_types or []), 'min_confidence': min_confidence},
            )
            return self._empty_result(started, debug, warnings=[warning])

        matches: List[PatternMatch] = []
        analysis: List[PatternAnalysis] = []
        errors: List[ProcessorError] = []

        for pattern in patterns:
            try:
                found = []
                for m in pattern.regex.finditer(combined):
                    found.append(PatternMatch(
                        ref=pattern.normalize(m),
                        pattern_id=pattern.id,
                        confidence=pattern.confidence,
                        start=m.start(),
                        end=m.end(),
                        context=_extract_context(combined, m.start()),
                        raw_match=m.group(0),
                    ))
            except Exception as exc:
                logger.warning("pattern %s failed: %s", pattern.id, exc)
                errors.append(ProcessorError(ErrorCodes.PATTERN_ERROR, f"Pattern {pattern.id} threw error: {exc}", True, {'pattern_id': pattern.id}))
                continue

            if not found:
                analysis.append(PatternAnalysis(
                    pattern.id,
                    0,
                    no_match_reason='regex-no-match',
                    near_misses=_find_near_misses(combined, pattern) if debug else None,
                ))
                continue
            analysis.append(PatternAnalysis(pattern.id, len(found)))
            matches.extend(found)

        # first-seen order across the text, not pattern order
        matches.sort(key=lambda pm: pm.start)
        refs: List[str] = []
        seen = set()
        for pm in matches:
            if pm.ref not in seen:
                seen.add(pm.ref)
                refs.append(pm.ref)

        diagnostics = ProcessorDiagnostics(
            processor=self.name,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            input_metrics={'text_count': len(fragments), 'total_length': len(combined)},
            output_metrics={
                'ref_count': len(refs),
                'match_count': len(matches),
                'patterns_matched': sum(1 for a in analysis if a.match_count > 0),
            },
        )
        if debug:
            diagnostics.debug = {
                'pattern_analysis': analysis,
                'patterns_attempted': [p.id for p in patterns],
                'text_preview': combined[:500],
            }
        logger.debug("extracted %d refs from %d chars", len(refs), len(combined))
        return ProcessorResult(RefExtractionOutput(refs, matches, analysis), diagnostics, [], errors)

    def safe_process(self, texts: Iterable[Optional[str]], **options) -> Result:
        """Tagged-result variant of process()."""
        try:
            return Result.ok(self.process(texts, **options))
        except Exception as exc:
            return Result.err(PipelineFailure(ErrorCodes.EXTRACTION_FAILED, str(exc), {'options': options}))

    def extract_refs(self, text: Optional[str]) -> List[str]:
        return self.process([text]).data.refs

    def extract_refs_from_multiple(self, texts: Iterable[Optional[str]]) -> List[str]:
        return self.process(texts).data.refs

    def extract_refs_from_object(self, obj: Any) -> List[str]:
        if not obj:
            return []
        return self.process([serialize_raw_data(obj)]).data.refs

    def extract_from_activity(self, activity: Any, include_source_url: bool = True, **options) -> ProcessorResult:
        """Extract from title, description, raw data (as JSON) and, by default, the source URL."""
        if isinstance(activity, dict):
            source_url = activity.get('source_url', activity.get('sourceUrl'))
        else:
            source_url = getattr(activity, 'source_url', None)
        return self.process(activity_fragments(activity), source_url=source_url, include_source_url=include_source_url, **options)

    def _empty_result(self, started: float, debug: bool, warnings: Optional[List[ProcessorWarning]] = None) -> ProcessorResult:
        diagnostics = ProcessorDiagnostics(
            processor=self.name,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            input_metrics={'text_count': 0, 'total_length': 0},
            output_metrics={'ref_count': 0, 'match_count': 0, 'patterns_matched': 0},
            debug={'reason': 'empty-input', 'pattern_analysis': []} if debug else None,
        )
        return ProcessorResult(RefExtractionOutput([], [], []), diagnostics, list(warnings or []), [])


ref_extractor = RefExtractor()


def extract_refs(text: Optional[str]) -> List[str]:
    """Module-level shortcut using the default registry."""
    return ref_extractor.extract_refs(text)


def find_issue_keys_in_text(text: Optional[str]) -> List[str]:
    """Issue-tracker keys only (e.g. 'AUTH-123'), first-seen order."""
    if not text:
        return []
    return ref_extractor.process([text], tool_types=['jira']).data.refs

"""
Narrative extraction: turn a hydrated, participation-annotated cluster into a framework-shaped
narrative (STAR, CAR, SOAR, ...).

Steps:
1. participation per activity (IdentityMatcher)
2. validation gates: min activities, min tool types, max observer ratio
3. one component per framework slot: semantic cue regex, then tool-type preference, then
   any activity
4. participation summary and suggested edits
5. 0-100 score and pass/fail
6. up to two alternative frameworks

Rule based and deterministic; no model calls.
"""
import logging
import math
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from correlate.models import (
    ErrorCodes,
    PipelineFailure,
    ProcessorDiagnostics,
    ProcessorResult,
    ProcessorWarning,
    Result,
    WarningCodes,
)
from normalize.models import (
    ActivityWithRefs,
    CareerPersona,
    GeneratedNarrative,
    HydratedCluster,
    NarrativeComponent,
    ParticipationLevel,
    ParticipationResult,
    ToolType,
    ValidationResult,
)
from normalize.util import parse_timestamp
from scoring.frameworks import get_framework
from scoring.identity import IdentityMatcher, summarize_participation
from scoring.utils import DEFAULT_GATES

logger = logging.getLogger(__name__)

HIGH = 0.8
MEDIUM = 0.5
LOW = 0.3

_ACTION_VERBS = (
    r'implement(ed)?|add(ed)?|creat(e|ed)|built?|develop(ed)?|design(ed)?|refactor(ed)?|optimiz(e|ed)|'
    r'updat(e|ed)|configur(e|ed)|deploy(ed)?|migrat(e|ed)|integrat(e|ed)|led|drove|initiated|coordinated'
)
_RESULT_CUES = (
    r'reduc(e|ed|tion)|improv(e|ed|ement)|increas(e|ed)|from .{1,30} to|closes?|fix(ed|es)?|resolv(e|ed)|'
    r'complet(e|ed)|deliver(ed)?|ship(ped)?|launch(ed)?|achiev(e|ed)|success'
)

# semantic cues per component slot
COMPONENT_PATTERNS: Dict[str, re.Pattern] = {
    'situation': re.compile(r'\b(need|problem|issue|slow|broken|currently|before|was|had|required|must|should|failing|error|bug|outage|incident|blocker|context|background)\b', re.I),
    'context': re.compile(r'\b(need|problem|issue|slow|broken|currently|before|was|had|required|must|should|failing|error|bug|outage|incident|blocker|context|background|pressure|deadline|constraint)\b', re.I),
    'challenge': re.compile(r'\b(challeng\w*|problem|issue|difficult|struggle|obstacle|block\w*|barrier|impediment|risk|threat)\b', re.I),
    'problem': re.compile(r'\b(problem|issue|bug|error|failure|broken|crash|slow|latency|bottleneck|limit)\b', re.I),
    'task': re.compile(r'\b(task|goal|objective|target|deliverable|requirement|milestone|sprint|assigned|responsible)\b', re.I),
    'objective': re.compile(r'\b(objective|goal|target|kpi|metric|okr|aim|mission|vision|strategy)\b', re.I),
    'action': re.compile(r'\b(' + _ACTION_VERBS + r')\b', re.I),
    'result': re.compile(r'\b(' + _RESULT_CUES + r')\b|\d+%|\d+x\b|\d+ ?(ms|seconds?|minutes?|hours?|days?|users?|requests?)\b', re.I),
    'learning': re.compile(r'\b(learn\w*|realiz\w*|discover\w*|understand\w*|insight|takeaway|lesson|retrospective|reflect\w*|growth|improve(ment)?)\b', re.I),
    'hindsight': re.compile(r'\b(hindsight|retrospect|looking back|realized|should have|could have|in retrospect|with hindsight)\b', re.I),
    'obstacles': re.compile(r'\b(obstacle|barrier|blocker|impediment|challenge|resistance|pushback|constraint|limitation)\b', re.I),
    'example': re.compile(r'\b(example|instance|case|specifically|for instance|such as|like when|one time)\b', re.I),
}

# which tools to fall back on, in order, when no activity carries the cue
TOOL_PREFERENCES: Dict[str, List[str]] = {
    'situation': [ToolType.JIRA, ToolType.CONFLUENCE],
    'context': [ToolType.JIRA, ToolType.CONFLUENCE],
    'problem': [ToolType.JIRA, ToolType.GITHUB],
    'challenge': [ToolType.JIRA, ToolType.GITHUB],
    'task': [ToolType.JIRA, ToolType.CONFLUENCE],
    'objective': [ToolType.JIRA, ToolType.CONFLUENCE],
    'action': [ToolType.GITHUB, ToolType.JIRA],
    'result': [ToolType.GITHUB, ToolType.SLACK, ToolType.JIRA],
    'learning': [ToolType.CONFLUENCE, ToolType.SLACK],
    'hindsight': [ToolType.CONFLUENCE, ToolType.SLACK],
    'obstacles': [ToolType.JIRA, ToolType.SLACK],
    'example': [ToolType.GITHUB, ToolType.JIRA],
}
DEFAULT_TOOL_PREFERENCE = [ToolType.JIRA, ToolType.GITHUB]

IMPORTANCE_MULTIPLIERS: Dict[str, float] = {
    'situation': 1.0,
    'context': 1.0,
    'task': 0.9,
    'objective': 0.9,
    'action': 1.0,
    'result': 1.1,
    'learning': 0.8,
    'hindsight': 0.7,
    'challenge': 0.9,
    'problem': 0.9,
}

COMPONENT_DESCRIPTIONS: Dict[str, str] = {
    'situation': 'What was the context or background?',
    'context': 'What were the circumstances or constraints?',
    'task': 'What were you specifically asked to do?',
    'objective': 'What measurable goal did you set?',
    'challenge': 'What obstacle did you face?',
    'problem': 'What technical problem needed solving?',
    'action': 'What specific steps did you take?',
    'result': 'What was the measurable outcome?',
    'learning': 'What did you learn from this experience?',
    'hindsight': 'What insight did you gain looking back?',
    'obstacles': 'What blocked your progress?',
    'example': 'Can you give a specific instance?',
}

OBSERVER_NOTE = 'Note: You were more observer than initiator. Consider highlighting your specific contributions.'

# gate codes reported in failed_gates
GATE_MIN_ACTIVITIES = 'MIN_ACTIVITIES'
GATE_MIN_TOOL_TYPES = 'MIN_TOOL_TYPES'
GATE_MAX_OBSERVER_RATIO = 'MAX_OBSERVER_RATIO'

_EARLIEST_FIRST = ('situation', 'context', 'problem', 'challenge')
_LATEST_FIRST = ('result', 'example')
_REFLECTIVE = ('learning', 'hindsight')
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class NarrativeExtractionOutput:
    def __init__(self, narrative: Optional[GeneratedNarrative], participations: List[ParticipationResult], alternative_frameworks: Optional[List[str]] = None, gate_details: Optional[List[Dict[str, Any]]] = None):
        self.narrative = narrative  # None when a validation gate failed
        self.participations = participations
        self.alternative_frameworks = list(alternative_frameworks or [])
        # one {'gate', 'actual', 'limit'} entry per failed gate
        self.gate_details = list(gate_details or [])

    @property
    def failed_gates(self) -> List[str]:
        return [d['gate'] for d in self.gate_details]


def describe_gate(detail: Dict[str, Any]) -> str:
    """Human readable form of a failed gate, e.g. 'MIN_TOOL_TYPES (1 < 2)'."""
    if detail['gate'] == GATE_MAX_OBSERVER_RATIO:
        return f"{detail['gate']} ({detail['actual'] * 100:.0f}% > {detail['limit'] * 100:.0f}%)"
    return f"{detail['gate']} ({detail['actual']} < {detail['limit']})"


def _text_of(activity: ActivityWithRefs) -> str:
    return f"{activity.title} {activity.description or ''}"


def _chronological(activity: ActivityWithRefs):
    return parse_timestamp(activity.timestamp) or _EPOCH


def _prefer_tool(candidates: List[ActivityWithRefs], tool: str) -> List[ActivityWithRefs]:
    # stable: keeps chronological order within each group
    return sorted(candidates, key=lambda a: 0 if a.source == tool else 1)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class NarrativeExtractor:
    """
    Pipeline processor: (HydratedCluster, CareerPersona, framework) -> narrative or failed gates.
    """
    name = 'NarrativeExtractor'
    version = '1.0.0'

    def __init__(self, gates: Optional[Dict[str, Any]] = None):
        self.gates = dict(DEFAULT_GATES)
        self.gates.update(gates or {})

    def validate(self) -> None:
        if self.gates['min_activities'] < 0 or self.gates['min_tool_types'] < 0:
            raise ValueError('gate minimums must be non-negative')
        if not 0.0 <= float(self.gates['max_observer_ratio']) <= 1.0:
            raise ValueError(f"max_observer_ratio must be within [0, 1], got {self.gates['max_observer_ratio']}")

    def process(
        self,
        cluster: HydratedCluster,
        persona: CareerPersona,
        framework: str = 'STAR',
        gates: Optional[Dict[str, Any]] = None,
        debug: bool = False,
    ) -> ProcessorResult:
        started = time.perf_counter()
        fw = get_framework(framework)
        active_gates = dict(self.gates)
        active_gates.update(gates or {})

        activities = list(cluster.activities)
        matcher = IdentityMatcher(persona)
        participations = matcher.detect_all(activities)

        gate_details = self.check_gates(activities, participations, active_gates)
        if gate_details:
            failed_gates = [d['gate'] for d in gate_details]
            logger.debug("cluster %s failed gates: %s", cluster.id, failed_gates)
            warning = ProcessorWarning(
                WarningCodes.VALIDATION_GATES_FAILED,
                f"Cluster failed validation: {', '.join(describe_gate(d) for d in gate_details)}",
                {'failed_gates': failed_gates, 'gate_details': gate_details, 'cluster_id': cluster.id},
            )
            output = NarrativeExtractionOutput(None, participations, gate_details=gate_details)
            return ProcessorResult(output, self._diagnostics(started, activities, participations, None, debug), [warning], [])

        components = [self.extract_component(name, activities) for name in fw.component_order]
        summary = summarize_participation(participations)
        edits = self.suggest_edits(components, summary)
        overall = sum(c.confidence for c in components) / len(components) if components else 0.0

        narrative = GeneratedNarrative(
            cluster_id=cluster.id,
            framework=fw.type,
            components=components,
            overall_confidence=overall,
            participation_summary=summary,
            suggested_edits=edits,
            metadata=self._metadata(cluster, activities),
            validation=self.validate_narrative(components, active_gates),
        )
        alternatives = self.suggest_alternatives(components, fw.type, activities)
        output = NarrativeExtractionOutput(narrative, participations, alternatives)
        return ProcessorResult(output, self._diagnostics(started, activities, participations, narrative, debug), [], [])

    def safe_process(self, cluster: HydratedCluster, persona: CareerPersona, **options) -> Result:
        """
        Tagged-result variant: VALIDATION_FAILED when a gate fails (participations still in the
        failure context), EXTRACTION_FAILED on any other error.
        """
        try:
            result = self.process(cluster, persona, **options)
        except Exception as exc:
            return Result.err(PipelineFailure(
                ErrorCodes.EXTRACTION_FAILED,
                str(exc) or 'Unknown extraction error',
                {'cluster_id': getattr(cluster, 'id', None)},
            ))
        if result.data.narrative is None:
            return Result.err(PipelineFailure(
                ErrorCodes.VALIDATION_FAILED,
                'Cluster failed validation gates',
                {
                    'cluster_id': cluster.id,
                    'failed_gates': result.data.failed_gates,
                    'gate_details': list(result.data.gate_details),
                    'participations': result.data.participations,
                },
            ))
        return Result.ok(result)

    def process_or_raise(self, cluster: HydratedCluster, persona: CareerPersona, **options) -> ProcessorResult:
        return self.safe_process(cluster, persona, **options).unwrap()

    # --- gates -----------------------------------------------------------

    def check_gates(self, activities: List[ActivityWithRefs], participations: List[ParticipationResult], gates: Dict[str, Any]) -> List[Dict[str, Any]]:
        """One {'gate', 'actual', 'limit'} dict per failed gate; empty when the cluster qualifies."""
        failed: List[Dict[str, Any]] = []
        min_activities = int(gates['min_activities'])
        min_tool_types = int(gates['min_tool_types'])
        max_observer_ratio = float(gates['max_observer_ratio'])

        if len(activities) < min_activities:
            failed.append({'gate': GATE_MIN_ACTIVITIES, 'actual': len(activities), 'limit': min_activities})

        tool_count = len({a.source for a in activities})
        if tool_count < min_tool_types:
            failed.append({'gate': GATE_MIN_TOOL_TYPES, 'actual': tool_count, 'limit': min_tool_types})

        observers = sum(1 for p in participations if p.level == ParticipationLevel.OBSERVER)
        ratio = observers / len(participations) if participations else 0.0
        if ratio > max_observer_ratio:
            failed.append({'gate': GATE_MAX_OBSERVER_RATIO, 'actual': ratio, 'limit': max_observer_ratio})
        return failed

    # --- components ------------------------------------------------------

    def extract_component(self, name: str, activities: List[ActivityWithRefs]) -> NarrativeComponent:
        pattern = COMPONENT_PATTERNS.get(name)
        if pattern is None:
            return self._last_resort(name, activities)

        candidates = [a for a in activities if pattern.search(_text_of(a))]
        if candidates:
            ranked = self.rank_candidates(name, candidates)
            return NarrativeComponent(
                name,
                self.format_text(name, ranked),
                [a.id for a in ranked[:3]],
                self.confidence_for(len(ranked), len(activities), name),
            )

        if name == 'result':
            metrics = self._numeric_result(activities)
            if metrics is not None:
                return metrics
        return self._by_tool_type(name, activities)

    def rank_candidates(self, name: str, candidates: List[ActivityWithRefs]) -> List[ActivityWithRefs]:
        if name in _EARLIEST_FIRST:
            return sorted(candidates, key=_chronological)
        if name in _LATEST_FIRST:
            return sorted(candidates, key=_chronological, reverse=True)
        if name in _REFLECTIVE:
            latest = sorted(candidates, key=_chronological, reverse=True)
            return _prefer_tool(latest, ToolType.CONFLUENCE)
        if name == 'action':
            return _prefer_tool(candidates, ToolType.GITHUB)
        if name in ('task', 'objective'):
            return _prefer_tool(candidates, ToolType.JIRA)
        return list(candidates)

    def format_text(self, name: str, ranked: List[ActivityWithRefs]) -> str:
        top = ranked[:3]
        if name == 'action':
            parts = []
            for a in top:
                parts.append(f"{a.title}: {a.description[:100]}" if a.description else a.title)
            return '. '.join(parts)
        if name in ('task', 'objective'):
            return '; '.join(a.title for a in top)
        if name in _REFLECTIVE:
            learning = COMPONENT_PATTERNS['learning']
            for a in top:
                if a.description and (learning.search(_text_of(a)) or COMPONENT_PATTERNS[name].search(_text_of(a))):
                    return a.description
            return f"Key takeaways from working on {', '.join(a.title for a in top)}"
        first = top[0]
        return first.description or first.title

    def confidence_for(self, match_count: int, total: int, name: str) -> float:
        """Tiered confidence from the share of activities carrying the cue."""
        if total <= 0:
            return 0.0
        ratio = match_count / total
        multiplier = IMPORTANCE_MULTIPLIERS.get(name, 1.0)
        if ratio >= 0.3:
            return min(HIGH * multiplier, 1.0)
        if ratio >= 0.1:
            return MEDIUM * multiplier
        if match_count > 0:
            return LOW * multiplier
        return 0.0

    def _numeric_result(self, activities: List[ActivityWithRefs]) -> Optional[NarrativeComponent]:
        """Structured metrics from raw payloads: PR line counts and story points."""
        metrics: List[str] = []
        sources: List[str] = []
        for a in activities:
            raw = a.raw_data or {}
            found = []
            if raw.get('additions') and raw.get('deletions'):
                found.append(f"+{raw['additions']}/-{raw['deletions']} lines")
            if raw.get('storyPoints') or raw.get('story_points'):
                found.append(f"{raw.get('storyPoints') or raw.get('story_points')} story points")
            if found:
                sources.append(a.id)
                metrics.extend(m for m in found if m not in metrics)
        if not metrics:
            return None
        return NarrativeComponent('result', ', '.join(metrics), sources[:3], MEDIUM)

    def _by_tool_type(self, name: str, activities: List[ActivityWithRefs]) -> NarrativeComponent:
        for tool in TOOL_PREFERENCES.get(name, DEFAULT_TOOL_PREFERENCE):
            matching = [a for a in activities if a.source == tool]
            if matching:
                best = matching[-1] if name in _LATEST_FIRST else matching[0]
                return NarrativeComponent(name, best.description or best.title, [best.id], MEDIUM)

        if name == 'result':
            tickets = sum(1 for a in activities if a.source == ToolType.JIRA)
            prs = sum(1 for a in activities if a.source == ToolType.GITHUB)
            if tickets or prs:
                parts = []
                if tickets:
                    parts.append(f"Completed {tickets} ticket{'s' if tickets != 1 else ''}")
                if prs:
                    parts.append(f"merged {prs} PR{'s' if prs != 1 else ''}")
                return NarrativeComponent(name, ', '.join(parts), [a.id for a in activities[:3]], LOW)
        return self._last_resort(name, activities)

    def _last_resort(self, name: str, activities: List[ActivityWithRefs]) -> NarrativeComponent:
        if not activities:
            return NarrativeComponent(name, '', [], 0.0)
        pick = activities[-1] if name in _LATEST_FIRST else activities[0]
        return NarrativeComponent(name, pick.title, [pick.id], LOW)

    # --- scoring ---------------------------------------------------------

    def validate_narrative(self, components: List[NarrativeComponent], gates: Dict[str, Any]) -> ValidationResult:
        warnings: List[str] = []
        total = len(components)
        filled = sum(1 for c in components if c.text)
        min_filled = max(int(gates['min_filled_floor']), int(math.ceil(total * float(gates['min_filled_ratio']))))
        if filled < min_filled:
            warnings.append(f"Only {filled}/{total} components have content")

        avg = sum(c.confidence for c in components) / total if total else 0.0
        if avg < MEDIUM:
            warnings.append('Low confidence extraction - review carefully')

        score = _round_half_up(avg * 50 + (filled / total * 50 if total else 0))
        return ValidationResult(filled >= min_filled, score, [], warnings)

    def suggest_edits(self, components: List[NarrativeComponent], summary: Dict[str, int]) -> List[str]:
        edits = [
            f"Add more detail to {c.name}: {COMPONENT_DESCRIPTIONS.get(c.name, 'Add more detail.')}"
            for c in components
            if c.confidence < MEDIUM
        ]
        if summary.get(ParticipationLevel.OBSERVER, 0) > summary.get(ParticipationLevel.INITIATOR, 0):
            edits.append(OBSERVER_NOTE)
        return edits

    def suggest_alternatives(self, components: List[NarrativeComponent], current: str, activities: List[ActivityWithRefs]) -> List[str]:
        """
        Up to two frameworks that may suit the cluster better. Learning and objective cues are
        read from the activities, since the chosen framework may have no slot for them.
        """
        alternatives: List[str] = []
        slots = get_framework(current).component_order

        learning_hits = sum(1 for a in activities if COMPONENT_PATTERNS['learning'].search(_text_of(a)))
        learning = self.confidence_for(learning_hits, len(activities), 'learning')
        if learning >= MEDIUM and 'learning' not in slots:
            alternatives.append('STARL')

        avg = sum(c.confidence for c in components) / len(components) if components else 0.0
        if avg >= HIGH and current not in ('SAR', 'CAR'):
            alternatives.append('SAR')

        has_objective = any(COMPONENT_PATTERNS['objective'].search(_text_of(a)) for a in activities)
        if has_objective and current != 'SOAR':
            alternatives.append('SOAR')
        return [f for f in alternatives if f != current][:2]

    # --- helpers ---------------------------------------------------------

    def _metadata(self, cluster: HydratedCluster, activities: List[ActivityWithRefs]) -> Dict[str, Any]:
        metrics = cluster.metrics
        start = metrics.earliest if metrics.earliest is not None else (activities[0].timestamp if activities else None)
        end = metrics.latest if metrics.latest is not None else (activities[-1].timestamp if activities else None)
        tools = list(metrics.tool_types) or sorted({a.source for a in activities})
        return {
            'date_range': {'start': start, 'end': end},
            'tools_covered': tools,
            'total_activities': len(activities),
        }

    def _diagnostics(self, started: float, activities: List[ActivityWithRefs], participations: List[ParticipationResult], narrative: Optional[GeneratedNarrative], debug: bool) -> ProcessorDiagnostics:
        diagnostics = ProcessorDiagnostics(
            processor=self.name,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            input_metrics={
                'activity_count': len(activities),
                'tool_type_count': len({a.source for a in activities}),
                'initiator_count': sum(1 for p in participations if p.level == ParticipationLevel.INITIATOR),
            },
            output_metrics={
                'narrative_generated': 1 if narrative else 0,
                'overall_confidence': narrative.overall_confidence if narrative else 0,
                'validation_score': narrative.validation.score if narrative else 0,
                'component_count': len(narrative.components) if narrative else 0,
                'suggested_edit_count': len(narrative.suggested_edits) if narrative else 0,
            },
        )
        if debug:
            diagnostics.debug = {
                'participations': [p.to_dict() for p in participations],
                'component_confidences': {c.name: c.confidence for c in narrative.components} if narrative else None,
            }
        return diagnostics


narrative_extractor = NarrativeExtractor()

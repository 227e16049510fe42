"""
Participation detection: classify how the persona took part in each activity.

Each tool type has its own field table; every raw-data field whose value matches one of the
persona's identifiers yields a named signal. The level of the highest-weight signal wins.
"""
import logging
from typing import Any, Dict, Iterable, List, Tuple

from normalize.models import ActivityWithRefs, CareerPersona, ParticipationLevel, ParticipationResult, ToolType

logger = logging.getLogger(__name__)

# signal -> (level, weight); higher weight = stronger evidence of involvement
SIGNAL_WEIGHTS: Dict[str, Tuple[str, int]] = {
    # created / owned the work
    'jira-assignee': (ParticipationLevel.INITIATOR, 10),
    'jira-reporter': (ParticipationLevel.INITIATOR, 9),
    'github-author': (ParticipationLevel.INITIATOR, 10),
    'github-pr-author': (ParticipationLevel.INITIATOR, 10),
    'confluence-creator': (ParticipationLevel.INITIATOR, 10),
    'figma-owner': (ParticipationLevel.INITIATOR, 10),
    'google-organizer': (ParticipationLevel.INITIATOR, 10),
    'google-owner': (ParticipationLevel.INITIATOR, 10),
    'outlook-organizer': (ParticipationLevel.INITIATOR, 10),
    'slack-author': (ParticipationLevel.INITIATOR, 10),
    # active participant
    'github-reviewer': (ParticipationLevel.CONTRIBUTOR, 7),
    'github-commenter': (ParticipationLevel.CONTRIBUTOR, 6),
    'jira-commenter': (ParticipationLevel.CONTRIBUTOR, 6),
    'confluence-editor': (ParticipationLevel.CONTRIBUTOR, 7),
    'slack-replier': (ParticipationLevel.CONTRIBUTOR, 6),
    'figma-editor': (ParticipationLevel.CONTRIBUTOR, 7),
    # referenced in the work
    'jira-mentioned': (ParticipationLevel.MENTIONED, 4),
    'github-mentioned': (ParticipationLevel.MENTIONED, 4),
    'slack-mentioned': (ParticipationLevel.MENTIONED, 4),
    'confluence-mentioned': (ParticipationLevel.MENTIONED, 4),
    # passive awareness
    'jira-watcher': (ParticipationLevel.OBSERVER, 2),
    'confluence-watcher': (ParticipationLevel.OBSERVER, 2),
    'google-attendee': (ParticipationLevel.OBSERVER, 3),
    'outlook-attendee': (ParticipationLevel.OBSERVER, 3),
}

SCALAR = 'scalar'
LIST = 'list'


class FieldRule:
    """
    One row of a tool's field table.

    fields: raw-data keys checked in order; any match emits the signal.
    kind: SCALAR (single value) or LIST (any element).
    requires: raw-data key that must be truthy for the rule to apply.
    """
    def __init__(self, fields: Tuple[str, ...], signal: str, kind: str = SCALAR, requires: str = None):
        self.fields = fields
        self.signal = signal
        self.kind = kind
        self.requires = requires


FIELD_TABLES: Dict[str, List[FieldRule]] = {
    ToolType.JIRA: [
        FieldRule(('assignee',), 'jira-assignee'),
        FieldRule(('reporter',), 'jira-reporter'),
        FieldRule(('watchers',), 'jira-watcher', LIST),
        FieldRule(('mentions',), 'jira-mentioned', LIST),
    ],
    ToolType.GITHUB: [
        FieldRule(('author',), 'github-author'),
        FieldRule(('reviewers', 'requestedReviewers'), 'github-reviewer', LIST),
        FieldRule(('mentions',), 'github-mentioned', LIST),
    ],
    ToolType.CONFLUENCE: [
        FieldRule(('creator',), 'confluence-creator'),
        FieldRule(('lastModifiedBy',), 'confluence-editor'),
        FieldRule(('watchers',), 'confluence-watcher', LIST),
    ],
    ToolType.SLACK: [
        FieldRule(('author', 'userId'), 'slack-author'),
        FieldRule(('author',), 'slack-replier', requires='isReply'),
        FieldRule(('mentions',), 'slack-mentioned', LIST),
    ],
    ToolType.GOOGLE: [
        FieldRule(('organizer',), 'google-organizer'),
        FieldRule(('owner',), 'google-owner'),
        FieldRule(('attendees',), 'google-attendee', LIST),
    ],
    ToolType.OUTLOOK: [
        FieldRule(('organizer',), 'outlook-organizer'),
        FieldRule(('attendees',), 'outlook-attendee', LIST),
    ],
    ToolType.FIGMA: [
        FieldRule(('owner', 'creator'), 'figma-owner'),
        FieldRule(('editors',), 'figma-editor', LIST),
    ],
    # generic activities carry no identity fields
    ToolType.GENERIC: [],
}


class IdentityMatcher:
    def __init__(self, persona: CareerPersona):
        self.persona = persona
        self._emails = {e.lower() for e in persona.emails if isinstance(e, str)}

    def detect_participation(self, activity: ActivityWithRefs) -> ParticipationResult:
        signals = self.collect_signals(activity)
        level = ParticipationLevel.OBSERVER
        max_weight = 0
        for signal in signals:
            sig_level, weight = SIGNAL_WEIGHTS.get(signal, (None, 0))
            if weight > max_weight:
                max_weight = weight
                level = sig_level
        return ParticipationResult(activity.id, level, signals)

    def detect_all(self, activities: Iterable[ActivityWithRefs]) -> List[ParticipationResult]:
        return [self.detect_participation(a) for a in activities]

    def collect_signals(self, activity: ActivityWithRefs) -> List[str]:
        raw = getattr(activity, 'raw_data', None) or {}
        if not isinstance(raw, dict):
            return []
        tool = getattr(activity, 'source', None)
        signals: List[str] = []
        for rule in FIELD_TABLES.get(tool, []):
            if rule.requires and not raw.get(rule.requires):
                continue
            if any(self._field_matches(raw.get(f), tool, rule.kind) for f in rule.fields):
                if rule.signal not in signals:
                    signals.append(rule.signal)
        return signals

    def is_match(self, value: Any, tool: str) -> bool:
        """Case-insensitive match against the persona's emails or its identity record for tool."""
        if not value:
            return False
        if isinstance(value, dict):
            # user objects such as {'accountId': ..., 'emailAddress': ...}
            return any(self.is_match(v, tool) for v in value.values() if isinstance(v, str))
        text = str(value).lower()
        return text in self._emails or self._identity_match(text, tool)

    def _identity_match(self, text: str, tool: str) -> bool:
        if tool == ToolType.GENERIC:
            return False
        identity = self.persona.identities.get(tool) or {}
        return any(isinstance(v, str) and v.lower() == text for v in identity.values())

    def _field_matches(self, value: Any, tool: str, kind: str) -> bool:
        if kind == LIST:
            if not isinstance(value, list):
                return False
            return any(self.is_match(v, tool) for v in value)
        return self.is_match(value, tool)


def summarize_participation(results: Iterable[ParticipationResult]) -> Dict[str, int]:
    """Count of activities per level; every level present, zero when unused."""
    summary = {level: 0 for level in ParticipationLevel.ORDER}
    for r in results:
        summary[r.level] = summary.get(r.level, 0) + 1
    return summary

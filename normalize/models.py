"""
Unified data models for activities, personas, clusters and narratives.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any


class ToolType:
    """
    Closed set of source tools an activity can come from.
    """
    JIRA = 'jira'              # issue tracker
    GITHUB = 'github'          # code review
    CONFLUENCE = 'confluence'  # wiki
    SLACK = 'slack'            # chat
    GOOGLE = 'google'          # calendar / docs
    OUTLOOK = 'outlook'        # calendar / mail
    FIGMA = 'figma'            # design tool
    GENERIC = 'generic'

    ALL = (JIRA, GITHUB, CONFLUENCE, SLACK, GOOGLE, OUTLOOK, FIGMA, GENERIC)


class ParticipationLevel:
    INITIATOR = 'initiator'
    CONTRIBUTOR = 'contributor'
    MENTIONED = 'mentioned'
    OBSERVER = 'observer'

    # strongest evidence first
    ORDER = (INITIATOR, CONTRIBUTOR, MENTIONED, OBSERVER)


class Activity:
    """
    One unit of work evidence as supplied by the collaborator layer. Read-only for the pipeline.
    """
    def __init__(self, id: str, source: str, title: str, timestamp: datetime, source_id: str = '', source_url: Optional[str] = None, description: Optional[str] = None, raw_data: Optional[Dict[str, Any]] = None):
        self.id = id
        self.source = source  # one of ToolType.ALL
        self.source_id = source_id
        self.source_url = source_url
        self.title = title
        self.description = description
        self.timestamp = timestamp
        self.raw_data = raw_data  # tool-specific payload, e.g. {'assignee': ..., 'reviewers': [...]}

    def __repr__(self):
        return f"Activity(id={self.id!r}, source={self.source!r}, title={self.title!r})"


class ActivityWithRefs(Activity):
    """
    Activity plus the references extracted from it (a.k.a. hydrated activity).
    """
    def __init__(self, id: str, source: str, title: str, timestamp: datetime, refs: Optional[List[str]] = None, source_id: str = '', source_url: Optional[str] = None, description: Optional[str] = None, raw_data: Optional[Dict[str, Any]] = None):
        super().__init__(id, source, title, timestamp, source_id=source_id, source_url=source_url, description=description, raw_data=raw_data)
        self.refs = list(refs or [])

    @classmethod
    def from_activity(cls, activity: Activity, refs: List[str]) -> 'ActivityWithRefs':
        return cls(
            activity.id,
            activity.source,
            activity.title,
            activity.timestamp,
            refs=refs,
            source_id=activity.source_id,
            source_url=activity.source_url,
            description=activity.description,
            raw_data=activity.raw_data,
        )


class ClusterableActivity:
    """
    Minimal record consumed by the cluster extractor.
    """
    def __init__(self, id: str, refs: Optional[List[str]], timestamp: Optional[datetime] = None, source: Optional[str] = None):
        self.id = id
        self.refs = refs
        self.timestamp = timestamp
        self.source = source


class CareerPersona:
    """
    The acting user's identities across connected tools.
    """
    def __init__(self, display_name: str, emails: Optional[List[str]] = None, identities: Optional[Dict[str, Dict[str, Any]]] = None):
        self.display_name = display_name
        self.emails = list(emails or [])
        # e.g. {'jira': {'accountId': ..., 'displayName': ...}, 'github': {'login': ...}}
        self.identities = dict(identities or {})


class ParticipationResult:
    def __init__(self, activity_id: str, level: str, signals: Optional[List[str]] = None):
        self.activity_id = activity_id
        self.level = level
        self.signals = list(signals or [])

    def to_dict(self) -> Dict[str, Any]:
        return {'activity_id': self.activity_id, 'level': self.level, 'signals': list(self.signals)}


class ClusterMetrics:
    def __init__(self, activity_count: int, ref_count: int, tool_types: List[str], earliest: Optional[datetime] = None, latest: Optional[datetime] = None):
        self.activity_count = activity_count
        self.ref_count = ref_count
        self.tool_types = list(tool_types)
        self.earliest = earliest
        self.latest = latest

    def copy(self, **changes) -> 'ClusterMetrics':
        values = {
            'activity_count': self.activity_count,
            'ref_count': self.ref_count,
            'tool_types': list(self.tool_types),
            'earliest': self.earliest,
            'latest': self.latest,
        }
        values.update(changes)
        return ClusterMetrics(**values)


class Cluster:
    """
    Activities transitively connected by shared references.
    """
    def __init__(self, id: str, activity_ids: List[str], shared_refs: List[str], metrics: ClusterMetrics):
        self.id = id
        self.activity_ids = list(activity_ids)
        self.shared_refs = list(shared_refs)  # refs present on 2+ members
        self.metrics = metrics


class HydratedCluster(Cluster):
    """
    Cluster whose members are resolved to full activities, oldest first.
    """
    def __init__(self, id: str, activity_ids: List[str], shared_refs: List[str], metrics: ClusterMetrics, activities: List[ActivityWithRefs]):
        super().__init__(id, activity_ids, shared_refs, metrics)
        self.activities = list(activities)


class NarrativeComponent:
    def __init__(self, name: str, text: str, sources: Optional[List[str]] = None, confidence: float = 0.0):
        self.name = name
        self.text = text
        self.sources = list(sources or [])
        self.confidence = confidence

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'text': self.text, 'sources': list(self.sources), 'confidence': self.confidence}


class ValidationResult:
    def __init__(self, passed: bool, score: int, failed_gates: Optional[List[str]] = None, warnings: Optional[List[str]] = None):
        self.passed = passed
        self.score = score
        self.failed_gates = list(failed_gates or [])
        self.warnings = list(warnings or [])

    def to_dict(self) -> Dict[str, Any]:
        return {'passed': self.passed, 'score': self.score, 'failed_gates': list(self.failed_gates), 'warnings': list(self.warnings)}


class GeneratedNarrative:
    """
    Framework-shaped narrative extracted from one hydrated cluster.
    """
    def __init__(self, cluster_id: str, framework: str, components: List[NarrativeComponent], overall_confidence: float, participation_summary: Dict[str, int], suggested_edits: List[str], metadata: Dict[str, Any], validation: ValidationResult):
        self.cluster_id = cluster_id
        self.framework = framework
        self.components = components  # same order as the framework's component_order
        self.overall_confidence = overall_confidence
        self.participation_summary = participation_summary  # level -> count
        self.suggested_edits = suggested_edits
        self.metadata = metadata  # date_range, tools_covered, total_activities
        self.validation = validation

    def component(self, name: str) -> Optional[NarrativeComponent]:
        for c in self.components:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        date_range = self.metadata.get('date_range') or {}
        return {
            'cluster_id': self.cluster_id,
            'framework': self.framework,
            'components': [c.to_dict() for c in self.components],
            'overall_confidence': self.overall_confidence,
            'participation_summary': dict(self.participation_summary),
            'suggested_edits': list(self.suggested_edits),
            'metadata': {
                'date_range': {
                    'start': date_range.get('start').isoformat() if date_range.get('start') else None,
                    'end': date_range.get('end').isoformat() if date_range.get('end') else None,
                },
                'tools_covered': list(self.metadata.get('tools_covered') or []),
                'total_activities': self.metadata.get('total_activities', 0),
            },
            'validation': self.validation.to_dict(),
        }

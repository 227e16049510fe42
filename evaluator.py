"""
Evaluator logic: run the whole evidence pipeline for one persona.

activities -> refs per activity -> clusters -> hydrated clusters -> participation + narrative
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from datetime import datetime

from correlate.cluster import ClusterExtractor
from correlate.hydrator import ClusterHydrator
from correlate.linker import RefExtractor
from correlate.models import PipelineFailure, ProcessorDiagnostics, ProcessorResult, ProcessorWarning
from normalize.models import Activity, ActivityWithRefs, CareerPersona, GeneratedNarrative, ParticipationResult
from normalize.util import normalize_activity, normalize_persona
from patterns import PatternRegistry
from scoring.narrative import NarrativeExtractor
from scoring.utils import DEFAULT_GATES

logger = logging.getLogger(__name__)


class PipelineRun:
    """
    Everything one run produced. Participations are kept for every cluster, including the
    ones that failed a gate, so callers can show why a cluster did not qualify.
    """
    def __init__(self):
        self.activities: List[ActivityWithRefs] = []
        self.extractions: Dict[str, ProcessorResult] = {}
        self.clustering: Optional[ProcessorResult] = None
        self.narratives: Dict[str, GeneratedNarrative] = {}
        self.participations: Dict[str, List[ParticipationResult]] = {}
        self.alternatives: Dict[str, List[str]] = {}
        self.failures: Dict[str, PipelineFailure] = {}
        self.warnings: List[ProcessorWarning] = []
        self.diagnostics: List[ProcessorDiagnostics] = []

    @property
    def clusters(self):
        return self.clustering.data.clusters if self.clustering else []

    @property
    def unclustered(self) -> List[str]:
        return self.clustering.data.unclustered if self.clustering else []

    def ordered_narratives(self) -> List[GeneratedNarrative]:
        """Narratives in cluster order."""
        return [self.narratives[c.id] for c in self.clusters if c.id in self.narratives]

    def summary(self) -> Dict[str, Any]:
        return {
            'activities': len(self.activities),
            'clusters': len(self.clusters),
            'unclustered': len(self.unclustered),
            'narratives': len(self.narratives),
            'failed_clusters': len(self.failures),
        }


def _as_activity(item: Any) -> Activity:
    if isinstance(item, Activity):
        return item
    if isinstance(item, dict):
        return normalize_activity(item)
    raise TypeError(f"Unsupported activity record: {type(item).__name__}")


def _as_persona(persona: Any) -> CareerPersona:
    if isinstance(persona, CareerPersona):
        return persona
    if isinstance(persona, dict):
        return normalize_persona(persona)
    raise TypeError(f"Unsupported persona record: {type(persona).__name__}")


def attach_refs(activities: Iterable[Any], extractor: RefExtractor, run: Optional[PipelineRun] = None, debug: bool = False) -> List[ActivityWithRefs]:
    """Extract refs for each activity. Activities that already carry refs keep them."""
    result: List[ActivityWithRefs] = []
    for item in activities:
        activity = _as_activity(item)
        if isinstance(activity, ActivityWithRefs):
            result.append(activity)
            continue
        extraction = extractor.extract_from_activity(activity, debug=debug)
        if run is not None:
            run.extractions[activity.id] = extraction
            run.warnings.extend(extraction.warnings)
        result.append(ActivityWithRefs.from_activity(activity, extraction.data.refs))
    return result


def run_pipeline(
    activities: Iterable[Any],
    persona: Any,
    framework: str = 'STAR',
    gates: Optional[Dict[str, Any]] = None,
    date_range: Optional[Tuple[datetime, datetime]] = None,
    registry: Optional[PatternRegistry] = None,
    debug: bool = False,
) -> PipelineRun:
    """
    Full chain for one persona. gates may carry any DEFAULT_GATES key, min_cluster_size included.
    Clusters failing a gate land in run.failures (VALIDATION_FAILED) rather than raising.
    """
    effective = dict(DEFAULT_GATES)
    effective.update(gates or {})
    persona = _as_persona(persona)
    run = PipelineRun()

    ref_extractor = RefExtractor(registry) if registry is not None else RefExtractor()
    ref_extractor.validate()
    run.activities = attach_refs(activities, ref_extractor, run, debug=debug)

    clustering = ClusterExtractor().process_or_raise(
        run.activities,
        min_cluster_size=int(effective['min_cluster_size']),
        date_range=date_range,
        debug=debug,
    )
    run.clustering = clustering
    run.warnings.extend(clustering.warnings)
    run.diagnostics.append(clustering.diagnostics)

    hydrator = ClusterHydrator()
    lookup = hydrator.build_lookup(run.activities)
    extractor = NarrativeExtractor(effective)
    extractor.validate()

    for cluster in clustering.data.clusters:
        hydrated = hydrator.safe_hydrate(cluster, lookup)
        if hydrated.is_err:
            run.failures[cluster.id] = hydrated.failure
            continue
        run.warnings.extend(hydrated.value.warnings)

        outcome = extractor.safe_process(hydrated.value.cluster, persona, framework=framework, debug=debug)
        if outcome.is_err:
            run.failures[cluster.id] = outcome.failure
            run.participations[cluster.id] = list(outcome.failure.context.get('participations') or [])
            continue
        result = outcome.value
        run.diagnostics.append(result.diagnostics)
        run.participations[cluster.id] = result.data.participations
        run.narratives[cluster.id] = result.data.narrative
        run.alternatives[cluster.id] = result.data.alternative_frameworks

    logger.info("pipeline: %s", run.summary())
    return run


def build_narratives(activities: Iterable[Any], persona: Any, framework: str = 'STAR', **options) -> List[GeneratedNarrative]:
    """Narratives only, in cluster order."""
    return run_pipeline(activities, persona, framework=framework, **options).ordered_narratives()

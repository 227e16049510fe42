"""
Cluster extraction: group activities that are transitively connected by shared refs.

Algorithm:
1. index ref -> activity ids
2. undirected graph, one node per activity, an edge between activities sharing a ref
3. connected components
4. keep components with at least min_cluster_size members
"""
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import networkx as nx

from correlate.models import (
    ErrorCodes,
    PipelineFailure,
    ProcessorDiagnostics,
    ProcessorResult,
    ProcessorWarning,
    Result,
    WarningCodes,
)
from normalize.models import Cluster, ClusterableActivity, ClusterMetrics
from normalize.util import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_MIN_CLUSTER_SIZE = 2
WARNING_ID_SAMPLE = 5


class ClusterExtractionOutput:
    def __init__(self, clusters: List[Cluster], unclustered: List[str], metrics: Dict[str, float], filtered: Optional[List[str]] = None):
        self.clusters = clusters
        self.unclustered = unclustered  # ids that made it past the date filter but joined no cluster
        self.metrics = metrics
        self.filtered = list(filtered or [])  # ids dropped by the date window


def _coerce(record: Any) -> ClusterableActivity:
    """Accept ClusterableActivity, activity-like objects or plain dicts. Timestamps come out aware (UTC when naive)."""
    if isinstance(record, ClusterableActivity):
        return ClusterableActivity(record.id, list(record.refs or []), parse_timestamp(record.timestamp), record.source)
    if isinstance(record, dict):
        return ClusterableActivity(str(record.get('id')), list(record.get('refs') or []), parse_timestamp(record.get('timestamp')), record.get('source'))
    return ClusterableActivity(
        str(getattr(record, 'id')),
        list(getattr(record, 'refs', None) or []),
        parse_timestamp(getattr(record, 'timestamp', None)),
        getattr(record, 'source', None),
    )


def _in_window(ts: Optional[datetime], window: Tuple[Optional[datetime], Optional[datetime]]) -> bool:
    # a missing bound leaves that side open
    if ts is None:
        return True
    start, end = window
    return (start is None or start <= ts) and (end is None or ts <= end)


def _ref_bucket(count: int) -> str:
    if count == 1:
        return '1'
    if count <= 3:
        return '2-3'
    if count <= 5:
        return '4-5'
    return '6+'


class ClusterExtractor:
    """
    Pipeline processor: records with refs -> clusters + unclustered ids.
    """
    name = 'ClusterExtractor'
    version = '3.0.0'

    def validate(self) -> None:
        # no external configuration; options are checked per call
        return None

    def build_graph(self, records: List[ClusterableActivity]) -> Tuple[nx.Graph, Dict[str, List[str]]]:
        graph = nx.Graph()
        graph.add_nodes_from(r.id for r in records)

        ref_index: Dict[str, List[str]] = {}
        for r in records:
            for ref in r.refs:
                members = ref_index.setdefault(ref, [])
                if r.id not in members:
                    members.append(r.id)

        # a star per ref is enough for connectivity; no need for the full clique
        for ref, ids in ref_index.items():
            hub = ids[0]
            for other in ids[1:]:
                graph.add_edge(hub, other, ref=ref)
        return graph, ref_index

    def process(
        self,
        records: Iterable[Any],
        min_cluster_size: int = DEFAULT_MIN_CLUSTER_SIZE,
        date_range: Optional[Tuple[datetime, datetime]] = None,
        id_generator: Optional[Callable[[int], str]] = None,
        debug: bool = False,
    ) -> ProcessorResult:
        started = time.perf_counter()
        if min_cluster_size is None or int(min_cluster_size) < 1:
            raise ValueError(f"min_cluster_size must be >= 1, got {min_cluster_size!r}")
        min_cluster_size = int(min_cluster_size)

        all_records = [_coerce(r) for r in records or []]
        warnings: List[ProcessorWarning] = []

        records_in = all_records
        filtered: List[str] = []
        if date_range is not None:
            window = (parse_timestamp(date_range[0]), parse_timestamp(date_range[1]))
            records_in = [r for r in all_records if _in_window(r.timestamp, window)]
            filtered = [r.id for r in all_records if not _in_window(r.timestamp, window)]
            if filtered:
                warnings.append(ProcessorWarning(
                    WarningCodes.DATE_FILTERED,
                    f"Filtered {len(filtered)} activities outside date range",
                    {'original': len(all_records), 'filtered': len(records_in)},
                ))

        if not records_in:
            return self._empty_result(started, len(all_records), filtered, warnings, debug)

        no_refs = [r.id for r in records_in if not r.refs]
        if no_refs:
            warnings.append(ProcessorWarning(
                WarningCodes.ACTIVITIES_WITHOUT_REFS,
                f"{len(no_refs)} activities have no refs and cannot cluster",
                {'activity_ids': no_refs[:WARNING_ID_SAMPLE]},
            ))

        # sorting by id makes component discovery independent of input order
        ordered = sorted(records_in, key=lambda r: r.id)
        by_id = {r.id: r for r in ordered}
        graph, ref_index = self.build_graph(ordered)
        components = sorted((sorted(c) for c in nx.connected_components(graph)), key=lambda c: c[0])

        clusters: List[Cluster] = []
        clustered_ids = set()
        for component in components:
            if len(component) < min_cluster_size:
                continue
            cluster_id = id_generator(len(clusters)) if id_generator else f"cluster-{len(clusters) + 1}"
            clusters.append(self._build_cluster(cluster_id, [by_id[i] for i in component]))
            clustered_ids.update(component)

        unclustered: List[str] = []
        for r in records_in:
            if r.id not in clustered_ids and r.id not in unclustered:
                unclustered.append(r.id)

        total = len(by_id)
        avg_size = (len(clustered_ids) / len(clusters)) if clusters else 0.0
        metrics = {
            'total_activities': total,
            'clustered_activities': len(clustered_ids),
            'unclustered_activities': len(unclustered),
            'cluster_count': len(clusters),
            'avg_cluster_size': avg_size,
        }
        diagnostics = ProcessorDiagnostics(
            processor=self.name,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            input_metrics={
                'total_activities': total,
                'activities_with_refs': sum(1 for r in ordered if r.refs),
                'total_refs': sum(len(r.refs) for r in ordered),
                'unique_refs': len(ref_index),
            },
            output_metrics={
                'cluster_count': len(clusters),
                'clustered_activities': len(clustered_ids),
                'unclustered_activities': len(unclustered),
                'avg_cluster_size': avg_size,
                'largest_cluster': max((len(c.activity_ids) for c in clusters), default=0),
            },
        )
        if debug:
            distribution: Dict[str, int] = {}
            for ids in ref_index.values():
                bucket = _ref_bucket(len(ids))
                distribution[bucket] = distribution.get(bucket, 0) + 1
            diagnostics.debug = {
                'components': [{'size': len(c), 'meets_min_size': len(c) >= min_cluster_size} for c in components],
                'ref_distribution': distribution,
            }
        logger.debug("clustered %d/%d activities into %d clusters", len(clustered_ids), total, len(clusters))
        return ProcessorResult(ClusterExtractionOutput(clusters, unclustered, metrics, filtered), diagnostics, warnings, [])

    def safe_process(self, records: Iterable[Any], **options) -> Result:
        """Tagged-result variant of process(); failures carry CLUSTERING_FAILED."""
        records = list(records or [])
        try:
            return Result.ok(self.process(records, **options))
        except Exception as exc:
            return Result.err(PipelineFailure(
                ErrorCodes.CLUSTERING_FAILED,
                str(exc) or 'Unknown clustering error',
                {'activity_count': len(records), 'options': options},
            ))

    def process_or_raise(self, records: Iterable[Any], **options) -> ProcessorResult:
        return self.safe_process(records, **options).unwrap()

    def cluster_by_refs(self, records: Iterable[Any], min_cluster_size: int = DEFAULT_MIN_CLUSTER_SIZE) -> List[List[str]]:
        """Just the member id lists."""
        result = self.process(records, min_cluster_size=min_cluster_size)
        return [c.activity_ids for c in result.data.clusters]

    def _build_cluster(self, cluster_id: str, members: List[ClusterableActivity]) -> Cluster:
        ref_counts: Dict[str, int] = {}
        for m in members:
            for ref in set(m.refs):
                ref_counts[ref] = ref_counts.get(ref, 0) + 1
        shared = sorted(ref for ref, n in ref_counts.items() if n > 1)

        timestamps = [m.timestamp for m in members if m.timestamp is not None]
        tool_types = sorted({m.source for m in members if m.source})
        metrics = ClusterMetrics(
            activity_count=len(members),
            ref_count=len(shared),
            tool_types=tool_types,
            earliest=min(timestamps) if timestamps else None,
            latest=max(timestamps) if timestamps else None,
        )
        return Cluster(cluster_id, [m.id for m in members], shared, metrics)

    def _empty_result(self, started: float, total: int, filtered: List[str], warnings: List[ProcessorWarning], debug: bool) -> ProcessorResult:
        metrics = {
            'total_activities': total,
            'clustered_activities': 0,
            'unclustered_activities': 0,
            'cluster_count': 0,
            'avg_cluster_size': 0.0,
        }
        diagnostics = ProcessorDiagnostics(
            processor=self.name,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            input_metrics={'total_activities': 0},
            output_metrics={'cluster_count': 0},
            debug={'reason': 'no-activities'} if debug else None,
        )
        return ProcessorResult(ClusterExtractionOutput([], [], metrics, filtered), diagnostics, warnings, [])


cluster_extractor = ClusterExtractor()

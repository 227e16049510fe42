"""
Cluster hydration: resolve a cluster's member ids to full activities.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from correlate.models import (
    ErrorCodes,
    PipelineFailure,
    ProcessorWarning,
    Result,
    WarningCodes,
)
from normalize.models import ActivityWithRefs, Cluster, HydratedCluster
from normalize.util import parse_timestamp

logger = logging.getLogger(__name__)

MISSING_ID_SAMPLE = 10
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class HydrationResult:
    def __init__(self, cluster: HydratedCluster, warnings: List[ProcessorWarning], processing_time_ms: float = 0.0):
        self.cluster = cluster
        self.warnings = warnings
        self.processing_time_ms = processing_time_ms


def _sort_key(activity: ActivityWithRefs):
    # naive timestamps count as UTC; id as tie-breaker keeps equal timestamps stable across runs
    return (parse_timestamp(activity.timestamp) or _EPOCH, activity.id)


class ClusterHydrator:
    name = 'ClusterHydrator'

    def build_lookup(self, activities: Iterable[ActivityWithRefs]) -> Dict[str, ActivityWithRefs]:
        """id -> activity. Last duplicate wins."""
        lookup: Dict[str, ActivityWithRefs] = {}
        for a in activities or []:
            lookup[a.id] = a
        return lookup

    def hydrate(self, cluster: Cluster, lookup: Dict[str, ActivityWithRefs]) -> HydrationResult:
        """
        Resolve every member id. Unknown ids are dropped and reported; metrics.activity_count
        is corrected to the resolved count.
        """
        started = time.perf_counter()
        found: List[ActivityWithRefs] = []
        missing: List[str] = []
        for activity_id in cluster.activity_ids:
            activity = lookup.get(activity_id)
            if activity is None:
                missing.append(activity_id)
            else:
                found.append(activity)

        warnings: List[ProcessorWarning] = []
        if missing:
            logger.warning("cluster %s: %d activities not found", cluster.id, len(missing))
            warnings.append(ProcessorWarning(
                WarningCodes.ACTIVITIES_NOT_FOUND,
                f"{len(missing)} activities not found",
                {'cluster_id': cluster.id, 'missing_ids': missing[:MISSING_ID_SAMPLE]},
            ))

        found.sort(key=_sort_key)
        hydrated = HydratedCluster(
            cluster.id,
            [a.id for a in found],
            cluster.shared_refs,
            cluster.metrics.copy(activity_count=len(found)),
            found,
        )
        return HydrationResult(hydrated, warnings, (time.perf_counter() - started) * 1000.0)

    def hydrate_all(self, clusters: Iterable[Cluster], activities: Iterable[ActivityWithRefs]) -> List[HydrationResult]:
        lookup = self.build_lookup(activities)
        return [self.hydrate(c, lookup) for c in clusters]

    def safe_hydrate(self, cluster: Cluster, lookup: Dict[str, ActivityWithRefs]) -> Result:
        """Strict variant: a cluster with members none of which resolve is a failure."""
        result = self.hydrate(cluster, lookup)
        if cluster.activity_ids and not result.cluster.activities:
            return Result.err(PipelineFailure(
                ErrorCodes.NO_ACTIVITIES_FOUND,
                f"No activities found for cluster {cluster.id}",
                {'cluster_id': cluster.id, 'missing_ids': list(cluster.activity_ids[:MISSING_ID_SAMPLE])},
            ))
        return Result.ok(result)

    def hydrate_strict(self, cluster: Cluster, lookup: Dict[str, ActivityWithRefs]) -> HydrationResult:
        return self.safe_hydrate(cluster, lookup).unwrap()


cluster_hydrator = ClusterHydrator()


def hydrate_cluster(cluster: Cluster, activities: Iterable[ActivityWithRefs], hydrator: Optional[ClusterHydrator] = None) -> HydratedCluster:
    h = hydrator or cluster_hydrator
    return h.hydrate(cluster, h.build_lookup(activities)).cluster

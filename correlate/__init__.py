"""
Correlate package: ref extraction, clustering by shared refs, and cluster hydration.
"""

from .linker import RefExtractor, extract_refs, find_issue_keys_in_text, ref_extractor
from .cluster import ClusterExtractor, cluster_extractor
from .hydrator import ClusterHydrator, cluster_hydrator, hydrate_cluster

__all__ = [
    "ClusterExtractor",
    "ClusterHydrator",
    "RefExtractor",
    "cluster_extractor",
    "cluster_hydrator",
    "extract_refs",
    "find_issue_keys_in_text",
    "hydrate_cluster",
    "ref_extractor",
]

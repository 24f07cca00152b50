"""Collector package for Kuberoot.

Detects pod failures in a live cluster and pushes them to the backend.

Submodules
----------
source     -- ClusterStateSource protocol and the kubernetes-asyncio implementation.
normalizer -- Failure detection and event correlation (dedup, newest-first, capped).
agent      -- AgentReporter and the periodic push loop.
"""

from kuberoot.collector.normalizer import collect_failures, correlate_events, detect_failures
from kuberoot.collector.source import ClusterStateSource, KubernetesStateSource

__all__ = [
    "ClusterStateSource",
    "KubernetesStateSource",
    "collect_failures",
    "correlate_events",
    "detect_failures",
]

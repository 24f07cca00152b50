"""Cluster-state sources for the failure collector.

``ClusterStateSource`` is the boundary to whatever reads live workload
state.  ``KubernetesStateSource`` implements it with kubernetes-asyncio and
returns plain JSON dicts so the normalizer never sees client model classes.
"""

from __future__ import annotations

from typing import Any, Protocol

from kuberoot.errors import CollectorError
from kuberoot.observability.logging import get_logger

_logger = get_logger("collector.source")


class ClusterStateSource(Protocol):
    """Read-only view of live pods and their events."""

    async def list_pods(self) -> list[dict[str, Any]]: ...

    async def list_pod_events(self, namespace: str, pod_name: str) -> list[dict[str, Any]]: ...


class KubernetesStateSource:
    """ClusterStateSource backed by the Kubernetes API (all namespaces)."""

    def __init__(self, core_v1: Any, api_client: Any) -> None:
        self._v1 = core_v1
        self._api_client = api_client

    @classmethod
    async def connect(cls) -> KubernetesStateSource:
        """Load in-cluster config, falling back to the local kubeconfig."""
        import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _logger.info("k8s client configured from in-cluster service account")
        except k8s_config.ConfigException:
            try:
                await k8s_config.load_kube_config()
            except Exception as exc:
                raise CollectorError(f"unable to load kubeconfig or in-cluster config: {exc}") from exc
            _logger.info("k8s client configured from kubeconfig")

        api_client = k8s_client.ApiClient()
        return cls(k8s_client.CoreV1Api(api_client), api_client)

    def _to_dicts(self, items: list[Any]) -> list[dict[str, Any]]:
        return [self._api_client.sanitize_for_serialization(item) for item in items]

    async def list_pods(self) -> list[dict[str, Any]]:
        pod_list = await self._v1.list_pod_for_all_namespaces()
        return self._to_dicts(pod_list.items)

    async def list_pod_events(self, namespace: str, pod_name: str) -> list[dict[str, Any]]:
        selector = f"involvedObject.kind=Pod,involvedObject.name={pod_name}"
        event_list = await self._v1.list_namespaced_event(namespace, field_selector=selector)
        return self._to_dicts(event_list.items)

    async def close(self) -> None:
        await self._api_client.close()

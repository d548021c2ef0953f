# src/kubechain/collectors/cluster_collector.py
"""
Read-only access to the Kubernetes API: nodes, namespaces, quotas, pods,
services, and the ReplicaSets/ReplicationControllers read while resolving
pod ownership.

Every listing is a point-in-time snapshot; objects are converted to the
Pydantic models of kubechain.models.workload and de-duplicated by uid.
API failures are raised as ClusterScrapeError. The Kubernetes client is
blocking, so every call runs in a worker thread to keep the event loop free.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from kubernetes.client.rest import ApiException

from ..core.exceptions import ClusterScrapeError
from ..core.k8s_client import get_apps_v1_api, get_core_v1_api
from ..discovery.ownership import KIND_REPLICA_SET, KIND_REPLICATION_CONTROLLER
from ..models.workload import (
    ContainerResources,
    NodeInfo,
    OwnerReference,
    QuotaInfo,
    ServiceInfo,
    WorkloadInstance,
)
from ..utils.k8s_utils import parse_cpu_millicores, parse_memory_bytes

logger = logging.getLogger(__name__)

K8S_DEFAULT_NAMESPACE = "default"
KUBERNETES_SERVICE_NAME = "kubernetes"
POD_RUNNING = "Running"
STITCHING_ADDRESS_TYPES = ("InternalIP", "ExternalIP")


def _unique_by_uid(items: Iterable[Any]) -> List[Any]:
    seen = set()
    unique = []
    for item in items:
        if item.uid in seen:
            continue
        seen.add(item.uid)
        unique.append(item)
    return unique


def node_to_node_info(node) -> NodeInfo:
    status = node.status
    capacity = (status.capacity if status else None) or {}
    addresses = [
        a.address for a in ((status.addresses if status else None) or []) if a.type in STITCHING_ADDRESS_TYPES
    ]
    node_info = status.node_info if status else None
    return NodeInfo(
        name=node.metadata.name,
        uid=str(node.metadata.uid or ""),
        system_uuid=node_info.system_uuid if node_info else None,
        addresses=addresses,
        cpu_capacity_millicores=parse_cpu_millicores(capacity.get("cpu")),
        memory_capacity_bytes=parse_memory_bytes(capacity.get("memory")),
    )


def _container_resources(container) -> ContainerResources:
    resources = container.resources
    requests = (resources.requests if resources else None) or {}
    limits = (resources.limits if resources else None) or {}
    return ContainerResources(
        name=container.name,
        cpu_request=parse_cpu_millicores(requests.get("cpu")),
        cpu_limit=parse_cpu_millicores(limits.get("cpu")),
        memory_request=parse_memory_bytes(requests.get("memory")),
        memory_limit=parse_memory_bytes(limits.get("memory")),
    )


def pod_to_workload_instance(pod) -> WorkloadInstance:
    metadata = pod.metadata
    status = pod.status
    conditions = (status.conditions if status else None) or []
    ready = any(c.type == "Ready" and c.status == "True" for c in conditions)
    containers = (pod.spec.containers if pod.spec else None) or []
    return WorkloadInstance(
        namespace=metadata.namespace,
        name=metadata.name,
        uid=str(metadata.uid or ""),
        node_name=pod.spec.node_name if pod.spec else None,
        phase=status.phase if status else None,
        ready=ready,
        owner_references=[
            OwnerReference(
                kind=ref.kind or "",
                name=ref.name or "",
                uid=str(ref.uid or ""),
                controller=bool(ref.controller),
            )
            for ref in (metadata.owner_references or [])
        ],
        containers=[_container_resources(c) for c in containers],
    )


class ClusterScraper:
    """Lists cluster objects through the Kubernetes client."""

    def __init__(self, core_api=None, apps_api=None):
        self._core_api = core_api
        self._apps_api = apps_api

    async def _ensure_core_api(self):
        """Lazily initialize the CoreV1Api client."""
        if self._core_api is None:
            self._core_api = await asyncio.to_thread(get_core_v1_api)
        if self._core_api is None:
            raise ClusterScrapeError("Kubernetes client is not configured")
        return self._core_api

    async def _ensure_apps_api(self):
        if self._apps_api is None:
            self._apps_api = await asyncio.to_thread(get_apps_v1_api)
        if self._apps_api is None:
            raise ClusterScrapeError("Kubernetes client is not configured")
        return self._apps_api

    async def get_all_nodes(self) -> List[NodeInfo]:
        api = await self._ensure_core_api()
        try:
            node_list = await asyncio.to_thread(api.list_node, watch=False)
        except ApiException as e:
            raise ClusterScrapeError(f"failed to list all nodes in the cluster: {e}") from e
        nodes = _unique_by_uid(node_to_node_info(n) for n in node_list.items)
        logger.debug("Discovered %d nodes", len(nodes))
        return nodes

    async def get_namespaces(self) -> List[str]:
        api = await self._ensure_core_api()
        try:
            namespace_list = await asyncio.to_thread(api.list_namespace, watch=False)
        except ApiException as e:
            raise ClusterScrapeError(f"failed to list namespaces: {e}") from e
        return [ns.metadata.name for ns in namespace_list.items]

    async def get_namespace_quotas(self) -> Dict[str, List[QuotaInfo]]:
        """Returns the resource quotas defined in each namespace."""
        api = await self._ensure_core_api()
        try:
            quota_list = await asyncio.to_thread(api.list_resource_quota_for_all_namespaces, watch=False)
        except ApiException as e:
            raise ClusterScrapeError(f"failed to list resource quotas: {e}") from e

        quotas = _unique_by_uid(
            QuotaInfo(
                name=q.metadata.name,
                namespace=q.metadata.namespace,
                uid=str(q.metadata.uid or ""),
                hard={k: str(v) for k, v in ((q.spec.hard if q.spec else None) or {}).items()},
            )
            for q in quota_list.items
        )
        quota_map: Dict[str, List[QuotaInfo]] = {}
        for quota in quotas:
            quota_map.setdefault(quota.namespace, []).append(quota)
        return quota_map

    async def get_pods(self, field_selector: Optional[str] = None) -> List[WorkloadInstance]:
        api = await self._ensure_core_api()
        try:
            if field_selector:
                pod_list = await asyncio.to_thread(
                    api.list_pod_for_all_namespaces, watch=False, field_selector=field_selector
                )
            else:
                pod_list = await asyncio.to_thread(api.list_pod_for_all_namespaces, watch=False)
        except ApiException as e:
            raise ClusterScrapeError(f"failed to list pods: {e}") from e
        return _unique_by_uid(pod_to_workload_instance(p) for p in pod_list.items)

    async def get_all_pods(self) -> List[WorkloadInstance]:
        return await self.get_pods()

    async def get_all_running_pods(self) -> List[WorkloadInstance]:
        """Returns the pods that are both Running and Ready."""
        pods = await self.get_pods(field_selector=f"status.phase={POD_RUNNING}")
        ready = [p for p in pods if p.ready]
        logger.debug("Discovered %d running pods, %d ready", len(pods), len(ready))
        return ready

    async def get_all_services(self) -> List[ServiceInfo]:
        api = await self._ensure_core_api()
        try:
            service_list = await asyncio.to_thread(api.list_service_for_all_namespaces, watch=False)
        except ApiException as e:
            raise ClusterScrapeError(f"failed to list services: {e}") from e
        return _unique_by_uid(
            ServiceInfo(
                name=s.metadata.name,
                namespace=s.metadata.namespace,
                uid=str(s.metadata.uid or ""),
                selector=(s.spec.selector if s.spec else None) or {},
            )
            for s in service_list.items
        )

    async def get_kubernetes_service_id(self) -> str:
        """Returns the uid of the default/kubernetes service, which identifies the cluster."""
        api = await self._ensure_core_api()
        try:
            svc = await asyncio.to_thread(
                api.read_namespaced_service, KUBERNETES_SERVICE_NAME, K8S_DEFAULT_NAMESPACE
            )
        except ApiException as e:
            raise ClusterScrapeError(f"failed to read the kubernetes service: {e}") from e
        return str(svc.metadata.uid)

    async def get_controller(self, kind: str, namespace: str, name: str):
        """Reads a ReplicaSet or ReplicationController."""
        try:
            if kind == KIND_REPLICA_SET:
                api = await self._ensure_apps_api()
                return await asyncio.to_thread(api.read_namespaced_replica_set, name, namespace)
            if kind == KIND_REPLICATION_CONTROLLER:
                api = await self._ensure_core_api()
                return await asyncio.to_thread(api.read_namespaced_replication_controller, name, namespace)
        except ApiException as e:
            raise ClusterScrapeError(f"failed to get {kind}[{namespace}/{name}]: {e}") from e
        raise ClusterScrapeError(f"unsupported controller kind {kind}")

    async def close(self):
        """Close the Kubernetes API clients if they exist."""
        for api in (self._core_api, self._apps_api):
            if api is not None:
                api.api_client.close()
        self._core_api = None
        self._apps_api = None
        logger.debug("ClusterScraper Kubernetes clients closed.")

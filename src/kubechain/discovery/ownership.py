# src/kubechain/discovery/ownership.py
"""
Resolves the top-level controller owning a pod.

The pod's own controller reference gives the parent. When the parent is a
ReplicaSet or ReplicationController the parent object is fetched and its
controller reference, if any, is followed one more hop (Deployment,
DeploymentConfig, ...). Resolutions are cached per pod so that repeated
discovery cycles do not re-read the same parents.
"""

import logging
from typing import Any, Iterable, Optional, Protocol, Tuple

from ..core.cache import TTLCache
from ..core.exceptions import CacheIntegrityError, OwnershipResolutionError
from ..core.telemetry import owner_cache_hits, owner_cache_misses
from ..models.workload import ControllerInfo, OwnerReference, WorkloadInstance

logger = logging.getLogger(__name__)

KIND_REPLICA_SET = "ReplicaSet"
KIND_REPLICATION_CONTROLLER = "ReplicationController"

# Parent kinds whose own owner is followed one more hop
REPLICA_SET_KINDS = frozenset({KIND_REPLICA_SET, KIND_REPLICATION_CONTROLLER})


class ControllerFetcher(Protocol):
    async def get_controller(self, kind: str, namespace: str, name: str) -> Any: ...


def pod_controller_info_key(instance: WorkloadInstance) -> str:
    """Cache key of a pod's controller info."""
    return f"{instance.namespace}/{instance.name}"


def parse_owner_references(owner_references: Iterable[Any]) -> Optional[OwnerReference]:
    """
    Returns the owner reference marked as controller with a kind and a name,
    or None. Accepts OwnerReference models and kubernetes V1OwnerReference objects.
    """
    for ref in owner_references or []:
        if ref is None or not getattr(ref, "controller", False):
            continue
        kind = getattr(ref, "kind", None) or ""
        name = getattr(ref, "name", None) or ""
        if kind and name:
            return OwnerReference(kind=kind, name=name, uid=getattr(ref, "uid", None) or "", controller=True)
    return None


class OwnershipResolver:
    """Resolves and caches the controller of each workload instance."""

    def __init__(self, controller_fetcher: ControllerFetcher, cache: TTLCache):
        self.controller_fetcher = controller_fetcher
        self.cache = cache

    def cached_controller_info(self, instance: WorkloadInstance) -> Optional[ControllerInfo]:
        """
        Returns the cached controller of an instance, or None.

        Raises:
            CacheIntegrityError: If the cached value is not a ControllerInfo.
        """
        cached = self.cache.get(pod_controller_info_key(instance))
        if cached is None:
            return None
        if not isinstance(cached, ControllerInfo):
            raise CacheIntegrityError(
                f"error getting controller info cache data: cached value is '{type(cached).__name__}' "
                f"not 'ControllerInfo'"
            )
        return cached

    async def resolve_controller(
        self, instance: WorkloadInstance, bypass_cache: bool = False
    ) -> Tuple[ControllerInfo, Optional[Any]]:
        """
        Returns the controller of the instance and, when it had to be fetched,
        the ReplicaSet/ReplicationController object that was read on the way.

        Raises:
            OwnershipResolutionError: If the instance has no controller reference or
                the parent object cannot be read.
            CacheIntegrityError: If the cache holds a malformed entry for the instance.
        """
        key = pod_controller_info_key(instance)
        if not bypass_cache:
            cached = self.cached_controller_info(instance)
            if cached is not None:
                owner_cache_hits.add(1)
                return cached, None
        owner_cache_misses.add(1)

        parent = parse_owner_references(instance.owner_references)
        if parent is None:
            raise OwnershipResolutionError(f"pod {key} has no controller owner reference")

        if parent.kind not in REPLICA_SET_KINDS:
            info = ControllerInfo(kind=parent.kind, name=parent.name, uid=parent.uid)
            self.cache.set(key, info)
            return info, None

        try:
            obj = await self.controller_fetcher.get_controller(parent.kind, instance.namespace, parent.name)
        except Exception as e:
            message = f"Failed to get {parent.kind}[{instance.namespace}/{parent.name}]: {e}"
            logger.error(message)
            raise OwnershipResolutionError(message) from e

        metadata = getattr(obj, "metadata", None)
        grandparent = parse_owner_references(getattr(metadata, "owner_references", None))
        if grandparent is not None and grandparent.uid:
            info = ControllerInfo(kind=grandparent.kind, name=grandparent.name, uid=grandparent.uid)
        else:
            info = ControllerInfo(kind=parent.kind, name=parent.name, uid=parent.uid)

        self.cache.set(key, info)
        logger.debug("Resolved controller of pod %s: %s/%s", key, info.kind, info.name)
        return info, obj

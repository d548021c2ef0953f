# src/kubechain/models/workload.py
"""
Pydantic models describing what a discovery sweep reads from the cluster:
workload instances (pods) with their owner references, the controllers
that own them, and the nodes, quotas and services around them.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OwnerReference(BaseModel):
    """An entry of metadata.ownerReferences."""

    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: bool = False


class ContainerResources(BaseModel):
    """Requests and limits declared by one container of a pod."""

    name: str
    cpu_request: int = Field(0, description="CPU request in millicores.")
    cpu_limit: int = Field(0, description="CPU limit in millicores.")
    memory_request: int = Field(0, description="Memory request in bytes.")
    memory_limit: int = Field(0, description="Memory limit in bytes.")


class WorkloadInstance(BaseModel):
    """One running pod as seen by a single discovery sweep."""

    namespace: str
    name: str
    uid: str
    node_name: Optional[str] = None
    phase: Optional[str] = None
    ready: bool = False
    owner_references: List[OwnerReference] = Field(default_factory=list)
    containers: List[ContainerResources] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


class ControllerInfo(BaseModel):
    """The resolved top-level controller of a workload instance."""

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str
    uid: str


class NodeInfo(BaseModel):
    """
    Node identity and allocatable capacity.

    Attributes:
        name: Node name
        uid: Kubernetes object uid
        system_uuid: Machine UUID reported by the kubelet, used for stitching
        addresses: Node addresses (internal and external IPs), used for stitching
        cpu_capacity_millicores: CPU capacity in millicores
        memory_capacity_bytes: Memory capacity in bytes
    """

    name: str
    uid: str
    system_uuid: Optional[str] = None
    addresses: List[str] = Field(default_factory=list)
    cpu_capacity_millicores: int = 0
    memory_capacity_bytes: int = 0


class QuotaInfo(BaseModel):
    name: str
    namespace: str
    uid: str
    hard: Dict[str, str] = Field(default_factory=dict)


class ServiceInfo(BaseModel):
    name: str
    namespace: str
    uid: str
    selector: Dict[str, str] = Field(default_factory=dict)

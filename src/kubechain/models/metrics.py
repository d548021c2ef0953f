# src/kubechain/models/metrics.py
"""
Resource usage samples and their per-controller grouping.

A ContainerMetrics bucket holds one point per replica observation of a
single resource type. Each point carries the capacity declared by the
replica that produced it.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ResourceType(str, Enum):
    """Resource types aggregated per container spec, in emission order."""

    CPU = "CPU"
    MEMORY = "Memory"
    CPU_REQUEST = "CPURequest"
    MEMORY_REQUEST = "MemoryRequest"


class MetricPoint(BaseModel):
    value: float
    timestamp_ms: int
    capacity: Optional[float] = Field(None, description="Declared capacity of the instance that produced the sample.")


class ContainerMetrics(BaseModel):
    capacity: float = Field(..., description="Largest capacity declared by any replica.")
    used: List[MetricPoint] = Field(default_factory=list)


class ContainerSpecMetrics(BaseModel):
    """Samples of every replica of one container template owned by one controller."""

    namespace: str
    controller_uid: str
    container_spec_name: str
    container_spec_id: str
    container_replicas: int = 0
    container_metrics: Dict[ResourceType, ContainerMetrics] = Field(default_factory=dict)


class ContainerUsage(BaseModel):
    """Usage series of one container, as returned by the metrics backend."""

    namespace: str
    pod_name: str
    container_name: str
    cpu: List[MetricPoint] = Field(default_factory=list, description="CPU usage in millicores.")
    memory: List[MetricPoint] = Field(default_factory=list, description="Working set memory in bytes.")

# src/kubechain/models/commodity.py
"""
Commodity and entity descriptors handed to the downstream analysis engine.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CommodityType(str, Enum):
    VCPU = "VCPU"
    VMEM = "VMEM"
    VCPU_REQUEST = "VCPU_REQUEST"
    VMEM_REQUEST = "VMEM_REQUEST"
    VCPU_LIMIT_QUOTA = "VCPU_LIMIT_QUOTA"
    VMEM_LIMIT_QUOTA = "VMEM_LIMIT_QUOTA"
    VCPU_REQUEST_QUOTA = "VCPU_REQUEST_QUOTA"
    VMEM_REQUEST_QUOTA = "VMEM_REQUEST_QUOTA"
    CLUSTER = "CLUSTER"
    VMPM_ACCESS = "VMPM_ACCESS"
    APPLICATION = "APPLICATION"
    NUMBER_CONSUMERS = "NUMBER_CONSUMERS"
    VSTORAGE = "VSTORAGE"


class EntityType(str, Enum):
    VIRTUAL_MACHINE = "VIRTUAL_MACHINE"  # node
    VIRTUAL_DATACENTER = "VIRTUAL_DATACENTER"  # resource quota
    CONTAINER_POD = "CONTAINER_POD"
    CONTAINER = "CONTAINER"
    CONTAINER_SPEC = "CONTAINER_SPEC"
    APPLICATION_COMPONENT = "APPLICATION_COMPONENT"
    SERVICE = "SERVICE"


class UtilizationData(BaseModel):
    """Utilization percentages plus the timestamp of the last point and the sampling interval."""

    model_config = ConfigDict(frozen=True)

    points: List[float]
    last_point_timestamp_ms: int
    interval_ms: int = 0


class UsageData(BaseModel):
    model_config = ConfigDict(frozen=True)

    capacity: float
    used: float
    peak: float


class CommodityDTO(BaseModel):
    commodity_type: CommodityType
    key: Optional[str] = None
    used: float = 0.0
    peak: float = 0.0
    capacity: float = 0.0
    resizable: bool = False
    active: bool = False
    utilization_data: Optional[UtilizationData] = None


class EntityProperty(BaseModel):
    namespace: str = "DEFAULT"
    name: str
    value: str


class EntityDTO(BaseModel):
    entity_type: EntityType
    id: str
    display_name: str
    commodities_sold: List[CommodityDTO] = Field(default_factory=list)
    entity_properties: List[EntityProperty] = Field(default_factory=list)

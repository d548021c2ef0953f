# src/kubechain/core/processor.py
import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..collectors.cluster_collector import ClusterScraper
from ..collectors.container_metrics_collector import ContainerMetricsCollector
from ..discovery.container_spec import build_container_spec_metrics
from ..discovery.ownership import OwnershipResolver
from ..dtofactory.container_spec import ContainerSpecDTOBuilder
from ..models.commodity import EntityDTO, EntityProperty
from ..models.workload import ControllerInfo, NodeInfo, QuotaInfo, ServiceInfo, WorkloadInstance
from ..registration.stitching import StitchingPropertyType, node_stitching_property
from .exceptions import CacheIntegrityError, OwnershipResolutionError
from .telemetry import tracer

logger = logging.getLogger(__name__)


class DiscoveryResult(BaseModel):
    """Everything a single discovery cycle produced."""

    nodes: List[NodeInfo] = Field(default_factory=list)
    pods: List[WorkloadInstance] = Field(default_factory=list)
    services: List[ServiceInfo] = Field(default_factory=list)
    quotas: Dict[str, List[QuotaInfo]] = Field(default_factory=dict)
    controllers: Dict[str, ControllerInfo] = Field(default_factory=dict, description="Controller per pod key.")
    unresolved_pods: List[str] = Field(default_factory=list)
    node_properties: Dict[str, EntityProperty] = Field(default_factory=dict, description="Stitching property per node.")
    container_specs: List[EntityDTO] = Field(default_factory=list)


class DiscoveryProcessor:
    """Orchestrates one discovery cycle."""

    def __init__(
        self,
        scraper: ClusterScraper,
        resolver: OwnershipResolver,
        metrics_collector: Optional[ContainerMetricsCollector],
        dto_builder: ContainerSpecDTOBuilder,
        stitching_property_type: StitchingPropertyType = StitchingPropertyType.UUID,
    ):
        self.scraper = scraper
        self.resolver = resolver
        self.metrics_collector = metrics_collector
        self.dto_builder = dto_builder
        self.stitching_property_type = stitching_property_type

    async def _resolve_controllers(
        self, pods: List[WorkloadInstance], bypass_cache: bool
    ) -> Tuple[Dict[str, ControllerInfo], List[str]]:
        """
        Resolves the controller of every pod concurrently. Pods whose controller
        cannot be resolved are logged and reported as unresolved.

        Raises:
            CacheIntegrityError: If the ownership cache holds a malformed entry.
        """
        results = await asyncio.gather(
            *(self.resolver.resolve_controller(pod, bypass_cache=bypass_cache) for pod in pods),
            return_exceptions=True,
        )
        controllers: Dict[str, ControllerInfo] = {}
        unresolved: List[str] = []
        for pod, result in zip(pods, results):
            if isinstance(result, CacheIntegrityError):
                raise result
            if isinstance(result, OwnershipResolutionError):
                logger.warning("Skipping pod %s: %s", pod.key, result)
                unresolved.append(pod.key)
                continue
            if isinstance(result, BaseException):
                raise result
            info, _ = result
            controllers[pod.key] = info
        return controllers, unresolved

    async def run(self, bypass_cache: bool = False) -> DiscoveryResult:
        """Executes a discovery cycle."""
        logger.info("Starting discovery cycle...")
        with tracer.start_as_current_span("discovery_cycle") as span:
            nodes, pods, services, quotas = await asyncio.gather(
                self.scraper.get_all_nodes(),
                self.scraper.get_all_running_pods(),
                self.scraper.get_all_services(),
                self.scraper.get_namespace_quotas(),
            )
            span.set_attribute("kubechain.nodes", len(nodes))
            span.set_attribute("kubechain.pods", len(pods))

            controllers, unresolved = await self._resolve_controllers(pods, bypass_cache)

            usage = await self.metrics_collector.collect() if self.metrics_collector else []
            spec_metrics = build_container_spec_metrics(
                pods, controllers, usage, nodes={node.name: node for node in nodes}
            )
            container_specs = self.dto_builder.build_entity_dtos(spec_metrics)

            node_properties = {
                node.name: node_stitching_property(node, self.stitching_property_type) for node in nodes
            }

        logger.info(
            "Discovery cycle finished: %d nodes, %d pods (%d unresolved), %d services, %d container specs",
            len(nodes),
            len(pods),
            len(unresolved),
            len(services),
            len(container_specs),
        )
        return DiscoveryResult(
            nodes=nodes,
            pods=pods,
            services=services,
            quotas=quotas,
            controllers=controllers,
            unresolved_pods=unresolved,
            node_properties=node_properties,
            container_specs=container_specs,
        )

# src/kubechain/core/factory.py
"""
Factory functions to instantiate the discovery components from the
application configuration.
"""

import logging
from functools import lru_cache
from typing import List

from ..collectors.cluster_collector import ClusterScraper
from ..collectors.container_metrics_collector import ContainerMetricsCollector
from ..discovery.aggregation import AggregationEngine
from ..discovery.ownership import OwnershipResolver
from ..dtofactory.container_spec import ContainerSpecDTOBuilder
from ..models.supply_chain import TemplateDTO
from ..registration.stitching import parse_stitching_property_type
from ..registration.supply_chain import SupplyChainFactory
from .cache import TTLCache
from .config import config
from .processor import DiscoveryProcessor

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_ownership_cache() -> TTLCache:
    """
    The ownership cache shared by every discovery cycle of the process.
    Uses lru_cache to act as a singleton.
    """
    ttl = config.owner_cache_ttl
    logger.info("Ownership cache TTL: %s", ttl)
    return TTLCache(ttl)


@lru_cache(maxsize=1)
def get_supply_chain() -> List[TemplateDTO]:
    """
    Builds the supply chain once per process.

    Raises:
        ConfigurationError: If STITCHING_PROPERTY_TYPE is not supported.
    """
    factory = SupplyChainFactory(
        config.STITCHING_PROPERTY_TYPE,
        vm_priority=config.VM_PRIORITY,
        base=config.VM_TEMPLATE_BASE,
    )
    return factory.create_supply_chain()


def get_aggregation_engine() -> AggregationEngine:
    return AggregationEngine(
        utilization_strategy=config.CONTAINER_UTILIZATION_DATA_AGG_STRATEGY,
        usage_strategy=config.CONTAINER_USAGE_DATA_AGG_STRATEGY,
    )


def get_processor() -> DiscoveryProcessor:
    """Wires a DiscoveryProcessor from the configuration."""
    scraper = ClusterScraper()
    return DiscoveryProcessor(
        scraper=scraper,
        resolver=OwnershipResolver(scraper, get_ownership_cache()),
        metrics_collector=ContainerMetricsCollector(config),
        dto_builder=ContainerSpecDTOBuilder(get_aggregation_engine()),
        stitching_property_type=parse_stitching_property_type(config.STITCHING_PROPERTY_TYPE),
    )

from .cluster_collector import ClusterScraper
from .container_metrics_collector import ContainerMetricsCollector

__all__ = [
    "ClusterScraper",
    "ContainerMetricsCollector",
]

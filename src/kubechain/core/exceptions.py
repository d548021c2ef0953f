class KubeChainError(Exception):
    """Base exception for KubeChain."""

    pass


class OwnershipResolutionError(KubeChainError):
    """Raised when the controller owning a workload instance cannot be resolved."""

    pass


class CacheIntegrityError(KubeChainError):
    """Raised when a cached value does not have the expected record shape."""

    pass


class AggregationError(KubeChainError):
    """Raised when commodity data cannot be aggregated (empty input or zero capacity)."""

    pass


class ConfigurationError(KubeChainError):
    """Raised for invalid static configuration, e.g. an unsupported stitching property type."""

    pass


class TopologyError(ConfigurationError):
    """Raised when the built supply chain is not a single rooted acyclic graph."""

    pass


class ClusterScrapeError(KubeChainError):
    """Raised when a read against the Kubernetes API fails."""

    pass

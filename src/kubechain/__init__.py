"""KubeChain: Kubernetes discovery core producing a resource supply chain model."""

__version__ = "0.3.0"

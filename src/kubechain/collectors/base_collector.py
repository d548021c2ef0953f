# src/kubechain/collectors/base_collector.py
"""
Abstract base class for the collectors feeding a discovery cycle.
"""

from abc import ABC, abstractmethod
from typing import Any, List


class BaseCollector(ABC):
    """
    Abstract Base Class for all collectors.
    """

    @abstractmethod
    async def collect(self) -> List[Any]:
        """
        Fetch data from the source, parse it, and return a list of Pydantic models.
        """
        pass

    async def close(self):
        """
        Clean up resources (e.g., close HTTP sessions or API clients).
        """
        pass

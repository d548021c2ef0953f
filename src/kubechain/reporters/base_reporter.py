# src/kubechain/reporters/base_reporter.py
"""
Defines the abstract base class for all reporters.
"""
from abc import ABC, abstractmethod
from typing import List

from ..core.processor import DiscoveryResult
from ..models.supply_chain import TemplateDTO


class BaseReporter(ABC):
    """
    Abstract Base Class for all reporters.
    """

    @abstractmethod
    def report_supply_chain(self, templates: List[TemplateDTO]):
        """Presents the supply chain templates."""
        pass

    @abstractmethod
    def report_discovery(self, result: DiscoveryResult):
        """Presents the outcome of a discovery cycle."""
        pass

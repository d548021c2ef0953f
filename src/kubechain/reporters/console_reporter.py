# src/kubechain/reporters/console_reporter.py
"""
A reporter that displays the supply chain and discovery results in formatted
tables in the console.
"""

import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..core.processor import DiscoveryResult
from ..models.commodity import CommodityType
from ..models.supply_chain import TemplateDTO
from .base_reporter import BaseReporter

logger = logging.getLogger(__name__)


def _commodity_names(types: List[CommodityType]) -> str:
    return ", ".join(t.value for t in types)


class ConsoleReporter(BaseReporter):
    """
    Renders KubeChain data to the console using the 'rich' library.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def report_supply_chain(self, templates: List[TemplateDTO], stitching: bool = False):
        if not templates:
            self.console.print("No supply chain to report.", style="yellow")
            return

        table = Table(title="KubeChain Supply Chain", header_style="bold magenta", show_lines=True)
        table.add_column("Entity", style="cyan")
        table.add_column("Sells", style="green")
        table.add_column("Buys", style="blue")
        if stitching:
            table.add_column("Stitching", style="dim")

        for template in templates:
            buys = "\n".join(
                f"{p.provider.value} ({p.provider_type.value}): "
                f"{_commodity_names([c.commodity_type for c in p.commodities])}"
                for p in template.buys
            )
            row = [template.template_class.value, _commodity_names(template.sells_types()), buys]
            if stitching:
                metadata = template.merged_entity_metadata
                if metadata is None:
                    row.append("")
                else:
                    row.append(
                        f"{metadata.internal_matching.property_name} -> "
                        f"{metadata.external_matching.field_name}"
                    )
            table.add_row(*row)

        self.console.print(table)

    def report_discovery(self, result: DiscoveryResult):
        summary = Table(title="KubeChain Discovery", header_style="bold magenta")
        summary.add_column("Object", style="cyan")
        summary.add_column("Count", style="green", justify="right")
        summary.add_row("Nodes", str(len(result.nodes)))
        summary.add_row("Running pods", str(len(result.pods)))
        summary.add_row("Unresolved pods", str(len(result.unresolved_pods)))
        summary.add_row("Services", str(len(result.services)))
        summary.add_row("Quotas", str(sum(len(q) for q in result.quotas.values())))
        summary.add_row("Container specs", str(len(result.container_specs)))
        self.console.print(summary)

        if not result.container_specs:
            self.console.print("No container specs to report.", style="yellow")
            return

        table = Table(title="Container Specs", header_style="bold magenta", show_lines=True)
        table.add_column("Container Spec", style="cyan")
        table.add_column("Commodity", style="blue")
        table.add_column("Used", style="green", justify="right")
        table.add_column("Peak", style="red", justify="right")
        table.add_column("Capacity", style="yellow", justify="right")
        table.add_column("Points", style="dim", justify="right")
        for entity in result.container_specs:
            for commodity in entity.commodities_sold:
                points = len(commodity.utilization_data.points) if commodity.utilization_data else 0
                table.add_row(
                    entity.display_name,
                    commodity.commodity_type.value,
                    f"{commodity.used:.2f}",
                    f"{commodity.peak:.2f}",
                    f"{commodity.capacity:.2f}",
                    str(points),
                )
        self.console.print(table)

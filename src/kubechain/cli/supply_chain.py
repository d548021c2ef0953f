# src/kubechain/cli/supply_chain.py
"""
supply-chain command: prints the supply chain templates this agent registers.
"""

import logging

import typer
from typing_extensions import Annotated

from ..core.exceptions import ConfigurationError
from ..core.factory import get_supply_chain
from ..reporters.console_reporter import ConsoleReporter
from .utils import OutputFormat, echo_json

logger = logging.getLogger(__name__)

app = typer.Typer(name="supply-chain", help="Show the supply chain templates.")


@app.callback(invoke_without_command=True)
def supply_chain(
    ctx: typer.Context,
    stitching: Annotated[
        bool, typer.Option("--stitching", help="Include the node stitching metadata.")
    ] = False,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format.")] = OutputFormat.TABLE,
) -> None:
    if ctx.invoked_subcommand is not None:
        return

    try:
        templates = get_supply_chain()
    except ConfigurationError as e:
        logger.error(f"Invalid supply chain configuration: {e}")
        raise typer.Exit(code=1)

    if output == OutputFormat.JSON:
        exclude = None if stitching else {"merged_entity_metadata", "external_links"}
        echo_json([t.model_dump(mode="json", exclude=exclude) for t in templates])
    else:
        ConsoleReporter().report_supply_chain(templates, stitching=stitching)

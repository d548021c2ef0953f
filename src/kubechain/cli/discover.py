# src/kubechain/cli/discover.py
"""
discover command: runs a single discovery cycle and prints the result.
"""

import asyncio
import logging
import traceback

import typer
from typing_extensions import Annotated

from ..core.exceptions import KubeChainError
from ..core.factory import get_processor
from ..reporters.console_reporter import ConsoleReporter
from .utils import OutputFormat, echo_json

logger = logging.getLogger(__name__)

app = typer.Typer(name="discover", help="Run one discovery cycle against the cluster.")


@app.callback(invoke_without_command=True)
def discover(
    ctx: typer.Context,
    bypass_cache: Annotated[
        bool, typer.Option("--bypass-cache", help="Resolve every pod owner without using the cache.")
    ] = False,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format.")] = OutputFormat.TABLE,
) -> None:
    if ctx.invoked_subcommand is not None:
        return

    async def _discover_async():
        processor = get_processor()
        try:
            return await processor.run(bypass_cache=bypass_cache)
        finally:
            await processor.scraper.close()

    try:
        result = asyncio.run(_discover_async())
    except KubeChainError as e:
        logger.error(f"Discovery failed: {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}")
        logger.error("Discovery failed: %s", traceback.format_exc())
        raise typer.Exit(code=1)

    if output == OutputFormat.JSON:
        echo_json(result.model_dump(mode="json"))
    else:
        ConsoleReporter().report_discovery(result)

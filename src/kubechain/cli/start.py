# src/kubechain/cli/start.py
"""
Start command for the KubeChain CLI.

Runs a discovery cycle every DISCOVERY_INTERVAL until the process receives
SIGINT or SIGTERM.
"""

import asyncio
import logging
import signal
import traceback

import typer

from ..core.config import config
from ..core.factory import get_processor, get_supply_chain
from ..core.scheduler import Scheduler
from ..core.telemetry import initialize_telemetry

logger = logging.getLogger(__name__)

app = typer.Typer(name="start", help="Start the KubeChain discovery service.")


async def run_service(stop_event: asyncio.Event) -> None:
    """Schedules periodic discovery until stop_event is set."""
    templates = get_supply_chain()
    logger.info("Supply chain ready with %d templates.", len(templates))

    processor = get_processor()

    async def discovery_cycle():
        await processor.run()

    scheduler = Scheduler()
    scheduler.add_job_from_string(discovery_cycle, config.DISCOVERY_INTERVAL)
    try:
        await stop_event.wait()
    finally:
        await scheduler.stop()
        await processor.scraper.close()


@app.callback(invoke_without_command=True)
def start(ctx: typer.Context) -> None:
    """
    Start the discovery loop.
    """
    if ctx.invoked_subcommand is not None:
        return

    logger.info("Initializing KubeChain...")
    if config.OTEL_ENABLED:
        initialize_telemetry()

    async def _start_async():
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        logger.info("KubeChain is running. Press CTRL+C to exit.")
        await run_service(stop_event)

    try:
        asyncio.run(_start_async())
        logger.info("Shutting down KubeChain service gracefully.")
    except Exception as e:
        logger.error(f"An unexpected error occurred during startup: {e}")
        logger.error("Startup failed: %s", traceback.format_exc())
        raise typer.Exit(code=1)

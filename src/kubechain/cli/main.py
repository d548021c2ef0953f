# src/kubechain/cli/main.py
"""
This module is the main entry point for the KubeChain CLI.

It aggregates all commands from the submodules (supply-chain, discover, start).
"""

import logging

import typer

from ..core.config import config
from . import discover, start, supply_chain

# --- Setup Logger ---
logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="kubechain",
    help="Discover Kubernetes workloads and the supply chain that links them.",
    add_completion=False,
)


def version_callback(value: bool):
    """
    Prints the version of KubeChain.
    """
    if value:
        from .. import __version__

        typer.echo(f"KubeChain version: {__version__}")
        raise typer.Exit()


@app.command()
def version():
    """
    Show the version of KubeChain.
    """
    from .. import __version__

    typer.echo(f"KubeChain version: {__version__}")


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """
    KubeChain CLI main entry point.
    """
    pass


# Register command sub-apps
app.add_typer(supply_chain.app, name="supply-chain")
app.add_typer(discover.app, name="discover")
app.add_typer(start.app, name="start")


if __name__ == "__main__":
    app()

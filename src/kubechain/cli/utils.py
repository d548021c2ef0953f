# src/kubechain/cli/utils.py
import json
from enum import Enum
from typing import Any

import typer


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


def echo_json(payload: Any) -> None:
    """Prints a JSON document built from Pydantic model dumps."""
    typer.echo(json.dumps(payload, indent=2, sort_keys=False))

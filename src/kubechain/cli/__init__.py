# src/kubechain/cli/__init__.py
"""
KubeChain CLI Package

This package exposes the top-level Typer `app` so tests and the console
entrypoint can import `kubechain.cli.app`.
"""

import logging

from ..reporters.console_reporter import ConsoleReporter
from .main import app

logger = logging.getLogger(__name__)

__all__ = ["app", "ConsoleReporter"]

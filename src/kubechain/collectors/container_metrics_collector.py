# src/kubechain/collectors/container_metrics_collector.py

"""
ContainerMetricsCollector fetches per-container CPU and memory usage series
from Prometheus over the discovery sample window. These series feed the
container spec aggregation.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..core.config import Config, parse_duration
from ..models.metrics import ContainerUsage, MetricPoint
from ..utils.http_client import get_async_http_client
from .base_collector import BaseCollector

logger = logging.getLogger(__name__)

CPU = "cpu"
MEMORY = "memory"


class ContainerMetricsCollector(BaseCollector):
    """
    Collects container usage series from the Prometheus range query API.
    """

    def __init__(self, settings: Config):
        self.settings = settings
        self.base_url = settings.PROMETHEUS_URL
        self.step = settings.PROMETHEUS_QUERY_RANGE_STEP
        self.window = parse_duration(settings.DISCOVERY_SAMPLE_WINDOW)
        self.verify = getattr(settings, "PROMETHEUS_VERIFY_CERTS", True)
        self.bearer_token = getattr(settings, "PROMETHEUS_BEARER_TOKEN", None)
        self.username = getattr(settings, "PROMETHEUS_USERNAME", None)
        self.password = getattr(settings, "PROMETHEUS_PASSWORD", None)

        container_filter = "container!='',container!='POD'"
        # CPU in cores; converted to millicores when parsed
        self.queries = {
            CPU: (
                f"sum(rate(container_cpu_usage_seconds_total{{{container_filter}}}[{self.step}])) "
                "by (namespace, pod, container)"
            ),
            MEMORY: f"sum(container_memory_working_set_bytes{{{container_filter}}}) by (namespace, pod, container)",
        }
        self.scales = {CPU: 1000.0, MEMORY: 1.0}

    async def collect(self, end: Optional[float] = None) -> List[ContainerUsage]:
        """
        Fetch usage series for every container.

        Args:
            end: Unix timestamp (seconds) closing the sample window; defaults to now.

        Returns a list of ContainerUsage, or an empty list if Prometheus is not
        configured or cannot be queried.
        """
        if not self.base_url:
            logger.debug("PROMETHEUS_URL is not set; skipping container metrics collection.")
            return []

        end = end if end is not None else time.time()
        start = end - self.window.total_seconds()

        usage: Dict[Tuple[str, str, str], ContainerUsage] = {}
        async with get_async_http_client(verify=self.verify) as client:
            for resource, query in self.queries.items():
                results = await self._query_range(client, query, start, end)
                for item in results:
                    parsed = self._parse_series(item, self.scales[resource])
                    if parsed is None:
                        continue
                    key, points = parsed
                    entry = usage.get(key)
                    if entry is None:
                        entry = ContainerUsage(namespace=key[0], pod_name=key[1], container_name=key[2])
                        usage[key] = entry
                    getattr(entry, resource).extend(points)

        logger.info("Collected usage series for %d containers.", len(usage))
        return list(usage.values())

    async def _query_range(
        self, client: httpx.AsyncClient, query: str, start: float, end: float
    ) -> List[Dict[str, Any]]:
        """Runs a range query and returns its 'result' list, or [] on failure."""
        url = f"{self.base_url.rstrip('/')}/api/v1/query_range"
        params = {"query": query, "start": start, "end": end, "step": self.step}

        headers = {}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        auth = (self.username, self.password) if self.username and self.password else None

        try:
            response = await client.get(url, params=params, headers=headers, auth=auth)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("Prometheus range query to %s failed: %s", url, e)
            return []
        except ValueError:
            logger.error("Failed to decode JSON from %s.", url)
            return []

        if data.get("status") != "success":
            logger.warning("Prometheus query did not succeed: %s", data.get("error"))
            return []
        return data.get("data", {}).get("result", [])

    @staticmethod
    def _parse_series(item: Dict[str, Any], scale: float) -> Optional[Tuple[Tuple[str, str, str], List[MetricPoint]]]:
        metric = item.get("metric", {})
        try:
            key = (metric["namespace"], metric["pod"], metric["container"])
            points = [
                MetricPoint(value=float(value) * scale, timestamp_ms=int(float(ts) * 1000))
                for ts, value in item.get("values", [])
            ]
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed Prometheus series: %s", item)
            return None
        return key, points

# tests/collectors/test_container_metrics_collector.py
"""
Tests for the ContainerMetricsCollector. All requests to the Prometheus API
are mocked with respx.
"""

from unittest.mock import MagicMock

import httpx
import pytest
import respx
from httpx import Response

from kubechain.collectors.container_metrics_collector import ContainerMetricsCollector

PROMETHEUS_URL = "http://prometheus:9090"
QUERY_RANGE_URL = f"{PROMETHEUS_URL}/api/v1/query_range"


def _settings(**overrides):
    settings = MagicMock()
    settings.PROMETHEUS_URL = PROMETHEUS_URL
    settings.PROMETHEUS_QUERY_RANGE_STEP = "1m"
    settings.DISCOVERY_SAMPLE_WINDOW = "10m"
    settings.PROMETHEUS_VERIFY_CERTS = True
    settings.PROMETHEUS_BEARER_TOKEN = None
    settings.PROMETHEUS_USERNAME = None
    settings.PROMETHEUS_PASSWORD = None
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def _matrix(*series):
    return {
        "status": "success",
        "data": {
            "resultType": "matrix",
            "result": [
                {"metric": {"namespace": ns, "pod": pod, "container": container}, "values": values}
                for ns, pod, container, values in series
            ],
        },
    }


CPU_RESPONSE = _matrix(
    ("prod", "api-1", "app", [[1700000000, "0.25"], [1700000060, "0.5"]]),
    ("prod", "api-2", "app", [[1700000000, "0.1"]]),
)
MEMORY_RESPONSE = _matrix(("prod", "api-1", "app", [[1700000000, "1048576"]]))


def _respond(request: httpx.Request) -> Response:
    query = request.url.params["query"]
    if "container_cpu_usage_seconds_total" in query:
        return Response(200, json=CPU_RESPONSE)
    return Response(200, json=MEMORY_RESPONSE)


@pytest.mark.asyncio
@respx.mock
async def test_collect_parses_series():
    route = respx.get(url__startswith=QUERY_RANGE_URL).mock(side_effect=_respond)

    usage = await ContainerMetricsCollector(_settings()).collect(end=1700000600)

    assert route.call_count == 2
    by_pod = {u.pod_name: u for u in usage}
    assert set(by_pod) == {"api-1", "api-2"}

    api_1 = by_pod["api-1"]
    assert [p.value for p in api_1.cpu] == pytest.approx([250.0, 500.0])
    assert [p.timestamp_ms for p in api_1.cpu] == [1700000000000, 1700000060000]
    assert [p.value for p in api_1.memory] == [1048576.0]
    assert by_pod["api-2"].memory == []

    params = route.calls[0].request.url.params
    assert float(params["start"]) == pytest.approx(1700000000)
    assert float(params["end"]) == pytest.approx(1700000600)
    assert params["step"] == "1m"


@pytest.mark.asyncio
@respx.mock
async def test_collect_sends_bearer_token():
    route = respx.get(url__startswith=QUERY_RANGE_URL).mock(side_effect=_respond)

    await ContainerMetricsCollector(_settings(PROMETHEUS_BEARER_TOKEN="secret")).collect(end=1700000600)

    assert route.calls[0].request.headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_collect_without_prometheus_url():
    assert await ContainerMetricsCollector(_settings(PROMETHEUS_URL="")).collect() == []


@pytest.mark.asyncio
@respx.mock
async def test_collect_http_error_returns_empty():
    respx.get(url__startswith=QUERY_RANGE_URL).mock(return_value=Response(503))

    assert await ContainerMetricsCollector(_settings()).collect(end=1700000600) == []


@pytest.mark.asyncio
@respx.mock
async def test_collect_connection_error_returns_empty():
    respx.get(url__startswith=QUERY_RANGE_URL).mock(side_effect=httpx.ConnectError("connection refused"))

    assert await ContainerMetricsCollector(_settings()).collect(end=1700000600) == []


@pytest.mark.asyncio
@respx.mock
async def test_collect_failed_query_returns_empty():
    respx.get(url__startswith=QUERY_RANGE_URL).mock(
        return_value=Response(200, json={"status": "error", "errorType": "bad_data", "error": "parse error"})
    )

    assert await ContainerMetricsCollector(_settings()).collect(end=1700000600) == []


@pytest.mark.asyncio
@respx.mock
async def test_collect_skips_malformed_series():
    response = _matrix(("prod", "api-1", "app", [[1700000000, "0.5"]]))
    response["data"]["result"].append({"metric": {"namespace": "prod"}, "values": [[1700000000, "1"]]})
    respx.get(url__startswith=QUERY_RANGE_URL).mock(return_value=Response(200, json=response))

    usage = await ContainerMetricsCollector(_settings()).collect(end=1700000600)

    assert [u.pod_name for u in usage] == ["api-1"]

# tests/conftest.py

import pytest
from kubernetes.client import models as k8s


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Pytest fixture to mock environment variables for the config module.

    This fixture runs automatically for every test (`autouse=True`) so the
    settings read at access time are predictable and isolated from the
    actual environment.
    """
    monkeypatch.setenv("STITCHING_PROPERTY_TYPE", "UUID")
    monkeypatch.setenv("OWNER_CACHE_TTL", "24h")
    monkeypatch.delenv("VM_PRIORITY", raising=False)
    monkeypatch.delenv("VM_TEMPLATE_BASE", raising=False)
    monkeypatch.delenv("CONTAINER_UTILIZATION_DATA_AGG_STRATEGY", raising=False)
    monkeypatch.delenv("CONTAINER_USAGE_DATA_AGG_STRATEGY", raising=False)


@pytest.fixture(autouse=True)
def clear_factory_caches():
    """Resets the lru_cache singletons of the factory between tests."""
    from kubechain.core import factory

    factory.get_ownership_cache.cache_clear()
    factory.get_supply_chain.cache_clear()
    yield
    factory.get_ownership_cache.cache_clear()
    factory.get_supply_chain.cache_clear()


@pytest.fixture
def make_owner_ref():
    def _make(kind, name, uid, controller=True):
        return k8s.V1OwnerReference(api_version="apps/v1", kind=kind, name=name, uid=uid, controller=controller)

    return _make


@pytest.fixture
def make_k8s_pod(make_owner_ref):
    """Builds a V1Pod; owners is a list of (kind, name, uid) controller references."""

    def _make(
        name,
        namespace="default",
        uid=None,
        node_name="node-1",
        phase="Running",
        ready=True,
        owners=(),
        containers=None,
    ):
        if containers is None:
            containers = [
                k8s.V1Container(
                    name="app",
                    resources=k8s.V1ResourceRequirements(
                        requests={"cpu": "100m", "memory": "128Mi"},
                        limits={"cpu": "500m", "memory": "512Mi"},
                    ),
                )
            ]
        return k8s.V1Pod(
            metadata=k8s.V1ObjectMeta(
                name=name,
                namespace=namespace,
                uid=uid or f"uid-{name}",
                owner_references=[make_owner_ref(*owner) for owner in owners] or None,
            ),
            spec=k8s.V1PodSpec(node_name=node_name, containers=containers),
            status=k8s.V1PodStatus(
                phase=phase,
                conditions=[k8s.V1PodCondition(type="Ready", status="True" if ready else "False")],
            ),
        )

    return _make


@pytest.fixture
def make_k8s_node():
    def _make(name="node-1", uid="node-uid-1", system_uuid="ABCD-1234", addresses=None, cpu="4", memory="8Gi"):
        if addresses is None:
            addresses = [("InternalIP", "10.0.0.1"), ("Hostname", name)]
        return k8s.V1Node(
            metadata=k8s.V1ObjectMeta(name=name, uid=uid),
            status=k8s.V1NodeStatus(
                capacity={"cpu": cpu, "memory": memory},
                addresses=[k8s.V1NodeAddress(type=t, address=a) for t, a in addresses],
                node_info=k8s.V1NodeSystemInfo(
                    architecture="amd64",
                    boot_id="boot",
                    container_runtime_version="containerd://1.7",
                    kernel_version="6.1",
                    kube_proxy_version="v1.29",
                    kubelet_version="v1.29",
                    machine_id="machine",
                    operating_system="linux",
                    os_image="Ubuntu",
                    system_uuid=system_uuid,
                ),
            ),
        )

    return _make

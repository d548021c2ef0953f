# tests/core/test_k8s_client.py

from unittest.mock import patch

import pytest
from kubernetes import config as k8s_config

from kubechain.core import k8s_client


@pytest.fixture(autouse=True)
def reset_config_state(monkeypatch):
    monkeypatch.setattr(k8s_client, "_CONFIG_LOADED", False)


@patch("kubechain.core.k8s_client.config.load_kube_config")
@patch("kubechain.core.k8s_client.config.load_incluster_config")
def test_prefers_in_cluster_config(mock_incluster, mock_kubeconfig):
    assert k8s_client.ensure_k8s_config() is True
    mock_kubeconfig.assert_not_called()
    # Loaded once per process
    assert k8s_client.ensure_k8s_config() is True
    mock_incluster.assert_called_once()


@patch("kubechain.core.k8s_client.config.load_kube_config")
@patch("kubechain.core.k8s_client.config.load_incluster_config")
def test_falls_back_to_kubeconfig(mock_incluster, mock_kubeconfig):
    mock_incluster.side_effect = k8s_config.ConfigException("not in cluster")

    assert k8s_client.ensure_k8s_config() is True
    mock_kubeconfig.assert_called_once()


@patch("kubechain.core.k8s_client.config.load_kube_config")
@patch("kubechain.core.k8s_client.config.load_incluster_config")
def test_no_configuration(mock_incluster, mock_kubeconfig):
    mock_incluster.side_effect = k8s_config.ConfigException("not in cluster")
    mock_kubeconfig.side_effect = FileNotFoundError("~/.kube/config")

    assert k8s_client.ensure_k8s_config() is False
    assert k8s_client.get_core_v1_api() is None
    assert k8s_client.get_apps_v1_api() is None

import logging
import threading
import typing

from kubernetes import client, config

logger = logging.getLogger(__name__)

# Global lock to prevent race conditions during config loading
_CONFIG_LOCK = threading.Lock()
_CONFIG_LOADED = False


def ensure_k8s_config() -> bool:
    """
    Ensures that the Kubernetes configuration is loaded exactly once.

    Returns:
        bool: True if config was loaded successfully (or was already loaded), False otherwise.
    """
    global _CONFIG_LOADED

    if _CONFIG_LOADED:
        return True

    with _CONFIG_LOCK:
        if _CONFIG_LOADED:
            return True

        try:
            logger.debug("Attempting to load in-cluster Kubernetes config...")
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration.")
            _CONFIG_LOADED = True
            return True
        except config.ConfigException:
            logger.debug("In-cluster config not found.")

        try:
            logger.debug("Attempting to load local kubeconfig...")
            config.load_kube_config()
            logger.info("Loaded Kubernetes configuration from kubeconfig file.")
            _CONFIG_LOADED = True
            return True
        except (config.ConfigException, FileNotFoundError):
            logger.warning("Could not find kubeconfig file.")

    logger.warning("Failed to load any Kubernetes configuration.")
    return False


def get_core_v1_api() -> typing.Optional[client.CoreV1Api]:
    """Returns a configured CoreV1Api instance, or None without a usable configuration."""
    if ensure_k8s_config():
        return client.CoreV1Api()
    return None


def get_apps_v1_api() -> typing.Optional[client.AppsV1Api]:
    """Returns a configured AppsV1Api instance, used to read ReplicaSets."""
    if ensure_k8s_config():
        return client.AppsV1Api()
    return None

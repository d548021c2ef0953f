# src/kubechain/core/config.py

import logging
import os
import re
from datetime import timedelta

from dotenv import load_dotenv

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

_DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: str) -> timedelta:
    """Parses a duration string like '30s', '10m', '24h' or '7d' into a timedelta."""
    match = _DURATION_PATTERN.match(str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid duration '{value}'. Use a number followed by 's', 'm', 'h' or 'd'.")
    amount, unit = int(match.group(1)), match.group(2)
    return timedelta(**{_DURATION_UNITS[unit]: amount})


def _as_bool(value: str) -> bool:
    return str(value).lower() in ("true", "1", "t", "y", "yes")


class Config:
    """
    Handles the application's configuration by loading values from environment variables.
    """

    def __init__(self):
        # -- Prometheus variables ---
        self.PROMETHEUS_BEARER_TOKEN = self._get_secret("PROMETHEUS_BEARER_TOKEN")
        self.PROMETHEUS_USERNAME = self._get_secret("PROMETHEUS_USERNAME")
        self.PROMETHEUS_PASSWORD = self._get_secret("PROMETHEUS_PASSWORD")

    @staticmethod
    def _get_secret(key: str, default: str = None) -> str:
        """
        Retrieves a secret from a file (Docker secret/volume) or falls back to environment variable.

        Raises:
            PermissionError: If the secret file exists but cannot be read due to permissions.
            IOError: If the secret file exists but cannot be read due to I/O errors.
        """
        secret_file = f"/etc/kubechain/secrets/{key}"
        if os.path.exists(secret_file):
            try:
                with open(secret_file, "r") as f:
                    value = f.read().strip()
                    logging.getLogger(__name__).debug(f"Loaded secret '{key}' from {secret_file}")
                    return value
            except PermissionError as e:
                raise PermissionError(
                    f"Secret file '{secret_file}' exists but cannot be read due to permission denied. "
                    f"Please check file permissions or run with appropriate privileges."
                ) from e
            except (IOError, OSError) as e:
                raise IOError(
                    f"Secret file '{secret_file}' exists but cannot be read: {e}. "
                    f"Please check the file integrity and system resources."
                ) from e
        return os.getenv(key, default)

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Supply chain and aggregation variables (read at access time) ---
    @property
    def STITCHING_PROPERTY_TYPE(self) -> str:
        return os.getenv("STITCHING_PROPERTY_TYPE", "UUID").upper()

    @property
    def VM_PRIORITY(self) -> int:
        return int(os.getenv("VM_PRIORITY", "-1"))

    @property
    def VM_TEMPLATE_BASE(self) -> bool:
        return _as_bool(os.getenv("VM_TEMPLATE_BASE", "False"))

    @property
    def CONTAINER_UTILIZATION_DATA_AGG_STRATEGY(self) -> str:
        return os.getenv("CONTAINER_UTILIZATION_DATA_AGG_STRATEGY", "allUtilizationData")

    @property
    def CONTAINER_USAGE_DATA_AGG_STRATEGY(self) -> str:
        return os.getenv("CONTAINER_USAGE_DATA_AGG_STRATEGY", "avgUsageData")

    @property
    def OWNER_CACHE_TTL(self) -> str:
        return os.getenv("OWNER_CACHE_TTL", "24h")

    @property
    def owner_cache_ttl(self) -> timedelta:
        return parse_duration(self.OWNER_CACHE_TTL)

    # --- Discovery variables ---
    DISCOVERY_INTERVAL = os.getenv("DISCOVERY_INTERVAL", "10m")
    DISCOVERY_SAMPLE_WINDOW = os.getenv("DISCOVERY_SAMPLE_WINDOW", "10m")

    # -- Prometheus variables ---
    PROMETHEUS_URL = os.getenv("PROMETHEUS_URL", "")
    PROMETHEUS_QUERY_RANGE_STEP = os.getenv("PROMETHEUS_QUERY_RANGE_STEP", "1m")
    PROMETHEUS_VERIFY_CERTS = _as_bool(os.getenv("PROMETHEUS_VERIFY_CERTS", "True"))

    # --- HTTP client defaults ---
    DEFAULT_TIMEOUT_CONNECT = float(os.getenv("DEFAULT_TIMEOUT_CONNECT", "5"))
    DEFAULT_TIMEOUT_READ = float(os.getenv("DEFAULT_TIMEOUT_READ", "30"))
    USER_AGENT = os.getenv("USER_AGENT", "kubechain")

    # --- Telemetry ---
    OTEL_ENABLED = _as_bool(os.getenv("OTEL_ENABLED", "False"))

    def validate_instance(self):
        for name in ("DISCOVERY_INTERVAL", "DISCOVERY_SAMPLE_WINDOW", "PROMETHEUS_QUERY_RANGE_STEP", "OWNER_CACHE_TTL"):
            try:
                parse_duration(getattr(self, name))
            except ValueError as e:
                raise ValueError(f"{name} is invalid: {e}") from e
        if not self.PROMETHEUS_URL:
            logging.warning("PROMETHEUS_URL is not set; container metrics will not be collected.")


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()

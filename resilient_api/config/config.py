import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "client.yaml")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class ClientConfig:
    base_url: str
    headers: Dict[str, Any] = field(default_factory=dict)
    log_channel: Optional[str] = None
    timeout: float = 30
    http_errors: bool = False
    max_retries: int = 5
    retry_delay_ms: int = 1000


def _env(name: str, default: Any) -> Any:
    # blank values count as unset
    value = os.getenv(name, "").strip()
    return value if value else default


def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def load_config(path: Optional[str] = None) -> ClientConfig:
    """Load and validate client configuration from a YAML file and the environment.

    The YAML file is ``path``, else ``API_CLIENT_CONFIG``, else the packaged
    ``client.yaml``. Environment variables override file values.

    Args:
        path: Optional path to a YAML configuration file.

    Returns:
        A validated ClientConfig instance.

    Raises:
        ConfigurationError: If API_BASE_URL is missing or a value is invalid.
        FileNotFoundError: If the YAML configuration file is not found.
        yaml.YAMLError: If the YAML file contains invalid syntax.
    """
    load_dotenv()

    config_path = path or os.getenv("API_CLIENT_CONFIG", "").strip() or DEFAULT_CONFIG_PATH
    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    headers = data.get("headers") or {}
    options = data.get("options") or {}
    retry = data.get("retry") or {}

    base_url = str(_env("API_BASE_URL", data.get("base_url") or "")).strip()
    if not base_url:
        raise ConfigurationError("Missing required environment variable: API_BASE_URL")

    timeout = _env("API_TIMEOUT", options.get("timeout", 30))
    http_errors = _env("API_HTTP_ERRORS", options.get("http_errors", False))
    max_retries = _env("API_MAX_RETRIES", retry.get("max_retries", 5))
    retry_delay_ms = _env("API_RETRY_DELAY_MS", retry.get("retry_delay_ms", 1000))

    cfg = ClientConfig(
        base_url=base_url,
        headers=dict(headers),
        log_channel=_env("LOG_CHANNEL", options.get("log_channel")) or None,
        timeout=_parse_float("API_TIMEOUT", timeout),
        http_errors=_parse_bool("API_HTTP_ERRORS", http_errors),
        max_retries=_parse_int("API_MAX_RETRIES", max_retries),
        retry_delay_ms=_parse_int("API_RETRY_DELAY_MS", retry_delay_ms),
    )

    if cfg.max_retries < 0:
        raise ConfigurationError(f"API_MAX_RETRIES must be non-negative, got {cfg.max_retries}")
    if cfg.retry_delay_ms <= 0:
        raise ConfigurationError(f"API_RETRY_DELAY_MS must be positive, got {cfg.retry_delay_ms}")

    return cfg

"""Load connection and retry settings from YAML or plain mappings.

A settings file looks like::

    connection:
      endpoint: /dev/ttyUSB0
      baud_rate: 115200
      parity: none
      timeout: 500ms
    retry:
      max_retries: 5
      base_interval: 100ms
      backoff_factor: 2.0
      max_interval: 2s

``SERCON_ENDPOINT`` and ``SERCON_BAUD_RATE`` override the file.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Mapping, Optional, Tuple, Union

import yaml

from .interfaces import ConnectionConfig
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy
from .validation import validate_config

logger = logging.getLogger(__name__)

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$")
_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, None: 1.0}

ENV_ENDPOINT = "SERCON_ENDPOINT"
ENV_BAUD_RATE = "SERCON_BAUD_RATE"


def parse_duration(value: Union[int, float, str]) -> float:
    """Seconds from a number or a string such as '250ms', '2s', '1.5m'."""
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION.match(str(value))
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    return float(match.group(1)) * _UNITS[match.group(2)]


def _integer(name: str, value: Any) -> int:
    """int(value), refusing anything that would lose information."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"{name} must be an integer, got: {value!r}")


def config_from_mapping(data: Mapping[str, Any]) -> ConnectionConfig:
    """Build and validate a ConnectionConfig; missing keys take the defaults."""
    defaults = ConnectionConfig.default()
    unknown = set(data) - set(defaults.to_dict())
    if unknown:
        raise ValueError(f"unknown connection settings: {', '.join(sorted(unknown))}")

    config = ConnectionConfig(
        endpoint=str(data.get("endpoint", defaults.endpoint)),
        baud_rate=_integer("baud_rate", data.get("baud_rate", defaults.baud_rate)),
        data_bits=_integer("data_bits", data.get("data_bits", defaults.data_bits)),
        stop_bits=_integer("stop_bits", data.get("stop_bits", defaults.stop_bits)),
        parity=str(data.get("parity", defaults.parity)).lower(),
        timeout=parse_duration(data.get("timeout", defaults.timeout)),
    )
    validate_config(config)
    return config


def policy_from_mapping(data: Mapping[str, Any]) -> RetryPolicy:
    """Build and validate a RetryPolicy; missing keys take the defaults."""
    d = DEFAULT_RETRY_POLICY
    policy = RetryPolicy(
        max_retries=_integer("max_retries", data.get("max_retries", d.max_retries)),
        base_interval=parse_duration(data.get("base_interval", d.base_interval)),
        backoff_factor=float(data.get("backoff_factor", d.backoff_factor)),
        max_interval=parse_duration(data.get("max_interval", d.max_interval)),
    )
    policy.validate()
    return policy


def load_settings(
    path: str,
    environ: Optional[Mapping[str, str]] = None,
) -> Tuple[ConnectionConfig, RetryPolicy]:
    """
    Read a YAML settings file.

    Args:
        path: YAML file with optional ``connection`` and ``retry`` sections.
        environ: Environment used for overrides (defaults to os.environ).

    Returns:
        (config, policy), both validated.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid settings file (expected mapping): {path}")

    connection = dict(data.get("connection") or {})
    env = os.environ if environ is None else environ
    if env.get(ENV_ENDPOINT):
        connection["endpoint"] = env[ENV_ENDPOINT]
    if env.get(ENV_BAUD_RATE):
        connection["baud_rate"] = _integer(ENV_BAUD_RATE, env[ENV_BAUD_RATE])

    config = config_from_mapping(connection)
    policy = policy_from_mapping(data.get("retry") or {})
    logger.debug("Loaded settings from %s: %s, %s", path, config, policy)
    return config, policy


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Basic stderr logging for applications embedding sercon."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

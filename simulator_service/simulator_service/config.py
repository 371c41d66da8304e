"""Service settings read from the environment."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigurationError

DEFAULT_MIN_THREADS = 20
DEFAULT_MAX_THREADS = 20
DEFAULT_SURCHARGE_MAX = 3


@dataclass(frozen=True)
class ServiceSettings:
    """Defaults applied when a simulation request leaves them out."""

    min_threads: int = DEFAULT_MIN_THREADS
    max_threads: int = DEFAULT_MAX_THREADS
    surcharge_max: int = DEFAULT_SURCHARGE_MAX
    batch_timeout: Optional[float] = None
    http_pool_size: Optional[int] = None
    log_level: str = "INFO"
    ensure_schema: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from, ``os.environ`` by default.

        Returns:
            ServiceSettings: Parsed settings.

        Raises:
            ConfigurationError: If a variable holds a malformed number.
        """
        env = os.environ if environ is None else environ
        return cls(
            min_threads=_read_int(env, "MIN_THREADS", DEFAULT_MIN_THREADS),
            max_threads=_read_int(env, "MAX_THREADS", DEFAULT_MAX_THREADS),
            surcharge_max=_read_int(env, "SURCHARGE_MAX", DEFAULT_SURCHARGE_MAX),
            batch_timeout=_read_float(env, "BATCH_TIMEOUT"),
            http_pool_size=_read_int(env, "HTTP_POOL_SIZE", None),
            log_level=env.get("LOG_LEVEL", "INFO"),
            ensure_schema=env.get("DB_ENSURE_SCHEMA", "").lower() in ("1", "true", "yes"),
        )


def _read_int(env: Mapping[str, str], key: str, default: Optional[int]) -> Optional[int]:
    value = env.get(key)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _read_float(env: Mapping[str, str], key: str) -> Optional[float]:
    value = env.get(key)
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from e

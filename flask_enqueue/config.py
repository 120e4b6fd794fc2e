from __future__ import annotations

import os
from typing import Any, Callable, Mapping

_ENV_KEY = "FLASK_ENV"
_DEFAULT_ENV = "development"
_VALID_ENVS = ("development", "testing", "staging", "production")
# Older names for the environment switch; refuse them rather than guess.
_REJECTED_ENV_KEYS = ("APP_ENV", "ENQUEUE_ENV", "ENVIRONMENT")
_BOOLEANS = {
    "1": True, "true": True, "yes": True, "on": True,
    "0": False, "false": False, "no": False, "off": False,
}

DEFAULT_PROBE_TIMEOUT = 0.05
DEFAULT_SCRIPT_TYPE = "text/javascript"
DEFAULT_MEDIA = "all"


class EnvReader:
    """Typed access to environment variables; bad values fall back and are noted in ``warnings``."""

    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = dict(os.environ if data is None else data)
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def is_set(self, key: str) -> bool:
        return bool((self._data.get(key) or "").strip())

    def str(self, key: str, default: str | None = None) -> str | None:
        value = (self._data.get(key) or "").strip()
        return value or default

    def float(self, key: str, default: float) -> float:
        return self._convert(key, default, float, "a number")

    def bool(self, key: str, default: bool) -> bool:
        return self._convert(key, default, lambda value: _BOOLEANS[value.lower()], "a boolean")

    def _convert(self, key: str, default: Any, parse: Callable[[str], Any], expected: str) -> Any:
        value = self.str(key)
        if value is None:
            return default
        try:
            return parse(value)
        except (KeyError, ValueError):
            self.warn(f"{key}={value!r} is not {expected}; using {default!r}.")
            return default


def resolve_environment(reader: EnvReader) -> str:
    """Name of the active config class, taken from ``FLASK_ENV``."""
    rejected = [key for key in _REJECTED_ENV_KEYS if reader.is_set(key)]
    if rejected:
        raise RuntimeError(f"{', '.join(rejected)} not supported; set {_ENV_KEY} instead.")

    name = (reader.str(_ENV_KEY) or _DEFAULT_ENV).lower()
    if name not in _VALID_ENVS:
        raise RuntimeError(f"Invalid {_ENV_KEY}={name!r}. Expected one of {', '.join(_VALID_ENVS)}.")
    return name


def _resolve_probe_timeout(reader: EnvReader) -> float:
    timeout = reader.float("ENQUEUE_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT)
    if timeout <= 0:
        reader.warn(f"ENQUEUE_PROBE_TIMEOUT must be positive; using {DEFAULT_PROBE_TIMEOUT}.")
        return DEFAULT_PROBE_TIMEOUT
    return timeout


env = EnvReader()
ACTIVE_ENV = resolve_environment(env)


class BaseConfig:
    FLASK_ENV = ACTIVE_ENV

    # Seconds allowed for the HEAD request that checks a source exists.
    ENQUEUE_PROBE_TIMEOUT = _resolve_probe_timeout(env)
    # Appended as ?ver= to sources registered without an explicit version.
    ENQUEUE_DEFAULT_VERSION = env.str("ENQUEUE_DEFAULT_VERSION")
    ENQUEUE_DEFAULT_MEDIA = env.str("ENQUEUE_DEFAULT_MEDIA", DEFAULT_MEDIA)

    LOG_LEVEL = env.str("LOG_LEVEL", "WARNING")
    LOG_REDACT_SECRETS = env.bool("LOG_REDACT_SECRETS", True)


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    ENQUEUE_DEFAULT_VERSION = None


class StagingConfig(BaseConfig):
    DEBUG = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = env.str("LOG_LEVEL", "INFO")


config_map = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}

Config = config_map[ACTIVE_ENV]
ENV_DIAGNOSTICS = {
    "active": ACTIVE_ENV,
    "source": _ENV_KEY,
    "warnings": tuple(env.warnings),
}

"""Configuration helpers for expiring-map."""

from dataclasses import dataclass
import os

from dotenv import dotenv_values

from .errors import InvalidConfigurationError


@dataclass(frozen=True)
class ExpiringMapConfig:
    default_ttl_seconds: float
    lazy_eviction: bool = False


def _parse_bool(value: str | None, default: str) -> bool:
    return (value or default).strip().lower() in {"1", "true", "yes"}


def _parse_ttl(value: str | None, default: str) -> float:
    raw = (value or default).strip()
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(
            "default_ttl_seconds", f"EXPIRING_MAP_DEFAULT_TTL_SECONDS is not a number: {raw!r}"
        ) from exc


def load_config(env_file: str | None = None) -> ExpiringMapConfig:
    """Read map options from the environment.

    Values from ``env_file`` fill in variables the process environment does
    not set; ``os.environ`` itself is left untouched.
    """
    env: dict[str, str | None] = {}
    if env_file:
        env.update(dotenv_values(env_file))
    env.update(os.environ)
    return ExpiringMapConfig(
        default_ttl_seconds=_parse_ttl(env.get("EXPIRING_MAP_DEFAULT_TTL_SECONDS"), "300"),
        lazy_eviction=_parse_bool(env.get("EXPIRING_MAP_LAZY_EVICTION"), "false"),
    )

"""Configuration management for the messaging service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .credentials import DEFAULT_BCRYPT_ROUNDS
from .database import resolve_database_path
from .tokens import DEFAULT_ALGORITHM

_KNOWN_FIELDS = {
    "database_path",
    "secret_key",
    "bcrypt_rounds",
    "token_algorithm",
    "token_ttl_seconds",
    "host",
    "port",
}


def _resolve_path(raw: str, base_path: Path | None) -> Path:
    candidate = Path(raw).expanduser()
    if candidate.is_absolute():
        return candidate.resolve(strict=False)
    if base_path is not None:
        return (base_path / candidate).resolve(strict=False)
    return candidate.resolve(strict=False)


def _optional_int(value: object, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field}' must be an integer") from exc


def _optional_positive_int(value: object, field: str) -> Optional[int]:
    number = _optional_int(value, field)
    if number is not None and number <= 0:
        raise ValueError(f"'{field}' must be positive")
    return number


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API and the data layer."""

    database_path: Path
    secret_key: Optional[str] = None
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    token_algorithm: str = DEFAULT_ALGORITHM
    token_ttl_seconds: Optional[int] = None
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def token_ttl(self) -> Optional[timedelta]:
        if self.token_ttl_seconds is None:
            return None
        return timedelta(seconds=self.token_ttl_seconds)

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""

        unknown = set(data.keys()) - _KNOWN_FIELDS
        if unknown:
            raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        raw_db_path = data.get("database_path")
        if raw_db_path:
            database_path = _resolve_path(str(raw_db_path), base_path)
        else:
            database_path = resolve_database_path(None)

        bcrypt_rounds = _optional_int(data.get("bcrypt_rounds"), "bcrypt_rounds")
        port = _optional_int(data.get("port"), "port")
        ttl_seconds = _optional_positive_int(data.get("token_ttl_seconds"), "token_ttl_seconds")

        secret_key = data.get("secret_key")

        return Settings(
            database_path=database_path,
            secret_key=str(secret_key) if secret_key else None,
            bcrypt_rounds=bcrypt_rounds if bcrypt_rounds is not None else DEFAULT_BCRYPT_ROUNDS,
            token_algorithm=str(data.get("token_algorithm") or DEFAULT_ALGORITHM),
            token_ttl_seconds=ttl_seconds,
            host=str(data.get("host") or "127.0.0.1"),
            port=port if port is not None else 8000,
        )


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "messagely.yaml").resolve(strict=False)
    return candidate


def _apply_env_overrides(settings: Settings, environ: Mapping[str, str]) -> Settings:
    overrides: Dict[str, object] = {}

    db_path = environ.get("MESSAGELY_DB_PATH")
    if db_path:
        overrides["database_path"] = resolve_database_path(db_path)

    secret_key = environ.get("MESSAGELY_SECRET_KEY")
    if secret_key:
        overrides["secret_key"] = secret_key

    rounds = _optional_int(environ.get("MESSAGELY_BCRYPT_ROUNDS"), "MESSAGELY_BCRYPT_ROUNDS")
    if rounds is not None:
        overrides["bcrypt_rounds"] = rounds

    ttl = _optional_positive_int(environ.get("MESSAGELY_TOKEN_TTL"), "MESSAGELY_TOKEN_TTL")
    if ttl is not None:
        overrides["token_ttl_seconds"] = ttl

    if not overrides:
        return settings
    return replace(settings, **overrides)


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from a YAML file, then apply ``MESSAGELY_*`` environment overrides."""

    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("MESSAGELY_CONFIG"))

    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        settings = Settings.from_dict(raw, base_path=path.parent)
    else:
        settings = Settings.from_dict({})

    return _apply_env_overrides(settings, env)


__all__ = ["Settings", "load_settings", "resolve_config_path"]

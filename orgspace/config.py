"""
Organization engine configuration.

Layers are merged in a fixed order, later layers winning:

1. built-in defaults (field defaults on ``OrganizationConfig``)
2. file values (a mapping, usually parsed from the host config file)
3. environment variables (``ORG_*``)
4. programmatic overrides

A layer sets a value only when it carries the key. An explicit ``0`` or
``False`` is a real override, never "unset".
"""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from orgspace.errors import ConfigError


logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "ORG_CONFIG_FILE"


class OrganizationConfig(BaseModel):
    """Validated, immutable snapshot of the engine settings."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    max_organizations_per_user: int = Field(default=5, ge=0)
    max_members_per_organization: int = Field(default=50, ge=0)
    max_teams_per_organization: int = Field(default=20, ge=0)
    enable_user_creation: bool = True
    require_invitation: bool = False
    invitation_expiry_hours: int = Field(default=72, ge=1)
    enforce_unique_slug: bool = True


@dataclass(frozen=True)
class EnvSettingDefinition:
    env_var: str
    kind: type


_ENV_DEFINITIONS: Dict[str, EnvSettingDefinition] = {
    "max_organizations_per_user": EnvSettingDefinition("ORG_MAX_ORGANIZATIONS_PER_USER", int),
    "max_members_per_organization": EnvSettingDefinition("ORG_MAX_MEMBERS_PER_ORGANIZATION", int),
    "max_teams_per_organization": EnvSettingDefinition("ORG_MAX_TEAMS_PER_ORGANIZATION", int),
    "enable_user_creation": EnvSettingDefinition("ORG_ENABLE_USER_CREATION", bool),
    "require_invitation": EnvSettingDefinition("ORG_REQUIRE_INVITATION", bool),
    "invitation_expiry_hours": EnvSettingDefinition("ORG_INVITATION_EXPIRY_HOURS", int),
    "enforce_unique_slug": EnvSettingDefinition("ORG_ENFORCE_UNIQUE_SLUG", bool),
}

_ALIASES: Dict[str, str] = {to_camel(name): name for name in OrganizationConfig.model_fields}


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _canonical_keys(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase aliases onto field names so layers override each other."""
    return {_ALIASES.get(key, key): value for key, value in values.items()}


def _validate(values: Mapping[str, Any]) -> OrganizationConfig:
    try:
        return OrganizationConfig.model_validate(dict(values))
    except ValidationError as exc:
        raise ConfigError(f"Invalid organization configuration: {exc}") from exc


def load_environment_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect settings from ``ORG_*`` variables that are present and non-empty."""
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for field_name, definition in _ENV_DEFINITIONS.items():
        raw = env.get(definition.env_var)
        if raw is None or not raw.strip():
            continue
        if definition.kind is bool:
            values[field_name] = _normalize_bool(raw, default=OrganizationConfig.model_fields[field_name].default)
        else:
            try:
                values[field_name] = int(raw.strip())
            except ValueError as exc:
                raise ConfigError(f"{definition.env_var} must be an integer, got {raw!r}") from exc
    return values


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """Read a JSON settings file.

    The settings may sit at the top level or under an ``organizations`` key.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to read organization config file {path}: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("organizations"), dict):
        data = data["organizations"]
    if not isinstance(data, dict):
        raise ConfigError(f"Organization config file {path} must contain a JSON object")
    return data


def build_config(
    file_values: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> OrganizationConfig:
    """Merge the layers in order and validate once."""
    merged: Dict[str, Any] = {}
    for layer in (file_values, load_environment_overrides(environ if environ is not None else {}), overrides):
        if layer:
            merged.update(_canonical_keys(layer))
    return _validate(merged)


class ConfigStore:
    """Holds the current configuration snapshot.

    Readers take one snapshot per check; ``update`` validates the merged
    result before swapping it in, so a rejected update leaves the previous
    snapshot untouched.
    """

    def __init__(self, config: Optional[OrganizationConfig] = None):
        self._lock = threading.Lock()
        self._config = config or OrganizationConfig()

    def get(self) -> OrganizationConfig:
        with self._lock:
            return self._config

    def update(self, changes: Mapping[str, Any]) -> OrganizationConfig:
        with self._lock:
            merged = self._config.model_dump()
            merged.update(_canonical_keys(changes))
            updated = _validate(merged)
            self._config = updated
        logger.info("organization_config_updated: keys=%s", sorted(_canonical_keys(changes)))
        return updated

    def replace(self, config: OrganizationConfig) -> None:
        with self._lock:
            self._config = config


@lru_cache(maxsize=None)
def get_config_store() -> ConfigStore:
    """Return the process-wide store seeded from file and environment."""
    file_values: Dict[str, Any] = {}
    path = os.getenv(CONFIG_FILE_ENV)
    if path:
        file_values = load_config_file(path)
    config = build_config(file_values=file_values, environ=os.environ)
    logger.info(
        "organization_config_loaded: max_orgs=%s max_members=%s max_teams=%s creation=%s require_invitation=%s",
        config.max_organizations_per_user,
        config.max_members_per_organization,
        config.max_teams_per_organization,
        config.enable_user_creation,
        config.require_invitation,
    )
    return ConfigStore(config)


def refresh_config_store() -> None:
    """Drop the cached store (useful for tests)."""
    get_config_store.cache_clear()

"""Helper utilities for loading configuration values safely.

Bot credentials for the target wiki are never meant to live in the
repository.  The helpers here resolve them from a configuration mapping whose
entries may point at environment variables or at files outside the tree, and
raise descriptive errors when a required secret is missing or still set to a
documented placeholder.  The same module loads the optional YAML/JSON
configuration file consumed by the command line entry point.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping

import yaml


class MissingSecretError(RuntimeError):
    """Raised when a required secret cannot be resolved."""


DEFAULT_CREDENTIALS: Mapping[str, Mapping[str, Any]] = {
    "bot_login": {"env": "BOT_LOGIN", "required": True},
    "bot_password": {"env": "BOT_PASSWORD", "required": True},
}

_PLACEHOLDER_SECRETS: Mapping[str, Iterable[str]] = {
    "bot_login": ("your-bot-login", "username@botname"),
    "bot_password": ("your-bot-password",),
}

_VARIABLE_PATTERN = re.compile(r"\$(\w+|\{[^}]*\})")


def load_config(path: Path) -> Dict[str, Any]:
    """Load a YAML or JSON configuration file into a dictionary."""

    text = Path(path).read_text(encoding="utf-8")
    suffix = Path(path).suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in configuration file {path}: {exc}") from exc
    else:
        data = json.loads(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping at the top level")
    return dict(data)


def resolve_secrets(
    config: Mapping[str, Any],
    *,
    env: Mapping[str, str] | None = None,
    base_path: Path | None = None,
) -> Dict[str, str | None]:
    """Resolve a ``credentials`` configuration mapping.

    Parameters
    ----------
    config:
        Mapping of secret names to descriptors.  Each descriptor can be either
        a literal string value or a mapping describing where to load the
        secret (environment variable, external file, or inline default).
    env:
        Optional environment mapping.  Defaults to :data:`os.environ`.  Tests
        can inject a custom mapping to avoid mutating the real environment.
    base_path:
        If provided, relative file references are resolved against this path.
    """

    environment = dict(os.environ if env is None else env)
    root = Path(base_path) if base_path is not None else None

    resolved: Dict[str, str | None] = {}
    for name, descriptor in config.items():
        resolved[name] = _resolve_single_secret(name, descriptor, environment, root)
    return resolved


def ensure_real_secrets(values: Mapping[str, str | None]) -> Dict[str, str | None]:
    """Reject secrets left at the placeholder values shown in the README."""

    cleaned: Dict[str, str | None] = dict(values)
    offenders: list[str] = []
    for name, raw_value in cleaned.items():
        if not raw_value:
            continue
        normalized = raw_value.strip().lower()
        placeholders = {value.lower() for value in _PLACEHOLDER_SECRETS.get(name, ())}
        if normalized in placeholders:
            offenders.append(name)
    if offenders:
        raise MissingSecretError(
            "Placeholder credential detected. Replace the example value for: "
            + ", ".join(offenders)
        )
    return cleaned


def _expand_vars(value: str, environment: Mapping[str, str]) -> str:
    """Expand ``$VAR`` and ``${VAR}`` against ``environment``; unknown names are kept."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1).strip("{}")
        return environment.get(name, match.group(0))

    return _VARIABLE_PATTERN.sub(_replace, value)


def _resolve_single_secret(
    name: str,
    descriptor: Any,
    environment: Mapping[str, str],
    base_path: Path | None,
) -> str | None:
    if descriptor is None:
        return None

    if isinstance(descriptor, str):
        expanded = _expand_vars(descriptor, environment)
        if expanded and expanded != descriptor:
            return expanded
        if descriptor.lower().startswith("env:"):
            env_name = descriptor.split(":", 1)[1].strip()
            if not env_name:
                return None
            return environment.get(env_name)
        return descriptor or None

    if isinstance(descriptor, MutableMapping):
        if "env" in descriptor:
            env_name = str(descriptor["env"]).strip()
            if env_name:
                value = environment.get(env_name)
                if value:
                    return value
            default = descriptor.get("default")
            if default is not None:
                return str(default)
            if descriptor.get("required"):
                raise MissingSecretError(
                    f"Environment variable '{env_name}' required for secret '{name}'"
                )
        if "value" in descriptor:
            raw_value = descriptor.get("value")
            return str(raw_value) if raw_value is not None else None
        if "file" in descriptor:
            file_path = Path(str(descriptor["file"]))
            if not file_path.is_absolute() and base_path is not None:
                file_path = base_path / file_path
            if file_path.exists():
                return file_path.read_text(encoding="utf-8").strip()
            default = descriptor.get("default")
            if default is not None:
                return str(default)
            if descriptor.get("required"):
                raise MissingSecretError(
                    f"Secret file '{file_path}' required for secret '{name}' not found"
                )
        return None

    return None


__all__ = [
    "DEFAULT_CREDENTIALS",
    "MissingSecretError",
    "ensure_real_secrets",
    "load_config",
    "resolve_secrets",
]

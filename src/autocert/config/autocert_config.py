"""autocert configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    AutocertConfig(config_file="/etc/autocert/config.yaml")

    # 2. Any module retrieves it afterwards
    from autocert.config import get_config
    cfg = get_config()
    cfg.settings.authority.directory_url  # typed access

    # 3. Dynamic access
    cfg.get("challenges.http01.port", default=80)

Loading runs in three steps: parse the YAML (or JSON) file, resolve
``${VAR}`` / ``${VAR:-default}`` references, then validate against the
bundled JSON schema followed by cross-field checks.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from autocert.config.settings import AutocertSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_MISSING = object()

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: AutocertConfig | None = None


def get_config() -> AutocertConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`AutocertConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "AutocertConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# File loading and schema validation
# ---------------------------------------------------------------------------


def load_config_file(path: str | Path) -> dict:
    """Parse a YAML or JSON configuration file into a dict."""
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigValidationError([f"Config file not found: {path}"]) from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigValidationError([f"Cannot parse {path}: {exc}"]) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"Top level of {path} must be a mapping, got {type(data).__name__}"],
        )
    return data


def _load_schema() -> dict:
    with _SCHEMA_PATH.open(encoding="utf-8") as f:
        return json.load(f)


def validate_schema(data: dict, schema: dict | None = None) -> None:
    """Validate *data* against the bundled schema, collecting every error."""
    validator = jsonschema.Draft202012Validator(schema or _load_schema())
    errors = [
        f"{'.'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
        for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    ]
    if errors:
        raise ConfigValidationError(errors)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class AutocertConfig:
    """Central configuration for autocert.

    The JSON schema is bundled at ``config/schema.json``; users supply
    only ``config_file``.  After construction the typed settings tree
    is available at :pyattr:`settings` and the raw dict via
    :pyattr:`data` / :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path) -> None:
        """Load, validate and register the configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.

        Raises
        ------
        ConfigValidationError
            If the file is missing, unparsable, or fails validation.

        """
        global _instance  # noqa: PLW0603

        self._source = str(config_file)
        self._data = load_config_file(config_file)

        # Env vars are resolved before schema validation so substituted
        # values are checked against enum constraints.
        _resolve_env_vars(self._data)
        validate_schema(self._data)
        self.additional_checks()

        self._settings: AutocertSettings = build_settings(self._data)
        _instance = self

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> AutocertSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        return self._data

    @property
    def source(self) -> str:
        return self._source

    def get(self, path: str, default: Any = None) -> Any:  # noqa: ANN401
        """Dynamic dot-path lookup into the raw data, e.g. ``"authority.verify_ssl"``."""
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation, run after schema validation."""
        errors: list[str] = []
        warnings: list[str] = []

        domains = self._data.get("domains") or []
        authority = self._data.get("authority") or {}
        challenges = self._data.get("challenges") or {}
        output = self._data.get("output") or {}

        # -- domains --
        seen: set[str] = set()
        for domain in domains:
            lowered = domain.lower()
            if lowered in seen:
                errors.append(f"domains contains '{domain}' more than once")
            seen.add(lowered)
            if domain.startswith("*."):
                errors.append(
                    f"domains contains wildcard '{domain}', which HTTP-01 "
                    "and TLS-ALPN-01 validation cannot prove",
                )

        # -- email --
        email = self._data.get("email", "")
        if "@" not in email:
            errors.append(f"email '{email}' is not a valid address")

        # -- authority --
        directory_url = authority.get("directory_url")
        if directory_url and not directory_url.startswith("https://"):
            warnings.append(
                f"authority.directory_url ({directory_url}) does not use https",
            )
        if directory_url and authority.get("use_staging"):
            warnings.append(
                "authority.use_staging has no effect when authority.directory_url is set",
            )
        if authority.get("verify_ssl") is False:
            warnings.append("authority.verify_ssl is false; TLS certificates are not checked")

        # -- polling --
        attempts = challenges.get("poll_attempts", 60)
        interval = challenges.get("poll_interval_seconds", 2)
        if attempts * interval < 10:  # noqa: PLR2004
            warnings.append(
                f"challenges.poll_attempts ({attempts}) * "
                f"challenges.poll_interval_seconds ({interval}) gives the "
                "authority less than 10 seconds to validate",
            )

        # -- challenges --
        if (challenges.get("tls_alpn01") or {}).get("enabled"):
            errors.append(
                "challenges.tls_alpn01.enabled requires a TLS endpoint that serves "
                "TlsAlpnChallengeResponder.select_certificate; the autocert CLI "
                "only serves HTTP-01",
            )

        # -- output --
        if output.get("pem_path") and output.get("pem_path") == output.get("pfx_path"):
            errors.append("output.pem_path must differ from output.pfx_path")

        if not self._data.get("accept_terms_of_service", False):
            warnings.append(
                "accept_terms_of_service is false; registration fails if the "
                "authority publishes terms of service",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<AutocertConfig config_file={self._source}>"

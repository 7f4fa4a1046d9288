"""Configuration subsystem for autocert.

Public API::

    from autocert.config import get_config, AutocertConfig

    # At startup (CLI only):
    AutocertConfig(config_file="config.yaml")

    # Everywhere else:
    cfg     = get_config()
    domains = cfg.settings.domains                  # typed access
    port    = cfg.get("challenges.http01.port")     # dynamic dot-path
"""

from autocert.config.autocert_config import (
    AutocertConfig,
    ConfigValidationError,
    get_config,
)
from autocert.config.settings import (
    AccountStoreSettings,
    AuthoritySettings,
    AutocertSettings,
    ChallengeSettings,
    Http01Settings,
    LoggingSettings,
    OutputSettings,
    TlsAlpn01Settings,
    build_settings,
)

__all__ = [
    "AccountStoreSettings",
    "AuthoritySettings",
    # Core
    "AutocertConfig",
    # Root
    "AutocertSettings",
    # Sections
    "ChallengeSettings",
    "ConfigValidationError",
    "Http01Settings",
    "LoggingSettings",
    "OutputSettings",
    "TlsAlpn01Settings",
    "build_settings",
    "get_config",
]

"""Logging subsystem for autocert.

Public API::

    from autocert.logging import configure_logging

    configure_logging(settings.logging)
"""

from autocert.logging.setup import configure_logging, current_domain

__all__ = ["configure_logging", "current_domain"]

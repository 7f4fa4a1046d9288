"""autocert: unattended TLS certificate acquisition from ACME authorities."""

__version__ = "1.0.0"

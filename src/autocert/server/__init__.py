"""Stand-alone HTTP-01 challenge endpoint used by the CLI."""

from autocert.server.http01_app import ChallengeServer, create_app

__all__ = ["ChallengeServer", "create_app"]

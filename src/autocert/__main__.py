"""Allow ``python -m autocert``."""

from autocert.cli.main import main

main()

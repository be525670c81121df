"""CLI for the Atelier request router.

CLI Commands:
    atelier classify <request>...    Classify requests and show routes
    atelier demo                     Classify the sample request set
    atelier config                   Show active configuration
"""

from atelier.interfaces.cli.app import cli, main

__all__ = ["cli", "main"]

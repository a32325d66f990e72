"""transync command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``transync`` script).
"""

from transync.cli.main import cli

__all__ = ["cli"]

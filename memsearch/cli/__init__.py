"""Memorial search CLI.

Command-line interface over the configured document store, built with
Click and Rich.
"""

from memsearch.cli.main import cli

__all__ = ["cli"]

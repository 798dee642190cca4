"""Command-line interface for inkflow.

This module provides the CLI using Typer with rich output for
user-friendly feedback and progress reporting.

Key features:
- Live progress messages from the running job
- Verbose/quiet output modes
- Control listings for every algorithm
- Detailed error reporting
"""

from inkflow.cli.app import cli, main

__all__ = ["cli", "main"]

"""
CLI layer for sqlspine.

Provides a Typer application whose commands delegate to
:mod:`sqlspine.migrate`.  All migration logic lives there; this package
handles only terminal transport: argument parsing, coloured output and
table formatting.

Entry point::

    sqlspine --help
"""

from sqlspine.cli.app import app

__all__ = ["app"]

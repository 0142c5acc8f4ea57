"""Command line tools for capnpgen."""

from .schema_cli import SchemaCLI, main

__all__ = ["SchemaCLI", "main"]

"""Command-line interface for the memory bank server."""

from memory_bank_server import __version__

__all__ = ["__version__"]

"""Resolve Google Drive documents to their parent folders."""

__version__ = "0.1.0"

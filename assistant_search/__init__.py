"""Retrieval and ranking core for tenant chat assistants."""

__version__ = "0.1.0"

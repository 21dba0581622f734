"""Decoding, indexing and an HTTP query API for DistriAI compute-market accounts."""

__version__ = "0.1.0"
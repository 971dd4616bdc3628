"""Ingestion layer.

Everything that enters the state store from outside (repository bulk
load, change-feed pushes, imports, the local cache) passes through
:mod:`tripsync.ingestion.sanitize` first.
"""

__all__: list[str] = []

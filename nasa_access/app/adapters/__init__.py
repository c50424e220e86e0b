"""
Adapters package for the NASA access layer.

Wraps the upstream NASA API proxy. The client encapsulates:

- Base URL, credential and request shapes per endpoint
- Per-operation retry policies
- Cache management and prefetch entry points
"""

from .nasa_client import NasaApiClient

__all__ = ["NasaApiClient"]

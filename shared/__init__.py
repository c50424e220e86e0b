"""
Shared utilities for the NASA access layer.

This package aggregates common building blocks consumed by the client:

- config: Access layer configuration via pydantic-settings
- logging: Structured logging with request/batch correlation
- metrics: Prometheus metrics helpers
- errors: Semantic error taxonomy and error responses
- retry: Fixed-delay bounded retry loop

Do not import from nasa_access into shared/.
"""

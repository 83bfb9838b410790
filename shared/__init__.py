"""
Shared utilities for the token cache.

This package aggregates common building blocks consumed by the cache service:

- config: Cache configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus counters for cache outcomes
- errors: Canonical error types

Any cross-package logic should live here to avoid import cycles. Do not
import from service_* packages into shared/.
"""

"""
Shared utilities for the GitGate release gateway.

This package aggregates common building blocks consumed by the service:

- config: Settings base class via pydantic-settings, JSON config loading
- logging: Structured logging with request/device correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for outbound calls
- base_service: FastAPI service skeleton (health, metrics, error handlers)

Do not import from service_* packages into shared/.
"""

"""Resilience patterns — circuit breaker and retry for the APOD service.

Provides the circuit breaker that gates calls to the remote service and
the exponential-backoff retry policy wrapped around each request.
"""

from apod_client.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
)
from apod_client.resilience.retry import RetryPolicy, is_retryable

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "RetryPolicy",
    "is_retryable",
]

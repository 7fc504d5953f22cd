"""Structured errors, fix suggestions, error reports and a circuit breaker."""

__version__ = "0.1.0"

__all__ = ["types", "reporter", "errors", "decrust", "circuit_types", "circuitbreaker"]
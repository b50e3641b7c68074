"""Observability helpers: tracing and in-process counters."""

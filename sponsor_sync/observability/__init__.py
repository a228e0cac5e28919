"""Observability layer - structured logging."""

from sponsor_sync.observability.logging import setup_logging

__all__ = ["setup_logging"]

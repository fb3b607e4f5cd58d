"""Observability: stdlib logging under the ``fallible`` namespace."""

from .logging import JsonFormatter, configure_logging, get_logger

__all__ = ["JsonFormatter", "configure_logging", "get_logger"]

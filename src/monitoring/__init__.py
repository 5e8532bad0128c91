"""
Monitoring and metrics infrastructure for PatentVault.

This package provides:
- Application metrics collection (counters, gauges, histograms)
- Structured logging with JSON output and secret redaction
- Request timing middleware

Usage:
    from monitoring import metrics, get_logger

    metrics.increment("content_uploads_total")
    logger = get_logger(__name__)
    logger.info("Stored object", extra={"cid": cid})
"""

from monitoring.logging import LoggingContext, configure_logging, get_logger
from monitoring.metrics import MetricsCollector, metrics
from monitoring.middleware import counted, setup_request_logging, timed

__all__ = [
    "MetricsCollector",
    "metrics",
    "get_logger",
    "configure_logging",
    "LoggingContext",
    "setup_request_logging",
    "timed",
    "counted",
]

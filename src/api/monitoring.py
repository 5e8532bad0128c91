"""
Service info, health and metrics endpoints.

This blueprint provides:
- /: Service description and endpoint map
- /health: Basic health check with registry and storage status
- /health/live: Liveness probe
- /health/ready: Readiness probe (storage backend reachable)
- /metrics: Prometheus-compatible metrics endpoint
- /metrics/json: JSON format metrics
"""

import logging
import time
from datetime import UTC, datetime

from flask import Blueprint, Response, jsonify

from monitoring import metrics
from storage import StorageError

from .state import get_services

logger = logging.getLogger(__name__)

monitoring_bp = Blueprint("monitoring", __name__)

_startup_time = time.time()


@monitoring_bp.route("/", methods=["GET"])
def index():
    services = get_services()
    return jsonify({
        "service": "PatentVault Patent Registry Backend",
        "version": services.version,
        "status": "running",
        "features": [
            "Content-addressed document storage with AES-256-GCM encryption",
            "Commitment-based originality proofs",
            "Merkle trees for selective disclosure",
            "Patent lifecycle management",
        ],
        "endpoints": {
            "ipfs": "/api/ipfs/*",
            "zkp": "/api/zkp/*",
            "patents": "/api/patent/*",
            "health": "/health",
            "metrics": "/metrics",
        },
    })


@monitoring_bp.route("/health", methods=["GET"])
def health():
    """Basic health check with key statistics."""
    services = get_services()
    return jsonify({
        "status": "healthy",
        "service": "PatentVault API",
        "version": services.version,
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": time.time() - _startup_time,
        "checks": {
            "registry": {
                "status": "ok",
                "patents": services.registry.count(),
                "known_hashes": len(services.registry.known_hashes()),
            },
            "storage": _check_storage(),
        },
    })


@monitoring_bp.route("/health/live", methods=["GET"])
def liveness():
    """Returns 200 while the process is able to serve requests."""
    return jsonify({"status": "alive"})


@monitoring_bp.route("/health/ready", methods=["GET"])
def readiness():
    """
    Readiness probe.

    Returns 503 while the storage backend cannot be reached, since uploads
    and downloads would fail.
    """
    storage = _check_storage()
    if not storage["available"]:
        return jsonify({
            "status": "not_ready",
            "issues": [f"storage: {storage.get('error', 'not available')}"],
        }), 503

    return jsonify({"status": "ready"})


@monitoring_bp.route("/metrics", methods=["GET"])
def prometheus_metrics():
    _update_dynamic_metrics()
    return Response(metrics.to_prometheus(), mimetype="text/plain; charset=utf-8")


@monitoring_bp.route("/metrics/json", methods=["GET"])
def json_metrics():
    _update_dynamic_metrics()
    return jsonify(metrics.get_all())


def _check_storage() -> dict:
    """Check storage backend status."""
    backend = get_services().backend
    try:
        available = backend.is_available()
    except StorageError as e:
        logger.warning("Storage check failed: %s", e)
        return {"status": "error", "available": False, "error": str(e)}

    return {
        "status": "ok" if available else "degraded",
        "available": available,
        "backend": backend.__class__.__name__,
    }


def _update_dynamic_metrics():
    """Refresh gauges that mirror registry and storage state before export."""
    services = get_services()
    metrics.set_gauge("patents_total", services.registry.count())
    metrics.set_gauge("known_hashes_total", len(services.registry.known_hashes()))
    metrics.set_gauge("storage_available", 1 if _check_storage()["available"] else 0)

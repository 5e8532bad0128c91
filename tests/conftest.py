"""
Pytest configuration and shared fixtures for PatentVault tests.

This module provides shared fixtures and test configuration including:
- An in-memory content-addressed backend
- A fresh service graph (store, proof engine, registry) per test
- Flask app and test client wired to those services
- API authentication headers
"""

import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Set up test environment before any imports
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["PATENTVAULT_API_KEY"] = "test-api-key-12345"
os.environ["PATENTVAULT_REQUIRE_AUTH"] = "false"


@pytest.fixture
def test_config():
    """Configuration for a memory-backed test server."""
    from config import Config
    return Config(
        storage_backend="memory",
        frontend_url="http://localhost:3000",
        api_key="test-api-key-12345",
        require_auth=False,
    )


@pytest.fixture
def memory_backend():
    """Fresh in-memory backend."""
    from storage import MemoryBackend
    return MemoryBackend()


@pytest.fixture
def content_store(memory_backend):
    from content_store import ContentStore
    return ContentStore(memory_backend)


@pytest.fixture
def proof_engine():
    from zk_proofs import ProofEngine
    return ProofEngine()


@pytest.fixture
def registry(proof_engine):
    from patent_registry import PatentRegistry
    return PatentRegistry(proof_engine=proof_engine)


@pytest.fixture
def services(test_config, memory_backend):
    """Service graph over the memory backend, fresh for each test."""
    from api.state import Services
    return Services.from_config(test_config, backend=memory_backend)


@pytest.fixture
def flask_app(services):
    """Create Flask test app with fresh services for each test."""
    from api import create_app
    app = create_app(services=services)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def flask_client(flask_app):
    """Create Flask test client."""
    return flask_app.test_client()


@pytest.fixture
def test_auth_headers():
    """Headers for authenticated requests."""
    return {
        "Content-Type": "application/json",
        "X-API-Key": "test-api-key-12345"
    }


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test from empty counters."""
    from monitoring import metrics
    metrics.reset()
    yield
    metrics.reset()

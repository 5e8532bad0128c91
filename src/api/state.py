"""
Shared state for the PatentVault API.

The registry, the content store and the proof engine are owned by one
``Services`` instance per Flask app. ``create_app`` builds it (or accepts one
from tests) and stores it in ``app.extensions``; blueprints reach it through
``get_services()`` instead of module-level globals.
"""

from dataclasses import dataclass, field

from flask import current_app

from config import Config
from content_store import ContentStore
from patent_registry import PatentRegistry
from storage import ContentBackend, get_storage_backend
from zk_proofs import ProofEngine

EXTENSION_KEY = "patentvault"


@dataclass
class Services:
    """Everything a request handler needs, wired once at startup."""
    config: Config
    backend: ContentBackend
    content_store: ContentStore
    proof_engine: ProofEngine
    registry: PatentRegistry
    version: str = field(default="1.0.0")

    @classmethod
    def from_config(cls, config: Config, backend: ContentBackend | None = None) -> "Services":
        """
        Build the service graph for ``config``.

        Args:
            config: Runtime configuration
            backend: Storage backend to use instead of the configured one
        """
        backend = backend or get_storage_backend(config)
        proof_engine = ProofEngine()
        return cls(
            config=config,
            backend=backend,
            content_store=ContentStore(backend, gateway_url=config.ipfs_gateway_url),
            proof_engine=proof_engine,
            registry=PatentRegistry(proof_engine=proof_engine),
        )

    def close(self) -> None:
        self.backend.close()


def get_services() -> Services:
    """Services of the application handling the current request."""
    return current_app.extensions[EXTENSION_KEY]

"""
PatentVault - Configuration

All settings come from environment variables (a ``.env`` file is loaded by
the entry points through python-dotenv before this module is consulted).

Environment Variables:
    HOST=0.0.0.0
    PORT=4000
    FLASK_DEBUG=false
    FRONTEND_URL=http://localhost:3000
    MAX_CONTENT_LENGTH=52428800
    STORAGE_BACKEND=ipfs            # "ipfs" or "memory"
    IPFS_API_URL=http://127.0.0.1:5001
    IPFS_GATEWAY_URL=https://ipfs.io/ipfs/
    IPFS_TIMEOUT=300
    PATENTVAULT_API_KEY=
    PATENTVAULT_REQUIRE_AUTH=false
    LOG_LEVEL=INFO
    LOG_FORMAT=                     # "json" for structured output
"""

import os
from dataclasses import dataclass

DEFAULT_MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB, matches the upload limit of the UI


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


@dataclass
class Config:
    """Runtime configuration for the API server and its services."""

    # Server
    host: str = "0.0.0.0"
    port: int = 4000
    debug: bool = False
    frontend_url: str = "http://localhost:3000"
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH

    # Content-addressed storage
    storage_backend: str = "ipfs"
    ipfs_api_url: str = "http://127.0.0.1:5001"
    ipfs_gateway_url: str = "https://ipfs.io/ipfs/"
    ipfs_timeout: float = 300.0

    # Authentication
    api_key: str | None = None
    require_auth: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = ""

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "4000")),
            debug=_env_bool("FLASK_DEBUG"),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
            max_content_length=int(
                os.getenv("MAX_CONTENT_LENGTH", str(DEFAULT_MAX_CONTENT_LENGTH))
            ),
            storage_backend=os.getenv("STORAGE_BACKEND", "ipfs").lower(),
            ipfs_api_url=os.getenv("IPFS_API_URL", "http://127.0.0.1:5001"),
            ipfs_gateway_url=os.getenv("IPFS_GATEWAY_URL", "https://ipfs.io/ipfs/"),
            ipfs_timeout=float(os.getenv("IPFS_TIMEOUT", "300")),
            api_key=os.getenv("PATENTVAULT_API_KEY") or None,
            require_auth=_env_bool("PATENTVAULT_REQUIRE_AUTH"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "").lower(),
        )

    @property
    def json_logging(self) -> bool:
        return self.log_format == "json"

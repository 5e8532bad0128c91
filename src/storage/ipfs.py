"""
IPFS storage backend.

Talks to a Kubo node over its HTTP RPC API (``/api/v0``). Every call carries
an explicit timeout; connection failures and timeouts surface as
StorageUnavailableError and are not retried here (retry policy belongs to
the caller).

Requires:
    pip install requests
"""

import json
import logging
import threading
from typing import Any
from urllib.parse import urljoin

import requests

from storage.base import (
    AddResult,
    ContentBackend,
    ContentNotFoundError,
    StorageError,
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
)

logger = logging.getLogger(__name__)


class IPFSBackend(ContentBackend):
    """
    Content-addressed backend backed by an IPFS node.

    Features:
    - Connection pooling through a shared requests.Session
    - CIDv1 addresses (raw leaves) so identical bytes map to one address
    - Pinning on upload so objects survive garbage collection
    """

    DEFAULT_API_URL = "http://127.0.0.1:5001"
    DEFAULT_TIMEOUT = 300.0  # seconds; large documents are uploaded in one request
    HEALTH_TIMEOUT = 5.0

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """
        Initialize the IPFS backend.

        Args:
            api_url: Base URL of the node's RPC API
            timeout: Per-request timeout in seconds
            session: Optional pre-configured session (tests inject a mock)
        """
        self.api_url = api_url.rstrip("/") + "/"
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = "PatentVault-IPFSClient/1.0"
        self._lock = threading.Lock()
        self._stats = {
            "requests_sent": 0,
            "requests_failed": 0,
            "bytes_uploaded": 0,
            "bytes_downloaded": 0,
        }

    def _endpoint(self, command: str) -> str:
        return urljoin(self.api_url, f"api/v0/{command}")

    def _call(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """
        Issue a single RPC call.

        Kubo answers every command over POST; non-2xx answers carry a JSON
        body with a ``Message`` field.
        """
        with self._lock:
            self._stats["requests_sent"] += 1

        try:
            response = self._session.post(
                self._endpoint(command),
                params=params,
                files=files,
                timeout=timeout or self.timeout,
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            self._record_failure()
            logger.error("IPFS node unreachable at %s (%s): %s", self.api_url, command, e)
            raise StorageUnavailableError(
                f"IPFS node unavailable: {e}", action=command, cause=e
            ) from e
        except requests.exceptions.RequestException as e:
            self._record_failure()
            raise StorageError(f"IPFS request failed: {e}", action=command, cause=e) from e

        if not response.ok:
            self._record_failure()
            message = _error_message(response)
            if "not found" in message.lower() or "no link named" in message.lower():
                raise ContentNotFoundError(f"Content not found: {message}", action=command)
            error_cls = StorageWriteError if command in ("add", "pin/add") else StorageReadError
            raise error_cls(
                f"IPFS {command} failed ({response.status_code}): {message}",
                action=command,
                details={"status_code": response.status_code},
            )

        return response

    def _record_failure(self) -> None:
        with self._lock:
            self._stats["requests_failed"] += 1

    def add(self, data: bytes, pin: bool = True) -> AddResult:
        response = self._call(
            "add",
            params={"pin": str(pin).lower(), "cid-version": 1, "quieter": "true"},
            files={"file": ("blob", bytes(data), "application/octet-stream")},
        )

        # The node streams one JSON object per added entry; the last one is the root
        lines = [line for line in response.text.splitlines() if line.strip()]
        if not lines:
            raise StorageWriteError("IPFS add returned an empty response", action="add")
        try:
            result = json.loads(lines[-1])
            cid = result["Hash"]
        except (ValueError, KeyError) as e:
            raise StorageWriteError(f"Unexpected IPFS add response: {e}", action="add", cause=e) from e

        with self._lock:
            self._stats["bytes_uploaded"] += len(data)

        logger.info("Added %d bytes to IPFS as %s", len(data), cid)
        return AddResult(cid=cid, size=int(result.get("Size", len(data))))

    def cat(self, cid: str) -> bytes:
        response = self._call("cat", params={"arg": cid})
        data = response.content
        with self._lock:
            self._stats["bytes_downloaded"] += len(data)
        return data

    def pin(self, cid: str) -> bool:
        self._call("pin/add", params={"arg": cid})
        return True

    def unpin(self, cid: str) -> bool:
        self._call("pin/rm", params={"arg": cid})
        return True

    def stat(self, cid: str) -> dict[str, Any]:
        result = self._call("files/stat", params={"arg": f"/ipfs/{cid}"}).json()
        return {
            "cid": result.get("Hash", cid),
            "size": result.get("Size"),
            "cumulativeSize": result.get("CumulativeSize"),
            "blocks": result.get("Blocks"),
            "type": result.get("Type"),
        }

    def is_available(self) -> bool:
        try:
            self._call("version", timeout=self.HEALTH_TIMEOUT)
            return True
        except StorageError as e:
            logger.warning("IPFS health check failed: %s", e)
            return False

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        with self._lock:
            info.update({"api_url": self.api_url, "timeout": self.timeout, **self._stats})
        return info

    def close(self) -> None:
        self._session.close()


def _error_message(response: requests.Response) -> str:
    try:
        return response.json().get("Message", response.text)
    except ValueError:
        return response.text or response.reason or "unknown error"

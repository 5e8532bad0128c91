"""
PatentVault - Patent Registry

In-memory, append-only table of registered patents. Registration hashes the
patent payload, proves it original against every hash seen so far, commits
to it and records it. The known-hash set and the registry only live as long
as the process.

The whole check-then-record sequence runs under one lock so two concurrent
registrations of the same content cannot both pass the originality check.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from encryption import hash_content, serialize
from exceptions import NotFoundError
from monitoring import metrics, timed
from zk_proofs import Commitment, OriginalityProof, ProofEngine

logger = logging.getLogger(__name__)


class PatentStatus(Enum):
    """Lifecycle states; the registry itself only ever creates FILED records."""
    FILED = "filed"
    UNDER_EXAMINATION = "under_examination"
    GRANTED = "granted"
    REJECTED = "rejected"
    TRANSFERRED = "transferred"
    EXPIRED = "expired"


@dataclass
class PatentRecord:
    """A registered patent. Never modified after creation."""
    id: str
    title: str
    description: str
    inventor: str | None
    content_address: str
    content_hash: str
    commitment: str
    originality_proof: OriginalityProof
    timestamp: int
    status: PatentStatus = PatentStatus.FILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "inventor": self.inventor,
            "ipfsHash": self.content_address,
            "patentHash": self.content_hash,
            "commitment": self.commitment,
            "originalityProof": self.originality_proof.to_dict(),
            "timestamp": self.timestamp,
            "status": self.status.value,
        }


@dataclass
class RegistrationResult:
    """The new record plus the commitment opening, which only the registrant receives."""
    record: PatentRecord
    commitment: Commitment

    def to_dict(self) -> dict[str, Any]:
        return {
            "patentId": self.record.id,
            "patentHash": self.record.content_hash,
            "commitment": self.commitment.commitment,
            "randomness": self.commitment.randomness,
            "originalityProof": self.record.originality_proof.to_dict(),
        }


class PatentIdGenerator:
    """
    Numeric string ids from the millisecond clock, strictly increasing.

    When two ids are requested within the same millisecond (or the clock
    steps back) the previous id is bumped by one.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            self._last = max(candidate, self._last + 1)
            return str(self._last)


@dataclass
class PatentRegistry:
    """
    Owner of the registered patents and of the known-hash set.

    Construct one per process and inject it into the request handlers.
    """
    proof_engine: ProofEngine = field(default_factory=ProofEngine)
    id_generator: PatentIdGenerator = field(default_factory=PatentIdGenerator)

    def __post_init__(self):
        self._records: dict[str, PatentRecord] = {}
        # Insertion-ordered set; the order feeds originality challenges
        self._known_hashes: dict[str, None] = {}
        self._lock = threading.Lock()

    @staticmethod
    def build_payload(title: str, description: str, inventor: str | None) -> dict[str, Any]:
        """Default payload hashed for a registration without explicit patent data."""
        payload: dict[str, Any] = {"title": title, "description": description}
        # An absent inventor is dropped, as JSON.stringify drops undefined members
        if inventor is not None:
            payload["inventor"] = inventor
        return payload

    @timed("patent_register_duration_ms")
    def register(
        self,
        title: str,
        description: str,
        inventor: str | None,
        content_address: str,
        patent_data: Any = None,
    ) -> RegistrationResult:
        """
        Register a patent.

        Args:
            title: Patent title
            description: Patent description
            inventor: Inventor name or wallet address
            content_address: Address of the uploaded document
            patent_data: Payload to hash; defaults to title/description/inventor

        Returns:
            RegistrationResult

        Raises:
            NotOriginalError: If the payload hash is already known
        """
        payload = patent_data if patent_data is not None else self.build_payload(
            title, description, inventor
        )
        content_hash = hash_content(serialize(payload))

        with self._lock:
            proof = self.proof_engine.prove_originality(content_hash, list(self._known_hashes))
            commitment = self.proof_engine.generate_commitment(payload)

            record = PatentRecord(
                id=self.id_generator.next_id(),
                title=title,
                description=description,
                inventor=inventor,
                content_address=content_address,
                content_hash=content_hash,
                commitment=commitment.commitment,
                originality_proof=proof,
                timestamp=int(time.time() * 1000),
            )
            self._records[record.id] = record
            self._known_hashes[content_hash] = None

        metrics.increment("patents_registered_total")
        logger.info("Registered patent %s (hash %s)", record.id, content_hash[:16])

        return RegistrationResult(record=record, commitment=commitment)

    def claim_originality(self, content_hash: str) -> OriginalityProof:
        """
        Prove a hash original and, on success, add it to the known set.

        Raises:
            NotOriginalError: If the hash is already known
        """
        with self._lock:
            proof = self.proof_engine.prove_originality(content_hash, list(self._known_hashes))
            self._known_hashes[content_hash] = None
        return proof

    def get(self, patent_id: str) -> PatentRecord:
        with self._lock:
            record = self._records.get(str(patent_id))
        if record is None:
            raise NotFoundError("Patent not found", component="patent_registry", action="get")
        return record

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def known_hashes(self) -> list[str]:
        with self._lock:
            return list(self._known_hashes)

    def is_known(self, content_hash: str) -> bool:
        with self._lock:
            return content_hash in self._known_hashes

    # Kept last: the name shadows the builtin inside the class body
    def list(self) -> list[PatentRecord]:
        """All records in registration order."""
        with self._lock:
            return list(self._records.values())

"""
PatentVault - Commitment and Proof Engine

Commitment-based proofs used to gate patent registration and to support
selective disclosure of patent fields.

"Privacy is not secrecy. Privacy is the power to selectively reveal oneself."
- The Cypherpunk Manifesto

This module implements:
- Hiding commitments: H(serialize(payload) || randomness)
- Merkle trees over independently hashed fields, with proofs of inclusion
- Originality proofs against a list of known content hashes
- Range proofs and proofs of knowledge (commit / challenge / response)
- Structural batch verification and nullifiers

None of these are sound zero-knowledge protocols. They are SHA-256
constructions whose exact behaviour is relied upon by the UI, including
their known weaknesses:

- An originality proof's challenge binds only ``proof || join(known_hashes)``.
  It does not re-encode the membership check, and it stops verifying as soon
  as the known-hash list grows or is reordered.
- Range proof verification only recomputes ``challenge = H(commitment)``; it
  is not bound to the value or to the bounds.
- Merkle levels duplicate a trailing odd node, so a tree over ``[a, b, c]``
  has the same root as one over ``[a, b, c, c]``.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any

from encryption import hash_content, serialize
from exceptions import NotOriginalError, OutOfRangeError, ValidationError
from monitoring import counted

logger = logging.getLogger(__name__)

RANDOMNESS_BYTES = 32


def _now_ms() -> int:
    return int(time.time() * 1000)


def _field(obj: Any, name: str) -> Any:
    """Read ``name`` from a proof given either as a dataclass or as a dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _number_to_string(value: int | float) -> str:
    """Render a number the way JavaScript's ``toString`` does for common values."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ============================================================
# Proof containers
# ============================================================

@dataclass
class Commitment:
    """A hiding commitment; opening it requires the payload and the randomness."""
    commitment: str
    randomness: str
    timestamp: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitment": self.commitment,
            "randomness": self.randomness,
            "timestamp": self.timestamp,
        }


@dataclass
class MerkleProofStep:
    """One sibling on the path from a leaf to the root."""
    hash: str
    position: str  # "left" | "right": where the sibling sits relative to the path node

    def to_dict(self) -> dict[str, str]:
        return {"hash": self.hash, "position": self.position}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MerkleProofStep":
        return cls(hash=data["hash"], position=data["position"])


@dataclass
class MerkleTree:
    """Leaves, every intermediate level, and the root."""
    leaves: list[str]
    levels: list[list[str]]
    root: str

    def to_dict(self) -> dict[str, Any]:
        return {"root": self.root, "tree": self.levels, "leaves": self.leaves}


@dataclass
class OriginalityProof:
    """Proof that a content hash was absent from the known set when it was made."""
    proof: str
    challenge: str
    is_original: bool = True
    num_comparisons: int = 0
    timestamp: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "proof": self.proof,
            "challenge": self.challenge,
            "timestamp": self.timestamp,
            "isOriginal": self.is_original,
            "numComparisons": self.num_comparisons,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OriginalityProof":
        return cls(
            proof=data.get("proof", ""),
            challenge=data.get("challenge", ""),
            is_original=bool(data.get("isOriginal", True)),
            num_comparisons=int(data.get("numComparisons", 0)),
            timestamp=int(data.get("timestamp", 0)),
        )


@dataclass
class RangeProof:
    """Commit / challenge / response triple claiming ``min <= value <= max``."""
    commitment: str
    challenge: str
    response: str
    min: int | float
    max: int | float
    valid: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitment": self.commitment,
            "challenge": self.challenge,
            "response": self.response,
            "min": self.min,
            "max": self.max,
            "valid": self.valid,
        }


@dataclass
class KnowledgeProof:
    """Commit / challenge / response triple over a secret."""
    commitment: str
    challenge: str
    response: str
    timestamp: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitment": self.commitment,
            "challenge": self.challenge,
            "response": self.response,
            "timestamp": self.timestamp,
        }


@dataclass
class BatchVerificationResult:
    """Outcome of a structural pre-check over several proofs."""
    results: list[dict[str, Any]]

    @property
    def all_valid(self) -> bool:
        return all(r["valid"] for r in self.results)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r["valid"])

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.all_valid,
            "results": self.results,
            "total": len(self.results),
            "valid": self.valid_count,
            "invalid": len(self.results) - self.valid_count,
        }


# ============================================================
# Merkle trees
# ============================================================

class MerkleTreeBuilder:
    """Builds Merkle trees over patent fields for selective disclosure."""

    @staticmethod
    def hash_pair(left: str, right: str) -> str:
        return hash_content(left + right)

    def build_tree(self, fields: list[Any]) -> MerkleTree:
        """
        Build a Merkle tree from a list of field values.

        Each field is hashed independently as ``H(serialize(field))``; nodes
        are then paired left to right, and a trailing odd node at any level
        is paired with itself.

        Args:
            fields: Ordered field values (any JSON-serializable value)

        Returns:
            MerkleTree

        Raises:
            ValidationError: If ``fields`` is empty
        """
        if not fields:
            raise ValidationError("Cannot build a Merkle tree from an empty field list",
                                  field_name="fields", component="zk_proofs")

        leaves = [hash_content(serialize(value)) for value in fields]

        levels = [leaves]
        current_level = leaves

        while len(current_level) > 1:
            next_level = []
            for i in range(0, len(current_level), 2):
                left = current_level[i]
                right = current_level[i + 1] if i + 1 < len(current_level) else left
                next_level.append(self.hash_pair(left, right))

            levels.append(next_level)
            current_level = next_level

        return MerkleTree(leaves=leaves, levels=levels, root=current_level[0])

    def generate_proof(self, tree: MerkleTree, leaf_index: int) -> list[MerkleProofStep]:
        """
        Generate the inclusion proof for one leaf.

        A trailing unpaired node has itself as sibling, recorded on the right.

        Raises:
            ValidationError: If ``leaf_index`` is outside the leaf range
        """
        if isinstance(leaf_index, bool) or not isinstance(leaf_index, int) \
                or not 0 <= leaf_index < len(tree.leaves):
            raise ValidationError(
                f"Leaf index must be between 0 and {len(tree.leaves) - 1}",
                field_name="index", component="zk_proofs",
            )

        proof = []
        index = leaf_index

        for level in tree.levels[:-1]:  # Exclude root level
            if index % 2 == 1:
                proof.append(MerkleProofStep(hash=level[index - 1], position="left"))
            else:
                sibling_index = index + 1 if index + 1 < len(level) else index
                proof.append(MerkleProofStep(hash=level[sibling_index], position="right"))

            index //= 2

        return proof

    def verify_proof(self, leaf: str, proof: list[MerkleProofStep | dict[str, Any]], root: str) -> bool:
        """Recombine ``leaf`` with each proof step in order and compare with ``root``."""
        computed = leaf

        for step in proof:
            sibling = _field(step, "hash")
            position = _field(step, "position")
            if not isinstance(sibling, str):
                return False

            if position == "left":
                computed = self.hash_pair(sibling, computed)
            elif position == "right":
                computed = self.hash_pair(computed, sibling)
            else:
                return False

        return computed == root


# ============================================================
# Proof engine
# ============================================================

class ProofEngine:
    """
    Stateless generator and verifier for all proof types.

    The engine never stores commitments, known hashes or nullifiers; callers
    own that state (see PatentRegistry).
    """

    def __init__(self, merkle_builder: MerkleTreeBuilder | None = None):
        self.merkle = merkle_builder or MerkleTreeBuilder()

    # --- Commitments ---

    @counted("proofs_generated_total", labels={"type": "commitment"})
    def generate_commitment(self, payload: Any) -> Commitment:
        """
        Commit to a payload without revealing it.

        ``commitment = H(serialize(payload) + randomness)`` with fresh 256-bit
        randomness per call.
        """
        randomness = secrets.token_hex(RANDOMNESS_BYTES)
        commitment = hash_content(serialize(payload) + randomness)
        return Commitment(commitment=commitment, randomness=randomness)

    def verify_commitment(self, payload: Any, commitment: str, randomness: str) -> bool:
        """Open a commitment; exact equality, anyone holding both inputs can check it."""
        if not isinstance(commitment, str) or not isinstance(randomness, str):
            return False
        return hash_content(serialize(payload) + randomness) == commitment

    # --- Merkle trees ---

    def build_merkle_tree(self, fields: list[Any]) -> MerkleTree:
        return self.merkle.build_tree(fields)

    def merkle_proof(self, tree: MerkleTree, leaf_index: int) -> list[MerkleProofStep]:
        return self.merkle.generate_proof(tree, leaf_index)

    def verify_merkle_proof(self, leaf: str, proof: list[Any], root: str) -> bool:
        return self.merkle.verify_proof(leaf, proof, root)

    # --- Originality ---

    @counted("proofs_generated_total", labels={"type": "originality"})
    def prove_originality(self, candidate_hash: str, known_hashes: list[str]) -> OriginalityProof:
        """
        Prove that ``candidate_hash`` is not among ``known_hashes``.

        The membership check is a linear scan, O(n) per call. The known list
        is not modified; the caller decides whether to record the hash.

        Raises:
            NotOriginalError: If the hash is already known
        """
        if candidate_hash in known_hashes:
            logger.info("Originality check failed for %s", candidate_hash[:16])
            raise NotOriginalError(patent_hash=candidate_hash)

        randomness = secrets.token_hex(RANDOMNESS_BYTES)
        proof_commitment = hash_content(candidate_hash + randomness)
        challenge = hash_content(proof_commitment + "".join(known_hashes))

        return OriginalityProof(
            proof=proof_commitment,
            challenge=challenge,
            is_original=True,
            num_comparisons=len(known_hashes),
        )

    def verify_originality_proof(
        self, proof: OriginalityProof | dict[str, Any], known_hashes: list[str]
    ) -> bool:
        """
        Recompute the challenge against ``known_hashes``.

        Order-sensitive: only the exact list (content and order) used when
        the proof was made will verify.
        """
        proof_value = _field(proof, "proof")
        challenge = _field(proof, "challenge")
        if not proof_value or not challenge or not isinstance(proof_value, str):
            return False

        return hash_content(proof_value + "".join(known_hashes)) == challenge

    # --- Range proofs ---

    @counted("proofs_generated_total", labels={"type": "range"})
    def generate_range_proof(self, value: int | float, min_value: int | float,
                             max_value: int | float) -> RangeProof:
        """
        Claim that ``value`` lies in ``[min_value, max_value]``.

        Raises:
            OutOfRangeError: If the value is outside the bounds
        """
        if value < min_value or value > max_value:
            raise OutOfRangeError(details={"min": min_value, "max": max_value})

        randomness = secrets.token_bytes(RANDOMNESS_BYTES)
        commitment = hash_content(_number_to_string(value).encode("utf-8") + randomness)
        challenge = hash_content(commitment)
        response = hash_content(randomness.hex() + challenge)

        return RangeProof(
            commitment=commitment,
            challenge=challenge,
            response=response,
            min=min_value,
            max=max_value,
        )

    def verify_range_proof(self, proof: RangeProof | dict[str, Any]) -> bool:
        """Check that all fields are present and ``challenge == H(commitment)``."""
        return self._verify_challenge(proof)

    # --- Proof of knowledge ---

    @counted("proofs_generated_total", labels={"type": "knowledge"})
    def prove_knowledge(self, secret: str) -> KnowledgeProof:
        random_value = secrets.token_hex(RANDOMNESS_BYTES)
        commitment = hash_content(secret + random_value)
        challenge = hash_content(commitment)
        response = hash_content(random_value + challenge)

        return KnowledgeProof(commitment=commitment, challenge=challenge, response=response)

    def verify_knowledge_proof(self, proof: KnowledgeProof | dict[str, Any]) -> bool:
        return self._verify_challenge(proof)

    @staticmethod
    def _verify_challenge(proof: Any) -> bool:
        commitment = _field(proof, "commitment")
        challenge = _field(proof, "challenge")
        response = _field(proof, "response")
        if not commitment or not challenge or not response or not isinstance(commitment, str):
            return False

        return hash_content(commitment) == challenge

    # --- Batch / nullifiers ---

    def batch_verify_proofs(self, proofs: list[Any]) -> BatchVerificationResult:
        """
        Structural pre-check: every proof must carry commitment, challenge and response.

        This does not re-run the cryptographic checks; use the individual
        ``verify_*`` methods for that.
        """
        results = []
        for index, proof in enumerate(proofs):
            commitment = _field(proof, "commitment")
            is_valid = bool(commitment and _field(proof, "challenge") and _field(proof, "response"))
            results.append({"index": index, "valid": is_valid, "proofId": commitment})

        return BatchVerificationResult(results=results)

    def generate_nullifier(self, identifier: str, secret: str) -> str:
        """Deterministic one-time-use marker; persisting it is up to the caller."""
        return hash_content(identifier + secret)


__all__ = [
    "BatchVerificationResult",
    "Commitment",
    "KnowledgeProof",
    "MerkleProofStep",
    "MerkleTree",
    "MerkleTreeBuilder",
    "OriginalityProof",
    "ProofEngine",
    "RangeProof",
]

"""
Commitment and proof blueprint.

Thin JSON wrappers around the ProofEngine:
- Originality proofs (gating patent registration)
- Commitments and their openings
- Merkle trees for selective disclosure
- Range proofs, proofs of knowledge, batch checks and nullifiers
"""

from flask import Blueprint, jsonify

from exceptions import ValidationError
from zk_proofs import MerkleProofStep

from .state import get_services
from .utils import (
    MAX_BATCH_PROOFS,
    MAX_MERKLE_FIELDS,
    get_json_body,
    require_api_key,
    require_fields,
)

zkp_bp = Blueprint("zkp", __name__, url_prefix="/api/zkp")


def _require_list(data: dict, name: str, message: str, max_items: int) -> list:
    value = data.get(name)
    if not isinstance(value, list):
        raise ValidationError(message, field_name=name)
    if len(value) > max_items:
        raise ValidationError(f"Field '{name}' exceeds maximum of {max_items} items", field_name=name)
    return value


def _require_number(data: dict, name: str) -> int | float:
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Field '{name}' must be a number", field_name=name)
    return value


def _require_str(data: dict, *names: str) -> None:
    for name in names:
        if not isinstance(data[name], str):
            raise ValidationError(f"Field '{name}' must be of type str", field_name=name)


# ============================================================
# Originality
# ============================================================

@zkp_bp.route("/prove-originality", methods=["POST"])
@require_api_key
def prove_originality():
    """
    Prove a patent hash original and record it as known.

    Request body:
    {
        "patentHash": "<content hash>"
    }

    Returns:
        Originality proof; 400 when the hash is already known
    """
    data = get_json_body()
    require_fields(data, "Patent hash is required", "patentHash")
    _require_str(data, "patentHash")

    proof = get_services().registry.claim_originality(data["patentHash"])

    return jsonify({
        "success": True,
        "proof": proof.to_dict(),
        "isOriginal": proof.is_original,
    })


@zkp_bp.route("/verify-originality", methods=["POST"])
def verify_originality():
    """
    Verify an originality proof.

    The proof is checked against the current known-hash set, or against
    ``existingHashes`` when the caller supplies the list it was made with.
    """
    data = get_json_body()
    require_fields(data, "Proof is required", "proof")

    services = get_services()
    existing = data.get("existingHashes")
    if existing is None:
        existing = services.registry.known_hashes()
    elif not isinstance(existing, list) or not all(isinstance(h, str) for h in existing):
        raise ValidationError("Field 'existingHashes' must be a list of strings",
                              field_name="existingHashes")

    proof = data["proof"]
    if not isinstance(proof, dict):
        raise ValidationError("Field 'proof' must be an object", field_name="proof")

    return jsonify({
        "success": True,
        "valid": services.proof_engine.verify_originality_proof(proof, existing),
    })


# ============================================================
# Commitments
# ============================================================

@zkp_bp.route("/generate-commitment", methods=["POST"])
def generate_commitment():
    data = get_json_body()
    require_fields(data, "Patent data is required", "patentData")

    commitment = get_services().proof_engine.generate_commitment(data["patentData"])

    return jsonify({"success": True, **commitment.to_dict()})


@zkp_bp.route("/verify-commitment", methods=["POST"])
def verify_commitment():
    data = get_json_body()
    require_fields(
        data,
        "Patent data, commitment, and randomness are required",
        "patentData", "commitment", "randomness",
    )

    valid = get_services().proof_engine.verify_commitment(
        data["patentData"], data["commitment"], data["randomness"]
    )
    return jsonify({"success": True, "valid": valid})


# ============================================================
# Merkle trees
# ============================================================

@zkp_bp.route("/create-merkle-tree", methods=["POST"])
def create_merkle_tree():
    """
    Build a Merkle tree over patent fields for selective disclosure.

    Request body:
    {
        "fields": ["title", "claims", ...]
    }
    """
    data = get_json_body()
    fields = _require_list(data, "fields", "Fields array is required", MAX_MERKLE_FIELDS)

    tree = get_services().proof_engine.build_merkle_tree(fields)

    return jsonify({"success": True, "root": tree.root, "leaves": tree.leaves})


@zkp_bp.route("/merkle-proof", methods=["POST"])
def merkle_proof():
    """
    Build the tree over ``fields`` and return the inclusion proof for ``index``.

    Request body:
    {
        "fields": [...],
        "index": 0
    }
    """
    data = get_json_body()
    fields = _require_list(data, "fields", "Fields array is required", MAX_MERKLE_FIELDS)

    engine = get_services().proof_engine
    tree = engine.build_merkle_tree(fields)
    # Index validation (type and range) happens in the builder
    index = data.get("index")
    proof = engine.merkle_proof(tree, index)

    return jsonify({
        "success": True,
        "leaf": tree.leaves[index],
        "proof": [step.to_dict() for step in proof],
        "root": tree.root,
    })


@zkp_bp.route("/verify-merkle-proof", methods=["POST"])
def verify_merkle_proof():
    data = get_json_body()
    require_fields(data, "Leaf and root are required", "leaf", "root")
    _require_str(data, "leaf", "root")
    steps = _require_list(data, "proof", "Proof array is required", MAX_MERKLE_FIELDS)

    try:
        proof = [MerkleProofStep.from_dict(step) for step in steps]
    except (KeyError, TypeError) as e:
        raise ValidationError("Each proof step needs 'hash' and 'position'",
                              field_name="proof", cause=e) from e

    valid = get_services().proof_engine.verify_merkle_proof(data["leaf"], proof, data["root"])
    return jsonify({"success": True, "valid": valid})


# ============================================================
# Range proofs and proofs of knowledge
# ============================================================

@zkp_bp.route("/range-proof", methods=["POST"])
def range_proof():
    """
    Claim that a value lies within bounds without revealing it.

    Request body:
    {
        "value": 42,
        "min": 0,
        "max": 100
    }

    Returns:
        Range proof; 400 when the value is out of range
    """
    data = get_json_body()
    value = _require_number(data, "value")
    min_value = _require_number(data, "min")
    max_value = _require_number(data, "max")

    proof = get_services().proof_engine.generate_range_proof(value, min_value, max_value)

    return jsonify({"success": True, "proof": proof.to_dict()})


@zkp_bp.route("/verify-range-proof", methods=["POST"])
def verify_range_proof():
    data = get_json_body()
    require_fields(data, "Proof is required", "proof")

    valid = get_services().proof_engine.verify_range_proof(data["proof"])
    return jsonify({"success": True, "valid": valid})


@zkp_bp.route("/prove-knowledge", methods=["POST"])
def prove_knowledge():
    data = get_json_body()
    require_fields(data, "Secret is required", "secret")
    _require_str(data, "secret")

    proof = get_services().proof_engine.prove_knowledge(data["secret"])

    return jsonify({"success": True, "proof": proof.to_dict()})


@zkp_bp.route("/verify-knowledge", methods=["POST"])
def verify_knowledge():
    data = get_json_body()
    require_fields(data, "Proof is required", "proof")

    valid = get_services().proof_engine.verify_knowledge_proof(data["proof"])
    return jsonify({"success": True, "valid": valid})


# ============================================================
# Batch verification and nullifiers
# ============================================================

@zkp_bp.route("/batch-verify", methods=["POST"])
def batch_verify():
    """Structural check of several proofs at once."""
    data = get_json_body()
    proofs = _require_list(data, "proofs", "Proofs array is required", MAX_BATCH_PROOFS)

    result = get_services().proof_engine.batch_verify_proofs(proofs)

    return jsonify(result.to_dict())


@zkp_bp.route("/nullifier", methods=["POST"])
def nullifier():
    data = get_json_body()
    require_fields(data, "Identifier and secret are required", "identifier", "secret")
    _require_str(data, "identifier", "secret")

    value = get_services().proof_engine.generate_nullifier(data["identifier"], data["secret"])

    return jsonify({"success": True, "nullifier": value})

"""
Patent registry blueprint.

- Register a patent (originality check, commitment, record)
- Fetch one patent by id
- List all patents in registration order
"""

from flask import Blueprint, jsonify

from exceptions import ValidationError
from monitoring.logging import LoggingContext

from .state import get_services
from .utils import (
    MAX_DESCRIPTION_LENGTH,
    MAX_INVENTOR_LENGTH,
    MAX_TITLE_LENGTH,
    get_json_body,
    require_api_key,
    require_fields,
    validate_json_schema,
)

patents_bp = Blueprint("patents", __name__, url_prefix="/api")


@patents_bp.route("/patent/register", methods=["POST"])
@require_api_key
def register_patent():
    """
    Register a new patent.

    Request body:
    {
        "title": "Patent title",
        "description": "What the invention does",
        "inventor": "name or wallet address" (optional),
        "ipfsHash": "address of the uploaded document",
        "patentData": {...} (optional, hashed instead of title/description/inventor)
    }

    Returns:
        Patent id, content hash, commitment with its randomness and the
        originality proof; 400 when the patent is not original
    """
    data = get_json_body()
    require_fields(
        data,
        "Title, description, and IPFS hash are required",
        "title", "description", "ipfsHash",
    )

    is_valid, error_msg = validate_json_schema(
        data,
        required_fields={"title": str, "description": str, "ipfsHash": str},
        optional_fields={"inventor": str},
        max_lengths={
            "title": MAX_TITLE_LENGTH,
            "description": MAX_DESCRIPTION_LENGTH,
            "inventor": MAX_INVENTOR_LENGTH,
        },
    )
    if not is_valid:
        raise ValidationError(error_msg)

    # A falsy patentData falls back to the default payload
    patent_data = data.get("patentData") or None

    with LoggingContext(ipfs_hash=data["ipfsHash"]):
        result = get_services().registry.register(
            title=data["title"],
            description=data["description"],
            inventor=data.get("inventor"),
            content_address=data["ipfsHash"],
            patent_data=patent_data,
        )

    return jsonify({
        "success": True,
        **result.to_dict(),
        "message": "Patent registered successfully",
    })


@patents_bp.route("/patent/<patent_id>", methods=["GET"])
def get_patent(patent_id: str):
    record = get_services().registry.get(patent_id)
    return jsonify({"success": True, "patent": record.to_dict()})


@patents_bp.route("/patents", methods=["GET"])
def list_patents():
    patents = [record.to_dict() for record in get_services().registry.list()]
    return jsonify({"success": True, "count": len(patents), "patents": patents})

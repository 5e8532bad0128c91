"""
Content storage blueprint.

Endpoints for patent documents and metadata on the content-addressed store:
- Upload (multipart) with optional AES-256-GCM encryption
- Metadata upload as JSON
- Download, with decryption when a password is supplied
- Object stats, pinning and integrity checks
"""

import base64
import binascii
import logging

from flask import Blueprint, jsonify, request

from exceptions import ValidationError

from .state import get_services
from .utils import get_json_body, parse_bool, require_api_key, require_fields

logger = logging.getLogger(__name__)

ipfs_bp = Blueprint("ipfs", __name__, url_prefix="/api/ipfs")


@ipfs_bp.route("/upload-patent", methods=["POST"])
@require_api_key
def upload_patent():
    """
    Upload a patent document.

    Multipart form:
        file: The document
        encrypt: "true" to encrypt before storing
        password: Optional password; a random key is generated when omitted

    Returns:
        Stored object with its address, gateway URL and encryption key
    """
    upload = request.files.get("file")
    if upload is None:
        raise ValidationError("No file uploaded", field_name="file")

    encrypt = parse_bool(request.form.get("encrypt"))
    password = request.form.get("password") or None

    stored = get_services().content_store.upload(upload.read(), encrypt=encrypt, password=password)

    return jsonify({"success": True, **stored.to_dict()})


@ipfs_bp.route("/upload-metadata", methods=["POST"])
@require_api_key
def upload_metadata():
    """
    Upload patent metadata as a JSON document.

    Request body:
    {
        "metadata": {...},
        "encrypt": true/false (optional, default false)
    }
    """
    data = get_json_body()
    require_fields(data, "Metadata is required", "metadata")

    # JSON clients must send a real boolean; "true" strings do not count here
    encrypt = data.get("encrypt") is True
    stored = get_services().content_store.upload_metadata(data["metadata"], encrypt=encrypt)

    return jsonify({
        "success": True,
        "ipfsHash": stored.content_address,
        "cid": stored.cid,
        "encryptionKey": stored.encryption_key,
        "encrypted": stored.encrypted,
    })


@ipfs_bp.route("/download/<content_hash>", methods=["GET"])
def download(content_hash: str):
    """
    Download an object, decrypting it when ``?password=`` is given.

    Returns:
        {"success": true, "data": "<base64>"}
    """
    password = request.args.get("password") or None
    data = get_services().content_store.download(content_hash, password)

    return jsonify({
        "success": True,
        "data": base64.b64encode(data).decode("ascii"),
    })


@ipfs_bp.route("/stats/<content_hash>", methods=["GET"])
def stats(content_hash: str):
    return jsonify({
        "success": True,
        "stats": get_services().content_store.stat(content_hash),
    })


@ipfs_bp.route("/pin/<content_hash>", methods=["POST", "DELETE"])
@require_api_key
def pin(content_hash: str):
    """Pin (POST) or unpin (DELETE) an object."""
    store = get_services().content_store
    if request.method == "DELETE":
        store.unpin(content_hash)
        pinned = False
    else:
        store.pin(content_hash)
        pinned = True

    return jsonify({"success": True, "cid": content_hash, "pinned": pinned})


@ipfs_bp.route("/verify-integrity", methods=["POST"])
def verify_integrity():
    """
    Check downloaded bytes against an expected content hash.

    Request body:
    {
        "data": "<base64>",
        "expectedHash": "<64 hex chars>"
    }
    """
    body = get_json_body()
    require_fields(body, "Data and expected hash are required", "data", "expectedHash")

    try:
        data = base64.b64decode(body["data"], validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise ValidationError("Field 'data' must be base64 encoded", field_name="data", cause=e) from e

    store = get_services().content_store
    return jsonify({
        "success": True,
        "valid": store.verify_integrity(data, body["expectedHash"]),
        "actualHash": store.content_hash(data),
    })

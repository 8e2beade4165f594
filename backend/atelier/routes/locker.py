# Overview: Flask API routes for locker verifications; parses input and returns JSON responses.

"""
Locker Verification Routes

Admin only. The proof image arrives either as a multipart file field
"proof" (jpg/png, up to 5 MB) or as a base64 data URL in "proof_image".
Both are stored under uploads/locker_proofs.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import locker_service, upload_service
from ..services.jewellery_service import JewelleryNotFoundError
from ..services.locker_service import LockerValidationError
from ..services.upload_service import UploadTooLargeError, UploadValidationError


locker_bp = Blueprint("locker", __name__, url_prefix="/api/locker")

PROOF_DIR = "locker_proofs"


def _request_data() -> dict:
    if request.mimetype == "multipart/form-data" or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


def _save_proof(data: dict) -> str:
    file = request.files.get("proof")
    if file and file.filename:
        return upload_service.save_upload(
            file,
            subdir=PROOF_DIR,
            allowed=upload_service.PROOF_EXTENSIONS,
            prefix="proof",
        )
    proof = data.get("proof_image")
    if isinstance(proof, str) and proof.startswith("data:"):
        return upload_service.save_data_url(
            proof,
            subdir=PROOF_DIR,
            allowed=upload_service.PROOF_EXTENSIONS,
            prefix="proof",
        )
    return ""


@locker_bp.get("")
@require_auth
@require_admin
def list_verifications_route():
    """Query parameters: stage (before | after)."""
    try:
        verifications = locker_service.list_verifications(request.args.get("stage") or None)
    except LockerValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({
        "success": True,
        "data": [v.to_dict() for v in verifications],
        "count": len(verifications),
    })


@locker_bp.post("")
@require_auth
@require_admin
def create_verification_route():
    """
    Fields: jewellery_id, locker_number, stage, result?, mismatch_reason?,
    notes?, proof (file) or proof_image (data URL)
    """
    data = _request_data()

    try:
        cleaned = locker_service.validate_verification(data)
    except LockerValidationError as e:
        return jsonify({"error": str(e)}), 400
    except JewelleryNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    try:
        proof_url = _save_proof(data)
    except UploadValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UploadTooLargeError as e:
        return jsonify({"error": str(e)}), 413

    verification = locker_service.create_verification(
        cleaned,
        proof_image=proof_url,
        verified_by_user_id=g.current_user.id,
    )
    if verification.result == "mismatch":
        current_app.logger.warning(
            "Locker mismatch on %s (jewellery %s): %s",
            verification.locker_number, verification.jewellery_id, verification.mismatch_reason,
        )
    return jsonify({"success": True, "data": verification.to_dict()}), 201

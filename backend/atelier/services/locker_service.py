# Overview: Service-layer operations for locker verification audits.

"""
Locker Verification Service

Each verification records that a jewellery piece was checked against a
locker either before it went in or after it came out.

RULES:
- stage must be "before" or "after"
- result is "matched" (default) or "mismatch"
- a mismatch must carry a mismatch_reason
"""

from ..extensions import db
from ..models import Jewellery, LockerVerification
from .jewellery_service import JewelleryNotFoundError


STAGES = ("before", "after")
RESULTS = ("matched", "mismatch")


class LockerValidationError(Exception):
    """Raised when verification data fails validation."""
    pass


def list_verifications(stage: str | None = None) -> list[LockerVerification]:
    query = db.session.query(LockerVerification)
    stage = str(stage or "").strip().lower()
    if stage:
        if stage not in STAGES:
            raise LockerValidationError(f"Stage must be one of: {', '.join(STAGES)}")
        query = query.filter(LockerVerification.stage == stage)
    return (
        query.order_by(LockerVerification.created_at.desc(), LockerVerification.id.desc())
        .all()
    )


def validate_verification(data: dict) -> dict:
    """
    Check and normalize the fields of a new verification.

    Returns the cleaned values; does not touch the proof image.
    """
    try:
        jewellery_id = int(data.get("jewellery_id"))
    except (TypeError, ValueError):
        raise LockerValidationError("jewellery_id, locker_number and stage are required")

    locker_number = str(data.get("locker_number") or "").strip()
    stage = str(data.get("stage") or "").strip().lower()
    if not locker_number or not stage:
        raise LockerValidationError("jewellery_id, locker_number and stage are required")
    if stage not in STAGES:
        raise LockerValidationError(f"Stage must be one of: {', '.join(STAGES)}")

    result = str(data.get("result") or "matched").strip().lower()
    if result not in RESULTS:
        raise LockerValidationError(f"Result must be one of: {', '.join(RESULTS)}")

    mismatch_reason = str(data.get("mismatch_reason") or "").strip()
    if result == "mismatch" and not mismatch_reason:
        raise LockerValidationError("mismatch_reason is required when result is mismatch")

    if not db.session.get(Jewellery, jewellery_id):
        raise JewelleryNotFoundError("Jewellery not found")

    return {
        "jewellery_id": jewellery_id,
        "locker_number": locker_number,
        "stage": stage,
        "result": result,
        "mismatch_reason": mismatch_reason if result == "mismatch" else "",
        "notes": str(data.get("notes") or "").strip(),
    }


def create_verification(
    cleaned: dict,
    *,
    proof_image: str = "",
    verified_by_user_id: int | None = None,
) -> LockerVerification:
    verification = LockerVerification(
        proof_image=proof_image or "",
        verified_by_user_id=verified_by_user_id,
        **cleaned,
    )
    db.session.add(verification)
    db.session.commit()
    return verification

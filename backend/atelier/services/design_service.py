# Overview: Service-layer operations for AI design generation, quota and history.

"""
Design Service

QUOTA: free-plan users get DESIGN_FREE_LIMIT generations. The counter is
bumped with a single conditional UPDATE, so two concurrent requests can
never both spend the last credit.

COST ESTIMATE (deterministic, integer cents):
    base(type) * (1 + 0.10 per material beyond the first
                    + 0.05 per customization option)
    + GEMSTONE_SURCHARGE per gemstone
"""

from __future__ import annotations

from sqlalchemy import or_, update

from ..extensions import db
from ..models import Design, User
from ..models.auth import PLAN_FREE, ROLE_CUSTOMER
from ..models.orders import DESIGN_TYPES
from .image_generation import generate_image
from .upload_service import delete_upload, save_bytes


# LKR cents
BASE_COST_CENTS = {
    "ring": 8_500_000,
    "earring": 9_500_000,
    "bracelet": 15_000_000,
    "necklace": 22_000_000,
    "tiara": 40_000_000,
}
GEMSTONE_SURCHARGE_CENTS = 1_500_000


class DesignValidationError(Exception):
    """Raised when design input fails validation."""
    pass


class DesignLimitError(Exception):
    """Raised when a free-plan user has used every generation."""
    pass


class DesignNotFoundError(Exception):
    """Raised when a design is missing or not visible to the caller."""
    pass


def _as_list(value, field: str) -> list[str]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    raise DesignValidationError(f"{field} must be a list")


def _as_dict(value) -> dict:
    if value in (None, ""):
        return {}
    if not isinstance(value, dict):
        raise DesignValidationError("customizations must be an object")
    return value


def _validate_type(design_type: str | None) -> str:
    design_type = str(design_type or "ring").strip().lower()
    if design_type not in DESIGN_TYPES:
        raise DesignValidationError(f"design_type must be one of: {', '.join(DESIGN_TYPES)}")
    return design_type


def estimate_cost_cents(
    design_type: str,
    materials: list[str],
    gemstones: list[str],
    customizations: dict,
) -> int:
    base = BASE_COST_CENTS[design_type]
    multiplier = 1 + 0.10 * max(len(materials) - 1, 0) + 0.05 * len(customizations)
    return int(round(base * multiplier)) + GEMSTONE_SURCHARGE_CENTS * len(gemstones)


def build_prompt(design_type: str, prompt: str, materials: list[str], gemstones: list[str]) -> str:
    parts = [f"{design_type} {prompt}".strip()]
    if materials:
        parts.append(f"made of {', '.join(materials)}")
    if gemstones:
        parts.append(f"set with {', '.join(gemstones)}")
    parts.append("professional jewellery product photo, studio lighting")
    return ", ".join(parts)


def remaining_credits(user: User, limit: int) -> int | None:
    """None means unlimited (paid plan)."""
    if user.plan != PLAN_FREE:
        return None
    return max(limit - (user.generation_count or 0), 0)


def _consume_credit(user_id: int, limit: int) -> bool:
    result = db.session.execute(
        update(User)
        .where(User.id == user_id)
        .where(or_(User.plan != PLAN_FREE, User.generation_count < limit))
        .values(generation_count=User.generation_count + 1)
    )
    return result.rowcount == 1


def generate_design(user: User, data: dict, *, free_limit: int) -> Design:
    """
    Validate, check quota, call the image providers, store the PNG, spend a
    credit and persist the Design.

    Raises:
        DesignValidationError: empty prompt / bad type / malformed lists
        DesignLimitError: free quota exhausted
        NoProviderConfiguredError, ImageGenerationError: from image_generation
    """
    prompt = str(data.get("design_prompt") or "").strip()
    if not prompt:
        raise DesignValidationError("design_prompt is required")
    design_type = _validate_type(data.get("design_type"))
    materials = _as_list(data.get("materials"), "materials")
    gemstones = _as_list(data.get("gemstones"), "gemstones")
    customizations = _as_dict(data.get("customizations"))

    if user.plan == PLAN_FREE and (user.generation_count or 0) >= free_limit:
        raise DesignLimitError("Limit reached")

    content, provider = generate_image(build_prompt(design_type, prompt, materials, gemstones))
    image_url = save_bytes(content, subdir="designs", ext="png", prefix="design")

    if not _consume_credit(user.id, free_limit):
        # Lost the race for the last credit while the image was generating
        db.session.rollback()
        delete_upload(image_url)
        raise DesignLimitError("Limit reached")

    design = Design(
        user_id=user.id,
        title=prompt[:40],
        prompt=prompt,
        type=design_type,
        image_url=image_url,
        materials=materials,
        gemstones=gemstones,
        customizations=customizations,
        estimated_cost_cents=estimate_cost_cents(design_type, materials, gemstones, customizations),
        is_ai_generated=True,
        provider=provider,
    )
    db.session.add(design)
    db.session.commit()
    db.session.refresh(user)
    return design


def save_design(user: User, data: dict) -> Design:
    """Persist a client-supplied design (no generation, no credit spent)."""
    prompt = str(data.get("prompt") or "").strip()
    image_url = str(data.get("image_url") or "").strip()
    if not prompt or not image_url:
        raise DesignValidationError("prompt and image_url are required")
    title = str(data.get("title") or "").strip() or prompt[:40]
    design_type = _validate_type(data.get("type"))
    materials = _as_list(data.get("materials"), "materials")
    gemstones = _as_list(data.get("gemstones"), "gemstones")
    customizations = _as_dict(data.get("customizations"))

    design = Design(
        user_id=user.id,
        title=title,
        prompt=prompt,
        type=design_type,
        image_url=image_url,
        materials=materials,
        gemstones=gemstones,
        customizations=customizations,
        estimated_cost_cents=estimate_cost_cents(design_type, materials, gemstones, customizations),
        is_ai_generated=bool(data.get("is_ai_generated", False)),
    )
    db.session.add(design)
    db.session.commit()
    return design


def list_history(user: User, limit: int = 10) -> list[Design]:
    limit = min(max(limit, 1), 100)
    return (
        db.session.query(Design)
        .filter(Design.user_id == user.id)
        .order_by(Design.created_at.desc(), Design.id.desc())
        .limit(limit)
        .all()
    )


def is_visible_to(design: Design, user: User) -> bool:
    """Staff see every design; customers see their own and unowned ones."""
    return user.role != ROLE_CUSTOMER or design.user_id in (None, user.id)


def get_design_for(user: User, design_id: int) -> Design:
    """Anything the caller cannot see looks like a missing design."""
    design = db.session.get(Design, design_id)
    if not design or not is_visible_to(design, user):
        raise DesignNotFoundError("Design not found")
    return design

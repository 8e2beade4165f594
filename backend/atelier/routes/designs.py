# Overview: Flask API routes for AI design generation and design history; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import design_service
from ..services.design_service import (
    DesignLimitError,
    DesignNotFoundError,
    DesignValidationError,
)
from ..services.image_generation import ImageGenerationError, NoProviderConfiguredError


designs_bp = Blueprint("designs", __name__, url_prefix="/api/designs")


@designs_bp.post("/generate")
@require_auth
def generate_design_route():
    """
    Request body:
    {
        "design_prompt": "vintage rose gold ring",  // required
        "design_type": "ring",                     // ring|necklace|earring|bracelet|tiara
        "materials": ["rose gold"],
        "gemstones": ["emerald"],
        "customizations": {"engraving": "A&B"}
    }

    Returns:
        {success, data: Design, remaining_credits}
    """
    data = request.get_json(silent=True) or {}
    limit = current_app.config["DESIGN_FREE_LIMIT"]
    user = g.current_user

    try:
        design = design_service.generate_design(user, data, free_limit=limit)
    except DesignValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except DesignLimitError as e:
        return jsonify({"success": False, "error": str(e)}), 403
    except NoProviderConfiguredError as e:
        return jsonify({"success": False, "error": str(e)}), 503
    except ImageGenerationError as e:
        current_app.logger.error("Design generation failed for user %s: %s", user.id, e)
        return jsonify({"success": False, "error": str(e)}), 502

    return jsonify({
        "success": True,
        "data": design.to_dict(),
        "remaining_credits": design_service.remaining_credits(user, limit),
    }), 200


@designs_bp.post("/save")
@require_auth
def save_design_route():
    """Request body: {title?, prompt, type?, image_url, materials?, gemstones?, customizations?}"""
    data = request.get_json(silent=True) or {}
    try:
        design = design_service.save_design(g.current_user, data)
    except DesignValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    return jsonify({"success": True, "data": design.to_dict()}), 201


@designs_bp.get("/history")
@require_auth
def history_route():
    """Query parameters: limit (default 10)."""
    limit = request.args.get("limit", 10, type=int)
    designs = design_service.list_history(g.current_user, limit)
    return jsonify({"success": True, "data": [d.to_dict() for d in designs], "count": len(designs)})


@designs_bp.get("/<int:design_id>")
@require_auth
def get_design_route(design_id: int):
    try:
        design = design_service.get_design_for(g.current_user, design_id)
    except DesignNotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    return jsonify({"success": True, "data": design.to_dict()})

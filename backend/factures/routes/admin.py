# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin dashboard: user listing and role changes. Admin role required.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import user_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/api/dashboard")


@admin_bp.get("/users")
@require_auth
@require_admin
def list_users():
    users = user_service.list_users()
    return jsonify({"users": [user.to_dict() for user in users], "count": len(users)})


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_admin
def set_user_role(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.set_role(actor=g.current_user, user_id=user_id, role=data.get("role"))
        return jsonify({"user": user.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update user role")
        return jsonify({"error": "Internal server error"}), 500

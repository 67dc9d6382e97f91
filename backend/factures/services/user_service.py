# Overview: Admin-side user listing and role changes.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLES
from ..validation import ValidationError, NotFoundError


class UserNotFound(NotFoundError):
    """Raised when a user id does not exist."""


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).all()


def set_role(*, actor: User, user_id: int, role) -> User:
    """
    Change a user's role.

    An admin cannot change their own role, so the last admin cannot lock
    everybody out by demoting themselves.
    """
    if user_id == actor.id:
        raise ValidationError("You cannot change your own role", details={"field": "user_id"})

    if role not in ROLES:
        raise ValidationError(
            f"role must be one of: {', '.join(ROLES)}", details={"field": "role"}
        )

    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise UserNotFound(f"User {user_id} not found")

    if user.role != role:
        previous = user.role
        user.role = role
        db.session.commit()
        current_app.logger.info(
            "User %s role changed %s -> %s by user %s", user.id, previous, role, actor.id
        )

    return user

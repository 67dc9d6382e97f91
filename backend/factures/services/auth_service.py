# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Email/password accounts hashed with bcrypt. Sign-up is open; the account
whose email matches ADMIN_EMAIL is promoted to admin on creation, everybody
else starts as a plain user.
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN, ROLE_USER
from ..validation import ValidationError, ConflictError
from factures.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            details={"field": "password"},
        )


def normalize_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise ValidationError("A valid email is required", details={"field": "email"})
    return email.strip().lower()


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing. Cost factor comes
    from BCRYPT_ROUNDS (12 by default).
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _initial_role(email: str) -> str:
    admin_email = (current_app.config.get("ADMIN_EMAIL") or "").strip().lower()
    return ROLE_ADMIN if admin_email and email == admin_email else ROLE_USER


def create_user(name: str, email: str, password: str, role: str | None = None) -> User:
    """
    Create a user account.

    Raises ValidationError for bad input, PasswordValidationError for a weak
    password and ConflictError when the email is already registered.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required", details={"field": "name"})
    email = normalize_email(email)

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ConflictError("Email already registered", details={"field": "email"})

    password_hash = hash_password(password)

    user = User(
        name=name.strip(),
        email=email,
        password_hash=password_hash,
        role=role or _initial_role(email),
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns User if credentials are valid, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None

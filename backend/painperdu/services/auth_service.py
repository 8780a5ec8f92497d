# Overview: Service-layer operations for auth; encapsulates password hashing and login.

"""
Authentication Service

WHY: Every inventory count must be attributable. Uses bcrypt for password
hashing (cost factor from BCRYPT_ROUNDS, 10-12) and validates password
strength at creation and change.

SECURITY NOTES:
- Minimum 8 characters
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import User, ROLE_SELLER
from ..time_utils import utcnow
from ..validation import USER_ROLES, EMAIL_RE


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-+=]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_rounds() -> int:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    return min(max(int(rounds), 10), 12)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt; the password is validated for strength first.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = ROLE_SELLER,
    first_name: str | None = None,
    last_name: str | None = None,
    is_active: bool = True,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Does not commit; callers (routes, CLI) own the transaction.

    Raises:
        ValidationError: bad role/e-mail/username or weak password
        ConflictError: username or e-mail already taken
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()

    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if not 3 <= len(username) <= 50:
        raise ValidationError("Username must be between 3 and 50 characters")
    if not EMAIL_RE.match(email) or len(email) > 100:
        raise ValidationError("Invalid e-mail address")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or e-mail already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        first_name=first_name,
        last_name=last_name,
        is_active=is_active,
    )

    db.session.add(user)
    db.session.flush()
    return user


def authenticate(login: str, password: str) -> User | None:
    """
    Authenticate user with username or e-mail and password.

    Returns User if credentials valid and the account is active, None
    otherwise. Updates last_login_at on success.
    """
    login = (login or "").strip()
    user = db.session.query(User).filter(
        db.or_(User.username == login, User.email == login.lower()),
    ).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user

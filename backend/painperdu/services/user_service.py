# Overview: Service-layer operations for user administration.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models import Category, Inventory, Product, Schedule, User, ROLE_SELLER
from ..permissions import can_access, can_see
from .auth_service import hash_password
from .query_filters import paginate
from .session_service import revoke_all_user_sessions


USER_MUTABLE_FIELDS = {"username", "email", "first_name", "last_name", "role", "is_active"}
ADMIN_ONLY_FIELDS = {"role", "is_active"}


def list_users(
    *,
    role: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    q = db.session.query(User)
    if role is not None:
        q = q.filter(User.role == role)
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(
            User.username.ilike(term),
            User.email.ilike(term),
            User.first_name.ilike(term),
            User.last_name.ilike(term),
        ))
    q = q.order_by(User.username.asc(), User.id.asc())
    return paginate(q, page, per_page, lambda u: u.to_dict())


def list_active_sellers() -> dict:
    sellers = (
        db.session.query(User)
        .filter(User.role == ROLE_SELLER, User.is_active.is_(True))
        .order_by(User.first_name.asc(), User.last_name.asc(), User.username.asc())
        .all()
    )
    return {
        "items": [s.to_summary() for s in sellers],
        "count": len(sellers),
    }


def get_user(actor: User, user_id: int) -> User:
    """Administrators see everyone; other users only themselves."""
    user = db.session.get(User, user_id)
    if user is None or not can_see(actor, user):
        raise NotFoundError("User not found")
    return user


def _ensure_identity_free(*, username: str | None, email: str | None, exclude_id: int) -> None:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return
    existing = (
        db.session.query(User.id)
        .filter(db.or_(*clauses), User.id != exclude_id)
        .first()
    )
    if existing is not None:
        raise ConflictError("Username or e-mail already exists")


def update_user(actor: User, user_id: int, *, patch: dict, password: str | None = None) -> User:
    """
    Apply a validated patch to a user.

    Only administrators may change role or is_active, and not on their own
    account. A password change revokes every open session of the user.
    """
    user = get_user(actor, user_id)
    if not can_access(actor, user, "update"):
        raise AuthorizationError()

    if ADMIN_ONLY_FIELDS & patch.keys():
        if not can_access(actor, user, "change_role"):
            raise AuthorizationError("Only administrators can change role or status")
        if user.id == actor.id and (
            patch.get("role", user.role) != user.role or patch.get("is_active", True) is False
        ):
            raise ValidationError("You cannot change your own role or deactivate your own account")

    if "email" in patch and patch["email"] is not None:
        patch["email"] = patch["email"].lower()
    _ensure_identity_free(
        username=patch.get("username") if patch.get("username") != user.username else None,
        email=patch.get("email") if patch.get("email") != user.email else None,
        exclude_id=user.id,
    )

    for k, v in patch.items():
        if k in USER_MUTABLE_FIELDS:
            setattr(user, k, v)

    if password is not None:
        user.password_hash = hash_password(password)
        revoke_all_user_sessions(user.id, reason="password_changed")

    if patch.get("is_active") is False:
        revoke_all_user_sessions(user.id, reason="deactivated")

    db.session.flush()
    return user


def delete_user(actor: User, user_id: int) -> dict:
    """
    Remove a user.

    Users referenced by any inventory keep their row (counts must stay
    attributable) and are deactivated instead.

    Returns:
        {"deleted": bool, "deactivated": bool}
    """
    if not can_access(actor, "users", "manage"):
        raise AuthorizationError()
    if actor.id == user_id:
        raise ValidationError("You cannot delete your own account")

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    referenced = (
        db.session.query(Inventory.id)
        .filter(db.or_(
            Inventory.seller_id == user.id,
            Inventory.created_by_user_id == user.id,
            Inventory.confirmed_by_user_id == user.id,
        ))
        .first()
    )
    if referenced is not None:
        user.is_active = False
        revoke_all_user_sessions(user.id, reason="deactivated")
        db.session.flush()
        current_app.logger.info("User %s owns inventories; deactivated instead of deleted", user.id)
        return {"deleted": False, "deactivated": True}

    db.session.query(Schedule).filter(Schedule.seller_id == user.id).delete(synchronize_session="fetch")
    for model in (Category, Product, Schedule):
        db.session.query(model).filter(model.created_by_user_id == user.id).update(
            {model.created_by_user_id: None}, synchronize_session="fetch"
        )
    db.session.delete(user)
    db.session.flush()
    return {"deleted": True, "deactivated": False}


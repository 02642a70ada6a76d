"""Staff account routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from sqlalchemy import func, or_, select

from restaurant_pos.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from restaurant_pos.core.rbac import CurrentUser, RequireAdmin, RequireManager, TokenData, UserRole
from restaurant_pos.core.responses import paginated_response, success_response
from restaurant_pos.core.security import get_password_hash
from restaurant_pos.db.session import DbSession
from restaurant_pos.models.user import User, UserStatus
from restaurant_pos.repositories.sql import SqlUnitOfWork
from restaurant_pos.schemas.auth import UserResponse
from restaurant_pos.schemas.users import UserCreate, UserUpdate

logger = logging.getLogger("auth")

router = APIRouter()

ADMIN_ONLY_FIELDS = ("role", "status")


def _user(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


def _get_or_404(db: DbSession, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def _check_self_or_manager(user_id: int, current_user: TokenData) -> None:
    if current_user.role in (UserRole.ADMIN, UserRole.MANAGER) or current_user.user_id == user_id:
        return
    raise ForbiddenError("You can only access your own account", role=current_user.role.value)


def _ensure_email_free(db: DbSession, email: str, user_id: Optional[int] = None) -> None:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if user_id is not None:
        stmt = stmt.where(User.id != user_id)
    if db.scalar(stmt) is not None:
        raise ValidationError("A user with this email already exists", field="email")


@router.get("")
def list_users(
    db: DbSession,
    current_user: RequireManager,
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    stmt = select(User).order_by(User.name, User.id)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if status is not None:
        stmt = stmt.where(User.status == status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    users = db.scalars(stmt.offset((page - 1) * limit).limit(limit)).all()
    return paginated_response("users", [_user(u) for u in users], total, page, limit)


@router.get("/{user_id}")
def get_user(user_id: int, db: DbSession, current_user: CurrentUser):
    _check_self_or_manager(user_id, current_user)
    return success_response({"user": _user(_get_or_404(db, user_id))})


@router.post("", status_code=201)
def create_user(body: UserCreate, db: DbSession, current_user: RequireAdmin):
    _ensure_email_free(db, body.email)
    user = User(
        name=body.name,
        email=body.email,
        password_hash=get_password_hash(body.password),
        role=body.role,
    )
    with SqlUnitOfWork(db):
        db.add(user)
    db.refresh(user)
    logger.info(f"User {user.email} ({user.role.value}) created by {current_user.email}")
    return success_response({"user": _user(user)}, "User created successfully")


@router.put("/{user_id}")
def update_user(user_id: int, body: UserUpdate, db: DbSession, current_user: CurrentUser):
    _check_self_or_manager(user_id, current_user)
    patch = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    restricted = [field for field in ADMIN_ONLY_FIELDS if field in patch]
    if restricted and current_user.role != UserRole.ADMIN:
        raise ForbiddenError(
            f"Only an admin can change {', '.join(restricted)}", role=current_user.role.value,
        )

    user = _get_or_404(db, user_id)
    if "email" in patch:
        _ensure_email_free(db, patch["email"], user_id)
    password = patch.pop("password", None)
    with SqlUnitOfWork(db):
        for field, value in patch.items():
            setattr(user, field, value)
        if password:
            user.password_hash = get_password_hash(password)
    db.refresh(user)
    return success_response({"user": _user(user)}, "User updated successfully")


@router.delete("/{user_id}")
def delete_user(user_id: int, db: DbSession, current_user: RequireAdmin):
    if user_id == current_user.user_id:
        raise InvalidStateError("You cannot delete your own account")
    # accounts that created orders or reservations are kept; deactivate them
    with SqlUnitOfWork(db):
        db.delete(_get_or_404(db, user_id))
    logger.info(f"User {user_id} deleted by {current_user.email}")
    return success_response(None, "User deleted successfully")


@router.put("/{user_id}/status")
def toggle_user_status(user_id: int, db: DbSession, current_user: RequireManager):
    """Flip an account between active and inactive."""
    if user_id == current_user.user_id:
        raise InvalidStateError("You cannot change the status of your own account")
    with SqlUnitOfWork(db):
        user = _get_or_404(db, user_id)
        user.status = UserStatus.INACTIVE if user.is_active else UserStatus.ACTIVE
    db.refresh(user)
    logger.info(f"User {user.email} set {user.status.value} by {current_user.email}")
    return success_response({"user": _user(user)}, f"User status changed to {user.status.value}")

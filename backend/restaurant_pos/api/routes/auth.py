"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import select

from restaurant_pos.core.rate_limit import limiter
from restaurant_pos.core.rbac import CurrentUser
from restaurant_pos.core.responses import success_response
from restaurant_pos.core.security import blacklist_token, create_access_token, verify_password
from restaurant_pos.db.session import DbSession
from restaurant_pos.models.user import User
from restaurant_pos.schemas.auth import LoginRequest, Token, UserResponse

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/login")
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate a staff member and return a bearer token."""
    client_ip = request.client.host if request.client else "unknown"
    user = db.execute(select(User).where(User.email == login_request.email)).scalar_one_or_none()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user: {login_request.email} (ID: {user.id}) from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    logger.info(f"Successful login: {user.email} (ID: {user.id}, role: {user.role.value}) from IP: {client_ip}")
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value, "name": user.name}
    )
    payload = Token(access_token=token, user=UserResponse.model_validate(user))
    return success_response(payload.model_dump(mode="json"), "Login successful")


@router.get("/me")
def me(current_user: CurrentUser, db: DbSession):
    user = db.get(User, current_user.user_id)
    return success_response({"user": UserResponse.model_validate(user).model_dump(mode="json")})


@router.post("/logout")
def logout(request: Request, current_user: CurrentUser):
    """Revoke the bearer token used for this request."""
    auth_header = request.headers.get("Authorization", "")
    token = auth_header.split(" ", 1)[1] if auth_header.startswith("Bearer ") else request.cookies.get("access_token")
    if token:
        blacklist_token(token)
    logger.info(f"Logout: user {current_user.user_id}")
    return success_response(None, "Logged out")

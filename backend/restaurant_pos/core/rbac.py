"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from restaurant_pos.core.security import decode_access_token
from restaurant_pos.db.session import DbSession


class UserRole(str, Enum):
    """Staff roles for RBAC."""

    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    KITCHEN = "kitchen"


# Real-time rooms a connected client joins, keyed by role.
ROLE_ROOMS = {
    UserRole.ADMIN: ("kitchen", "cashier", "manager"),
    UserRole.MANAGER: ("kitchen", "cashier", "manager"),
    UserRole.CASHIER: ("cashier",),
    UserRole.KITCHEN: ("kitchen",),
}


class TokenData:
    """Decoded token data: the acting principal of a request.

    Attributes:
        user_id: The user's database ID.
        email: The user's email address.
        role: The user's role.
        name: Display name used in audit trails and events.
    """

    def __init__(self, user_id: int, email: str, role: UserRole, name: str = ""):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role
        self.name = name or email.split("@")[0]

    def __repr__(self) -> str:
        return f"<TokenData user_id={self.user_id} role={self.role.value}>"


def _token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return token
    return request.cookies.get("access_token")


def token_data_from_payload(payload: dict) -> Optional[TokenData]:
    """Build a principal from a decoded token payload, None if malformed."""
    user_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    if user_id is None or email is None or role is None:
        return None
    try:
        user_role = UserRole(role)
        user_id = int(user_id)
    except ValueError:
        return None
    return TokenData(user_id=user_id, email=email, role=user_role, name=payload.get("name", ""))


def get_current_user(request: Request, db: DbSession) -> TokenData:
    """Get the current authenticated user from the JWT token.

    Checks the Authorization: Bearer header first, then the access_token cookie.
    """
    token = _token_from_request(request)
    payload = decode_access_token(token) if token else None
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    current_user = token_data_from_payload(payload)
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    from restaurant_pos.models.user import User

    user = db.get(User, current_user.user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )
    return current_user


def require_roles(*roles: UserRole):
    """Dependency that admits only the listed roles."""
    allowed = frozenset(roles)

    def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {current_user.role.value} is not permitted to perform this action",
            )
        return current_user

    return role_checker


# Common role dependencies
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
RequireAdmin = Annotated[TokenData, Depends(require_roles(UserRole.ADMIN))]
RequireManager = Annotated[TokenData, Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER))]
RequireFrontOfHouse = Annotated[
    TokenData, Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.CASHIER))
]
RequireKitchenView = Annotated[
    TokenData, Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.KITCHEN))
]

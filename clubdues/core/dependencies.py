from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from clubdues.db.base import get_db
from clubdues.models.user import User, UserRoleEnum
from clubdues.core.security import decode_access_token
import uuid

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id_str: str = payload.get("sub")
    if user_id_str is None:
        raise credentials_exception

    # Convert string UUID to UUID object
    try:
        user_id = uuid.UUID(user_id_str)
    except (ValueError, TypeError):
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current active user (approved)."""
    if current_user.approved is not True:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not approved"
        )
    return current_user


ROLE_NAMES = {
    UserRoleEnum.ADMIN: "Admin",
    UserRoleEnum.TREASURER: "Treasurer",
    UserRoleEnum.MEMBER: "Member",
}


def has_role(user: User, role_name: str) -> bool:
    """Check if user has a specific role ("Admin", "Treasurer", "Member")."""
    if not user.role:
        return False
    return ROLE_NAMES.get(user.role) == role_name


def require_role(role_name: str):
    """Dependency factory for requiring a specific role."""
    async def role_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if not has_role(current_user, role_name):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User does not have required role: {role_name}"
            )
        return current_user
    return role_checker


def require_any_role(*role_names: str):
    """Dependency factory for requiring any of the specified roles."""
    async def role_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        for role_name in role_names:
            if has_role(current_user, role_name):
                return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User does not have any of the required roles: {', '.join(role_names)}"
        )
    return role_checker


# Role-specific dependencies
require_admin = require_role("Admin")
require_ledger_writer = require_any_role("Admin", "Treasurer")


def is_ledger_operator(user: User) -> bool:
    return has_role(user, "Admin") or has_role(user, "Treasurer")


def ensure_member_access(user: User, member) -> None:
    """Operators see every member; a member user sees only their own records."""
    if is_ledger_operator(user):
        return
    if member is not None and member.user_id == user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to view another member's records"
    )

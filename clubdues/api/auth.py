from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from clubdues.db.base import get_db
from clubdues.schemas.auth import UserLogin, Token, UserResponse
from clubdues.services.auth import authenticate_user, create_access_token_for_user
from clubdues.services.member import get_member_by_user_id
from clubdues.core.audit import audit_action
from clubdues.core.dependencies import get_current_user, ROLE_NAMES
from clubdues.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login and get JWT token."""
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    access_token = create_access_token_for_user(user)
    audit_action(user, "Login", f"email={user.email}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """Record logout in audit log (token invalidation is handled client-side)."""
    audit_action(current_user, "Logout", f"email={current_user.email}")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information, including the linked member if any."""
    member = get_member_by_user_id(db, current_user.id)
    roles = [ROLE_NAMES[current_user.role]] if current_user.role else []
    return UserResponse(
        id=str(current_user.id),
        email=current_user.email,
        first_name=current_user.first_name,
        last_name=current_user.last_name,
        approved=current_user.approved,
        roles=roles,
        member_id=str(member.id) if member else None,
    )

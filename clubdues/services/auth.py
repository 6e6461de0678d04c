import logging
from datetime import timedelta
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from clubdues.models.user import User, UserRoleEnum
from clubdues.core.security import verify_password, get_password_hash, create_access_token
from clubdues.core.config import settings
from clubdues.core.errors import ValidationError
from clubdues.models.member import MemberStatus
from clubdues.services.member import get_member_by_user_id

logger = logging.getLogger(__name__)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Authenticate user by email and password.

    Returns the User when the credentials match, None otherwise. Users linked
    to a suspended member cannot log in.
    """
    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.debug(f"User not found: {email}")
        return None

    if not verify_password(password, user.password_hash):
        logger.debug(f"Password verification failed for user: {email}")
        return None

    member = get_member_by_user_id(db, user.id)
    if member and member.status == MemberStatus.SUSPENDED:
        logger.debug(f"User {email} has a suspended membership, login denied")
        return None

    return user


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str = None,
    last_name: str = None,
    role: UserRoleEnum = UserRoleEnum.MEMBER,
    approved: bool = True,
) -> User:
    """Create a login account. Emails are unique."""
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("email", "Email already registered")

    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        approved=approved,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("email", "Email already registered")
    db.refresh(user)
    logger.info(f"Created {role.value} user {email}")
    return user


def create_access_token_for_user(user: User) -> str:
    """Create access token for user."""
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token(
        data={"sub": str(user.id)},
        expires_delta=access_token_expires
    )

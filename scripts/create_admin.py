"""
Create a default admin user.
Usage: python scripts/create_admin.py
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from clubdues.db.base import SessionLocal
from clubdues.core.errors import ValidationError
from clubdues.models.user import UserRoleEnum
from clubdues.services.auth import create_user


def create_admin(email: str = "admin@clubdues.org", password: str = "admin123", first_name: str = "Admin", last_name: str = "User", role: str = "admin"):
    """Create an approved operator account (admin or treasurer)."""
    db = SessionLocal()
    try:
        create_user(
            db,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=UserRoleEnum(role),
            approved=True,  # Operators are auto-approved
        )
        print(f"✅ {role.title()} user created successfully!")
        print(f"   Email: {email}")
        print(f"   Password: {password}")
        print(f"\n⚠️  Please change the password after first login!")
    except ValidationError as e:
        print(f"User with email {email} already exists! ({e.message})")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create a default admin user")
    parser.add_argument("--email", default="admin@clubdues.org", help="Admin email")
    parser.add_argument("--password", default="admin123", help="Admin password")
    parser.add_argument("--first-name", default="Admin", help="First name")
    parser.add_argument("--last-name", default="User", help="Last name")
    parser.add_argument("--role", default="admin", choices=["admin", "treasurer"], help="Operator role")

    args = parser.parse_args()

    create_admin(
        email=args.email,
        password=args.password,
        first_name=args.first_name,
        last_name=args.last_name,
        role=args.role,
    )

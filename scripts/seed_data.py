"""
Seed initial data: membership categories and dues plans.
Usage: python scripts/seed_data.py [--demo-members]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from clubdues.db.base import SessionLocal
from clubdues.models.member import Member, MemberCategory, MemberStatus
from clubdues.models.dues import BillingCycle, DuesPlan
from clubdues.services.plans import create_plan
from decimal import Decimal


def seed_categories(db):
    """Seed membership categories."""
    print("Seeding membership categories...")
    categories = [
        {"code": "GOLD", "name": "Gold", "description": "Gold membership", "rank": 1},
        {"code": "SILVER", "name": "Silver", "description": "Silver membership", "rank": 2},
        {"code": "BRONZE", "name": "Bronze", "description": "Bronze membership", "rank": 3},
        {"code": "HONORARY", "name": "Honorary", "description": "Honorary members", "rank": 4},
    ]

    for cat_data in categories:
        existing = db.query(MemberCategory).filter(MemberCategory.code == cat_data["code"]).first()
        if not existing:
            db.add(MemberCategory(**cat_data))

    db.commit()
    print("Membership categories seeded")


def seed_plans(db):
    """Seed default dues plans."""
    print("Seeding dues plans...")
    plans = [
        {"code": "GOLD_YEARLY", "name": "Gold annual dues", "amount": Decimal("1200.00"), "billing_cycle": BillingCycle.YEARLY, "target_category": "Gold"},
        {"code": "SILVER_QUARTERLY", "name": "Silver quarterly dues", "amount": Decimal("90.00"), "billing_cycle": BillingCycle.QUARTERLY, "target_category": "Silver"},
        {"code": "BRONZE_MONTHLY", "name": "Bronze monthly dues", "amount": Decimal("25.00"), "billing_cycle": BillingCycle.MONTHLY, "target_category": "Bronze"},
        {"code": "ENTRANCE_FEE", "name": "One-time entrance fee", "amount": Decimal("150.00"), "billing_cycle": BillingCycle.ONE_TIME, "target_category": None},
    ]

    for plan_data in plans:
        existing = db.query(DuesPlan).filter(DuesPlan.code == plan_data["code"]).first()
        if not existing:
            create_plan(db, **plan_data)

    print("Dues plans seeded")


def seed_demo_members(db):
    """Seed a handful of members for local testing."""
    print("Seeding demo members...")
    silver = db.query(MemberCategory).filter(MemberCategory.code == "SILVER").first()
    bronze = db.query(MemberCategory).filter(MemberCategory.code == "BRONZE").first()
    members = [
        {"member_number": "M-0001", "first_name": "Ama", "last_name": "Mensah", "category": silver, "status": MemberStatus.ACTIVE},
        {"member_number": "M-0002", "first_name": "Kofi", "last_name": "Asante", "category": silver, "status": MemberStatus.ACTIVE},
        {"member_number": "M-0003", "first_name": "Yaw", "last_name": "Boateng", "category": silver, "status": MemberStatus.PENDING},
        {"member_number": "M-0004", "first_name": "Efua", "last_name": "Owusu", "category": bronze, "status": MemberStatus.SUSPENDED},
    ]

    for member_data in members:
        existing = db.query(Member).filter(Member.member_number == member_data["member_number"]).first()
        if not existing:
            db.add(Member(**member_data))

    db.commit()
    print("Demo members seeded")


def main(demo_members: bool = False):
    db = SessionLocal()
    try:
        seed_categories(db)
        seed_plans(db)
        if demo_members:
            seed_demo_members(db)
        print("\n✅ Seed data created successfully!")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed categories and dues plans")
    parser.add_argument("--demo-members", action="store_true", help="Also create demo members")
    args = parser.parse_args()
    main(demo_members=args.demo_members)

"""Pytest configuration and shared fixtures for the dues ledger tests.

Every test gets a fresh in-memory SQLite database. Factories create
categories, members, plans, dues and users; API tests share the test session
with the app through a ``get_db`` override.
"""
import os
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RECONCILIATION_SWEEP_ENABLED"] = "false"
os.environ["AUDIT_LOG_DIR"] = tempfile.mkdtemp(prefix="clubdues-audit-")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clubdues.core.dependencies import get_current_user
from clubdues.core.security import get_password_hash
from clubdues.db.base import get_db, make_engine
from clubdues.models import (
    AssignedDue,
    Base,
    BillingCycle,
    DuesPlan,
    DueStatus,
    Member,
    MemberCategory,
    MemberStatus,
    User,
    UserRoleEnum,
)
from clubdues.services.periods import parse_period


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def category_factory(db):
    def _create_category(name: str = "Silver", code: str = None, rank: int = None) -> MemberCategory:
        category = MemberCategory(code=code or name.upper(), name=name, rank=rank)
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _create_category


@pytest.fixture
def member_factory(db):
    counter = {"n": 0}

    def _create_member(
        first_name: str = "Ama",
        last_name: str = None,
        category: MemberCategory = None,
        status: MemberStatus = MemberStatus.ACTIVE,
        user: User = None,
    ) -> Member:
        counter["n"] += 1
        member = Member(
            member_number=f"M-{counter['n']:04d}",
            first_name=first_name,
            last_name=last_name or f"Member{counter['n']}",
            category_id=category.id if category else None,
            status=status,
            user_id=user.id if user else None,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _create_member


@pytest.fixture
def plan_factory(db):
    def _create_plan(
        code: str = "SILVER_QUARTERLY",
        amount: str = "90.00",
        currency: str = "GHS",
        billing_cycle: BillingCycle = BillingCycle.QUARTERLY,
        active: bool = True,
    ) -> DuesPlan:
        plan = DuesPlan(
            code=code,
            name=code.replace("_", " ").title(),
            amount=Decimal(amount),
            currency=currency,
            billing_cycle=billing_cycle,
            active=active,
        )
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan

    return _create_plan


@pytest.fixture
def due_factory(db):
    def _create_due(
        member: Member,
        plan: DuesPlan,
        period: str = "2024-Q4",
        amount: str = None,
        status: DueStatus = DueStatus.PENDING,
    ) -> AssignedDue:
        parsed = parse_period(period)
        due = AssignedDue(
            member_id=member.id,
            plan_id=plan.id,
            category_id=member.category_id,
            amount=Decimal(amount) if amount else plan.amount,
            currency=plan.currency,
            period=parsed.token,
            period_start=parsed.start,
            period_end=parsed.end,
            due_date=parsed.end,
            status=status,
            reference=f"{plan.code}-{parsed.token}-{member.id}",
        )
        db.add(due)
        db.commit()
        db.refresh(due)
        return due

    return _create_due


@pytest.fixture
def user_factory(db):
    def _create_user(
        email: str = "treasurer@example.com",
        role: UserRoleEnum = UserRoleEnum.TREASURER,
        password: str = "secret123",
        approved: bool = True,
    ) -> User:
        user = User(
            email=email,
            first_name=role.value.title(),
            last_name="User",
            password_hash=get_password_hash(password),
            role=role,
            approved=approved,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create_user


@pytest.fixture
def treasurer(user_factory) -> User:
    return user_factory()


@pytest.fixture
def silver_setup(category_factory, member_factory, plan_factory):
    """Silver category with two active members and the SILVER_QUARTERLY plan."""
    silver = category_factory("Silver")
    members = [
        member_factory("Ama", "Mensah", category=silver),
        member_factory("Kofi", "Asante", category=silver),
    ]
    plan = plan_factory("SILVER_QUARTERLY", "90.00")
    return silver, members, plan


# =============================================================================
# HTTP client
# =============================================================================


@pytest.fixture
def app(db):
    from clubdues.main import app as fastapi_app

    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client_as(app):
    """Return a TestClient authenticated as the given user."""
    def _client(user: User) -> TestClient:
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    return _client


@pytest.fixture
def client(client_as, treasurer) -> TestClient:
    return client_as(treasurer)


@pytest.fixture
def today() -> date:
    return date(2024, 11, 15)

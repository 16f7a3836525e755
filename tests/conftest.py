"""
Shared fixtures: in-memory SQLite, factories and an authenticated TestClient.

Environment is set before the app is imported so settings, the rate limiter
and the module-level engine pick it up.
"""

import os
import sys

os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, enable_sqlite_foreign_keys, get_db
from app.models import (
    Booking,
    BookingAsset,
    Client,
    Job,
    JobAsset,
    Tenant,
    User,
    UserRole,
)
from app.utils.security import create_access_token


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


class Factory:
    """Creates committed rows with sensible defaults."""

    def __init__(self, db):
        self.db = db
        self._erp_counter = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def tenant(self, name="Acme Recycling"):
        return self._save(Tenant(name=name))

    def user(self, tenant, role=UserRole.CLIENT, email=None, name=None, status="active"):
        role = UserRole(role)
        email = email or f"{role.value}-{len(self.db.query(User).all())}@example.com"
        return self._save(User(
            tenant_id=tenant.id,
            email=email,
            name=name or f"{role.value.title()} User",
            role=role.value,
            status=status,
        ))

    def client(self, tenant, name="Client Org", email=None, reseller=None):
        return self._save(Client(
            tenant_id=tenant.id,
            name=name,
            email=email,
            reseller_id=reseller.id if reseller else None,
        ))

    def next_erp(self):
        self._erp_counter += 1
        return f"ERP-{self._erp_counter:04d}"

    def booking(
        self,
        tenant,
        client=None,
        created_by=None,
        status="created",
        erp_job_number="auto",
        driver=None,
        reseller=None,
        assets=(("Laptop", 5), ("Monitor", 2)),
        **fields,
    ):
        if erp_job_number == "auto":
            erp_job_number = self.next_erp()
        booking = Booking(
            booking_number=f"BK-20260101-{len(self.db.query(Booking).all()):06X}",
            tenant_id=tenant.id,
            client_id=client.id if client else None,
            reseller_id=reseller.id if reseller else None,
            created_by=created_by.id if created_by else None,
            status=status,
            erp_job_number=erp_job_number,
            driver_id=driver.id if driver else None,
            driver_name=driver.name if driver else None,
            site_name=fields.pop("site_name", "Head Office"),
            site_address=fields.pop("site_address", "1 High Street, London"),
            **fields,
        )
        booking.assets = [
            BookingAsset(position=i, category_name=name, quantity=qty)
            for i, (name, qty) in enumerate(assets)
        ]
        return self._save(booking)

    def job(self, tenant, booking=None, status="booked", driver=None, erp_job_number=None, **fields):
        job = Job(
            erp_job_number=erp_job_number or (booking.erp_job_number if booking else self.next_erp()),
            booking_id=booking.id if booking else None,
            tenant_id=tenant.id,
            client_name=fields.pop("client_name", "Client Org"),
            site_name=fields.pop("site_name", "Head Office"),
            site_address=fields.pop("site_address", "1 High Street, London"),
            status=status,
            driver_id=driver.id if driver else None,
            **fields,
        )
        job.assets = [JobAsset(position=0, category_name="Laptop", quantity=5)]
        job = self._save(job)
        if booking is not None:
            booking.job_id = job.id
            self.db.commit()
        return job


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def tenant(factory):
    return factory.tenant()


@pytest.fixture
def admin(factory, tenant):
    return factory.user(tenant, UserRole.ADMIN, email="admin@example.com", name="Ada Admin")


@pytest.fixture
def driver(factory, tenant):
    return factory.user(tenant, UserRole.DRIVER, email="driver@example.com", name="Dan Driver")


@pytest.fixture
def client_user(factory, tenant):
    return factory.user(tenant, UserRole.CLIENT, email="buyer@client.example.com", name="Cleo Client")


@pytest.fixture
def reseller(factory, tenant):
    return factory.user(tenant, UserRole.RESELLER, email="partner@reseller.example.com", name="Rex Reseller")


@pytest.fixture
def client_org(factory, tenant, client_user, reseller):
    return factory.client(tenant, name="Client Org", email=client_user.email, reseller=reseller)


def token_for(user) -> str:
    return create_access_token({
        "sub": user.id,
        "role": user.role,
        "tenant_id": user.tenant_id,
        "email": user.email,
    })


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def api(db):
    """TestClient whose requests use the test database."""
    from fastapi.testclient import TestClient
    from app.main import app

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return auth_headers

"""Shared fixtures: in-memory SQLite, seeded medicines/staff, authenticated TestClient."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.permissions import ALL_ROLES, PHARMACY_READ
from app.core.security import OperatorIdentity, create_access_token
from app.db.base import Base
from app.main import app
from app.models import Distribution, Medicine, StaffUser


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def operator():
    return OperatorIdentity(id="op-1", username="pharmacist", roles=frozenset(ALL_ROLES))


@pytest.fixture
def auth_headers():
    token = create_access_token("op-1", "pharmacist", ALL_ROLES)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def read_only_headers():
    token = create_access_token("op-2", "viewer", [PHARMACY_READ])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def add_medicine(db):
    def _add(name="Doliprane 500", stock=10, dci="Paracetamol", deleted=False, ddp=None, **extra):
        medicine = Medicine(
            dci=dci,
            nom_commercial=name,
            stock=stock,
            ddp=ddp,
            lot=extra.get("lot", "LOT-001"),
            cout=Decimal(extra.get("cout", "1.20")),
            prix_de_vente=Decimal(extra.get("prix_de_vente", "2.50")),
            deleted=deleted,
        )
        db.add(medicine)
        db.commit()
        db.refresh(medicine)
        return medicine

    return _add


@pytest.fixture
def staff(db):
    staff = StaffUser(
        id="kc-7f3a",
        username="jdoe",
        email="jdoe@example.org",
        first_name="Jane",
        last_name="Doe",
        national_id="AB123456",
        role_mappings={"realm": ["nurse"]},
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)
    return staff


@pytest.fixture
def add_distribution(db):
    def _add(medicine, staff, quantity=1, at=None):
        record = Distribution(
            medicine_id=medicine.id,
            medicine_name=medicine.nom_commercial,
            quantity=quantity,
            staff_user_id=staff.id,
            staff_username=staff.username,
            staff_full_name=staff.full_name,
            staff_national_id=staff.national_id,
            distributed_by="pharmacist",
            distributed_at=at or datetime.now(timezone.utc),
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _add

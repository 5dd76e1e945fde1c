"""
Distribution transaction engine.

Covers the all-or-nothing contract: either every line decrements stock and
gets a ledger row, or nothing changes.
"""
import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    NoStaffSelected,
    StaffNotFound,
    UnknownMedicine,
)
from app.db.base import Base
from app.models import Distribution, Medicine, StaffUser
from app.schemas.distribution import DistributionItem
from app.schemas.staff import StaffIdentity
from app.services import distribution_service
from app.services.distribution_service import aggregate_lines, distribute


def _identity(staff):
    return StaffIdentity.model_validate(staff)


def _stock(db, medicine_id):
    db.expire_all()
    return db.get(Medicine, medicine_id).stock


def test_commit_decrements_stock_and_writes_one_record_per_line(db, operator, staff, add_medicine):
    a = add_medicine(name="Doliprane", stock=10)
    b = add_medicine(name="Spasfon", stock=4)

    result = distribute(db, _identity(staff), [(a.id, 3), (b.id, 4)], operator)

    assert _stock(db, a.id) == 7
    assert _stock(db, b.id) == 0
    assert len(result.records) == 2
    by_medicine = {r.medicine_id: r for r in result.records}
    assert by_medicine[a.id].quantity == 3
    assert by_medicine[b.id].quantity == 4
    for record in result.records:
        assert record.staff_user_id == staff.id
        assert record.staff_national_id == "AB123456"
        assert record.staff_full_name == "Jane Doe"
        assert record.distributed_by == "pharmacist"
    assert by_medicine[a.id].medicine_name == "Doliprane"
    assert result.message == "Distributed 7 units of 2 medicines to Jane Doe"
    assert db.query(Distribution).count() == 2


def test_insufficient_live_stock_changes_nothing(db, operator, staff, add_medicine):
    a = add_medicine(name="A", stock=5)
    b = add_medicine(name="B", stock=0)

    with pytest.raises(InsufficientStock) as exc:
        distribute(db, _identity(staff), [(a.id, 2), (b.id, 1)], operator)

    assert [s["medicineId"] for s in exc.value.shortages] == [b.id]
    assert exc.value.shortages[0]["available"] == 0
    assert _stock(db, a.id) == 5
    assert _stock(db, b.id) == 0
    assert db.query(Distribution).count() == 0


def test_every_short_medicine_is_named(db, operator, staff, add_medicine):
    a = add_medicine(name="A", stock=1)
    b = add_medicine(name="B", stock=1)
    c = add_medicine(name="C", stock=9)

    with pytest.raises(InsufficientStock) as exc:
        distribute(db, _identity(staff), [(a.id, 2), (b.id, 3), (c.id, 1)], operator)

    assert {s["medicineId"] for s in exc.value.shortages} == {a.id, b.id}
    assert "A (requested 2, available 1)" in exc.value.message
    assert _stock(db, c.id) == 9


def test_duplicate_lines_are_aggregated(db, operator, staff, add_medicine):
    a = add_medicine(stock=5)

    result = distribute(db, _identity(staff), [(a.id, 2), (a.id, 3)], operator)

    assert len(result.records) == 1
    assert result.records[0].quantity == 5
    assert _stock(db, a.id) == 0


def test_aggregated_duplicates_are_checked_against_stock(db, operator, staff, add_medicine):
    a = add_medicine(stock=5)
    with pytest.raises(InsufficientStock):
        distribute(db, _identity(staff), [(a.id, 3), (a.id, 3)], operator)
    assert _stock(db, a.id) == 5


def test_aggregate_lines_keeps_first_seen_order():
    items = [DistributionItem(id="b", quantity=1), ("a", 2), ("b", 4)]
    assert list(aggregate_lines(items).items()) == [("b", 5), ("a", 2)]


@pytest.mark.parametrize("quantity", [0, -2, True, 1.5])
def test_invalid_quantity(db, operator, staff, add_medicine, quantity):
    a = add_medicine(stock=5)
    with pytest.raises(InvalidQuantity):
        distribute(db, _identity(staff), [(a.id, quantity)], operator)
    assert _stock(db, a.id) == 5


def test_no_staff_selected(db, operator, add_medicine):
    a = add_medicine()
    with pytest.raises(NoStaffSelected):
        distribute(db, None, [(a.id, 1)], operator)


def test_empty_cart(db, operator, staff):
    with pytest.raises(EmptyCart):
        distribute(db, _identity(staff), [], operator)


def test_soft_deleted_medicine_is_not_distributable(db, operator, staff, add_medicine):
    a = add_medicine(stock=5)
    gone = add_medicine(name="Gone", stock=5, deleted=True)

    with pytest.raises(UnknownMedicine):
        distribute(db, _identity(staff), [(a.id, 1), (gone.id, 1)], operator)

    assert _stock(db, a.id) == 5
    assert _stock(db, gone.id) == 5
    assert db.query(Distribution).count() == 0


def test_missing_medicine_is_unknown(db, operator, staff):
    with pytest.raises(UnknownMedicine):
        distribute(db, _identity(staff), [("does-not-exist", 1)], operator)


def test_staff_must_exist_in_directory(db, operator, staff, add_medicine):
    a = add_medicine(stock=5)
    forged = StaffIdentity(id="other", username="x", national_id="AB123456")
    with pytest.raises(StaffNotFound):
        distribute(db, forged, [(a.id, 1)], operator)

    stranger = StaffIdentity(id="kc-0000", username="y", national_id="ZZ000000")
    with pytest.raises(StaffNotFound):
        distribute(db, stranger, [(a.id, 1)], operator)
    assert _stock(db, a.id) == 5


# ==============================================================================
# CONCURRENCY
# ==============================================================================

@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'pharmacy.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


def test_concurrent_distributions_cannot_overdraw(file_engine, operator, monkeypatch):
    Session = sessionmaker(bind=file_engine, autocommit=False, autoflush=False)
    with Session() as setup:
        medicine = Medicine(dci="Paracetamol", nom_commercial="Doliprane", stock=5,
                            cout=Decimal("1.20"), prix_de_vente=Decimal("2.50"))
        staff = StaffUser(id="kc-7f3a", username="jdoe", first_name="Jane",
                          last_name="Doe", national_id="AB123456")
        setup.add_all([medicine, staff])
        setup.commit()
        medicine_id = medicine.id
        identity = _identity(staff)

    # both workers read stock 5 before either decrements
    both_read = threading.Barrier(2, timeout=5)
    lock_medicines = distribution_service._lock_medicines

    def lock_then_wait(db, medicine_ids):
        rows = lock_medicines(db, medicine_ids)
        both_read.wait()
        return rows

    monkeypatch.setattr(distribution_service, "_lock_medicines", lock_then_wait)

    results = []

    def worker():
        with Session() as db:
            try:
                distribute(db, identity, [(medicine_id, 3)], operator)
                results.append("ok")
            except InsufficientStock as e:
                results.append(e.shortages[0]["available"])

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert sorted(results, key=str) == [2, "ok"]
    with Session() as db:
        assert db.get(Medicine, medicine_id).stock == 2
        assert db.query(Distribution).count() == 1


# ==============================================================================
# HTTP
# ==============================================================================

def _staff_json(staff):
    return {
        "id": staff.id,
        "username": staff.username,
        "firstName": staff.first_name,
        "lastName": staff.last_name,
        "email": staff.email,
        "nationalId": staff.national_id,
        "roleMappings": staff.role_mappings,
    }


def test_distribute_endpoint(client, auth_headers, staff, add_medicine):
    a = add_medicine(name="Doliprane", stock=3)
    resp = client.post(
        "/pharmacy/medicines/distribute",
        json={"staffUser": _staff_json(staff), "medicines": [{"id": a.id, "quantity": 2}]},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Distributed 2 units of 1 medicine to Jane Doe"
    [record] = body["distributions"]
    assert record["medicineId"] == a.id
    assert record["medicineName"] == "Doliprane"
    assert record["quantity"] == 2
    assert record["staffUserId"] == staff.id
    assert record["staffNationalId"] == "AB123456"
    assert record["distributedBy"] == "pharmacist"

    after = client.get(f"/pharmacy/medicines/{a.id}", headers=auth_headers).json()
    assert after["stock"] == 1


def test_distribute_endpoint_conflict_body(client, auth_headers, staff, add_medicine):
    a = add_medicine(name="Doliprane", stock=1)
    resp = client.post(
        "/pharmacy/medicines/distribute",
        json={"staffUser": _staff_json(staff), "medicines": [{"id": a.id, "quantity": 2}]},
        headers=auth_headers,
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "InsufficientStock"
    assert body["details"] == [
        {"medicineId": a.id, "medicineName": "Doliprane", "requested": 2, "available": 1}
    ]


@pytest.mark.parametrize("payload,code", [
    ({"medicines": [{"id": "x", "quantity": 1}]}, "NoStaffSelected"),
    ({"staffUser": None, "medicines": []}, "NoStaffSelected"),
])
def test_distribute_endpoint_without_staff(client, auth_headers, payload, code):
    resp = client.post("/pharmacy/medicines/distribute", json=payload, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == code


def test_distribute_endpoint_empty_cart(client, auth_headers, staff):
    resp = client.post(
        "/pharmacy/medicines/distribute",
        json={"staffUser": _staff_json(staff), "medicines": []},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "EmptyCart"


def test_distribute_requires_distribute_role(client, read_only_headers, staff, add_medicine):
    a = add_medicine()
    resp = client.post(
        "/pharmacy/medicines/distribute",
        json={"staffUser": _staff_json(staff), "medicines": [{"id": a.id, "quantity": 1}]},
        headers=read_only_headers,
    )
    assert resp.status_code == 403


@pytest.mark.parametrize("quantity", [True, 1.5, 2.0, "2"])
def test_distribute_endpoint_rejects_non_integer_quantity(client, auth_headers, staff, add_medicine,
                                                          quantity):
    a = add_medicine(stock=5)
    resp = client.post(
        "/pharmacy/medicines/distribute",
        json={"staffUser": _staff_json(staff), "medicines": [{"id": a.id, "quantity": quantity}]},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidQuantity"
    after = client.get(f"/pharmacy/medicines/{a.id}", headers=auth_headers).json()
    assert after["stock"] == 5


def test_timestamps_are_sent_with_utc_offset(client, auth_headers, staff, add_medicine):
    a = add_medicine(stock=5)
    resp = client.post(
        "/pharmacy/medicines/distribute",
        json={"staffUser": _staff_json(staff), "medicines": [{"id": a.id, "quantity": 1}]},
        headers=auth_headers,
    )
    [record] = resp.json()["distributions"]
    assert record["distributedAt"].endswith("Z") or record["distributedAt"].endswith("+00:00")

    listed = client.get("/pharmacy/distributions", headers=auth_headers).json()["items"][0]
    assert listed["distributedAt"] == record["distributedAt"]
    medicine = client.get(f"/pharmacy/medicines/{a.id}", headers=auth_headers).json()
    assert medicine["updatedAt"][-1] == "Z" or medicine["updatedAt"].endswith("+00:00")

"""Seed the pharmacy with a starter inventory and staff directory entries."""
from datetime import date, timedelta
from decimal import Decimal

from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.models.medicine import Medicine
from app.schemas.staff import StaffIdentity
from app.services.staff_directory import upsert_staff

MEDICINES = [
    # dci, commercial name, stock, cost, sale price, lot, months to expiry
    ("Paracetamol", "Doliprane 500mg", 200, "0.90", "1.95", "DL2409", 18),
    ("Paracetamol", "Doliprane 1000mg", 120, "1.20", "2.40", "DL2411", 12),
    ("Ibuprofene", "Advil 200mg", 80, "1.60", "3.10", "AV0317", 9),
    ("Amoxicilline", "Clamoxyl 1g", 45, "3.10", "5.75", "CX1102", 6),
    ("Phloroglucinol", "Spasfon 80mg", 60, "1.40", "2.90", "SP0921", 14),
    ("Omeprazole", "Mopral 20mg", 35, "2.20", "4.60", "MP0305", 4),
    ("Cetirizine", "Zyrtec 10mg", 90, "1.05", "2.20", "ZY0712", 20),
    ("Loperamide", "Imodium 2mg", 0, "1.30", "2.75", "IM0108", 10),
    ("Povidone iodee", "Betadine 10%", 25, "2.80", "5.20", "BT2206", -1),  # already expired
]

STAFF = [
    StaffIdentity(id="kc-1001", username="a.benali", first_name="Amina", last_name="Benali",
                  email="a.benali@example.org", national_id="AB123456",
                  role_mappings={"realm": ["nurse"]}),
    StaffIdentity(id="kc-1002", username="y.haddad", first_name="Youssef", last_name="Haddad",
                  national_id="CD789012", role_mappings={"realm": ["technician"]}),
    StaffIdentity(id="kc-1003", username="s.martin", first_name="Sophie", last_name="Martin",
                  email="s.martin@example.org", national_id="EF345678",
                  role_mappings={"realm": ["physician"]}),
]


def seed_inventory():
    init_db()
    db = SessionLocal()
    try:
        if db.query(Medicine).count():
            print("[WARN] Inventory already seeded, skipping medicines")
        else:
            today = date.today()
            for dci, name, stock, cout, prix, lot, months in MEDICINES:
                db.add(Medicine(
                    dci=dci,
                    nom_commercial=name,
                    stock=stock,
                    ddp=today + timedelta(days=30 * months),
                    lot=lot,
                    cout=Decimal(cout),
                    prix_de_vente=Decimal(prix),
                ))
            db.commit()
            print(f"[OK] Added {len(MEDICINES)} medicines to inventory")

        for identity in STAFF:
            upsert_staff(db, identity)
        print(f"[OK] Loaded {len(STAFF)} staff directory entries")

        print(f"\nMEDICINE INVENTORY ({len(MEDICINES)} items):")
        print("=" * 70)
        for m in db.query(Medicine).order_by(Medicine.nom_commercial).all():
            flag = " (EXPIRED)" if m.is_expired() else ""
            print(f"  {m.nom_commercial:<22} {m.dci:<16} stock {m.stock:>4}  lot {m.lot}{flag}")
    finally:
        db.close()


if __name__ == "__main__":
    seed_inventory()

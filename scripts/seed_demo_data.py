"""
Seed script: Populate a demo flower-export ledger with realistic data.

What it creates:
- Customers (importers in USA / Europe / Russia) with payment terms and credit limits.
- Farms (fincas) supplying roses, gypsophila and carnations.
- Invoices (sale / purchase / both) with QB/HB boxes and bunches, flight dates
  spread over the last N days so some invoices are already overdue.
- Credit and debit notes on a fraction of the invoices.
- Single payments and one bulk payment per customer (oldest invoice first).

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_demo_data.py --invoices 200 --days 90

Note: This is intended for development environments only.
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal

from fastapi import HTTPException

from app.database.database import SessionLocal, sync_engine, Base
from app.modules.contacts.schemas import CustomerCreate, FarmCreate
from app.modules.contacts.service import ContactService
from app.modules.invoices.models import InvoiceType, BoxType
from app.modules.invoices.schemas import InvoiceCreate
from app.modules.invoices.service import InvoiceService
from app.modules.notes.models import CreditNote, DebitNote
from app.modules.notes.schemas import NoteCreate
from app.modules.notes.service import NoteService
from app.modules.payments.models import PaymentMethod
from app.modules.payments.schemas import PaymentCreate, BulkPaymentCreate
from app.modules.payments.service import PaymentService

CUSTOMERS = [
    ("Blooming Imports LLC", "USA", "Miami, FL"),
    ("Holland Flower Hub BV", "Netherlands", "Aalsmeer"),
    ("Rosas de Moscú OOO", "Russia", "Moscow"),
    ("Petal Street Wholesale", "USA", "New York, NY"),
    ("Fleurs du Sud SARL", "France", "Marseille"),
]

FARMS = [
    ("Finca La Esperanza", "Rosas"),
    ("Finca Rosaprima", "Rosas"),
    ("Finca Valle Verde", "Gypsophila"),
    ("Finca El Rosal", "Claveles"),
]

VARIETIES = {
    "Rosa": ["Freedom", "Explorer", "Vendela", "Mondial", "Pink Floyd"],
    "Gypsophila": ["Xlence", "Million Stars"],
    "Clavel": ["Moon Light", "Don Pedro"],
}

AGENCIES = ["Fresh Cargo", "Cargo Master", "Flower Logistics"]


def pick(seq):
    return random.choice(seq)


def create_contacts(db):
    contacts = ContactService(db)
    customers = []
    for name, country, city in CUSTOMERS:
        customers.append(contacts.create_customer(CustomerCreate(
            name=name,
            country=country,
            state_city=city,
            agency=pick(AGENCIES),
            payment_terms_days=30,
            credit_limit=Decimal(random.choice([5000, 10000, 25000]))
        )))
    farms = [
        contacts.create_farm(FarmCreate(name=name, product_type=product))
        for name, product in FARMS
    ]
    return customers, farms


def build_items():
    items = []
    for _ in range(random.randint(1, 4)):
        product = pick(list(VARIETIES))
        variety = pick(VARIETIES[product])
        length = pick([40, 50, 60, 70, 80])
        bunches = random.randint(4, 12)
        purchase = Decimal(random.randint(18, 45)) / 100
        margin = Decimal(random.randint(5, 20)) / 100
        items.append({
            "box_type": pick([BoxType.QB, BoxType.HB, BoxType.EB]),
            "box_count": random.randint(1, 5),
            "bunches_per_box": bunches,
            "product": product,
            "variety": variety,
            "length": length,
            "bunches": [{
                "product": product,
                "variety": variety,
                "length": length,
                "stems_per_bunch": 25 if product == "Rosa" else 20,
                "bunches": bunches,
                "purchase_price": purchase,
                "sale_price": purchase + margin,
            }],
        })
    return items


def create_invoices(db, customers, farms, count: int, days: int):
    service = InvoiceService(db)
    created = []
    for i in range(1, count + 1):
        flight_date = date.today() - timedelta(days=random.randint(0, days))
        try:
            invoice = service.create_invoice(InvoiceCreate(
                invoice_number=f"EXP-{i:05d}",
                type=pick([InvoiceType.SALE, InvoiceType.SALE, InvoiceType.BOTH, InvoiceType.PURCHASE]),
                customer_id=pick(customers).id,
                farm_id=pick(farms).id,
                farm_departure_date=flight_date - timedelta(days=1),
                flight_date=flight_date,
                carrier=pick(AGENCIES),
                master_awb=f"145-{random.randint(10000000, 99999999)}",
                items=build_items()
            ))
            created.append(invoice)
        except HTTPException as e:
            print(f"  Invoice EXP-{i:05d} skipped: {e.detail}")
        if i % 50 == 0:
            print(f"  Invoices created: {len(created)}")
    return created


def create_notes(db, invoices):
    credit = NoteService(db, CreditNote)
    debit = NoteService(db, DebitNote)
    notes = 0
    for invoice in random.sample(invoices, k=len(invoices) // 10):
        credit.create_note(NoteCreate(
            invoice_id=invoice.id,
            amount=Decimal(random.randint(5, 40)),
            reason=pick(["Flor maltratada", "Botrytis", "Tallo corto"])
        ))
        notes += 1
    for invoice in random.sample(invoices, k=len(invoices) // 20):
        debit.create_note(NoteCreate(invoice_id=invoice.id, amount=Decimal(random.randint(5, 25)), reason="Flete adicional"))
        notes += 1
    return notes


def create_payments(db, customers, farms, invoices):
    service = PaymentService(db)
    singles = 0
    for invoice in random.sample(invoices, k=len(invoices) // 3):
        service.add_payment(invoice.id, PaymentCreate(
            invoice_id=invoice.id,
            amount=Decimal(random.randint(50, 400)),
            method=pick(list(PaymentMethod)),
            reference=f"PAY-{singles:04d}"
        ))
        singles += 1

    bulk = 0
    for customer in customers:
        open_invoices = service.get_open_invoices(customer_id=customer.id)
        if not open_invoices.items:
            continue
        amount = (open_invoices.total_balance * Decimal("0.6")).quantize(Decimal("0.01"))
        result = service.add_bulk_payment(BulkPaymentCreate(
            invoice_ids=[i.invoice_id for i in open_invoices.items],
            amount=amount,
            method=PaymentMethod.TRANSFER,
            reference=f"WIRE-{customer.name[:4].upper()}"
        ))
        bulk += len(result.allocations)

    for farm in farms:
        open_invoices = service.get_open_invoices(farm_id=farm.id)
        if not open_invoices.items:
            continue
        result = service.add_bulk_payment(BulkPaymentCreate(
            invoice_ids=[i.invoice_id for i in open_invoices.items],
            amount=(open_invoices.total_balance * Decimal("0.5")).quantize(Decimal("0.01")),
            side="purchase",
            reference=f"FARM-{farm.name[:4].upper()}"
        ))
        bulk += len(result.allocations)
    return singles, bulk


def main():
    parser = argparse.ArgumentParser(description="Seed flower export demo data")
    parser.add_argument("--invoices", type=int, default=200)
    parser.add_argument("--days", type=int, default=90, help="Rango de fechas de vuelo hacia atrás")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    Base.metadata.create_all(bind=sync_engine)
    db = SessionLocal()
    try:
        print("Creating contacts (customers/farms)...")
        customers, farms = create_contacts(db)
        print(f"Customers: {len(customers)}, Farms: {len(farms)}")

        print("Creating invoices...")
        invoices = create_invoices(db, customers, farms, args.invoices, args.days)
        print(f"Invoices created: {len(invoices)}")

        print("Creating credit/debit notes...")
        print(f"Notes created: {create_notes(db, invoices)}")

        print("Creating payments...")
        singles, bulk = create_payments(db, customers, farms, invoices)
        print(f"Single payments: {singles}, bulk allocations: {bulk}")

        print("\nSeed completed.")
    finally:
        db.close()


if __name__ == "__main__":
    main()

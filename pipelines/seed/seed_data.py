"""
Seed data generator -- creates a synthetic retail dataset for the drill engine.

Generates:
  - ~120 products   (10 categories, 3 subcategories each, 6 brands)
  - ~1 500 customers
  - 40 stores (+ one store_performance row each)
  - 60 promotions
  - ~80 marketing channel placements
  - ~30 000 transactions

Tables are created if missing, truncated, then filled via SQLAlchemy.
Run:  python -m pipelines.seed.seed_data
"""
from __future__ import annotations

import os
import random
from datetime import datetime, timedelta
from pathlib import Path

from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine, text

# ── Load .env from project root ─────────────────────────
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(_PROJECT_ROOT / ".env")

fake = Faker()
Faker.seed(42)
random.seed(42)

# ── Tunables ─────────────────────────────────────────────
NUM_PRODUCTS = 120
NUM_CUSTOMERS = 1_500
NUM_STORES = 40
NUM_PROMOTIONS = 60
NUM_CHANNELS = 80
NUM_TRANSACTIONS = 30_000
PROMO_TXN_SHARE = 0.35

CATEGORIES: dict[str, list[str]] = {
    "Dairy":         ["Milk", "Cheese", "Yogurt"],
    "Beverages":     ["Soda", "Juice", "Water"],
    "Snacks":        ["Chips", "Cookies", "Nuts"],
    "Produce":       ["Fruit", "Vegetables", "Herbs"],
    "Frozen":        ["Ice Cream", "Frozen Meals", "Frozen Veg"],
    "Bakery":        ["Bread", "Pastry", "Cakes"],
    "Pantry":        ["Pasta", "Sauces", "Cereal"],
    "Personal Care": ["Shampoo", "Soap", "Oral Care"],
    "Home Care":     ["Detergent", "Surface Cleaner", "Dish Care"],
    "Household":     ["Paper Goods", "Storage", "Batteries"],
}
BRANDS = ["Acme", "Northfield", "Bluebird", "Harvest Co", "Evergreen", "Summit"]
SEGMENTS = ["Value Seekers", "Premium", "Families", "Young Professionals", "Seniors"]
LOYALTY_TIERS = ["Bronze", "Silver", "Gold", "Platinum"]
REGIONS = ["Northeast", "Southeast", "Midwest", "Southwest", "West"]
STORE_TYPES = ["Supercenter", "Neighborhood", "Express", "Warehouse"]
PROMO_TYPES = ["BOGO", "Price Off", "Bundle", "Loyalty", "Coupon", "Flash Sale", "Clearance"]
CHANNEL_TYPES: dict[str, list[str]] = {
    "Digital": ["Paid Search", "Social Ads", "Display"],
    "Email":   ["Newsletter", "Triggered Email"],
    "In-Store": ["Endcap", "Circular", "Shelf Talker"],
    "Broadcast": ["Radio", "TV"],
}

# ── Helper: date ranges ─────────────────────────────────
DATE_START = datetime(2024, 1, 1)
DATE_END = datetime(2025, 12, 31)
DATE_RANGE_DAYS = (DATE_END - DATE_START).days


def _rand_date() -> datetime:
    return DATE_START + timedelta(days=random.randint(0, DATE_RANGE_DAYS))


def _db_url() -> str:
    user = os.getenv("POSTGRES_USER", "drilldown")
    pw = os.getenv("POSTGRES_PASSWORD", "drilldown_pw")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("POSTGRES_DB", "retail")
    return f"postgresql://{user}:{pw}@{host}:{port}/{db}"


# ── DDL ──────────────────────────────────────────────────

_DDL = [
    """CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY, product_sku VARCHAR(20) UNIQUE NOT NULL,
        product_name TEXT NOT NULL, category TEXT, subcategory TEXT, brand TEXT,
        cost NUMERIC(10, 2), price NUMERIC(10, 2))""",
    """CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY, customer_code VARCHAR(20), customer_name TEXT,
        segment TEXT, loyalty_tier TEXT, total_lifetime_value NUMERIC(12, 2))""",
    """CREATE TABLE IF NOT EXISTS stores (
        id INTEGER PRIMARY KEY, store_code VARCHAR(20), store_name TEXT,
        region TEXT, store_type TEXT)""",
    """CREATE TABLE IF NOT EXISTS store_performance (
        store_id INTEGER PRIMARY KEY REFERENCES stores(id),
        conversion_rate NUMERIC(5, 2), foot_traffic INTEGER)""",
    """CREATE TABLE IF NOT EXISTS promotions (
        id INTEGER PRIMARY KEY, promotion_name TEXT, promotion_type TEXT,
        product_category TEXT, discount_percent NUMERIC(5, 2),
        discount_amount NUMERIC(10, 2), total_spend NUMERIC(12, 2))""",
    """CREATE TABLE IF NOT EXISTS marketing_channels (
        id INTEGER PRIMARY KEY, channel_name TEXT, channel_type TEXT,
        promotion_id INTEGER REFERENCES promotions(id), spend_amount NUMERIC(12, 2),
        impressions INTEGER, clicks INTEGER, conversions INTEGER,
        engagement_rate NUMERIC(5, 2))""",
    """CREATE TABLE IF NOT EXISTS transactions (
        id INTEGER PRIMARY KEY, transaction_date DATE NOT NULL,
        product_sku VARCHAR(20), product_name TEXT,
        customer_id INTEGER REFERENCES customers(id),
        store_id INTEGER REFERENCES stores(id),
        promotion_id INTEGER REFERENCES promotions(id),
        quantity INTEGER, unit_price NUMERIC(10, 2),
        discount_amount NUMERIC(10, 2), total_amount NUMERIC(12, 2))""",
]


# ── Generators ───────────────────────────────────────────

def gen_products() -> list[dict]:
    rows = []
    flat = [(cat, sub) for cat, subs in CATEGORIES.items() for sub in subs]
    for pid in range(1, NUM_PRODUCTS + 1):
        category, subcategory = flat[(pid - 1) % len(flat)]
        brand = random.choice(BRANDS)
        price = round(random.uniform(1.5, 25.0), 2)
        rows.append({
            "id": pid,
            "product_sku": f"SKU-{pid:05d}",
            "product_name": f"{brand} {subcategory} {fake.word().title()}",
            "category": category,
            "subcategory": subcategory,
            "brand": brand,
            "cost": round(price * random.uniform(0.45, 0.75), 2),
            "price": price,
        })
    return rows


def gen_customers() -> list[dict]:
    return [
        {
            "id": cid,
            "customer_code": f"C{cid:06d}",
            "customer_name": fake.name(),
            "segment": random.choice(SEGMENTS),
            "loyalty_tier": random.choice(LOYALTY_TIERS),
            "total_lifetime_value": round(random.uniform(50, 5000), 2),
        }
        for cid in range(1, NUM_CUSTOMERS + 1)
    ]


def gen_stores() -> tuple[list[dict], list[dict]]:
    """Returns (stores, store_performance)."""
    stores, perf = [], []
    for sid in range(1, NUM_STORES + 1):
        stores.append({
            "id": sid,
            "store_code": f"ST{sid:03d}",
            "store_name": f"{fake.city()} {random.choice(STORE_TYPES)}",
            "region": REGIONS[(sid - 1) % len(REGIONS)],
            "store_type": random.choice(STORE_TYPES),
        })
        perf.append({
            "store_id": sid,
            "conversion_rate": round(random.uniform(15, 45), 2),
            "foot_traffic": random.randint(2_000, 40_000),
        })
    return stores, perf


def gen_promotions() -> list[dict]:
    rows = []
    for pid in range(1, NUM_PROMOTIONS + 1):
        promo_type = random.choice(PROMO_TYPES)
        fixed = random.random() < 0.25
        category = random.choice(list(CATEGORIES)) if random.random() < 0.9 else None
        rows.append({
            "id": pid,
            "promotion_name": f"{fake.month_name()} {promo_type} {category or 'Storewide'}",
            "promotion_type": promo_type,
            "product_category": category,
            "discount_percent": None if fixed else random.choice([10, 15, 20, 25, 30, 40, 50]),
            "discount_amount": round(random.uniform(0.5, 5.0), 2) if fixed else None,
            "total_spend": round(random.uniform(500, 15_000), 2),
        })
    return rows


def gen_channels(promotions: list[dict]) -> list[dict]:
    rows = []
    for cid in range(1, NUM_CHANNELS + 1):
        channel_type = random.choice(list(CHANNEL_TYPES))
        impressions = random.randint(5_000, 500_000)
        clicks = int(impressions * random.uniform(0.005, 0.05))
        rows.append({
            "id": cid,
            "channel_name": random.choice(CHANNEL_TYPES[channel_type]),
            "channel_type": channel_type,
            "promotion_id": random.choice(promotions)["id"],
            "spend_amount": round(random.uniform(200, 20_000), 2),
            "impressions": impressions,
            "clicks": clicks,
            "conversions": int(clicks * random.uniform(0.02, 0.15)),
            "engagement_rate": round(random.uniform(0.5, 8.0), 2),
        })
    return rows


def gen_transactions(products, customers, stores, promotions) -> list[dict]:
    promos_by_category: dict[str | None, list[dict]] = {}
    for p in promotions:
        promos_by_category.setdefault(p["product_category"], []).append(p)

    rows = []
    for tid in range(1, NUM_TRANSACTIONS + 1):
        product = random.choice(products)
        qty = random.randint(1, 6)
        gross = float(product["price"]) * qty
        promo = None
        candidates = promos_by_category.get(product["category"], []) + promos_by_category.get(None, [])
        if candidates and random.random() < PROMO_TXN_SHARE:
            promo = random.choice(candidates)
        if promo is None:
            discount = 0.0
        elif promo["discount_percent"]:
            discount = gross * promo["discount_percent"] / 100
        else:
            discount = min(gross, float(promo["discount_amount"]) * qty)
        rows.append({
            "id": tid,
            "transaction_date": _rand_date().date(),
            "product_sku": product["product_sku"],
            "product_name": product["product_name"],
            "customer_id": random.choice(customers)["id"],
            "store_id": random.choice(stores)["id"],
            "promotion_id": promo["id"] if promo else None,
            "quantity": qty,
            "unit_price": product["price"],
            "discount_amount": round(discount, 2),
            "total_amount": round(gross - discount, 2),
        })
    return rows


# ── Bulk insert helper ───────────────────────────────────

def _bulk_insert(engine, table: str, rows: list[dict], batch_size: int = 2000):
    """Insert rows into *table* in batches using executemany-style VALUES."""
    if not rows:
        return
    cols = list(rows[0].keys())
    col_list = ", ".join(cols)
    param_list = ", ".join(f":{c}" for c in cols)
    sql = text(f"INSERT INTO {table} ({col_list}) VALUES ({param_list}) ON CONFLICT DO NOTHING")
    with engine.begin() as conn:
        for i in range(0, len(rows), batch_size):
            conn.execute(sql, rows[i : i + batch_size])
    print(f"  ✓ {table}: {len(rows):,} rows")


# ── Main ─────────────────────────────────────────────────

def main():
    print("═══ Retail Seed Data Generator ═══")
    engine = create_engine(_db_url(), echo=False)

    print("Creating tables …")
    with engine.begin() as conn:
        for ddl in _DDL:
            conn.execute(text(ddl))

    print("Truncating tables …")
    with engine.begin() as conn:
        conn.execute(text(
            "TRUNCATE TABLE transactions, marketing_channels, promotions, "
            "store_performance, stores, customers, products CASCADE"
        ))

    print("Generating data …")
    products = gen_products()
    customers = gen_customers()
    stores, perf = gen_stores()
    promotions = gen_promotions()
    channels = gen_channels(promotions)
    transactions = gen_transactions(products, customers, stores, promotions)

    print("Inserting …")
    _bulk_insert(engine, "products", products)
    _bulk_insert(engine, "customers", customers)
    _bulk_insert(engine, "stores", stores)
    _bulk_insert(engine, "store_performance", perf)
    _bulk_insert(engine, "promotions", promotions)
    _bulk_insert(engine, "marketing_channels", channels)
    _bulk_insert(engine, "transactions", transactions)

    print(f"\nDone -- seeded {len(products):,} products, {len(customers):,} customers, "
          f"{len(stores):,} stores, {len(promotions):,} promotions, "
          f"{len(transactions):,} transactions.")


if __name__ == "__main__":
    main()

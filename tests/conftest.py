"""
Shared fixtures -- a small retail dataset served from memory.

Dairy is the worked example: three products (unit cost 5) whose
transactions sum to revenue 1000, units 50, discount 100.
"""
import pytest

from drilldown.catalog.loader import load_dimension_catalog
from drilldown.db.tables import InMemoryTableSource
from drilldown.drill.aggregation import AggregationEngine


def _retail_tables() -> dict[str, list[dict]]:
    products = [
        {"id": 1, "product_sku": "SKU-1", "product_name": "Whole Milk", "category": "Dairy",
         "subcategory": "Milk", "brand": "Acme", "cost": 5},
        {"id": 2, "product_sku": "SKU-2", "product_name": "Cheddar", "category": "Dairy",
         "subcategory": "Cheese", "brand": "Acme", "cost": 5},
        {"id": 3, "product_sku": "SKU-3", "product_name": "Greek Yogurt", "category": "Dairy",
         "subcategory": "Yogurt", "brand": "Bluebird", "cost": 5},
        {"id": 4, "product_sku": "SKU-4", "product_name": "Cola", "category": "Beverages",
         "subcategory": "Soda", "brand": "Summit", "cost": 1},
        {"id": 5, "product_sku": "SKU-5", "product_name": "Shampoo", "category": "Personal Care",
         "subcategory": "Shampoo", "brand": "Evergreen", "cost": 3},
        {"id": 6, "product_sku": "SKU-6", "product_name": "Dish Soap", "category": "Home Care",
         "subcategory": "Dish Care", "brand": "Evergreen", "cost": 2},
    ]
    customers = [
        {"id": 1, "customer_code": "C1", "customer_name": "Ann", "segment": "Premium",
         "loyalty_tier": "Gold", "total_lifetime_value": 900},
        {"id": 2, "customer_code": "C2", "customer_name": "Bob", "segment": "Families",
         "loyalty_tier": "Silver", "total_lifetime_value": 400},
        {"id": 3, "customer_code": "C3", "customer_name": "Cy", "segment": "Premium",
         "loyalty_tier": "Bronze", "total_lifetime_value": 0},
    ]
    stores = [
        {"id": 1, "store_code": "ST1", "store_name": "Boston Central", "region": "Northeast",
         "store_type": "Supercenter"},
        {"id": 2, "store_code": "ST2", "store_name": "Denver Market", "region": "West",
         "store_type": "Express"},
        {"id": 3, "store_code": "ST3", "store_name": "Austin Hub", "region": "Southwest",
         "store_type": "Express"},
    ]
    store_performance = [
        {"store_id": 1, "conversion_rate": 31.5, "foot_traffic": 12000},
    ]
    promotions = [
        {"id": 1, "promotion_name": "Summer BOGO Dairy", "promotion_type": "BOGO",
         "product_category": "Dairy", "discount_percent": 50, "discount_amount": None, "total_spend": 50},
        {"id": 2, "promotion_name": "Spring Price Off", "promotion_type": "Price Off",
         "product_category": "Beverages", "discount_percent": 20, "discount_amount": None, "total_spend": 0},
        {"id": 3, "promotion_name": "Storewide Coupon", "promotion_type": "Coupon",
         "product_category": None, "discount_percent": None, "discount_amount": 2, "total_spend": 20},
    ]
    marketing_channels = [
        {"id": 1, "channel_name": "Paid Search", "channel_type": "Digital", "promotion_id": 1,
         "spend_amount": 100, "conversions": 10, "impressions": 5000, "clicks": 250, "engagement_rate": 2.5},
        {"id": 2, "channel_name": "Social Ads", "channel_type": "Digital", "promotion_id": 2,
         "spend_amount": 50, "conversions": 0, "impressions": 8000, "clicks": 90, "engagement_rate": 1.1},
        {"id": 3, "channel_name": "Newsletter", "channel_type": "Email", "promotion_id": None,
         "spend_amount": 0, "conversions": 4, "impressions": 900, "clicks": 40, "engagement_rate": 4.4},
    ]
    transactions = [
        {"id": 1, "transaction_date": "2024-01-15", "product_sku": "SKU-1", "product_name": "Whole Milk",
         "customer_id": 1, "store_id": 1, "promotion_id": 1, "quantity": 20, "total_amount": 400,
         "discount_amount": 40},
        {"id": 2, "transaction_date": "2024-02-10", "product_sku": "SKU-2", "product_name": "Cheddar",
         "customer_id": 2, "store_id": 1, "promotion_id": None, "quantity": 15, "total_amount": 300,
         "discount_amount": 30},
        {"id": 3, "transaction_date": "2024-04-03", "product_sku": "SKU-3", "product_name": "Greek Yogurt",
         "customer_id": 1, "store_id": 2, "promotion_id": 1, "quantity": 15, "total_amount": 300,
         "discount_amount": 30},
        {"id": 4, "transaction_date": "2024-04-20", "product_sku": "SKU-4", "product_name": "Cola",
         "customer_id": 2, "store_id": 2, "promotion_id": 2, "quantity": 10, "total_amount": 50,
         "discount_amount": 0},
        {"id": 5, "transaction_date": "2025-07-08", "product_sku": "SKU-5", "product_name": "Shampoo",
         "customer_id": 1, "store_id": 3, "promotion_id": 3, "quantity": 4, "total_amount": 40,
         "discount_amount": 8},
        {"id": 6, "transaction_date": "2025-07-30", "product_sku": "SKU-6", "product_name": "Dish Soap",
         "customer_id": 2, "store_id": 3, "promotion_id": None, "quantity": 3, "total_amount": 18,
         "discount_amount": None},
    ]
    return {
        "products": products,
        "customers": customers,
        "stores": stores,
        "store_performance": store_performance,
        "promotions": promotions,
        "marketing_channels": marketing_channels,
        "transactions": transactions,
    }


@pytest.fixture(scope="session")
def catalog():
    return load_dimension_catalog()


@pytest.fixture
def retail_tables():
    return _retail_tables()


@pytest.fixture
def source(retail_tables):
    return InMemoryTableSource(retail_tables)


@pytest.fixture
def engine(catalog, source):
    return AggregationEngine(catalog, source, top_n=20, conversion_value=50.0)

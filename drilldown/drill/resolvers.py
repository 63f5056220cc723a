"""
The six dimension resolvers and the lookup table that selects them.

Each resolver names the tables it needs, applies the initial filter the
way that hierarchy understands it, joins transaction totals onto its
base entities, and formats grouping keys.

Cost basis (margin = revenue - cost):
  product     unit cost x units            ROI divisor: discount
  customer    discount                     ROI divisor: discount
  geography   discount                     ROI divisor: discount
  time        discount                     ROI divisor: discount
  promotion   discount + promotion spend   ROI divisor: spend
  channel     channel spend                ROI divisor: spend
"""
from __future__ import annotations

import pandas as pd

from drilldown.core.utils import numeric
from drilldown.core.logging import get_logger
from drilldown.db.tables import (
    CUSTOMERS,
    MARKETING_CHANNELS,
    PRODUCTS,
    PROMOTIONS,
    STORE_PERFORMANCE,
    STORES,
    TRANSACTIONS,
)
from drilldown.drill.grouping import DimensionResolver, Frames, ensure_columns
from drilldown.drill.models import InitialFilter

logger = get_logger(__name__)

_MONTHS = pd.Series(["Jan", "Feb", "Mar", "Apr", "May", "Jun",
                     "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"], index=range(1, 13))

_TXN_METRICS = ["revenue", "units", "discount"]


# ── Shared helpers ──────────────────────────────────────


def _label(frame: pd.DataFrame, column: str, default: str) -> pd.Series:
    """*column* as text, with nulls and blanks replaced by *default*."""
    values = ensure_columns(frame, column)[column]
    return values.where(values.notna() & values.ne(""), default).astype(str)


def _lookup(keys: pd.Series, table: pd.DataFrame, key: str, column: str) -> pd.Series:
    """For each of *keys*, *column* of the *table* row whose *key* matches (last row wins)."""
    table = ensure_columns(table, key, column).drop_duplicates(key, keep="last")
    return keys.map(table.set_index(key)[column])


def _txn_totals(txns: pd.DataFrame, by: str) -> pd.DataFrame:
    """revenue / units / discount summed per value of *by*."""
    txns = ensure_columns(txns, by, "total_amount", "quantity", "discount_amount")
    metrics = pd.DataFrame({
        by: txns[by],
        "revenue": numeric(txns["total_amount"]),
        "units": numeric(txns["quantity"]),
        "discount": numeric(txns["discount_amount"]),
    })
    return metrics.groupby(by)[_TXN_METRICS].sum()


def _join_totals(entities: pd.DataFrame, key: str, totals: pd.DataFrame) -> pd.DataFrame:
    """Attach *totals* to *entities* by *key*; entities without transactions get zeros."""
    return entities.assign(**{
        metric: entities[key].map(totals[metric]).fillna(0.0) for metric in _TXN_METRICS
    })


def _category_mask(categories: pd.Series, f: InitialFilter) -> pd.Series:
    """Whether each category satisfies a category / category_group filter."""
    if f.type == "category_group":
        return categories.isin(list(f.categories))
    if f.type == "category":
        return categories == f.value
    return pd.Series(True, index=categories.index)


def _product_named(skus: pd.Series, products: pd.DataFrame, value: str, fields: tuple[str, ...]) -> pd.Series:
    """Whether each SKU belongs to a product with *value* in one of *fields*."""
    products = ensure_columns(products, "product_sku", *fields)
    hits = products.loc[products[list(fields)].eq(value).any(axis=1), "product_sku"]
    return skus.isin(hits)


def parse_dates(values: pd.Series) -> pd.Series:
    """ISO dates / timestamps as UTC datetimes; anything unparseable becomes NaT."""
    return pd.to_datetime(values, errors="coerce", format="ISO8601", utc=True)


def time_bucket(dates: pd.Series, level: str) -> pd.Series:
    """Format each of *dates* as the bucket label for a time *level*."""
    year = dates.dt.year.astype(str)
    month = dates.dt.month.map(_MONTHS)
    if level == "quarter":
        return "Q" + dates.dt.quarter.astype(str) + " " + year
    if level == "month":
        return month + " " + year
    if level == "week":
        week = (dates.dt.day + 6) // 7
        return "Week " + week.astype(str) + ", " + month
    if level == "day":
        return dates.dt.month.astype(str) + "/" + dates.dt.day.astype(str) + "/" + year
    return year


# ── Product ─────────────────────────────────────────────


class ProductResolver(DimensionResolver):
    dimension_id = "product"
    required_tables = (PRODUCTS, TRANSACTIONS)
    extra_columns = ("id", "category", "subcategory", "brand", "sku")

    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        if level == "subcategory":
            return _label(entities, "subcategory", "Other")
        if level == "brand":
            return _label(entities, "brand", "Unknown")
        if level == "sku":
            return (entities["product_name"].astype(str)
                    + " (" + entities["product_sku"].astype(str) + ")")
        return _label(entities, "category", "Unknown")

    @staticmethod
    def _filter(products: pd.DataFrame, f: InitialFilter | None) -> pd.DataFrame:
        if f is None:
            return products
        if f.type in ("category_group", "category"):
            return products[_category_mask(products["category"], f)]
        if f.type == "other":
            fields = ["category", "subcategory", "brand", "product_name"]
            return products[products[fields].eq(f.value).any(axis=1)]
        return products

    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        products = ensure_columns(frames[PRODUCTS], "id", "product_sku", "product_name",
                                  "category", "subcategory", "brand", "cost")
        products = self._filter(products, initial_filter)
        products = _join_totals(products, "product_sku", _txn_totals(frames[TRANSACTIONS], "product_sku"))
        return products.assign(
            spend=0.0,
            margin=products["revenue"] - numeric(products["cost"]) * products["units"],
            sku=products["product_sku"],
        )


# ── Customer ────────────────────────────────────────────


class CustomerResolver(DimensionResolver):
    dimension_id = "customer"
    required_tables = (CUSTOMERS, TRANSACTIONS)
    optional_tables = (PRODUCTS,)
    extra_columns = ("segment", "loyalty_tier", "ltv")

    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        if level == "loyalty_tier":
            return _label(entities, "loyalty_tier", "Standard")
        if level == "customer":
            code = _label(entities, "customer_code", "Unknown")
            name = entities["customer_name"]
            return name.where(name.notna() & name.ne(""), code).astype(str)
        return _label(entities, "segment", "Unknown")

    @staticmethod
    def _filter_txns(txns: pd.DataFrame, customers: pd.DataFrame, products: pd.DataFrame,
                     f: InitialFilter | None) -> pd.DataFrame:
        if f is None:
            return txns
        if f.type in ("category_group", "category"):
            categories = _lookup(txns["product_sku"], products, "product_sku", "category")
            return txns[_category_mask(categories, f)]
        if f.type == "other":
            # a customer-level match keeps all of that customer's transactions
            named = customers[["segment", "loyalty_tier", "customer_name"]].eq(f.value).any(axis=1)
            by_customer = txns["customer_id"].isin(customers.loc[named, "id"])
            by_product = _product_named(txns["product_sku"], products, f.value,
                                        ("category", "brand", "product_name"))
            return txns[by_customer | by_product]
        return txns

    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        customers = ensure_columns(frames[CUSTOMERS], "id", "customer_code", "customer_name",
                                   "segment", "loyalty_tier", "total_lifetime_value")
        txns = ensure_columns(frames[TRANSACTIONS], "customer_id", "product_sku")
        txns = self._filter_txns(txns, customers, frames.get(PRODUCTS, pd.DataFrame()), initial_filter)

        totals = _txn_totals(txns, "customer_id")
        # customers without a (filtered) transaction are left out
        customers = _join_totals(customers[customers["id"].isin(totals.index)], "id", totals)
        return customers.assign(
            spend=0.0,
            margin=customers["revenue"] - customers["discount"],
            ltv=customers["total_lifetime_value"],
        )


# ── Geography ───────────────────────────────────────────


class GeographyResolver(DimensionResolver):
    dimension_id = "geography"
    required_tables = (STORES, TRANSACTIONS)
    optional_tables = (PRODUCTS, STORE_PERFORMANCE)
    extra_columns = ("region", "store_type", "conversion", "traffic")

    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        if level == "store_type":
            return _label(entities, "store_type", "Standard")
        if level == "store":
            return (entities["store_name"].astype(str)
                    + " (" + entities["store_code"].astype(str) + ")")
        return _label(entities, "region", "Unknown")

    @staticmethod
    def _filter_stores(stores: pd.DataFrame, f: InitialFilter | None) -> pd.DataFrame:
        if f is None:
            return stores
        if f.type == "region":
            return stores[stores["region"] == f.value]
        if f.type == "other":
            fields = ["region", "store_type", "store_name", "store_code"]
            return stores[stores[fields].eq(f.value).any(axis=1)]
        return stores

    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        stores = ensure_columns(frames[STORES], "id", "store_code", "store_name", "region", "store_type")
        stores = self._filter_stores(stores, initial_filter)

        txns = ensure_columns(frames[TRANSACTIONS], "store_id", "product_sku")
        if initial_filter is not None and initial_filter.type in ("category_group", "category"):
            categories = _lookup(txns["product_sku"], frames.get(PRODUCTS, pd.DataFrame()),
                                 "product_sku", "category")
            txns = txns[_category_mask(categories, initial_filter)]

        totals = _txn_totals(txns, "store_id")
        stores = _join_totals(stores[stores["id"].isin(totals.index)], "id", totals)
        performance = frames.get(STORE_PERFORMANCE, pd.DataFrame())
        return stores.assign(
            spend=0.0,
            margin=stores["revenue"] - stores["discount"],
            conversion=_lookup(stores["id"], performance, "store_id", "conversion_rate"),
            traffic=_lookup(stores["id"], performance, "store_id", "foot_traffic"),
        )


# ── Time ────────────────────────────────────────────────


class TimeResolver(DimensionResolver):
    """Transactions are grouped directly; there is no base entity table."""

    dimension_id = "time"
    required_tables = (TRANSACTIONS,)
    optional_tables = (PRODUCTS,)

    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        return time_bucket(entities["date"], level)

    @staticmethod
    def _filter_txns(txns: pd.DataFrame, products: pd.DataFrame, f: InitialFilter | None) -> pd.DataFrame:
        if f is None:
            return txns
        if f.type in ("category_group", "category"):
            categories = _lookup(txns["product_sku"], products, "product_sku", "category")
            return txns[_category_mask(categories, f)]
        if f.type == "other":
            by_product = _product_named(txns["product_sku"], products, f.value,
                                        ("category", "subcategory", "brand", "product_name"))
            return txns[by_product | txns["product_name"].eq(f.value)]
        return txns

    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        txns = ensure_columns(frames[TRANSACTIONS], "transaction_date", "product_sku", "product_name",
                              "total_amount", "quantity", "discount_amount")
        txns = self._filter_txns(txns, frames.get(PRODUCTS, pd.DataFrame()), initial_filter)

        dates = parse_dates(txns["transaction_date"])
        skipped = int(dates.isna().sum())
        if skipped:
            logger.warning("Skipped %d transactions with unparseable transaction_date", skipped)
        txns = txns[dates.notna()]

        revenue = numeric(txns["total_amount"])
        discount = numeric(txns["discount_amount"])
        return pd.DataFrame({
            "date": dates[dates.notna()],
            "revenue": revenue,
            "units": numeric(txns["quantity"]),
            "discount": discount,
            "spend": 0.0,
            "margin": revenue - discount,
        })

    def finalize(self, ranked: pd.DataFrame) -> pd.DataFrame:
        return ranked.assign(trend=ranked["margin"].gt(0).map({True: "up", False: "down"}))


# ── Promotion ───────────────────────────────────────────


class PromotionResolver(DimensionResolver):
    dimension_id = "promotion"
    required_tables = (PROMOTIONS, TRANSACTIONS)
    roi_basis = "spend"
    extra_columns = ("promotion_type", "discount_percent")

    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        if level == "discount_depth":
            pct = numeric(entities["discount_percent"])
            labels = pd.Series("Unknown", index=entities.index)
            labels = labels.mask(numeric(entities["discount_amount"]) != 0, "Fixed $")
            return labels.mask(pct != 0, pct.map("{:g}% Discount".format))
        if level == "promotion":
            return _label(entities, "promotion_name", "Unknown")
        return _label(entities, "promotion_type", "Unknown")

    @staticmethod
    def _filter(promos: pd.DataFrame, f: InitialFilter | None) -> pd.DataFrame:
        if f is None:
            return promos
        category = promos["product_category"]
        if f.type == "category_group":
            # promotions without a category are not excluded by a group click
            uncategorised = category.isna() | category.eq("")
            return promos[uncategorised | category.isin(list(f.categories))]
        if f.type == "category":
            return promos[category == f.value]
        if f.type == "promo_type":
            return promos[promos["promotion_type"] == f.value]
        if f.type == "other":
            fields = ["product_category", "promotion_name", "promotion_type"]
            return promos[promos[fields].eq(f.value).any(axis=1)]
        return promos

    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        promos = ensure_columns(frames[PROMOTIONS], "id", "promotion_name", "promotion_type",
                                "product_category", "discount_percent", "discount_amount", "total_spend")
        promos = self._filter(promos, initial_filter)
        promos = _join_totals(promos, "id", _txn_totals(frames[TRANSACTIONS], "promotion_id"))
        spend = numeric(promos["total_spend"])
        return promos.assign(
            spend=spend,
            margin=promos["revenue"] - promos["discount"] - spend,
        )


# ── Channel ─────────────────────────────────────────────


class ChannelResolver(DimensionResolver):
    """Marketing channels.

    Revenue is an estimate (conversions x a fixed value per conversion),
    not a ledger figure.  The initial filter is not applied here.
    """

    dimension_id = "channel"
    required_tables = (MARKETING_CHANNELS,)
    roi_basis = "spend"
    extra_columns = ("channel_type", "impressions", "clicks", "engagement")

    def __init__(self, conversion_value: float = 50.0):
        self.conversion_value = conversion_value

    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        if level == "channel":
            return _label(entities, "channel_name", "Unknown")
        return _label(entities, "channel_type", "Unknown")

    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        channels = ensure_columns(frames[MARKETING_CHANNELS], "channel_name", "channel_type", "spend_amount",
                                  "conversions", "impressions", "clicks", "engagement_rate")
        conversions = numeric(channels["conversions"])
        spend = numeric(channels["spend_amount"])
        revenue = conversions * self.conversion_value
        return channels.assign(
            revenue=revenue,
            units=conversions,
            discount=0.0,
            spend=spend,
            margin=revenue - spend,
            engagement=channels["engagement_rate"],
        )


# ── Lookup table ────────────────────────────────────────


def build_resolvers(conversion_value: float = 50.0) -> dict[str, DimensionResolver]:
    """Return one resolver per dimension id."""
    resolvers: list[DimensionResolver] = [
        ProductResolver(),
        CustomerResolver(),
        GeographyResolver(),
        TimeResolver(),
        PromotionResolver(),
        ChannelResolver(conversion_value=conversion_value),
    ]
    return {r.dimension_id: r for r in resolvers}

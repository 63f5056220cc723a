"""
Unit tests -- dimension catalog: parsing, lookups, invariants.
"""
import pytest

from drilldown.catalog.loader import (
    CatalogError,
    Dimension,
    DimensionCatalog,
    load_dimension_catalog,
    parse_catalog,
)


def test_loads_without_error(catalog):
    assert isinstance(catalog, DimensionCatalog)
    assert catalog.version == 1


def test_six_dimensions_in_declared_order(catalog):
    assert catalog.ids() == ["product", "customer", "geography", "time", "promotion", "channel"]


def test_product_levels(catalog):
    product = catalog.by_id("product")
    assert isinstance(product, Dimension)
    assert product.levels == ("category", "subcategory", "brand", "sku")
    assert product.first_level == "category"


def test_time_levels(catalog):
    assert catalog.by_id("time").levels == ("year", "quarter", "month", "week", "day")


def test_unknown_id_not_found(catalog):
    assert catalog.by_id("weather") is None


def test_level_index(catalog):
    geo = catalog.by_id("geography")
    assert geo.level_index("store_type") == 1
    assert geo.level_index("root") == -1
    assert geo.level_index("category") == -1


def test_every_dimension_has_unique_levels(catalog):
    for d in catalog.all():
        assert d.levels
        assert len(set(d.levels)) == len(d.levels)


def test_reference_sets_loaded(catalog):
    ref = catalog.reference
    assert "Dairy" in ref.consumable_categories
    assert "Personal Care" in ref.non_consumable_categories
    assert "Northeast" in ref.regions
    assert "BOGO" in ref.promotion_types
    assert set(ref.all_categories) == set(ref.consumable_categories) | set(ref.non_consumable_categories)


def test_catalog_is_immutable(catalog):
    with pytest.raises(Exception):
        catalog.dimensions = ()


def test_empty_levels_rejected():
    with pytest.raises(CatalogError):
        parse_catalog({"dimensions": [{"id": "x", "levels": []}]})


def test_duplicate_levels_rejected():
    with pytest.raises(CatalogError):
        parse_catalog({"dimensions": [{"id": "x", "levels": ["a", "b", "a"]}]})


def test_duplicate_dimension_ids_rejected():
    with pytest.raises(CatalogError):
        parse_catalog({"dimensions": [{"id": "x", "levels": ["a"]}, {"id": "x", "levels": ["b"]}]})


def test_no_dimensions_rejected():
    with pytest.raises(CatalogError):
        parse_catalog({"dimensions": []})


def test_load_from_explicit_path(tmp_path):
    path = tmp_path / "dims.yml"
    path.write_text("dimensions:\n  - id: region\n    levels: [zone, city]\n")
    custom = load_dimension_catalog(path)
    assert custom.ids() == ["region"]
    assert custom.first().levels == ("zone", "city")
    assert custom.reference.regions == ()

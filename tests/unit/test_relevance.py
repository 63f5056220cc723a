"""
Unit tests -- dimension relevance ranker.
"""
from drilldown.drill.relevance import rank_dimensions, relevance_order


def _ids(dims):
    return [d.id for d in dims]


def test_no_context_keeps_catalog_order(catalog):
    assert _ids(rank_dimensions(catalog)) == catalog.ids()
    assert _ids(rank_dimensions(catalog, "")) == catalog.ids()


def test_forecast_puts_time_first(catalog):
    ranked = _ids(rank_dimensions(catalog, "Forecast next quarter's sales"))
    assert ranked[:3] == ["time", "product", "geography"]


def test_customer_keywords(catalog):
    ranked = _ids(rank_dimensions(catalog, "Which loyalty members respond best?"))
    assert ranked[:3] == ["customer", "product", "geography"]


def test_store_keywords(catalog):
    ranked = _ids(rank_dimensions(catalog, "Which stores are underperforming?"))
    assert ranked[0] == "geography"


def test_channel_keywords(catalog):
    ranked = _ids(rank_dimensions(catalog, "Marketing efficiency by channel"))
    assert ranked[:3] == ["channel", "product", "customer"]


def test_promotion_keywords(catalog):
    ranked = _ids(rank_dimensions(catalog, "Did the discount pay off?"))
    assert ranked[:3] == ["promotion", "product", "geography"]


def test_priority_order_first_group_wins():
    # mentions both a trend and a customer -> trend group is checked first
    assert relevance_order("customer trend")[0] == "time"


def test_default_order_and_unranked_tail(catalog):
    ranked = _ids(rank_dimensions(catalog, "Why did margin drop?"))
    assert ranked == ["product", "geography", "customer", "time", "promotion", "channel"]


def test_unranked_dimensions_keep_catalog_order(catalog):
    ranked = _ids(rank_dimensions(catalog, "predict demand"))
    assert ranked == ["time", "product", "geography", "customer", "promotion", "channel"]


def test_ranking_is_a_permutation(catalog):
    ranked = rank_dimensions(catalog, "store traffic")
    assert sorted(_ids(ranked)) == sorted(catalog.ids())

"""Tests for the Pareto ranking module."""

import pytest

from cost_pareto.discovery.cost_aggregator import (
    COST_FIELDS,
    AggregatedProduct,
    ProductKey,
    aggregate_partitions,
)
from cost_pareto.discovery.pareto_ranker import (
    ALL,
    CostTotals,
    abc_class,
    build_pareto_view,
    compute_totals,
    filter_options,
    filter_products,
    is_core_item,
    rank_products,
    rank_selection,
    ranked_rows,
    select_products,
)


def _product(code, qty, partition="K1", team="T1", category="C1", **costs):
    return AggregatedProduct(
        partition=partition, code=code, team=team, category=category,
        quantity=qty, occurrence_count=1, **costs,
    )


def _catalog() -> list[AggregatedProduct]:
    return [
        _product("A", 10, "K1", "T1", "Snack"),
        _product("B", 20, "K1", "T2", "Drink"),
        _product("C", 30, "K2", "T1", "Snack"),
        _product("D", 40, "K2", "T2", "Snack"),
        _product("A", 5, "K2", "T1", "Drink"),
    ]


class TestRankProducts:
    def test_reference_example(self):
        rows = [
            ["A", "", "10", "1/2"],
            ["A", "", "5", "1/5"],
            ["B", "", "20", "1/3"],
        ]
        ranked = rank_products(aggregate_partitions([("K1", rows)]))
        assert [r.code for r in ranked] == ["B", "A"]
        assert ranked[0].cumulative_ratio_pct == pytest.approx(57.142857, rel=1e-6)
        assert ranked[1].cumulative_ratio_pct == 100.0
        assert ranked[0].rank == 1
        assert ranked[1].rank == 2

    def test_empty(self):
        assert rank_products([]) == []
        assert rank_products({}) == []

    def test_descending_quantity(self):
        ranked = rank_products(_catalog())
        quantities = [r.quantity for r in ranked]
        assert quantities == sorted(quantities, reverse=True)

    def test_cumulative_quantity(self):
        ranked = rank_products(_catalog())
        assert [r.cumulative_quantity for r in ranked] == [40, 70, 90, 100, 105]

    def test_ratios_monotonic_and_end_at_100(self):
        products = [_product(f"P{i}", q) for i, q in enumerate([3.3, 7.1, 0.1, 12.7, 5.5, 9.9, 0.3])]
        ranked = rank_products(products)
        ratios = [r.cumulative_ratio_pct for r in ranked]
        assert ratios == sorted(ratios)
        assert ratios[-1] == pytest.approx(100.0)

    def test_zero_total_gives_zero_ratios(self):
        ranked = rank_products([_product("A", 0), _product("B", 0)])
        assert [r.cumulative_ratio_pct for r in ranked] == [0, 0]

    def test_stable_tie_break(self):
        products = [_product("first", 5), _product("big", 9), _product("second", 5), _product("third", 5)]
        ranked = rank_products(products)
        assert [r.code for r in ranked] == ["big", "first", "second", "third"]

    def test_keeps_aggregated_fields(self):
        ranked = rank_products([_product("A", 1, raw_material=7.5, total_cost=100)])
        assert ranked[0].raw_material == 7.5
        assert ranked[0].total_cost == 100
        assert ranked[0].key == ProductKey("K1", "A")

    def test_does_not_mutate_input(self):
        products = {p.key: p for p in _catalog()[:4]}
        before = list(products.values())
        rank_products(products)
        assert list(products.values()) == before


class TestClassification:
    def test_core_threshold_inclusive(self):
        assert is_core_item(80.0) is True
        assert is_core_item(80.0001) is False
        assert is_core_item(0) is True

    def test_custom_threshold(self):
        assert is_core_item(65, threshold=70) is True
        assert is_core_item(75, threshold=70) is False

    def test_abc_bands(self):
        assert abc_class(50) == "A"
        assert abc_class(80) == "A"
        assert abc_class(90) == "B"
        assert abc_class(95) == "B"
        assert abc_class(99) == "C"

    def test_abc_custom_thresholds(self):
        assert abc_class(65, a_threshold=60, b_threshold=85) == "B"

    def test_ranked_product_properties_match_predicates(self):
        for r in rank_products(_catalog()):
            assert r.is_core == is_core_item(r.cumulative_ratio_pct)
            assert r.abc_class == abc_class(r.cumulative_ratio_pct)

    def test_ranked_rows_include_class(self):
        rows = ranked_rows(rank_products(_catalog()))
        assert rows[0]["rank"] == 1
        assert rows[0]["abc_class"] == "A"
        assert rows[-1]["is_core"] is False
        assert rows[-1]["cumulative_ratio_pct"] == 100.0


class TestFilterProducts:
    def test_all_matches_everything(self):
        assert len(filter_products(_catalog())) == 5
        assert len(filter_products(_catalog(), None, None, None)) == 5

    def test_partition_filter(self):
        assert {p.code for p in filter_products(_catalog(), partition="K1")} == {"A", "B"}

    def test_filters_compose_with_and(self):
        result = filter_products(_catalog(), partition="K2", category="Snack")
        assert [p.code for p in result] == ["C", "D"]
        result = filter_products(_catalog(), partition="K2", team="T2", category="Snack")
        assert [p.code for p in result] == ["D"]

    def test_no_match(self):
        assert filter_products(_catalog(), team="nobody") == []

    def test_exact_equality(self):
        assert filter_products(_catalog(), category="snack") == []

    def test_source_untouched(self):
        catalog = _catalog()
        filter_products(catalog, partition="K1")
        assert len(catalog) == 5


class TestBuildParetoView:
    def test_ratio_is_relative_to_filtered_set(self):
        view = build_pareto_view(_catalog(), partition="K1")
        assert [r.code for r in view.rows] == ["B", "A"]
        assert view.total_quantity == 30
        assert view.rows[-1].cumulative_ratio_pct == 100.0

    def test_band_counts(self):
        view = build_pareto_view(_catalog())
        # cumulative: 38.1, 66.7, 85.7, 95.2, 100
        assert view.a_count == 2
        assert view.b_count == 1
        assert view.c_count == 2
        assert view.core_count == 2

    def test_empty_view(self):
        view = build_pareto_view([])
        assert view.rows == []
        assert view.total_quantity == 0
        assert view.core_count == 0
        assert "no products" in view.summary

    def test_summary_text(self):
        view = build_pareto_view(_catalog())
        assert "2 of 5 products" in view.summary


class TestSelection:
    def test_select_by_code_spans_partitions(self):
        selected = select_products(_catalog(), codes={"A"})
        assert [(p.partition, p.code) for p in selected] == [("K1", "A"), ("K2", "A")]

    def test_select_by_key(self):
        selected = select_products(_catalog(), keys=[("K2", "A")])
        assert [(p.partition, p.code) for p in selected] == [("K2", "A")]

    def test_select_by_full_key(self):
        selected = select_products(_catalog(), keys=[ProductKey("K1", "B")])
        assert [p.code for p in selected] == ["B"]

    def test_empty_selection(self):
        result = rank_selection(_catalog())
        assert result.rows == []
        assert result.totals == CostTotals()

    def test_selection_reranks_subset(self):
        result = rank_selection(_catalog(), codes={"A", "B"})
        assert [r.code for r in result.rows] == ["B", "A", "A"]
        assert [r.rank for r in result.rows] == [1, 2, 3]
        assert result.rows[-1].cumulative_ratio_pct == 100.0
        assert result.rows[0].cumulative_ratio_pct == pytest.approx(20 / 35 * 100)

    def test_selection_matches_main_ranking(self):
        subset = [p for p in _catalog() if p.code in {"C", "D"}]
        via_selection = rank_selection(_catalog(), codes={"C", "D"}).rows
        assert via_selection == rank_products(subset)

    def test_totals(self):
        products = [
            _product("A", 10, raw_material=1, material_total=2, total_cost=3),
            _product("B", 20, raw_material=4, material_total=5, total_cost=6),
            _product("C", 99, raw_material=100),
        ]
        result = rank_selection(products, codes={"A", "B"})
        assert result.totals.quantity == 30
        assert result.totals.occurrence_count == 2
        assert result.totals.raw_material == 5
        assert result.totals.material_total == 7
        assert result.totals.total_cost == 9

    def test_compute_totals_covers_every_cost_field(self):
        product = AggregatedProduct(partition="K1", code="A", **{f: 1.0 for f in COST_FIELDS})
        totals = compute_totals([product, product])
        for f in COST_FIELDS:
            assert getattr(totals, f) == 2.0


class TestFilterOptions:
    def test_all(self):
        options = filter_options(_catalog())
        assert options["partitions"] == ["K1", "K2"]
        assert options["teams"] == ["T1", "T2"]
        assert options["categories"] == ["Drink", "Snack"]

    def test_cascades(self):
        options = filter_options(_catalog(), partition="K2", team="T2")
        assert options["partitions"] == ["K1", "K2"]
        assert options["teams"] == ["T1", "T2"]
        assert options["categories"] == ["Snack"]

    def test_blank_values_dropped(self):
        options = filter_options([_product("A", 1, team="", category="")])
        assert options["teams"] == []
        assert options["categories"] == []

    def test_all_sentinel_constant(self):
        assert ALL == "All"

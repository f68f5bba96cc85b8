"""
Tests for the filter, metric and frequency parts of compound_comparison.similarity.

Run with: pytest tests/test_similarity.py -v
"""

from fractions import Fraction

import pandas as pd
import pytest

from compound_comparison.errors import InconsistentItem, InvalidThreshold
from compound_comparison.similarity.filters import build_filter, prefix_length, size_bounds
from compound_comparison.similarity.frequency import FrequencyIndex
from compound_comparison.similarity.metrics import (
    as_threshold,
    evaluate,
    intersection_size,
    meets_threshold,
    tanimoto_similarity,
)
from compound_comparison.similarity.models import Query

from conftest import make_item

QUERY_FEATURES = (1, 2, 3, 4, 5)


def make_query(features=QUERY_FEATURES, threshold="0.5", item_id="Q"):
    item = make_item(item_id, features)
    return Query(item=item, threshold=as_threshold(threshold), ordered_features=tuple(features))


class TestThreshold:
    """Tests for threshold parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (0.5, Fraction(1, 2)),
            (0.7, Fraction(7, 10)),
            ("0.05", Fraction(1, 20)),
            (1, Fraction(1)),
            (Fraction(1, 3), Fraction(1, 3)),
        ],
    )
    def test_valid(self, value, expected):
        assert as_threshold(value) == expected

    @pytest.mark.parametrize("value", [0, 0.0, -0.1, 1.01, 2, float("nan"), float("inf"), "abc", None, True])
    def test_invalid(self, value):
        with pytest.raises(InvalidThreshold):
            as_threshold(value)

    def test_invalid_threshold_is_value_error(self):
        with pytest.raises(ValueError):
            as_threshold(1.5)


class TestSizeBounds:
    """Tests for the size filter."""

    def test_worked_example(self):
        assert size_bounds(5, Fraction(1, 2)) == (3, 10)

    def test_threshold_one(self):
        assert size_bounds(7, Fraction(1)) == (7, 7)

    def test_rounding(self):
        # 0.7 * 9 = 6.3 -> 7 ; 9 / 0.7 = 12.86 -> 12
        assert size_bounds(9, as_threshold(0.7)) == (7, 12)

    def test_exact_products_do_not_round_up(self):
        # 0.14 * 100 evaluates to 14.000000000000002 in floats
        assert size_bounds(100, as_threshold(0.14)) == (14, 714)
        assert size_bounds(10, as_threshold(0.3)) == (3, 33)

    def test_empty_query(self):
        assert size_bounds(0, Fraction(1, 2)) == (0, 0)

    @pytest.mark.parametrize("q", range(0, 40))
    @pytest.mark.parametrize("t", ["0.05", "0.1", "0.33", "0.5", "0.7", "0.85", "0.99", "1"])
    def test_min_not_above_max(self, q, t):
        min_size, max_size = size_bounds(q, as_threshold(t))
        assert 0 <= min_size <= max_size
        assert min_size <= q <= max_size


class TestPrefixFilter:
    """Tests for prefix selection."""

    def test_worked_example(self):
        bounds = build_filter((4, 5, 1, 2, 3), Fraction(1, 2))
        assert bounds.min_size == 3
        assert bounds.max_size == 10
        assert bounds.prefix == (4, 5, 1)
        assert bounds.query_size == 5
        assert not bounds.is_empty

    def test_prefix_length_clamped(self):
        assert prefix_length(5, 0) == 5
        assert prefix_length(5, 5) == 1
        assert prefix_length(5, 6) == 1
        assert prefix_length(0, 0) == 0

    def test_empty_query_has_no_candidates(self):
        bounds = build_filter((), Fraction(1, 2))
        assert bounds.is_empty
        assert bounds.prefix == ()

    def test_admits_size(self):
        bounds = build_filter(QUERY_FEATURES, Fraction(1, 2))
        assert bounds.admits_size(3)
        assert bounds.admits_size(10)
        assert not bounds.admits_size(2)
        assert not bounds.admits_size(11)

    @pytest.mark.parametrize("q", range(1, 25))
    @pytest.mark.parametrize("t", ["0.2", "0.5", "0.75", "1"])
    def test_overlap_outside_prefix_is_too_small(self, q, t):
        ordered = tuple(range(100, 100 + q))
        bounds = build_filter(ordered, as_threshold(t))
        outside = set(ordered) - set(bounds.prefix)
        # A compound holding every non-prefix query feature plus unrelated ones
        candidate = outside | {9000, 9001}
        assert intersection_size(set(ordered), candidate) < bounds.min_size


class TestMetrics:
    """Tests for exact Tanimoto verification."""

    def test_worked_example_no_match(self):
        query = make_query()
        assert evaluate(query, make_item("C1", {1, 2, 3, 6, 7})) is None

    def test_worked_example_match(self):
        query = make_query()
        match = evaluate(query, make_item("C2", {1, 2, 3, 4, 9}, label="CCO"))
        assert match is not None
        assert match.item_id == "C2"
        assert match.label == "CCO"
        assert match.tanimoto == pytest.approx(4 / 6)

    def test_identical_at_threshold_one(self):
        query = make_query(threshold=1)
        match = evaluate(query, make_item("same", QUERY_FEATURES))
        assert match is not None
        assert match.tanimoto == 1.0
        assert evaluate(query, make_item("other", {1, 2, 3, 4, 6})) is None

    def test_boundary_is_inclusive(self):
        # 1/3 has no exact binary representation
        assert meets_threshold(1, 3, Fraction(1, 3))
        assert meets_threshold(3, 10, as_threshold(0.3))
        assert not meets_threshold(2, 7, as_threshold(0.3))

    def test_zero_union_never_matches(self):
        assert tanimoto_similarity(0, 0) == 0.0
        assert not meets_threshold(0, 0, Fraction(1, 100))

    @pytest.mark.parametrize("q, c", [(5, 5), (5, 8), (12, 3), (1, 1)])
    def test_monotonic_in_intersection(self, q, c):
        values = [tanimoto_similarity(i, q + c - i) for i in range(0, min(q, c) + 1)]
        assert values == sorted(values)

    def test_inconsistent_candidate(self):
        query = make_query()
        with pytest.raises(InconsistentItem, match="declares 4"):
            evaluate(query, make_item("bad", {1, 2, 3}, feature_count=4))

    def test_intersection_uses_full_query(self):
        assert intersection_size({1, 2, 3, 4, 5}, [5, 4, 9]) == 2


class TestFrequencyIndex:
    """Tests for corpus fingerprint frequencies."""

    @pytest.fixture
    def index(self):
        items = [
            make_item("a", {1, 2, 3}),
            make_item("b", {2, 3}),
            make_item("c", {3}),
            make_item("d", set()),
        ]
        return FrequencyIndex.from_items(items)

    def test_counts(self, index):
        assert index.count(1) == 1
        assert index.count(2) == 2
        assert index.count(3) == 3
        assert index.count(42) == 0
        assert len(index) == 3

    def test_order_rarest_first(self, index):
        assert index.order([3, 2, 1]) == (1, 2, 3)

    def test_order_absent_first_and_ties_by_id(self):
        index = FrequencyIndex({7: 2, 5: 2, 9: 1})
        assert index.order([7, 5, 9, 100]) == (100, 9, 5, 7)

    def test_read_only(self, index):
        with pytest.raises(TypeError):
            index._counts[1] = 99
        assert not hasattr(index, "__setitem__")

    def test_dataframe_roundtrip(self, index):
        df = index.to_dataframe()
        assert list(df.columns) == ["Fingerprint", "Count"]
        assert df["Count"].tolist() == [1, 2, 3]
        assert dict(FrequencyIndex.from_dataframe(df)) == dict(index)

    def test_from_text_table(self, tmp_path):
        path = tmp_path / "counts.csv"
        pd.DataFrame({"Fingerprint": ["4", "5"], "Count": ["10", "2"]}).to_csv(path, index=False)
        index = FrequencyIndex.from_table(path)
        assert index.count(4) == 10
        assert index.order([4, 5]) == (5, 4)

    def test_missing_columns(self):
        with pytest.raises(ValueError, match="missing columns"):
            FrequencyIndex.from_dataframe(pd.DataFrame({"Fingerprint": [1]}))

    def test_empty_corpus(self):
        index = FrequencyIndex.from_items([])
        assert len(index) == 0
        assert index.to_dataframe().empty

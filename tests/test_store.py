"""
Tests for the table-backed compound store and its query objects.

Run with: pytest tests/test_store.py -v
"""

from fractions import Fraction

import pandas as pd
import pytest

from compound_comparison.core.io import format_features, parse_features
from compound_comparison.errors import InconsistentItem, ItemNotFound, StoreUnavailable
from compound_comparison.store import (
    CompoundFilter,
    GroupMatches,
    MatchCountRange,
    MatchFeatures,
    MatchTanimoto,
    OverlapCounter,
    ProjectTanimoto,
    TableCompoundStore,
    Unwind,
    run_pipeline,
)

from conftest import make_item


class TestParsing:
    """Tests for fingerprint cell parsing."""

    @pytest.mark.parametrize(
        "cell, expected",
        [
            ("1 2 3", (1, 2, 3)),
            ("1,2, 3", (1, 2, 3)),
            ("[4; 5]", (4, 5)),
            ("", ()),
            (None, ()),
            (float("nan"), ()),
            ([7, 8], (7, 8)),
        ],
    )
    def test_parse_features(self, cell, expected):
        assert parse_features(cell) == expected

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_features("1 two 3")

    def test_format_features_sorted(self):
        assert format_features({3, 1, 2}) == "1 2 3"


class TestTableStore:
    """Tests for loading and querying the table store."""

    def test_load_fixture(self, store):
        assert len(store) == 10
        item = store.get_item("C5")
        assert item.label == "CCOc1ccc(N)cc1C"
        assert item.features == frozenset(range(1, 9))
        assert item.feature_count == 8

    def test_empty_fingerprint_row(self, store):
        item = store.get_item("E0")
        assert item.features == frozenset()
        assert item.feature_count == 0

    def test_missing_item(self, store):
        with pytest.raises(ItemNotFound):
            store.get_item("missing")

    def test_missing_item_is_key_error(self, store):
        with pytest.raises(KeyError):
            store.get_item("missing")

    def test_missing_file(self, tmp_path):
        with pytest.raises(StoreUnavailable, match="Cannot read compound library"):
            TableCompoundStore.from_table(tmp_path / "nope.csv")

    def test_custom_columns(self):
        df = pd.DataFrame(
            {
                "cid": ["a", "b"],
                "structure": ["CC", "CCC"],
                "bits": ["1 2", "2 3 3"],
            }
        )
        store = TableCompoundStore.from_dataframe(df, id_col="cid", label_col="structure", fp_col="bits")
        assert store.get_item("a").label == "CC"
        # duplicate ids in a fingerprint list collapse into a set
        assert store.get_item("b").features == frozenset({2, 3})
        assert store.get_item("b").feature_count == 2

    def test_declared_count_is_kept(self):
        df = pd.DataFrame({"Compound_ID": ["x"], "Fingerprints": ["1 2 3"], "Fingerprint_Count": [4]})
        item = TableCompoundStore.from_dataframe(df).get_item("x")
        assert item.feature_count == 4
        with pytest.raises(InconsistentItem):
            item.check_consistency()

    def test_missing_fingerprint_column(self):
        with pytest.raises(ValueError, match="fingerprint column"):
            TableCompoundStore.from_dataframe(pd.DataFrame({"Compound_ID": ["x"], "SMILES": ["C"]}))

    def test_duplicate_ids(self):
        items = [make_item("a", {1}), make_item("a", {2})]
        with pytest.raises(ValueError, match="Duplicate compound ids"):
            TableCompoundStore.from_items(items)

    def test_library_export_roundtrip(self, store, tmp_path):
        path = tmp_path / "lib.csv"
        store.to_dataframe().to_csv(path, index=False)
        reloaded = TableCompoundStore.from_table(path)
        assert {i.item_id: i for i in reloaded.items()} == {i.item_id: i for i in store.items()}

    def test_find(self, store):
        found = {i.item_id for i in store.find(CompoundFilter(3, 5, frozenset({9})))}
        assert found == {"C2"}
        found = {i.item_id for i in store.find(CompoundFilter(8, 10))}
        assert found == {"C5", "C7"}

    def test_map_reduce(self, store):
        reducer = OverlapCounter(features=frozenset({1, 2, 3, 4, 5}), min_found=4)
        out = {c.item_id: c for c in store.map_reduce(CompoundFilter(3, 10), reducer)}
        assert set(out) == {"Q1", "C2", "C3", "C5", "C7"}
        assert out["C7"].matched_count == 4
        assert out["C7"].total_count == 10

    def test_filter_checks_count_before_prefix(self):
        bad = make_item("bad", {98, 99}, feature_count=3)
        assert not CompoundFilter(5, 10, frozenset({1})).matches(bad)
        with pytest.raises(InconsistentItem, match="bad"):
            CompoundFilter(1, 10, frozenset({1})).matches(bad)

    def test_context_manager_closes(self, library_csv):
        with TableCompoundStore.from_table(library_csv) as store:
            store.get_item("Q1")
        with pytest.raises(StoreUnavailable):
            store.get_item("Q1")
        with pytest.raises(StoreUnavailable):
            store.aggregate([Unwind()])


class TestPipeline:
    """Tests for the staged aggregation operators."""

    def stages(self, min_count=3, max_count=10, features=frozenset({1, 2, 3, 4, 5}), t=Fraction(1, 2)):
        return [
            MatchCountRange(min_count, max_count),
            Unwind(),
            MatchFeatures(features),
            GroupMatches(),
            ProjectTanimoto(len(features)),
            MatchTanimoto(t),
        ]

    def test_full_pipeline(self, store):
        result = store.aggregate(self.stages())
        assert sorted(result["item_id"]) == ["C2", "C3", "C5", "C8", "Q1"]
        row = result.set_index("item_id").loc["C5"]
        assert row["matched"] == 5
        assert row["union"] == 8
        assert row["tanimoto"] == pytest.approx(0.625)

    def test_unwind_rows(self, store):
        rows = store.aggregate(self.stages()[:2])
        assert len(rows[rows["item_id"] == "C7"]) == 10
        assert "E0" not in set(rows["item_id"])

    def test_unwind_detects_bad_count(self):
        store = TableCompoundStore.from_items([make_item("bad", {1, 2}, feature_count=3)])
        with pytest.raises(InconsistentItem, match="bad"):
            store.aggregate([Unwind()])

    def test_no_rows_survive(self, store):
        result = store.aggregate(self.stages(min_count=50, max_count=60))
        assert result.empty
        assert "tanimoto" in result.columns

    def test_threshold_stage_is_exact(self):
        frame = pd.DataFrame({"item_id": ["a", "b"], "matched": [1, 1], "union": [3, 4]})
        kept = MatchTanimoto(Fraction(1, 3)).apply(frame)
        assert kept["item_id"].tolist() == ["a"]

    @pytest.mark.parametrize(
        "t", [Fraction("0.3333333333333333"), Fraction(1, 10**19), Fraction(10**19 - 1, 10**19)]
    )
    def test_threshold_stage_large_fractions(self, t):
        frame = pd.DataFrame({"item_id": ["q", "a"], "matched": [1000, 500], "union": [1000, 1500]})
        kept = MatchTanimoto(t).apply(frame)
        expected = [i for i, c, u in [("q", 1000, 1000), ("a", 500, 1500)] if Fraction(c, u) >= t]
        assert kept["item_id"].tolist() == expected

    def test_count_range_checks_before_prefix(self):
        store = TableCompoundStore.from_items(
            [make_item("Q", {1, 2, 3, 4}), make_item("bad", {98, 99}, feature_count=3)]
        )
        with pytest.raises(InconsistentItem, match="bad"):
            store.aggregate([MatchCountRange(2, 8, frozenset({1}))])
        # Outside the count range the record is never looked at
        assert store.aggregate([MatchCountRange(4, 8)])["item_id"].tolist() == ["Q"]

    def test_count_range_accepts_unbounded_max(self, store):
        result = store.aggregate([MatchCountRange(1, 10**22)])
        assert "E0" not in set(result["item_id"])
        assert len(result) == 9

    def test_prefix_in_first_stage(self, store):
        result = store.aggregate([MatchCountRange(3, 10, frozenset({9}))])
        assert sorted(result["item_id"]) == ["C2", "C7"]

    def test_run_pipeline_without_stages(self):
        frame = pd.DataFrame({"item_id": ["a"]})
        assert run_pipeline(frame, []) is frame

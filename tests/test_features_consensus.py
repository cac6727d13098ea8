"""Tests for features.consensus.

Coverage:
- Membership rule: in consensus iff selected by >= min_votes sets
  (exhaustive over every triple of subsets of a small feature universe)
- Consensus is a subset of the union of selection sets
- Ordering (votes desc, then column order) and determinism
- Degradation when selectors fail or return empty sets
- NoConsensusFeaturesError diagnostics
- Membership table
"""

from itertools import combinations, product

import pytest

from amp_ml.exceptions import NoConsensusFeaturesError
from amp_ml.features.base import SelectionSet, SelectorResult
from amp_ml.features.consensus import aggregate_consensus, consensus_membership_table

UNIVERSE = ("f1", "f2", "f3", "f4")


def _all_subsets(items):
    return [frozenset(c) for r in range(len(items) + 1) for c in combinations(items, r)]


class TestMembershipRule:
    def test_exhaustive_two_of_three(self):
        """Every triple of subsets of a 4-feature universe (16^3 cases)."""
        subsets = _all_subsets(UNIVERSE)
        for a, b, c in product(subsets, repeat=3):
            selections = {"s1": a, "s2": b, "s3": c}
            expected = {f for f in UNIVERSE if (f in a) + (f in b) + (f in c) >= 2}
            try:
                result = aggregate_consensus(
                    selections, min_votes=2, allow_reduced=False, feature_order=UNIVERSE
                )
            except NoConsensusFeaturesError:
                assert expected == set()
                continue
            assert set(result.features) == expected
            assert set(result.features) <= a | b | c

    def test_votes_reported(self):
        result = aggregate_consensus(
            {"s1": ["a", "b", "c"], "s2": ["b", "c"], "s3": ["c", "d"]},
            feature_order=["a", "b", "c", "d"],
        )
        assert result.features == ("c", "b")
        assert result.votes == (3, 2)

    def test_ties_follow_feature_order(self):
        result = aggregate_consensus(
            {"s1": ["z", "a"], "s2": ["a", "z"], "s3": []},
            feature_order=["z", "a"],
        )
        assert result.features == ("z", "a")

    def test_ties_alphabetical_without_order(self):
        result = aggregate_consensus({"s1": ["z", "a"], "s2": ["a", "z"], "s3": ["q"]})
        assert result.features == ("a", "z")

    def test_accepts_selection_sets(self):
        result = aggregate_consensus(
            {
                "s1": SelectionSet("s1", ("a", "b")),
                "s2": SelectionSet("s2", ("b",)),
                "s3": SelectionSet("s3", ("a",)),
            }
        )
        assert result.features == ("a", "b")
        assert not result.reduced_confidence
        assert result.selection_sizes == {"s1": 2, "s2": 1, "s3": 1}

    def test_min_votes_three(self):
        result = aggregate_consensus(
            {"s1": ["a", "b"], "s2": ["a", "b"], "s3": ["a"]}, min_votes=3
        )
        assert result.features == ("a",)

    def test_invalid_min_votes(self):
        with pytest.raises(ValueError):
            aggregate_consensus({"s1": ["a"]}, min_votes=0)

    def test_unknown_feature_in_order(self):
        with pytest.raises(ValueError, match="feature_order"):
            aggregate_consensus({"s1": ["a"], "s2": ["a"]}, feature_order=["b"])


class TestDegradation:
    def test_one_failed_selector_keeps_rule(self):
        selections = {
            "s1": SelectorResult(name="s1", ranking=None, selection=SelectionSet("s1", ("a", "b"))),
            "s2": SelectorResult(name="s2", ranking=None, selection=SelectionSet("s2", ("b",))),
            "s3": SelectorResult.failed("s3", "did not converge"),
        }
        result = aggregate_consensus(selections)
        assert result.features == ("b",)
        assert result.n_usable == 2
        assert result.effective_min_votes == 2
        assert not result.reduced_confidence

    def test_single_usable_set_reduced(self):
        selections = {"s1": ["a", "b"], "s2": [], "s3": []}
        result = aggregate_consensus(selections, allow_reduced=True)
        assert result.features == ("a", "b")
        assert result.effective_min_votes == 1
        assert result.reduced_confidence

    def test_single_usable_set_strict(self):
        with pytest.raises(NoConsensusFeaturesError):
            aggregate_consensus({"s1": ["a", "b"], "s2": [], "s3": []}, allow_reduced=False)

    def test_no_usable_sets(self):
        with pytest.raises(NoConsensusFeaturesError) as exc_info:
            aggregate_consensus(
                {"s1": [], "s2": SelectorResult.failed("s2", "x"), "s3": []}
            )
        err = exc_info.value
        assert err.stage == "consensus"
        assert err.diagnostics["selection_sizes"] == {"s1": 0, "s2": 0, "s3": 0}
        assert err.diagnostics["failed_selectors"] == ["s2"]

    def test_disjoint_sets_error_diagnostics(self):
        with pytest.raises(NoConsensusFeaturesError) as exc_info:
            aggregate_consensus({"s1": ["a"], "s2": ["b"], "s3": ["c"]})
        diagnostics = exc_info.value.diagnostics
        assert diagnostics["union_size"] == 3
        assert diagnostics["selection_sizes"] == {"s1": 1, "s2": 1, "s3": 1}


class TestMembershipTable:
    def test_table(self):
        selections = {"s1": ["a", "b"], "s2": ["b", "c"], "s3": ["b"]}
        consensus = aggregate_consensus(selections, feature_order=["a", "b", "c"])
        df = consensus_membership_table(selections, consensus)

        assert df.columns.tolist() == ["feature", "s1", "s2", "s3", "votes", "in_consensus"]
        assert df["feature"].tolist() == ["b", "a", "c"]
        assert df["in_consensus"].tolist() == [True, False, False]
        assert df["votes"].tolist() == [3, 1, 1]

    def test_to_dict(self):
        consensus = aggregate_consensus({"s1": ["a"], "s2": ["a"]})
        d = consensus.to_dict()
        assert d["features"] == ["a"]
        assert d["n_usable"] == 2

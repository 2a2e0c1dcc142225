"""
Unit tests for TOPSIS ranking.

Covers:
  - compute_topsis kernel: vector normalization, ideals, distances
  - calculate_topsis: preconditions, weight handling, rounding, ranking
  - assign_competition_ranks: tie handling
"""

import math
from dataclasses import replace

import numpy as np
import pytest

from core.errors import EmptyAlternativeSet, EmptyCriteriaSet, IncompleteDecisionMatrix
from core.models import Alternative, Criterion, CriterionType
from core.topsis import assign_competition_ranks, calculate_topsis, compute_topsis


def alt(i):
    return Alternative(id=f"a{i}", code=f"A{i}", name=f"Alternative {i}")


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def benefit():
    return Criterion(id="k1", code="C1", name="Output", type=CriterionType.BENEFIT, position=0)


@pytest.fixture()
def dm4():
    """4 alternatives x 3 criteria; a1 dominates, a4 is dominated."""
    alternatives = [alt(1), alt(2), alt(3), alt(4)]
    criteria = [
        Criterion(id="k1", code="C1", name="Quality", type=CriterionType.BENEFIT, position=0),
        Criterion(id="k2", code="C2", name="Reliability", type=CriterionType.BENEFIT, position=1),
        Criterion(id="k3", code="C3", name="Cost", type=CriterionType.COST, position=2),
    ]
    scores = {
        "a1": {"k1": 9, "k2": 8, "k3": 2},
        "a2": {"k1": 7, "k2": 6, "k3": 5},
        "a3": {"k1": 5, "k2": 7, "k3": 8},
        "a4": {"k1": 3, "k2": 4, "k3": 9},
    }
    weights = {"k1": 0.5, "k2": 0.3, "k3": 0.2}
    return alternatives, criteria, scores, weights


# ---------------------------------------------------------------------------
# calculate_topsis
# ---------------------------------------------------------------------------

class TestCalculateTopsis:
    def test_two_alternatives_single_benefit(self, benefit):
        out = calculate_topsis([alt(1), alt(2)], [benefit], {"a1": {"k1": 10}, "a2": {"k1": 20}}, {"k1": 1.0})
        by_id = {r.alternative_id: r for r in out.results}
        assert by_id["a2"].score == 1.0
        assert by_id["a1"].score == 0.0
        assert by_id["a2"].rank == 1
        assert by_id["a1"].rank == 2

        d = out.detail
        assert d.normalized_matrix[0][0] == pytest.approx(10 / math.sqrt(500))
        assert d.normalized_matrix[1][0] == pytest.approx(20 / math.sqrt(500))
        assert d.ideal_positive[0] == pytest.approx(d.weighted_matrix[1][0])
        assert d.ideal_negative[0] == pytest.approx(d.weighted_matrix[0][0])

    def test_cost_criterion_reverses_preference(self):
        cost = Criterion(id="k1", code="C1", name="Price", type=CriterionType.COST, position=0)
        out = calculate_topsis([alt(1), alt(2)], [cost], {"a1": {"k1": 10}, "a2": {"k1": 20}}, {"k1": 1.0})
        assert out.results[0].alternative_id == "a1"
        assert out.detail.ideal_positive[0] < out.detail.ideal_negative[0]

    def test_ties_share_rank_and_skip(self, benefit):
        alts = [alt(1), alt(2), alt(3)]
        scores = {"a1": {"k1": 20}, "a2": {"k1": 20}, "a3": {"k1": 10}}
        out = calculate_topsis(alts, [benefit], scores, {"k1": 1.0})
        ranks = {r.alternative_id: r.rank for r in out.results}
        assert ranks == {"a1": 1, "a2": 1, "a3": 3}

    def test_identical_alternatives_score_zero(self, benefit):
        out = calculate_topsis([alt(1), alt(2)], [benefit], {"a1": {"k1": 5}, "a2": {"k1": 5}}, {"k1": 1.0})
        assert [r.score for r in out.results] == [0.0, 0.0]
        assert [r.rank for r in out.results] == [1, 1]
        assert not any(math.isnan(r.score) for r in out.results)

    def test_dominant_alternative_ranks_first(self, dm4):
        out = calculate_topsis(*dm4)
        assert out.results[0].alternative_id == "a1"
        assert out.results[-1].alternative_id == "a4"
        assert sorted(r.rank for r in out.results) == [1, 2, 3, 4]

    def test_scores_within_bounds(self):
        rng = np.random.RandomState(0)
        alts = [alt(i) for i in range(6)]
        crits = [
            Criterion(id=f"k{j}", code=f"C{j}", name=f"K{j}",
                      type=CriterionType.COST if j % 2 else CriterionType.BENEFIT, position=j)
            for j in range(4)
        ]
        values = rng.uniform(0.1, 100.0, size=(6, 4))
        scores = {a.id: {c.id: float(values[i, j]) for j, c in enumerate(crits)} for i, a in enumerate(alts)}
        weights = {c.id: float(w) for c, w in zip(crits, rng.uniform(0.1, 1.0, size=4))}
        out = calculate_topsis(alts, crits, scores, weights)
        assert all(0.0 <= r.score <= 1.0 for r in out.results)

    def test_ranks_follow_score_order(self, dm4):
        out = calculate_topsis(*dm4)
        by_score = sorted(out.results, key=lambda r: -r.score)
        assert [r.rank for r in by_score] == [r.rank for r in out.results]
        for a, b in zip(by_score, by_score[1:]):
            assert a.rank <= b.rank

    def test_idempotent(self, dm4):
        assert calculate_topsis(*dm4) == calculate_topsis(*dm4)

    def test_weights_renormalized(self, dm4):
        alternatives, criteria, scores, weights = dm4
        scaled = {k: v * 10 for k, v in weights.items()}
        a = calculate_topsis(alternatives, criteria, scores, weights)
        b = calculate_topsis(alternatives, criteria, scores, scaled)
        assert [r.score for r in a.results] == [r.score for r in b.results]
        assert sum(b.detail.weights) == pytest.approx(1.0)

    def test_falls_back_to_stored_weight(self, dm4):
        alternatives, criteria, scores, weights = dm4
        stored = [replace(c, weight=weights[c.id]) for c in criteria]
        a = calculate_topsis(alternatives, criteria, scores, weights)
        b = calculate_topsis(alternatives, stored, scores, {})
        assert a.results == b.results

    def test_zero_total_weight_keeps_raw_weights(self, dm4):
        alternatives, criteria, scores, _ = dm4
        out = calculate_topsis(alternatives, criteria, scores, {c.id: 0.0 for c in criteria})
        assert out.detail.weights == [0.0, 0.0, 0.0]
        assert all(r.score == 0.0 for r in out.results)

    def test_columns_follow_position(self, dm4):
        alternatives, criteria, scores, weights = dm4
        out = calculate_topsis(alternatives, list(reversed(criteria)), scores, weights)
        assert [c.id for c in out.detail.criteria] == ["k1", "k2", "k3"]
        assert out.detail.decision_matrix[0] == [9.0, 8.0, 2.0]

    def test_detail_aligned_with_inputs(self, dm4):
        out = calculate_topsis(*dm4)
        d = out.detail
        assert len(d.decision_matrix) == 4
        assert all(len(row) == 3 for row in d.weighted_matrix)
        assert len(d.ideal_positive) == len(d.ideal_negative) == 3
        assert len(d.distances_plus) == len(d.distances_minus) == 4
        assert [a.id for a in d.alternatives] == ["a1", "a2", "a3", "a4"]

    def test_distance_rounding(self, dm4):
        out = calculate_topsis(*dm4)
        for r in out.results:
            assert round(r.d_plus, 4) == r.d_plus
            assert round(r.d_minus, 4) == r.d_minus
            assert round(r.score, 6) == r.score

    def test_zero_column_divisor(self, benefit):
        second = Criterion(id="k2", code="C2", name="Flat", position=1)
        scores = {"a1": {"k1": 1, "k2": 0}, "a2": {"k1": 2, "k2": 0}}
        out = calculate_topsis([alt(1), alt(2)], [benefit, second], scores, {"k1": 0.5, "k2": 0.5})
        assert out.detail.normalized_matrix[0][1] == 0.0
        assert out.results[0].alternative_id == "a2"


class TestPreconditions:
    def test_no_alternatives(self, benefit):
        with pytest.raises(EmptyAlternativeSet):
            calculate_topsis([], [benefit], {}, {})

    def test_no_criteria(self):
        with pytest.raises(EmptyCriteriaSet):
            calculate_topsis([alt(1)], [], {}, {})

    @pytest.mark.parametrize("value", [None, "n/a", float("nan"), float("inf")])
    def test_incomplete_cell_named(self, benefit, value):
        scores = {"a1": {"k1": 1.0}, "a2": {"k1": value}}
        with pytest.raises(IncompleteDecisionMatrix) as exc:
            calculate_topsis([alt(1), alt(2)], [benefit], scores, {"k1": 1.0})
        assert exc.value.alternative.id == "a2"
        assert exc.value.criterion.id == "k1"
        assert "Alternative 2" in str(exc.value)
        assert "Output" in str(exc.value)

    def test_missing_row(self, benefit):
        with pytest.raises(IncompleteDecisionMatrix):
            calculate_topsis([alt(1)], [benefit], {}, {"k1": 1.0})


class TestCompetitionRanks:
    def test_standard_competition(self):
        assert assign_competition_ranks([0.5, 0.9, 0.9, 0.1]) == [3, 1, 1, 4]

    def test_all_equal(self):
        assert assign_competition_ranks([0.3, 0.3, 0.3]) == [1, 1, 1]

    def test_empty(self):
        assert assign_competition_ranks([]) == []


class TestComputeTopsisKernel:
    def test_shape_validation(self):
        with pytest.raises(ValueError):
            compute_topsis(np.ones((2, 2)), np.ones(3), [CriterionType.BENEFIT] * 2)

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            compute_topsis(np.ones((2, 1)), np.ones(1), ["sideways"])

    def test_accepts_plain_strings(self):
        art = compute_topsis(np.array([[1.0], [2.0]]), np.ones(1), ["BENEFIT"])
        assert art.c_star.tolist() == [0.0, 1.0]

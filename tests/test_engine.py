import pytest

from proceso_domain import Exoneration, round_half_up
from proceso_engine import (
    compute_process_total, compute_weight_total, earned_points, evaluate_eligibility,
    exoneration_for, final_grade_from_scores, find_partial, group_totals, meets_minimums,
    project_with_recuperatorio, recuperatorio_target, reference_points, row_earned_points,
)
from conftest import child, group, leaf


def test_earned_points_matches_rounded_product():
    for w in range(0, 1000, 37):
        for p in range(0, 101, 7):
            assert earned_points(w, p) == round_half_up(w * p / 100)
        assert earned_points(w, 0) == 0
        assert earned_points(w, 100) == w


def test_earned_points_clamps_inputs():
    assert earned_points(2000, 100) == 999
    assert earned_points(30, 250) == 30
    assert earned_points("abc", 50) == 0
    assert earned_points(-10, 50) == 0


def test_group_totals_use_children():
    totals = group_totals(group("g", child("a", 10, 55), child("b", 10, 45)))
    assert totals.weight == 20
    assert totals.earned == 11  # 6 + 5
    assert totals.percent == 55


def test_group_never_exceeds_its_weight():
    for pa in range(0, 101, 5):
        for pb in range(0, 101, 5):
            for wa, wb in ((7, 13), (7.5, 12.5), (15.5, 4.5), (0.5, 0.5)):
                totals = group_totals(group("g", child("a", wa, pa), child("b", wb, pb)))
                assert totals.earned <= totals.weight
                assert 0 <= totals.percent <= 100


def test_group_cap_applies_with_fractional_weight():
    # 15.5 at 100% rounds to 16 points, one half more than the group holds
    totals = group_totals(group("g", child("a", 15.5, 100)))
    assert totals.weight == 15.5
    assert totals.earned == 15.5
    assert totals.percent == 100

    rows = [group("g", child("a", 15.5, 100)), leaf("p1", 84.5, 0)]
    assert compute_process_total(rows) == 16


def test_group_with_zero_weight_has_zero_percent():
    totals = group_totals(group("g", child("a", 0, 100)))
    assert totals.percent == 0
    assert totals.earned == 0


def test_process_and_weight_totals(course_rows):
    assert compute_process_total(course_rows) == 61
    assert compute_weight_total(course_rows) == 100
    assert row_earned_points(course_rows[2]) == 40


def test_minimums_on_leaf_and_group():
    rows = (leaf("p1", 30, 30, minimum=40), leaf("p2", 70, 100))
    assert not meets_minimums(rows)  # 9 < 12

    rows = (leaf("p1", 30, 40, minimum=40), leaf("p2", 70, 0))
    assert meets_minimums(rows)

    rows = (leaf("p1", 60, 100), group("g", child("a", 20, 50), child("b", 20, 40), minimum=50))
    assert not meets_minimums(rows)  # 18 < 20


def test_zero_minimum_is_unconstrained():
    assert meets_minimums((leaf("p1", 50, 0), leaf("p2", 50, 0)))


def test_not_applicable_when_weights_do_not_add_up():
    rows = (leaf("p1", 30, 100, minimum=90), leaf("p2", 30, 100))
    result = evaluate_eligibility(rows, 1)
    assert result.weight_total == 60
    assert result.process_total == 60
    assert result.minimums_met is None
    assert result.recuperatorio_eligible is None
    assert result.firma_eligible is None
    assert result.exoneration is None


def test_failed_minimums_block_the_rest():
    rows = (leaf("p1", 50, 10, minimum=50), leaf("p2", 50, 100))
    result = evaluate_eligibility(rows, 1)
    assert result.minimums_met is False
    assert result.recuperatorio_eligible is None
    assert result.firma_eligible is None
    assert result.exoneration is None
    assert not result.valid


def test_recuperatorio_by_partial_percent():
    rows = (leaf("p1", 30, 40), leaf("p2", 30, 0), group("g", child("t1", 20, 0), child("t2", 20, 0)))
    result = evaluate_eligibility(rows, 2)
    assert result.process_total == 12
    assert result.recuperatorio_eligible is True
    assert result.firma_eligible is False
    assert result.exoneration == Exoneration(False, None)


def test_recuperatorio_denied_below_thresholds():
    rows = (leaf("p1", 30, 39), leaf("p2", 30, 39), leaf("tp", 40, 0))
    result = evaluate_eligibility(rows, 2)
    assert result.process_total == 24
    assert result.recuperatorio_eligible is False


def test_firma_and_exoneration(course_rows):
    result = evaluate_eligibility(course_rows, 3)
    assert result.valid
    assert result.recuperatorio_eligible is True
    assert result.firma_eligible is True
    assert result.exoneration == Exoneration(False, None)


def test_partial_found_by_label():
    rows = (leaf("a", 50, 40, label="Examen PARCIAL 1"), leaf("b", 50, 0, label="Parcial 2"))
    assert find_partial(rows, "p1").rid == "a"
    assert find_partial(rows, "p2").rid == "b"
    assert find_partial(rows, "p3") is None
    assert evaluate_eligibility(rows, 1).recuperatorio_eligible is True


@pytest.mark.parametrize("semester, total, expected", [
    (1, 91, Exoneration(True, 5)),
    (4, 81, Exoneration(True, 4)),
    (2, 71, Exoneration(True, 3)),
    (2, 70, Exoneration(False, None)),
    (5, 91, Exoneration(True, 5)),
    (5, 81, Exoneration(True, 4)),
    (7, 80, Exoneration(False, None)),
    (0, 100, Exoneration(False, None)),
    (None, 100, Exoneration(False, None)),
    (-1, 100, Exoneration(False, None)),
])
def test_exoneration_tiers(semester, total, expected):
    assert exoneration_for(semester, total) == expected


@pytest.mark.parametrize("semester", [1, 4, 5, 10])
def test_exoneration_is_monotonic(semester):
    previous = 0
    for total in range(0, 101):
        grade = exoneration_for(semester, total).grade or 0
        assert grade >= previous
        previous = grade


def test_final_below_40_is_always_1():
    for p in range(0, 101, 5):
        for f in range(0, 40):
            assert final_grade_from_scores(p, f) == 1
    assert reference_points(100, 39) is None


@pytest.mark.parametrize("process, final, points, grade", [
    (70, 55, 66, 2),
    (70.4, 55, 66, 2),
    (50, 60, 60, 2),
    (50, 95, 95, 5),
    (100, 100, 100, 5),
    (90, 90, 90, 4),
    (60, 40, 54, 1),
])
def test_final_grade_formula(process, final, points, grade):
    assert reference_points(process, final) == points
    assert final_grade_from_scores(process, final) == grade


def test_recuperatorio_targets_weaker_partial(course_rows):
    target = recuperatorio_target(course_rows)
    assert target.rid == "p2"
    assert target.points == 6
    assert target.weight == 30


def test_recuperatorio_tie_goes_to_p1():
    rows = (leaf("p1", 30, 50), leaf("p2", 30, 50), leaf("tp", 40, 0))
    assert recuperatorio_target(rows).rid == "p1"


def test_recuperatorio_target_without_partials():
    target = recuperatorio_target((leaf("tp", 100, 80),))
    assert (target.rid, target.points, target.weight) == ("p1", 0, 0)


def test_projection_with_recuperatorio(course_rows):
    snapshot = tuple(course_rows)
    best = project_with_recuperatorio(course_rows, 100, semester=3)
    assert best.projected_total == 85  # 61 - 6 + 30
    assert best.exoneration == Exoneration(True, 4)

    weak = project_with_recuperatorio(course_rows, 40, semester=6)
    assert weak.projected_total == 67
    assert weak.exoneration == Exoneration(False, None)

    assert project_with_recuperatorio(course_rows, 100).exoneration is None
    assert course_rows == snapshot


def test_projection_without_valid_snapshot():
    rows = (leaf("p1", 30, 100), leaf("p2", 30, 0))
    projection = project_with_recuperatorio(rows, 100, semester=1)
    assert projection.projected_total == 60
    assert projection.exoneration == Exoneration(False, None)


def test_evaluation_is_deterministic(course_rows):
    assert evaluate_eligibility(course_rows, 5) == evaluate_eligibility(course_rows, 5)

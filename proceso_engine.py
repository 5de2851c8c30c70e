"""
Motor de reglas del proceso: agregación ponderada, umbrales institucionales
y proyección con recuperatorio
"""
from typing import Optional, Sequence

from proceso_domain import (
    MAX_PERCENT, MAX_WEIGHT, NOT_EXONERATED, AssessmentRow, EligibilityResult,
    Exoneration, GroupRow, GroupTotals, Projection, RecuTarget,
    clamp_num, norm_text, round_half_up,
)

RECU_MIN_TOTAL = 30
RECU_MIN_PARTIAL_PERCENT = 40
FIRMA_MIN_TOTAL = 50
FINAL_MIN_PERCENT = 40

# (minimum reference points, grade), highest first
FINAL_GRADE_TIERS = ((91, 5), (81, 4), (71, 3), (60, 2))
EXONERATION_BASIC_TIERS = ((91, 5), (81, 4), (71, 3))
EXONERATION_PROFESSIONAL_TIERS = ((91, 5), (81, 4))
LAST_BASIC_SEMESTER = 4

PARTIAL_LABELS = {"p1": "parcial 1", "p2": "parcial 2"}


# ---------- weighted aggregator ----------

def earned_points(weight, percent) -> int:
    w = clamp_num(weight, 0, MAX_WEIGHT)
    p = clamp_num(percent, 0, MAX_PERCENT)
    return round_half_up(w * p / 100)


def _simple_points(row) -> int:
    return earned_points(row.weight.value, row.percent.value)


def group_totals(group: GroupRow) -> GroupTotals:
    """Group weight is the sum of its children; earned points never exceed it"""
    weight = sum(child.weight.value for child in group.children)
    earned = min(sum(_simple_points(child) for child in group.children), weight)
    percent = round_half_up(earned / weight * 100) if weight > 0 else 0
    return GroupTotals(weight=weight, earned=earned, percent=percent)


def effective_weight(row: AssessmentRow) -> float:
    if isinstance(row, GroupRow):
        return group_totals(row).weight
    return row.weight.value


def row_earned_points(row) -> float:
    if isinstance(row, GroupRow):
        return group_totals(row).earned
    return _simple_points(row)


def compute_process_total(rows: Sequence[AssessmentRow]) -> int:
    """Sum of row points, rounded once here since capped groups can earn fractional points"""
    return round_half_up(sum(row_earned_points(row) for row in rows))


def compute_weight_total(rows: Sequence[AssessmentRow]) -> float:
    return sum(effective_weight(row) for row in rows)


# ---------- threshold evaluator ----------

def meets_minimums(rows: Sequence[AssessmentRow]) -> bool:
    for row in rows:
        minimum = row.minimum.value
        if not minimum:
            continue
        min_points = round_half_up(effective_weight(row) * minimum / 100)
        if row_earned_points(row) < min_points:
            return False
    return True


def find_partial(rows: Sequence[AssessmentRow], rid: str) -> Optional[AssessmentRow]:
    """Locate a partial exam row by id, falling back to its label"""
    for row in rows:
        if row.rid == rid:
            return row
    hint = PARTIAL_LABELS.get(rid)
    if hint:
        for row in rows:
            if hint in norm_text(row.label):
                return row
    return None


def row_percent(row: Optional[AssessmentRow]) -> float:
    if row is None:
        return 0
    if isinstance(row, GroupRow):
        return group_totals(row).percent
    return row.percent.value


def exoneration_for(semester, total) -> Exoneration:
    s = clamp_num(semester, float("-inf"), float("inf"))
    points = clamp_num(total, float("-inf"), float("inf"))
    if 0 < s <= LAST_BASIC_SEMESTER:
        tiers = EXONERATION_BASIC_TIERS
    elif s > LAST_BASIC_SEMESTER:
        tiers = EXONERATION_PROFESSIONAL_TIERS
    else:
        return NOT_EXONERATED
    for threshold, grade in tiers:
        if points >= threshold:
            return Exoneration(eligible=True, grade=grade)
    return NOT_EXONERATED


def evaluate_eligibility(rows: Sequence[AssessmentRow], semester) -> EligibilityResult:
    total = compute_process_total(rows)
    weight_total = compute_weight_total(rows)
    if weight_total != 100:
        return EligibilityResult(total, weight_total, None, None, None, None)

    minimums = meets_minimums(rows)
    if not minimums:
        return EligibilityResult(total, weight_total, False, None, None, None)

    p1_pct = row_percent(find_partial(rows, "p1"))
    p2_pct = row_percent(find_partial(rows, "p2"))
    recuperatorio = (total >= RECU_MIN_TOTAL
                     or p1_pct >= RECU_MIN_PARTIAL_PERCENT
                     or p2_pct >= RECU_MIN_PARTIAL_PERCENT)
    return EligibilityResult(
        process_total=total,
        weight_total=weight_total,
        minimums_met=True,
        recuperatorio_eligible=recuperatorio,
        firma_eligible=total >= FIRMA_MIN_TOTAL,
        exoneration=exoneration_for(semester, total),
    )


# ---------- final grade formula ----------

def reference_points(process_score, final_score) -> Optional[int]:
    """Points the final grade is read from, or None when the final is below 40"""
    p = clamp_num(process_score, 0, 100)
    f = clamp_num(final_score, 0, 100)
    if f < FINAL_MIN_PERCENT:
        return None
    return round_half_up(max(0.3 * f + 0.7 * round_half_up(p), f))


def grade_for_points(points: int) -> int:
    for threshold, grade in FINAL_GRADE_TIERS:
        if points >= threshold:
            return grade
    return 1


def final_grade_from_scores(process_score, final_score) -> int:
    points = reference_points(process_score, final_score)
    if points is None:
        return 1
    return grade_for_points(points)


# ---------- scenario projector ----------

def recuperatorio_target(rows: Sequence[AssessmentRow]) -> RecuTarget:
    """The weaker partial is the one a recuperatorio replaces; ties go to p1"""
    candidates = []
    for rid, label in (("p1", "Parcial 1"), ("p2", "Parcial 2")):
        if (row := find_partial(rows, rid)) is not None:
            candidates.append(RecuTarget(row.rid, row.label, row_earned_points(row), effective_weight(row)))
        else:
            candidates.append(RecuTarget(rid, label, 0, 0))
    p1, p2 = candidates
    return p1 if p1.points <= p2.points else p2


def total_with_recuperatorio(rows: Sequence[AssessmentRow], recu_percent) -> int:
    target = recuperatorio_target(rows)
    recu_pts = earned_points(target.weight, recu_percent)
    return round_half_up(compute_process_total(rows) - target.points + recu_pts)


def project_with_recuperatorio(rows: Sequence[AssessmentRow], recu_percent,
                               semester=None) -> Projection:
    projected = total_with_recuperatorio(rows, recu_percent)
    exoneration = None
    if semester is not None:
        if evaluate_eligibility(rows, semester).valid:
            exoneration = exoneration_for(semester, projected)
        else:
            exoneration = NOT_EXONERATED
    return Projection(projected_total=projected, exoneration=exoneration)


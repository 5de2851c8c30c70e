"""
Simulador de escenarios ("qué pasa si") y resolución del resultado real
de una materia a partir de lo registrado
"""
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple

from proceso_domain import (
    NOT_EXONERATED, AssessmentRow, CourseProcessState, EligibilityResult, Exoneration,
    GroupRow, Percent, RecuTarget, ScenarioOverride,
)
from proceso_engine import (
    FIRMA_MIN_TOTAL, compute_process_total, evaluate_eligibility, exoneration_for,
    final_grade_from_scores, recuperatorio_target, total_with_recuperatorio,
)


@dataclass(frozen=True)
class SimulationResult:
    eligibility: EligibilityResult
    target: RecuTarget
    total_with_recuperatorio: int
    exoneration_with_recuperatorio: Exoneration
    process_for_final: int
    firma_for_final: bool
    final_grade: int


@dataclass(frozen=True)
class Outcome:
    eligibility: EligibilityResult
    total_with_recuperatorio: Optional[int]
    best_exoneration: Exoneration
    process_for_final: int
    has_firma: bool
    final_grade: Optional[int]
    can_exonerate: bool


def with_percent(rows: Sequence[AssessmentRow], rid: str, percent) -> Tuple[AssessmentRow, ...]:
    """Return a copy of rows where the leaf or child identified by rid has a new percent"""
    value = Percent.of(percent)
    updated = []
    for row in rows:
        if row.rid == rid and not isinstance(row, GroupRow):
            row = replace(row, percent=value)
        elif isinstance(row, GroupRow):
            children = tuple(replace(c, percent=value) if c.rid == rid else c for c in row.children)
            row = replace(row, children=children)
        updated.append(row)
    return tuple(updated)


def simulate(state: CourseProcessState, override: ScenarioOverride = ScenarioOverride(),
             rows: Optional[Sequence[AssessmentRow]] = None) -> SimulationResult:
    """
    Evaluate a what-if scenario. rows are the simulator's own copy; when
    omitted the committed rows are used as the starting point. Nothing is
    written back to state.
    """
    sim_rows = tuple(rows) if rows is not None else state.rows
    eligibility = evaluate_eligibility(sim_rows, state.semester)

    recu_total = total_with_recuperatorio(sim_rows, override.recuperatorio_expected_percent.value)
    recu_exoneration = exoneration_for(state.semester, recu_total) if eligibility.valid else NOT_EXONERATED

    if override.use_recuperatorio_for_final and eligibility.recuperatorio_eligible:
        base = recu_total
    else:
        base = eligibility.process_total
    firma = eligibility.valid and base >= FIRMA_MIN_TOTAL
    grade = final_grade_from_scores(base, override.final_exam_expected_percent.value) if firma else 1

    return SimulationResult(
        eligibility=eligibility,
        target=recuperatorio_target(sim_rows),
        total_with_recuperatorio=recu_total,
        exoneration_with_recuperatorio=recu_exoneration,
        process_for_final=base,
        firma_for_final=firma,
        final_grade=grade,
    )


def resolve_outcome(state: CourseProcessState) -> Outcome:
    """Apply the recorded recuperatorio and final exam to the committed process"""
    record = state.record
    eligibility = evaluate_eligibility(state.rows, state.semester)
    exoneration = eligibility.exoneration or NOT_EXONERATED

    recu_total = None
    recu_exoneration = NOT_EXONERATED
    if record.recuperatorio_taken and eligibility.recuperatorio_eligible:
        recu_total = total_with_recuperatorio(state.rows, record.recuperatorio_percent.value)
        recu_exoneration = exoneration_for(state.semester, recu_total)

    if record.recuperatorio_taken and recu_exoneration.eligible:
        best = recu_exoneration
    else:
        best = exoneration

    if record.use_recuperatorio_for_final and recu_total is not None:
        base = recu_total
    else:
        base = eligibility.process_total
    firma = eligibility.valid and base >= FIRMA_MIN_TOTAL

    grade = None
    if record.prefer_exoneration and best.eligible:
        grade = best.grade
    elif firma and record.final_taken:
        grade = final_grade_from_scores(base, record.final_percent.value)

    return Outcome(
        eligibility=eligibility,
        total_with_recuperatorio=recu_total,
        best_exoneration=best,
        process_for_final=base,
        has_firma=firma,
        final_grade=grade,
        can_exonerate=eligibility.valid and not record.third_attempt and best.eligible,
    )


def count_enabled(states: Iterable[CourseProcessState]) -> int:
    """Courses whose process total already reaches the firma threshold"""
    return sum(1 for state in states if compute_process_total(state.rows) >= FIRMA_MIN_TOTAL)

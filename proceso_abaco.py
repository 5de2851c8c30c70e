"""
Ábaco: tabla de referencia de nota final según proceso y examen final
"""
import math
from functools import lru_cache
from typing import Any, List, Optional, Tuple, Union

from proceso_domain import AbacoResult
from proceso_engine import (
    FINAL_MIN_PERCENT, FIRMA_MIN_TOTAL, exoneration_for, grade_for_points, reference_points,
)

BELOW_FINAL_MIN = "<40"

PROCESS_AXIS: Tuple[int, ...] = (50, 59, *range(60, 100), 100)
FINAL_AXIS: Tuple[Union[int, str], ...] = (100, *range(91, FINAL_MIN_PERCENT - 1, -1), BELOW_FINAL_MIN)


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def abaco_lookup(process_score: Any, final_score: Any = None) -> AbacoResult:
    if _is_blank(process_score):
        return AbacoResult(empty=True)

    p = _to_number(process_score)
    if p is None or p < FIRMA_MIN_TOTAL:
        return AbacoResult(blocked=True)

    f = _to_number(final_score)
    if f is None or f < FINAL_MIN_PERCENT:
        return AbacoResult(grade=1)

    points = reference_points(p, f)
    return AbacoResult(reference_points=points, grade=grade_for_points(points))


@lru_cache(maxsize=None)
def build_grid() -> Tuple[Tuple[AbacoResult, ...], ...]:
    """One row per FINAL_AXIS entry, one column per PROCESS_AXIS entry"""
    grid = []
    for final in FINAL_AXIS:
        score = None if final == BELOW_FINAL_MIN else final
        grid.append(tuple(abaco_lookup(process, score) for process in PROCESS_AXIS))
    return tuple(grid)


def exoneration_table() -> List[Tuple[int, Optional[int], Optional[int]]]:
    """(process, basic cycle grade, professional cycle grade) for each process column"""
    table = []
    for process in PROCESS_AXIS:
        basic = exoneration_for(1, process)
        professional = exoneration_for(5, process)
        table.append((process, basic.grade, professional.grade))
    return table

"""
Entidades de dominio y value objects para el proceso de evaluación
"""
import math
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

MAX_WEIGHT = 999
MAX_PERCENT = 100


def clamp_num(value: Any, minimum: float, maximum: float) -> float:
    """Coerce value to a number inside [minimum, maximum]; garbage becomes 0"""
    if value is None or isinstance(value, bool):
        number = float(bool(value))
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = float(text) if text else 0.0
        except ValueError:
            return 0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
    if math.isnan(number):
        return 0
    return max(minimum, min(maximum, number))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def norm_text(text: Optional[str]) -> str:
    decomposed = unicodedata.normalize("NFD", str(text or "").strip().lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split())


@dataclass(frozen=True)
class Weight:
    value: float = 0

    def __post_init__(self):
        if not 0 <= self.value <= MAX_WEIGHT:
            raise ValueError(f"Weight out of range: {self.value}")

    @classmethod
    def of(cls, raw: Any) -> "Weight":
        return cls(clamp_num(raw, 0, MAX_WEIGHT))


@dataclass(frozen=True)
class Percent:
    value: float = 0

    def __post_init__(self):
        if not 0 <= self.value <= MAX_PERCENT:
            raise ValueError(f"Percent out of range: {self.value}")

    @classmethod
    def of(cls, raw: Any) -> "Percent":
        return cls(clamp_num(raw, 0, MAX_PERCENT))


@dataclass(frozen=True)
class ChildRow:
    rid: str
    label: str
    weight: Weight = Weight()
    percent: Percent = Percent()


@dataclass(frozen=True)
class LeafRow:
    rid: str
    label: str
    weight: Weight = Weight()
    percent: Percent = Percent()
    minimum: Percent = Percent()


@dataclass(frozen=True)
class GroupRow:
    """Assessment row whose weight and percent derive from its children"""
    rid: str
    label: str
    children: Tuple[ChildRow, ...]
    minimum: Percent = Percent()

    def __post_init__(self):
        if not self.children:
            raise ValueError(f"Group row '{self.rid}' needs at least one child")
        object.__setattr__(self, "children", tuple(self.children))


AssessmentRow = Union[LeafRow, GroupRow]


@dataclass(frozen=True)
class ExamRecord:
    """What actually happened after the process: recuperatorio, final, preferences"""
    recuperatorio_taken: bool = False
    recuperatorio_percent: Percent = Percent()
    prefer_exoneration: bool = False
    final_taken: bool = False
    final_percent: Percent = Percent()
    use_recuperatorio_for_final: bool = True
    third_attempt: bool = False


@dataclass(frozen=True)
class CourseProcessState:
    course_id: str
    name: str
    semester: int
    rows: Tuple[AssessmentRow, ...] = ()
    with_lab: bool = False
    record: ExamRecord = field(default_factory=ExamRecord)

    def __post_init__(self):
        object.__setattr__(self, "rows", tuple(self.rows))


@dataclass(frozen=True)
class GroupTotals:
    weight: float
    earned: float
    percent: int


@dataclass(frozen=True)
class Exoneration:
    eligible: bool
    grade: Optional[int] = None


NOT_EXONERATED = Exoneration(eligible=False, grade=None)


def _flag(value: Optional[bool]) -> str:
    if value is None:
        return "-"
    return "SI" if value else "NO"


@dataclass(frozen=True)
class EligibilityResult:
    """
    Derived view of a course process. A sub-check holding None is not
    applicable: minimums need weight_ok, everything else needs valid.
    """
    process_total: int
    weight_total: float
    minimums_met: Optional[bool]
    recuperatorio_eligible: Optional[bool]
    firma_eligible: Optional[bool]
    exoneration: Optional[Exoneration]

    @property
    def weight_ok(self) -> bool:
        return self.weight_total == 100

    @property
    def valid(self) -> bool:
        return self.weight_ok and bool(self.minimums_met)

    def status(self) -> Dict[str, str]:
        exo = None if self.exoneration is None else self.exoneration.eligible
        return {
            "minimos": _flag(self.minimums_met),
            "recuperatorio": _flag(self.recuperatorio_eligible),
            "firma": _flag(self.firma_eligible),
            "exoneracion": _flag(exo),
        }


@dataclass(frozen=True)
class RecuTarget:
    rid: str
    label: str
    points: float
    weight: float


@dataclass(frozen=True)
class Projection:
    projected_total: int
    exoneration: Optional[Exoneration]


@dataclass(frozen=True)
class ScenarioOverride:
    recuperatorio_expected_percent: Percent = Percent(60)
    final_exam_expected_percent: Percent = Percent(60)
    use_recuperatorio_for_final: bool = False


@dataclass(frozen=True)
class AbacoResult:
    empty: bool = False
    blocked: bool = False
    reference_points: Optional[int] = None
    grade: Optional[int] = None

"""
Puertos de la aplicación: contratos que implementa la infraestructura
"""
from pathlib import Path
from typing import List, Optional, Protocol

from proceso_domain import AssessmentRow, CourseProcessState


class Repository(Protocol):
    def load_all(self) -> List[CourseProcessState]: ...

    def save_all(self, states: List[CourseProcessState]) -> None: ...

    def find_by_id(self, course_id: str) -> Optional[CourseProcessState]: ...

    def save(self, state: CourseProcessState) -> None: ...


class SyllabusExtractor(Protocol):
    def extract_assessment_rows(self, filepath: Path) -> List[AssessmentRow]: ...


class GridRenderer(Protocol):
    def render(self, filepath: Path) -> Path: ...

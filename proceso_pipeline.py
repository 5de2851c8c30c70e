"""
Orquestador del proceso de evaluación y configuración
"""
import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from proceso_application import GridRenderer, Repository, SyllabusExtractor
from proceso_domain import CourseProcessState, EligibilityResult, Percent, ScenarioOverride
from proceso_engine import evaluate_eligibility
from proceso_simulator import (
    Outcome, SimulationResult, count_enabled, resolve_outcome, simulate, with_percent,
)


@dataclass
class AppConfig:
    data_dir: str = "data"
    recu_guess: float = 60
    final_guess: float = 60
    use_recu_for_final: bool = False

    @classmethod
    def load(cls, path: Optional[Path] = None, logger: Optional[logging.Logger] = None) -> "AppConfig":
        """Read config.json if present; unknown keys are ignored"""
        logger = logger or logging.getLogger(__name__)
        path = path or Path("config.json")
        if not path.exists():
            return cls()
        try:
            with open(path, encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring config file {path}: {e}")
            return cls()
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {path}: expected an object")
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def scenario(self, recu: Optional[float] = None, final: Optional[float] = None,
                 use_recu: Optional[bool] = None) -> ScenarioOverride:
        return ScenarioOverride(
            recuperatorio_expected_percent=Percent.of(self.recu_guess if recu is None else recu),
            final_exam_expected_percent=Percent.of(self.final_guess if final is None else final),
            use_recuperatorio_for_final=self.use_recu_for_final if use_recu is None else use_recu,
        )


@dataclass(frozen=True)
class CourseReport:
    state: CourseProcessState
    eligibility: EligibilityResult
    outcome: Outcome


class ProcesoService:
    def __init__(self, repository: Repository, extractor: SyllabusExtractor, renderer: GridRenderer,
                 config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.extractor = extractor
        self.renderer = renderer
        self.config = config or AppConfig()
        self.logger = logger or logging.getLogger(__name__)

    def report(self, course_id: Optional[str] = None) -> List[CourseReport]:
        states = self.repository.load_all()
        if course_id is not None:
            states = [s for s in states if s.course_id == course_id]
            if not states:
                self.logger.warning(f"Course not found: {course_id}")
        reports = []
        for state in states:
            eligibility = evaluate_eligibility(state.rows, state.semester)
            if not eligibility.weight_ok:
                self.logger.info(f"{state.name}: weights add up to {eligibility.weight_total}, not 100")
            reports.append(CourseReport(state, eligibility, resolve_outcome(state)))
        self.logger.debug(f"{count_enabled(states)} of {len(states)} courses reach firma")
        return reports

    def simulate(self, course_id: str, recu: Optional[float] = None, final: Optional[float] = None,
                 use_recu: Optional[bool] = None,
                 percents: Optional[Dict[str, Any]] = None) -> Optional[SimulationResult]:
        state = self.repository.find_by_id(course_id)
        if state is None:
            self.logger.error(f"Course not found: {course_id}")
            return None
        rows = state.rows
        for rid, pct in (percents or {}).items():
            rows = with_percent(rows, rid, pct)
        return simulate(state, self.config.scenario(recu, final, use_recu), rows)

    def import_syllabus(self, filepath: Path, name: str, semester: int) -> Optional[CourseProcessState]:
        from proceso_infrastructure import new_state
        try:
            rows = self.extractor.extract_assessment_rows(filepath)
            if not rows:
                raise ValueError("no evaluation table found")
            state = new_state(name, semester, rows)
            self.repository.save(state)
            self.logger.info(f"Saved course: {state.course_id}")
            return state
        except Exception as e:
            self.logger.error(f"Error importing {filepath}: {e}")
            return None

    def sync_courses(self, courses: List[Dict[str, Any]]) -> List[CourseProcessState]:
        from proceso_infrastructure import merge_courses
        merged = merge_courses(courses, self.repository.load_all())
        self.repository.save_all(merged)
        self.logger.info(f"Synchronized {len(merged)} courses")
        return merged

    def export_abaco(self, filepath: Path) -> Path:
        return self.renderer.render(filepath)


class ServiceFactory:
    @staticmethod
    def create_default_service(config: Optional[AppConfig] = None, verbose: bool = False) -> ProcesoService:
        logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        from proceso_infrastructure import JSONRepository, PDFPlumberSyllabusExtractor, ReportLabAbacoRenderer
        config = config or AppConfig.load()
        return ProcesoService(
            repository=JSONRepository(Path(config.data_dir)),
            extractor=PDFPlumberSyllabusExtractor(),
            renderer=ReportLabAbacoRenderer(),
            config=config,
            logger=logging.getLogger("PROCESO")
        )

"""
Implementaciones concretas de persistencia, importación de pesos desde
sílabos PDF y renderizado del ábaco
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from proceso_domain import (
    AssessmentRow, ChildRow, CourseProcessState, ExamRecord, GroupRow, LeafRow,
    Percent, Weight, clamp_num, norm_text, round_half_up,
)

STORE_FILENAME = "proceso.json"


# ---------- row schema ----------

def row_from_dict(data: Dict[str, Any]) -> AssessmentRow:
    """Validate a stored row; a non-empty children list makes it a group"""
    if not isinstance(data, dict) or not str(data.get("rid") or "").strip():
        raise ValueError(f"Invalid row, missing rid: {data!r}")
    rid = str(data["rid"])
    label = str(data.get("label") or "")
    minimum = Percent.of(data.get("min"))
    children = data.get("children")
    if isinstance(children, list) and children:
        return GroupRow(
            rid=rid,
            label=label,
            children=tuple(_child_from_dict(child) for child in children),
            minimum=minimum,
        )
    return LeafRow(
        rid=rid,
        label=label,
        weight=Weight.of(data.get("peso")),
        percent=Percent.of(data.get("pct")),
        minimum=minimum,
    )


def _child_from_dict(data: Dict[str, Any]) -> ChildRow:
    if not isinstance(data, dict) or not str(data.get("rid") or "").strip():
        raise ValueError(f"Invalid child row, missing rid: {data!r}")
    return ChildRow(
        rid=str(data["rid"]),
        label=str(data.get("label") or ""),
        weight=Weight.of(data.get("peso")),
        percent=Percent.of(data.get("pct")),
    )


def row_to_dict(row: AssessmentRow) -> Dict[str, Any]:
    if isinstance(row, GroupRow):
        return {
            "rid": row.rid,
            "label": row.label,
            "isGroup": True,
            "min": row.minimum.value,
            "children": [
                {"rid": c.rid, "label": c.label, "peso": c.weight.value, "pct": c.percent.value}
                for c in row.children
            ],
        }
    return {
        "rid": row.rid,
        "label": row.label,
        "peso": row.weight.value,
        "min": row.minimum.value,
        "pct": row.percent.value,
    }


def default_rows(with_lab: bool) -> List[Dict[str, Any]]:
    """Starting rows for a new course, in storage shape"""
    rows = [
        {"rid": "p1", "label": "Parcial 1", "peso": 0, "min": 0, "pct": 0},
        {"rid": "p2", "label": "Parcial 2", "peso": 0, "min": 0, "pct": 0},
        {
            "rid": "g_talleres", "isGroup": True, "label": "Talleres", "peso": 0, "min": 0, "pct": 0,
            "children": [
                {"rid": "t1", "label": "Taller 1", "peso": 0, "pct": 0},
                {"rid": "t2", "label": "Taller 2", "peso": 0, "pct": 0},
            ],
        },
    ]
    if with_lab:
        rows.append({
            "rid": "g_labs", "isGroup": True, "label": "Laboratorios", "peso": 0, "min": 0, "pct": 0,
            "children": [{"rid": "lab1", "label": "Lab 1", "peso": 0, "pct": 0}],
        })
    return rows


def make_course_id(name: str, semester) -> str:
    return f"{norm_text(name)}|{str(semester or '').strip()}"


# ---------- course item schema ----------

def migrate_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild rows for items saved before rows existed (scores/mins per rid)"""
    if isinstance(item.get("rows"), list):
        return item
    with_lab = bool(item.get("withLab"))
    scores = item.get("scores") or {}
    mins = item.get("mins") or {}
    rows = []
    for row in default_rows(with_lab):
        peso = clamp_num(row["peso"], 0, 999)
        old_total = clamp_num(scores.get(row["rid"]), 0, peso)
        rows.append({
            **row,
            "min": clamp_num(mins.get(row["rid"]), 0, 999),
            "pct": round_half_up(old_total / peso * 100) if peso else 0,
        })
    return {**item, "withLab": with_lab, "rows": rows}


def state_from_dict(item: Dict[str, Any]) -> CourseProcessState:
    item = migrate_item(item)
    if not str(item.get("id") or "").strip():
        raise ValueError(f"Invalid course item, missing id: {item.get('nombre')!r}")
    record = ExamRecord(
        recuperatorio_taken=bool(item.get("realRecuOn")),
        recuperatorio_percent=Percent.of(item.get("realRecuPct")),
        prefer_exoneration=bool(item.get("realPreferExo")),
        final_taken=bool(item.get("realFinalOn")),
        final_percent=Percent.of(item.get("realExamPct")),
        use_recuperatorio_for_final=item.get("realUseRecuForFinal", True) is not False,
        third_attempt=bool(item.get("realThirdAttempt")),
    )
    return CourseProcessState(
        course_id=str(item["id"]),
        name=str(item.get("nombre") or ""),
        semester=int(clamp_num(item.get("semestre"), 0, 99)),
        rows=tuple(row_from_dict(row) for row in item["rows"]),
        with_lab=bool(item.get("withLab")),
        record=record,
    )


def state_to_dict(state: CourseProcessState) -> Dict[str, Any]:
    record = state.record
    return {
        "id": state.course_id,
        "nombre": state.name,
        "semestre": state.semester,
        "withLab": state.with_lab,
        "rows": [row_to_dict(row) for row in state.rows],
        "realRecuOn": record.recuperatorio_taken,
        "realRecuPct": record.recuperatorio_percent.value,
        "realPreferExo": record.prefer_exoneration,
        "realFinalOn": record.final_taken,
        "realExamPct": record.final_percent.value,
        "realUseRecuForFinal": record.use_recuperatorio_for_final,
        "realThirdAttempt": record.third_attempt,
    }


def new_state(name: str, semester: int, rows: Optional[List[AssessmentRow]] = None,
              with_lab: bool = False) -> CourseProcessState:
    if rows is None:
        rows = [row_from_dict(row) for row in default_rows(with_lab)]
    return CourseProcessState(
        course_id=make_course_id(name, semester),
        name=name,
        semester=semester,
        rows=tuple(rows),
        with_lab=with_lab,
    )


def merge_courses(courses: List[Dict[str, Any]], states: List[CourseProcessState]) -> List[CourseProcessState]:
    """Align stored states with the current course list ({mat, sem} entries)"""
    cleaned = []
    for course in courses or []:
        if not isinstance(course, dict):
            continue
        name = str(course.get("mat") or "").strip()
        if name:
            cleaned.append((name, int(clamp_num(course.get("sem"), 0, 99)) or 1))
    if not cleaned:
        return list(states)

    by_id = {state.course_id: state for state in states}
    merged = [by_id.get(make_course_id(name, sem)) or new_state(name, sem) for name, sem in cleaned]
    merged.sort(key=lambda s: (s.semester or 999, norm_text(s.name)))
    return merged


# ---------- persistence ----------

class JSONRepository:
    def __init__(self, base_path: Path, logger: Optional[logging.Logger] = None):
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.logger = logger or logging.getLogger(__name__)

    @property
    def filepath(self) -> Path:
        return self.base_path / STORE_FILENAME

    def load_all(self) -> List[CourseProcessState]:
        if not self.filepath.exists():
            return []
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(f"Could not read {self.filepath}: {e}")
            return []

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            self.logger.warning(f"No items list in {self.filepath}")
            return []

        states = []
        for item in items:
            try:
                states.append(state_from_dict(item))
            except (ValueError, TypeError, AttributeError) as e:
                self.logger.warning(f"Skipping malformed course item: {e}")
        return states

    def save_all(self, states: List[CourseProcessState]) -> None:
        with open(self.filepath, 'w', encoding='utf-8') as f:
            json.dump({"items": [state_to_dict(s) for s in states]}, f, ensure_ascii=False, indent=2)

    def find_by_id(self, course_id: str) -> Optional[CourseProcessState]:
        for state in self.load_all():
            if state.course_id == course_id:
                return state
        return None

    def save(self, state: CourseProcessState) -> None:
        states = self.load_all()
        for i, existing in enumerate(states):
            if existing.course_id == state.course_id:
                states[i] = state
                break
        else:
            states.append(state)
        self.save_all(states)


# ---------- syllabus import ----------

class PDFPlumberSyllabusExtractor:
    SECTION_NAMES = ["I. INFORMACIÓN GENERAL", "II. MISIÓN Y VISIÓN DE LA UPC", "III. INTRODUCCIÓN",
                     "IV. LOGRO (S) DEL CURSO", "V. COMPETENCIAS (S) DEL CURSO", "VI. UNIDADES DE APRENDIZAJE",
                     "VII. METODOLOGÍA", "VIII. EVALUACIÓN", "IX. BIBLIOGRAFÍA DEL CURSO",
                     "X. RECURSOS TECNOLÓGICOS", "XI. Anexos"]
    ASSESSMENT_SECTION = "VIII. EVALUACIÓN"
    HEADER = ['TIPO', 'COMPETENCIA', 'PESO', 'SEMANA', 'OBSERVACIÓN', 'RECUPERABLE']

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def extract_assessment_table(self, filepath: Path) -> List[List[str]]:
        import pdfplumber
        table_rows = []
        with pdfplumber.open(filepath) as pdf:
            current_section = None
            for page in pdf.pages:
                text = page.extract_text() or ""
                lines = text.splitlines()

                # La sección activa continúa de la página anterior salvo que la página abra otra
                if lines and lines[0].strip() in self.SECTION_NAMES:
                    current_section = lines[0].strip()
                for line in lines[1:]:
                    if line.strip() in self.SECTION_NAMES:
                        current_section = line.strip()

                if (table := page.extract_table()) and current_section == self.ASSESSMENT_SECTION:
                    table_rows.extend(table)
        return table_rows

    def extract_assessment_rows(self, filepath: Path) -> List[AssessmentRow]:
        self.logger.info(f"Extracting weights: {filepath.name}")
        return self.parse_assessment_table(self.extract_assessment_table(filepath))

    def parse_assessment_table(self, table: List[List[Optional[str]]]) -> List[AssessmentRow]:
        """Turn raw evaluation table rows into leaf rows; partial exams become p1/p2"""
        rows = []
        partials = 0
        for raw in table:
            if not raw or norm_text(raw[0] or "") == norm_text(self.HEADER[0]):
                continue
            cells = [(cell or '').replace('\n', ' ').strip() for cell in raw]
            if len(cells) < 3 or not cells[0]:
                continue

            name, code = cells[0].split('-', 1) if '-' in cells[0] else (cells[0], '')
            name, code = name.strip(), code.strip()

            try:
                weight = float(cells[2].rstrip('%').replace(',', '.'))
            except ValueError:
                self.logger.warning(f"Invalid weight value '{cells[2]}' in assessment '{name}'. Setting to 0.")
                weight = 0.0

            if "parcial" in norm_text(f"{name} {code}") and partials < 2:
                partials += 1
                rid = f"p{partials}"
            else:
                rid = f"r:{len(rows) + 1}"

            rows.append(LeafRow(rid=rid, label=f"{name} {code}".strip(), weight=Weight.of(weight)))
        return rows


# ---------- ábaco pdf ----------

class ReportLabAbacoRenderer:
    GRADE_COLORS = {5: "#2E7D32", 4: "#66BB6A", 3: "#FDD835", 2: "#FFA726", 1: "#EF5350"}

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def render(self, filepath: Path) -> Path:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4, landscape
        from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
        from proceso_abaco import FINAL_AXIS, PROCESS_AXIS, build_grid, exoneration_table

        doc = SimpleDocTemplate(str(filepath), pagesize=landscape(A4),
                                leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18)
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'CustomTitle',
            parent=styles['Heading1'],
            fontSize=16,
            spaceAfter=12,
            alignment=1
        )
        story = [Paragraph("Ábaco de Nota Final", title_style), Spacer(1, 6)]

        # Filas: examen final; columnas: proceso
        grid = build_grid()
        table_data = [['F \\ P'] + [str(p) for p in PROCESS_AXIS]]
        cell_styles = []
        for r, (final, results) in enumerate(zip(FINAL_AXIS, grid), start=1):
            line = [str(final)]
            for c, result in enumerate(results, start=1):
                line.append('-' if result.grade is None else str(result.grade))
                color = self.GRADE_COLORS.get(result.grade)
                if color:
                    cell_styles.append(('BACKGROUND', (c, r), (c, r), colors.HexColor(color)))
            table_data.append(line)

        table = Table(table_data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 5),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.black),
            ('TOPPADDING', (0, 0), (-1, -1), 1),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 1),
            ('LEFTPADDING', (0, 0), (-1, -1), 1),
            ('RIGHTPADDING', (0, 0), (-1, -1), 1),
        ] + cell_styles))
        story.append(table)
        story.append(Spacer(1, 14))

        story.append(Paragraph("Exoneración por puntaje de proceso", styles['Heading2']))
        exo_data = [['Proceso', 'Ciclo básico', 'Profesional']]
        for process, basic, professional in exoneration_table():
            exo_data.append([str(process), str(basic or ''), str(professional or '')])
        exo_table = Table(exo_data, repeatRows=1)
        exo_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.lightgrey]),
        ]))
        story.append(exo_table)

        doc.build(story)
        self.logger.info(f'Abaco PDF saved to: {filepath}')
        return filepath

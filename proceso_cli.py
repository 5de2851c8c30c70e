"""
Punto de entrada de línea de comandos para el proceso de evaluación
"""
import argparse
import json
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from proceso_abaco import abaco_lookup
from proceso_pipeline import AppConfig, CourseReport, ServiceFactory


def _format_report(report: CourseReport) -> str:
    status = report.eligibility.status()
    outcome = report.outcome
    exo = report.eligibility.exoneration
    lines = [
        f"{report.state.name} (semestre {report.state.semester}) [{report.state.course_id}]",
        f"  Peso total: {report.eligibility.weight_total:g}  Proceso: {report.eligibility.process_total}",
        f"  Mínimos: {status['minimos']}  Recuperatorio: {status['recuperatorio']}  "
        f"Firma: {status['firma']}  Exoneración: {status['exoneracion']}"
        + (f" (nota {exo.grade})" if exo and exo.eligible else ""),
    ]
    if outcome.total_with_recuperatorio is not None:
        lines.append(f"  Total con recuperatorio: {outcome.total_with_recuperatorio}")
    if outcome.final_grade is not None:
        lines.append(f"  Nota final: {outcome.final_grade}")
    return "\n".join(lines)


def _parse_percent(text: str):
    rid, _, value = text.partition("=")
    if not rid or not value:
        raise argparse.ArgumentTypeError(f"expected RID=PCT, got '{text}'")
    return rid, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Proceso de evaluación: firma, recuperatorio, exoneración y nota final")
    parser.add_argument("--config", type=Path, default=Path("config.json"), help="JSON configuration file")
    parser.add_argument("--data-dir", type=Path, help="Directory holding proceso.json")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    evaluar = sub.add_parser("evaluar", help="Show eligibility for stored courses")
    evaluar.add_argument("course_id", nargs="?")

    simular = sub.add_parser("simular", help="What-if scenario for one course")
    simular.add_argument("course_id")
    simular.add_argument("--recu", type=float, help="Expected recuperatorio percent")
    simular.add_argument("--final", type=float, help="Expected final exam percent")
    simular.add_argument("--usar-recu", action="store_true", default=None,
                         help="Use the recuperatorio-projected total for the final")
    simular.add_argument("--pct", type=_parse_percent, action="append", default=[], metavar="RID=PCT",
                         help="Override a row percent inside the simulation")

    abaco = sub.add_parser("abaco", help="Final grade lookup or full grid as PDF")
    abaco.add_argument("proceso", nargs="?", default="")
    abaco.add_argument("final", nargs="?", default="")
    abaco.add_argument("--pdf", type=Path, help="Write the grid to this PDF file")

    importar = sub.add_parser("importar", help="Create a course from a syllabus PDF evaluation table")
    importar.add_argument("pdf", type=Path)
    importar.add_argument("--nombre", required=True)
    importar.add_argument("--semestre", type=int, required=True)

    sincronizar = sub.add_parser("sincronizar", help="Merge a JSON list of {mat, sem} courses into the store")
    sincronizar.add_argument("courses_json", type=Path)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = AppConfig.load(args.config)
    if args.data_dir:
        config = replace(config, data_dir=str(args.data_dir))

    # A plain lookup touches no storage
    if args.command == "abaco" and not args.pdf:
        result = abaco_lookup(args.proceso, args.final)
        if result.empty or result.blocked:
            print("-")
        else:
            print(f"RP: {result.reference_points if result.reference_points is not None else '-'}  Nota: {result.grade}")
        return 0

    service = ServiceFactory.create_default_service(config, verbose=args.verbose)

    if args.command == "evaluar":
        reports = service.report(args.course_id)
        for report in reports:
            print(_format_report(report))
        return 0 if reports else 1

    if args.command == "simular":
        result = service.simulate(args.course_id, args.recu, args.final, args.usar_recu, dict(args.pct))
        if result is None:
            return 1
        exo = result.exoneration_with_recuperatorio
        print(f"Proceso simulado: {result.eligibility.process_total}")
        print(f"Recuperatorio reemplaza: {result.target.label} ({result.target.points} pts)")
        print(f"Total con recuperatorio: {result.total_with_recuperatorio}"
              + (f" -> exonera con {exo.grade}" if exo.eligible else ""))
        print(f"Proceso para el final: {result.process_for_final}  Nota final: {result.final_grade}")
        return 0

    if args.command == "abaco":
        print(f"Ábaco guardado en {service.export_abaco(args.pdf)}")
        return 0

    if args.command == "importar":
        state = service.import_syllabus(args.pdf, args.nombre, args.semestre)
        return 0 if state else 1

    if args.command == "sincronizar":
        with open(args.courses_json, encoding='utf-8') as f:
            courses = json.load(f)
        merged = service.sync_courses(courses if isinstance(courses, list) else [])
        print(f"{len(merged)} materias sincronizadas")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())

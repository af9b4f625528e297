#!/usr/bin/env python3
"""
Report Export Utility: Generate attainment reports and write them to disk.

Each report is generated inside one read-only database snapshot and written
as JSON (any report) or CSV (CLO and PLO reports).

Usage:
    python export_reports.py clo 42 [--students] [--format csv]
    python export_reports.py plo 3 [--session-id 7] [--trends]
    python export_reports.py student 17 --degree-id 3 [--session-id 7]
    python export_reports.py course 42
    python export_reports.py program 3 [--session-id 7]
    python export_reports.py trends 12 [--limit 5]
    python export_reports.py compare 42 43 44
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Add project root and src/ to path for imports
PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from sqlalchemy.exc import SQLAlchemyError

from infrastructure.database.connection import snapshot_scope
from infrastructure.reporting.assembler import ReportAssembler
from infrastructure.reporting.renderers import render_csv, render_json
from infrastructure.utilities.common import ReportSettings, load_report_settings
from obe_attainment.records import InvalidMarkError, ReportNotFoundError

logger = logging.getLogger(__name__)


def build_report(assembler: ReportAssembler, args: argparse.Namespace, settings: ReportSettings) -> Dict:
    """Dispatch to the assembler method for the chosen report kind."""
    if args.kind == "clo":
        return assembler.generate_clo_report(
            args.id, include_assessments=not args.no_assessments, include_students=args.students
        )
    if args.kind == "plo":
        return assembler.generate_plo_report(
            args.id, session_id=args.session_id, include_trends=args.trends
        )
    if args.kind == "student":
        return assembler.generate_student_plo_report(
            args.id, args.degree_id, session_id=args.session_id
        )
    if args.kind == "course":
        return assembler.generate_course_report(args.id)
    if args.kind == "program":
        return assembler.generate_program_report(args.id, session_id=args.session_id)
    if args.kind == "trends":
        limit = args.limit if args.limit is not None else settings.trend_limit
        return assembler.generate_clo_trends(args.id, limit=limit)
    if args.kind == "compare":
        return assembler.compare_offerings(args.ids)
    raise ValueError(f"Unknown report kind: {args.kind}")


def default_output(settings: ReportSettings, args: argparse.Namespace) -> Path:
    ident = "_".join(str(i) for i in args.ids) if args.kind == "compare" else str(args.id)
    export_dir = Path(settings.export_dir)
    if not export_dir.is_absolute():
        export_dir = PROJECT_ROOT / export_dir
    return export_dir / f"{args.kind}_report_{ident}.{args.format}"


def export_report(args: argparse.Namespace, settings: ReportSettings) -> Path:
    """
    Generate one report and write it to disk.

    Returns:
        Path of the written file
    """
    with snapshot_scope() as session:
        assembler = ReportAssembler(
            session,
            max_workers=settings.max_workers,
            action_plan_limit=settings.action_plan_limit,
        )
        report = build_report(assembler, args, settings)

    content = render_csv(report) if args.format == "csv" else render_json(report)

    output_file = args.output or default_output(settings, args)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", newline="") as f:
        f.write(content)

    logger.info(f"Wrote {report['report_type']} report to {output_file}")
    return output_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate outcome attainment reports from the database"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Report settings YAML (default: config/attainment.yaml)"
    )
    parser.add_argument(
        "--format",
        choices=["json", "csv"],
        default="json",
        help="Output format (default: json; csv only for clo/plo)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Output file path (default: <export_dir>/<kind>_report_<id>.<format>)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="kind", required=True)

    clo = subparsers.add_parser("clo", help="CLO attainment report for a course offering")
    clo.add_argument("id", type=int, help="Course offering ID")
    clo.add_argument("--students", action="store_true", help="Include per-student attainment")
    clo.add_argument("--no-assessments", action="store_true", help="Omit assessment breakdown")

    plo = subparsers.add_parser("plo", help="PLO attainment report for a degree program")
    plo.add_argument("id", type=int, help="Degree ID")
    plo.add_argument("--session-id", type=int, help="Restrict to one academic session")
    plo.add_argument("--trends", action="store_true", help="Include per-session trends")

    student = subparsers.add_parser("student", help="PLO attainment of one student in a degree program")
    student.add_argument("id", type=int, help="Student ID")
    student.add_argument("--degree-id", type=int, required=True, help="Degree ID")
    student.add_argument("--session-id", type=int, help="Restrict to one academic session")

    course = subparsers.add_parser("course", help="Course report for a course offering")
    course.add_argument("id", type=int, help="Course offering ID")

    program = subparsers.add_parser("program", help="Program report for a degree program")
    program.add_argument("id", type=int, help="Degree ID")
    program.add_argument("--session-id", type=int, help="Restrict to one academic session")

    trends = subparsers.add_parser("trends", help="CLO trends across a course's offerings")
    trends.add_argument("id", type=int, help="Course ID")
    trends.add_argument("--limit", type=int, help="Number of recent offerings (default from config)")

    compare = subparsers.add_parser("compare", help="Compare CLO attainment of several offerings")
    compare.add_argument("ids", type=int, nargs="+", help="Course offering IDs")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_report_settings(args.config)
    except ValueError as e:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
        logger.error(f"Invalid report settings: {e}")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        export_report(args, settings)
    except ReportNotFoundError as e:
        logger.error(str(e))
        return 1
    except (InvalidMarkError, ValueError) as e:
        logger.error(f"Report generation failed: {e}")
        return 1
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}", exc_info=True)
        return 1

    logger.info("Export complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Report Assembler

Builds the CLO, PLO, student PLO, course and program report documents by
composing the attainment calculators over rows read from the store.

Every public method reads all the rows it needs first (on the calling
thread, inside whatever snapshot the session provides) and only then runs
the pure per-CLO / per-PLO computations, optionally fanned out over a
thread pool. Documents are plain dicts; identical inputs give identical
documents apart from ``generated_at``.

Usage:
    with snapshot_scope() as session:
        report = ReportAssembler(session).generate_clo_report(42)
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from infrastructure.database import queries
from infrastructure.database.models import AcademicSession, CourseOffering
from obe_attainment.calculators.clo_attainment import calculate_clo_summary
from obe_attainment.calculators.descriptive import (
    attainment_distribution,
    percentage_of,
    safe_mean,
    summarize_components,
    summarize_grades,
    summarize_results,
)
from obe_attainment.calculators.gap_analyzer import analyze_gap
from obe_attainment.calculators.mark_aggregator import aggregate_clo_marks, percentages
from obe_attainment.calculators.plo_rollup import mean_of_averages, rollup_plo, student_plo_attainment
from obe_attainment.records import (
    AttainmentStatus,
    CLOAttainmentSummary,
    MappedCLOSummary,
    MarkRow,
    OutcomeTarget,
    PLOAttainmentSummary,
    QuestionRow,
    ReportNotFoundError,
    StudentCLOAttainment,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTION_PLAN_LIMIT = 10
DEFAULT_TREND_LIMIT = 5

# (minimum share of CLOs achieved, label), best first
COURSE_STATUS_TIERS = [
    (80, "Excellent"),
    (60, "Good"),
    (40, "Satisfactory"),
]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OfferingRows:
    """Everything the calculators need for one course offering."""
    offering_id: int
    clos: List[OutcomeTarget]
    questions: List[QuestionRow]
    marks: List[MarkRow]
    enrolled_student_ids: List[int]


@dataclass(frozen=True)
class OfferingAttainment:
    offering_id: int
    summaries: List[CLOAttainmentSummary]
    students: Dict[int, Dict[int, StudentCLOAttainment]]


def summarize_offering(rows: OfferingRows) -> OfferingAttainment:
    """Aggregate marks and summarise every CLO of one offering (pure)."""
    summaries = []
    students = {}
    for clo in rows.clos:
        attainment = aggregate_clo_marks(
            clo.outcome_id, rows.questions, rows.marks, rows.enrolled_student_ids
        )
        students[clo.outcome_id] = attainment
        summaries.append(calculate_clo_summary(clo, percentages(attainment), rows.offering_id))
    return OfferingAttainment(rows.offering_id, summaries, students)


def overall_statistics(summaries: Sequence, label: str) -> Dict:
    """
    Achievement counts over CLO or PLO summaries.

    ``label`` is "clos" or "plos" and prefixes the count keys. Outcomes
    without data are counted separately and left out of the mean.
    """
    total = len(summaries)
    achieved = sum(1 for s in summaries if s.attainment_status == AttainmentStatus.ACHIEVED)
    not_achieved = sum(1 for s in summaries if s.attainment_status == AttainmentStatus.NOT_ACHIEVED)

    return {
        f"total_{label}": total,
        f"achieved_{label}": achieved,
        f"not_achieved_{label}": not_achieved,
        f"no_data_{label}": total - achieved - not_achieved,
        "average_attainment": mean_of_averages(summaries),
        "overall_success_rate": percentage_of(achieved, total),
    }


def course_status(statistics: Dict) -> str:
    """Label a course by the share of its CLOs that were achieved."""
    if not statistics.get("total_clos"):
        return "No Data"
    rate = statistics.get("overall_success_rate") or 0
    for minimum, label in COURSE_STATUS_TIERS:
        if rate >= minimum:
            return label
    return "Needs Improvement"


def _gap(summary) -> Optional[Dict]:
    gap = analyze_gap(summary.target_attainment, summary.average_attainment)
    return gap.to_dict() if gap else None


def _session_key(academic_session: Optional[AcademicSession]) -> Tuple:
    if academic_session is None:
        return (True, None, 0)
    return (academic_session.start_date is None, academic_session.start_date, academic_session.id)


class ReportAssembler:
    """
    Builds report documents from one database session.

    Args:
        session: SQLAlchemy session, ideally from snapshot_scope()
        max_workers: Thread pool size for per-outcome computations
            (1 runs everything on the calling thread)
        action_plan_limit: Number of recent action plans in program reports
        clock: Returns the timestamp stamped as generated_at
    """

    def __init__(
        self,
        session: Session,
        max_workers: int = 1,
        action_plan_limit: int = DEFAULT_ACTION_PLAN_LIMIT,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.session = session
        self.max_workers = max_workers
        self.action_plan_limit = action_plan_limit
        self.clock = clock

    # =========================================================================
    # Helpers
    # =========================================================================

    def _map(self, func, items: Sequence) -> List:
        """Apply a pure function to every item, in order."""
        items = list(items)
        if self.max_workers == 1 or len(items) <= 1:
            return [func(item) for item in items]

        logger.debug(f"Fanning out {len(items)} computations over {self.max_workers} workers")
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(func, items))

    def _generated_at(self) -> str:
        return self.clock().isoformat()

    def _require_offering(self, course_offering_id: int) -> CourseOffering:
        offering = queries.get_course_offering(self.session, course_offering_id)
        if offering is None:
            raise ReportNotFoundError("Course offering", course_offering_id)
        return offering

    def _require_degree(self, degree_id: int):
        degree = queries.get_degree(self.session, degree_id)
        if degree is None:
            raise ReportNotFoundError("Degree", degree_id)
        return degree

    def _require_session(self, session_id: Optional[int]) -> None:
        if session_id is not None and queries.get_academic_session(self.session, session_id) is None:
            raise ReportNotFoundError("Academic session", session_id)

    def _load_offering(self, offering: CourseOffering, clos_by_course: Dict[int, List[OutcomeTarget]]) -> OfferingRows:
        if offering.course_id not in clos_by_course:
            clos_by_course[offering.course_id] = queries.get_course_clos(self.session, offering.course_id)
        enrollments = queries.get_enrollments(self.session, offering.id)
        return OfferingRows(
            offering_id=offering.id,
            clos=clos_by_course[offering.course_id],
            questions=queries.get_offering_questions(self.session, offering.id),
            marks=queries.get_offering_marks(self.session, offering.id),
            enrolled_student_ids=[e["student_id"] for e in enrollments],
        )

    def _summarize_offerings(self, offerings: Sequence[CourseOffering]) -> Dict[int, OfferingAttainment]:
        """Read rows for every offering, then summarise them all."""
        clos_by_course: Dict[int, List[OutcomeTarget]] = {}
        rows = [self._load_offering(o, clos_by_course) for o in offerings]
        return {result.offering_id: result for result in self._map(summarize_offering, rows)}

    # =========================================================================
    # CLO report
    # =========================================================================

    def _clo_entries(self, summaries: Sequence[CLOAttainmentSummary], course_id: int) -> List[Dict]:
        mappings = defaultdict(list)
        for mapping in queries.get_course_plo_mappings(self.session, course_id):
            mappings[mapping["clo_id"]].append({
                "plo_id": mapping["plo_id"],
                "plo_number": mapping["plo_number"],
                "plo_description": mapping["plo_description"],
                "mapping_strength": mapping["mapping_strength"],
            })

        entries = []
        for summary in summaries:
            entry = summary.to_dict()
            entry["plo_mappings"] = mappings.get(summary.clo_id, [])
            entry["gap_analysis"] = _gap(summary)
            entry["student_distribution"] = (
                attainment_distribution(summary.student_attainment.values()) if summary.has_data else []
            )
            entries.append(entry)
        return entries

    def _student_data(self, enrollments: List[Dict], attainment: OfferingAttainment) -> List[Dict]:
        targets = {s.clo_id: s for s in attainment.summaries}
        students = []
        for enrollment in enrollments:
            student_id = enrollment["student_id"]
            clo_results = []
            for clo_id, summary in targets.items():
                result = attainment.students.get(clo_id, {}).get(student_id)
                if result is None:
                    continue
                achieved = result.attainment_percentage >= summary.target_attainment
                clo_results.append({
                    **result.to_dict(),
                    "clo_number": summary.clo_number,
                    "attainment_status": (
                        AttainmentStatus.ACHIEVED if achieved else AttainmentStatus.NOT_ACHIEVED
                    ).value,
                })
            students.append({**enrollment, "clo_attainment": clo_results})
        return students

    def generate_clo_report(
        self,
        course_offering_id: int,
        include_assessments: bool = True,
        include_students: bool = False,
    ) -> Dict:
        """
        CLO attainment report for one course offering.

        Args:
            course_offering_id: Offering to report on
            include_assessments: Add the per-component assessment breakdown
            include_students: Add per-student CLO attainment

        Returns:
            Document with report_type "CLO_ATTAINMENT"

        Raises:
            ReportNotFoundError: If the offering does not exist
        """
        offering = self._require_offering(course_offering_id)
        enrollments = queries.get_enrollments(self.session, offering.id)
        component_rows = (
            queries.get_component_marks(self.session, offering.id) if include_assessments else None
        )
        attainment = self._summarize_offerings([offering])[offering.id]

        report = {
            "report_type": "CLO_ATTAINMENT",
            "generated_at": self._generated_at(),
            "course_offering": offering.to_dict(),
            "overall_statistics": overall_statistics(attainment.summaries, "clos"),
            "clo_attainment": self._clo_entries(attainment.summaries, offering.course_id),
            "assessment_breakdown": (
                summarize_components(component_rows) if component_rows is not None else None
            ),
            "student_data": self._student_data(enrollments, attainment) if include_students else None,
        }

        logger.info(
            f"CLO report for offering {course_offering_id}: "
            f"{len(attainment.summaries)} CLOs, {len(enrollments)} enrolled"
        )
        return report

    # =========================================================================
    # PLO report
    # =========================================================================

    def _mapped_summaries(
        self,
        degree_id: int,
        session_id: Optional[int],
        all_sessions: bool,
    ) -> Tuple[List[OutcomeTarget], Dict[int, List[MappedCLOSummary]], List[CourseOffering]]:
        """Read and summarise every offering mapped to the degree's PLOs, keyed by PLO."""
        plos = queries.get_degree_plos(self.session, degree_id)
        mappings = queries.get_degree_plo_mappings(self.session, degree_id)
        course_ids = sorted({m["course_id"] for m in mappings})

        offerings = queries.get_course_offerings(
            self.session, course_ids, None if all_sessions else session_id
        )
        attainment = self._summarize_offerings(offerings)

        summaries_by_clo: Dict[int, List[Tuple[CourseOffering, CLOAttainmentSummary]]] = defaultdict(list)
        for offering in offerings:
            for summary in attainment[offering.id].summaries:
                summaries_by_clo[summary.clo_id].append((offering, summary))

        mapped: Dict[int, List[MappedCLOSummary]] = defaultdict(list)
        for mapping in mappings:
            for offering, summary in summaries_by_clo.get(mapping["clo_id"], []):
                course = offering.course
                mapped[mapping["plo_id"]].append(MappedCLOSummary(
                    summary=summary,
                    mapping_strength=mapping["mapping_strength"],
                    course_id=offering.course_id,
                    course_code=course.course_code,
                    course_title=course.course_title,
                    credit_hours=float(course.credit_hours) if course.credit_hours is not None else None,
                    session_id=offering.session_id,
                ))
        return plos, mapped, offerings

    def _plo_rollups(
        self,
        degree_id: int,
        session_id: Optional[int],
        include_trends: bool,
    ) -> Tuple[List[OutcomeTarget], List[PLOAttainmentSummary], Optional[List[Dict]]]:
        # Trends need every session, otherwise only the selected one
        plos, mapped, offerings = self._mapped_summaries(degree_id, session_id, all_sessions=include_trends)

        rollups = self._map(lambda plo: rollup_plo(plo, mapped.get(plo.outcome_id, []), session_id), plos)

        trends = None
        if include_trends:
            trends = self._trends(plos, mapped, offerings, session_id)
        return plos, rollups, trends

    def _trends(
        self,
        plos: List[OutcomeTarget],
        mapped: Dict[int, List[MappedCLOSummary]],
        offerings: Sequence[CourseOffering],
        session_id: Optional[int],
    ) -> List[Dict]:
        """Per-PLO attainment series over academic sessions, oldest first."""
        session_ids = {o.session_id for o in offerings if o.session_id is not None}
        if session_id is not None:
            session_ids.add(session_id)
        sessions = queries.get_academic_sessions(self.session, sorted(session_ids))

        if session_id is not None:
            selected = next((s for s in sessions if s.id == session_id), None)
            if selected is None:
                raise ReportNotFoundError("Academic session", session_id)
            sessions = [s for s in sessions if _session_key(s) <= _session_key(selected)]

        trends = []
        for plo in plos:
            items = mapped.get(plo.outcome_id, [])
            per_session = self._map(partial(rollup_plo, plo, items), [s.id for s in sessions])
            series = [
                {
                    **academic_session.to_dict(),
                    "average_attainment": summary.average_attainment,
                    "attainment_status": summary.attainment_status.value,
                    "total_students": summary.total_students,
                }
                for academic_session, summary in zip(sessions, per_session)
                if summary.has_data
            ]
            trends.append({"plo_id": plo.outcome_id, "plo_number": plo.code, "series": series})
        return trends

    def _plo_entries(self, rollups: Sequence[PLOAttainmentSummary], include_courses: bool) -> List[Dict]:
        entries = []
        for summary in rollups:
            entry = summary.to_dict()
            if include_courses:
                entry["contributing_courses"] = [c.to_dict() for c in summary.contributing_courses]
            entry["gap_analysis"] = _gap(summary)
            entry["student_distribution"] = (
                attainment_distribution(summary.student_attainment.values()) if summary.has_data else []
            )
            entries.append(entry)
        return entries

    def generate_plo_report(
        self,
        degree_id: int,
        session_id: Optional[int] = None,
        include_courses: bool = True,
        include_trends: bool = False,
    ) -> Dict:
        """
        PLO attainment report for one degree program.

        Args:
            degree_id: Degree program to report on
            session_id: Restrict the rollup to offerings of one academic session
            include_courses: List contributing courses per PLO
            include_trends: Add per-session attainment series per PLO (up to
                and including session_id when given)

        Returns:
            Document with report_type "PLO_ATTAINMENT"

        Raises:
            ReportNotFoundError: If the degree or the academic session does not exist
        """
        degree = self._require_degree(degree_id)
        self._require_session(session_id)
        plos, rollups, trends = self._plo_rollups(degree_id, session_id, include_trends)

        report = {
            "report_type": "PLO_ATTAINMENT",
            "generated_at": self._generated_at(),
            "degree": degree.to_dict(),
            "overall_statistics": overall_statistics(rollups, "plos"),
            "plo_attainment": self._plo_entries(rollups, include_courses),
            "trends": trends,
        }

        logger.info(
            f"PLO report for degree {degree_id} (session {session_id or 'all'}): {len(plos)} PLOs"
        )
        return report

    # =========================================================================
    # Student PLO report
    # =========================================================================

    def generate_student_plo_report(
        self,
        student_id: int,
        degree_id: int,
        session_id: Optional[int] = None,
    ) -> Dict:
        """
        One student's attainment of every PLO of a degree program.

        Each PLO carries the student's weighted PLO value and the CLO results
        behind it, course by course. The value matches the one the PLO report
        counts for the same student and session filter.

        Returns:
            Document with report_type "STUDENT_PLO_ATTAINMENT"

        Raises:
            ReportNotFoundError: If the student, degree or academic session
                does not exist
        """
        student = queries.get_student(self.session, student_id)
        if student is None:
            raise ReportNotFoundError("Student", student_id)
        degree = self._require_degree(degree_id)
        self._require_session(session_id)

        plos, mapped, _ = self._mapped_summaries(degree_id, session_id, all_sessions=False)
        results = self._map(
            lambda plo: student_plo_attainment(plo, mapped.get(plo.outcome_id, []), student_id, session_id),
            plos,
        )

        achieved = sum(1 for r in results if r.attainment_status == AttainmentStatus.ACHIEVED)
        not_achieved = sum(1 for r in results if r.attainment_status == AttainmentStatus.NOT_ACHIEVED)
        values = [r.attainment_percentage for r in results if r.attainment_percentage is not None]

        report = {
            "report_type": "STUDENT_PLO_ATTAINMENT",
            "generated_at": self._generated_at(),
            "student": {
                "student_id": student.id,
                "roll_number": student.roll_number,
                "student_name": student.name,
                "email": student.email,
                "degree_id": student.degree_id,
            },
            "degree": degree.to_dict(),
            "session_id": session_id,
            "summary": {
                "total_plos": len(results),
                "achieved_plos": achieved,
                "not_achieved_plos": not_achieved,
                "no_data_plos": len(results) - achieved - not_achieved,
                "average_attainment": safe_mean(values),
            },
            "plo_attainment": [r.to_dict() for r in results],
        }

        logger.info(
            f"Student PLO report for student {student_id}, degree {degree_id}: "
            f"{len(values)} of {len(plos)} PLOs assessed"
        )
        return report

    # =========================================================================
    # Course report
    # =========================================================================

    def generate_course_report(self, course_offering_id: int) -> Dict:
        """
        Course report: the CLO report's statistics plus enrollment counts,
        assessment components, grade distribution and result statistics.

        Raises:
            ReportNotFoundError: If the offering does not exist
        """
        offering = self._require_offering(course_offering_id)
        enrollments = queries.get_enrollments(self.session, offering.id)
        component_rows = queries.get_component_marks(self.session, offering.id)
        results = queries.get_course_results(self.session, offering.id)
        attainment = self._summarize_offerings([offering])[offering.id]

        statistics = overall_statistics(attainment.summaries, "clos")
        statuses = [e["enrollment_status"] for e in enrollments]

        report = {
            "report_type": "COURSE_REPORT",
            "generated_at": self._generated_at(),
            "course_details": offering.to_dict(),
            "enrollment_statistics": {
                "total_enrolled": len(enrollments),
                "active_students": statuses.count("Active"),
                "dropped_students": statuses.count("Dropped"),
                "withdrawn_students": statuses.count("Withdrawn"),
            },
            "clo_attainment_summary": {
                "overall_statistics": statistics,
                "clo_summary": self._clo_entries(attainment.summaries, offering.course_id),
            },
            "assessment_components": summarize_components(component_rows),
            "grade_distribution": summarize_grades(results),
            "course_statistics": summarize_results(results),
            "course_status": course_status(statistics),
        }

        logger.info(f"Course report for offering {course_offering_id}: status {report['course_status']}")
        return report

    # =========================================================================
    # Program report
    # =========================================================================

    def generate_program_report(self, degree_id: int, session_id: Optional[int] = None) -> Dict:
        """
        Program report: PLO report plus course, student, PEO and action plan data.

        Raises:
            ReportNotFoundError: If the degree or the academic session does not exist
        """
        degree = self._require_degree(degree_id)
        self._require_session(session_id)
        plos, rollups, _ = self._plo_rollups(degree_id, session_id, include_trends=False)
        plo_statistics = overall_statistics(rollups, "plos")

        courses = queries.get_degree_courses(self.session, degree_id)
        offerings = queries.get_course_offerings(self.session, [c.id for c in courses], session_id)
        attainment = self._summarize_offerings(offerings)
        clo_summaries = [s for a in attainment.values() for s in a.summaries]

        students = queries.get_degree_students(self.session, degree_id)
        semester_results = queries.get_semester_results(self.session, [s.id for s in students], session_id)
        peos = queries.get_degree_peos(self.session, degree_id)
        action_plans = queries.get_recent_action_plans(self.session, degree_id, self.action_plan_limit)

        credits = [float(c.credit_hours) for c in courses if c.credit_hours is not None]

        report = {
            "report_type": "PROGRAM_REPORT",
            "generated_at": self._generated_at(),
            "program_details": degree.to_dict(),
            "overall_statistics": plo_statistics,
            "plo_attainment_summary": {
                "overall_statistics": plo_statistics,
                "plo_summary": self._plo_entries(rollups, include_courses=True),
            },
            "course_statistics": {
                "total_courses": len(courses),
                "total_offerings": len(offerings),
                "total_credits": sum(credits) if credits else None,
                "avg_clo_attainment": mean_of_averages(clo_summaries),
            },
            "student_statistics": {
                "total_students": len(students),
                "active_students": len({r.student_id for r in semester_results if r.status == "Pass"}),
                "average_sgpa": safe_mean([float(r.sgpa) for r in semester_results if r.sgpa is not None]),
                "average_cgpa": safe_mean([float(r.cgpa) for r in semester_results if r.cgpa is not None]),
            },
            "program_educational_objectives": [p.to_dict() for p in peos],
            "recent_action_plans": [p.to_dict() for p in action_plans],
        }

        logger.info(
            f"Program report for degree {degree_id}: {len(plos)} PLOs, "
            f"{len(courses)} courses, {len(students)} students"
        )
        return report

    # =========================================================================
    # Trends & comparisons
    # =========================================================================

    def generate_clo_trends(self, course_id: int, limit: int = DEFAULT_TREND_LIMIT) -> Dict:
        """
        CLO attainment of a course across its most recent offerings.

        Args:
            course_id: Course whose offerings are compared
            limit: Number of most recent offerings to include

        Returns:
            Dict with the course identity and, per CLO, a chronological series

        Raises:
            ReportNotFoundError: If the course does not exist
        """
        course = queries.get_course(self.session, course_id)
        if course is None:
            raise ReportNotFoundError("Course", course_id)

        offerings = sorted(
            queries.get_course_offerings(self.session, [course_id]),
            key=lambda o: (_session_key(o.session), o.id),
        )
        if limit is not None:
            offerings = offerings[-limit:] if limit > 0 else []
        attainment = self._summarize_offerings(offerings)

        series = defaultdict(list)
        for offering in offerings:
            for summary in attainment[offering.id].summaries:
                series[summary.clo_id].append({
                    "course_offering_id": offering.id,
                    "section": offering.section,
                    "session_id": offering.session_id,
                    "session_name": offering.session.session_name if offering.session else None,
                    "academic_year": offering.session.academic_year if offering.session else None,
                    "total_students": summary.total_students,
                    "average_attainment": summary.average_attainment,
                    "attainment_status": summary.attainment_status.value if summary.attainment_status else None,
                })

        clos = queries.get_course_clos(self.session, course_id)
        logger.info(f"CLO trends for course {course.course_code}: {len(offerings)} offerings")
        return {
            "report_type": "CLO_TRENDS",
            "generated_at": self._generated_at(),
            "course_id": course.id,
            "course_code": course.course_code,
            "course_title": course.course_title,
            "trends": [
                {
                    "clo_id": clo.outcome_id,
                    "clo_number": clo.code,
                    "target_attainment": float(clo.target_attainment),
                    "series": series.get(clo.outcome_id, []),
                }
                for clo in clos
            ],
        }

    def compare_offerings(self, course_offering_ids: Sequence[int]) -> Dict:
        """
        Side-by-side CLO summaries of several offerings, in the order given.

        Raises:
            ReportNotFoundError: If any offering does not exist
        """
        offerings = [self._require_offering(oid) for oid in course_offering_ids]
        attainment = self._summarize_offerings(offerings)

        comparison = []
        for offering in offerings:
            summaries = attainment[offering.id].summaries
            comparison.append({
                "course_offering": offering.to_dict(),
                "overall_statistics": overall_statistics(summaries, "clos"),
                "clo_attainment": [s.to_dict() for s in summaries],
            })

        logger.info(f"Compared {len(offerings)} offerings")
        return {
            "report_type": "OFFERING_COMPARISON",
            "generated_at": self._generated_at(),
            "offerings": comparison,
        }

"""
Read-only query utilities for the OBE attainment engine.

Every function returns raw rows (ORM objects, plain dicts or engine
records). No averages, counts or thresholds are computed in SQL; all
statistics live in the calculators.
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from obe_attainment.calculators.plo_rollup import resolve_mapping_strength
from obe_attainment.records import MarkRow, OutcomeTarget, QuestionRow

from .models import (
    AcademicSession,
    ActionPlan,
    AssessmentComponent,
    CloPloMapping,
    Course,
    CourseEnrollment,
    CourseLearningOutcome,
    CourseOffering,
    CourseResult,
    Degree,
    ProgramEducationalObjective,
    ProgramLearningOutcome,
    Question,
    SemesterResult,
    Student,
    StudentMark,
)


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


# =============================================================================
# ROOT ENTITIES
# =============================================================================


def get_course_offering(session: Session, course_offering_id: int) -> Optional[CourseOffering]:
    """Get a course offering with its course, degree and session loaded."""
    return session.get(
        CourseOffering,
        course_offering_id,
        options=[
            selectinload(CourseOffering.course).selectinload(Course.degree),
            selectinload(CourseOffering.course).selectinload(Course.department),
            selectinload(CourseOffering.session),
        ],
    )


def get_course(session: Session, course_id: int) -> Optional[Course]:
    return session.get(Course, course_id)


def get_degree(session: Session, degree_id: int) -> Optional[Degree]:
    """Get a degree program with its department loaded."""
    return session.get(Degree, degree_id, options=[selectinload(Degree.department)])


def get_student(session: Session, student_id: int) -> Optional[Student]:
    return session.get(Student, student_id)


def get_academic_session(session: Session, session_id: int) -> Optional[AcademicSession]:
    return session.get(AcademicSession, session_id)


# =============================================================================
# OUTCOMES & MAPPINGS
# =============================================================================


def get_course_clos(session: Session, course_id: int) -> List[OutcomeTarget]:
    """CLOs of a course, ordered by CLO number."""
    rows = session.scalars(
        select(CourseLearningOutcome)
        .where(CourseLearningOutcome.course_id == course_id)
        .order_by(CourseLearningOutcome.clo_number, CourseLearningOutcome.id)
    ).all()
    return [
        OutcomeTarget(
            outcome_id=clo.id,
            code=clo.clo_number,
            description=clo.description,
            target_attainment=float(clo.target_attainment),
            owner_id=clo.course_id,
            weight_percentage=_float(clo.weight_percentage),
        )
        for clo in rows
    ]


def get_degree_plos(session: Session, degree_id: int) -> List[OutcomeTarget]:
    """PLOs of a degree program, ordered by PLO number."""
    rows = session.scalars(
        select(ProgramLearningOutcome)
        .where(ProgramLearningOutcome.degree_id == degree_id)
        .order_by(ProgramLearningOutcome.plo_number, ProgramLearningOutcome.id)
    ).all()
    return [
        OutcomeTarget(
            outcome_id=plo.id,
            code=plo.plo_number,
            description=plo.description,
            target_attainment=float(plo.target_attainment),
            owner_id=plo.degree_id,
        )
        for plo in rows
    ]


def get_course_plo_mappings(session: Session, course_id: int) -> List[Dict]:
    """
    CLO -> PLO mappings for all CLOs of a course.

    Returns:
        Dicts with clo_id, plo_id, plo_number, plo_description and the
        numeric mapping_strength, ordered by CLO id then PLO number
    """
    rows = session.execute(
        select(
            CloPloMapping.clo_id,
            CloPloMapping.mapping_strength,
            ProgramLearningOutcome.id.label("plo_id"),
            ProgramLearningOutcome.plo_number,
            ProgramLearningOutcome.description,
        )
        .join(ProgramLearningOutcome, CloPloMapping.plo_id == ProgramLearningOutcome.id)
        .join(CourseLearningOutcome, CloPloMapping.clo_id == CourseLearningOutcome.id)
        .where(CourseLearningOutcome.course_id == course_id)
        .order_by(CloPloMapping.clo_id, ProgramLearningOutcome.plo_number)
    ).all()

    return [
        {
            "clo_id": r.clo_id,
            "plo_id": r.plo_id,
            "plo_number": r.plo_number,
            "plo_description": r.description,
            "mapping_strength": resolve_mapping_strength(r.mapping_strength),
        }
        for r in rows
    ]


def get_degree_plo_mappings(session: Session, degree_id: int) -> List[Dict]:
    """
    Mappings of every CLO (from any course) onto the PLOs of a degree.

    Returns:
        Dicts with plo_id, clo_id, course_id and numeric mapping_strength
    """
    rows = session.execute(
        select(
            CloPloMapping.plo_id,
            CloPloMapping.clo_id,
            CloPloMapping.mapping_strength,
            CourseLearningOutcome.course_id,
        )
        .join(ProgramLearningOutcome, CloPloMapping.plo_id == ProgramLearningOutcome.id)
        .join(CourseLearningOutcome, CloPloMapping.clo_id == CourseLearningOutcome.id)
        .where(ProgramLearningOutcome.degree_id == degree_id)
        .order_by(CloPloMapping.plo_id, CloPloMapping.clo_id)
    ).all()

    return [
        {
            "plo_id": r.plo_id,
            "clo_id": r.clo_id,
            "course_id": r.course_id,
            "mapping_strength": resolve_mapping_strength(r.mapping_strength),
        }
        for r in rows
    ]


# =============================================================================
# OFFERINGS, QUESTIONS & MARKS
# =============================================================================


def get_course_offerings(
    session: Session,
    course_ids: Sequence[int],
    session_id: Optional[int] = None,
) -> List[CourseOffering]:
    """Offerings of the given courses, optionally restricted to one academic session."""
    if not course_ids:
        return []
    query = (
        select(CourseOffering)
        .options(selectinload(CourseOffering.course), selectinload(CourseOffering.session))
        .where(CourseOffering.course_id.in_(list(course_ids)))
    )
    if session_id is not None:
        query = query.where(CourseOffering.session_id == session_id)
    return list(session.scalars(query.order_by(CourseOffering.id)).all())


def get_offering_questions(session: Session, course_offering_id: int) -> List[QuestionRow]:
    """Questions of all assessment components of an offering that are tagged with a CLO."""
    rows = session.execute(
        select(Question.id, Question.clo_id, Question.possible_marks, Question.assessment_component_id)
        .join(AssessmentComponent, Question.assessment_component_id == AssessmentComponent.id)
        .where(AssessmentComponent.course_offering_id == course_offering_id)
        .where(Question.clo_id.isnot(None))
        .order_by(Question.id)
    ).all()
    return [
        QuestionRow(
            question_id=r.id,
            clo_id=r.clo_id,
            possible_marks=float(r.possible_marks),
            assessment_component_id=r.assessment_component_id,
        )
        for r in rows
    ]


def get_offering_marks(session: Session, course_offering_id: int) -> List[MarkRow]:
    """Marks recorded on the questions of an offering."""
    rows = session.execute(
        select(StudentMark.student_id, StudentMark.question_id, StudentMark.marks_obtained)
        .join(Question, StudentMark.question_id == Question.id)
        .join(AssessmentComponent, Question.assessment_component_id == AssessmentComponent.id)
        .where(AssessmentComponent.course_offering_id == course_offering_id)
        .order_by(StudentMark.student_id, StudentMark.question_id)
    ).all()
    return [
        MarkRow(student_id=r.student_id, question_id=r.question_id, marks_obtained=float(r.marks_obtained))
        for r in rows
    ]


def get_enrollments(session: Session, course_offering_id: int) -> List[Dict]:
    """Enrolled students of an offering ordered by roll number."""
    rows = session.execute(
        select(
            Student.id,
            Student.roll_number,
            Student.name,
            Student.email,
            CourseEnrollment.status,
        )
        .join(CourseEnrollment, CourseEnrollment.student_id == Student.id)
        .where(CourseEnrollment.course_offering_id == course_offering_id)
        .order_by(Student.roll_number)
    ).all()
    return [
        {
            "student_id": r.id,
            "roll_number": r.roll_number,
            "student_name": r.name,
            "email": r.email,
            "enrollment_status": r.status,
        }
        for r in rows
    ]


def get_component_marks(session: Session, course_offering_id: int) -> List[Dict]:
    """
    One row per (component, question, mark) of an offering.

    Components and questions without marks still produce a row with
    student_id = None so that empty components are reported.
    """
    rows = session.execute(
        select(
            AssessmentComponent.id.label("component_id"),
            AssessmentComponent.assessment_type,
            AssessmentComponent.component_name,
            AssessmentComponent.weightage,
            AssessmentComponent.total_marks,
            AssessmentComponent.conducted_date,
            Question.id.label("question_id"),
            Question.clo_id,
            Question.possible_marks,
            StudentMark.student_id,
            StudentMark.marks_obtained,
        )
        .outerjoin(Question, Question.assessment_component_id == AssessmentComponent.id)
        .outerjoin(StudentMark, StudentMark.question_id == Question.id)
        .where(AssessmentComponent.course_offering_id == course_offering_id)
        .order_by(AssessmentComponent.id, Question.id, StudentMark.student_id)
    ).all()

    return [
        {
            "component_id": r.component_id,
            "assessment_type": r.assessment_type,
            "component_name": r.component_name,
            "weightage": _float(r.weightage),
            "total_marks": _float(r.total_marks),
            "conducted_date": r.conducted_date.isoformat() if r.conducted_date else None,
            "question_id": r.question_id,
            "clo_id": r.clo_id,
            "possible_marks": _float(r.possible_marks),
            "student_id": r.student_id,
            "marks_obtained": _float(r.marks_obtained),
        }
        for r in rows
    ]


# =============================================================================
# RESULTS, STUDENTS & PROGRAM DATA
# =============================================================================


def get_course_results(session: Session, course_offering_id: int) -> List[Dict]:
    rows = session.scalars(
        select(CourseResult)
        .where(CourseResult.course_offering_id == course_offering_id)
        .order_by(CourseResult.student_id)
    ).all()
    return [
        {
            "student_id": r.student_id,
            "grade": r.grade,
            "grade_point": _float(r.grade_point),
            "total_marks_obtained": _float(r.total_marks_obtained),
            "status": r.status,
        }
        for r in rows
    ]


def get_degree_courses(session: Session, degree_id: int) -> List[Course]:
    return list(
        session.scalars(
            select(Course).where(Course.degree_id == degree_id).order_by(Course.course_code, Course.id)
        ).all()
    )


def get_degree_students(session: Session, degree_id: int) -> List[Student]:
    return list(
        session.scalars(select(Student).where(Student.degree_id == degree_id).order_by(Student.id)).all()
    )


def get_semester_results(
    session: Session, student_ids: Sequence[int], session_id: Optional[int] = None
) -> List[SemesterResult]:
    if not student_ids:
        return []
    query = select(SemesterResult).where(SemesterResult.student_id.in_(list(student_ids)))
    if session_id is not None:
        query = query.where(SemesterResult.session_id == session_id)
    return list(session.scalars(query.order_by(SemesterResult.id)).all())


def get_academic_sessions(session: Session, session_ids: Sequence[int]) -> List[AcademicSession]:
    """Academic sessions in chronological order (start date, then id)."""
    if not session_ids:
        return []
    rows = session.scalars(
        select(AcademicSession).where(AcademicSession.id.in_(list(session_ids)))
    ).all()
    return sorted(rows, key=lambda s: (s.start_date is None, s.start_date, s.id))


def get_degree_peos(session: Session, degree_id: int) -> List[ProgramEducationalObjective]:
    return list(
        session.scalars(
            select(ProgramEducationalObjective)
            .where(ProgramEducationalObjective.degree_id == degree_id)
            .order_by(ProgramEducationalObjective.peo_number, ProgramEducationalObjective.id)
        ).all()
    )


def get_recent_action_plans(session: Session, degree_id: int, limit: int = 10) -> List[ActionPlan]:
    """Most recent action plans of a degree, newest first."""
    return list(
        session.scalars(
            select(ActionPlan)
            .options(selectinload(ActionPlan.outcomes))
            .where(ActionPlan.degree_id == degree_id)
            .order_by(desc(ActionPlan.created_at), desc(ActionPlan.id))
            .limit(limit)
        ).all()
    )

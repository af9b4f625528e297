"""
Test Fixtures for pytest

Provides an in-memory SQLite database seeded with a small degree program,
plus plain record fixtures for the calculator tests.

Usage:
    pytest tests/ -v

Seeded program (degree 1, "BS Computer Science"):

    Sessions   1 = Fall 2023, 2 = Spring 2024
    Courses    1 = CS101 (3 cr), 2 = CS201 (4 cr)
    Offerings  1 = CS101 / Spring 2024, 2 = CS201 / Spring 2024,
               3 = CS101 / Fall 2023
    CLOs       1 = CS101 CLO1 (target 75), 2 = CS201 CLO1 (target 60),
               3 = CS101 CLO2 (target 50, no questions)
    PLOs       1 = PLO1 (target 70), 2 = PLO2 (target 60, unmapped)
    Mappings   CLO 1 -> PLO1 "0.6", CLO 2 -> PLO1 "0.4", CLO 3 -> PLO1 "High"

    Offering 1 CLO1 percentages: student 1 = 80, 2 = 60, 3 = 90
    (student 4 dropped, no marks) -> average 76.67
    Offering 2 CLO1 percentages: student 1 = 40, 2 = 60 -> average 50
    Offering 3 CLO1 percentages: student 1 = 70
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from infrastructure.database.connection import init_db
from infrastructure.database.models import (
    AcademicSession,
    ActionPlan,
    ActionPlanOutcome,
    AssessmentComponent,
    CloPloMapping,
    Course,
    CourseEnrollment,
    CourseLearningOutcome,
    CourseOffering,
    CourseResult,
    Degree,
    Department,
    ProgramEducationalObjective,
    ProgramLearningOutcome,
    Question,
    SemesterResult,
    Student,
    StudentMark,
)
from obe_attainment.records import OutcomeTarget

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# --- Database Fixtures ---

@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Empty session; rolled back and closed after the test."""
    session = sessionmaker(bind=db_engine, expire_on_commit=False)()
    yield session
    session.rollback()
    session.close()


def _seed_program(session):
    session.add(Department(id=1, department_name="Computer Science", department_code="CS", hod_name="Dr. Rahman"))
    session.add(Degree(
        id=1, degree_name="BS Computer Science", degree_level="Undergraduate",
        duration_years=4, total_credit_hours=136, department_id=1,
    ))
    session.add_all([
        AcademicSession(id=1, session_name="Fall 2023", academic_year="2023-24",
                        start_date=date(2023, 9, 1), end_date=date(2024, 1, 15)),
        AcademicSession(id=2, session_name="Spring 2024", academic_year="2023-24",
                        start_date=date(2024, 2, 1), end_date=date(2024, 6, 15)),
    ])
    session.add_all([
        Course(id=1, course_code="CS101", course_title="Programming Fundamentals",
               credit_hours=3, course_type="Core", degree_id=1, department_id=1),
        Course(id=2, course_code="CS201", course_title="Data Structures, Algorithms",
               credit_hours=4, course_type="Core", degree_id=1, department_id=1),
    ])
    session.add_all([
        CourseOffering(id=1, course_id=1, session_id=2, section="A",
                       instructor_name="Ayesha Khan", instructor_email="ayesha@example.edu"),
        CourseOffering(id=2, course_id=2, session_id=2, section="A", instructor_name="Bilal Ahmed"),
        CourseOffering(id=3, course_id=1, session_id=1, section="A", instructor_name="Ayesha Khan"),
    ])
    session.add_all([
        CourseLearningOutcome(id=1, course_id=1, clo_number="CLO1", target_attainment=75,
                              weight_percentage=60, description="Write structured programs"),
        CourseLearningOutcome(id=2, course_id=2, clo_number="CLO1", target_attainment=60,
                              description="Analyse \"linked\" structures, trees"),
        CourseLearningOutcome(id=3, course_id=1, clo_number="CLO2", target_attainment=50,
                              weight_percentage=40, description="Debug programs"),
    ])
    session.add_all([
        ProgramLearningOutcome(id=1, degree_id=1, plo_number="PLO1", target_attainment=70,
                               description="Engineering knowledge"),
        ProgramLearningOutcome(id=2, degree_id=1, plo_number="PLO2", target_attainment=60,
                               description="Problem analysis"),
    ])
    session.add_all([
        CloPloMapping(clo_id=1, plo_id=1, mapping_strength="0.6"),
        CloPloMapping(clo_id=2, plo_id=1, mapping_strength="0.4"),
        CloPloMapping(clo_id=3, plo_id=1, mapping_strength="High"),
    ])
    session.add_all([
        Student(id=sid, roll_number=f"R00{sid}", name=f"Student {sid}", degree_id=1)
        for sid in (1, 2, 3, 4)
    ])
    session.add_all([
        CourseEnrollment(course_offering_id=1, student_id=1, status="Active"),
        CourseEnrollment(course_offering_id=1, student_id=2, status="Active"),
        CourseEnrollment(course_offering_id=1, student_id=3, status="Active"),
        CourseEnrollment(course_offering_id=1, student_id=4, status="Dropped"),
        CourseEnrollment(course_offering_id=2, student_id=1, status="Active"),
        CourseEnrollment(course_offering_id=2, student_id=2, status="Active"),
        CourseEnrollment(course_offering_id=3, student_id=1, status="Active"),
    ])
    session.add_all([
        AssessmentComponent(id=1, course_offering_id=1, assessment_type="Quiz", component_name="Quiz 1",
                            weightage=10, total_marks=20, conducted_date=date(2024, 2, 20)),
        AssessmentComponent(id=2, course_offering_id=1, assessment_type="Midterm", component_name="Midterm",
                            weightage=30, total_marks=10, conducted_date=date(2024, 3, 25)),
        AssessmentComponent(id=3, course_offering_id=2, assessment_type="Quiz", component_name="Quiz 1",
                            weightage=10, total_marks=10, conducted_date=date(2024, 2, 22)),
        AssessmentComponent(id=4, course_offering_id=3, assessment_type="Quiz", component_name="Quiz 1",
                            weightage=10, total_marks=10, conducted_date=date(2023, 10, 1)),
    ])
    session.add_all([
        Question(id=1, assessment_component_id=1, clo_id=1, question_number="Q1", possible_marks=10),
        Question(id=2, assessment_component_id=1, clo_id=1, question_number="Q2", possible_marks=10),
        Question(id=3, assessment_component_id=2, clo_id=None, question_number="Q1", possible_marks=10),
        Question(id=4, assessment_component_id=3, clo_id=2, question_number="Q1", possible_marks=10),
        Question(id=5, assessment_component_id=4, clo_id=1, question_number="Q1", possible_marks=10),
    ])
    session.add_all([
        StudentMark(student_id=1, question_id=1, marks_obtained=8),
        StudentMark(student_id=1, question_id=2, marks_obtained=8),
        StudentMark(student_id=2, question_id=1, marks_obtained=6),
        StudentMark(student_id=2, question_id=2, marks_obtained=6),
        StudentMark(student_id=3, question_id=1, marks_obtained=10),
        StudentMark(student_id=3, question_id=2, marks_obtained=8),
        StudentMark(student_id=1, question_id=3, marks_obtained=7),
        StudentMark(student_id=1, question_id=4, marks_obtained=4),
        StudentMark(student_id=2, question_id=4, marks_obtained=6),
        StudentMark(student_id=1, question_id=5, marks_obtained=7),
    ])
    session.add_all([
        CourseResult(course_offering_id=1, student_id=1, total_marks_obtained=85, grade="A", grade_point=4, status="Pass"),
        CourseResult(course_offering_id=1, student_id=2, total_marks_obtained=62, grade="C", grade_point=2, status="Pass"),
        CourseResult(course_offering_id=1, student_id=3, total_marks_obtained=91, grade="A", grade_point=4, status="Pass"),
        CourseResult(course_offering_id=1, student_id=4, total_marks_obtained=30, grade="F", grade_point=0, status="Fail"),
    ])
    session.add_all([
        SemesterResult(student_id=1, session_id=2, sgpa=3.5, cgpa=3.4, status="Pass"),
        SemesterResult(student_id=2, session_id=2, sgpa=2.5, cgpa=2.6, status="Pass"),
        SemesterResult(student_id=3, session_id=2, sgpa=3.9, cgpa=3.8, status="Pass"),
        SemesterResult(student_id=4, session_id=2, sgpa=1.5, cgpa=1.8, status="Fail"),
    ])
    session.add_all([
        ProgramEducationalObjective(id=2, degree_id=1, peo_number="PEO2", description="Lifelong learning"),
        ProgramEducationalObjective(id=1, degree_id=1, peo_number="PEO1", description="Professional practice"),
    ])
    for i in range(1, 13):
        plan = ActionPlan(
            id=i, degree_id=1, plan_title=f"Plan {i}", status="Open", priority="Medium",
            created_at=datetime(2024, 1, i, 9, 0),
        )
        plan.outcomes.append(ActionPlanOutcome(outcome_type="PLO", outcome_id=1))
        session.add(plan)

    session.flush()


@pytest.fixture
def seeded_session(db_session):
    """Session over the seeded sample program described in the module docstring."""
    _seed_program(db_session)
    db_session.expire_all()
    return db_session


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


# --- Sample Record Fixtures ---

@pytest.fixture
def sample_clo():
    """CLO with target 75 (end-to-end example)."""
    return OutcomeTarget(outcome_id=1, code="CLO1", description="Write structured programs",
                         target_attainment=75, owner_id=1, weight_percentage=60)


@pytest.fixture
def sample_plo():
    """PLO with target 70 (end-to-end example)."""
    return OutcomeTarget(outcome_id=1, code="PLO1", description="Engineering knowledge",
                         target_attainment=70, owner_id=1)

"""
SQLAlchemy ORM models for the OBE attainment engine.

These models describe the academic records the engine reads: programs,
courses and offerings, learning outcomes and their mappings, assessment
questions and the marks recorded against them. The engine never writes
to these tables; attainment summaries are computed per report.
"""

from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    department_name: Mapped[str] = mapped_column(String(150), nullable=False)
    department_code: Mapped[Optional[str]] = mapped_column(String(20))
    hod_name: Mapped[Optional[str]] = mapped_column(String(150))

    degrees: Mapped[List["Degree"]] = relationship(back_populates="department")

    def __repr__(self) -> str:
        return f"<Department {self.department_code}: {self.department_name}>"


class Degree(Base):
    """
    Degree program.

    Owns its PLOs and PEOs; courses belong to a degree.
    """
    __tablename__ = "degrees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    degree_name: Mapped[str] = mapped_column(String(150), nullable=False)
    degree_level: Mapped[Optional[str]] = mapped_column(String(50))
    duration_years: Mapped[Optional[int]] = mapped_column(Integer)
    total_credit_hours: Mapped[Optional[int]] = mapped_column(Integer)
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id"))

    department: Mapped[Optional["Department"]] = relationship(back_populates="degrees")
    courses: Mapped[List["Course"]] = relationship(back_populates="degree")
    plos: Mapped[List["ProgramLearningOutcome"]] = relationship(back_populates="degree")

    def __repr__(self) -> str:
        return f"<Degree {self.id}: {self.degree_name}>"

    def to_dict(self) -> dict:
        """Convert to dictionary for report documents."""
        return {
            "id": self.id,
            "degree_name": self.degree_name,
            "degree_level": self.degree_level,
            "duration_years": self.duration_years,
            "total_credit_hours": self.total_credit_hours,
            "department_name": self.department.department_name if self.department else None,
            "department_code": self.department.department_code if self.department else None,
            "hod_name": self.department.hod_name if self.department else None,
        }


class AcademicSession(Base):
    __tablename__ = "academic_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_name: Mapped[str] = mapped_column(String(50), nullable=False)
    academic_year: Mapped[Optional[str]] = mapped_column(String(10))
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)

    def __repr__(self) -> str:
        return f"<AcademicSession {self.id}: {self.session_name}>"

    def to_dict(self) -> dict:
        return {
            "session_id": self.id,
            "session_name": self.session_name,
            "academic_year": self.academic_year,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_code: Mapped[str] = mapped_column(String(20), nullable=False)
    course_title: Mapped[str] = mapped_column(String(200), nullable=False)
    credit_hours: Mapped[Optional[float]] = mapped_column(Numeric(4, 1))
    contact_hours: Mapped[Optional[float]] = mapped_column(Numeric(4, 1))
    course_type: Mapped[Optional[str]] = mapped_column(String(30))
    degree_id: Mapped[Optional[int]] = mapped_column(ForeignKey("degrees.id"))
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id"))

    degree: Mapped[Optional["Degree"]] = relationship(back_populates="courses")
    department: Mapped[Optional["Department"]] = relationship()
    offerings: Mapped[List["CourseOffering"]] = relationship(back_populates="course")
    clos: Mapped[List["CourseLearningOutcome"]] = relationship(back_populates="course")

    def __repr__(self) -> str:
        return f"<Course {self.course_code}: {self.course_title}>"


class CourseOffering(Base):
    """One taught instance of a course in an academic session."""
    __tablename__ = "course_offerings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), nullable=False)
    session_id: Mapped[Optional[int]] = mapped_column(ForeignKey("academic_sessions.id"))
    section: Mapped[Optional[str]] = mapped_column(String(10))
    instructor_name: Mapped[Optional[str]] = mapped_column(String(150))
    instructor_email: Mapped[Optional[str]] = mapped_column(String(150))

    course: Mapped["Course"] = relationship(back_populates="offerings")
    session: Mapped[Optional["AcademicSession"]] = relationship()
    components: Mapped[List["AssessmentComponent"]] = relationship(back_populates="course_offering")
    enrollments: Mapped[List["CourseEnrollment"]] = relationship(back_populates="course_offering")

    def __repr__(self) -> str:
        return f"<CourseOffering {self.id}: course {self.course_id} section {self.section}>"

    def to_dict(self) -> dict:
        """Offering identity block used by CLO and course reports."""
        course = self.course
        session = self.session
        degree = course.degree if course else None
        department = course.department if course else None
        return {
            "id": self.id,
            "course_id": self.course_id,
            "section": self.section,
            "course_code": course.course_code if course else None,
            "course_title": course.course_title if course else None,
            "credit_hours": _float(course.credit_hours) if course else None,
            "contact_hours": _float(course.contact_hours) if course else None,
            "course_type": course.course_type if course else None,
            "degree_name": degree.degree_name if degree else None,
            "degree_level": degree.degree_level if degree else None,
            "department_name": department.department_name if department else None,
            "instructor_name": self.instructor_name,
            "instructor_email": self.instructor_email,
            "session_id": self.session_id,
            "session_name": session.session_name if session else None,
            "academic_year": session.academic_year if session else None,
            "start_date": session.start_date.isoformat() if session and session.start_date else None,
            "end_date": session.end_date.isoformat() if session and session.end_date else None,
        }


class CourseLearningOutcome(Base):
    __tablename__ = "course_learning_outcomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), nullable=False)
    clo_number: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    target_attainment: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=50)
    weight_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    bloom_level: Mapped[Optional[str]] = mapped_column(String(30))

    course: Mapped["Course"] = relationship(back_populates="clos")
    plo_mappings: Mapped[List["CloPloMapping"]] = relationship(back_populates="clo")

    __table_args__ = (
        UniqueConstraint("course_id", "clo_number", name="uq_clo_number"),
        CheckConstraint("target_attainment BETWEEN 0 AND 100", name="chk_clo_target"),
    )

    def __repr__(self) -> str:
        return f"<CLO {self.clo_number} of course {self.course_id}>"


class ProgramLearningOutcome(Base):
    __tablename__ = "program_learning_outcomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    degree_id: Mapped[int] = mapped_column(ForeignKey("degrees.id"), nullable=False)
    plo_number: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    target_attainment: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=50)

    degree: Mapped["Degree"] = relationship(back_populates="plos")
    clo_mappings: Mapped[List["CloPloMapping"]] = relationship(back_populates="plo")

    __table_args__ = (
        UniqueConstraint("degree_id", "plo_number", name="uq_plo_number"),
        CheckConstraint("target_attainment BETWEEN 0 AND 100", name="chk_plo_target"),
    )

    def __repr__(self) -> str:
        return f"<PLO {self.plo_number} of degree {self.degree_id}>"


class CloPloMapping(Base):
    """
    How strongly a CLO contributes to a PLO.

    mapping_strength is stored as text so that both numeric weights
    ("0.6") and categorical ones ("High") are accepted.
    """
    __tablename__ = "clo_plo_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clo_id: Mapped[int] = mapped_column(ForeignKey("course_learning_outcomes.id"), nullable=False)
    plo_id: Mapped[int] = mapped_column(ForeignKey("program_learning_outcomes.id"), nullable=False)
    mapping_strength: Mapped[str] = mapped_column(String(20), nullable=False)

    clo: Mapped["CourseLearningOutcome"] = relationship(back_populates="plo_mappings")
    plo: Mapped["ProgramLearningOutcome"] = relationship(back_populates="clo_mappings")

    __table_args__ = (
        UniqueConstraint("clo_id", "plo_id", name="uq_clo_plo_mapping"),
    )

    def __repr__(self) -> str:
        return f"<CloPloMapping CLO {self.clo_id} -> PLO {self.plo_id} ({self.mapping_strength})>"


class AssessmentComponent(Base):
    """Quiz, assignment, midterm, ... conducted in a course offering."""
    __tablename__ = "assessment_components"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_offering_id: Mapped[int] = mapped_column(ForeignKey("course_offerings.id"), nullable=False)
    assessment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    component_name: Mapped[str] = mapped_column(String(100), nullable=False)
    weightage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    total_marks: Mapped[Optional[float]] = mapped_column(Numeric(7, 2))
    conducted_date: Mapped[Optional[date]] = mapped_column(Date)

    course_offering: Mapped["CourseOffering"] = relationship(back_populates="components")
    questions: Mapped[List["Question"]] = relationship(back_populates="component")

    def __repr__(self) -> str:
        return f"<AssessmentComponent {self.id}: {self.component_name}>"


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assessment_component_id: Mapped[int] = mapped_column(
        ForeignKey("assessment_components.id"), nullable=False
    )
    clo_id: Mapped[Optional[int]] = mapped_column(ForeignKey("course_learning_outcomes.id"))
    question_number: Mapped[Optional[str]] = mapped_column(String(20))
    possible_marks: Mapped[float] = mapped_column(Numeric(7, 2), nullable=False)

    component: Mapped["AssessmentComponent"] = relationship(back_populates="questions")

    __table_args__ = (
        CheckConstraint("possible_marks >= 0", name="chk_possible_marks"),
    )


class Student(Base):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    roll_number: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(150))
    degree_id: Mapped[Optional[int]] = mapped_column(ForeignKey("degrees.id"))
    status: Mapped[str] = mapped_column(String(20), default="Active")

    def __repr__(self) -> str:
        return f"<Student {self.roll_number}: {self.name}>"


class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_offering_id: Mapped[int] = mapped_column(ForeignKey("course_offerings.id"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Active")

    course_offering: Mapped["CourseOffering"] = relationship(back_populates="enrollments")
    student: Mapped["Student"] = relationship()

    __table_args__ = (
        UniqueConstraint("course_offering_id", "student_id", name="uq_enrollment"),
        CheckConstraint("status IN ('Active', 'Dropped', 'Withdrawn')", name="chk_enrollment_status"),
    )


class StudentMark(Base):
    """One student's marks on one assessment question."""
    __tablename__ = "student_marks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id"), nullable=False)
    marks_obtained: Mapped[float] = mapped_column(Numeric(7, 2), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "question_id", name="uq_student_mark"),
        CheckConstraint("marks_obtained >= 0", name="chk_marks_non_negative"),
    )


class CourseResult(Base):
    """Final result of a student in a course offering."""
    __tablename__ = "course_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_offering_id: Mapped[int] = mapped_column(ForeignKey("course_offerings.id"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    total_marks_obtained: Mapped[Optional[float]] = mapped_column(Numeric(7, 2))
    grade: Mapped[Optional[str]] = mapped_column(String(5))
    grade_point: Mapped[Optional[float]] = mapped_column(Numeric(3, 2))
    status: Mapped[Optional[str]] = mapped_column(String(10))

    __table_args__ = (
        UniqueConstraint("course_offering_id", "student_id", name="uq_course_result"),
    )


class SemesterResult(Base):
    __tablename__ = "semester_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    session_id: Mapped[Optional[int]] = mapped_column(ForeignKey("academic_sessions.id"))
    sgpa: Mapped[Optional[float]] = mapped_column(Numeric(3, 2))
    cgpa: Mapped[Optional[float]] = mapped_column(Numeric(3, 2))
    status: Mapped[Optional[str]] = mapped_column(String(10))


class ProgramEducationalObjective(Base):
    __tablename__ = "program_educational_objectives"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    degree_id: Mapped[int] = mapped_column(ForeignKey("degrees.id"), nullable=False)
    peo_number: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "peo_number": self.peo_number,
            "description": self.description,
        }


class ActionPlan(Base):
    """Improvement action plan raised for a degree program."""
    __tablename__ = "action_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    degree_id: Mapped[int] = mapped_column(ForeignKey("degrees.id"), nullable=False)
    plan_title: Mapped[str] = mapped_column(String(200), nullable=False)
    issue_description: Mapped[Optional[str]] = mapped_column(Text)
    proposed_action: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[Optional[str]] = mapped_column(String(20))
    priority: Mapped[Optional[str]] = mapped_column(String(20))
    deadline: Mapped[Optional[date]] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    outcomes: Mapped[List["ActionPlanOutcome"]] = relationship(back_populates="action_plan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_title": self.plan_title,
            "issue_description": self.issue_description,
            "proposed_action": self.proposed_action,
            "status": self.status,
            "priority": self.priority,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "outcome_count": len(self.outcomes),
        }


class ActionPlanOutcome(Base):
    __tablename__ = "action_plan_outcomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action_plan_id: Mapped[int] = mapped_column(ForeignKey("action_plans.id"), nullable=False)
    outcome_type: Mapped[str] = mapped_column(String(10), nullable=False)
    outcome_id: Mapped[int] = mapped_column(Integer, nullable=False)

    action_plan: Mapped["ActionPlan"] = relationship(back_populates="outcomes")

"""
Typed records for the attainment engine.

Rows read from the store are converted into these records before any
statistics are computed, so each calculator stage works on plain values
instead of ORM objects. Summaries are derived per report call and are
never written back.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ReportNotFoundError(LookupError):
    """Root entity of a report (course offering, course or degree) is missing."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidMarkError(ValueError):
    """A recorded mark lies outside [0, possible_marks]."""


class AttainmentStatus(str, Enum):
    ACHIEVED = "Achieved"
    NOT_ACHIEVED = "Not Achieved"


class GapTier(str, Enum):
    MET = "Met"
    NEAR_TARGET = "Near Target"
    NEEDS_IMPROVEMENT = "Needs Improvement"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class QuestionRow:
    """An assessment question tagged with a CLO."""
    question_id: int
    clo_id: int
    possible_marks: float
    assessment_component_id: Optional[int] = None


@dataclass(frozen=True)
class MarkRow:
    """One student's recorded marks on one question."""
    student_id: int
    question_id: int
    marks_obtained: float


@dataclass(frozen=True)
class OutcomeTarget:
    """
    Identity and target of a CLO or PLO.

    ``owner_id`` is the course id for a CLO and the degree id for a PLO.
    """
    outcome_id: int
    code: str
    description: Optional[str]
    target_attainment: float
    owner_id: Optional[int] = None
    weight_percentage: Optional[float] = None


@dataclass(frozen=True)
class StudentCLOAttainment:
    student_id: int
    clo_id: int
    total_marks_obtained: float
    total_possible_marks: float
    attainment_percentage: float

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "clo_id": self.clo_id,
            "total_marks_obtained": self.total_marks_obtained,
            "total_possible_marks": self.total_possible_marks,
            "attainment_percentage": self.attainment_percentage,
        }


@dataclass(frozen=True)
class CLOAttainmentSummary:
    """
    Statistics for one CLO within one course offering.

    Statistics are ``None`` when no student was assessed; ``attainment_status``
    is then ``None`` as well, which is distinct from ``NOT_ACHIEVED``.
    """
    clo_id: int
    clo_number: str
    description: Optional[str]
    target_attainment: float
    weight_percentage: Optional[float]
    course_offering_id: Optional[int]
    total_students: int
    students_achieved: int
    students_not_achieved: int
    average_attainment: Optional[float]
    min_attainment: Optional[float]
    max_attainment: Optional[float]
    std_deviation: Optional[float]
    achievement_rate: Optional[float]
    attainment_status: Optional[AttainmentStatus]
    student_attainment: Dict[int, float] = field(default_factory=dict, compare=False)

    @property
    def has_data(self) -> bool:
        return self.total_students > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for report documents."""
        return {
            "clo_id": self.clo_id,
            "clo_number": self.clo_number,
            "description": self.description,
            "target_attainment": self.target_attainment,
            "weight_percentage": self.weight_percentage,
            "total_students": self.total_students,
            "students_achieved": self.students_achieved,
            "students_not_achieved": self.students_not_achieved,
            "average_attainment": self.average_attainment,
            "min_attainment": self.min_attainment,
            "max_attainment": self.max_attainment,
            "std_deviation": self.std_deviation,
            "achievement_rate": self.achievement_rate,
            "attainment_status": self.attainment_status.value if self.attainment_status else None,
        }


@dataclass(frozen=True)
class MappedCLOSummary:
    """A CLO summary paired with the strength of its mapping to one PLO."""
    summary: CLOAttainmentSummary
    mapping_strength: float
    course_id: int
    course_code: str
    course_title: Optional[str] = None
    credit_hours: Optional[float] = None
    session_id: Optional[int] = None


@dataclass(frozen=True)
class ContributingCourse:
    course_id: int
    course_code: str
    course_title: Optional[str]
    credit_hours: Optional[float]
    offerings_count: int
    average_attainment: Optional[float]
    mapping_strength: float
    clo_numbers: List[str]

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "course_code": self.course_code,
            "course_title": self.course_title,
            "credit_hours": self.credit_hours,
            "offerings_count": self.offerings_count,
            "avg_attainment": self.average_attainment,
            "mapping_strength": self.mapping_strength,
            "clo_numbers": list(self.clo_numbers),
        }


@dataclass(frozen=True)
class PLOAttainmentSummary:
    """Weighted rollup of CLO summaries for one PLO."""
    plo_id: int
    plo_number: str
    description: Optional[str]
    target_attainment: float
    session_id: Optional[int]
    total_students: int
    students_achieved: int
    students_not_achieved: int
    average_attainment: Optional[float]
    min_attainment: Optional[float]
    max_attainment: Optional[float]
    std_deviation: Optional[float]
    achievement_rate: Optional[float]
    attainment_status: Optional[AttainmentStatus]
    contributing_clos: int
    contributing_courses: List[ContributingCourse] = field(default_factory=list)
    student_attainment: Dict[int, float] = field(default_factory=dict, compare=False)

    @property
    def has_data(self) -> bool:
        return self.average_attainment is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for report documents."""
        return {
            "plo_id": self.plo_id,
            "plo_number": self.plo_number,
            "description": self.description,
            "target_attainment": self.target_attainment,
            "session_id": self.session_id,
            "total_students": self.total_students,
            "students_achieved": self.students_achieved,
            "students_not_achieved": self.students_not_achieved,
            "average_attainment": self.average_attainment,
            "min_attainment": self.min_attainment,
            "max_attainment": self.max_attainment,
            "std_deviation": self.std_deviation,
            "achievement_rate": self.achievement_rate,
            "attainment_status": self.attainment_status.value if self.attainment_status else None,
            "contributing_clos": self.contributing_clos,
        }


@dataclass(frozen=True)
class StudentPLOAttainment:
    """
    One student's attainment of one PLO.

    ``course_breakdown`` lists the student's CLO results that fed the value,
    one dict per (course offering, CLO).
    """
    student_id: int
    plo_id: int
    plo_number: str
    description: Optional[str]
    target_attainment: float
    attainment_percentage: Optional[float]
    attainment_status: Optional[AttainmentStatus]
    contributing_clos: int
    course_breakdown: List[Dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "plo_id": self.plo_id,
            "plo_number": self.plo_number,
            "description": self.description,
            "target_attainment": self.target_attainment,
            "attainment_percentage": self.attainment_percentage,
            "attainment_status": self.attainment_status.value if self.attainment_status else None,
            "contributing_clos": self.contributing_clos,
            "course_breakdown": [dict(item) for item in self.course_breakdown],
        }


@dataclass(frozen=True)
class GapAnalysis:
    target: float
    actual: float
    gap: float
    tier: GapTier

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "actual": self.actual,
            "gap": self.gap,
            "tier": self.tier.value,
        }

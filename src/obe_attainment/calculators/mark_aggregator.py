"""
Mark Aggregator

Reduces per-question marks to one attainment percentage per student and CLO:

    attainment = (sum of marks obtained on the CLO's questions)
                 / (sum of possible marks of the CLO's questions) * 100

A student with no recorded mark on any of the CLO's questions is left out
rather than scored as 0%, and so is every student when the CLO has no
possible marks at all.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from ..records import InvalidMarkError, MarkRow, QuestionRow, StudentCLOAttainment
from .descriptive import round_attainment

logger = logging.getLogger(__name__)


def validate_mark(mark: MarkRow, question: QuestionRow) -> None:
    """Raise InvalidMarkError unless 0 <= marks_obtained <= possible_marks."""
    if mark.marks_obtained < 0 or mark.marks_obtained > question.possible_marks:
        raise InvalidMarkError(
            f"Student {mark.student_id} has {mark.marks_obtained} marks on question "
            f"{question.question_id} (possible {question.possible_marks})"
        )


def aggregate_clo_marks(
    clo_id: int,
    questions: Sequence[QuestionRow],
    marks: Iterable[MarkRow],
    enrolled_student_ids: Iterable[int],
) -> Dict[int, StudentCLOAttainment]:
    """
    Calculate per-student attainment for one CLO of a course offering.

    Args:
        clo_id: CLO to aggregate
        questions: Questions of the offering (questions of other CLOs are ignored)
        marks: Recorded marks of the offering
        enrolled_student_ids: Students enrolled in the offering; marks of
            anyone else are ignored

    Returns:
        Dict mapping student_id to StudentCLOAttainment, only for students
        with a valid percentage

    Raises:
        InvalidMarkError: If a relevant mark lies outside [0, possible_marks]

    Example:
        Two questions worth 10 each, student scored 10 and 8:
        18 / 20 * 100 = 90.0
    """
    clo_questions = {q.question_id: q for q in questions if q.clo_id == clo_id}
    total_possible = sum(float(q.possible_marks) for q in clo_questions.values())

    if total_possible <= 0:
        logger.debug(f"CLO {clo_id} has no possible marks; all students excluded")
        return {}

    enrolled = set(enrolled_student_ids)
    obtained: Dict[int, float] = defaultdict(float)

    for mark in marks:
        question = clo_questions.get(mark.question_id)
        if question is None or mark.student_id not in enrolled:
            continue
        validate_mark(mark, question)
        obtained[mark.student_id] += float(mark.marks_obtained)

    results = {}
    for student_id in sorted(obtained):
        results[student_id] = StudentCLOAttainment(
            student_id=student_id,
            clo_id=clo_id,
            total_marks_obtained=round_attainment(obtained[student_id]),
            total_possible_marks=round_attainment(total_possible),
            attainment_percentage=round_attainment(obtained[student_id] / total_possible * 100),
        )

    return results


def aggregate_offering_marks(
    clo_ids: Iterable[int],
    questions: Sequence[QuestionRow],
    marks: Sequence[MarkRow],
    enrolled_student_ids: Iterable[int],
) -> Dict[int, Dict[int, StudentCLOAttainment]]:
    """
    Run aggregate_clo_marks for every CLO of an offering.

    Returns:
        Dict mapping clo_id to that CLO's per-student results
    """
    enrolled: List[int] = list(enrolled_student_ids)
    return {
        clo_id: aggregate_clo_marks(clo_id, questions, marks, enrolled)
        for clo_id in clo_ids
    }


def percentages(attainment: Dict[int, StudentCLOAttainment]) -> Dict[int, float]:
    """Reduce aggregator output to student_id -> percentage."""
    return {sid: a.attainment_percentage for sid, a in attainment.items()}

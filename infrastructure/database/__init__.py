"""
Database module for the OBE attainment engine.

Provides SQLAlchemy models, connection management and read-only queries.
"""

from .connection import get_engine, get_session, init_db, snapshot_scope
from .models import (
    Base,
    CloPloMapping,
    CourseLearningOutcome,
    CourseOffering,
    Degree,
    ProgramLearningOutcome,
    StudentMark,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_db",
    "snapshot_scope",
    "Base",
    "CloPloMapping",
    "CourseLearningOutcome",
    "CourseOffering",
    "Degree",
    "ProgramLearningOutcome",
    "StudentMark",
]

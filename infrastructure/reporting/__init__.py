"""
Report assembly and rendering for the OBE attainment engine.
"""

from .assembler import ReportAssembler, course_status, overall_statistics
from .renderers import render_csv, render_json

__all__ = [
    "ReportAssembler",
    "course_status",
    "overall_statistics",
    "render_csv",
    "render_json",
]

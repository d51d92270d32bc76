"""
Re-exports des modèles Firestore.
"""
from app.models.firestore_models import (
    AcademicYear,
    ClassAssignment,
    ProfessorRecord,
    ProfessorRow,
    ScheduleRow,
    ScheduleSlot,
)

__all__ = [
    "AcademicYear",
    "ClassAssignment",
    "ProfessorRecord",
    "ProfessorRow",
    "ScheduleRow",
    "ScheduleSlot",
]

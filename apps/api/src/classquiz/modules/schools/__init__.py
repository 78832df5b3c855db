"""
Schools module - School tenants and their classrooms.
"""

from classquiz.modules.schools.models import Classroom, GradeLevel, School
from classquiz.modules.schools.repository import ClassroomRepository, SchoolRepository

__all__ = ["Classroom", "ClassroomRepository", "GradeLevel", "School", "SchoolRepository"]

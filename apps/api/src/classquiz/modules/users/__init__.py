"""
Users module - Profiles of directors, teachers and parents.
"""

from classquiz.modules.users.models import User, UserRole
from classquiz.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]

"""
Stats module - Dashboard figures for directors, teachers and parents.
"""

from classquiz.modules.stats.router import activity_router, router

__all__ = ["router", "activity_router"]

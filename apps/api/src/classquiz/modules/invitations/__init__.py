"""
Invitations Module

Classroom-scoped invitation tokens and account onboarding:
1. Reusable parent links, one per classroom, valid for a year
2. Single-use teacher invitations created by the director
3. Token consumption that provisions identity, claims and profile
   with compensation on failure

API Endpoints:
- POST /invitations - Create teacher invitation (director)
- GET /invitations - List live invitations (director)
- GET /invitations/parent - Issue or reuse parent link (teacher)
- POST /invitations/validate - Validate token (public)
- POST /invitations/consume - Sign up with token (public)
"""

from .router import router

__all__ = ["router"]

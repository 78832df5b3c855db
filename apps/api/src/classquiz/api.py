from fastapi import APIRouter

from classquiz.modules.auth import router as auth_router
from classquiz.modules.invitations import router as invitations_router
from classquiz.modules.quizzes import router as quizzes_router
from classquiz.modules.quizzes import submissions_router
from classquiz.modules.schools.router import classrooms_router
from classquiz.modules.schools.router import router as schools_router
from classquiz.modules.stats import activity_router
from classquiz.modules.stats import router as stats_router
from classquiz.modules.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(users_router, prefix="/users", tags=["Users"])

api_router.include_router(schools_router, prefix="/schools", tags=["Schools"])

api_router.include_router(classrooms_router, prefix="/classrooms", tags=["Classrooms"])

api_router.include_router(invitations_router, prefix="/invitations", tags=["Invitations"])

api_router.include_router(quizzes_router, prefix="/quizzes", tags=["Quizzes"])

api_router.include_router(submissions_router, prefix="/submissions", tags=["Submissions"])

api_router.include_router(stats_router, prefix="/stats", tags=["Stats"])

api_router.include_router(activity_router, prefix="/activity", tags=["Stats"])

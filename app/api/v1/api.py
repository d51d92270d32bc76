from fastapi import APIRouter

from app.api.v1.endpoints import academic_years, auth, professors

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(academic_years.router, prefix="/academic-years", tags=["Academic years"])
api_router.include_router(professors.router, prefix="/professors", tags=["Professors"])

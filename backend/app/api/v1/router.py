from fastapi import APIRouter

from app.api.v1 import analytics, bulk, students

api_router = APIRouter()

api_router.include_router(bulk.router, prefix="/bulk", tags=["bulk"])
api_router.include_router(students.router, prefix="/students", tags=["students"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])

from fastapi import APIRouter

from atelier.api.api_v1.endpoints import auth, team

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(team.router, prefix="/team", tags=["team"])

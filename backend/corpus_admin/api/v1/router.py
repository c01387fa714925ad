from fastapi import APIRouter
from corpus_admin.api.v1.endpoints import auth, datasets, users, security, health

api_router = APIRouter()

# Deep health checks (/health/live, /health/ready)
api_router.include_router(health.router)

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(datasets.router, prefix="/datasets", tags=["Datasets"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(security.router, prefix="/security", tags=["Security"])

from fastapi import APIRouter

from app.api.v1.endpoints import branches, dashboard, ingest, laos, license_types

api_router = APIRouter()

api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
api_router.include_router(license_types.router, prefix="/license-types", tags=["license-types"])
api_router.include_router(laos.router, prefix="/laos", tags=["laos"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(ingest.router, prefix="/ingest", tags=["ingest"])

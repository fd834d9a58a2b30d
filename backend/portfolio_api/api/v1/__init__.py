from fastapi import APIRouter

from portfolio_api.api.v1 import projects, redirects
from portfolio_api.core.metrics import snapshot as metrics_snapshot

api_router = APIRouter()

api_router.include_router(projects.router)
api_router.include_router(projects.admin_router)
api_router.include_router(redirects.router)
api_router.include_router(redirects.admin_router)


@api_router.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@api_router.get("/health/ready", tags=["health"])
def readiness() -> dict[str, str]:
    return {"status": "ready"}


@api_router.get("/metrics", tags=["metrics"])
def metrics() -> dict:
    return metrics_snapshot()

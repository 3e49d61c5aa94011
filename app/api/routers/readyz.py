from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.core.startup import is_migration_completed, last_migration_error
from app.db import get_sessionmaker
from app.schemas.common import ReadyResponse
from app.services.health import HealthService

router = APIRouter(prefix="/readyz", tags=["health"])


@router.get(
    "",
    response_model=ReadyResponse,
    response_model_exclude_none=True,
    summary="Readiness probe",
    description="DB に SELECT 1 を投げて疎通を確認し、キャッシュ統計を返す（マイグレーション前は503）",
)
async def readyz(request: Request):
    if not is_migration_completed():
        details = {"reason": "migrations_pending"}
        detail = last_migration_error()
        if detail:
            details["error"] = detail
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "code": "DATABASE_ERROR",
                "message": "データベースのマイグレーションが完了していません",
                "details": details,
            },
        )

    svc = HealthService(get_sessionmaker(), getattr(request.app.state, "cache", None))
    return await svc.ok()

# app/api/routers/healthz.py
from fastapi import APIRouter

from app.schemas.common import OkResponse

router = APIRouter(prefix="/healthz", tags=["health"])


@router.get(
    "",
    response_model=OkResponse,
    summary="Liveness probe",
    description="プロセスが応答できるかだけを確認する（DB・キャッシュには触れない）",
)
async def healthz():
    return {"ok": True}

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fidelya_api.db.session import get_record_store
from fidelya_api.db.store import RecordStore


router = APIRouter()


class ReadinessPayload(BaseModel):
    status: Literal["ready", "error"]
    database: Literal["ready", "error"]
    detail: str | None = Field(default=None, description="Human readable status detail")


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(store: RecordStore = Depends(get_record_store)) -> ReadinessPayload:
    try:
        async with store.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness database probe failed", error=str(exc))
        return ReadinessPayload(status="error", database="error", detail=str(exc))
    return ReadinessPayload(status="ready", database="ready")

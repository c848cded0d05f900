"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from passcut.db.session import get_db

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: Literal["ok", "down"]
    database: Literal["ok", "down"]


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Health check endpoint - just checks if the process is alive."""
    return HealthResponse(status="ok")


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check(db: Session = Depends(get_db)) -> ReadinessResponse:
    """Readiness check - verifies the database answers."""
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        return ReadinessResponse(status="down", database="down")
    return ReadinessResponse(status="ok", database="ok")

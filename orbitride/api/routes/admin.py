"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- health check with notification backlog
"""

from fastapi import APIRouter, Request

from orbitride.api.schemas import HealthResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request):
    return HealthResponse(
        pending_notifications=request.app.state.dispatcher.pending,
    )

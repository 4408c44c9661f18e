"""
Health check endpoint.
"""
from datetime import datetime
import time

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from miniapp.api.deps import get_spec_generator
from miniapp.config import settings
from miniapp.llm.base import BaseSpecGenerator
from miniapp.utils.datetime_utils import utc_now

router = APIRouter()

SERVICE_START_TIME = time.time()


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    generator: str
    generator_ready: bool
    uptime_seconds: float
    timestamp: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "service": "MiniApp Builder Service",
                "version": "0.1.0",
                "environment": "development",
                "generator": "openai",
                "generator_ready": False,
                "uptime_seconds": 12.5,
                "timestamp": "2026-01-01T12:00:00Z"
            }
        }


@router.get("/health", response_model=HealthResponse)
async def health(generator: BaseSpecGenerator = Depends(get_spec_generator)) -> HealthResponse:
    """Liveness plus whether remote generation is configured"""
    ready = await generator.health_check()
    return HealthResponse(
        status="healthy" if ready or settings.local_fallback_enabled else "degraded",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        generator=generator.provider.value,
        generator_ready=ready,
        uptime_seconds=round(time.time() - SERVICE_START_TIME, 3),
        timestamp=utc_now(),
    )

"""
Prompt build endpoint.

POST /api/v1/builds - prompt -> orchestrator -> runtime session
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from miniapp.api.deps import get_spec_generator
from miniapp.api.v1.sessions import SessionManager, get_session_manager
from miniapp.llm.base import BaseSpecGenerator, LLMMessage
from miniapp.models.creation import ChatMessage, ChatRole
from miniapp.models.spec import encode_spec
from miniapp.models.validation import ValidationResult
from miniapp.services.orchestrator import BuildOrchestrator, BuildStatus
from miniapp.utils.logging import get_logger, log_context

router = APIRouter()
logger = get_logger(__name__)


class HistoryEntry(BaseModel):
    role: ChatRole
    content: str


class BuildRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    history: List[HistoryEntry] = Field(default_factory=list)

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt cannot be empty or whitespace")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "prompt": "Build me a simple focus timer app",
                "history": []
            }
        }


class BuildResponse(BaseModel):
    build_id: str
    status: BuildStatus
    source: str
    progress: float
    detail: str
    messages: List[ChatMessage]
    spec: Optional[Dict[str, Any]] = None
    validation: Optional[ValidationResult] = None
    session_id: Optional[str] = None
    error: Optional[str] = None


@router.post("/builds", response_model=BuildResponse)
async def create_build(
    request: BuildRequest,
    generator: BaseSpecGenerator = Depends(get_spec_generator),
    manager: SessionManager = Depends(get_session_manager),
) -> BuildResponse:
    session = await manager.create()
    orchestrator = BuildOrchestrator(runtime=session.runtime, generator=generator)
    history = [LLMMessage(role=h.role.value, content=h.content) for h in request.history]

    completed = False
    with log_context(session_id=session.id):
        try:
            report = await orchestrator.build_from_prompt(request.prompt, history)
            if report is None:
                # One orchestrator per request, so nothing can supersede this build
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail={"error": "build_superseded", "message": "Build was superseded"}
                )
            completed = report.status == BuildStatus.COMPLETED
        finally:
            if not completed:
                await manager.close(session.id)

        logger.info(
            "api.build.finished",
            extra={"build_id": report.build_id, "status": report.status.value, "source": report.source}
        )
        return BuildResponse(
            build_id=report.build_id,
            status=report.status,
            source=report.source,
            progress=orchestrator.progress,
            detail=orchestrator.detail,
            messages=report.messages,
            spec=encode_spec(report.spec) if report.spec else None,
            validation=report.final_validation,
            session_id=session.id if completed else None,
            error=report.error,
        )

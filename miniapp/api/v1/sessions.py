"""
Runtime session endpoints.

A session is one MiniAppRuntime plus its image loader. Every mutating call
returns the re-rendered view of the current page.

POST   /api/v1/sessions
GET    /api/v1/sessions/{session_id}
POST   /api/v1/sessions/{session_id}/dispatch
PUT    /api/v1/sessions/{session_id}/state/{key}
POST   /api/v1/sessions/{session_id}/toggle/{key}
POST   /api/v1/sessions/{session_id}/images
DELETE /api/v1/sessions/{session_id}/alert
DELETE /api/v1/sessions/{session_id}
"""
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field

from miniapp.api.v1.specs import decode_or_422
from miniapp.config import settings
from miniapp.models.spec import ComponentType, Spec
from miniapp.services.images import ImageLoader, ImageState
from miniapp.services.renderer import render_page
from miniapp.services.repair import repair_spec
from miniapp.services.runtime import MiniAppRuntime
from miniapp.utils.logging import get_logger, log_context

router = APIRouter()
logger = get_logger(__name__)


# ============================================================================
# SESSION REGISTRY
# ============================================================================

@dataclass
class Session:
    id: str
    runtime: MiniAppRuntime
    images: ImageLoader = field(default_factory=ImageLoader)

    def view(self) -> Dict[str, Any]:
        return render_page(self.runtime, self.images).to_dict()

    def image_urls(self) -> List[str]:
        if self.runtime.spec is None:
            return []
        return [
            c.props.image_url
            for c in self.runtime.spec.components()
            if c.type == ComponentType.IMAGE and c.props.image_url
        ]


class SessionManager:
    """In-memory sessions, least recently used evicted first once ``max_sessions`` is reached"""

    def __init__(self, max_sessions: int = 256):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def create(self, spec: Optional[Spec] = None, runtime: Optional[MiniAppRuntime] = None) -> Session:
        runtime = runtime or MiniAppRuntime()
        if spec is not None:
            runtime.load(spec)
        session = Session(id=str(uuid.uuid4()), runtime=runtime)
        self._sessions[session.id] = session

        while len(self._sessions) > self.max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            await self._shutdown(evicted)
            logger.info("session.evicted", extra={"evicted_session_id": evicted_id})
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    async def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await self._shutdown(session)
        return True

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

    @staticmethod
    async def _shutdown(session: Session) -> None:
        session.runtime.stop()
        await session.images.close()


session_manager = SessionManager(max_sessions=settings.max_sessions)


def get_session_manager() -> SessionManager:
    return session_manager


def get_session_or_404(session_id: str, manager: SessionManager) -> Session:
    session = manager.get(session_id)
    if session is None:
        logger.warning("api.session.not_found", extra={"session_id": session_id})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "session_not_found",
                "message": f"Session with ID {session_id} not found"
            }
        )
    return session


# ============================================================================
# MODELS
# ============================================================================

class SessionResponse(BaseModel):
    session_id: str
    current_page_id: str
    state: Dict[str, Any]
    active_alert: Optional[Dict[str, str]] = None
    view: Dict[str, Any]


class DispatchRequest(BaseModel):
    action_ids: List[str] = Field(..., alias="actionIds")

    model_config = {"populate_by_name": True}


class ToggleResponse(SessionResponse):
    is_on: bool


def _response(session: Session) -> SessionResponse:
    snapshot = session.runtime.snapshot()
    return SessionResponse(
        session_id=session.id,
        current_page_id=snapshot["current_page_id"],
        state=snapshot["state"],
        active_alert=snapshot["active_alert"],
        view=session.view(),
    )


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: Dict[str, Any] = Body(...),
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    spec = repair_spec(decode_or_422(payload))
    session = await manager.create(spec)
    with log_context(session_id=session.id):
        logger.info("✅ api.session.created", extra={"spec_id": spec.id})
        return _response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    return _response(get_session_or_404(session_id, manager))


@router.post("/sessions/{session_id}/dispatch", response_model=SessionResponse)
async def dispatch(
    session_id: str,
    request: DispatchRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session = get_session_or_404(session_id, manager)
    with log_context(session_id=session_id):
        session.runtime.dispatch(request.action_ids)
        return _response(session)


@router.put("/sessions/{session_id}/state/{key}", response_model=SessionResponse)
async def write_state(
    session_id: str,
    key: str,
    value: Any = Body(None, embed=True),
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session = get_session_or_404(session_id, manager)
    with log_context(session_id=session_id):
        try:
            session.runtime.write_binding(key, value)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"error": "invalid_value", "message": str(e)}
            )
        return _response(session)


@router.post("/sessions/{session_id}/toggle/{key}", response_model=ToggleResponse)
async def toggle(
    session_id: str,
    key: str,
    manager: SessionManager = Depends(get_session_manager),
) -> ToggleResponse:
    session = get_session_or_404(session_id, manager)
    with log_context(session_id=session_id):
        is_on = session.runtime.toggle(key)
        return ToggleResponse(**_response(session).model_dump(), is_on=is_on)


@router.post("/sessions/{session_id}/images", response_model=SessionResponse)
async def load_images(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session = get_session_or_404(session_id, manager)
    with log_context(session_id=session_id):
        states = await session.images.load_all(session.image_urls())
        logger.info(
            "api.session.images_loaded",
            extra={"count": len(states), "failed": sum(1 for s in states.values() if s == ImageState.FAILURE)}
        )
        return _response(session)


@router.delete("/sessions/{session_id}/alert", response_model=SessionResponse)
async def dismiss_alert(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    session = get_session_or_404(session_id, manager)
    session.runtime.dismiss_alert()
    return _response(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> None:
    if not await manager.close(session_id):
        get_session_or_404(session_id, manager)
    logger.info("api.session.closed", extra={"session_id": session_id})

# backend/app.py

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response

from config.settings import settings
from .controller import ImageClient, SessionController
from .gemini_client import GeminiImageClient
from .model import ArtifactRole, CommandResponse, PromptRequest, SessionView
from .sessions import SessionRegistry
from .utils import setup_logging

logger = logging.getLogger(__name__)

router = APIRouter()


def get_controller(request: Request, session_id: str) -> SessionController:
    registry: SessionRegistry = request.app.state.registry
    controller = registry.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/sessions", response_model=SessionView)
async def create_session(request: Request):
    controller = request.app.state.registry.create()
    return controller.view()


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(request: Request, session_id: str, include_images: bool = True):
    """Current view. Pollers pass include_images=false and read the has_* flags."""
    return get_controller(request, session_id).view(include_images=include_images)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(request: Request, session_id: str):
    if not request.app.state.registry.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.put("/sessions/{session_id}/prompt", response_model=SessionView)
async def update_prompt(request: Request, session_id: str, body: PromptRequest):
    controller = get_controller(request, session_id)
    controller.update_prompt(body.prompt)
    return controller.view()


@router.post("/sessions/{session_id}/generate", response_model=CommandResponse)
async def generate(request: Request, session_id: str, body: PromptRequest):
    """Start generating. Returns at once; poll GET /sessions/{id} for the result."""
    controller = get_controller(request, session_id)
    task = controller.request_generate(body.prompt)
    return CommandResponse(accepted=task is not None, session=controller.view())


@router.post("/sessions/{session_id}/edit", response_model=CommandResponse)
async def edit(request: Request, session_id: str, body: PromptRequest):
    controller = get_controller(request, session_id)
    task = controller.request_edit(body.prompt)
    return CommandResponse(accepted=task is not None, session=controller.view())


@router.post("/sessions/{session_id}/reset", response_model=SessionView)
async def reset(request: Request, session_id: str):
    controller = get_controller(request, session_id)
    controller.reset()
    return controller.view()


@router.get("/sessions/{session_id}/artifacts/{role}")
async def download_artifact(request: Request, session_id: str, role: ArtifactRole):
    """Raw image bytes, named after their role (generated-image.png / edited-image.png)."""
    state = get_controller(request, session_id).state
    artifact = state.generated if role == "generated" else state.edited
    if artifact is None:
        raise HTTPException(status_code=404, detail=f"No {role} image")
    return Response(
        content=artifact.to_bytes(),
        media_type=artifact.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{role}-image.png"'},
    )


def create_app(client: Optional[ImageClient] = None, session_ttl: Optional[float] = None) -> FastAPI:
    if client is None:
        client = GeminiImageClient.from_settings()
        if not settings.GEMINI_API_KEY:
            logger.warning("[App] GEMINI_API_KEY is not set, every request will fail")

    registry = SessionRegistry(
        client, ttl=settings.SESSION_TTL if session_ttl is None else session_ttl
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(registry.sweep_forever(settings.SESSION_SWEEP_INTERVAL))
        yield
        sweeper.cancel()
        await registry.drain()

    app = FastAPI(title="Gemini Image Studio", lifespan=lifespan)
    app.state.registry = registry
    app.include_router(router)
    return app


setup_logging()
app = create_app()

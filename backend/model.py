# backend/model.py
import base64
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

Phase = Literal["idle", "generating", "ready", "editing", "edited"]

InFlightKind = Literal["generate", "edit"]

ArtifactRole = Literal["generated", "edited"]


class ImageArtifact(BaseModel):
    """One image produced by the remote model: base64 text plus its media type."""

    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str = "image/png"

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class PromptRequest(BaseModel):
    prompt: str = ""


class SessionView(BaseModel):
    session_id: str
    phase: Phase
    show_editor: bool
    has_generated: bool = False
    has_edited: bool = False
    generated_uri: Optional[str] = None
    edited_uri: Optional[str] = None
    is_loading: bool = False
    loading_task: Optional[InFlightKind] = None
    error: Optional[str] = None
    prompt: str = ""


class CommandResponse(BaseModel):
    accepted: bool
    session: SessionView

# backend/workflow.py
"""
Generate-then-edit session state and its transitions.

Every transition takes a SessionState and returns a new one. The start
transitions return None when the command must be skipped (empty prompt,
missing source image, or a request already in flight).

Completions carry the request_id they were dispatched with. A completion whose
id no longer matches the state's (because reset() or a newer request ran in the
meantime) leaves the state untouched.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .model import ImageArtifact, InFlightKind, Phase, SessionView


@dataclass(frozen=True)
class SessionState:
    phase: Phase = "idle"
    generated: Optional[ImageArtifact] = None
    edited: Optional[ImageArtifact] = None
    prompt: str = ""
    in_flight: Optional[InFlightKind] = None
    last_error: Optional[str] = None
    request_id: int = 0


def start_generate(state: SessionState, prompt: str) -> Optional[SessionState]:
    if not prompt or state.in_flight is not None:
        return None
    return replace(
        state,
        phase="generating",
        generated=None,
        edited=None,
        prompt=prompt,
        in_flight="generate",
        last_error=None,
        request_id=state.request_id + 1,
    )


def start_edit(state: SessionState, prompt: str) -> Optional[SessionState]:
    if not prompt or state.generated is None or state.in_flight is not None:
        return None
    return replace(
        state,
        phase="editing",
        edited=None,
        prompt=prompt,
        in_flight="edit",
        last_error=None,
        request_id=state.request_id + 1,
    )


def _is_current(state: SessionState, request_id: int) -> bool:
    return state.in_flight is not None and request_id == state.request_id


def complete(state: SessionState, request_id: int, artifact: ImageArtifact) -> SessionState:
    if not _is_current(state, request_id):
        return state
    if state.in_flight == "generate":
        return replace(state, phase="ready", generated=artifact, edited=None,
                       prompt="", in_flight=None)
    return replace(state, phase="edited", edited=artifact, prompt="", in_flight=None)


def fail(state: SessionState, request_id: int, message: str) -> SessionState:
    if not _is_current(state, request_id):
        return state
    if state.in_flight == "generate":
        return replace(state, phase="idle", generated=None, edited=None,
                       prompt="", in_flight=None, last_error=message)
    # the source image is still valid after a failed edit
    return replace(state, phase="ready", edited=None, prompt="", in_flight=None,
                   last_error=message)


def reset(state: SessionState) -> SessionState:
    return SessionState(request_id=state.request_id + 1)


def update_prompt(state: SessionState, text: str) -> SessionState:
    if state.in_flight is not None:
        return state
    return replace(state, prompt=text)


def view(state: SessionState, session_id: str, include_images: bool = True) -> SessionView:
    """
    Derived display model: the editor is shown as soon as a generated image exists.
    With include_images=False the data URIs are left out and only the has_* flags say
    which images exist, which keeps polling cheap.
    """
    return SessionView(
        session_id=session_id,
        phase=state.phase,
        show_editor=state.generated is not None,
        has_generated=state.generated is not None,
        has_edited=state.edited is not None,
        generated_uri=state.generated.data_uri if include_images and state.generated else None,
        edited_uri=state.edited.data_uri if include_images and state.edited else None,
        is_loading=state.in_flight is not None,
        loading_task=state.in_flight,
        error=state.last_error,
        prompt=state.prompt,
    )

import time
from typing import Optional
from io import BytesIO

import requests
import streamlit as st
from PIL import Image

from config.settings import settings

BACKEND_URL = settings.BACKEND_URL.rstrip("/")

PROMPT_KEY = "prompt_input"


def create_session() -> dict:
    """POST /sessions -> a fresh session view"""
    resp = requests.post(f"{BACKEND_URL}/sessions", timeout=10)
    resp.raise_for_status()
    return resp.json()


def get_session(session_id: str) -> Optional[dict]:
    """GET /sessions/{id} without image payloads, None if the backend forgot the session"""
    resp = requests.get(
        f"{BACKEND_URL}/sessions/{session_id}",
        params={"include_images": "false"},
        timeout=10,
    )
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json()


def send_command(session_id: str, command: str, prompt: str) -> dict:
    """POST /sessions/{id}/generate|edit -> {accepted, session}"""
    resp = requests.post(
        f"{BACKEND_URL}/sessions/{session_id}/{command}",
        json={"prompt": prompt},
        timeout=30,
    )
    resp.raise_for_status()
    return resp.json()


def push_prompt(session_id: str, prompt: str) -> None:
    resp = requests.put(
        f"{BACKEND_URL}/sessions/{session_id}/prompt",
        json={"prompt": prompt},
        timeout=10,
    )
    resp.raise_for_status()


def reset_session(session_id: str) -> None:
    resp = requests.post(f"{BACKEND_URL}/sessions/{session_id}/reset", timeout=10)
    resp.raise_for_status()


def poll_session(session_id: str, timeout_sec: float = 120.0, poll_interval: float = 0.5):
    """Poll GET /sessions/{id} until nothing is in flight"""
    start = time.time()
    while True:
        view = get_session(session_id)
        if view is None or not view.get("is_loading"):
            return view

        if time.time() - start > timeout_sec:
            return None

        time.sleep(poll_interval)


def download_image(session_id: str, role: str):
    """Fetch an artifact's bytes and open them as a PIL Image"""
    try:
        resp = requests.get(f"{BACKEND_URL}/sessions/{session_id}/artifacts/{role}", timeout=30)
        resp.raise_for_status()
        img = Image.open(BytesIO(resp.content))
        return img, resp.content, resp.headers.get("content-type", "image/png")
    except Exception as e:
        st.error(f"Could not load the {role} image: {e}")
        return None, None, None


def current_session() -> dict:
    session_id = st.session_state.get("session_id")
    view = get_session(session_id) if session_id else None
    if view is None:
        view = create_session()
        st.session_state["session_id"] = view["session_id"]
    return view


# ==========================
# Callbacks
# ==========================
def on_prompt_change():
    try:
        push_prompt(st.session_state["session_id"], st.session_state[PROMPT_KEY])
    except requests.RequestException as e:
        st.session_state["transport_error"] = str(e)


def on_command(command: str):
    try:
        send_command(st.session_state["session_id"], command, st.session_state[PROMPT_KEY])
    except requests.RequestException as e:
        st.session_state["transport_error"] = str(e)


def on_reset():
    try:
        reset_session(st.session_state["session_id"])
    except requests.RequestException as e:
        st.session_state["transport_error"] = str(e)


# ==========================
# Page
# ==========================
st.set_page_config(
    page_title="Gemini Image Studio",
    page_icon="🎨",
    layout="wide"
)

view = current_session()
session_id = view["session_id"]
is_loading = view["is_loading"]

header_col, reset_col = st.columns([4, 1])
with header_col:
    st.title("Gemini Image Studio")
with reset_col:
    if view["show_editor"]:
        st.button("🔄 Start Over", on_click=on_reset, use_container_width=True)

if view["error"]:
    st.error(f"**Error:** {view['error']}")

transport_error = st.session_state.pop("transport_error", None)
if transport_error:
    st.error(f"**Error:** backend unreachable: {transport_error}")

# The backend owns the prompt: it is cleared once a request completes
st.session_state[PROMPT_KEY] = view["prompt"]

if not view["show_editor"]:
    # ==========================
    # Generator view
    # ==========================
    st.header("✨ Unleash Your Creativity")
    st.markdown(
        "Describe the image you want to create. Be as specific or as imaginative as you like. "
        'Try "A cinematic shot of a raccoon in a library, wearing a monocle".'
    )
    st.text_area(
        "Prompt",
        key=PROMPT_KEY,
        placeholder="e.g., A futuristic city skyline at sunset, with flying cars...",
        height=100,
        disabled=is_loading,
        on_change=on_prompt_change,
    )
    st.button(
        "⏳ Generating..." if is_loading else "✨ Generate Image",
        on_click=on_command,
        args=("generate",),
        disabled=is_loading or not st.session_state.get(PROMPT_KEY),
        type="primary",
        use_container_width=True,
    )
else:
    # ==========================
    # Editor view
    # ==========================
    left, right = st.columns(2)

    with left:
        st.subheader("Generated Image")
        image, img_bytes, mime = download_image(session_id, "generated")
        if image:
            st.image(image, use_container_width=True)
            st.download_button(
                "⬇️ Download",
                data=img_bytes,
                file_name="generated-image.png",
                mime=mime,
                key="download_generated",
            )

        st.subheader("Edit your image")
        st.markdown(
            'Describe the changes you want to make. For example, "Add a retro filter" '
            'or "Make the sky look like a galaxy".'
        )
        st.text_area(
            "Edit prompt",
            key=PROMPT_KEY,
            placeholder="e.g., Change the background to a sunny beach...",
            height=100,
            disabled=is_loading,
            on_change=on_prompt_change,
        )
        editing = is_loading and view["loading_task"] == "edit"
        st.button(
            "⏳ Applying..." if editing else "✏️ Apply Edit",
            on_click=on_command,
            args=("edit",),
            disabled=is_loading or not st.session_state.get(PROMPT_KEY),
            type="primary",
            use_container_width=True,
        )

    with right:
        st.subheader("Edited Image")
        if view["has_edited"]:
            image, img_bytes, mime = download_image(session_id, "edited")
            if image:
                st.image(image, use_container_width=True)
                st.download_button(
                    "⬇️ Download",
                    data=img_bytes,
                    file_name="edited-image.png",
                    mime=mime,
                    key="download_edited",
                )
        elif is_loading and view["loading_task"] == "edit":
            st.info("⏳ Working on it...")
        else:
            st.info("✏️ Your edited image will appear here.")

if is_loading:
    with st.spinner("🎨 Working on it..."):
        result = poll_session(session_id, timeout_sec=settings.POLL_TIMEOUT,
                              poll_interval=settings.POLL_INTERVAL)
    if result is None:
        st.warning("⏱️ The image service has not answered yet. Refresh to check again.")
    else:
        st.rerun()

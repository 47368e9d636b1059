"""Main Streamlit UI for AI Script & Visuals.

The page collects a topic, optional guiding questions, a language and a scene
count, renders the generated script scene by scene while the visuals arrive,
and offers the whole thing as a single HTML download. A side panel hosts the
chat assistant.
"""

from __future__ import annotations

import html
import os
import sys
from pathlib import Path
from typing import Any, Sequence

import streamlit as st
from dotenv import load_dotenv

# Ensure backend package is importable when running `streamlit run streamlit_app.py`.
ROOT = Path(__file__).resolve().parent
BACKEND_ROOT = ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))
load_dotenv(ROOT / ".env", override=False)

SECRET_ENV_KEYS = (
    "GEMINI_API_KEY",
    "API_KEY",
    "GEMINI_TEXT_MODEL",
    "GEMINI_IMAGE_MODEL",
    "LOG_LEVEL",
)


def _hydrate_env_from_streamlit_secrets() -> None:
    """Load Gemini config from Streamlit Secrets into env when not already set."""
    try:
        secrets = st.secrets.to_dict()
    except Exception:
        # No secrets.toml: configuration comes from the environment only.
        return

    gemini_block = secrets.get("gemini")
    if isinstance(gemini_block, dict):
        mapping = {
            "api_key": "GEMINI_API_KEY",
            "text_model": "GEMINI_TEXT_MODEL",
            "image_model": "GEMINI_IMAGE_MODEL",
        }
        for secret_key, env_key in mapping.items():
            value = gemini_block.get(secret_key)
            if isinstance(value, str) and value.strip() and not os.getenv(env_key):
                os.environ[env_key] = value.strip()

    for key in SECRET_ENV_KEYS:
        value = secrets.get(key)
        if isinstance(value, str) and value.strip() and not os.getenv(key):
            os.environ[key] = value.strip()


_hydrate_env_from_streamlit_secrets()

from script_visuals.ai.prompts import LANGUAGES, MAX_SCENES, MIN_SCENES  # noqa: E402
from script_visuals.app import create_app, create_session  # noqa: E402
from script_visuals.controllers.chat import ChatController  # noqa: E402
from script_visuals.controllers.script import (  # noqa: E402
    FAILED,
    MAX_IMAGE_SCENES,
    READY,
    ScriptController,
)
from script_visuals.errors import MissingCredentialsError  # noqa: E402
from script_visuals.models import GroundingChunk, Scene  # noqa: E402

IMAGE_POLL_SECONDS = 1.5
SESSION_KEY = "sv_session"


@st.cache_resource
def _get_app() -> dict[str, Any]:
    return create_app()


def _init_state() -> None:
    defaults = {
        "sv_topic": "",
        "sv_questions": "",
        "sv_language": LANGUAGES[0],
        "sv_scene_count": MIN_SCENES,
    }
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)
    if SESSION_KEY not in st.session_state:
        st.session_state[SESSION_KEY] = create_session(_get_app())


def _controllers() -> tuple[ScriptController, ChatController]:
    controllers = st.session_state[SESSION_KEY]["controllers"]
    return controllers["script"], controllers["chat"]


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .stApp {
            background-color: #111827;
            background-image: radial-gradient(circle at 1px 1px, rgba(255,255,255,0.05) 1px, transparent 0);
            background-size: 24px 24px;
        }
        .sv-hero h1 {
            font-size: 3.2rem;
            font-weight: 800;
            text-align: center;
            margin-bottom: 0.2rem;
            background: linear-gradient(90deg, #3b82f6, #2dd4bf);
            -webkit-background-clip: text;
            -webkit-text-fill-color: transparent;
        }
        .sv-hero p { text-align: center; color: #9ca3af; }
        .sv-title {
            font-size: 2.2rem;
            font-weight: 800;
            text-align: center;
            background: linear-gradient(90deg, #60a5fa, #a855f7);
            -webkit-background-clip: text;
            -webkit-text-fill-color: transparent;
        }
        .sv-sources {
            padding: 1rem;
            border-radius: 0.6rem;
            border: 1px solid #374151;
            background: rgba(31, 41, 55, 0.6);
            margin-bottom: 1.5rem;
        }
        .sv-sources h4 { color: #d1d5db; margin: 0 0 0.4rem 0; }
        .sv-sources a { color: #60a5fa; }
        .sv-scene-kicker {
            text-transform: uppercase;
            letter-spacing: 0.08em;
            font-size: 0.8rem;
            font-weight: 600;
            color: #3b82f6;
        }
        .sv-scene-script { color: #d1d5db; line-height: 1.7; white-space: pre-wrap; }
        .sv-scene-prompt { color: #6b7280; font-size: 0.78rem; font-style: italic; }
        .sv-visual {
            min-height: 240px;
            display: flex;
            align-items: center;
            justify-content: center;
            border-radius: 0.6rem;
            background: rgba(17, 24, 39, 0.6);
            color: #9ca3af;
            text-align: center;
            padding: 0.6rem;
        }
        .sv-visual img { width: 100%; border-radius: 0.6rem; }
        .sv-visual.error { color: #f87171; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _download_tooltip(ready: bool) -> str:
    if ready:
        return "Download script and visuals"
    return "Waiting for all visuals to generate..."


def _sources_html(citations: Sequence[GroundingChunk]) -> str:
    items = []
    for chunk in citations:
        if chunk.web is None:
            continue
        uri = html.escape(chunk.web.uri, quote=True)
        label = html.escape(chunk.web.title or chunk.web.uri)
        items.append(f'<li><a href="{uri}" target="_blank" rel="noopener noreferrer">{label}</a></li>')
    if not items:
        return ""
    return (
        '<div class="sv-sources"><h4>Information Sources</h4><ul>'
        + "".join(items)
        + "</ul></div>"
    )


def _scene_visual_html(
    index: int,
    scene: Scene,
    status: str,
    image_url: str | None,
    error: str | None,
) -> str:
    if index >= MAX_IMAGE_SCENES:
        return (
            f'<div class="sv-visual">Visuals are only generated for the first '
            f"{MAX_IMAGE_SCENES} scenes.</div>"
        )
    if status == READY and image_url:
        src = html.escape(image_url, quote=True)
        alt = html.escape(scene.visual_prompt, quote=True)
        return f'<div class="sv-visual"><img src="{src}" alt="{alt}"></div>'
    if status == FAILED:
        return f'<div class="sv-visual error">{html.escape(error or "")}</div>'
    return '<div class="sv-visual">Generating visual...</div>'


def _scene_card(script_ctrl: ScriptController, index: int, scene: Scene) -> None:
    status, image_url, error = script_ctrl.image_state(index)
    with st.container(border=True):
        text_col, visual_col = st.columns(2)
        with text_col:
            st.markdown(
                f"<span class='sv-scene-kicker'>Scene {index + 1}</span>",
                unsafe_allow_html=True,
            )
            st.markdown(f"### {scene.title}")
            st.markdown(
                f"<div class='sv-scene-script'>{html.escape(scene.script)}</div>",
                unsafe_allow_html=True,
            )
            st.markdown(
                f"<p class='sv-scene-prompt'>Visual Prompt: \"{html.escape(scene.visual_prompt)}\"</p>",
                unsafe_allow_html=True,
            )
        with visual_col:
            st.markdown(
                _scene_visual_html(index, scene, status, image_url, error),
                unsafe_allow_html=True,
            )


def _render_results(script_ctrl: ScriptController) -> None:
    if script_ctrl.error:
        st.error(f"Error: {script_ctrl.error}")
        return

    script = script_ctrl.script
    if script is None:
        st.caption("Enter a topic above to generate your YouTube script and visuals.")
        return

    st.markdown(f"<div class='sv-title'>{html.escape(script.title)}</div>", unsafe_allow_html=True)

    ready = script_ctrl.export_ready
    export = script_ctrl.export() if ready else None
    file_name, document = export if export else ("script.html", "")
    st.download_button(
        "Download",
        data=document,
        file_name=file_name,
        mime="text/html",
        disabled=not ready,
        help=_download_tooltip(ready),
        key="sv_download",
    )
    if not ready:
        st.caption(
            f"Visuals ready: {script_ctrl.completed_images}/{script_ctrl.eligible_image_count}"
        )

    sources = _sources_html(script_ctrl.citations)
    if sources:
        st.markdown(sources, unsafe_allow_html=True)

    for index, scene in enumerate(script.scenes):
        _scene_card(script_ctrl, index, scene)


def _results_section(script_ctrl: ScriptController) -> None:
    polling = script_ctrl.images_pending

    @st.fragment(run_every=IMAGE_POLL_SECONDS if polling else None)
    def _results() -> None:
        _render_results(script_ctrl)
        if polling and not script_ctrl.images_pending:
            # Full rerun stops the polling timer.
            st.rerun()

    _results()


def _script_form(script_ctrl: ScriptController) -> None:
    with st.form("sv_script_form"):
        st.text_input(
            "Video Topic",
            key="sv_topic",
            placeholder="e.g., The history of black holes",
        )
        st.text_area(
            "Guiding Questions (Optional)",
            key="sv_questions",
            placeholder="Enter one question per line. The script will be based on the answers.",
            height=120,
        )
        col_lang, col_count = st.columns(2)
        col_lang.selectbox("Language", LANGUAGES, key="sv_language")
        col_count.slider("Number of Scenes", MIN_SCENES, MAX_SCENES, key="sv_scene_count")
        submitted = st.form_submit_button(
            "Generating..." if script_ctrl.is_pending else "Generate Script & Visuals",
            type="primary",
            disabled=script_ctrl.is_pending,
            use_container_width=True,
        )

    if submitted:
        with st.spinner("Crafting your script and visuals... This may take a moment, especially the visuals!"):
            script_ctrl.submit(
                st.session_state["sv_topic"],
                st.session_state["sv_language"],
                int(st.session_state["sv_scene_count"]),
                st.session_state["sv_questions"],
            )


def _chat_panel(chat_ctrl: ChatController) -> None:
    if not chat_ctrl.is_open:
        if st.sidebar.button("Open Chat", use_container_width=True):
            chat_ctrl.open()
            st.rerun()
        return

    header_col, close_col = st.sidebar.columns([4, 1])
    header_col.markdown("### Helpful Assistant")
    if close_col.button("✕", key="sv_chat_close", help="Close chat"):
        chat_ctrl.close()
        st.rerun()

    with st.sidebar:
        for message in chat_ctrl.messages:
            role = "user" if message.sender == "user" else "assistant"
            with st.chat_message(role):
                st.markdown(message.text)

        with st.form("sv_chat_form", clear_on_submit=True):
            text = st.text_input("Message", placeholder="Ask a question...", label_visibility="collapsed")
            sent = st.form_submit_button("Send", disabled=chat_ctrl.is_pending, use_container_width=True)

        if sent and text.strip():
            with st.spinner("Thinking..."):
                chat_ctrl.send(text)
            st.rerun()


def main() -> None:
    st.set_page_config(
        page_title="AI Script & Visuals",
        page_icon="🎬",
        layout="centered",
    )

    try:
        _init_state()
    except MissingCredentialsError as exc:
        st.error(exc.user_message)
        st.stop()

    _inject_styles()
    script_ctrl, chat_ctrl = _controllers()

    st.markdown(
        """
        <div class="sv-hero">
          <h1>AI Script &amp; Visuals</h1>
          <p>Generate YouTube scripts and visuals with the power of Gemini.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )

    _chat_panel(chat_ctrl)
    _script_form(script_ctrl)
    _results_section(script_ctrl)


if __name__ == "__main__":
    main()

from __future__ import annotations

import asyncio
import html
import logging
from typing import List, cast

import streamlit as st
from dotenv import load_dotenv

from ragchat.client import ChatClient
from ragchat.config import Settings
from ragchat.controller import ConversationController, ConversationState
from ragchat.presentation import conversation_segments, segments_to_html, source_cards
from ragchat.sounds import cue_router, synthesize_cue
from ragchat.types import CueKind, Notification

# Load environment variables from .env if present.
load_dotenv()
settings = Settings()
logger = logging.getLogger("ragchat.app")

st.set_page_config(page_title=settings.app_title, page_icon="🥗", layout="centered")

# ──────────────────────────────────────────────
# CSS: citation badges, typing dots, source cards
# ──────────────────────────────────────────────
st.markdown(
    """
<style>
.citation-link {
    display: inline-flex;
    align-items: center;
    justify-content: center;
    min-width: 1.3rem;
    margin: 0 0.25rem;
    padding: 0 0.35rem;
    border-radius: 999px;
    font-size: 0.72rem;
    font-weight: 600;
    cursor: help;
    background: rgba(16, 185, 129, 0.2);
    color: #34D399;
    border: 1px solid rgba(52, 211, 153, 0.45);
}
.typing-dots span {
    display: inline-block;
    width: 0.45rem;
    height: 0.45rem;
    margin-right: 0.2rem;
    border-radius: 50%;
    background: #A1AEBB;
    animation: typing 1.2s infinite ease-in-out;
}
.typing-dots span:nth-child(2) { animation-delay: 0.2s; }
.typing-dots span:nth-child(3) { animation-delay: 0.4s; }
@keyframes typing {
    0%, 80%, 100% { opacity: 0.3; transform: translateY(0); }
    40% { opacity: 1; transform: translateY(-3px); }
}
.empty-state {
    text-align: center;
    color: #A1AEBB;
    padding: 3rem 1rem;
}
.source-card {
    background: rgba(20, 40, 30, 0.45);
    border: 1px solid rgba(52, 211, 153, 0.2);
    border-radius: 10px;
    padding: 0.75rem;
    margin-bottom: 0.75rem;
    font-size: 0.8rem;
}
.source-card-header {
    display: flex;
    justify-content: space-between;
    margin-bottom: 0.4rem;
    color: #A7F3D0;
    font-weight: 600;
}
</style>
""",
    unsafe_allow_html=True,
)

TYPING_HTML = '<div class="typing-dots"><span></span><span></span><span></span></div>'


def play_cue(kind: CueKind) -> None:
    try:
        st.audio(synthesize_cue(kind), format="audio/wav", autoplay=True)
    except Exception:
        logger.debug("Could not play %s cue", kind, exc_info=True)


def queue_cue(kind: CueKind) -> None:
    st.session_state.setdefault("pending_cues", []).append(kind)


def queue_notification(notification: Notification) -> None:
    st.session_state.setdefault("pending_notifications", []).append(notification)


def get_controller() -> ConversationController:
    """One conversation per browser session, kept for the life of the session."""
    if "controller" not in st.session_state:
        st.session_state["controller"] = ConversationController(
            transport=ChatClient(settings.chat_endpoint, timeout=settings.request_timeout_seconds),
            notify=queue_notification,
            play_cue=cue_router(play_cue, queue_cue),
            display_delay=settings.display_delay_seconds,
            sound_enabled=settings.sound_enabled,
        )
    return cast(ConversationController, st.session_state["controller"])


def flush_side_effects() -> None:
    """Show toasts and play receive cues queued during the previous run."""
    notifications = cast(List[Notification], st.session_state.pop("pending_notifications", []))
    for notification in notifications:
        st.toast(f"**{notification.title}**: {notification.description}", icon="⚠️")
    cues = cast(List[CueKind], st.session_state.pop("pending_cues", []))
    for kind in cues:
        play_cue(kind)


def render_sources_panel(state: ConversationState) -> None:
    st.markdown("---")
    st.markdown("**Sources Referenced**")
    columns = st.columns(3)
    for index, card in enumerate(source_cards(state.current_sources)):
        with columns[index % 3]:
            st.markdown(
                f'<div class="source-card">'
                f'<div class="source-card-header"><span>{html.escape(card.badge)}</span>'
                f"<span>{card.similarity}</span></div>"
                f"{html.escape(card.preview)}"
                f"</div>",
                unsafe_allow_html=True,
            )


controller = get_controller()
state = controller.state

# ──────────────────── Header ────────────────────
title_column, sound_column = st.columns([6, 1])
with title_column:
    st.title(settings.app_title)
with sound_column:
    st.button(
        "🔊" if state.sound_enabled else "🔇",
        help="Toggle sound",
        on_click=controller.toggle_sound,
    )

flush_side_effects()

# ──────────────────── Messages ────────────────────
if state.is_empty:
    st.markdown(
        '<div class="empty-state"><h3>Ask me about nutrition!</h3>'
        "<p>I can help you with questions about the nutrition PDF document.</p></div>",
        unsafe_allow_html=True,
    )

for message, segments in zip(state.messages, conversation_segments(state.messages, state.current_sources)):
    with st.chat_message(message.role):
        if segments is not None:
            st.markdown(segments_to_html(segments), unsafe_allow_html=True)
        else:
            st.markdown(message.content)

question = st.chat_input(
    "Ask about nutrition, vitamins, minerals, or any health-related topic...",
    disabled=state.pending,
)
if question and question.strip():
    with st.chat_message("user"):
        st.markdown(question.strip())
    typing_placeholder = st.empty()

    def show_typing(current: ConversationState) -> None:
        if current.typing_indicator:
            typing_placeholder.markdown(TYPING_HTML, unsafe_allow_html=True)
        else:
            typing_placeholder.empty()

    unsubscribe = controller.subscribe(show_typing)
    try:
        asyncio.run(controller.submit(question))
    finally:
        unsubscribe()
    st.rerun()

if state.current_sources:
    render_sources_panel(state)

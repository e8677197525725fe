from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from ragchat.citations import render_citations
from ragchat.client import ChatClient
from ragchat.config import Settings
from ragchat.controller import ConversationController, ConversationState
from ragchat.ingestion import SUPPORTED_SUFFIXES
from ragchat.presentation import segments_to_text, source_cards
from ragchat.types import CueKind, Notification

logger = logging.getLogger("ragchat.cli")


def _terminal_bell(kind: CueKind) -> None:
    del kind
    sys.stdout.write("\a")
    sys.stdout.flush()


def _print_notification(notification: Notification) -> None:
    print(f"{notification.title}: {notification.description}", file=sys.stderr)


def build_controller(settings: Settings, sound: bool) -> ConversationController:
    """Terminal front end: bell for cues, stderr for notifications."""
    controller = ConversationController(
        transport=ChatClient(settings.chat_endpoint, timeout=settings.request_timeout_seconds),
        notify=_print_notification,
        play_cue=_terminal_bell,
        display_delay=settings.display_delay_seconds,
        sound_enabled=sound,
    )
    typing_shown = {"value": False}

    def on_change(state: ConversationState) -> None:
        if state.typing_indicator and not typing_shown["value"]:
            print("Assistant is typing...", flush=True)
        typing_shown["value"] = state.typing_indicator

    controller.subscribe(on_change)
    return controller


def print_answer(state: ConversationState, source_chars: int, show_sources: bool) -> None:
    """Print the latest assistant message and the sources it cites."""
    if not state.messages or state.messages[-1].role != "assistant":
        return
    segments = render_citations(state.messages[-1].content, state.current_sources)
    print("\nAssistant>")
    print(segments_to_text(segments))
    if not show_sources:
        return
    if not state.current_sources:
        print("No sources returned.")
        return
    print("\nSources Referenced:")
    for card, source in zip(source_cards(state.current_sources), state.current_sources):
        snippet = source["content"].strip().replace("\n", " ")
        if len(snippet) > source_chars:
            snippet = snippet[:source_chars] + "..."
        print(f"{card.badge} | {card.similarity}")
        print(f"    {snippet}")


def _resolve_input_files(paths: List[str]) -> List[Path]:
    resolved: List[Path] = []
    for raw in paths:
        path = Path(raw).expanduser().resolve()
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file type: {path.suffix} ({path})")
        resolved.append(path)
    return resolved


def command_ingest(args: argparse.Namespace, settings: Settings) -> int:
    """Chunk, embed and store documents for the chat endpoint."""
    from ragchat.embeddings import LocalEmbeddingModel
    from ragchat.rag_pipeline import RAGPipeline
    from ragchat.vector_store import ChromaVectorStore

    try:
        files = _resolve_input_files(args.files)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Input validation error: {exc}", file=sys.stderr)
        return 2

    pipeline = RAGPipeline(
        settings=settings,
        embedding_model=LocalEmbeddingModel(settings.embedding_model_name),
        vector_store=ChromaVectorStore(settings.chroma_dir, settings.collection_name),
    )
    total = 0
    failed: List[str] = []
    for file_path in files:
        try:
            count = pipeline.ingest_file(file_path, source_name=file_path.name)
        except Exception as exc:
            logger.exception("Ingestion of %s failed", file_path)
            failed.append(f"{file_path.name}: {exc}")
            continue
        total += count
        print(f"Ingested {file_path.name}: {count} chunks")

    print(f"\nTotal chunks stored/updated: {total}")
    if failed:
        print("Ingestion failures:", file=sys.stderr)
        for item in failed:
            print(f"- {item}", file=sys.stderr)
        return 1
    return 0


def command_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from ragchat.server import create_app

    missing = settings.missing_backend_settings()
    if missing:
        logger.warning("Chat requests will fail until these are set: %s", ", ".join(missing))
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.server_host,
        port=args.port or settings.server_port,
        log_level=settings.log_level.lower(),
    )
    return 0


def command_ask(args: argparse.Namespace, settings: Settings) -> int:
    """Send one question through the conversation controller."""
    controller = build_controller(settings, sound=settings.sound_enabled and not args.mute)
    accepted = asyncio.run(controller.submit(args.question))
    if not accepted:
        return 1
    print_answer(controller.state, args.source_chars, args.show_sources)
    return 0


def command_chat(args: argparse.Namespace, settings: Settings) -> int:
    """Interactive terminal conversation. ``/sound`` toggles cues."""
    controller = build_controller(settings, sound=settings.sound_enabled and not args.mute)
    print("Ask me about nutrition! Type 'exit' or 'quit' to stop, '/sound' to toggle sounds.")
    while True:
        try:
            question = input("\nYou> ").strip()
        except EOFError:
            print("\nExiting chat.")
            break

        if question.lower() in {"exit", "quit"}:
            print("Exiting chat.")
            break
        if question == "/sound":
            enabled = controller.toggle_sound()
            print(f"Sound {'on' if enabled else 'off'}.")
            continue

        if asyncio.run(controller.submit(question)):
            print_answer(controller.state, args.source_chars, show_sources=True)
    return 0


def command_stats(_: argparse.Namespace, settings: Settings) -> int:
    from ragchat.vector_store import ChromaVectorStore

    store = ChromaVectorStore(settings.chroma_dir, settings.collection_name)
    print(f"Stored chunks: {store.count()}")
    print(f"Chroma directory: {settings.chroma_dir}")
    print(f"Collection: {settings.collection_name}")
    print(f"Document filter: {settings.document_filter or '(none)'}")
    for name in store.list_sources():
        print(f"- {name}")
    return 0


def command_clear(_: argparse.Namespace, settings: Settings) -> int:
    from ragchat.vector_store import ChromaVectorStore

    ChromaVectorStore(settings.chroma_dir, settings.collection_name).clear()
    print("Vector store cleared.")
    return 0


def _add_display_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--mute", action="store_true", help="Disable send/receive cues")
    parser.add_argument("--source-chars", type=int, default=240, help="Max characters shown per source")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grounded RAG chat")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser("ingest", help="Ingest PDF/TXT files into the vector store")
    ingest_parser.add_argument("files", nargs="+", help="One or more .pdf/.txt files")

    serve_parser = subparsers.add_parser("serve", help="Run the chat HTTP endpoint")
    serve_parser.add_argument("--host", default="", help="Bind address (overrides RAG_SERVER_HOST)")
    serve_parser.add_argument("--port", type=int, default=0, help="Port (overrides RAG_SERVER_PORT)")

    ask_parser = subparsers.add_parser("ask", help="Ask one question against the chat endpoint")
    ask_parser.add_argument("question", help="Question text")
    ask_parser.add_argument("--show-sources", action="store_true", help="Print the sources panel")
    _add_display_options(ask_parser)

    chat_parser = subparsers.add_parser("chat", help="Start an interactive terminal conversation")
    _add_display_options(chat_parser)

    subparsers.add_parser("stats", help="Show vector store statistics")
    subparsers.add_parser("clear", help="Remove every chunk from the collection")
    return parser


COMMANDS = {
    "ingest": command_ingest,
    "serve": command_serve,
    "ask": command_ask,
    "chat": command_chat,
    "stats": command_stats,
    "clear": command_clear,
}


def main(argv: List[str] | None = None) -> int:
    load_dotenv()
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 2
    return command(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())

"""Page-aware document loading and chunking."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import pdfplumber

SUPPORTED_SUFFIXES = {".pdf", ".txt"}

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9\"'(\[])|\n{2,}")


@dataclass
class ChunkRecord:
    """A chunk of one page together with where it came from."""

    text: str
    source: str
    page: int
    chunk_index: int


def read_pdf_pages(file_path: Path) -> List[Tuple[int, str]]:
    """Return ``(page_number, text)`` for every PDF page that has text."""
    pages: List[Tuple[int, str]] = []
    with pdfplumber.open(file_path) as pdf:
        for number, page in enumerate(pdf.pages, start=1):
            text = (page.extract_text() or "").strip()
            if text:
                pages.append((number, text))
    return pages


def read_text_pages(file_path: Path) -> List[Tuple[int, str]]:
    """Plain text files are paginated on form feeds."""
    raw = file_path.read_text(encoding="utf-8", errors="ignore")
    return [(number, page.strip()) for number, page in enumerate(raw.split("\f"), start=1) if page.strip()]


def read_pages(file_path: Path) -> List[Tuple[int, str]]:
    suffix = file_path.suffix.lower()
    if suffix == ".pdf":
        return read_pdf_pages(file_path)
    if suffix == ".txt":
        return read_text_pages(file_path)
    raise ValueError(f"Unsupported file type: {suffix}")


def clean_text(text: str) -> str:
    text = text.replace("\u00a0", " ")
    text = text.replace("\u2018", "'").replace("\u2019", "'")
    text = text.replace("\u201c", '"').replace("\u201d", '"')
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def split_sentences(text: str) -> List[str]:
    return [part.strip() for part in _SENTENCE_BOUNDARY.split(text) if part and part.strip()]


def _words(sentence: str) -> int:
    return len(sentence.split())


def chunk_text(text: str, chunk_size: int = 400, chunk_overlap: int = 100) -> List[str]:
    """Pack whole sentences into chunks of at most ``chunk_size`` words.

    Consecutive chunks share trailing sentences worth up to ``chunk_overlap``
    words.  A sentence longer than ``chunk_size`` becomes a chunk of its own.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be greater than 0")
    if chunk_overlap < 0:
        raise ValueError("chunk_overlap must be non-negative")
    if chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be smaller than chunk_size")

    chunks: List[str] = []
    window: List[str] = []
    window_words = 0
    for sentence in split_sentences(clean_text(text)):
        size = _words(sentence)
        if window and window_words + size > chunk_size:
            chunks.append(" ".join(window))
            carried: List[str] = []
            carried_words = 0
            for previous in reversed(window):
                if carried_words + _words(previous) > chunk_overlap:
                    break
                carried.insert(0, previous)
                carried_words += _words(previous)
            window, window_words = carried, carried_words
        window.append(sentence)
        window_words += size
        if window_words > chunk_size and len(window) == 1:
            chunks.append(sentence)
            window, window_words = [], 0

    if window:
        chunks.append(" ".join(window))
    return chunks


def ingest_document(
    file_path: Path,
    chunk_size: int = 400,
    chunk_overlap: int = 100,
    source_name: Optional[str] = None,
) -> List[ChunkRecord]:
    """Load a document and chunk it page by page.

    Chunks never straddle pages so every chunk carries one page number.
    ``chunk_index`` counts chunks across the whole document.
    """
    source = source_name or file_path.name
    records: List[ChunkRecord] = []
    for page_number, page_text in read_pages(file_path):
        for piece in chunk_text(page_text, chunk_size=chunk_size, chunk_overlap=chunk_overlap):
            records.append(ChunkRecord(text=piece, source=source, page=page_number, chunk_index=len(records)))
    return records

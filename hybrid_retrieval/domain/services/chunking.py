from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace

from hybrid_retrieval.domain.errors import ValidationError

CHARS_PER_TOKEN = 4

# ---------- Value Objects ----------


@dataclass(frozen=True)
class Section:
    title: str | None
    text: str  # heading line included


@dataclass(frozen=True)
class Chunk:
    text: str
    chunk_index: int
    section_title: str | None = None


@dataclass(frozen=True)
class ChunkingParams:
    max_tokens: int = 800
    min_tokens: int = 100
    overlap_tokens: int = 50
    max_chunks: int = 20

    def __post_init__(self) -> None:
        if self.max_tokens < 1:
            raise ValidationError("max_tokens must be >= 1")
        if self.min_tokens < 0 or self.overlap_tokens < 0:
            raise ValidationError("min_tokens and overlap_tokens must be >= 0")
        if self.max_chunks < 1:
            raise ValidationError("max_chunks must be >= 1")


@dataclass(frozen=True)
class _Unit:
    text: str
    sep: str  # separator placed before this unit when it is appended
    title: str | None


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


# ---------- Structure heuristics ----------

_HEADING_PATTERNS = [
    re.compile(r"^\s*#{1,6}\s+(.+)$"),  # Markdown #, ##, ...
    # 1. Title / 1.2 Title / 1.2.3. Title (short lines only, so list items stay text)
    re.compile(r"^\s*(\d+\.(?:\d+\.?){0,3}|\d+(?:\.\d+){1,3})\s+(\S.{0,79})$"),
    # UPPER CASE SECTION LINES
    re.compile(r"^([A-Z][A-Z0-9 \-/]{3,})\s*$"),
]

_SENT_END = re.compile(r"(?<=[.!?])\s+(?=\S)")


def _is_heading(line: str) -> str | None:
    for pat in _HEADING_PATTERNS:
        m = pat.match(line.strip())
        if m:
            if m.lastindex and m.lastindex >= 2 and m.group(2):
                return m.group(2).strip()
            return m.group(1).strip()
    return None


def split_into_sections(text: str) -> list[Section]:
    """Split text at heading lines; the heading stays the first line of its section."""
    sections: list[Section] = []
    curr_title: str | None = None
    buf: list[str] = []

    for line in text.splitlines():
        title = _is_heading(line)
        if title is not None:
            if any(b.strip() for b in buf):
                sections.append(Section(curr_title, "\n".join(buf).strip()))
                buf = []
            curr_title = title
        buf.append(line)
    if any(b.strip() for b in buf):
        sections.append(Section(curr_title, "\n".join(buf).strip()))
    if not sections and text.strip():
        sections = [Section(None, text.strip())]
    return sections


def split_into_paragraphs(text: str) -> list[str]:
    """Blank lines separate paragraphs."""
    paras = [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]
    return paras if paras else ([text.strip()] if text.strip() else [])


def split_into_sentences(paragraph: str) -> list[str]:
    """Naive sentence split on terminal punctuation (no NLP libs)."""
    paragraph = " ".join(paragraph.split())
    if not paragraph:
        return []
    return [s.strip() for s in _SENT_END.split(paragraph) if s.strip()]


def _hard_split(text: str, max_chars: int) -> list[str]:
    """Last resort: fixed windows, broken at the last whitespace when possible."""
    pieces: list[str] = []
    rest = text.strip()
    while len(rest) > max_chars:
        cut = rest.rfind(" ", 0, max_chars + 1)
        if cut <= 0:
            cut = max_chars
        pieces.append(rest[:cut].strip())
        rest = rest[cut:].strip()
    if rest:
        pieces.append(rest)
    return pieces


# ---------- Unit building and packing ----------


def _section_units(section: Section, p: ChunkingParams) -> list[_Unit]:
    if estimate_tokens(section.text) <= p.max_tokens:
        return [_Unit(section.text, "\n\n", section.title)]

    units: list[_Unit] = []
    max_chars = p.max_tokens * CHARS_PER_TOKEN
    for para in split_into_paragraphs(section.text):
        if estimate_tokens(para) <= p.max_tokens:
            units.append(_Unit(para, "\n\n", section.title))
            continue
        sep = "\n\n"
        for sentence in split_into_sentences(para):
            parts = [sentence] if len(sentence) <= max_chars else _hard_split(sentence, max_chars)
            for part in parts:
                units.append(_Unit(part, sep, section.title))
                sep = " "
    return units


def _overlap_tail(text: str, overlap_tokens: int) -> str:
    if overlap_tokens <= 0:
        return ""
    n = overlap_tokens * CHARS_PER_TOKEN
    if len(text) <= n:
        return text.strip()
    tail = text[-n:]
    m = re.search(r"\s", tail)
    if m and m.end() < len(tail):
        tail = tail[m.end() :]  # do not start mid-word
    return tail.strip()


def _pack(units: list[_Unit], p: ChunkingParams) -> list[tuple[str, str | None]]:
    drafts: list[tuple[str, str | None]] = []
    current = ""
    fresh_start = 0  # offset where this chunk's own content starts (after the overlap)
    title: str | None = None

    for unit in units:
        candidate = f"{current}{unit.sep}{unit.text}" if current else unit.text
        if (
            current
            and estimate_tokens(candidate) > p.max_tokens
            and estimate_tokens(current) >= p.min_tokens
        ):
            drafts.append((current, title))
            tail = _overlap_tail(current, p.overlap_tokens)
            current = f"{tail}\n\n{unit.text}" if tail else unit.text
            fresh_start = len(tail) + 2 if tail else 0
            title = unit.title
        else:
            current = candidate
            title = title or unit.title

    if current.strip():
        if estimate_tokens(current) >= p.min_tokens or not drafts:
            drafts.append((current, title))
        else:
            # tiny remainder: merge into the previous chunk (without repeating the overlap)
            prev_text, prev_title = drafts[-1]
            drafts[-1] = (f"{prev_text}\n\n{current[fresh_start:].strip()}", prev_title)
    return drafts


def _chunk_long(
    body: str, title: str | None, subtitle: str | None, p: ChunkingParams
) -> list[tuple[str, str | None]]:
    units: list[_Unit] = []
    preamble = "\n".join(part for part in (title, subtitle) if part)
    if preamble:
        units.append(_Unit(preamble, "\n\n", None))
    for section in split_into_sections(body):
        units.extend(_section_units(section, p))
    return _pack(units, p)


def chunk_document(
    text: str,
    *,
    title: str | None = None,
    subtitle: str | None = None,
    params: ChunkingParams | None = None,
) -> list[Chunk]:
    """Pipeline: sections -> paragraphs -> sentences -> pack (+ overlap) -> merge tiny tail.

    Returns 0 chunks for blank text, exactly 1 when the text fits ``max_tokens``,
    and never more than ``max_chunks``: when the budget is exceeded the text is
    re-packed with a larger ``max_tokens`` instead of being cut off.
    """
    p = params or ChunkingParams()
    body = text.strip()
    if not body:
        return []

    if estimate_tokens(body) <= p.max_tokens:
        joined = "\n\n".join(part for part in (title, subtitle, body) if part)
        return [Chunk(text=joined, chunk_index=0)]

    drafts = _chunk_long(body, title, subtitle, p)
    while len(drafts) > p.max_chunks:
        p = replace(p, max_tokens=p.max_tokens + max(p.max_tokens // 2, 1))
        drafts = _chunk_long(body, title, subtitle, p)

    return [
        Chunk(text=text_, chunk_index=i, section_title=section_title)
        for i, (text_, section_title) in enumerate(drafts)
    ]

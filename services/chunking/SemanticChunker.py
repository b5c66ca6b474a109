"""Semantic chunker.

Splits rental-property documents into titled sections (pricing, address,
rules, ...) so every indexed chunk carries the topic it belongs to. Sections
are found by a single priority-ordered pass over the pattern table; whatever
no pattern claims becomes "Other description", so no text is dropped.
Sections over the token budget are split on paragraph, then sentence,
boundaries.
"""

import bisect
import math
import re

from pydantic import BaseModel

from services.chunking.SectionPatterns import OTHER_PRIORITY, OTHER_TITLE, SECTION_PATTERNS, SectionPattern
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import ChunkingReport, SectionChunk

CHARS_PER_TOKEN = 4
MIN_SECTION_CHARS = 20
CAPTURE_RATE_WARNING = 0.9
DEFAULT_MAX_TOKENS = 500

PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?。])\s+")


def estimate_tokens(text: str) -> int:
    """Rough token count used for budgeting: one token per four characters."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def measure_capture_rate(text: str, chunks: list[SectionChunk]) -> float:
    """Share of input characters that ended up in chunk bodies.

    Args:
        text (str): The original document text.
        chunks (list[SectionChunk]): The chunker output for that text.

    Returns:
        float: Ratio in [0, 1+]; 1.0 for empty input.
    """
    if not text:
        return 1.0
    return sum(len(chunk.content) for chunk in chunks) / len(text)


class DetectedSection(BaseModel):
    title: str
    priority: int
    start: int
    end: int
    content: str


class SemanticChunker:
    """Section-aware chunker for property documents."""

    def __init__(
        self,
        helper_config: HelperConfig,
        patterns: list[SectionPattern] | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._patterns = patterns if patterns is not None else SECTION_PATTERNS
        self.max_tokens = int(max_tokens or helper_config.get_number_val("CHUNK_MAX_TOKENS", default=DEFAULT_MAX_TOKENS))

    ##########################################
    ################# CHUNK ##################
    ##########################################

    def chunk(self, text: str, max_tokens_per_chunk: int | None = None) -> list[SectionChunk]:
        """Split a document into titled chunks within the token budget.

        Args:
            text (str): Document text.
            max_tokens_per_chunk (int | None): Budget per chunk body; defaults to CHUNK_MAX_TOKENS.

        Returns:
            list[SectionChunk]: Chunks ordered by section priority, then position in the text.
        """
        if not text or not text.strip():
            return []
        max_tokens = max(1, int(max_tokens_per_chunk or self.max_tokens))

        sections = self.find_sections(text)
        sections.sort(key=lambda s: (-s.priority, s.start))

        chunks: list[SectionChunk] = []
        for section in sections:
            chunks.extend(self._split_section(section, max_tokens))
        return chunks

    def chunk_document(self, text: str, max_tokens_per_chunk: int | None = None) -> ChunkingReport:
        """Chunk a document and report how much of its text was captured."""
        chunks = self.chunk(text, max_tokens_per_chunk)
        capture_rate = measure_capture_rate(text.strip() if text else "", chunks)
        if chunks and capture_rate < CAPTURE_RATE_WARNING:
            self.logging.warning(
                "Chunking captured only %.1f%% of the document text (%d chunks).",
                capture_rate * 100, len(chunks),
            )
        else:
            self.logging.debug("Chunked document into %d chunks (capture rate %.2f).", len(chunks), capture_rate)
        return ChunkingReport(chunks=chunks, capture_rate=capture_rate)

    ##########################################
    ############ SECTION MATCHING ############
    ##########################################

    def find_sections(self, text: str) -> list[DetectedSection]:
        """Locate known sections plus the unclaimed text between them.

        Patterns are tried in priority order; a match is kept when it holds at
        least MIN_SECTION_CHARS of content and does not overlap an accepted span.

        Returns:
            list[DetectedSection]: Sections in text order.
        """
        starts: list[int] = []
        spans: list[DetectedSection] = []

        for pattern in self._patterns:
            for match in pattern.regex.finditer(text):
                start, end = match.span()
                raw = text[start:end]
                end = start + len(raw.rstrip())
                content = raw.strip()
                if len(content) < MIN_SECTION_CHARS:
                    continue
                pos = bisect.bisect_right(starts, start)
                if pos > 0 and spans[pos - 1].end > start:
                    continue
                if pos < len(spans) and spans[pos].start < end:
                    continue
                starts.insert(pos, start)
                spans.insert(pos, DetectedSection(
                    title=pattern.title, priority=pattern.priority, start=start, end=end, content=content,
                ))

        return self._fill_gaps(text, spans)

    def _fill_gaps(self, text: str, spans: list[DetectedSection]) -> list[DetectedSection]:
        gaps: list[DetectedSection] = []
        cursor = 0
        for span in [*spans, None]:
            gap_end = span.start if span is not None else len(text)
            gap = text[cursor:gap_end].strip()
            if gap:
                gaps.append(DetectedSection(
                    title=OTHER_TITLE, priority=OTHER_PRIORITY, start=cursor, end=gap_end, content=gap,
                ))
            if span is not None:
                cursor = span.end

        if len(gaps) > 1:
            for number, gap in enumerate(gaps, start=1):
                gap.title = f"{OTHER_TITLE} - Part {number}"

        return sorted([*spans, *gaps], key=lambda s: s.start)

    ##########################################
    ############### SPLITTING ################
    ##########################################

    def _split_section(self, section: DetectedSection, max_tokens: int) -> list[SectionChunk]:
        if estimate_tokens(section.content) <= max_tokens:
            return [SectionChunk(title=section.title, content=section.content)]

        max_chars = max_tokens * CHARS_PER_TOKEN
        parts: list[str] = []
        buffer: list[str] = []
        for paragraph in PARAGRAPH_SPLIT.split(section.content):
            paragraph = paragraph.strip()
            if not paragraph:
                continue
            if estimate_tokens(paragraph) > max_tokens:
                # oversized paragraph stands alone, split by sentence
                if buffer:
                    parts.append("\n\n".join(buffer))
                    buffer = []
                parts.extend(self._split_paragraph(paragraph, max_tokens, max_chars))
                continue
            if buffer and estimate_tokens("\n\n".join([*buffer, paragraph])) > max_tokens:
                parts.append("\n\n".join(buffer))
                buffer = []
            buffer.append(paragraph)
        if buffer:
            parts.append("\n\n".join(buffer))

        self.logging.debug("Split section '%s' into %d parts.", section.title, len(parts))
        return [
            SectionChunk(title=section.title if index == 0 else f"{section.title} - Part {index + 1}", content=part)
            for index, part in enumerate(parts)
        ]

    def _split_paragraph(self, paragraph: str, max_tokens: int, max_chars: int) -> list[str]:
        parts: list[str] = []
        buffer = ""
        for sentence in SENTENCE_SPLIT.split(paragraph):
            if not sentence:
                continue
            pieces = [sentence] if estimate_tokens(sentence) <= max_tokens else self._hard_split(sentence, max_chars)
            for piece in pieces:
                candidate = f"{buffer} {piece}" if buffer else piece
                if buffer and estimate_tokens(candidate) > max_tokens:
                    parts.append(buffer)
                    buffer = piece
                else:
                    buffer = candidate
        if buffer:
            parts.append(buffer)
        return parts

    @staticmethod
    def _hard_split(sentence: str, max_chars: int) -> list[str]:
        """Cut a run-on sentence at the character budget, preferring whitespace."""
        pieces: list[str] = []
        rest = sentence
        while len(rest) > max_chars:
            cut = rest.rfind(" ", max_chars // 2, max_chars + 1)
            if cut <= 0:
                cut = max_chars
            pieces.append(rest[:cut].strip())
            rest = rest[cut:].strip()
        if rest:
            pieces.append(rest)
        return pieces

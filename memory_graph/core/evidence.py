"""Markdown evidence extraction: topic-scoped chunks and declarative facts."""

import re

from .canonical import canonicalize_fact, clean_inline, normalize_topic
from .constants import (
    BULLET_CONFIDENCE_HINT,
    DEFAULT_MAX_CHUNKS,
    DEFAULT_TOPIC,
    KV_CONFIDENCE_HINT,
    MAX_CHUNK_CHARS,
    MAX_STATEMENT_CHARS,
)
from .types import SourceChunk, SourceFact
from .utils import slug, truncate

_HEADING = re.compile(r"^#{1,4}\s+(.+)")
_BULLET = re.compile(r"^\s*(?:[-*]|\d+[.)])\s+(.+)")
_KEY_VALUE = re.compile(r"^\s*([A-Za-z][^:]{1,48}):\s+(.+)")


def extract_evidence_from_markdown(
    content: str,
    max_chunks: int = DEFAULT_MAX_CHUNKS,
) -> tuple[list[SourceChunk], list[SourceFact]]:
    """
    Walk a document line by line and derive chunks and facts.

    The running topic is set by the last heading seen. Chunks stop at
    max_chunks; fact scanning continues to the end of the document so
    every distinct fact is still surfaced. Facts are deduplicated per call
    on `topic::canonical`.

    Returns (chunks, facts).
    """
    chunks: list[SourceChunk] = []
    facts: list[SourceFact] = []
    seen_facts: set[str] = set()
    topic = DEFAULT_TOPIC
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    for idx, raw in enumerate(lines):
        line_no = idx + 1
        line = raw.strip()
        if not line:
            continue

        heading = _HEADING.match(line)
        if heading:
            topic = normalize_topic(heading.group(1))
            if len(chunks) < max_chunks:
                chunks.append({
                    "id": f"chunk-heading-{line_no}-{slug(topic)}",
                    "topic": topic,
                    "kind": "heading",
                    "text": topic,
                    "startLine": line_no,
                    "endLine": line_no,
                })
            continue

        bullet = _BULLET.match(line)
        kv = None if bullet else _KEY_VALUE.match(line)
        if bullet:
            text = clean_inline(bullet.group(1))
        elif kv:
            text = clean_inline(f"{kv.group(1)}: {kv.group(2)}")
        else:
            text = clean_inline(line)
        if not text:
            continue

        if len(chunks) < max_chunks:
            chunks.append({
                "id": f"chunk-{line_no}-{slug(text)}",
                "topic": topic,
                "kind": "bullet" if bullet or kv else "paragraph",
                "text": truncate(text, MAX_CHUNK_CHARS),
                "startLine": line_no,
                "endLine": line_no,
            })

        if not (bullet or kv):
            continue

        canonical = canonicalize_fact(text)
        fact_key = f"{topic.lower()}::{canonical}"
        if not canonical or fact_key in seen_facts:
            continue
        seen_facts.add(fact_key)
        facts.append({
            "id": f"fact-{line_no}-{slug(canonical)}",
            "topic": topic,
            "statement": truncate(text, MAX_STATEMENT_CHARS),
            "canonical": canonical,
            "line": line_no,
            "confidenceHint": KV_CONFIDENCE_HINT if kv else BULLET_CONFIDENCE_HINT,
        })

    return chunks, facts

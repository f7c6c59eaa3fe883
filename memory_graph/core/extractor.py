"""LLM entity/relation extraction over a chat-completion endpoint."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from dotenv import dotenv_values

from .constants import (
    DEFAULT_RELATION_CONFIDENCE,
    EXTRACTION_INPUT_CHARS,
    FALLBACK_ENTITY_TYPE,
    MAX_ENTITY_SUMMARY_CHARS,
    MAX_FACT_CHARS,
    VALID_ENTITY_TYPES,
)
from .exceptions import ExtractionError
from .types import BootstrapFile, ExtractedEntity, ExtractedRelation

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"

EXTRACTION_SYSTEM_PROMPT = """Extract a rich knowledge graph from text. Return ONLY a JSON object with this exact schema:
{
  "entities": [{"name": "string", "type": "person|project|tool|concept|preference", "summary": "string"}],
  "relations": [{"subject": "string", "predicate": "string", "object": "string", "fact": "string", "confidence": 0.0}]
}

Rules:
- Extract ALL meaningful named entities, not just the most obvious ones
- subject and object must be entity names from your entities list
- Skip bare markdown formatting artifacts and meaningless placeholders
- person: named humans, roles, contacts (use "User" for the person writing these notes)
- project: software projects, apps, products, stores, businesses, brands, repositories
- tool: libraries, frameworks, CLIs, APIs, databases, services, platforms, skills, integrations
- concept: ideas, patterns, methodologies, markets, locations, business domains, strategies
- preference: explicit rules, constraints, or strong preferences ("always use X", "never do Y")
- predicates should be short action verbs: uses, prefers, owns, maintains, built_with, integrates, targets, sells_to, located_in, depends_on, manages

Example input: "User prefers Python. The notes-app project uses FastAPI and SQLite."
Example output: {"entities":[{"name":"User","type":"person","summary":"The developer"},{"name":"notes-app","type":"project","summary":"FastAPI note taking app"},{"name":"Python","type":"tool","summary":"Programming language"},{"name":"FastAPI","type":"tool","summary":"Web framework"},{"name":"SQLite","type":"tool","summary":"Embedded database"}],"relations":[{"subject":"User","predicate":"prefers","object":"Python","fact":"User prefers Python","confidence":0.95},{"subject":"notes-app","predicate":"uses","object":"FastAPI","fact":"notes-app uses FastAPI","confidence":0.9},{"subject":"notes-app","predicate":"uses","object":"SQLite","fact":"notes-app uses SQLite","confidence":0.9}]}"""


def resolve_api_key(openclaw_home: Path) -> str | None:
    """
    API key from the environment, else from <openclaw_home>/.env.

    The .env file is read without touching os.environ.
    """
    key = os.getenv(API_KEY_ENV, "").strip()
    if key:
        return key

    env_path = openclaw_home / ".env"
    if not env_path.is_file():
        return None
    try:
        value = dotenv_values(env_path).get(API_KEY_ENV)
    except OSError as e:
        logger.warning(f"Could not read {env_path}: {e}")
        return None
    return value.strip() if value and value.strip() else None


def _nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _as_items(value: Any) -> list:
    return value if isinstance(value, list) else []


def validate_extraction_result(data: Any) -> tuple[list[ExtractedEntity], list[ExtractedRelation]]:
    """
    Coerce a parsed model response into entities and relations.

    Malformed items are dropped; out-of-vocabulary entity types become
    "concept" instead of being rejected.
    """
    if not isinstance(data, dict):
        return [], []

    entities: list[ExtractedEntity] = []
    for item in _as_items(data.get("entities")):
        if not isinstance(item, dict) or not _nonempty_str(item.get("name")):
            continue
        entity_type = str(item.get("type"))
        summary = item.get("summary")
        entities.append({
            "name": item["name"].strip(),
            "type": entity_type if entity_type in VALID_ENTITY_TYPES else FALLBACK_ENTITY_TYPE,
            "summary": summary.strip()[:MAX_ENTITY_SUMMARY_CHARS] if isinstance(summary, str) else "",
        })

    relations: list[ExtractedRelation] = []
    for item in _as_items(data.get("relations")):
        if not isinstance(item, dict):
            continue
        if not all(_nonempty_str(item.get(k)) for k in ("subject", "predicate", "object")):
            continue
        subject = item["subject"].strip()
        predicate = item["predicate"].strip()
        obj = item["object"].strip()
        fact = item.get("fact")
        confidence = item.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = DEFAULT_RELATION_CONFIDENCE
        relations.append({
            "subject": subject,
            "predicate": predicate,
            "object": obj,
            "fact": fact.strip()[:MAX_FACT_CHARS] if _nonempty_str(fact) else f"{subject} {predicate} {obj}",
            "confidence": min(1.0, max(0.0, float(confidence))),
        })

    return entities, relations


@dataclass
class ExtractionOutcome:
    """Result of extracting one document; error is set instead of raising."""
    document: str
    entities: list[ExtractedEntity] = field(default_factory=list)
    relations: list[ExtractedRelation] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EntityExtractor:
    """Runs the extraction prompt against one document at a time."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 25.0,
        max_tokens: int = 4000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def extract_all(self, documents: list[BootstrapFile]) -> list[ExtractionOutcome]:
        """
        Extract every document sequentially over one HTTP client.

        Calls are not parallelized so provider rate limits and cost stay
        bounded. A failing document never aborts the batch.
        """
        if not self.enabled:
            return [
                ExtractionOutcome(doc["name"], error=f"{API_KEY_ENV} not configured")
                for doc in documents
            ]

        async with self._client() as client:
            return [await self._outcome(client, doc) for doc in documents]

    async def extract(self, document: BootstrapFile) -> ExtractionOutcome:
        """Extract a single document. Never raises."""
        if not self.enabled:
            return ExtractionOutcome(document["name"], error=f"{API_KEY_ENV} not configured")
        async with self._client() as client:
            return await self._outcome(client, document)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _outcome(self, client: httpx.AsyncClient, doc: BootstrapFile) -> ExtractionOutcome:
        try:
            entities, relations = await self._extract_one(client, doc)
        except ExtractionError as e:
            logger.warning(str(e))
            return ExtractionOutcome(doc["name"], error=e.reason)
        return ExtractionOutcome(doc["name"], entities, relations)

    async def _extract_one(
        self,
        client: httpx.AsyncClient,
        doc: BootstrapFile,
    ) -> tuple[list[ExtractedEntity], list[ExtractedRelation]]:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": doc["content"][:EXTRACTION_INPUT_CHARS]},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0,
            "max_tokens": self.max_tokens,
        }
        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.TimeoutException:
            raise ExtractionError(doc["name"], f"timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise ExtractionError(doc["name"], f"request error: {e}")

        if response.status_code < 200 or response.status_code >= 300:
            raise ExtractionError(doc["name"], f"HTTP {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise ExtractionError(doc["name"], "unexpected completion payload")
        if not content:
            raise ExtractionError(doc["name"], "empty completion")

        try:
            parsed = json.loads(content)
        except (TypeError, ValueError):
            raise ExtractionError(doc["name"], "model returned malformed JSON")

        entities, relations = validate_extraction_result(parsed)
        logger.debug(f"Extracted {len(entities)} entities, {len(relations)} relations from {doc['name']}")
        return entities, relations

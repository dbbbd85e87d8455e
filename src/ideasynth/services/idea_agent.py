"""IdeaAgent: prize text in, grounded idea plus cited neighbors out.

Single public entry point ``generate_idea_from_prize``. The steps run in
sequence (embed, search, prompt, generate) and each external call is bounded
by its own timeout from settings. Errors from the backends propagate with
their own types.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Awaitable, TypeVar

from ..config.runtime import RuntimeSettings
from ..domain.project import IdeaSynthesisResult, ProjectRecord
from ..errors import CallTimeoutError
from ..ports.embedding import EmbeddingProvider
from ..ports.generation import ChatMessage, GenerationProvider
from ..ports.lifecycle import aclose_all
from ..ports.vector_store import SearchQuery, SearchResult, VectorSearchClient
from ..safety.prompt_guard import USER_INPUT_PLACEHOLDER, build_secure_prompt

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRENDS = (
    "Intent-based UX (account abstraction, ERC-4337)",
    "Onchain agents and automation (CoW hooks, Safe Modules)",
    "ZK proving UX (ZKML, proofs-as-a-service)",
    "Restaking and AVS composability (EigenLayer ecosystem)",
    "Modular L2s and shared sequencing (OP Stack, Alt DA)",
    "DePIN + real-world assets with verifiable oracles",
    "Verifiable compute for AI + crypto (inference receipts)",
)

SYSTEM_PROMPT = (
    "You are a creative hacker who keeps winning hackathon prizes. "
    "You turn a sponsor's prize brief into one concrete, buildable project idea."
)

NO_REFERENCES_LINE = "- (no reference projects found)"

_MAX_REFERENCE_CHARS = 300
_WHITESPACE_RE = re.compile(r"\s+")


def _reference_text(value: str, limit: int = _MAX_REFERENCE_CHARS) -> str:
    # Stored text must not be able to open a template placeholder.
    text = _WHITESPACE_RE.sub(" ", value).strip().replace("[[", "[").replace("]]", "]")
    return text[:limit]


def build_trends_summary() -> str:
    return "\n".join(f"- {trend}" for trend in TRENDS)


def build_prompt_template(projects: list[ProjectRecord]) -> str:
    """Prompt with a ``[[USER_INPUT]]`` slot for the prize text."""
    if projects:
        reference_lines = "\n".join(
            f"- [{i}] {_reference_text(p.title) or 'Untitled'}: {_reference_text(p.description)}"
            for i, p in enumerate(projects, start=1)
        )
    else:
        reference_lines = NO_REFERENCES_LINE

    return (
        "Read the prize description below and, using recent trends and past finalist "
        "projects as inspiration, propose one winning project idea.\n\n"
        "[Prize description]\n"
        f"{USER_INPUT_PLACEHOLDER}\n\n"
        "[Recent trends (for reference)]\n"
        f"{build_trends_summary()}\n\n"
        "[Similar past finalists]\n"
        f"{reference_lines}\n\n"
        "Answer in exactly this shape:\n"
        "Title: <one line that sells the idea>\n"
        "Pitch: <one sentence describing what it does and why it fits the prize>"
    )


class IdeaAgent:
    """Retrieval-grounded idea synthesis."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_search: VectorSearchClient,
        generator: GenerationProvider,
        settings: RuntimeSettings,
    ) -> None:
        self._embed = embedding_provider
        self._search = vector_search
        self._generator = generator
        self._settings = settings

    async def generate_idea_from_prize(self, prize_text: str) -> IdeaSynthesisResult:
        started = time.perf_counter()
        logger.info("Generating idea from prize brief", extra={"prize_length": len(prize_text)})

        similar = await self.similar_projects(prize_text, self._settings.idea_top_k)

        prompt = build_secure_prompt(build_prompt_template(similar), prize_text)
        messages = [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=prompt),
        ]
        raw = await self._bounded(
            self._generator.generate(messages),
            "generation",
            self._settings.generation_timeout_seconds,
        )
        content = raw.strip()

        logger.info(
            "Idea generated",
            extra={
                "refs_count": len(similar),
                "content_length": len(content),
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return IdeaSynthesisResult(content=content, similar_projects=similar)

    async def similar_projects(self, text: str, limit: int | None = None) -> list[ProjectRecord]:
        """Embed ``text`` and return up to ``limit`` nearest project records."""
        vector = await self._bounded(
            self._embed.create_embedding(text),
            "embedding",
            self._settings.embedding_timeout_seconds,
        )
        hits = await self._bounded(
            self._search.search(
                self._settings.qdrant_collection_name,
                SearchQuery(vector=vector, limit=limit or self._settings.idea_top_k),
            ),
            "search",
            self._settings.search_timeout_seconds,
        )
        return self._to_records(hits)

    async def aclose(self) -> None:
        """Release the backends' connections."""
        await aclose_all(self._embed, self._search, self._generator)

    @staticmethod
    def _to_records(hits: list[SearchResult]) -> list[ProjectRecord]:
        ordered = sorted(hits, key=lambda h: h.score, reverse=True)
        return [ProjectRecord.from_payload(hit.payload) for hit in ordered if hit.payload]

    @staticmethod
    async def _bounded(call: Awaitable[T], stage: str, timeout: float) -> T:
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except CallTimeoutError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning("External call timed out", extra={"stage": stage, "timeout_seconds": timeout})
            raise CallTimeoutError(stage, timeout) from exc

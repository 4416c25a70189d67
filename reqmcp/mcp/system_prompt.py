"""Cached system instructions for MCP ``initialize`` responses."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL: float = 300.0  # 5 minutes


@dataclass
class Prompt:
    """An active system prompt as stored by the prompt service."""

    content: str
    description: str | None = None


class PromptSource(Protocol):
    async def get_active(self) -> Prompt | None: ...


def combine_instructions(prompt: Prompt) -> str:
    """Join description and content into one instruction text."""
    if prompt.description:
        if prompt.content:
            return f"{prompt.description}\n\n{prompt.content}"
        return prompt.description
    return prompt.content


class SystemPromptProvider:
    """Read-through cache over a prompt source.

    Fetch failures never propagate: they are logged and yield an empty
    string, which is not cached.

    Args:
        source: Provider of the active prompt. None disables fetching.
        ttl: Cache lifetime in seconds.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        source: PromptSource | None,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl = ttl
        self._clock = clock
        self._instructions = ""
        self._last_updated: float | None = None
        self._lock = asyncio.Lock()

    def _is_valid(self) -> bool:
        if self._last_updated is None:
            return False
        return self._clock() - self._last_updated < self._ttl

    async def get_instructions(self) -> str:
        """Return cached instructions, fetching them when stale."""
        if self._is_valid() and self._instructions:
            return self._instructions

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self._is_valid() and self._instructions:
                return self._instructions
            try:
                instructions = await self._fetch()
            except Exception as e:
                logger.warning("Failed to fetch system instructions: %s", e)
                return ""
            self._instructions = instructions
            self._last_updated = self._clock()
            return instructions

    async def _fetch(self) -> str:
        if self._source is None:
            raise LookupError("prompt service not available")
        prompt = await self._source.get_active()
        if prompt is None:
            raise LookupError("no active prompt found")
        return combine_instructions(prompt)

    def invalidate_cache(self) -> None:
        self._instructions = ""
        self._last_updated = None

    async def update_instructions(self) -> str:
        """Drop the cache and fetch fresh instructions."""
        self.invalidate_cache()
        return await self.get_instructions()

    def set_cache_ttl(self, ttl: float) -> None:
        self._ttl = ttl

    def cache_status(self) -> dict[str, Any]:
        return {
            "has_cached_instructions": bool(self._instructions),
            "last_updated": self._last_updated,
            "ttl_seconds": self._ttl,
            "is_valid": self._is_valid(),
        }

"""Voice-alert references.

Audio synthesis and upload happen in an external service; the core only
keeps the text and, when a synthesizer is configured, the URL it returns.
URLs are cached by a hash of language and text for the life of the
process, with no eviction.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Protocol

import structlog

log = structlog.get_logger()


class VoiceSynthesizer(Protocol):
    """Port: turn text into a playable audio URL."""

    async def synthesize(self, text: str, language: str) -> str: ...


class VoiceCache(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, url: str) -> None: ...


class InMemoryVoiceCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._urls: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._urls.get(key)

    def put(self, key: str, url: str) -> None:
        with self._lock:
            self._urls[key] = url

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)


def cache_key(text: str, language: str) -> str:
    return hashlib.sha256(f"{language}:{text}".encode("utf-8")).hexdigest()


class VoiceAlerts:
    """Resolves voice text to an audio URL through the cache and synthesizer."""

    def __init__(
        self,
        synthesizer: VoiceSynthesizer | None,
        cache: VoiceCache,
        language: str = "tamil",
    ) -> None:
        self._synthesizer = synthesizer
        self._cache = cache
        self.language = language

    async def url_for(self, text: str) -> str | None:
        """Return the audio URL for ``text``, or None when none can be made.

        A synthesis failure is logged and yields None; the alert or case it
        belongs to is still created with its text reference.
        """
        if self._synthesizer is None:
            return None
        key = cache_key(text, self.language)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            url = await self._synthesizer.synthesize(text, self.language)
        except Exception:
            log.error("voice_synthesis_failed", language=self.language, exc_info=True)
            return None
        self._cache.put(key, url)
        log.info("voice_synthesized", language=self.language, key=key[:12])
        return url
